# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import json_errors
from ..models import Supplier
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "cnpj", "email", "phone",
        "zipcode", "state", "city", "street", "number", "complement",
    },
    required_on_create={"name", "cnpj"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@json_errors
def list_suppliers():
    items = catalog_service.list_suppliers()
    return {"items": [c.to_dict() for c in items], "count": len(items)}


@suppliers_bp.post("")
@json_errors
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    supplier = catalog_service.create_supplier(patch=patch)
    return supplier.to_dict(), 201


@suppliers_bp.get("/<int:supplier_id>")
@json_errors
def get_supplier_route(supplier_id: int):
    return catalog_service.get_supplier(supplier_id).to_dict()


@suppliers_bp.put("/<int:supplier_id>")
@json_errors
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    supplier = catalog_service.update_supplier(supplier_id, patch)
    return supplier.to_dict()


@suppliers_bp.delete("/<int:supplier_id>")
@json_errors
def delete_supplier_route(supplier_id: int):
    catalog_service.delete_supplier(supplier_id)
    return {"ok": True}, 200
