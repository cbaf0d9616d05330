# Overview: Flask API routes for customers; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import json_errors
from ..models import Customer
from ..services import catalog_service
from ..validation import ModelValidationPolicy, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "cpf", "email", "phone",
        "zipcode", "state", "city", "street", "number", "complement",
    },
    required_on_create={"name", "cpf"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@json_errors
def list_customers():
    items = catalog_service.list_customers()
    return {"items": [c.to_dict() for c in items], "count": len(items)}


@customers_bp.post("")
@json_errors
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    customer = catalog_service.create_customer(patch=patch)
    return customer.to_dict(), 201


@customers_bp.get("/<int:customer_id>")
@json_errors
def get_customer_route(customer_id: int):
    return catalog_service.get_customer(customer_id).to_dict()


@customers_bp.put("/<int:customer_id>")
@json_errors
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    customer = catalog_service.update_customer(customer_id, patch)
    return customer.to_dict()


@customers_bp.delete("/<int:customer_id>")
@json_errors
def delete_customer_route(customer_id: int):
    catalog_service.delete_customer(customer_id)
    return {"ok": True}, 200
