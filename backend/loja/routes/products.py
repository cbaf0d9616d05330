# Overview: Flask API routes for products; parses input and returns JSON responses.

# backend/loja/routes/products.py
"""
Product catalog routes.

Stock is read-only here: it is returned with every product but only moves
through purchases, loans and sales.
"""
from flask import Blueprint, request

from ..decorators import json_errors
from ..models import Product
from ..services import catalog_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_optional_int,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"code", "name", "description", "price_cents"},
    required_on_create={"code", "name", "price_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@json_errors
def list_products():
    """
    Query params:
    - search: str (optional) - matches name or code
    - max_stock: int (optional) - only products with stock <= max_stock
    """
    products = catalog_service.list_products(
        search=request.args.get("search"),
        max_stock=parse_optional_int(request.args.get("max_stock"), "max_stock"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.post("")
@json_errors
def create_product_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)  # Handles price validation including max check
    product = catalog_service.create_product(patch=patch)
    return product.to_dict(), 201


@products_bp.get("/<int:product_id>")
@json_errors
def get_product_route(product_id: int):
    return catalog_service.get_product(product_id).to_dict()


@products_bp.get("/by-code/<string:code>")
@json_errors
def get_product_by_code_route(code: str):
    """Scan lookup: exact match on the product code."""
    return catalog_service.get_product_by_code(code).to_dict()


@products_bp.put("/<int:product_id>")
@json_errors
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    product = catalog_service.update_product(product_id, patch)
    return product.to_dict()


@products_bp.delete("/<int:product_id>")
@json_errors
def delete_product_route(product_id: int):
    """Refused with 409 while any purchase, loan or sale line references the product."""
    catalog_service.delete_product(product_id)
    return {"ok": True}, 200
