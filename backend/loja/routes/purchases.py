# Overview: Flask API routes for purchases and receiving; parses input and returns JSON responses.

# backend/loja/routes/purchases.py
"""
Purchase order routes.

Receiving is per line (purchase + product) and credits stock by the received
quantity. Status (PENDING / DELIVERED) is derived on every read.
"""
from flask import Blueprint, request

from ..decorators import json_errors
from ..services import purchase_service
from ..services.status_service import purchase_status
from ..validation import parse_optional_int


purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


def _purchase_payload(purchase, include_lines: bool = True) -> dict:
    data = purchase.to_dict()
    data["status"] = purchase_status(purchase)
    if include_lines:
        data["lines"] = [line.to_dict() for line in purchase.lines]
    return data


@purchases_bp.get("")
@json_errors
def list_purchases_route():
    """
    Query params:
    - status: PENDING | DELIVERED (optional)
    - supplier_id: int (optional)
    """
    purchases = purchase_service.list_purchases(
        status=request.args.get("status"),
        supplier_id=parse_optional_int(request.args.get("supplier_id"), "supplier_id"),
    )
    return {"items": [_purchase_payload(p, include_lines=False) for p in purchases], "count": len(purchases)}


@purchases_bp.post("")
@json_errors
def create_purchase_route():
    """
    Request body:
    {
        "supplier_id": int,
        "lines": [{"product_id": int, "quantity": int, "unit_price_cents": int}, ...]
    }
    """
    data = request.get_json(silent=True) or {}
    purchase = purchase_service.create_purchase(data.get("supplier_id"), data.get("lines"))
    return _purchase_payload(purchase), 201


@purchases_bp.get("/<int:purchase_id>")
@json_errors
def get_purchase_route(purchase_id: int):
    return _purchase_payload(purchase_service.get_purchase(purchase_id))


@purchases_bp.put("/<int:purchase_id>")
@json_errors
def update_purchase_route(purchase_id: int):
    data = request.get_json(silent=True) or {}
    purchase = purchase_service.update_purchase(purchase_id, data.get("supplier_id"))
    return _purchase_payload(purchase)


@purchases_bp.delete("/<int:purchase_id>")
@json_errors
def delete_purchase_route(purchase_id: int):
    purchase_service.delete_purchase(purchase_id)
    return {"ok": True}, 200


@purchases_bp.post("/<int:purchase_id>/lines/<int:product_id>/receive")
@json_errors
def receive_line_route(purchase_id: int, product_id: int):
    """
    Request body: {"quantity": int}

    Returns the updated purchase.
    """
    data = request.get_json(silent=True) or {}
    purchase_service.receive_line(purchase_id, product_id, data.get("quantity"))
    return _purchase_payload(purchase_service.get_purchase(purchase_id))


@purchases_bp.delete("/<int:purchase_id>/lines/<int:product_id>")
@json_errors
def delete_line_route(purchase_id: int, product_id: int):
    purchase_service.delete_line(purchase_id, product_id)
    return _purchase_payload(purchase_service.get_purchase(purchase_id))
