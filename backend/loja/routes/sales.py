# Overview: Flask API routes for sales and installments; parses input and returns JSON responses.

# backend/loja/routes/sales.py
"""Sales API routes. Loan-originated sales are created under /api/loans/<id>/sale."""

from flask import Blueprint, request

from ..decorators import json_errors
from ..services import installment_service, sale_service
from ..services.status_service import sale_status
from ..validation import parse_date, parse_optional_int


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def sale_payload(sale, include_lines: bool = True) -> dict:
    data = sale.to_dict()
    data["status"] = sale_status(sale)
    if include_lines:
        data["lines"] = [line.to_dict() for line in sale.lines]
        data["installments"] = [i.to_dict() for i in sale.installments]
    return data


@sales_bp.get("")
@json_errors
def list_sales_route():
    """
    Query params:
    - status: PENDING | LATE | PAID (optional)
    - customer_id: int (optional)
    """
    sales = sale_service.list_sales(
        status=request.args.get("status"),
        customer_id=parse_optional_int(request.args.get("customer_id"), "customer_id"),
    )
    return {"items": [sale_payload(s, include_lines=False) for s in sales], "count": len(sales)}


@sales_bp.post("")
@json_errors
def create_sale_route():
    """
    Direct sale.

    Request body:
    {
        "customer_id": int,
        "lines": [{"product_id": int, "quantity": int, "unit_price_cents": int}, ...],
        "installment_plan": {"count": 1..12, "first_due_date": "YYYY-MM-DD"}
    }
    """
    data = request.get_json(silent=True) or {}
    sale = sale_service.create_direct_sale(
        data.get("customer_id"),
        data.get("lines"),
        data.get("installment_plan"),
    )
    return sale_payload(sale), 201


@sales_bp.get("/<int:sale_id>")
@json_errors
def get_sale_route(sale_id: int):
    return sale_payload(sale_service.get_sale(sale_id))


@sales_bp.put("/<int:sale_id>")
@json_errors
def update_sale_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    sale = sale_service.update_sale(sale_id, data.get("customer_id"))
    return sale_payload(sale)


@sales_bp.delete("/<int:sale_id>")
@json_errors
def delete_sale_route(sale_id: int):
    sale_service.delete_sale(sale_id)
    return {"ok": True}, 200


@sales_bp.post("/<int:sale_id>/installments/<int:installment_id>/pay")
@json_errors
def pay_installment_route(sale_id: int, installment_id: int):
    """
    Request body: {"payment_date": "YYYY-MM-DD"}  // optional, defaults to today

    409 ALREADY_PAID if the installment was paid before.
    """
    data = request.get_json(silent=True) or {}
    raw_date = data.get("payment_date")
    payment_date = parse_date(raw_date, "payment_date") if raw_date else None
    installment = installment_service.mark_paid(installment_id, payment_date=payment_date, sale_id=sale_id)
    return installment.to_dict()
