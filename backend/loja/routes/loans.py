# Overview: Flask API routes for loans; parses input and returns JSON responses.

# backend/loja/routes/loans.py
"""
Loan routes: lend, return (per line or everything), delete, convert to sale.

Status (PENDING / LATE / DONE) is derived on every read.
"""
from flask import Blueprint, request

from ..decorators import json_errors
from ..services import loan_service
from ..services.status_service import loan_status
from ..validation import parse_optional_int
from .sales import sale_payload


loans_bp = Blueprint("loans", __name__, url_prefix="/api/loans")


def _loan_payload(loan, include_lines: bool = True) -> dict:
    data = loan.to_dict()
    data["status"] = loan_status(loan)
    if include_lines:
        data["lines"] = [line.to_dict() for line in loan.lines]
    return data


@loans_bp.get("")
@json_errors
def list_loans_route():
    """
    Query params:
    - status: PENDING | LATE | DONE (optional)
    - customer_id: int (optional)
    """
    loans = loan_service.list_loans(
        status=request.args.get("status"),
        customer_id=parse_optional_int(request.args.get("customer_id"), "customer_id"),
    )
    return {"items": [_loan_payload(loan, include_lines=False) for loan in loans], "count": len(loans)}


@loans_bp.post("")
@json_errors
def create_loan_route():
    """
    Request body:
    {
        "customer_id": int,
        "due_date": "YYYY-MM-DD",
        "lines": [{"product_id": int, "quantity": int, "unit_price_cents": int}, ...]
    }

    409 OUT_OF_STOCK lists every short product in details.items.
    """
    data = request.get_json(silent=True) or {}
    loan = loan_service.create_loan(data.get("customer_id"), data.get("due_date"), data.get("lines"))
    return _loan_payload(loan), 201


@loans_bp.get("/<int:loan_id>")
@json_errors
def get_loan_route(loan_id: int):
    return _loan_payload(loan_service.get_loan(loan_id))


@loans_bp.put("/<int:loan_id>")
@json_errors
def update_loan_route(loan_id: int):
    data = request.get_json(silent=True) or {}
    loan = loan_service.update_loan(loan_id, customer_id=data.get("customer_id"), due_date=data.get("due_date"))
    return _loan_payload(loan)


@loans_bp.delete("/<int:loan_id>")
@json_errors
def delete_loan_route(loan_id: int):
    loan_service.delete_loan(loan_id)
    return {"ok": True}, 200


@loans_bp.post("/<int:loan_id>/lines/<int:product_id>/return")
@json_errors
def return_line_route(loan_id: int, product_id: int):
    """Request body: {"quantity": int}"""
    data = request.get_json(silent=True) or {}
    loan_service.return_line(loan_id, product_id, data.get("quantity"))
    return _loan_payload(loan_service.get_loan(loan_id))


@loans_bp.post("/<int:loan_id>/return-all")
@json_errors
def return_all_route(loan_id: int):
    loan = loan_service.return_all(loan_id)
    return _loan_payload(loan)


@loans_bp.post("/<int:loan_id>/sale")
@json_errors
def convert_to_sale_route(loan_id: int):
    """
    Request body:
    {
        "unit_prices": {"<product_id>": int, ...},   // optional
        "installment_plan": {"count": 1..12, "first_due_date": "YYYY-MM-DD"}
    }
    """
    data = request.get_json(silent=True) or {}
    sale = loan_service.convert_to_sale(loan_id, data.get("unit_prices"), data.get("installment_plan"))
    return sale_payload(sale), 201
