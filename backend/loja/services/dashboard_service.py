# Overview: Service-layer read model for the home dashboard; installments due, cash in and out, deliveries awaited.

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Installment, Purchase, PurchaseLine, INSTALLMENT_PAID
from ..time_utils import month_bounds, today as server_today
from .installment_service import list_late_installments, list_upcoming_installments


def _installment_row(installment: Installment) -> dict:
    row = installment.to_dict()
    sale = installment.sale
    row["customer_id"] = sale.customer_id if sale else None
    row["customer_name"] = sale.customer.name if sale and sale.customer else None
    return row


def month_inflow_cents(today: date) -> int:
    """Sum of installments paid during today's calendar month."""
    start, end = month_bounds(today)
    total = (
        db.session.query(func.coalesce(func.sum(Installment.value_cents), 0))
        .filter(
            Installment.status == INSTALLMENT_PAID,
            Installment.payment_date >= start.date(),
            Installment.payment_date < end.date(),
        )
        .scalar()
    )
    return int(total or 0)


def month_outflow_cents(today: date) -> int:
    """Ordered value (quantity x unit price) of purchases created during today's calendar month."""
    start, end = month_bounds(today)
    total = (
        db.session.query(
            func.coalesce(func.sum(PurchaseLine.ordered_quantity * PurchaseLine.unit_price_cents), 0)
        )
        .join(Purchase, Purchase.id == PurchaseLine.purchase_id)
        .filter(Purchase.created_at >= start, Purchase.created_at < end)
        .scalar()
    )
    return int(total or 0)


def pending_purchase_lines() -> list[dict]:
    """Purchase lines still awaiting delivery, oldest purchase first."""
    lines = (
        db.session.query(PurchaseLine)
        .join(Purchase, Purchase.id == PurchaseLine.purchase_id)
        .filter(PurchaseLine.received_quantity < PurchaseLine.ordered_quantity)
        .order_by(Purchase.created_at.asc(), PurchaseLine.id.asc())
        .all()
    )
    rows = []
    for line in lines:
        row = line.to_dict()
        row["supplier_id"] = line.purchase.supplier_id
        row["supplier_name"] = line.purchase.supplier.name if line.purchase.supplier else None
        rows.append(row)
    return rows


def get_dashboard(today: date | None = None) -> dict:
    today = today or server_today()
    days = current_app.config.get("UPCOMING_INSTALLMENT_DAYS", 7)
    return {
        "today": today.isoformat(),
        "late_installments": [_installment_row(i) for i in list_late_installments(today)],
        "upcoming_installments": [_installment_row(i) for i in list_upcoming_installments(today, days=days)],
        "month_inflow_cents": month_inflow_cents(today),
        "pending_purchase_lines": pending_purchase_lines(),
        "month_outflow_cents": month_outflow_cents(today),
    }
