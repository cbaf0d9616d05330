# Overview: Service-layer operations for purchases; ordering and incremental receiving into stock.

# backend/loja/services/purchase_service.py

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, Purchase, PurchaseLine, Supplier
from ..validation import parse_int, parse_lines, parse_quantity
from .concurrency import lock_for_update, run_atomic
from .deletion_guard import assert_purchase_deletable, assert_purchase_line_deletable
from .errors import ExceedsRemainingError, NotFoundError
from .stock_service import adjust_stock
from .status_service import PURCHASE_STATUSES, normalize_status, purchase_status_clause
"""
Purchase receiving rules:
- A purchase is created once with its full line set (received = 0 on every
  line). Creation does not touch stock.
- Receiving credits Product.stock by exactly the quantity received, in the
  same transaction as the received_quantity increment, and never beyond the
  line's remainder (ordered - received).
- Received goods are never reversed: a line (or purchase) with anything
  received cannot be deleted.
"""


def _require_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def _require_products(product_ids) -> None:
    ids = set(product_ids)
    found = {pid for (pid,) in db.session.query(Product.id).filter(Product.id.in_(ids)).all()}
    missing = sorted(ids - found)
    if missing:
        raise NotFoundError("Product not found", details={"product_ids": missing})


def _locked_purchase(purchase_id: int) -> Purchase:
    purchase = lock_for_update(db.session.query(Purchase).filter_by(id=purchase_id)).first()
    if not purchase:
        raise NotFoundError("Purchase not found", details={"purchase_id": purchase_id})
    return purchase


def _locked_line(purchase_id: int, product_id: int) -> PurchaseLine:
    line = lock_for_update(
        db.session.query(PurchaseLine).filter_by(purchase_id=purchase_id, product_id=product_id)
    ).populate_existing().first()
    if not line:
        raise NotFoundError(
            "Purchase line not found",
            details={"purchase_id": purchase_id, "product_id": product_id},
        )
    return line


def create_purchase(supplier_id, lines) -> Purchase:
    supplier_id = parse_int(supplier_id, "supplier_id")
    line_inputs = parse_lines(lines)

    def _op():
        _require_supplier(supplier_id)
        _require_products(line.product_id for line in line_inputs)

        purchase = Purchase(supplier_id=supplier_id)
        db.session.add(purchase)
        for line in line_inputs:
            db.session.add(PurchaseLine(
                purchase=purchase,
                product_id=line.product_id,
                ordered_quantity=line.quantity,
                received_quantity=0,
                unit_price_cents=line.unit_price_cents,
            ))
        db.session.flush()
        current_app.logger.info("purchase created purchase_id=%s lines=%s", purchase.id, len(line_inputs))
        return purchase

    return run_atomic(_op)


def receive_line(purchase_id: int, product_id, quantity) -> PurchaseLine:
    """
    Receive `quantity` more units of one line.

    received_quantity += quantity and Product.stock += quantity, atomically.
    """
    product_id = parse_int(product_id, "product_id")
    quantity = parse_quantity(quantity)

    def _op():
        line = _locked_line(purchase_id, product_id)
        remaining = line.remaining_quantity
        if quantity > remaining:
            raise ExceedsRemainingError(
                "Quantity exceeds what is still awaiting delivery",
                details={
                    "purchase_id": purchase_id,
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "remaining_quantity": remaining,
                },
            )

        line.received_quantity = line.received_quantity + quantity
        adjust_stock(product_id, quantity)
        db.session.flush()
        return line

    return run_atomic(_op)


def delete_line(purchase_id: int, product_id) -> None:
    product_id = parse_int(product_id, "product_id")

    def _op():
        line = _locked_line(purchase_id, product_id)
        assert_purchase_line_deletable(line)
        db.session.delete(line)
        db.session.flush()
        current_app.logger.info("purchase line deleted purchase_id=%s product_id=%s", purchase_id, product_id)

    run_atomic(_op)


def delete_purchase(purchase_id: int) -> None:
    def _op():
        purchase = _locked_purchase(purchase_id)
        assert_purchase_deletable(purchase.id)
        db.session.delete(purchase)
        db.session.flush()
        current_app.logger.info("purchase deleted purchase_id=%s", purchase_id)

    run_atomic(_op)


def update_purchase(purchase_id: int, supplier_id) -> Purchase:
    """Header edit: the supplier is the only mutable field."""
    supplier_id = parse_int(supplier_id, "supplier_id")

    def _op():
        purchase = _locked_purchase(purchase_id)
        _require_supplier(supplier_id)
        purchase.supplier_id = supplier_id
        db.session.flush()
        return purchase

    return run_atomic(_op)


def get_purchase(purchase_id: int) -> Purchase:
    purchase = db.session.get(Purchase, purchase_id)
    if not purchase:
        raise NotFoundError("Purchase not found", details={"purchase_id": purchase_id})
    return purchase


def list_purchases(status: str | None = None, supplier_id: int | None = None) -> list[Purchase]:
    status = normalize_status(status, PURCHASE_STATUSES)
    query = db.session.query(Purchase)
    if supplier_id is not None:
        query = query.filter(Purchase.supplier_id == supplier_id)
    if status is not None:
        query = query.filter(purchase_status_clause(status))
    return query.order_by(Purchase.created_at.desc(), Purchase.id.desc()).all()
