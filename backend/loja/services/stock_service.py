# Overview: Service-layer operations for product stock; the only writer of Product.stock.

# backend/loja/services/stock_service.py

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product
from ..validation import LineInput
from .concurrency import lock_for_update
from .errors import NotFoundError, OutOfStockError
"""
Loja Stock Invariants (authoritative)

Stock model:
- Product.stock is a stored, mutable quantity shared by every workflow.
- Purchases credit it on receive; loans debit it on lend and credit it on
  return or deletion; direct sales debit it on creation and credit it on
  deletion. Loan-originated sales never touch it.

Business invariants:
- Stock may never go negative. A rejected adjustment leaves stock unchanged.
- A multi-line debit (new loan, new direct sale) is all-or-nothing: every
  line is checked against one locked snapshot before any row is written, and
  the failure names every short product.

Transactions:
- Nothing here commits. Callers run inside concurrency.atomic() so the stock
  change and the line change that triggered it commit together.
"""


def _locked_product(product_id: int) -> Product:
    product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).populate_existing().first()
    if not product:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def adjust_stock(product_id: int, delta: int) -> int:
    """
    stock += delta for one product. Returns the new stock.

    Raises OutOfStockError (stock unchanged) if the result would be negative.
    """
    product = _locked_product(product_id)
    new_stock = product.stock + delta
    if new_stock < 0:
        raise OutOfStockError(
            "Insufficient stock",
            details={"items": [{
                "product_id": product_id,
                "requested_quantity": -delta,
                "on_hand": product.stock,
            }]},
        )

    product.stock = new_stock
    db.session.flush()
    current_app.logger.info("stock adjusted product_id=%s delta=%+d stock=%s", product_id, delta, new_stock)
    return new_stock


def snapshot_stock(product_ids) -> dict[int, int]:
    """
    One locked read of every requested product: {product_id: stock}.

    Raises NotFoundError listing the ids that do not exist.
    """
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    rows = lock_for_update(
        db.session.query(Product.id, Product.stock).filter(Product.id.in_(ids))
    ).all()
    snapshot = {row.id: row.stock for row in rows}
    missing = [pid for pid in ids if pid not in snapshot]
    if missing:
        raise NotFoundError("Product not found", details={"product_ids": missing})
    return snapshot


def _aggregate(debits) -> dict[int, int]:
    totals: dict[int, int] = {}
    for product_id, qty in debits:
        totals[product_id] = totals.get(product_id, 0) + qty
    return totals


def check_debits(snapshot: dict[int, int], debits) -> None:
    """
    Validate every (product_id, quantity) debit against the snapshot.

    Collects all shortfalls into a single OutOfStockError.
    """
    insufficient = []
    for product_id, qty in _aggregate(debits).items():
        on_hand = snapshot.get(product_id, 0)
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise OutOfStockError(
            "Insufficient stock for one or more products",
            details={"items": insufficient},
        )


def apply_debits(debits) -> None:
    """Apply -quantity for every debit. Only call after check_debits passed."""
    for product_id, qty in _aggregate(debits).items():
        adjust_stock(product_id, -qty)


def debit_lines(lines: list[LineInput]) -> None:
    """Snapshot, check and debit a whole line set (all-or-nothing)."""
    debits = [(line.product_id, line.quantity) for line in lines]
    snapshot = snapshot_stock(pid for pid, _ in debits)
    check_debits(snapshot, debits)
    apply_debits(debits)
