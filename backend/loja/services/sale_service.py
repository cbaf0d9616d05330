# Overview: Service-layer operations for sales; direct and loan-originated sales with installment billing.

# backend/loja/services/sale_service.py

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Customer, Loan, LoanLine, Sale, SaleLine
from ..validation import ValidationError, parse_int, parse_lines, parse_unit_prices
from .concurrency import lock_for_update, run_atomic
from .deletion_guard import assert_sale_deletable
from .errors import ConvertedToSaleError, NothingOutstandingError, NotFoundError
from .installment_service import InstallmentPlan, schedule_for_sale
from .stock_service import adjust_stock, debit_lines
from .status_service import SALE_STATUSES, normalize_status, sale_status_clause
"""
Sale origins:
- Direct: stock is debited for every line when the sale is created
  (all-or-nothing) and credited back if the sale is deleted.
- From a loan: the sale bills whatever is still out on the loan. Those goods
  left stock when the loan was created, so neither creating nor deleting the
  sale touches stock. Deleting the sale clears the link and the loan accepts
  returns again.

Either way the sale total is billed through an equal-split monthly
installment schedule, and a sale with any PAID installment cannot be deleted.
"""


def _require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def _locked_sale(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def _add_lines(sale: Sale, priced_lines) -> int:
    """priced_lines: [(product_id, quantity, unit_price_cents)]. Returns the sale total."""
    total = 0
    for product_id, quantity, unit_price_cents in priced_lines:
        line_total = quantity * unit_price_cents
        db.session.add(SaleLine(
            sale=sale,
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            line_total_cents=line_total,
        ))
        total += line_total
    return total


def create_direct_sale(customer_id, lines, installment_plan) -> Sale:
    """
    Sell goods straight from stock.

    Every line is checked against current stock before anything is written;
    a shortfall on any product rejects the whole sale.
    """
    customer_id = parse_int(customer_id, "customer_id")
    line_inputs = parse_lines(lines)
    plan = InstallmentPlan.from_payload(installment_plan)

    def _op():
        _require_customer(customer_id)
        debit_lines(line_inputs)

        sale = Sale(customer_id=customer_id, loan_id=None)
        db.session.add(sale)
        total = _add_lines(sale, [(line.product_id, line.quantity, line.unit_price_cents) for line in line_inputs])
        schedule_for_sale(sale, total, plan)
        db.session.flush()
        current_app.logger.info(
            "direct sale created sale_id=%s customer_id=%s total_cents=%s installments=%s",
            sale.id, customer_id, total, plan.count,
        )
        return sale

    return run_atomic(_op)


def create_sale_from_loan(loan_id: int, unit_prices=None, installment_plan=None) -> Sale:
    """
    Bill the outstanding remainder of a loan as a sale.

    Sale lines are the per-line remainders (lent - returned) priced from
    unit_prices ({product_id: cents}); a product missing from the mapping
    keeps the loan line's price. No stock change.
    """
    prices = parse_unit_prices(unit_prices)
    plan = InstallmentPlan.from_payload(installment_plan)

    def _op():
        loan = lock_for_update(db.session.query(Loan).filter_by(id=loan_id)).first()
        if not loan:
            raise NotFoundError("Loan not found", details={"loan_id": loan_id})

        existing = db.session.query(Sale.id).filter(Sale.loan_id == loan.id).scalar()
        if existing is not None:
            raise ConvertedToSaleError(
                "Loan was already converted to a sale",
                details={"loan_id": loan.id, "sale_id": existing},
            )

        lines = lock_for_update(
            db.session.query(LoanLine).filter_by(loan_id=loan.id).order_by(LoanLine.id)
        ).populate_existing().all()

        unknown = sorted(set(prices) - {line.product_id for line in lines})
        if unknown:
            raise ValidationError(f"unit_prices references products not on the loan: {unknown}")

        outstanding = [line for line in lines if line.remaining_quantity > 0]
        if not outstanding:
            raise NothingOutstandingError("Nothing is outstanding on this loan", details={"loan_id": loan.id})

        sale = Sale(customer_id=loan.customer_id, loan_id=loan.id)
        db.session.add(sale)
        total = _add_lines(sale, [
            (line.product_id, line.remaining_quantity, prices.get(line.product_id, line.unit_price_cents))
            for line in outstanding
        ])
        schedule_for_sale(sale, total, plan)
        db.session.flush()
        current_app.logger.info(
            "loan converted to sale loan_id=%s sale_id=%s total_cents=%s installments=%s",
            loan.id, sale.id, total, plan.count,
        )
        return sale

    return run_atomic(_op)


def delete_sale(sale_id: int) -> None:
    """
    Delete a sale with no paid installments.

    Direct sales put their quantities back in stock. Loan-originated sales
    only release the loan.
    """
    def _op():
        sale = _locked_sale(sale_id)
        assert_sale_deletable(sale.id)

        if sale.is_direct:
            for line in sale.lines:
                adjust_stock(line.product_id, line.quantity)

        loan_id = sale.loan_id
        db.session.delete(sale)
        db.session.flush()
        current_app.logger.info("sale deleted sale_id=%s loan_id=%s", sale_id, loan_id)

    run_atomic(_op)


def update_sale(sale_id: int, customer_id) -> Sale:
    """Header edit: the customer is the only mutable field."""
    customer_id = parse_int(customer_id, "customer_id")

    def _op():
        sale = _locked_sale(sale_id)
        _require_customer(customer_id)
        sale.customer_id = customer_id
        db.session.flush()
        return sale

    return run_atomic(_op)


def get_sale(sale_id: int) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise NotFoundError("Sale not found", details={"sale_id": sale_id})
    return sale


def list_sales(status: str | None = None, customer_id: int | None = None, today: date | None = None) -> list[Sale]:
    status = normalize_status(status, SALE_STATUSES)
    query = db.session.query(Sale)
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    if status is not None:
        query = query.filter(sale_status_clause(status, today))
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
