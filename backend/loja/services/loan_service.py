# Overview: Service-layer operations for loans; lending stock out, returns, and conversion to a sale.

# backend/loja/services/loan_service.py

from __future__ import annotations

from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Customer, Loan, LoanLine, Sale
from ..validation import ValidationError, parse_date, parse_int, parse_lines, parse_quantity
from .concurrency import lock_for_update, run_atomic
from .deletion_guard import assert_loan_deletable
from .errors import ConvertedToSaleError, ExceedsRemainingError, NothingOutstandingError, NotFoundError
from .stock_service import adjust_stock, debit_lines
from .status_service import LOAN_STATUSES, loan_status_clause, normalize_status
"""
Loan lifecycle:
- PENDING: some line still has goods out (lent - returned > 0) and no sale
  was made from the loan.
- DONE: every line fully returned, or the remainder was converted into a
  sale. DONE loans accept no returns.

Stock rules:
- Creating a loan debits every line from Product.stock, all-or-nothing.
- Each return credits exactly the quantity returned.
- Deleting an untouched loan (no returns, no sale) credits every lent
  quantity back.
- Converting to a sale leaves stock alone: the goods already left.
"""


def _require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def _locked_loan(loan_id: int) -> Loan:
    loan = lock_for_update(db.session.query(Loan).filter_by(id=loan_id)).first()
    if not loan:
        raise NotFoundError("Loan not found", details={"loan_id": loan_id})
    return loan


def _linked_sale_id(loan_id: int) -> int | None:
    return db.session.query(Sale.id).filter(Sale.loan_id == loan_id).scalar()


def _assert_accepts_returns(loan: Loan) -> None:
    sale_id = _linked_sale_id(loan.id)
    if sale_id is not None:
        raise ConvertedToSaleError(
            "Loan was converted to a sale and accepts no returns",
            details={"loan_id": loan.id, "sale_id": sale_id},
        )


def _locked_lines(loan_id: int) -> list[LoanLine]:
    return lock_for_update(
        db.session.query(LoanLine).filter_by(loan_id=loan_id).order_by(LoanLine.id)
    ).populate_existing().all()


def create_loan(customer_id, due_date, lines) -> Loan:
    """
    Lend goods to a customer.

    Every line is checked against current stock before anything is written;
    if any product is short the whole loan is rejected and stock is unchanged.
    """
    customer_id = parse_int(customer_id, "customer_id")
    due = parse_date(due_date, "due_date")
    line_inputs = parse_lines(lines)

    def _op():
        _require_customer(customer_id)
        debit_lines(line_inputs)

        loan = Loan(customer_id=customer_id, due_date=due)
        db.session.add(loan)
        for line in line_inputs:
            db.session.add(LoanLine(
                loan=loan,
                product_id=line.product_id,
                lent_quantity=line.quantity,
                returned_quantity=0,
                unit_price_cents=line.unit_price_cents,
            ))
        db.session.flush()
        current_app.logger.info("loan created loan_id=%s customer_id=%s lines=%s", loan.id, customer_id, len(line_inputs))
        return loan

    return run_atomic(_op)


def return_line(loan_id: int, product_id, quantity) -> LoanLine:
    """returned_quantity += quantity and Product.stock += quantity, atomically."""
    product_id = parse_int(product_id, "product_id")
    quantity = parse_quantity(quantity)

    def _op():
        loan = _locked_loan(loan_id)
        _assert_accepts_returns(loan)

        line = lock_for_update(
            db.session.query(LoanLine).filter_by(loan_id=loan_id, product_id=product_id)
        ).populate_existing().first()
        if not line:
            raise NotFoundError("Loan line not found", details={"loan_id": loan_id, "product_id": product_id})

        remaining = line.remaining_quantity
        if quantity > remaining:
            raise ExceedsRemainingError(
                "Quantity exceeds what is still out on loan",
                details={
                    "loan_id": loan_id,
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "remaining_quantity": remaining,
                },
            )

        line.returned_quantity = line.returned_quantity + quantity
        adjust_stock(product_id, quantity)
        db.session.flush()
        return line

    return run_atomic(_op)


def return_all(loan_id: int) -> Loan:
    """Return the full remainder of every line in one transaction."""
    def _op():
        loan = _locked_loan(loan_id)
        _assert_accepts_returns(loan)

        outstanding = [line for line in _locked_lines(loan_id) if line.remaining_quantity > 0]
        if not outstanding:
            raise NothingOutstandingError("Nothing is outstanding on this loan", details={"loan_id": loan_id})

        for line in outstanding:
            remaining = line.remaining_quantity
            line.returned_quantity = line.lent_quantity
            adjust_stock(line.product_id, remaining)
        db.session.flush()
        current_app.logger.info("loan fully returned loan_id=%s lines=%s", loan_id, len(outstanding))
        return loan

    return run_atomic(_op)


def delete_loan(loan_id: int) -> None:
    """Delete an untouched loan and put every lent quantity back in stock."""
    def _op():
        loan = _locked_loan(loan_id)
        assert_loan_deletable(loan.id)

        for line in _locked_lines(loan_id):
            adjust_stock(line.product_id, line.lent_quantity)
        db.session.delete(loan)
        db.session.flush()
        current_app.logger.info("loan deleted loan_id=%s", loan_id)

    run_atomic(_op)


def convert_to_sale(loan_id: int, unit_prices=None, installment_plan=None) -> Sale:
    """Sell everything still out on the loan. See sale_service.create_sale_from_loan."""
    from .sale_service import create_sale_from_loan
    return create_sale_from_loan(loan_id, unit_prices, installment_plan)


def update_loan(loan_id: int, customer_id=None, due_date=None) -> Loan:
    """Header edit: customer and/or due date. Lines are never edited here."""
    if customer_id is None and due_date is None:
        raise ValidationError("Nothing to update")
    new_customer_id = parse_int(customer_id, "customer_id") if customer_id is not None else None
    new_due = parse_date(due_date, "due_date") if due_date is not None else None

    def _op():
        loan = _locked_loan(loan_id)
        if new_customer_id is not None:
            _require_customer(new_customer_id)
            loan.customer_id = new_customer_id
        if new_due is not None:
            loan.due_date = new_due
        db.session.flush()
        return loan

    return run_atomic(_op)


def get_loan(loan_id: int) -> Loan:
    loan = db.session.get(Loan, loan_id)
    if not loan:
        raise NotFoundError("Loan not found", details={"loan_id": loan_id})
    return loan


def list_loans(status: str | None = None, customer_id: int | None = None, today: date | None = None) -> list[Loan]:
    status = normalize_status(status, LOAN_STATUSES)
    query = db.session.query(Loan)
    if customer_id is not None:
        query = query.filter(Loan.customer_id == customer_id)
    if status is not None:
        query = query.filter(loan_status_clause(status, today))
    return query.order_by(Loan.due_date.asc(), Loan.id.asc()).all()
