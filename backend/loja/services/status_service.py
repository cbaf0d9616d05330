# Overview: Derived document status (never stored) and the matching SQL filters for listings.

from __future__ import annotations

from datetime import date

from sqlalchemy import and_, exists, not_, or_

from ..models import (
    Purchase,
    PurchaseLine,
    Loan,
    LoanLine,
    Sale,
    Installment,
    INSTALLMENT_PENDING,
)
from ..time_utils import today as server_today
from ..validation import ValidationError

PURCHASE_PENDING = "PENDING"
PURCHASE_DELIVERED = "DELIVERED"
PURCHASE_STATUSES = (PURCHASE_PENDING, PURCHASE_DELIVERED)

LOAN_PENDING = "PENDING"
LOAN_LATE = "LATE"
LOAN_DONE = "DONE"
LOAN_STATUSES = (LOAN_PENDING, LOAN_LATE, LOAN_DONE)

SALE_PENDING = "PENDING"
SALE_LATE = "LATE"
SALE_PAID = "PAID"
SALE_STATUSES = (SALE_PENDING, SALE_LATE, SALE_PAID)


def normalize_status(value, allowed: tuple[str, ...]) -> str | None:
    if value is None or value == "":
        return None
    status = str(value).strip().upper()
    if status not in allowed:
        raise ValidationError(f"status must be one of: {', '.join(allowed)}")
    return status


# --- pure projections -------------------------------------------------------

def purchase_status(purchase: Purchase) -> str:
    # A purchase with no lines has nothing awaiting delivery
    if all(line.received_quantity == line.ordered_quantity for line in purchase.lines):
        return PURCHASE_DELIVERED
    return PURCHASE_PENDING


def loan_status(loan: Loan, today: date | None = None) -> str:
    if loan.sale is not None:
        return LOAN_DONE
    if all(line.returned_quantity == line.lent_quantity for line in loan.lines):
        return LOAN_DONE
    today = today or server_today()
    if loan.due_date < today:
        return LOAN_LATE
    return LOAN_PENDING


def sale_status(sale: Sale, today: date | None = None) -> str:
    pending = [i for i in sale.installments if i.status == INSTALLMENT_PENDING]
    if not pending:
        return SALE_PAID
    today = today or server_today()
    if any(i.due_date < today for i in pending):
        return SALE_LATE
    return SALE_PENDING


# --- SQL equivalents ----------------------------------------------------------

def _purchase_has_pending_line():
    return exists().where(
        PurchaseLine.purchase_id == Purchase.id,
        PurchaseLine.received_quantity < PurchaseLine.ordered_quantity,
    )


def _loan_has_sale():
    return exists().where(Sale.loan_id == Loan.id)


def _loan_has_outstanding_line():
    return exists().where(
        LoanLine.loan_id == Loan.id,
        LoanLine.returned_quantity < LoanLine.lent_quantity,
    )


def _sale_has_pending_installment(due_before: date | None = None):
    conditions = [
        Installment.sale_id == Sale.id,
        Installment.status == INSTALLMENT_PENDING,
    ]
    if due_before is not None:
        conditions.append(Installment.due_date < due_before)
    return exists().where(*conditions)


def purchase_status_clause(status: str):
    if status == PURCHASE_DELIVERED:
        return not_(_purchase_has_pending_line())
    return _purchase_has_pending_line()


def loan_status_clause(status: str, today: date | None = None):
    today = today or server_today()
    done = or_(_loan_has_sale(), not_(_loan_has_outstanding_line()))
    if status == LOAN_DONE:
        return done
    if status == LOAN_LATE:
        return and_(not_(done), Loan.due_date < today)
    return and_(not_(done), Loan.due_date >= today)


def sale_status_clause(status: str, today: date | None = None):
    today = today or server_today()
    if status == SALE_PAID:
        return not_(_sale_has_pending_installment())
    if status == SALE_LATE:
        return _sale_has_pending_installment(due_before=today)
    return and_(
        _sale_has_pending_installment(),
        not_(_sale_has_pending_installment(due_before=today)),
    )
