# Overview: Service-layer operations for installment billing; schedules and payments.

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from flask import current_app

from ..extensions import db
from ..models import Installment, Sale, INSTALLMENT_PAID, INSTALLMENT_PENDING
from ..time_utils import add_months, day_window, today as server_today
from ..validation import ValidationError, parse_date, parse_int
from .concurrency import lock_for_update, run_atomic
from .errors import AlreadyPaidError, NotFoundError

MAX_INSTALLMENTS = 12


@dataclass(frozen=True)
class InstallmentPlan:
    """How a sale is billed: `count` monthly installments from first_due_date."""
    count: int
    first_due_date: date

    @classmethod
    def from_payload(cls, payload) -> "InstallmentPlan":
        if isinstance(payload, InstallmentPlan):
            return payload
        if not isinstance(payload, dict):
            raise ValidationError("installment_plan must be an object")
        if payload.get("count") is None:
            raise ValidationError("installment_plan.count is required")
        if payload.get("first_due_date") is None:
            raise ValidationError("installment_plan.first_due_date is required")
        return cls(
            count=parse_int(payload["count"], "installment_plan.count"),
            first_due_date=parse_date(payload["first_due_date"], "installment_plan.first_due_date"),
        )


def build_schedule(
    total_cents: int,
    count: int,
    first_due_date: date,
    *,
    max_count: int = MAX_INSTALLMENTS,
) -> list[tuple[date, int]]:
    """
    Equal-split monthly schedule: [(due_date, value_cents), ...].

    Every installment is total/count rounded half-up to the cent. The
    remainder is not redistributed, so the values may not add up to the
    total exactly. Due dates are first_due_date + i months (day clamped to
    the end of shorter months).
    """
    if count < 1 or count > max_count:
        raise ValidationError(f"Installment count must be between 1 and {max_count}")
    if total_cents < 0:
        raise ValidationError("total_cents must be >= 0")

    value_cents = (total_cents + count // 2) // count
    return [(add_months(first_due_date, i), value_cents) for i in range(count)]


def schedule_for_sale(sale: Sale, total_cents: int, plan: InstallmentPlan) -> list[Installment]:
    """Create the installment rows of a new sale. Caller owns the transaction."""
    max_count = current_app.config.get("MAX_INSTALLMENTS", MAX_INSTALLMENTS)
    installments = [
        Installment(sale=sale, due_date=due, value_cents=value, status=INSTALLMENT_PENDING)
        for due, value in build_schedule(total_cents, plan.count, plan.first_due_date, max_count=max_count)
    ]
    db.session.add_all(installments)
    return installments


def mark_paid(installment_id: int, payment_date: date | str | None = None, sale_id: int | None = None) -> Installment:
    """
    PENDING -> PAID, exactly once.

    payment_date defaults to today. When sale_id is given the installment
    must belong to that sale.
    """
    paid_on = parse_date(payment_date, "payment_date") if payment_date is not None else server_today()

    def _op():
        query = db.session.query(Installment).filter_by(id=installment_id)
        if sale_id is not None:
            query = query.filter_by(sale_id=sale_id)
        installment = lock_for_update(query).populate_existing().first()
        if not installment:
            raise NotFoundError("Installment not found", details={"installment_id": installment_id})
        if installment.status == INSTALLMENT_PAID:
            raise AlreadyPaidError(
                "Installment already paid",
                details={
                    "installment_id": installment.id,
                    "payment_date": installment.payment_date.isoformat() if installment.payment_date else None,
                },
            )

        installment.status = INSTALLMENT_PAID
        installment.payment_date = paid_on
        db.session.flush()
        current_app.logger.info(
            "installment paid installment_id=%s sale_id=%s value_cents=%s",
            installment.id, installment.sale_id, installment.value_cents,
        )
        return installment

    return run_atomic(_op)


def list_late_installments(today: date | None = None) -> list[Installment]:
    """PENDING installments whose due date has passed."""
    today = today or server_today()
    return (
        db.session.query(Installment)
        .filter(Installment.status == INSTALLMENT_PENDING, Installment.due_date < today)
        .order_by(Installment.due_date.asc(), Installment.id.asc())
        .all()
    )


def list_upcoming_installments(today: date | None = None, days: int = 7) -> list[Installment]:
    """PENDING installments due in [today, today + days)."""
    start, end = day_window(today or server_today(), days)
    return (
        db.session.query(Installment)
        .filter(
            Installment.status == INSTALLMENT_PENDING,
            Installment.due_date >= start,
            Installment.due_date < end,
        )
        .order_by(Installment.due_date.asc(), Installment.id.asc())
        .all()
    )
