# Overview: Pytest coverage for installment schedules and payments.

from datetime import date

import pytest

from loja.services import installment_service, sale_service
from loja.services.errors import AlreadyPaidError, NotFoundError
from loja.services.installment_service import InstallmentPlan, build_schedule
from loja.validation import ValidationError
from conftest import line


class TestBuildSchedule:
    def test_even_split_monthly(self):
        """120.00 in 3 from 2024-01-01 -> 40.00 on Jan 1, Feb 1, Mar 1."""
        assert build_schedule(12000, 3, date(2024, 1, 1)) == [
            (date(2024, 1, 1), 4000),
            (date(2024, 2, 1), 4000),
            (date(2024, 3, 1), 4000),
        ]

    def test_uneven_split_is_not_reconciled(self):
        schedule = build_schedule(10000, 3, date(2024, 1, 1))
        assert [v for _, v in schedule] == [3333, 3333, 3333]

    def test_half_cent_rounds_up(self):
        assert [v for _, v in build_schedule(5, 2, date(2024, 1, 1))] == [3, 3]

    def test_month_end_clamped(self):
        dues = [d for d, _ in build_schedule(300, 3, date(2024, 1, 31))]
        assert dues == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    @pytest.mark.parametrize("count", [0, 13, -1])
    def test_count_out_of_range(self, count):
        with pytest.raises(ValidationError):
            build_schedule(1000, count, date(2024, 1, 1))


class TestInstallmentPlan:
    def test_from_payload(self):
        plan = InstallmentPlan.from_payload({"count": "3", "first_due_date": "2024-01-01"})
        assert plan == InstallmentPlan(3, date(2024, 1, 1))

    def test_missing_fields(self):
        with pytest.raises(ValidationError):
            InstallmentPlan.from_payload({"count": 3})
        with pytest.raises(ValidationError):
            InstallmentPlan.from_payload({"first_due_date": "2024-01-01"})


class TestMarkPaid:
    @pytest.fixture
    def sale(self, db_session, customer, make_product):
        p = make_product(stock=5, price_cents=4000)
        return sale_service.create_direct_sale(
            customer.id, [line(p, 3)], {"count": 3, "first_due_date": "2024-01-01"}
        )

    def test_sale_schedule(self, sale):
        assert [(i.due_date, i.value_cents, i.status) for i in sale.installments] == [
            (date(2024, 1, 1), 4000, "PENDING"),
            (date(2024, 2, 1), 4000, "PENDING"),
            (date(2024, 3, 1), 4000, "PENDING"),
        ]
        assert all(i.payment_date is None for i in sale.installments)

    def test_pay_once(self, sale):
        target = sale.installments[1]

        paid = installment_service.mark_paid(target.id, date(2024, 2, 3))
        assert paid.status == "PAID"
        assert paid.payment_date == date(2024, 2, 3)

        with pytest.raises(AlreadyPaidError):
            installment_service.mark_paid(target.id, date(2024, 2, 4))

        reloaded = sale_service.get_sale(sale.id).installments[1]
        assert reloaded.payment_date == date(2024, 2, 3)

    def test_payment_date_defaults_to_today(self, sale):
        from loja.time_utils import today
        paid = installment_service.mark_paid(sale.installments[0].id)
        assert paid.payment_date == today()

    def test_payment_date_string_is_parsed(self, sale):
        first, second = sale.installments[0], sale.installments[1]
        paid = installment_service.mark_paid(first.id, payment_date="2024-05-01")
        assert paid.payment_date == date(2024, 5, 1)

        with pytest.raises(ValidationError):
            installment_service.mark_paid(second.id, payment_date="2024-13-01")
        assert sale_service.get_sale(sale.id).installments[1].status == "PENDING"

    def test_unknown_or_foreign_installment(self, sale):
        with pytest.raises(NotFoundError):
            installment_service.mark_paid(424242)
        with pytest.raises(NotFoundError):
            installment_service.mark_paid(sale.installments[0].id, sale_id=sale.id + 1)

    def test_late_and_upcoming(self, sale):
        today = date(2024, 1, 28)
        late = installment_service.list_late_installments(today)
        upcoming = installment_service.list_upcoming_installments(today, days=7)

        assert [i.due_date for i in late] == [date(2024, 1, 1)]
        assert [i.due_date for i in upcoming] == [date(2024, 2, 1)]
