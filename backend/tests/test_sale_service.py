# Overview: Pytest coverage for direct and loan-originated sales.

from datetime import date

import pytest

from loja.models import Installment, Sale, SaleLine
from loja.services import installment_service, loan_service, sale_service
from loja.services.errors import HasPaidInstallmentsError, NotFoundError, OutOfStockError
from loja.services.status_service import loan_status, sale_status
from loja.validation import ValidationError
from conftest import FAR_FUTURE, line, stock_of


class TestDirectSale:
    def test_sell_out_then_reject(self, db_session, customer, make_product, plan):
        """Stock 10: selling 10 empties it; selling 1 more fails and leaves 0."""
        p = make_product(stock=10)

        sale_service.create_direct_sale(customer.id, [line(p, 10)], plan)
        assert stock_of(p.id) == 0

        with pytest.raises(OutOfStockError):
            sale_service.create_direct_sale(customer.id, [line(p, 1)], plan)
        assert stock_of(p.id) == 0
        assert db_session.query(Sale).count() == 1

    def test_lines_and_totals(self, db_session, customer, make_product, plan):
        a = make_product(stock=5, price_cents=1500)
        b = make_product(stock=5, price_cents=250)

        sale = sale_service.create_direct_sale(customer.id, [line(a, 2), line(b, 4, 300)], plan)

        assert sorted((l.product_id, l.line_total_cents) for l in sale.lines) == sorted([(a.id, 3000), (b.id, 1200)])
        assert sale.total_cents == 4200
        assert sale.is_direct
        assert [i.value_cents for i in sale.installments] == [4200]

    def test_all_or_nothing(self, db_session, customer, make_product, plan):
        a = make_product(stock=5)
        b = make_product(stock=0)

        with pytest.raises(OutOfStockError):
            sale_service.create_direct_sale(customer.id, [line(a, 1), line(b, 1)], plan)

        assert stock_of(a.id) == 5
        assert db_session.query(SaleLine).count() == 0
        assert db_session.query(Installment).count() == 0

    def test_invalid_installment_count_leaves_stock(self, db_session, customer, make_product):
        a = make_product(stock=5)
        with pytest.raises(ValidationError):
            sale_service.create_direct_sale(customer.id, [line(a, 1)], {"count": 13, "first_due_date": "2024-01-01"})
        with pytest.raises(ValidationError):
            sale_service.create_direct_sale(customer.id, [line(a, 1)], {"count": 0, "first_due_date": "2024-01-01"})
        with pytest.raises(ValidationError):
            sale_service.create_direct_sale(customer.id, [line(a, 1)], None)
        assert stock_of(a.id) == 5
        assert db_session.query(Sale).count() == 0

    def test_unknown_customer(self, db_session, make_product, plan):
        a = make_product(stock=5)
        with pytest.raises(NotFoundError):
            sale_service.create_direct_sale(424242, [line(a, 1)], plan)
        assert stock_of(a.id) == 5


class TestDeleteSale:
    def test_direct_sale_restocks(self, db_session, customer, make_product, plan):
        a = make_product(stock=5)
        sale = sale_service.create_direct_sale(customer.id, [line(a, 3)], plan)
        assert stock_of(a.id) == 2

        sale_service.delete_sale(sale.id)

        assert stock_of(a.id) == 5
        assert db_session.query(Sale).count() == 0
        assert db_session.query(SaleLine).count() == 0
        assert db_session.query(Installment).count() == 0

    def test_paid_installment_blocks_delete(self, db_session, customer, make_product):
        a = make_product(stock=5)
        sale = sale_service.create_direct_sale(
            customer.id, [line(a, 3)], {"count": 2, "first_due_date": "2024-01-10"}
        )
        installment_service.mark_paid(sale.installments[0].id, date(2024, 1, 9))

        with pytest.raises(HasPaidInstallmentsError):
            sale_service.delete_sale(sale.id)
        assert stock_of(a.id) == 2

    def test_loan_sale_delete_reopens_loan_without_restock(self, db_session, customer, make_product, plan):
        a = make_product(stock=10)
        loan = loan_service.create_loan(customer.id, FAR_FUTURE, [line(a, 4)])
        sale = loan_service.convert_to_sale(loan.id, None, plan)
        assert stock_of(a.id) == 6

        sale_service.delete_sale(sale.id)

        assert stock_of(a.id) == 6
        reopened = loan_service.get_loan(loan.id)
        assert reopened.sale_id is None
        assert loan_status(reopened) == "PENDING"

        loan_service.return_line(loan.id, a.id, 4)
        assert stock_of(a.id) == 10


class TestHeaderAndListing:
    def test_update_customer(self, db_session, customer, other_customer, make_product, plan):
        sale = sale_service.create_direct_sale(customer.id, [line(make_product(stock=1), 1)], plan)
        assert sale_service.update_sale(sale.id, other_customer.id).customer_id == other_customer.id

    def test_list_by_status(self, db_session, customer, other_customer, make_product):
        today = date(2024, 3, 15)
        p = make_product(stock=10)
        late = sale_service.create_direct_sale(customer.id, [line(p, 1)], {"count": 2, "first_due_date": "2024-03-01"})
        pending = sale_service.create_direct_sale(other_customer.id, [line(p, 1)], {"count": 1, "first_due_date": "2024-03-15"})
        paid = sale_service.create_direct_sale(customer.id, [line(p, 1)], {"count": 1, "first_due_date": "2024-02-01"})
        installment_service.mark_paid(paid.installments[0].id, date(2024, 2, 1))

        def ids(status, **kw):
            return [s.id for s in sale_service.list_sales(status=status, today=today, **kw)]

        assert ids("LATE") == [late.id]
        assert ids("PENDING") == [pending.id]
        assert ids("PAID") == [paid.id]
        assert ids(None, customer_id=other_customer.id) == [pending.id]

        assert sale_status(sale_service.get_sale(late.id), today=today) == "LATE"
        assert sale_status(sale_service.get_sale(pending.id), today=today) == "PENDING"
        assert sale_status(sale_service.get_sale(paid.id), today=today) == "PAID"
