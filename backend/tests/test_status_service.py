# Overview: Pytest coverage for derived purchase, loan and sale status.

from datetime import date
from types import SimpleNamespace as NS

import pytest

from loja.services.status_service import (
    loan_status,
    normalize_status,
    purchase_status,
    sale_status,
    LOAN_STATUSES,
)
from loja.validation import ValidationError

TODAY = date(2024, 5, 10)


def _purchase(*pairs):
    return NS(lines=[NS(ordered_quantity=o, received_quantity=r) for o, r in pairs])


def _loan(*pairs, due=TODAY, sale=None):
    return NS(lines=[NS(lent_quantity=l, returned_quantity=r) for l, r in pairs], due_date=due, sale=sale)


def _sale(*installments):
    return NS(installments=[NS(status=s, due_date=d) for s, d in installments])


class TestPurchaseStatus:
    def test_pending_until_every_line_received(self):
        assert purchase_status(_purchase((5, 5), (3, 2))) == "PENDING"
        assert purchase_status(_purchase((5, 5), (3, 3))) == "DELIVERED"

    def test_no_lines_is_delivered(self):
        assert purchase_status(_purchase()) == "DELIVERED"


class TestLoanStatus:
    def test_sale_link_means_done(self):
        assert loan_status(_loan((4, 0), due=date(2000, 1, 1), sale=object()), TODAY) == "DONE"

    def test_fully_returned_is_done_even_if_overdue(self):
        assert loan_status(_loan((4, 4), due=date(2000, 1, 1)), TODAY) == "DONE"

    def test_late_and_pending(self):
        assert loan_status(_loan((4, 1), due=date(2024, 5, 9)), TODAY) == "LATE"
        assert loan_status(_loan((4, 1), due=TODAY), TODAY) == "PENDING"


class TestSaleStatus:
    def test_all_paid(self):
        assert sale_status(_sale(("PAID", date(2024, 1, 1)), ("PAID", date(2024, 2, 1))), TODAY) == "PAID"

    def test_any_overdue_pending_is_late(self):
        sale = _sale(("PAID", date(2024, 1, 1)), ("PENDING", date(2024, 5, 9)), ("PENDING", date(2024, 6, 9)))
        assert sale_status(sale, TODAY) == "LATE"

    def test_pending(self):
        assert sale_status(_sale(("PAID", date(2024, 1, 1)), ("PENDING", TODAY)), TODAY) == "PENDING"


def test_normalize_status():
    assert normalize_status(None, LOAN_STATUSES) is None
    assert normalize_status("", LOAN_STATUSES) is None
    assert normalize_status(" late ", LOAN_STATUSES) == "LATE"
    with pytest.raises(ValidationError):
        normalize_status("DELIVERED", LOAN_STATUSES)
