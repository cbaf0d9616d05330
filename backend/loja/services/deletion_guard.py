# Overview: Deletion preconditions for purchases, loans, sales and catalog records.

"""
Each check is an aggregate query meant to run inside the delete transaction,
after the parent row has been locked, so a concurrent receive/return/payment
cannot slip in between the check and the delete.
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import (
    INSTALLMENT_PAID,
    Installment,
    Loan,
    LoanLine,
    Purchase,
    PurchaseLine,
    Sale,
    SaleLine,
)
from .errors import (
    ConvertedToSaleError,
    HasPaidInstallmentsError,
    HasReceivedItemsError,
    HasReturnedItemsError,
    InUseError,
)


def _count(query) -> int:
    return query.scalar() or 0


def assert_purchase_deletable(purchase_id: int) -> None:
    received = _count(
        db.session.query(func.count(PurchaseLine.id))
        .filter(PurchaseLine.purchase_id == purchase_id, PurchaseLine.received_quantity > 0)
    )
    if received:
        raise HasReceivedItemsError(
            "Cannot delete a purchase with received items",
            details={"purchase_id": purchase_id, "received_line_count": received},
        )


def assert_purchase_line_deletable(line: PurchaseLine) -> None:
    if line.received_quantity > 0:
        raise HasReceivedItemsError(
            "Cannot delete a purchase line with received items",
            details={
                "purchase_id": line.purchase_id,
                "product_id": line.product_id,
                "received_quantity": line.received_quantity,
            },
        )


def assert_loan_deletable(loan_id: int) -> None:
    sale_id = db.session.query(Sale.id).filter(Sale.loan_id == loan_id).scalar()
    if sale_id is not None:
        raise ConvertedToSaleError(
            "Cannot delete a loan that was converted to a sale",
            details={"loan_id": loan_id, "sale_id": sale_id},
        )

    returned = _count(
        db.session.query(func.count(LoanLine.id))
        .filter(LoanLine.loan_id == loan_id, LoanLine.returned_quantity > 0)
    )
    if returned:
        raise HasReturnedItemsError(
            "Cannot delete a loan with returned items",
            details={"loan_id": loan_id, "returned_line_count": returned},
        )


def assert_sale_deletable(sale_id: int) -> None:
    paid = _count(
        db.session.query(func.count(Installment.id))
        .filter(Installment.sale_id == sale_id, Installment.status == INSTALLMENT_PAID)
    )
    if paid:
        raise HasPaidInstallmentsError(
            "Cannot delete a sale with paid installments",
            details={"sale_id": sale_id, "paid_installment_count": paid},
        )


def _assert_unreferenced(label: str, obj_id: int, references: dict) -> None:
    counts = {name: _count(query) for name, query in references.items()}
    counts = {name: n for name, n in counts.items() if n}
    if counts:
        raise InUseError(
            f"Cannot delete a {label} referenced by other documents",
            details={f"{label}_id": obj_id, "references": counts},
        )


def assert_product_deletable(product_id: int) -> None:
    _assert_unreferenced("product", product_id, {
        "purchase_lines": db.session.query(func.count(PurchaseLine.id)).filter(PurchaseLine.product_id == product_id),
        "loan_lines": db.session.query(func.count(LoanLine.id)).filter(LoanLine.product_id == product_id),
        "sale_lines": db.session.query(func.count(SaleLine.id)).filter(SaleLine.product_id == product_id),
    })


def assert_customer_deletable(customer_id: int) -> None:
    _assert_unreferenced("customer", customer_id, {
        "loans": db.session.query(func.count(Loan.id)).filter(Loan.customer_id == customer_id),
        "sales": db.session.query(func.count(Sale.id)).filter(Sale.customer_id == customer_id),
    })


def assert_supplier_deletable(supplier_id: int) -> None:
    _assert_unreferenced("supplier", supplier_id, {
        "purchases": db.session.query(func.count(Purchase.id)).filter(Purchase.supplier_id == supplier_id),
    })
