from __future__ import annotations

from ..extensions import db
from loja.time_utils import to_utc_z, to_iso_date

INSTALLMENT_PENDING = "PENDING"
INSTALLMENT_PAID = "PAID"
INSTALLMENT_STATUSES = (INSTALLMENT_PENDING, INSTALLMENT_PAID)


class Sale(db.Model):
    """
    Sale to a customer, billed through monthly installments.

    ORIGIN:
    - Direct sale (loan_id is NULL): Product.stock was debited when the sale
      was created and is credited back if the sale is deleted.
    - From a loan (loan_id set): the goods already left stock when the loan
      was created, so neither creating nor deleting the sale touches stock.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("loan_id", name="uq_sales_loan"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    loan_id = db.Column(db.Integer, db.ForeignKey("loans.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    loan = db.relationship("Loan", backref=db.backref("sale", uselist=False, lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_direct(self) -> bool:
        return self.loan_id is None

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def to_dict(self) -> dict:
        pending = [i for i in self.installments if i.status == INSTALLMENT_PENDING]
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "loan_id": self.loan_id,
            "created_at": to_utc_z(self.created_at),
            "total_cents": self.total_cents,
            "installment_count": len(self.installments),
            "pending_installment_count": len(pending),
            "version_id": self.version_id,
        }


class SaleLine(db.Model):
    """Individual line items on a sale."""
    __tablename__ = "sale_lines"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "product_id", name="uq_sale_lines_sale_product"),
        db.CheckConstraint("quantity > 0", name="ck_sale_lines_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    line_total_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship(
        "Sale",
        backref=db.backref("lines", lazy=True, cascade="all, delete-orphan", order_by="SaleLine.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }


class Installment(db.Model):
    """
    One scheduled payment of a sale.

    LIFECYCLE: PENDING -> PAID, exactly once. payment_date is set on that
    transition and never otherwise. There is no way back to PENDING.
    """
    __tablename__ = "installments"
    __table_args__ = (
        db.CheckConstraint("status IN ('PENDING', 'PAID')", name="ck_installments_status"),
        db.Index("ix_installments_status_due", "status", "due_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    due_date = db.Column(db.Date, nullable=False)
    value_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=INSTALLMENT_PENDING)
    payment_date = db.Column(db.Date, nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    sale = db.relationship(
        "Sale",
        backref=db.backref(
            "installments",
            lazy=True,
            cascade="all, delete-orphan",
            order_by="[Installment.due_date, Installment.id]",
        ),
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "due_date": to_iso_date(self.due_date),
            "value_cents": self.value_cents,
            "status": self.status,
            "payment_date": to_iso_date(self.payment_date),
            "version_id": self.version_id,
        }
