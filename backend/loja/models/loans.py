from __future__ import annotations

from ..extensions import db
from loja.time_utils import to_utc_z, to_iso_date


class Loan(db.Model):
    """
    Goods lent to a customer until a due date.

    Creating a loan debits Product.stock for every line. Stock comes back
    through returns (LoanLine.returned_quantity) or stays out for good when
    the outstanding remainder is converted into a sale (Sale.loan_id).

    A loan linked to a sale accepts no further returns and cannot be deleted.
    """
    __tablename__ = "loans"
    __table_args__ = (
        db.Index("ix_loans_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    due_date = db.Column(db.Date, nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("loans", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def sale_id(self) -> int | None:
        # Loan.sale is the one-to-one backref declared on Sale.loan
        return self.sale.id if self.sale is not None else None

    @property
    def outstanding_quantity(self) -> int:
        return sum(line.remaining_quantity for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "customer_name": self.customer.name if self.customer else None,
            "due_date": to_iso_date(self.due_date),
            "created_at": to_utc_z(self.created_at),
            "sale_id": self.sale_id,
            "outstanding_quantity": self.outstanding_quantity,
            "version_id": self.version_id,
        }


class LoanLine(db.Model):
    """
    Lent vs. returned quantity of one product on a loan.

    INVARIANT: 0 <= returned_quantity <= lent_quantity, and
    returned_quantity only ever increases.
    """
    __tablename__ = "loan_lines"
    __table_args__ = (
        db.UniqueConstraint("loan_id", "product_id", name="uq_loan_lines_loan_product"),
        db.CheckConstraint("lent_quantity > 0", name="ck_loan_lines_lent_positive"),
        db.CheckConstraint(
            "returned_quantity >= 0 AND returned_quantity <= lent_quantity",
            name="ck_loan_lines_returned_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey("loans.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    lent_quantity = db.Column(db.Integer, nullable=False)
    returned_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    loan = db.relationship(
        "Loan",
        backref=db.backref("lines", lazy=True, cascade="all, delete-orphan", order_by="LoanLine.id"),
    )
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_quantity(self) -> int:
        return self.lent_quantity - self.returned_quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "loan_id": self.loan_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "lent_quantity": self.lent_quantity,
            "returned_quantity": self.returned_quantity,
            "remaining_quantity": self.remaining_quantity,
            "unit_price_cents": self.unit_price_cents,
        }
