from __future__ import annotations

from ..extensions import db
from loja.time_utils import to_utc_z


class Purchase(db.Model):
    """
    Purchase order placed with a supplier.

    LIFECYCLE: created once with its full line set. Lines are received
    incrementally (PurchaseLine.received_quantity); each receive credits
    Product.stock. There is no stored status: DELIVERED/PENDING is derived
    by services.status_service.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_supplier_created", "supplier_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def total_cents(self) -> int:
        return sum(line.line_total_cents for line in self.lines)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "created_at": to_utc_z(self.created_at),
            "total_cents": self.total_cents,
            "pending_line_count": sum(1 for line in self.lines if line.remaining_quantity > 0),
            "version_id": self.version_id,
        }


class PurchaseLine(db.Model):
    """
    Ordered vs. received quantity of one product on a purchase.

    INVARIANT: 0 <= received_quantity <= ordered_quantity, and
    received_quantity only ever increases.
    """
    __tablename__ = "purchase_lines"
    __table_args__ = (
        db.UniqueConstraint("purchase_id", "product_id", name="uq_purchase_lines_purchase_product"),
        db.CheckConstraint("ordered_quantity > 0", name="ck_purchase_lines_ordered_positive"),
        db.CheckConstraint(
            "received_quantity >= 0 AND received_quantity <= ordered_quantity",
            name="ck_purchase_lines_received_range",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_id = db.Column(db.Integer, db.ForeignKey("purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    ordered_quantity = db.Column(db.Integer, nullable=False)
    received_quantity = db.Column(db.Integer, nullable=False, default=0)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    purchase = db.relationship(
        "Purchase",
        backref=db.backref("lines", lazy=True, cascade="all, delete-orphan", order_by="PurchaseLine.id"),
    )
    product = db.relationship("Product")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def remaining_quantity(self) -> int:
        return self.ordered_quantity - self.received_quantity

    @property
    def line_total_cents(self) -> int:
        return self.ordered_quantity * self.unit_price_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_id": self.purchase_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "ordered_quantity": self.ordered_quantity,
            "received_quantity": self.received_quantity,
            "remaining_quantity": self.remaining_quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
        }
