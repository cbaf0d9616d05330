from __future__ import annotations

from ..extensions import db
from loja.time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data.

    STOCK: Product.stock is the only quantity-on-hand in the system. It is
    shared by purchases (credit on receive), loans (debit on lend, credit on
    return) and sales (debit on sale, credit on deletion). Never assign it
    directly; go through services.stock_service.

    CODE: the scannable code, unique across the catalog.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.CheckConstraint("stock >= 0", name="ck_products_stock_nonnegative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} code={self.code!r} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock": self.stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class _PartyMixin:
    """Contact and address columns shared by customers and suppliers."""

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    zipcode = db.Column(db.String(16), nullable=True)
    state = db.Column(db.String(64), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    street = db.Column(db.String(255), nullable=True)
    number = db.Column(db.String(32), nullable=True)
    complement = db.Column(db.String(255), nullable=True)

    def _contact_dict(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": {
                "zipcode": self.zipcode,
                "state": self.state,
                "city": self.city,
                "street": self.street,
                "number": self.number,
                "complement": self.complement,
            },
        }


class Customer(_PartyMixin, db.Model):
    """
    Customer master data. Loans and sales are issued to customers.

    cpf is stored as given; formatting and check-digit validation happen
    before it reaches this model.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("cpf", name="uq_customers_cpf"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cpf = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        data = {"id": self.id, "cpf": self.cpf}
        data.update(self._contact_dict())
        data["created_at"] = to_utc_z(self.created_at)
        return data


class Supplier(_PartyMixin, db.Model):
    """Supplier master data. Purchases are ordered from suppliers."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("cnpj", name="uq_suppliers_cnpj"),
        db.Index("ix_suppliers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cnpj = db.Column(db.String(32), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        data = {"id": self.id, "cnpj": self.cnpj}
        data.update(self._contact_dict())
        data["created_at"] = to_utc_z(self.created_at)
        return data
