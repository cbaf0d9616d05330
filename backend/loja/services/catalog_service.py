# backend/loja/services/catalog_service.py
"""
Catalog Service: products, customers and suppliers.

Patches arrive already validated by loja.validation.validate_payload (types,
lengths, writable-field allowlist) when they come through the API. This layer
re-checks prices for every caller and enforces uniqueness:
- Product.code (the scannable code)
- Customer.cpf
- Supplier.cnpj

Product.stock is never writable here: products start at 0 and only the
stock service moves it.

Deletes are refused with InUseError while any purchase, loan or sale still
references the record.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..extensions import db
from ..models import Customer, Product, Supplier
from ..validation import ConflictError, ValidationError, parse_cents
from .deletion_guard import (
    assert_customer_deletable,
    assert_product_deletable,
    assert_supplier_deletable,
)
from .concurrency import lock_for_update, run_atomic
from .errors import NotFoundError

PRODUCT_MUTABLE_FIELDS = {"code", "name", "description", "price_cents"}
PARTY_FIELDS = {"name", "email", "phone", "zipcode", "state", "city", "street", "number", "complement"}
CUSTOMER_MUTABLE_FIELDS = PARTY_FIELDS | {"cpf"}
SUPPLIER_MUTABLE_FIELDS = PARTY_FIELDS | {"cnpj"}


def _apply_patch(obj, patch: dict, mutable_fields: set[str]) -> None:
    for k, v in patch.items():
        if k not in mutable_fields:
            continue
        setattr(obj, k, v)


def _assert_unique(model, field: str, value, exclude_id: int | None = None) -> None:
    if value is None:
        return
    query = db.session.query(model.id).filter(getattr(model, field) == value)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"{field} already exists")


def _get_or_404(model, obj_id: int, label: str):
    obj = db.session.get(model, obj_id)
    if not obj:
        raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": obj_id})
    return obj


def _delete_unreferenced(model, obj_id: int, label: str, guard) -> None:
    def _op():
        obj = lock_for_update(db.session.query(model).filter_by(id=obj_id)).first()
        if not obj:
            raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": obj_id})
        guard(obj.id)
        db.session.delete(obj)
        db.session.flush()
        current_app.logger.info("%s deleted %s_id=%s", label.lower(), label.lower(), obj_id)

    run_atomic(_op)


def _like_pattern(term: str) -> str:
    """Substring pattern with LIKE wildcards in the term matched literally."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _checked_price(patch: dict) -> dict:
    if "price_cents" not in patch:
        return patch
    return {**patch, "price_cents": parse_cents(patch["price_cents"], "price_cents")}


# --- products -----------------------------------------------------------------

def create_product(*, patch: dict) -> Product:
    if "stock" in patch:
        raise ValidationError("stock cannot be set directly")
    if not patch.get("code"):
        raise ValidationError("code is required")
    patch = _checked_price(patch)

    def _op():
        _assert_unique(Product, "code", patch["code"])
        p = Product(stock=0)
        _apply_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.add(p)
        db.session.flush()
        return p

    return run_atomic(_op)


def update_product(product_id: int, patch: dict) -> Product:
    if "stock" in patch:
        raise ValidationError("stock cannot be set directly")
    patch = _checked_price(patch)

    def _op():
        p = _get_or_404(Product, product_id, "Product")
        if "code" in patch:
            _assert_unique(Product, "code", patch["code"], exclude_id=p.id)
        _apply_patch(p, patch, PRODUCT_MUTABLE_FIELDS)
        db.session.flush()
        return p

    return run_atomic(_op)


def get_product(product_id: int) -> Product:
    return _get_or_404(Product, product_id, "Product")


def delete_product(product_id: int) -> None:
    _delete_unreferenced(Product, product_id, "Product", assert_product_deletable)


def get_product_by_code(code: str) -> Product:
    """Scan lookup."""
    code = (code or "").strip()
    p = db.session.query(Product).filter(Product.code == code).first()
    if not p:
        raise NotFoundError("Product not found", details={"code": code})
    return p


def list_products(search: str | None = None, max_stock: int | None = None) -> list[Product]:
    """
    search matches name or code as a literal substring. max_stock keeps
    products with stock <= max_stock (the low-stock view).
    """
    query = db.session.query(Product)
    if search and search.strip():
        like = _like_pattern(search.strip())
        query = query.filter(or_(Product.name.ilike(like, escape="\\"), Product.code.ilike(like, escape="\\")))
    if max_stock is not None:
        query = query.filter(Product.stock <= max_stock)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


# --- customers / suppliers ----------------------------------------------------

def _create_party(model, patch: dict, doc_field: str, mutable_fields: set[str]):
    if not patch.get(doc_field):
        raise ValidationError(f"{doc_field} is required")

    def _op():
        _assert_unique(model, doc_field, patch[doc_field])
        obj = model()
        _apply_patch(obj, patch, mutable_fields)
        db.session.add(obj)
        db.session.flush()
        return obj

    return run_atomic(_op)


def _update_party(model, obj_id: int, patch: dict, doc_field: str, mutable_fields: set[str], label: str):
    def _op():
        obj = _get_or_404(model, obj_id, label)
        if doc_field in patch:
            _assert_unique(model, doc_field, patch[doc_field], exclude_id=obj.id)
        _apply_patch(obj, patch, mutable_fields)
        db.session.flush()
        return obj

    return run_atomic(_op)


def create_customer(*, patch: dict) -> Customer:
    return _create_party(Customer, patch, "cpf", CUSTOMER_MUTABLE_FIELDS)


def update_customer(customer_id: int, patch: dict) -> Customer:
    return _update_party(Customer, customer_id, patch, "cpf", CUSTOMER_MUTABLE_FIELDS, "Customer")


def get_customer(customer_id: int) -> Customer:
    return _get_or_404(Customer, customer_id, "Customer")


def delete_customer(customer_id: int) -> None:
    _delete_unreferenced(Customer, customer_id, "Customer", assert_customer_deletable)


def list_customers() -> list[Customer]:
    return db.session.query(Customer).order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_supplier(*, patch: dict) -> Supplier:
    return _create_party(Supplier, patch, "cnpj", SUPPLIER_MUTABLE_FIELDS)


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    return _update_party(Supplier, supplier_id, patch, "cnpj", SUPPLIER_MUTABLE_FIELDS, "Supplier")


def get_supplier(supplier_id: int) -> Supplier:
    return _get_or_404(Supplier, supplier_id, "Supplier")


def delete_supplier(supplier_id: int) -> None:
    _delete_unreferenced(Supplier, supplier_id, "Supplier", assert_supplier_deletable)


def list_suppliers() -> list[Supplier]:
    return db.session.query(Supplier).order_by(Supplier.name.asc(), Supplier.id.asc()).all()
