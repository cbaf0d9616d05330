"""
Pytest fixtures for Loja backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

from datetime import date

import pytest
from loja import create_app
from loja.extensions import db
from loja.models import Customer, Supplier, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def customer(db_session):
    """Create a customer."""
    c = Customer(name="Ana Souza", cpf="123.456.789-09", email="ana@example.com", city="Recife")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def other_customer(db_session):
    c = Customer(name="Bruno Lima", cpf="987.654.321-00")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def supplier(db_session):
    """Create a supplier."""
    s = Supplier(name="Tecidos Norte", cnpj="12.345.678/0001-90")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for products with a given starting stock.

    Tests seed stock directly; application code only moves it through
    stock_service.
    """
    counter = {"n": 0}

    def _make(stock: int = 0, price_cents: int = 1000, name: str | None = None) -> Product:
        counter["n"] += 1
        n = counter["n"]
        p = Product(
            code=f"CODE-{n:04d}",
            name=name or f"Product {n}",
            price_cents=price_cents,
            stock=stock,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make


@pytest.fixture(scope='function')
def plan():
    """Single installment due on a fixed date."""
    return {"count": 1, "first_due_date": "2024-01-01"}


def stock_of(product_id: int) -> int:
    """Fresh read of Product.stock."""
    db.session.expire_all()
    return db.session.get(Product, product_id).stock


def line(product, quantity: int, unit_price_cents: int | None = None) -> dict:
    return {
        "product_id": product.id,
        "quantity": quantity,
        "unit_price_cents": product.price_cents if unit_price_cents is None else unit_price_cents,
    }


FAR_FUTURE = date(2999, 12, 31)
