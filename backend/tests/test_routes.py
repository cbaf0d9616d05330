# Overview: Pytest coverage for the JSON API: status codes, error mapping and payloads.

"""
API Route Tests

Exercises the blueprints through app.test_client():
- typed service errors map to {"error", "code", "details"} with their status
- validation problems are 400, uniqueness conflicts 409
- derived status is included on every document read
"""

import pytest

from loja.services import catalog_service
from conftest import FAR_FUTURE


@pytest.fixture
def stocked(db_session, client, supplier):
    """A product created through the API and stocked through a received purchase."""
    resp = client.post("/api/products", json={"code": "789100", "name": "Blusa", "price_cents": 5000})
    assert resp.status_code == 201
    product = resp.get_json()
    assert product["stock"] == 0

    resp = client.post("/api/purchases", json={
        "supplier_id": supplier.id,
        "lines": [{"product_id": product["id"], "quantity": 10, "unit_price_cents": 2000}],
    })
    assert resp.status_code == 201
    purchase = resp.get_json()
    assert purchase["status"] == "PENDING"

    resp = client.post(f"/api/purchases/{purchase['id']}/lines/{product['id']}/receive", json={"quantity": 10})
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "DELIVERED"
    return product


def _stock(client, product_id):
    return client.get(f"/api/products/{product_id}").get_json()["stock"]


class TestSystem:
    def test_health(self, db_session, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "healthy"


class TestProductRoutes:
    def test_scan_lookup(self, client, stocked):
        resp = client.get("/api/products/by-code/789100")
        assert resp.status_code == 200
        assert resp.get_json()["stock"] == 10

    def test_stock_field_rejected(self, client, stocked):
        resp = client.put(f"/api/products/{stocked['id']}", json={"stock": 99})
        assert resp.status_code == 400
        assert _stock(client, stocked["id"]) == 10

    def test_duplicate_code_conflict(self, client, stocked):
        resp = client.post("/api/products", json={"code": "789100", "name": "Outra", "price_cents": 1})
        assert resp.status_code == 409

    def test_unknown_product_404(self, db_session, client):
        resp = client.get("/api/products/424242")
        assert resp.status_code == 404
        assert resp.get_json()["code"] == "NOT_FOUND"

    def test_low_stock_filter(self, client, stocked):
        client.post("/api/products", json={"code": "789200", "name": "Saia", "price_cents": 3000})
        assert client.get("/api/products?max_stock=0").get_json()["count"] == 1
        assert client.get("/api/products?max_stock=10").get_json()["count"] == 2
        assert client.get("/api/products?max_stock=few").status_code == 400

    def test_delete(self, client, stocked):
        resp = client.delete(f"/api/products/{stocked['id']}")
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "IN_USE"
        assert resp.get_json()["details"]["references"] == {"purchase_lines": 1}

        spare = client.post("/api/products", json={"code": "789300", "name": "Meia", "price_cents": 900}).get_json()
        assert client.delete(f"/api/products/{spare['id']}").get_json() == {"ok": True}
        assert client.get(f"/api/products/{spare['id']}").status_code == 404


class TestPartyRoutes:
    def test_customer_and_supplier(self, db_session, client):
        resp = client.post("/api/customers", json={"name": "Dora", "cpf": "222", "state": "PE"})
        assert resp.status_code == 201
        assert resp.get_json()["address"]["state"] == "PE"

        assert client.post("/api/customers", json={"name": "Eva", "cpf": "222"}).status_code == 409
        assert client.post("/api/customers", json={"name": "Eva"}).status_code == 400

        resp = client.post("/api/suppliers", json={"name": "Fabrica", "cnpj": "333"})
        assert resp.status_code == 201
        supplier_id = resp.get_json()["id"]
        resp = client.put(f"/api/suppliers/{supplier_id}", json={"phone": "81 3333-3333"})
        assert resp.get_json()["phone"] == "81 3333-3333"
        assert client.get("/api/suppliers").get_json()["count"] == 1

    def test_delete_parties(self, client, stocked, supplier, customer):
        customer_id = customer.id
        assert client.delete(f"/api/suppliers/{supplier.id}").status_code == 409
        assert client.delete(f"/api/customers/{customer_id}").get_json() == {"ok": True}
        assert client.get(f"/api/customers/{customer_id}").status_code == 404
        assert client.delete("/api/customers/424242").status_code == 404


class TestPurchaseRoutes:
    def test_overreceive_is_409(self, client, stocked, supplier):
        purchase = client.post("/api/purchases", json={
            "supplier_id": supplier.id,
            "lines": [{"product_id": stocked["id"], "quantity": 5, "unit_price_cents": 100}],
        }).get_json()

        url = f"/api/purchases/{purchase['id']}/lines/{stocked['id']}/receive"
        assert client.post(url, json={"quantity": 3}).status_code == 200
        resp = client.post(url, json={"quantity": 3})
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "EXCEEDS_REMAINING"
        assert body["details"]["remaining_quantity"] == 2
        assert _stock(client, stocked["id"]) == 13

        resp = client.delete(f"/api/purchases/{purchase['id']}")
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "HAS_RECEIVED_ITEMS"

    def test_bad_quantity_is_400(self, client, stocked, supplier):
        resp = client.post("/api/purchases", json={
            "supplier_id": supplier.id,
            "lines": [{"product_id": stocked["id"], "quantity": "1.5", "unit_price_cents": 100}],
        })
        assert resp.status_code == 400

    def test_oversized_quantity_is_400(self, client, stocked, supplier):
        for quantity in (10**19, 1_000_001):
            resp = client.post("/api/purchases", json={
                "supplier_id": supplier.id,
                "lines": [{"product_id": stocked["id"], "quantity": quantity, "unit_price_cents": 100}],
            })
            assert resp.status_code == 400
        assert client.get("/api/purchases").get_json()["count"] == 1

    def test_list_filter(self, client, stocked, supplier):
        assert client.get("/api/purchases?status=DELIVERED").get_json()["count"] == 1
        assert client.get("/api/purchases?status=PENDING").get_json()["count"] == 0
        assert client.get("/api/purchases?status=BOGUS").status_code == 400
        assert client.get("/api/purchases?supplier_id=abc").status_code == 400
        assert client.get(f"/api/purchases?supplier_id={supplier.id}").get_json()["count"] == 1
        assert client.get("/api/purchases?supplier_id=424242").get_json()["count"] == 0


class TestLoanRoutes:
    def test_lend_return_convert(self, client, stocked, customer):
        resp = client.post("/api/loans", json={
            "customer_id": customer.id,
            "due_date": FAR_FUTURE.isoformat(),
            "lines": [{"product_id": stocked["id"], "quantity": 4, "unit_price_cents": 5000}],
        })
        assert resp.status_code == 201
        loan = resp.get_json()
        assert loan["status"] == "PENDING"
        assert _stock(client, stocked["id"]) == 6

        resp = client.post(f"/api/loans/{loan['id']}/lines/{stocked['id']}/return", json={"quantity": 1})
        assert resp.get_json()["lines"][0]["returned_quantity"] == 1
        assert _stock(client, stocked["id"]) == 7

        resp = client.post(f"/api/loans/{loan['id']}/sale", json={
            "unit_prices": {str(stocked["id"]): 4500},
            "installment_plan": {"count": 3, "first_due_date": "2024-01-31"},
        })
        assert resp.status_code == 201
        sale = resp.get_json()
        assert sale["loan_id"] == loan["id"]
        assert sale["total_cents"] == 3 * 4500
        assert [i["due_date"] for i in sale["installments"]] == ["2024-01-31", "2024-02-29", "2024-03-31"]
        assert _stock(client, stocked["id"]) == 7

        resp = client.get(f"/api/loans/{loan['id']}")
        assert resp.get_json()["status"] == "DONE"
        assert resp.get_json()["sale_id"] == sale["id"]

        resp = client.post(f"/api/loans/{loan['id']}/lines/{stocked['id']}/return", json={"quantity": 1})
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "CONVERTED_TO_SALE"

        resp = client.delete(f"/api/loans/{loan['id']}")
        assert resp.status_code == 409

    def test_out_of_stock_details(self, client, stocked, customer):
        resp = client.post("/api/loans", json={
            "customer_id": customer.id,
            "due_date": "2030-01-01",
            "lines": [{"product_id": stocked["id"], "quantity": 11, "unit_price_cents": 5000}],
        })
        assert resp.status_code == 409
        body = resp.get_json()
        assert body["code"] == "OUT_OF_STOCK"
        assert body["details"]["items"] == [
            {"product_id": stocked["id"], "requested_quantity": 11, "on_hand": 10}
        ]

    def test_return_all_and_delete(self, client, stocked, customer):
        loan = client.post("/api/loans", json={
            "customer_id": customer.id,
            "due_date": "2030-01-01",
            "lines": [{"product_id": stocked["id"], "quantity": 2, "unit_price_cents": 5000}],
        }).get_json()
        resp = client.post(f"/api/loans/{loan['id']}/return-all")
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "DONE"
        assert client.post(f"/api/loans/{loan['id']}/return-all").get_json()["code"] == "NOTHING_OUTSTANDING"
        assert client.delete(f"/api/loans/{loan['id']}").get_json()["code"] == "HAS_RETURNED_ITEMS"

    def test_customer_filter(self, client, stocked, customer):
        client.post("/api/loans", json={
            "customer_id": customer.id,
            "due_date": "2030-01-01",
            "lines": [{"product_id": stocked["id"], "quantity": 1, "unit_price_cents": 5000}],
        })
        assert client.get(f"/api/loans?customer_id={customer.id}").get_json()["count"] == 1
        assert client.get("/api/loans?customer_id=424242").get_json()["count"] == 0
        assert client.get("/api/loans?customer_id=abc").status_code == 400
        assert client.get("/api/sales?customer_id=1.5").status_code == 400


class TestSaleRoutes:
    def test_direct_sale_pay_and_delete(self, client, stocked, customer):
        resp = client.post("/api/sales", json={
            "customer_id": customer.id,
            "lines": [{"product_id": stocked["id"], "quantity": 2, "unit_price_cents": 6000}],
            "installment_plan": {"count": 3, "first_due_date": "2024-01-01"},
        })
        assert resp.status_code == 201
        sale = resp.get_json()
        assert [i["value_cents"] for i in sale["installments"]] == [4000, 4000, 4000]
        assert _stock(client, stocked["id"]) == 8

        first = sale["installments"][0]["id"]
        url = f"/api/sales/{sale['id']}/installments/{first}/pay"
        resp = client.post(url, json={"payment_date": "2024-01-02"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "PAID"
        assert resp.get_json()["payment_date"] == "2024-01-02"

        resp = client.post(url, json={})
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "ALREADY_PAID"

        resp = client.delete(f"/api/sales/{sale['id']}")
        assert resp.status_code == 409
        assert resp.get_json()["code"] == "HAS_PAID_INSTALLMENTS"
        assert _stock(client, stocked["id"]) == 8

    def test_delete_unpaid_direct_sale_restocks(self, client, stocked, customer):
        sale = client.post("/api/sales", json={
            "customer_id": customer.id,
            "lines": [{"product_id": stocked["id"], "quantity": 10, "unit_price_cents": 100}],
            "installment_plan": {"count": 1, "first_due_date": "2024-01-01"},
        }).get_json()
        assert _stock(client, stocked["id"]) == 0

        resp = client.post("/api/sales", json={
            "customer_id": customer.id,
            "lines": [{"product_id": stocked["id"], "quantity": 1, "unit_price_cents": 100}],
            "installment_plan": {"count": 1, "first_due_date": "2024-01-01"},
        })
        assert resp.status_code == 409

        assert client.delete(f"/api/sales/{sale['id']}").status_code == 200
        assert _stock(client, stocked["id"]) == 10
        assert client.get(f"/api/sales/{sale['id']}").status_code == 404

    def test_invalid_plan_is_400(self, client, stocked, customer):
        resp = client.post("/api/sales", json={
            "customer_id": customer.id,
            "lines": [{"product_id": stocked["id"], "quantity": 1, "unit_price_cents": 100}],
            "installment_plan": {"count": 24, "first_due_date": "2024-01-01"},
        })
        assert resp.status_code == 400
        assert _stock(client, stocked["id"]) == 10


class TestDashboardRoute:
    def test_dashboard(self, client, stocked):
        resp = client.get("/api/dashboard?today=2024-01-15")
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["today"] == "2024-01-15"
        assert body["pending_purchase_lines"] == []

    def test_bad_date(self, db_session, client):
        assert client.get("/api/dashboard?today=yesterday").status_code == 400


def test_unexpected_error_is_logged_500(db_session, client, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(catalog_service, "list_products", boom)
    resp = client.get("/api/products")
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}
