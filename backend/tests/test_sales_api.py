"""Sales API tests: HTTP status codes and JSON bodies for the commit endpoint."""

import pytest

from siliconpos.extensions import db
from siliconpos.models import Product, Sale
from siliconpos.services import ledger_service


def _stock(product_id: int) -> int:
    return db.session.query(Product.stock_quantity).filter(Product.id == product_id).scalar()


class TestCommitSaleEndpoint:

    def test_commit_returns_sale_with_items(self, client, cashier_headers, cable, switch):
        resp = client.post("/api/sales", json={
            "items": [
                {"product_id": cable.id, "quantity": 2, "unit_price": 15.99},
                {"product_id": switch.id, "quantity": 1, "unit_price": "45.99"},
            ],
            "discount": "5.00",
            "customer_name": "Acme Offices",
        }, headers=cashier_headers)

        assert resp.status_code == 201
        sale = resp.get_json()["sale"]
        assert sale["subtotal"] == "77.97"
        assert sale["total"] == "72.97"
        assert sale["total_cents"] == 7297
        assert sale["customer_name"] == "Acme Offices"
        assert [item["quantity"] for item in sale["items"]] == [2, 1]
        assert _stock(cable.id) == 98
        assert _stock(switch.id) == 4

    def test_oversell_returns_409_with_details(self, client, cashier_headers, switch):
        resp = client.post("/api/sales", json={
            "items": [{"product_id": switch.id, "quantity": 9}],
        }, headers=cashier_headers)

        assert resp.status_code == 409
        details = resp.get_json()["details"]
        assert details["product_id"] == switch.id
        assert details["available"] == 5
        assert details["requested"] == 9
        assert db.session.query(Sale).count() == 0

    def test_invalid_cart_returns_400(self, client, cashier_headers, cable):
        resp = client.post("/api/sales", json={
            "items": [{"product_id": cable.id, "quantity": 0}],
        }, headers=cashier_headers)
        assert resp.status_code == 400
        assert "quantity" in resp.get_json()["error"]

    @pytest.mark.parametrize("line", [
        {"name": "Cable run", "quantity": 1, "unit_price": "1e30"},
        {"name": "Cable run", "quantity": 10**19, "unit_price": "1.00"},
        {"product_id": "\u00b2", "quantity": 1},
    ])
    def test_out_of_range_line_returns_400(self, client, cashier_headers, line):
        resp = client.post("/api/sales", json={"items": [line]}, headers=cashier_headers)
        assert resp.status_code == 400
        assert db.session.query(Sale).count() == 0

    def test_huge_discount_returns_400(self, client, cashier_headers, cable):
        resp = client.post("/api/sales", json={
            "items": [{"product_id": cable.id, "quantity": 1}],
            "discount": "1e40",
        }, headers=cashier_headers)
        assert resp.status_code == 400

    def test_empty_cart(self, client, cashier_headers):
        resp = client.post("/api/sales", json={"items": []}, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "cart empty"

    def test_non_object_body(self, client, cashier_headers):
        resp = client.post("/api/sales", json=[1, 2, 3], headers=cashier_headers)
        assert resp.status_code == 400

    def test_discount_above_subtotal(self, client, cashier_headers, cable):
        resp = client.post("/api/sales", json={
            "items": [{"product_id": cable.id, "quantity": 1}],
            "discount": 20,
        }, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.get_json()["details"]["subtotal"] == "15.99"

    def test_mid_commit_failure_returns_500(self, client, cashier_headers, cable, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(ledger_service, "create_sale_item", broken)
        resp = client.post("/api/sales", json={
            "items": [{"product_id": cable.id, "quantity": 1}],
        }, headers=cashier_headers)

        assert resp.status_code == 500
        assert "no changes were saved" in resp.get_json()["error"]
        assert _stock(cable.id) == 100


class TestSaleQueries:

    def test_list_and_get(self, client, cashier_headers, manager_headers, cable):
        created = []
        for qty in (1, 2):
            resp = client.post("/api/sales", json={
                "items": [{"product_id": cable.id, "quantity": qty}],
            }, headers=cashier_headers)
            created.append(resp.get_json()["sale"]["id"])

        resp = client.get("/api/sales", headers=manager_headers)
        assert resp.status_code == 200
        assert [s["id"] for s in resp.get_json()["sales"]] == created
        assert "items" not in resp.get_json()["sales"][0]

        resp = client.get(f"/api/sales/{created[1]}", headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.get_json()["sale"]["items"][0]["quantity"] == 2

    def test_missing_sale(self, client, cashier_headers):
        resp = client.get("/api/sales/999", headers=cashier_headers)
        assert resp.status_code == 404
