"""Integration tests for the order and lookup endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import current_domain
from protean.exceptions import ExpectedVersionError
from storefront.api.errors import register_exception_handlers
from storefront.api.routes import lookup_router, order_router
from storefront.catalog.variant import ProductVariant
from storefront.discount.discount import Discount
from storefront.order.order import Order

HEADERS = {"X-Tenant-ID": "tenant-a"}


@pytest.fixture()
def client():
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(order_router)
    app.include_router(lookup_router)
    return TestClient(app)


@pytest.fixture()
def order(client, customer, ca_address, ca_tax, flat_shipping, variant):
    response = client.post(
        "/orders",
        json={
            "customer_id": str(customer.id),
            "shipping_address_id": str(ca_address.id),
            "billing_address_id": str(ca_address.id),
            "shipping_method_id": str(flat_shipping.id),
            "items": [{"variant_id": str(variant.id), "quantity": 2}],
            "notes": "Leave at the door",
        },
        headers=HEADERS,
    )
    assert response.status_code == 201
    return response.json()


def _stock(variant):
    return current_domain.repository_for(ProductVariant).get(variant.id).stock


class TestPlaceOrderEndpoint:
    def test_order_is_priced_and_snapshotted(self, order):
        assert order["status"] == "pending"
        assert order["subtotal"] == "100.00"
        assert order["tax_amount"] == "7.25"
        assert order["shipping_amount"] == "5.99"
        assert order["total"] == "113.24"
        assert order["tax_jurisdiction"] == "California"
        assert order["shipping_method"] == "Standard"
        assert order["items"][0]["sku"] == "SKU-001"

    def test_empty_items_fail_request_validation(self, client, customer, ca_address, flat_shipping):
        response = client.post(
            "/orders",
            json={
                "customer_id": str(customer.id),
                "shipping_address_id": str(ca_address.id),
                "billing_address_id": str(ca_address.id),
                "shipping_method_id": str(flat_shipping.id),
                "items": [],
            },
            headers=HEADERS,
        )
        assert response.status_code == 422

    def test_insufficient_stock_is_400(self, client, customer, ca_address, flat_shipping, variant):
        response = client.post(
            "/orders",
            json={
                "customer_id": str(customer.id),
                "shipping_address_id": str(ca_address.id),
                "billing_address_id": str(ca_address.id),
                "shipping_method_id": str(flat_shipping.id),
                "items": [{"variant_id": str(variant.id), "quantity": 50}],
            },
            headers=HEADERS,
        )
        assert response.status_code == 400
        assert _stock(variant) == 10


class TestOrderStatusEndpoints:
    def test_get_order(self, client, order):
        response = client.get(f"/orders/{order['order_id']}", headers=HEADERS)
        assert response.json()["order_number"] == order["order_number"]

    def test_other_tenant_gets_404(self, client, order):
        response = client.get(f"/orders/{order['order_id']}", headers={"X-Tenant-ID": "tenant-b"})
        assert response.status_code == 404

    def test_status_moves_forward(self, client, order):
        response = client.put(f"/orders/{order['order_id']}/status", json={"status": "processing"}, headers=HEADERS)
        assert response.json()["status"] == "processing"

    def test_invalid_transition_is_400(self, client, order):
        client.put(f"/orders/{order['order_id']}/cancel", json={}, headers=HEADERS)
        response = client.put(f"/orders/{order['order_id']}/status", json={"status": "processing"}, headers=HEADERS)

        assert response.status_code == 400
        assert "status" in response.json()["messages"]

    def test_lost_concurrent_update_is_409(self, client, order, monkeypatch):
        def stale_add(repo, aggregate):
            raise ExpectedVersionError("Wrong expected version: 0 (Aggregate: Order, Version: 1)")

        monkeypatch.setattr(type(current_domain.repository_for(Order)), "add", stale_add)
        response = client.put(f"/orders/{order['order_id']}/status", json={"status": "processing"}, headers=HEADERS)

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_cancel_restores_stock(self, client, order, variant):
        response = client.put(f"/orders/{order['order_id']}/cancel", json={"reason": "Changed mind"}, headers=HEADERS)

        assert response.json()["status"] == "cancelled"
        assert response.json()["notes"].endswith("Cancellation reason: Changed mind")
        assert _stock(variant) == 10

    def test_refund_after_cancel(self, client, order):
        client.put(f"/orders/{order['order_id']}/cancel", json={}, headers=HEADERS)
        response = client.put(f"/orders/{order['order_id']}/refund", json={}, headers=HEADERS)
        assert response.json()["status"] == "refunded"

    def test_add_note(self, client, order):
        response = client.post(f"/orders/{order['order_id']}/notes", json={"note": "Rang twice"}, headers=HEADERS)
        assert response.json()["notes"] == "Leave at the door\n\nRang twice"


class TestLookupEndpoints:
    def test_shipping_options(self, client, flat_shipping, free_over_50_shipping):
        response = client.get("/shipping/options", params={"subtotal": "60.00", "weight": "2"}, headers=HEADERS)

        options = response.json()
        assert [o["name"] for o in options] == ["Standard", "Free over $50"]
        assert options[1]["cost"] == "0.00"
        assert options[1]["is_free"] is True

    def test_best_product_discount(self, client):
        current_domain.repository_for(Discount).add(
            Discount.create(
                tenant_id="tenant-a", name="Sitewide", discount_type="percentage", value="10", scope="store_wide"
            )
        )

        response = client.get("/discounts/products/prod-001", params={"price": "40.00"}, headers=HEADERS)
        assert response.json()["amount"] == "4.00"

    def test_no_applicable_discount(self, client):
        response = client.get("/discounts/products/prod-001", params={"price": "40.00"}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json() is None
