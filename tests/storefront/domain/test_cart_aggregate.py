"""Tests for the Cart aggregate — items, codes, totals and lifecycle."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from protean.exceptions import ValidationError
from storefront.cart.cart import Cart, CartStatus
from storefront.cart.events import (
    CartAbandoned,
    CartCleared,
    CartConverted,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)
from storefront.catalog.variant import InsufficientStock, ProductVariant


def _variant(price="10.00", stock=5, weight=0.5):
    return ProductVariant.register(
        tenant_id="tenant-a", product_id="prod-001", sku="SKU-001", price=price, stock=stock, weight=weight
    )


def _cart():
    cart = Cart.open("tenant-a", "sess-001")
    cart._events.clear()
    return cart


class TestOpen:
    def test_new_cart_is_active_and_zeroed(self):
        cart = Cart.open("tenant-a", "sess-001", customer_id="cust-001")
        assert cart.status == CartStatus.ACTIVE.value
        assert cart.total == "0.00"
        assert cart.customer_id == "cust-001"

    def test_expiry_follows_configured_ttl(self, monkeypatch):
        monkeypatch.setenv("CART_TTL_DAYS", "2")
        cart = Cart.open("tenant-a", "sess-001")
        assert cart.expires_at - cart.created_at == timedelta(days=2)


class TestAddItem:
    def test_snapshots_price_and_weight(self):
        cart = _cart()
        variant = _variant(price="12.50", weight=2.0)
        item = cart.add_item(variant, 2)

        assert item.unit_price == "12.50"
        assert item.unit_weight == 2.0
        assert cart.computed_subtotal() == Decimal("25.00")

    def test_re_adding_a_variant_increases_the_line(self):
        cart = _cart()
        variant = _variant()
        cart.add_item(variant, 2)
        cart.add_item(variant, 1)

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3

    def test_combined_quantity_is_checked_against_stock(self):
        cart = _cart()
        variant = _variant(stock=3)
        cart.add_item(variant, 2)

        with pytest.raises(InsufficientStock) as exc:
            cart.add_item(variant, 2)
        assert exc.value.requested == 4
        assert exc.value.available == 3
        assert cart.items[0].quantity == 2

    def test_price_is_not_refreshed_for_existing_items(self):
        cart = _cart()
        variant = _variant(price="10.00")
        cart.add_item(variant, 1)
        variant.price = "15.00"
        cart.add_item(variant, 1)

        assert cart.items[0].unit_price == "10.00"

    def test_raises_item_added(self):
        cart = _cart()
        cart.add_item(_variant(), 1)
        assert isinstance(cart._events[-1], CartItemAdded)


class TestUpdateAndRemove:
    def test_update_quantity(self):
        cart = _cart()
        item = cart.add_item(_variant(), 1)
        cart.update_item_quantity(item.id, 4)

        assert cart.items[0].quantity == 4
        assert isinstance(cart._events[-1], CartItemQuantityUpdated)

    def test_zero_quantity_removes_the_item(self):
        cart = _cart()
        item = cart.add_item(_variant(), 1)
        cart.update_item_quantity(item.id, 0)

        assert len(cart.items) == 0
        assert isinstance(cart._events[-1], CartItemRemoved)

    def test_update_checks_stock_when_variant_given(self):
        cart = _cart()
        variant = _variant(stock=3)
        item = cart.add_item(variant, 1)

        with pytest.raises(InsufficientStock):
            cart.update_item_quantity(item.id, 5, variant)

    def test_unknown_item_is_rejected(self):
        cart = _cart()
        with pytest.raises(ValidationError) as exc:
            cart.remove_item("missing")
        assert "item_id" in exc.value.messages


class TestClear:
    def test_clear_drops_items_code_and_totals(self):
        cart = _cart()
        cart.add_item(_variant(), 2)
        cart.attach_discount_code("code-1", "SAVE20")
        cart.record_totals("20.00", "4.00", "1.16", "5.99")

        cart.clear()

        assert len(cart.items) == 0
        assert cart.discount_code is None
        assert cart.total == "0.00"
        assert isinstance(cart._events[-1], CartCleared)


class TestTotals:
    def test_record_totals_keeps_the_sum_consistent(self):
        cart = _cart()
        cart.record_totals("100.00", "20.00", "5.80", "5.99")
        assert cart.total == "91.79"

    def test_detaching_the_code_zeroes_the_discount(self):
        cart = _cart()
        cart.attach_discount_code("code-1", "SAVE20")
        cart.record_totals("100.00", "20.00", "5.80", "5.99")

        cart.detach_discount_code()

        assert cart.discount_total == "0.00"
        assert cart.total == "111.79"

    def test_detaching_without_a_code_is_rejected(self):
        with pytest.raises(ValidationError):
            _cart().detach_discount_code()


class TestLifecycle:
    def test_convert(self):
        cart = _cart()
        cart.add_item(_variant(), 1)
        cart.mark_converted("order-1")

        assert cart.status == CartStatus.CONVERTED.value
        assert isinstance(cart._events[-1], CartConverted)

    def test_empty_cart_cannot_convert(self):
        with pytest.raises(ValidationError):
            _cart().mark_converted("order-1")

    def test_converted_cart_rejects_changes(self):
        cart = _cart()
        cart.add_item(_variant(), 1)
        cart.mark_converted("order-1")

        with pytest.raises(ValidationError) as exc:
            cart.add_item(_variant(), 1)
        assert "status" in exc.value.messages

    def test_abandon(self):
        cart = _cart()
        cart.abandon()
        assert cart.status == CartStatus.ABANDONED.value
        assert isinstance(cart._events[-1], CartAbandoned)

    def test_is_expired(self):
        cart = _cart()
        assert not cart.is_expired()
        assert cart.is_expired(datetime.now(UTC) + timedelta(days=30))
