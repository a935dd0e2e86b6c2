"""Application tests for cart item commands."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.cart import Cart, CartStatus
from storefront.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from storefront.cart.management import GetOrCreateCart
from storefront.catalog.variant import InsufficientStock


def _add(variant, quantity=1, session_id="sess-001", **kwargs):
    return current_domain.process(
        AddCartItem(tenant_id="tenant-a", session_id=session_id, variant_id=variant.id, quantity=quantity, **kwargs),
        asynchronous=False,
    )


def _cart(session_id="sess-001"):
    return current_domain.repository_for(Cart).require_active("tenant-a", session_id)


class TestGetOrCreateCart:
    def test_creates_an_active_cart(self):
        cart_id = current_domain.process(
            GetOrCreateCart(tenant_id="tenant-a", session_id="sess-001"), asynchronous=False
        )
        cart = current_domain.repository_for(Cart).get(cart_id)
        assert cart.status == CartStatus.ACTIVE.value
        assert cart.session_id == "sess-001"

    def test_returns_the_existing_cart(self):
        first = current_domain.process(GetOrCreateCart(tenant_id="tenant-a", session_id="sess-001"), asynchronous=False)
        second = current_domain.process(
            GetOrCreateCart(tenant_id="tenant-a", session_id="sess-001", customer_id="cust-9"), asynchronous=False
        )

        assert first == second
        assert current_domain.repository_for(Cart).get(second).customer_id == "cust-9"


class TestAddCartItem:
    def test_opens_a_cart_and_adds(self, variant):
        _add(variant, 2)
        cart = _cart()

        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.items[0].unit_price == "50.00"

    def test_adding_the_same_variant_merges(self, variant):
        _add(variant, 2)
        _add(variant, 3)

        cart = _cart()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 5

    def test_insufficient_stock(self, make_variant):
        scarce = make_variant(price="10.00", stock=1)
        with pytest.raises(InsufficientStock):
            _add(scarce, 2)

    def test_unknown_variant_is_not_found(self, variant):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(
                AddCartItem(tenant_id="tenant-a", session_id="sess-001", variant_id="nope", quantity=1),
                asynchronous=False,
            )


class TestUpdateAndRemove:
    def test_update_quantity(self, variant):
        _add(variant)
        item_id = str(_cart().items[0].id)

        current_domain.process(
            UpdateCartItemQuantity(tenant_id="tenant-a", session_id="sess-001", item_id=item_id, quantity=4),
            asynchronous=False,
        )
        assert _cart().items[0].quantity == 4

    def test_update_beyond_stock_is_rejected(self, variant):
        _add(variant)
        item_id = str(_cart().items[0].id)

        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateCartItemQuantity(tenant_id="tenant-a", session_id="sess-001", item_id=item_id, quantity=11),
                asynchronous=False,
            )
        assert _cart().items[0].quantity == 1

    def test_zero_quantity_removes(self, variant):
        _add(variant)
        item_id = str(_cart().items[0].id)

        current_domain.process(
            UpdateCartItemQuantity(tenant_id="tenant-a", session_id="sess-001", item_id=item_id, quantity=0),
            asynchronous=False,
        )
        assert len(_cart().items) == 0

    def test_remove_item(self, variant, make_variant):
        _add(variant)
        _add(make_variant(price="5.00"))
        item_id = str(_cart().items[0].id)

        current_domain.process(
            RemoveCartItem(tenant_id="tenant-a", session_id="sess-001", item_id=item_id), asynchronous=False
        )
        assert len(_cart().items) == 1

    def test_remove_unknown_item(self, variant):
        _add(variant)
        with pytest.raises(ValidationError):
            current_domain.process(
                RemoveCartItem(tenant_id="tenant-a", session_id="sess-001", item_id="missing"), asynchronous=False
            )

    def test_clear(self, variant):
        _add(variant, 2)
        current_domain.process(ClearCart(tenant_id="tenant-a", session_id="sess-001"), asynchronous=False)

        cart = _cart()
        assert len(cart.items) == 0
        assert cart.total == "0.00"

    def test_commands_without_a_cart_are_not_found(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ClearCart(tenant_id="tenant-a", session_id="nobody"), asynchronous=False)
