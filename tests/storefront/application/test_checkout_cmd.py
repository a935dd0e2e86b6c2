"""Application tests for Checkout — cart to order in one unit of work."""

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError
from storefront.cart.cart import Cart, CartStatus
from storefront.cart.checkout import Checkout
from storefront.cart.discounts import ApplyDiscountCode
from storefront.cart.items import AddCartItem
from storefront.cart.management import GetOrCreateCart
from storefront.catalog.variant import InsufficientStock, ProductVariant
from storefront.order.order import Order


def _add(variant, quantity=1, customer_id=None):
    current_domain.process(
        AddCartItem(
            tenant_id="tenant-a",
            session_id="sess-001",
            variant_id=variant.id,
            quantity=quantity,
            customer_id=customer_id,
        ),
        asynchronous=False,
    )


def _checkout(address, method, **kwargs):
    return current_domain.process(
        Checkout(
            tenant_id="tenant-a",
            session_id="sess-001",
            shipping_address_id=address.id,
            billing_address_id=address.id,
            shipping_method_id=method.id,
            **kwargs,
        ),
        asynchronous=False,
    )


class TestCheckout:
    def test_converts_the_cart_into_an_order(self, customer, ca_address, ca_tax, flat_shipping, variant, save20):
        _add(variant, 2, customer_id=customer.id)
        current_domain.process(
            ApplyDiscountCode(tenant_id="tenant-a", session_id="sess-001", code="SAVE20"), asynchronous=False
        )

        order_id = _checkout(ca_address, flat_shipping)

        order = current_domain.repository_for(Order).get(order_id)
        assert order.total == "91.79"
        assert order.discounts[0].code == "SAVE20"

        cart = current_domain.repository_for(Cart).get(_only_cart_id())
        assert cart.status == CartStatus.CONVERTED.value
        assert current_domain.repository_for(Cart).active_for_session("tenant-a", "sess-001") is None

    def test_customer_can_be_supplied_at_checkout(self, customer, ca_address, flat_shipping, variant):
        _add(variant, 1)
        order_id = _checkout(ca_address, flat_shipping, customer_id=customer.id)

        assert current_domain.repository_for(Order).get(order_id).customer_id == customer.id

    def test_visit_session_is_carried_to_the_order(self, customer, ca_address, flat_shipping, variant):
        _add(variant, 1, customer_id=customer.id)
        order_id = _checkout(ca_address, flat_shipping, visit_session_id="visit-42", campaign_id="camp-1")

        order = current_domain.repository_for(Order).get(order_id)
        assert order.session_id == "visit-42"
        assert order.campaign_id == "camp-1"

    def test_empty_cart_is_rejected(self, customer, ca_address, flat_shipping):
        current_domain.process(
            GetOrCreateCart(tenant_id="tenant-a", session_id="sess-001", customer_id=customer.id), asynchronous=False
        )
        with pytest.raises(ValidationError) as exc:
            _checkout(ca_address, flat_shipping)
        assert "cart" in exc.value.messages

    def test_guest_without_customer_is_rejected(self, ca_address, flat_shipping, variant):
        _add(variant, 1)
        with pytest.raises(ValidationError) as exc:
            _checkout(ca_address, flat_shipping)
        assert "customer_id" in exc.value.messages

    def test_no_active_cart(self, ca_address, flat_shipping):
        with pytest.raises(ObjectNotFoundError):
            _checkout(ca_address, flat_shipping)

    def test_failed_checkout_leaves_the_cart_active(self, customer, ca_address, flat_shipping, variant):
        _add(variant, 3, customer_id=customer.id)
        repo = current_domain.repository_for(ProductVariant)
        sold_out = repo.get(variant.id)
        sold_out.stock = 2
        repo.add(sold_out)

        with pytest.raises(InsufficientStock):
            _checkout(ca_address, flat_shipping)

        cart = current_domain.repository_for(Cart).require_active("tenant-a", "sess-001")
        assert cart.status == CartStatus.ACTIVE.value
        assert repo.get(variant.id).stock == 2


def _only_cart_id():
    carts = current_domain.repository_for(Cart)._dao.query.all().items
    assert len(carts) == 1
    return carts[0].id
