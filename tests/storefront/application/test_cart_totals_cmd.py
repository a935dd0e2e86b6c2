"""Application tests for discount codes on carts and cart totals calculation."""

from decimal import Decimal

import pytest
from protean import current_domain
from storefront.cart.cart import Cart
from storefront.cart.discounts import ApplyDiscountCode, RemoveDiscountCode
from storefront.cart.items import AddCartItem
from storefront.cart.management import CalculateCartTotals
from storefront.cart.totals import CartTotals, CartTotalsBreakdown
from storefront.discount.discount import DiscountCode, DiscountCodeRejected
from storefront.discount.management import DeactivateDiscountCode
from storefront.tax.management import SetProductTaxExemption
from storefront.tax.resolver import NO_TAX


def _add(variant, quantity=1):
    current_domain.process(
        AddCartItem(tenant_id="tenant-a", session_id="sess-001", variant_id=variant.id, quantity=quantity),
        asynchronous=False,
    )


def _apply(code):
    return current_domain.process(
        ApplyDiscountCode(tenant_id="tenant-a", session_id="sess-001", code=code), asynchronous=False
    )


def _totals(**kwargs):
    return current_domain.process(
        CalculateCartTotals(tenant_id="tenant-a", session_id="sess-001", **kwargs), asynchronous=False
    )


def _cart():
    return current_domain.repository_for(Cart).require_active("tenant-a", "sess-001")


class TestApplyDiscountCode:
    def test_valid_code_is_attached(self, variant, save20):
        _add(variant, 2)
        quote = _apply("save20")

        assert quote.amount == Decimal("20.00")
        assert _cart().discount_code == "SAVE20"

    def test_applying_does_not_redeem(self, variant, save20):
        _add(variant, 2)
        _apply("SAVE20")

        assert current_domain.repository_for(DiscountCode).get(save20.id).usage_count == 0

    def test_below_minimum_is_rejected(self, make_variant, save20):
        _add(make_variant(price="10.00"), 2)

        with pytest.raises(DiscountCodeRejected) as exc:
            _apply("SAVE20")
        assert exc.value.reason == "below_minimum"
        assert _cart().discount_code is None

    def test_unknown_code_is_rejected(self, variant):
        _add(variant)
        with pytest.raises(DiscountCodeRejected) as exc:
            _apply("BOGUS")
        assert exc.value.reason == "not_found"

    def test_remove_code(self, variant, save20):
        _add(variant, 2)
        _apply("SAVE20")

        current_domain.process(RemoveDiscountCode(tenant_id="tenant-a", session_id="sess-001"), asynchronous=False)
        assert _cart().discount_code is None


class TestCalculateTotals:
    def test_full_breakdown(self, variant, save20, customer, ca_address, ca_tax, flat_shipping):
        _add(variant, 2)
        _apply("SAVE20")

        result = _totals(shipping_address_id=ca_address.id, shipping_method_id=flat_shipping.id)

        assert isinstance(result, CartTotalsBreakdown)
        assert result.totals.as_dict() == {
            "subtotal": "100.00",
            "discount": "20.00",
            "tax": "5.80",
            "shipping": "5.99",
            "total": "91.79",
        }
        assert result.tax.jurisdiction_name == "California"
        assert result.tax.taxable_amount == Decimal("80.00")
        assert result.shipping.cost == Decimal("5.99")
        assert result.estimated_delivery_date is not None

    def test_cached_totals_are_refreshed(self, variant, save20, customer, ca_address, ca_tax, flat_shipping):
        _add(variant, 2)
        _apply("SAVE20")
        _totals(shipping_address_id=ca_address.id, shipping_method_id=flat_shipping.id)

        cart = _cart()
        assert cart.subtotal == "100.00"
        assert cart.discount_total == "20.00"
        assert cart.tax_total == "5.80"
        assert cart.shipping_total == "5.99"
        assert cart.total == "91.79"

    def test_amounts_only_without_address_or_method(self, variant):
        _add(variant, 1)
        result = _totals()

        assert isinstance(result, CartTotals)
        assert result.total == Decimal("50.00")

    def test_free_shipping_threshold(self, make_variant, free_over_50_shipping):
        _add(make_variant(price="30.00"), 2)
        result = _totals(shipping_method_id=free_over_50_shipping.id)

        assert result.shipping.is_free is True
        assert result.totals.shipping == Decimal("0.00")

    def test_unknown_address_means_no_tax(self, variant, ca_tax):
        _add(variant, 1)
        result = _totals(shipping_address_id="addr-unknown")

        assert result.tax.jurisdiction_name == NO_TAX
        assert result.totals.tax == Decimal("0.00")
        assert result.tax.taxable_amount == Decimal("0.00")

    def test_vanished_shipping_method_is_zero_in_preview(self, variant):
        _add(variant, 1)
        result = _totals(shipping_method_id="method-gone")

        assert result.shipping is None
        assert result.totals.shipping == Decimal("0.00")

    def test_code_that_became_invalid_rejects_the_calculation(self, variant, save20):
        _add(variant, 2)
        _apply("SAVE20")
        current_domain.process(DeactivateDiscountCode(tenant_id="tenant-a", code_id=save20.id), asynchronous=False)

        with pytest.raises(DiscountCodeRejected) as exc:
            _totals()
        assert exc.value.reason == "inactive"

    def test_exempt_product_is_not_taxed(self, variant, customer, ca_address, ca_tax):
        current_domain.process(
            SetProductTaxExemption(tenant_id="tenant-a", product_id=variant.product_id, exemption_category="grocery"),
            asynchronous=False,
        )
        _add(variant, 1)

        result = _totals(shipping_address_id=ca_address.id)
        assert result.tax.exempt_amount == Decimal("50.00")
        assert result.totals.tax == Decimal("0.00")
