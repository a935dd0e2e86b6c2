"""Shared BDD fixtures and step definitions for the storefront."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then
from storefront.catalog.variant import ProductVariant
from storefront.customer.customer import Address, Customer
from storefront.discount.discount import Discount, DiscountCode
from storefront.shipping.method import ShippingMethod
from storefront.tax.jurisdiction import TaxJurisdiction

TENANT = "tenant-a"


@pytest.fixture()
def error():
    """Holds the exception raised by a When step, if any."""
    return {"exc": None}


@pytest.fixture()
def world():
    """Records created by Given steps, keyed by what the feature calls them."""
    return {"variants": {}, "methods": {}}


def _save(record):
    current_domain.repository_for(type(record)).add(record)
    return record


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a customer with an address in "{state}"'))
def _(world, state):
    customer = _save(Customer(tenant_id=TENANT, email="shopper@example.com", first_name="Sam"))
    world["customer"] = customer
    world["address"] = _save(
        Address(tenant_id=TENANT, customer_id=customer.id, street="1 Main St", city="Anytown", state=state, country="US")
    )


@given(parsers.cfparse('a {percent}% tax jurisdiction for the state "{state}"'))
def _(percent, state):
    _save(
        TaxJurisdiction.register(
            tenant_id=TENANT,
            name=f"State {state}",
            jurisdiction_type="state",
            country="US",
            state_code=state,
            rate=str(Decimal(percent) / 100),
            effective_from=datetime.now(UTC) - timedelta(days=1),
        )
    )


@given(parsers.cfparse('a flat rate shipping method "{name}" costing "{cost}"'))
def _(world, name, cost):
    world["methods"][name] = _save(
        ShippingMethod.create(tenant_id=TENANT, name=name, calculation_type="flat_rate", base_rate=cost)
    )


@given(parsers.cfparse('a product variant "{sku}" priced "{price}" with {stock:d} in stock'))
def _(world, sku, price, stock):
    world["variants"][sku] = _save(
        ProductVariant.register(tenant_id=TENANT, product_id=f"prod-{sku}", sku=sku, price=price, stock=stock)
    )


@given(parsers.cfparse('a {percent:d}% discount code "{code}" with a minimum order of "{minimum}"'))
def _(percent, code, minimum):
    discount = _save(
        Discount.create(tenant_id=TENANT, name=code, discount_type="percentage", value=str(percent), scope="code")
    )
    _save(DiscountCode.issue(tenant_id=TENANT, discount_id=discount.id, code=code, minimum_order_value=minimum))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{sku}" has {stock:d} in stock'))
def _(world, sku, stock):
    variant = current_domain.repository_for(ProductVariant).get(world["variants"][sku].id)
    assert variant.stock == stock
