"""Shared fixtures for storefront tests.

Reference data (customers, variants, tax, shipping, discounts) is written
straight through the repositories; the behaviour under test goes through
commands.
"""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain
from storefront.attribution import reset_gateway, set_gateway
from storefront.attribution.fake_adapter import FakeAttributionGateway
from storefront.catalog.variant import ProductVariant
from storefront.customer.customer import Address, Customer
from storefront.discount.discount import Discount, DiscountCode
from storefront.shipping.method import ShippingMethod
from storefront.tax.jurisdiction import TaxJurisdiction

TENANT = "tenant-a"
OTHER_TENANT = "tenant-b"
SESSION = "sess-001"


def _save(record):
    current_domain.repository_for(type(record)).add(record)
    return record


def yesterday():
    return datetime.now(UTC) - timedelta(days=1)


@pytest.fixture()
def tenant_id():
    return TENANT


@pytest.fixture()
def session_id():
    return SESSION


@pytest.fixture()
def attribution_gateway():
    gateway = FakeAttributionGateway()
    set_gateway(gateway)
    yield gateway
    reset_gateway()


@pytest.fixture()
def customer():
    return _save(Customer(tenant_id=TENANT, email="jane@example.com", first_name="Jane", last_name="Doe"))


@pytest.fixture()
def ca_address(customer):
    return _save(
        Address(
            tenant_id=TENANT,
            customer_id=customer.id,
            street="1 Market St",
            city="San Francisco",
            state="CA",
            postal_code="94105",
            country="US",
        )
    )


@pytest.fixture()
def or_address(customer):
    return _save(
        Address(
            tenant_id=TENANT,
            customer_id=customer.id,
            street="500 Pine St",
            city="Portland",
            state="OR",
            postal_code="97204",
            country="US",
        )
    )


@pytest.fixture()
def make_variant():
    def _make(price="25.00", stock=10, product_id=None, sku=None, weight=1.0, collection_ids=None, tenant_id=TENANT):
        variant = ProductVariant.register(
            tenant_id=tenant_id,
            product_id=product_id or f"prod-{sku or price}",
            sku=sku or f"SKU-{price}",
            price=price,
            stock=stock,
            weight=weight,
            collection_ids=collection_ids,
        )
        return _save(variant)

    return _make


@pytest.fixture()
def variant(make_variant):
    """$50.00, 10 in stock."""
    return make_variant(price="50.00", stock=10, product_id="prod-001", sku="SKU-001")


@pytest.fixture()
def ca_tax():
    return _save(
        TaxJurisdiction.register(
            tenant_id=TENANT,
            name="California",
            jurisdiction_type="state",
            country="US",
            state_code="CA",
            rate="0.0725",
            effective_from=yesterday(),
        )
    )


@pytest.fixture()
def us_tax():
    return _save(
        TaxJurisdiction.register(
            tenant_id=TENANT,
            name="United States",
            jurisdiction_type="country",
            country="US",
            rate="0.05",
            effective_from=yesterday(),
        )
    )


@pytest.fixture()
def flat_shipping():
    return _save(
        ShippingMethod.create(
            tenant_id=TENANT,
            name="Standard",
            calculation_type="flat_rate",
            base_rate="5.99",
            carrier="usps",
            estimated_days_min=3,
            estimated_days_max=5,
        )
    )


@pytest.fixture()
def free_over_50_shipping():
    return _save(
        ShippingMethod.create(
            tenant_id=TENANT,
            name="Free over $50",
            calculation_type="free_threshold",
            base_rate="7.50",
            free_shipping_threshold="50.00",
            display_order=1,
        )
    )


@pytest.fixture()
def make_code():
    def _make(code="SAVE20", discount_type="percentage", value="20", minimum=None, usage_limit=None, **discount_kw):
        discount = _save(
            Discount.create(
                tenant_id=discount_kw.pop("tenant_id", TENANT),
                name=discount_kw.pop("name", f"{code} promotion"),
                discount_type=discount_type,
                value=value,
                scope="code",
                starts_at=discount_kw.pop("starts_at", yesterday()),
                **discount_kw,
            )
        )
        return _save(
            DiscountCode.issue(
                tenant_id=discount.tenant_id,
                discount_id=discount.id,
                code=code,
                usage_limit=usage_limit,
                minimum_order_value=minimum,
            )
        )

    return _make


@pytest.fixture()
def save20(make_code):
    """20% off, $50 minimum."""
    return make_code("SAVE20", "percentage", "20", minimum="50.00")
