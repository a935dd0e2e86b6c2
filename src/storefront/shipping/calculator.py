"""Shipping option pricing.

Each calculation type maps to exactly one pricer in ``_PRICERS``; importing
this module fails if a ``CalculationType`` member has no pricer, so a new type
cannot silently fall through to a default branch.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.shared.clock import utc_now
from storefront.shared.money import ZERO, round_money, to_decimal
from storefront.shipping.method import CalculationType, ShippingMethod


@dataclass(frozen=True)
class ShippingOption:
    method_id: str
    name: str
    display_name: str
    description: str | None
    carrier: str
    calculation_type: str
    cost: Decimal
    is_free: bool
    estimated_days_min: int | None
    estimated_days_max: int | None


def _tiered(method: ShippingMethod, value: Decimal) -> Decimal:
    for tier in method.sorted_tiers:
        if tier.contains(value):
            return to_decimal(tier.rate)
    return to_decimal(method.base_rate)


def _flat_rate(method, subtotal, weight):
    return to_decimal(method.base_rate)


def _free_threshold(method, subtotal, weight):
    # Zeroing by threshold is applied uniformly in ``price_method``
    return to_decimal(method.base_rate)


def _weight_based(method, subtotal, weight):
    return _tiered(method, weight)


def _price_tier(method, subtotal, weight):
    return _tiered(method, subtotal)


_PRICERS = {
    CalculationType.FLAT_RATE: _flat_rate,
    CalculationType.FREE_THRESHOLD: _free_threshold,
    CalculationType.WEIGHT_BASED: _weight_based,
    CalculationType.PRICE_TIER: _price_tier,
}

_missing = set(CalculationType) - set(_PRICERS)
if _missing:
    raise RuntimeError(f"No shipping pricer registered for: {sorted(t.value for t in _missing)}")


def price_method(method: ShippingMethod, subtotal, weight=None) -> ShippingOption:
    subtotal = to_decimal(subtotal)
    weight = to_decimal(weight)

    cost = _PRICERS[CalculationType(method.calculation_type)](method, subtotal, weight)
    is_free = False
    if method.free_shipping_threshold and subtotal >= to_decimal(method.free_shipping_threshold):
        cost = ZERO
        is_free = True

    return ShippingOption(
        method_id=str(method.id),
        name=method.name,
        display_name=method.display_name or method.name,
        description=method.description,
        carrier=method.carrier,
        calculation_type=method.calculation_type,
        cost=round_money(cost),
        is_free=is_free,
        estimated_days_min=method.estimated_days_min,
        estimated_days_max=method.estimated_days_max,
    )


def estimated_delivery_date(option: ShippingOption, now: datetime | None = None) -> date | None:
    if option.estimated_days_max is None:
        return None
    return ((now or utc_now()) + timedelta(days=option.estimated_days_max)).date()


class ShippingCalculator:
    """Prices every active method of a tenant.

    ``methods`` only needs ``active_for_tenant(tenant_id)`` returning methods
    in display order.
    """

    def __init__(self, methods):
        self.methods = methods

    @classmethod
    def from_domain(cls) -> "ShippingCalculator":
        return cls(current_domain.repository_for(ShippingMethod))

    def options(self, tenant_id: str, subtotal, weight=None) -> list[ShippingOption]:
        return [price_method(method, subtotal, weight) for method in self.methods.active_for_tenant(tenant_id)]

    def find_option(self, tenant_id: str, method_id: str, subtotal, weight=None) -> ShippingOption | None:
        return next(
            (option for option in self.options(tenant_id, subtotal, weight) if option.method_id == str(method_id)),
            None,
        )

    def require_option(self, tenant_id: str, method_id: str, subtotal, weight=None) -> ShippingOption:
        """Option for ``method_id``; a method missing from the current options is a business-rule error."""
        option = self.find_option(tenant_id, method_id, subtotal, weight)
        if option is None:
            raise ValidationError({"shipping_method_id": [f"Shipping method {method_id} is not available"]})
        return option
