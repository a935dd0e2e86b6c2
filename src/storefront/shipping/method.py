"""Shipping methods configured per tenant, with optional rate tiers."""

from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.shared.money import money_str, to_decimal, validate_non_negative
from storefront.shared.tenancy import find_for_tenant, get_for_tenant


class CalculationType(Enum):
    FLAT_RATE = "flat_rate"
    FREE_THRESHOLD = "free_threshold"
    WEIGHT_BASED = "weight_based"
    PRICE_TIER = "price_tier"


class ShippingCarrier(Enum):
    USPS = "usps"
    FEDEX = "fedex"
    UPS = "ups"
    DHL = "dhl"
    OTHER = "other"


_TIERED_TYPES = {CalculationType.WEIGHT_BASED.value, CalculationType.PRICE_TIER.value}


@storefront.entity(part_of="ShippingMethod")
class ShippingRateTier:
    """A ``[min_value, max_value)`` bracket over weight or subtotal; no max means unbounded."""

    min_value = String(required=True, max_length=20)
    max_value = String(max_length=20)
    rate = String(required=True, max_length=20)

    @property
    def lower(self) -> Decimal:
        return to_decimal(self.min_value)

    @property
    def upper(self) -> Decimal | None:
        return to_decimal(self.max_value) if self.max_value else None

    def contains(self, value: Decimal) -> bool:
        if value < self.lower:
            return False
        return self.upper is None or value < self.upper


@storefront.aggregate
class ShippingMethod:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    display_name = String(max_length=100)
    description = Text()
    carrier = String(choices=ShippingCarrier, default=ShippingCarrier.OTHER.value)
    calculation_type = String(choices=CalculationType, required=True)
    base_rate = String(required=True, max_length=20)
    free_shipping_threshold = String(max_length=20)
    estimated_days_min = Integer(min_value=0)
    estimated_days_max = Integer(min_value=0)
    display_order = Integer(default=0)
    is_active = Boolean(default=True)
    rate_tiers = HasMany(ShippingRateTier)

    @invariant.post
    def rates_must_be_non_negative(self):
        validate_non_negative(self.base_rate, "base_rate")
        if self.free_shipping_threshold:
            validate_non_negative(self.free_shipping_threshold, "free_shipping_threshold")

    @invariant.post
    def free_threshold_method_needs_a_threshold(self):
        if self.calculation_type == CalculationType.FREE_THRESHOLD.value and not self.free_shipping_threshold:
            raise ValidationError({"free_shipping_threshold": ["A free_threshold method needs a threshold"]})

    @invariant.post
    def delivery_estimate_must_be_ordered(self):
        if (
            self.estimated_days_min is not None
            and self.estimated_days_max is not None
            and self.estimated_days_min > self.estimated_days_max
        ):
            raise ValidationError({"estimated_days_max": ["estimated_days_max must not be below estimated_days_min"]})

    @classmethod
    def create(
        cls,
        tenant_id,
        name,
        calculation_type,
        base_rate,
        display_name=None,
        description=None,
        carrier=ShippingCarrier.OTHER.value,
        free_shipping_threshold=None,
        estimated_days_min=None,
        estimated_days_max=None,
        display_order=0,
    ):
        return cls(
            tenant_id=tenant_id,
            name=name,
            display_name=display_name or name,
            description=description,
            carrier=carrier or ShippingCarrier.OTHER.value,
            calculation_type=calculation_type,
            base_rate=money_str(base_rate),
            free_shipping_threshold=money_str(free_shipping_threshold) if free_shipping_threshold else None,
            estimated_days_min=estimated_days_min,
            estimated_days_max=estimated_days_max,
            display_order=display_order or 0,
        )

    @property
    def sorted_tiers(self) -> list[ShippingRateTier]:
        return sorted(self.rate_tiers, key=lambda tier: tier.lower)

    def add_rate_tier(self, min_value, rate, max_value=None) -> ShippingRateTier:
        if self.calculation_type not in _TIERED_TYPES:
            raise ValidationError(
                {"calculation_type": [f"Rate tiers do not apply to {self.calculation_type} shipping methods"]}
            )
        lower = validate_non_negative(min_value, "min_value")
        if max_value is not None and to_decimal(max_value, "max_value") <= lower:
            raise ValidationError({"max_value": ["max_value must be greater than min_value"]})
        validate_non_negative(rate, "rate")

        tier = ShippingRateTier(
            min_value=str(lower),
            max_value=str(to_decimal(max_value)) if max_value is not None else None,
            rate=money_str(rate),
        )
        self.add_rate_tiers(tier)
        return tier

    def deactivate(self) -> None:
        if not self.is_active:
            raise ValidationError({"is_active": ["Shipping method is already inactive"]})
        self.is_active = False


@storefront.repository(part_of=ShippingMethod)
class ShippingMethodRepository:
    def get_for_tenant(self, tenant_id: str, method_id: str) -> ShippingMethod:
        return get_for_tenant(ShippingMethod, tenant_id, method_id)

    def active_for_tenant(self, tenant_id: str) -> list[ShippingMethod]:
        methods = find_for_tenant(ShippingMethod, tenant_id, is_active=True)
        return sorted(methods, key=lambda m: (m.display_order or 0, m.name))
