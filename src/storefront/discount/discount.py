"""Discounts and discount codes.

A discount's scope decides how it becomes applicable: store-wide discounts
apply to everything, collection/product/variant discounts apply through their
targets, and code-scoped discounts apply only when one of their codes is
presented at checkout.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.shared.clock import as_utc, utc_now, within_window
from storefront.shared.money import ZERO, money_str, percentage_of, round_money, to_decimal
from storefront.shared.tenancy import find_for_tenant, get_for_tenant


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


class DiscountScope(Enum):
    STORE_WIDE = "store_wide"
    COLLECTION = "collection"
    PRODUCT = "product"
    VARIANT = "variant"
    CODE = "code"


class TargetType(Enum):
    COLLECTION = "collection"
    PRODUCT = "product"
    VARIANT = "variant"


_TARGET_FOR_SCOPE = {
    DiscountScope.COLLECTION.value: TargetType.COLLECTION.value,
    DiscountScope.PRODUCT.value: TargetType.PRODUCT.value,
    DiscountScope.VARIANT.value: TargetType.VARIANT.value,
}


class DiscountCodeRejected(ValidationError):
    """A discount code failed validation.

    ``reason`` is one of ``not_found``, ``inactive``, ``usage_limit_reached``,
    ``below_minimum``, ``discount_inactive``, ``not_started`` or ``expired``.
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__({"discount_code": [message]})


@storefront.entity(part_of="Discount")
class DiscountTarget:
    target_type = String(choices=TargetType, required=True)
    target_id = Identifier(required=True)


@storefront.aggregate
class Discount:
    tenant_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    description = Text()
    discount_type = String(choices=DiscountType, required=True)
    value = String(required=True, max_length=20)
    scope = String(choices=DiscountScope, required=True)
    is_active = Boolean(default=True)
    priority = Integer(default=0)
    starts_at = DateTime(required=True)
    ends_at = DateTime()
    targets = HasMany(DiscountTarget)

    @invariant.post
    def value_must_fit_the_type(self):
        value = to_decimal(self.value, "value")
        if value <= 0:
            raise ValidationError({"value": ["Discount value must be greater than zero"]})
        if self.discount_type == DiscountType.PERCENTAGE.value and value > 100:
            raise ValidationError({"value": ["A percentage discount cannot exceed 100"]})

    @invariant.post
    def window_must_be_ordered(self):
        if self.ends_at and self.starts_at and as_utc(self.ends_at) <= as_utc(self.starts_at):
            raise ValidationError({"ends_at": ["ends_at must be after starts_at"]})

    @classmethod
    def create(
        cls,
        tenant_id,
        name,
        discount_type,
        value,
        scope,
        starts_at=None,
        ends_at=None,
        priority=0,
        description=None,
    ):
        return cls(
            tenant_id=tenant_id,
            name=name,
            description=description,
            discount_type=discount_type,
            value=str(to_decimal(value, "value")),
            scope=scope,
            priority=priority or 0,
            starts_at=starts_at or utc_now(),
            ends_at=ends_at,
        )

    @property
    def value_decimal(self) -> Decimal:
        return to_decimal(self.value)

    def is_current(self, at: datetime | None = None) -> bool:
        return bool(self.is_active) and within_window(self.starts_at, self.ends_at, at)

    def attach_targets(self, target_type: str, target_ids) -> int:
        """Attach targets; only the target type matching the scope is accepted."""
        expected = _TARGET_FOR_SCOPE.get(self.scope)
        if expected is None or expected != target_type:
            raise ValidationError({"target_type": [f"A {self.scope} discount cannot target {target_type}s"]})

        existing = {str(t.target_id) for t in self.targets}
        added = 0
        for target_id in target_ids:
            if str(target_id) in existing:
                continue
            self.add_targets(DiscountTarget(target_type=target_type, target_id=target_id))
            existing.add(str(target_id))
            added += 1
        return added

    def targets_of(self, target_type: str) -> set[str]:
        return {str(t.target_id) for t in self.targets if t.target_type == target_type}

    def applies_to(self, product_id=None, collection_ids=(), variant_id=None) -> bool:
        if self.scope == DiscountScope.STORE_WIDE.value:
            return True
        if self.scope == DiscountScope.PRODUCT.value:
            return product_id is not None and str(product_id) in self.targets_of(TargetType.PRODUCT.value)
        if self.scope == DiscountScope.VARIANT.value:
            return variant_id is not None and str(variant_id) in self.targets_of(TargetType.VARIANT.value)
        if self.scope == DiscountScope.COLLECTION.value:
            return bool({str(c) for c in collection_ids} & self.targets_of(TargetType.COLLECTION.value))
        return False

    def amount_for(self, total) -> Decimal:
        """Discount on ``total``; never more than the total itself."""
        total = to_decimal(total)
        if total <= 0:
            return ZERO
        if self.discount_type == DiscountType.PERCENTAGE.value:
            amount = percentage_of(total, self.value_decimal)
        else:
            amount = round_money(self.value_decimal)
        return min(amount, round_money(total))

    def deactivate(self) -> None:
        if not self.is_active:
            raise ValidationError({"is_active": ["Discount is already inactive"]})
        self.is_active = False


@storefront.aggregate
class DiscountCode:
    tenant_id = Identifier(required=True)
    discount_id = Identifier(required=True)
    code = String(required=True, max_length=50)
    usage_limit = Integer(min_value=1)
    usage_count = Integer(default=0, min_value=0)
    minimum_order_value = String(max_length=20)
    is_active = Boolean(default=True)

    @invariant.post
    def usage_cannot_exceed_limit(self):
        if self.usage_limit is not None and (self.usage_count or 0) > self.usage_limit:
            raise ValidationError({"usage_count": ["Usage count cannot exceed the usage limit"]})

    @staticmethod
    def normalise(code: str) -> str:
        return (code or "").strip().upper()

    @classmethod
    def issue(cls, tenant_id, discount_id, code, usage_limit=None, minimum_order_value=None):
        return cls(
            tenant_id=tenant_id,
            discount_id=discount_id,
            code=cls.normalise(code),
            usage_limit=usage_limit,
            minimum_order_value=money_str(minimum_order_value) if minimum_order_value else None,
        )

    @property
    def limit_reached(self) -> bool:
        return self.usage_limit is not None and (self.usage_count or 0) >= self.usage_limit

    def record_usage(self) -> None:
        """Count one redemption; refuses to go past the usage limit."""
        if self.limit_reached:
            raise DiscountCodeRejected("usage_limit_reached", f"Discount code {self.code} has reached its usage limit")
        self.usage_count = (self.usage_count or 0) + 1

    def deactivate(self) -> None:
        if not self.is_active:
            raise ValidationError({"is_active": ["Discount code is already inactive"]})
        self.is_active = False


@storefront.repository(part_of=Discount)
class DiscountRepository:
    def get_for_tenant(self, tenant_id: str, discount_id: str) -> Discount:
        return get_for_tenant(Discount, tenant_id, discount_id)

    def active_for_tenant(self, tenant_id: str) -> list[Discount]:
        return find_for_tenant(Discount, tenant_id, is_active=True)


@storefront.repository(part_of=DiscountCode)
class DiscountCodeRepository:
    def get_for_tenant(self, tenant_id: str, code_id: str) -> DiscountCode:
        return get_for_tenant(DiscountCode, tenant_id, code_id)

    def find_by_code(self, tenant_id: str, code: str) -> DiscountCode | None:
        matches = find_for_tenant(DiscountCode, tenant_id, code=DiscountCode.normalise(code))
        return matches[0] if matches else None
