"""Discount lookup, code validation and pricing.

Everything here is read-only. Redeeming a code (``DiscountCode.record_usage``)
happens only inside order placement.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from protean.utils.globals import current_domain

from storefront.discount.discount import Discount, DiscountCode, DiscountCodeRejected
from storefront.shared.clock import as_utc, utc_now
from storefront.shared.money import to_decimal


@dataclass(frozen=True)
class CodeQuote:
    """A validated code together with the amount it takes off ``order_total``."""

    code: DiscountCode
    discount: Discount
    order_total: Decimal
    amount: Decimal

    @property
    def code_id(self) -> str:
        return str(self.code.id)

    @property
    def discount_id(self) -> str:
        return str(self.discount.id)


@dataclass(frozen=True)
class BestDiscount:
    discount: Discount
    amount: Decimal


class DiscountEngine:
    """``discounts`` needs ``active_for_tenant`` and ``get_for_tenant``; ``codes`` needs ``find_by_code``."""

    def __init__(self, discounts, codes):
        self.discounts = discounts
        self.codes = codes

    @classmethod
    def from_domain(cls) -> "DiscountEngine":
        return cls(
            current_domain.repository_for(Discount),
            current_domain.repository_for(DiscountCode),
        )

    # -------------------------------------------------------------------
    # Automatic (non-code) discounts
    # -------------------------------------------------------------------
    def applicable_discounts(
        self,
        tenant_id: str,
        product_id=None,
        collection_ids=(),
        variant_id=None,
        at: datetime | None = None,
    ) -> list[Discount]:
        """Current store-wide and target-matched discounts, highest priority first."""
        matches = [
            discount
            for discount in self.discounts.active_for_tenant(tenant_id)
            if discount.is_current(at) and discount.applies_to(product_id, collection_ids, variant_id)
        ]
        return sorted(matches, key=lambda d: (-(d.priority or 0), d.name))

    def best_discount(
        self,
        tenant_id: str,
        price,
        product_id=None,
        collection_ids=(),
        variant_id=None,
        at: datetime | None = None,
    ) -> BestDiscount | None:
        """The applicable discount with the largest amount on ``price``; priority breaks ties."""
        best = None
        for discount in self.applicable_discounts(tenant_id, product_id, collection_ids, variant_id, at):
            amount = discount.amount_for(price)
            if best is None or amount > best.amount:
                best = BestDiscount(discount, amount)
        return best

    # -------------------------------------------------------------------
    # Codes
    # -------------------------------------------------------------------
    def validate_code(self, tenant_id: str, code: str, order_total, at: datetime | None = None) -> CodeQuote:
        """Check every rule for ``code`` against ``order_total`` and price it.

        Raises ``DiscountCodeRejected`` naming the first rule that failed.
        """
        at = as_utc(at) or utc_now()
        order_total = to_decimal(order_total)

        discount_code = self.codes.find_by_code(tenant_id, code) if code else None
        if discount_code is None:
            raise DiscountCodeRejected("not_found", f"Discount code {code} does not exist")
        if not discount_code.is_active:
            raise DiscountCodeRejected("inactive", f"Discount code {discount_code.code} is not active")
        if discount_code.limit_reached:
            raise DiscountCodeRejected(
                "usage_limit_reached", f"Discount code {discount_code.code} has reached its usage limit"
            )
        if discount_code.minimum_order_value:
            minimum = to_decimal(discount_code.minimum_order_value)
            if order_total < minimum:
                raise DiscountCodeRejected(
                    "below_minimum", f"Order total must be at least {minimum} to use {discount_code.code}"
                )

        discount = self.discounts.get_for_tenant(tenant_id, discount_code.discount_id)
        if not discount.is_active:
            raise DiscountCodeRejected("discount_inactive", f"The discount behind {discount_code.code} is not active")
        if discount.starts_at and at < as_utc(discount.starts_at):
            raise DiscountCodeRejected("not_started", f"Discount code {discount_code.code} is not valid yet")
        if discount.ends_at and at >= as_utc(discount.ends_at):
            raise DiscountCodeRejected("expired", f"Discount code {discount_code.code} has expired")

        return CodeQuote(
            code=discount_code,
            discount=discount,
            order_total=order_total,
            amount=discount.amount_for(order_total),
        )
