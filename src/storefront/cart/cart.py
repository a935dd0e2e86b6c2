"""Cart aggregate — the shopper's working set of items before checkout.

A cart belongs to one tenant and one session, optionally to a customer. Unit
prices are snapshotted when an item is added and are not re-priced while the
item stays in the cart. The cached totals are refreshed by
``CalculateCartTotals`` and always satisfy
``total == subtotal - discount + tax + shipping``.

Carts are never deleted by the pipeline; they leave the active state through
conversion, merging or abandonment.
"""

import os
from datetime import datetime, timedelta
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from storefront.cart.events import (
    CartAbandoned,
    CartCleared,
    CartConverted,
    CartDiscountCodeApplied,
    CartDiscountCodeRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    CartMerged,
)
from storefront.domain import storefront
from storefront.shared.clock import as_utc, utc_now
from storefront.shared.money import ZERO, line_total, money_str, round_money, to_decimal
from storefront.shared.tenancy import not_found


class CartStatus(Enum):
    ACTIVE = "active"
    ABANDONED = "abandoned"
    CONVERTED = "converted"
    MERGED = "merged"


def cart_ttl() -> timedelta:
    return timedelta(days=int(os.environ.get("CART_TTL_DAYS", "7")))


@storefront.entity(part_of="Cart")
class CartItem:
    variant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = String(required=True, max_length=20)
    unit_weight = Float(default=0.0)
    added_at = DateTime()

    @property
    def line_total(self):
        return line_total(self.unit_price, self.quantity)


@storefront.aggregate
class Cart:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    items = HasMany(CartItem)
    subtotal = String(default="0.00", max_length=20)
    discount_total = String(default="0.00", max_length=20)
    tax_total = String(default="0.00", max_length=20)
    shipping_total = String(default="0.00", max_length=20)
    total = String(default="0.00", max_length=20)
    discount_code_id = Identifier()
    discount_code = String(max_length=50)
    expires_at = DateTime()
    last_activity_at = DateTime()
    created_at = DateTime()

    @invariant.post
    def total_must_add_up(self):
        expected = (
            to_decimal(self.subtotal)
            - to_decimal(self.discount_total)
            + to_decimal(self.tax_total)
            + to_decimal(self.shipping_total)
        )
        if round_money(expected) != round_money(self.total):
            raise ValidationError({"total": ["Cart total must equal subtotal - discount + tax + shipping"]})
        if to_decimal(self.total) < 0:
            raise ValidationError({"total": ["Cart total cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def open(cls, tenant_id, session_id, customer_id=None):
        now = utc_now()
        return cls(
            tenant_id=tenant_id,
            session_id=session_id,
            customer_id=customer_id,
            status=CartStatus.ACTIVE.value,
            created_at=now,
            last_activity_at=now,
            expires_at=now + cart_ttl(),
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return self.status == CartStatus.ACTIVE.value

    def _ensure_active(self, action: str) -> None:
        if not self.is_active:
            raise ValidationError({"status": [f"Cannot {action}: cart is {self.status}"]})

    def _touch(self) -> None:
        now = utc_now()
        self.last_activity_at = now
        self.expires_at = now + cart_ttl()

    def item_for_variant(self, variant_id) -> CartItem | None:
        return next((i for i in self.items if str(i.variant_id) == str(variant_id)), None)

    def _get_item(self, item_id) -> CartItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})
        return item

    def is_expired(self, at: datetime | None = None) -> bool:
        at = as_utc(at) or utc_now()
        return self.expires_at is not None and as_utc(self.expires_at) < at

    def computed_subtotal(self):
        return round_money(sum((item.line_total for item in self.items), ZERO))

    # -------------------------------------------------------------------
    # Ownership
    # -------------------------------------------------------------------
    def assign_customer(self, customer_id) -> None:
        if customer_id and str(self.customer_id or "") != str(customer_id):
            self.customer_id = customer_id
            self._touch()

    # -------------------------------------------------------------------
    # Items
    # -------------------------------------------------------------------
    def add_item(self, variant, quantity: int) -> CartItem:
        """Add ``quantity`` of ``variant``; re-adding a variant increases its line.

        The combined quantity must be covered by the variant's current stock.
        """
        self._ensure_active("add items")
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        existing = self.item_for_variant(variant.id)
        combined = quantity + (existing.quantity if existing else 0)
        variant.ensure_available(combined)

        if existing:
            existing.quantity = combined
            item = existing
        else:
            item = CartItem(
                variant_id=variant.id,
                product_id=variant.product_id,
                quantity=quantity,
                unit_price=money_str(variant.price),
                unit_weight=variant.weight or 0.0,
                added_at=utc_now(),
            )
            self.add_items(item)
        self._touch()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                tenant_id=str(self.tenant_id),
                item_id=str(item.id),
                variant_id=str(variant.id),
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
        )
        return item

    def update_item_quantity(self, item_id, quantity: int, variant=None) -> None:
        """Set an item's quantity; zero removes the item."""
        self._ensure_active("update items")
        item = self._get_item(item_id)
        if quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        if quantity == 0:
            self.remove_item(item_id)
            return
        if variant is not None:
            variant.ensure_available(quantity)

        previous = item.quantity
        item.quantity = quantity
        self._touch()

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                tenant_id=str(self.tenant_id),
                item_id=str(item.id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, item_id) -> None:
        self._ensure_active("remove items")
        item = self._get_item(item_id)
        self.remove_items(item)
        self._touch()

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                tenant_id=str(self.tenant_id),
                item_id=str(item_id),
                variant_id=str(item.variant_id),
            )
        )

    def clear(self) -> None:
        """Drop every item and the attached code, and zero the cached totals."""
        self._ensure_active("clear the cart")
        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self.discount_code_id = None
            self.discount_code = None
            self._set_totals(ZERO, ZERO, ZERO, ZERO)
        self._touch()

        self.raise_(CartCleared(cart_id=str(self.id), tenant_id=str(self.tenant_id)))

    # -------------------------------------------------------------------
    # Discount code
    # -------------------------------------------------------------------
    def attach_discount_code(self, code_id, code: str) -> None:
        self._ensure_active("apply a discount code")
        self.discount_code_id = code_id
        self.discount_code = code
        self._touch()

        self.raise_(
            CartDiscountCodeApplied(
                cart_id=str(self.id),
                tenant_id=str(self.tenant_id),
                discount_code_id=str(code_id),
                code=code,
            )
        )

    def detach_discount_code(self) -> None:
        self._ensure_active("remove a discount code")
        if not self.discount_code:
            raise ValidationError({"discount_code": ["No discount code is applied to this cart"]})
        code = self.discount_code
        with atomic_change(self):
            self.discount_code_id = None
            self.discount_code = None
            self._set_totals(
                to_decimal(self.subtotal), ZERO, to_decimal(self.tax_total), to_decimal(self.shipping_total)
            )
        self._touch()

        self.raise_(CartDiscountCodeRemoved(cart_id=str(self.id), tenant_id=str(self.tenant_id), code=code))

    # -------------------------------------------------------------------
    # Cached totals
    # -------------------------------------------------------------------
    def _set_totals(self, subtotal, discount, tax, shipping) -> None:
        self.subtotal = money_str(subtotal)
        self.discount_total = money_str(discount)
        self.tax_total = money_str(tax)
        self.shipping_total = money_str(shipping)
        self.total = money_str(round_money(subtotal) - round_money(discount) + round_money(tax) + round_money(shipping))

    def record_totals(self, subtotal, discount, tax, shipping) -> None:
        """Refresh the cached totals from a fresh calculation."""
        with atomic_change(self):
            self._set_totals(subtotal, discount, tax, shipping)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def mark_converted(self, order_id) -> None:
        self._ensure_active("check out")
        if not self.items:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})
        self.status = CartStatus.CONVERTED.value
        self.last_activity_at = utc_now()

        self.raise_(CartConverted(cart_id=str(self.id), tenant_id=str(self.tenant_id), order_id=str(order_id)))

    def mark_merged(self, target_cart_id, items_merged: int) -> None:
        self._ensure_active("merge")
        self.status = CartStatus.MERGED.value
        self.last_activity_at = utc_now()

        self.raise_(
            CartMerged(
                cart_id=str(self.id),
                tenant_id=str(self.tenant_id),
                target_cart_id=str(target_cart_id),
                items_merged=items_merged,
            )
        )

    def abandon(self) -> None:
        self._ensure_active("abandon")
        now = utc_now()
        self.status = CartStatus.ABANDONED.value

        self.raise_(CartAbandoned(cart_id=str(self.id), tenant_id=str(self.tenant_id), abandoned_at=now))


@storefront.repository(part_of=Cart)
class CartRepository:
    def active_for_session(self, tenant_id: str, session_id: str) -> Cart | None:
        carts = self._dao.query.filter(
            tenant_id=tenant_id, session_id=session_id, status=CartStatus.ACTIVE.value
        ).all().items
        if not carts:
            return None
        return max(carts, key=lambda c: as_utc(c.created_at))

    def require_active(self, tenant_id: str, session_id: str) -> Cart:
        cart = self.active_for_session(tenant_id, session_id)
        if cart is None:
            raise not_found("Cart for session", session_id)
        return cart

    def active(self) -> list[Cart]:
        return self._dao.query.filter(status=CartStatus.ACTIVE.value).all().items
