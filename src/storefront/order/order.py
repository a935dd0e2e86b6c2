"""Order aggregate — the durable record of a completed checkout.

An order is created once by ``OrderPlacement`` with every amount already
resolved, plus snapshots of the tax jurisdiction and shipping method used so
later configuration changes never alter it. Afterwards only status
transitions and note appends mutate it.

State machine:
    pending → processing → shipped → delivered → refunded
    pending/processing → cancelled → refunded
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.order.events import OrderCancelled, OrderNoteAdded, OrderPlaced, OrderRefunded, OrderStatusChanged
from storefront.shared.clock import utc_now
from storefront.shared.money import money_str, round_money, to_decimal
from storefront.shared.tenancy import get_for_tenant


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


_OPEN_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.SHIPPED}

# Open orders may move to any other status; delivered and cancelled only to refunded
_VALID_TRANSITIONS = {status: set(OrderStatus) - {status} for status in _OPEN_STATES} | {
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING}
_REFUNDABLE_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

NOTE_SEPARATOR = "\n\n"


def restores_stock(current: OrderStatus, target: OrderStatus) -> bool:
    """Stock goes back on entering cancelled, and on refunding a delivered order.

    Refunding a cancelled order does not restore again; cancelling already did.
    """
    if target == OrderStatus.CANCELLED:
        return True
    return current == OrderStatus.DELIVERED and target == OrderStatus.REFUNDED


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class TaxSnapshot:
    """The jurisdiction that priced the order's tax, frozen at placement."""

    jurisdiction_id = Identifier()
    name = String(required=True, max_length=100)
    rate = String(required=True, max_length=12)
    taxable_amount = String(max_length=20)
    exempt_amount = String(max_length=20)


@storefront.value_object(part_of="Order")
class ShippingSnapshot:
    method_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    carrier = String(max_length=20)
    cost = String(required=True, max_length=20)
    estimated_delivery_date = Date()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    variant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(max_length=64)
    title = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = String(required=True, max_length=20)
    total_price = String(required=True, max_length=20)


@storefront.entity(part_of="Order")
class OrderDiscount:
    """Which discount and code were applied, and for exactly how much."""

    discount_id = Identifier(required=True)
    discount_code_id = Identifier()
    code = String(max_length=50)
    amount = String(required=True, max_length=20)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    tenant_id = Identifier(required=True)
    order_number = String(required=True, max_length=32)
    customer_id = Identifier(required=True)
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    subtotal = String(required=True, max_length=20)
    discount_amount = String(default="0.00", max_length=20)
    tax_amount = String(default="0.00", max_length=20)
    shipping_amount = String(default="0.00", max_length=20)
    total = String(required=True, max_length=20)
    currency = String(max_length=3, default="USD")
    tax = ValueObject(TaxSnapshot)
    shipping = ValueObject(ShippingSnapshot)
    items = HasMany(OrderItem)
    discounts = HasMany(OrderDiscount)
    campaign_id = Identifier()
    session_id = String(max_length=255)
    notes = Text()
    placed_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_add_up(self):
        expected = round_money(
            to_decimal(self.subtotal)
            - to_decimal(self.discount_amount)
            + to_decimal(self.tax_amount)
            + to_decimal(self.shipping_amount)
        )
        if expected != round_money(self.total):
            raise ValidationError({"total": ["Order total must equal subtotal - discount + tax + shipping"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        tenant_id,
        order_number,
        customer_id,
        shipping_address_id,
        billing_address_id,
        items,
        subtotal,
        discount_amount,
        tax_amount,
        shipping_amount,
        tax=None,
        shipping=None,
        discount=None,
        currency="USD",
        notes=None,
        campaign_id=None,
        session_id=None,
    ):
        """Build a pending order from fully resolved pricing.

        ``items`` are ``OrderItem`` snapshots and ``discount`` an optional
        ``OrderDiscount``; nothing is persisted here.
        """
        items = list(items)
        if not items:
            raise ValidationError({"items": ["An order must contain at least one item"]})

        now = utc_now()
        total = (
            round_money(subtotal)
            - round_money(discount_amount)
            + round_money(tax_amount)
            + round_money(shipping_amount)
        )
        order = cls(
            tenant_id=tenant_id,
            order_number=order_number,
            customer_id=customer_id,
            shipping_address_id=shipping_address_id,
            billing_address_id=billing_address_id,
            status=OrderStatus.PENDING.value,
            subtotal=money_str(subtotal),
            discount_amount=money_str(discount_amount),
            tax_amount=money_str(tax_amount),
            shipping_amount=money_str(shipping_amount),
            total=money_str(total),
            currency=currency or "USD",
            tax=tax,
            shipping=shipping,
            items=items,
            discounts=[discount] if discount is not None else [],
            campaign_id=campaign_id,
            session_id=session_id,
            notes=notes,
            placed_at=now,
            updated_at=now,
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                tenant_id=str(tenant_id),
                order_number=order_number,
                customer_id=str(customer_id),
                total=order.total,
                discount_code=discount.code if discount is not None else None,
                session_id=session_id,
                campaign_id=campaign_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Notes
    # -------------------------------------------------------------------
    def add_note(self, note: str) -> None:
        """Append ``note`` after a blank line; earlier notes are never replaced."""
        note = (note or "").strip()
        if not note:
            raise ValidationError({"note": ["Note cannot be empty"]})
        self.notes = f"{self.notes}{NOTE_SEPARATOR}{note}" if self.notes else note
        self.updated_at = utc_now()

        self.raise_(OrderNoteAdded(order_id=str(self.id), tenant_id=str(self.tenant_id), note=note))

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target: OrderStatus) -> OrderStatus:
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})
        return current

    def transition_to(self, target, reason: str | None = None) -> bool:
        """Move to ``target`` and report whether stock must be put back.

        Returns True when this transition restores the items' stock; the
        caller owns the variants and applies the restoration.
        """
        target = OrderStatus(target)
        current = self._assert_can_transition(target)
        now = utc_now()

        self.status = target.value
        self.updated_at = now
        restore = restores_stock(current, target)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                tenant_id=str(self.tenant_id),
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

        if target == OrderStatus.CANCELLED:
            if reason:
                self.add_note(f"Cancellation reason: {reason}")
            self.raise_(
                OrderCancelled(order_id=str(self.id), tenant_id=str(self.tenant_id), reason=reason, cancelled_at=now)
            )
        elif target == OrderStatus.REFUNDED:
            if reason:
                self.add_note(f"Refund reason: {reason}")
            self.raise_(
                OrderRefunded(
                    order_id=str(self.id),
                    tenant_id=str(self.tenant_id),
                    reason=reason,
                    stock_restored=restore,
                    refunded_at=now,
                )
            )
        return restore

    def cancel(self, reason: str | None = None) -> bool:
        current = OrderStatus(self.status)
        if current not in _CANCELLABLE_STATES:
            raise ValidationError({"status": [f"Cannot cancel an order that is {current.value}"]})
        return self.transition_to(OrderStatus.CANCELLED, reason)

    def refund(self, reason: str | None = None) -> bool:
        current = OrderStatus(self.status)
        if current not in _REFUNDABLE_STATES:
            raise ValidationError({"status": [f"Cannot refund an order that is {current.value}"]})
        return self.transition_to(OrderStatus.REFUNDED, reason)


@storefront.repository(part_of=Order)
class OrderRepository:
    def get_for_tenant(self, tenant_id: str, order_id: str) -> Order:
        return get_for_tenant(Order, tenant_id, order_id)

    def find_by_number(self, tenant_id: str, order_number: str) -> Order | None:
        orders = self._dao.query.filter(tenant_id=tenant_id, order_number=order_number).all().items
        return orders[0] if orders else None

    def for_customer(self, tenant_id: str, customer_id: str) -> list[Order]:
        return self._dao.query.filter(tenant_id=tenant_id, customer_id=customer_id).all().items

    def with_status(self, tenant_id: str, status: str) -> list[Order]:
        return self._dao.query.filter(tenant_id=tenant_id, status=status).all().items
