"""Domain events for the Order aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String, Text

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """An order was priced, persisted and its stock deducted.

    ``session_id`` is the marketing visit that led to the order, when known;
    attribution is driven from this event after the placing transaction commits.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    total = String(required=True)
    discount_code = String()
    session_id = String()
    campaign_id = Identifier()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    reason = Text()
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    reason = Text()
    stock_restored = Boolean(default=False)
    refunded_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderNoteAdded:
    __version__ = 1

    order_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    note = Text(required=True)
