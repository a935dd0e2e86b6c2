"""Order status changes — commands and handler.

Every transition goes through ``Order.transition_to``; when it reports that
stock must come back, the handler restores each item's quantity on its
variant inside the same unit of work.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.variant import ProductVariant
from storefront.domain import storefront
from storefront.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    status = String(choices=OrderStatus, required=True)
    reason = Text()


@storefront.command(part_of="Order")
class CancelOrder:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = Text()


@storefront.command(part_of="Order")
class RefundOrder:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = Text()


@storefront.command(part_of="Order")
class AddOrderNote:
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)
    note = Text(required=True)


def restore_order_stock(order: Order) -> int:
    """Put every item's quantity back on its variant; returns units restored.

    A variant deleted since placement raises ``ObjectNotFoundError`` and the
    whole status change is rolled back with the unit of work.
    """
    repo = current_domain.repository_for(ProductVariant)
    restored = 0
    for item in order.items:
        variant = repo.get_for_tenant(str(order.tenant_id), str(item.variant_id))
        variant.restore_stock(item.quantity)
        repo.add(variant)
        restored += item.quantity

    logger.info("Stock restored for order", order_id=str(order.id), units=restored)
    return restored


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    def _apply(self, command, change):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant_id, command.order_id)
        if change(order):
            restore_order_stock(order)
        repo.add(order)
        return str(order.id)

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        return self._apply(command, lambda order: order.transition_to(command.status, command.reason))

    @handle(CancelOrder)
    def cancel_order(self, command):
        return self._apply(command, lambda order: order.cancel(command.reason))

    @handle(RefundOrder)
    def refund_order(self, command):
        return self._apply(command, lambda order: order.refund(command.reason))

    @handle(AddOrderNote)
    def add_note(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get_for_tenant(command.tenant_id, command.order_id)
        order.add_note(command.note)
        repo.add(order)
        return str(order.id)
