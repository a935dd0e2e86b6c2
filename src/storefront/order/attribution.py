"""Post-commit campaign attribution for placed orders.

Runs as an event handler on ``OrderPlaced``, so it only ever sees orders that
committed. Any failure is logged and dropped; the order is already final.
"""

import structlog
from protean import handle

from storefront.attribution import get_gateway
from storefront.attribution.port import AttributionRequest
from storefront.domain import storefront
from storefront.order.events import OrderPlaced
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.event_handler(part_of=Order)
class OrderAttributionHandler:
    @handle(OrderPlaced)
    def attribute_order(self, event: OrderPlaced) -> None:
        if not event.session_id:
            return

        try:
            get_gateway().attribute_order(
                AttributionRequest(
                    session_id=event.session_id,
                    order_id=str(event.order_id),
                    customer_id=str(event.customer_id),
                    order_total=event.total,
                    tenant_id=str(event.tenant_id),
                )
            )
        except Exception as exc:
            logger.error(
                "Order attribution failed",
                order_id=str(event.order_id),
                session_id=event.session_id,
                error=str(exc),
            )
            return

        logger.info("Order attributed to session", order_id=str(event.order_id), session_id=event.session_id)
