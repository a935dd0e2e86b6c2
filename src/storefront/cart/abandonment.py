"""Cart expiry sweep — command and handler.

Meant to be triggered periodically by an external scheduler. Active carts
whose ``expires_at`` lies in the past are marked abandoned.
"""

import structlog
from protean import handle
from protean.fields import DateTime
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.shared.clock import utc_now

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class AbandonExpiredCarts:
    as_of = DateTime()  # Optional: defaults to now


@storefront.command_handler(part_of=Cart)
class CartAbandonmentHandler:
    @handle(AbandonExpiredCarts)
    def abandon_expired(self, command):
        as_of = command.as_of or utc_now()
        repo = current_domain.repository_for(Cart)

        expired = [cart for cart in repo.active() if cart.is_expired(as_of)]
        for cart in expired:
            cart.abandon()
            repo.add(cart)
            logger.info(
                "Marked cart as abandoned",
                cart_id=str(cart.id),
                tenant_id=str(cart.tenant_id),
                expires_at=str(cart.expires_at),
            )

        logger.info("Cart expiry sweep complete", abandoned_count=len(expired))
        return len(expired)
