"""Cart lifecycle and totals — commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.totals import CartTotalsBreakdown, CartTotalsCalculator
from storefront.catalog.variant import InsufficientStock, ProductVariant
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Cart")
class GetOrCreateCart:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()


@storefront.command(part_of="Cart")
class CalculateCartTotals:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    shipping_address_id = Identifier()
    shipping_method_id = Identifier()


@storefront.command(part_of="Cart")
class MergeGuestCart:
    """Fold the guest session's cart into the signed-in customer's cart."""

    tenant_id = Identifier(required=True)
    guest_session_id = String(required=True, max_length=255)
    session_id = String(required=True, max_length=255)
    customer_id = Identifier(required=True)


@storefront.command_handler(part_of=Cart)
class CartManagementHandler:
    @handle(GetOrCreateCart)
    def get_or_create(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.active_for_session(command.tenant_id, command.session_id)
        if cart is None:
            cart = Cart.open(command.tenant_id, command.session_id, command.customer_id)
        else:
            cart.assign_customer(command.customer_id)
        repo.add(cart)
        return str(cart.id)

    @handle(CalculateCartTotals)
    def calculate_totals(self, command):
        """Price the cart, refresh its cached totals and return the result.

        Returns ``CartTotals`` or, when an address or method was given,
        ``CartTotalsBreakdown``.
        """
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)

        result = CartTotalsCalculator.from_domain().calculate(
            cart,
            shipping_address_id=command.shipping_address_id,
            shipping_method_id=command.shipping_method_id,
        )
        totals = result.totals if isinstance(result, CartTotalsBreakdown) else result
        cart.record_totals(totals.subtotal, totals.discount, totals.tax, totals.shipping)
        repo.add(cart)
        return result

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        repo = current_domain.repository_for(Cart)
        guest = repo.require_active(command.tenant_id, command.guest_session_id)

        target = repo.active_for_session(command.tenant_id, command.session_id)
        if target is None:
            target = Cart.open(command.tenant_id, command.session_id, command.customer_id)
        else:
            target.assign_customer(command.customer_id)

        variants = current_domain.repository_for(ProductVariant)
        merged = 0
        for item in guest.items:
            variant = variants.get_for_tenant(command.tenant_id, item.variant_id)
            try:
                target.add_item(variant, item.quantity)
                merged += 1
            except InsufficientStock as exc:
                logger.warning(
                    "Guest cart item not merged",
                    cart_id=str(guest.id),
                    variant_id=str(item.variant_id),
                    error=str(exc.messages),
                )

        if not target.discount_code and guest.discount_code:
            target.attach_discount_code(guest.discount_code_id, guest.discount_code)

        guest.mark_merged(target.id, merged)
        repo.add(target)
        repo.add(guest)
        return str(target.id)
