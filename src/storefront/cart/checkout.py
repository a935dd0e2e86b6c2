"""Checkout — turns the session's active cart into an order.

Placement and the cart's conversion share one unit of work: either the order
exists and the cart is converted, or neither happened.
"""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.domain import storefront
from storefront.order.placement import OrderPlacement, PlacementRequest, RequestedItem


@storefront.command(part_of="Cart")
class Checkout:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    customer_id = Identifier()
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier(required=True)
    shipping_method_id = Identifier(required=True)
    discount_code = String(max_length=50)
    notes = Text()
    campaign_id = Identifier()
    visit_session_id = String(max_length=255)


@storefront.command_handler(part_of=Cart)
class CheckoutHandler:
    @handle(Checkout)
    def checkout(self, command):
        """Returns the id of the placed order."""
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)
        if not cart.items:
            raise ValidationError({"cart": ["Cannot check out an empty cart"]})

        customer_id = command.customer_id or cart.customer_id
        if not customer_id:
            raise ValidationError({"customer_id": ["A customer is required to check out"]})

        order = OrderPlacement().place(
            PlacementRequest(
                tenant_id=command.tenant_id,
                customer_id=str(customer_id),
                shipping_address_id=command.shipping_address_id,
                billing_address_id=command.billing_address_id,
                shipping_method_id=command.shipping_method_id,
                items=[RequestedItem(str(item.variant_id), item.quantity) for item in cart.items],
                discount_code=command.discount_code or cart.discount_code,
                notes=command.notes,
                campaign_id=command.campaign_id,
                session_id=command.visit_session_id,
            )
        )

        cart.assign_customer(customer_id)
        cart.mark_converted(order.id)
        repo.add(cart)
        return str(order.id)
