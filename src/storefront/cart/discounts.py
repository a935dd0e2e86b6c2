"""Discount codes on carts — commands and handler.

Applying a code validates it against the cart's current subtotal but does not
redeem it; redemption happens only when an order is placed.
"""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.discount.engine import DiscountEngine
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class ApplyDiscountCode:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    code = String(required=True, max_length=50)


@storefront.command(part_of="Cart")
class RemoveDiscountCode:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)


@storefront.command_handler(part_of=Cart)
class CartDiscountHandler:
    @handle(ApplyDiscountCode)
    def apply_code(self, command):
        """Returns the validated ``CodeQuote`` for the cart's current subtotal."""
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)

        quote = DiscountEngine.from_domain().validate_code(command.tenant_id, command.code, cart.computed_subtotal())
        cart.attach_discount_code(quote.code_id, quote.code.code)
        repo.add(cart)
        return quote

    @handle(RemoveDiscountCode)
    def remove_code(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)
        cart.detach_discount_code()
        repo.add(cart)
        return str(cart.id)
