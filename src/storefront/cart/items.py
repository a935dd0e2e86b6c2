"""Cart item management — commands and handler.

Carts are addressed by ``(tenant_id, session_id)``. Adding to a session
without an active cart opens one.
"""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalog.variant import ProductVariant
from storefront.domain import storefront


@storefront.command(part_of="Cart")
class AddCartItem:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    customer_id = Identifier()


@storefront.command(part_of="Cart")
class UpdateCartItemQuantity:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    item_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=0)


@storefront.command(part_of="Cart")
class RemoveCartItem:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)
    item_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    tenant_id = Identifier(required=True)
    session_id = String(required=True, max_length=255)


@storefront.command_handler(part_of=Cart)
class CartItemsHandler:
    @handle(AddCartItem)
    def add_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.active_for_session(command.tenant_id, command.session_id)
        if cart is None:
            cart = Cart.open(command.tenant_id, command.session_id, command.customer_id)
        else:
            cart.assign_customer(command.customer_id)

        variant = current_domain.repository_for(ProductVariant).get_for_tenant(command.tenant_id, command.variant_id)
        cart.add_item(variant, command.quantity)
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItemQuantity)
    def update_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)
        variant = None
        if command.quantity > 0:
            item = next((i for i in cart.items if str(i.id) == str(command.item_id)), None)
            if item is not None:
                variant = current_domain.repository_for(ProductVariant).get_for_tenant(
                    command.tenant_id, item.variant_id
                )
        cart.update_item_quantity(command.item_id, command.quantity, variant)
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)
        cart.remove_item(command.item_id)
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.require_active(command.tenant_id, command.session_id)
        cart.clear()
        repo.add(cart)
        return str(cart.id)
