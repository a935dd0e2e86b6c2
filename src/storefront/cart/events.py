"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Cart")
class CartItemAdded:
    """A variant was added to the cart, or its quantity increased by re-adding it."""

    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = String(required=True)


@storefront.event(part_of="Cart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartDiscountCodeApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    discount_code_id = Identifier(required=True)
    code = String(required=True)


@storefront.event(part_of="Cart")
class CartDiscountCodeRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    code = String(required=True)


@storefront.event(part_of="Cart")
class CartConverted:
    """The cart was checked out into an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    order_id = Identifier(required=True)


@storefront.event(part_of="Cart")
class CartMerged:
    """A guest cart's items were folded into a customer's cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    target_cart_id = Identifier(required=True)
    items_merged = Integer(required=True)


@storefront.event(part_of="Cart")
class CartAbandoned:
    __version__ = 1

    cart_id = Identifier(required=True)
    tenant_id = Identifier(required=True)
    abandoned_at = DateTime(required=True)
