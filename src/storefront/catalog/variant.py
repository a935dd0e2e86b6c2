"""Product variants as seen by the pricing pipeline.

Catalogue management lives elsewhere; this context only needs a variant's
live price, its stock level and the product/collections it belongs to. Stock
is mutated exclusively through ``deduct_stock`` and ``restore_stock``.
"""

import json

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.shared.money import money_str, to_decimal, validate_non_negative
from storefront.shared.tenancy import find_for_tenant, get_for_tenant


class InsufficientStock(ValidationError):
    """Raised when a variant cannot cover the requested quantity."""

    def __init__(self, variant_id, requested: int, available: int):
        self.variant_id = str(variant_id)
        self.requested = requested
        self.available = available
        super().__init__(
            {"stock": [f"Insufficient stock for variant {variant_id}: requested {requested}, available {available}"]}
        )


@storefront.aggregate
class ProductVariant:
    tenant_id = Identifier(required=True)
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=64)
    title = String(max_length=255)
    price = String(required=True, max_length=20)
    stock = Integer(default=0)
    weight = Float(default=0.0)
    collection_ids = Text()  # JSON array of collection ids

    @invariant.post
    def stock_cannot_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    @invariant.post
    def price_must_be_a_valid_amount(self):
        validate_non_negative(self.price, "price")

    @classmethod
    def register(cls, tenant_id, product_id, sku, price, stock=0, title=None, weight=0.0, collection_ids=None):
        return cls(
            tenant_id=tenant_id,
            product_id=product_id,
            sku=sku,
            title=title or sku,
            price=money_str(price),
            stock=stock,
            weight=weight or 0.0,
            collection_ids=json.dumps([str(c) for c in (collection_ids or [])]),
        )

    @property
    def unit_price(self):
        return to_decimal(self.price)

    @property
    def collections(self) -> list[str]:
        return json.loads(self.collection_ids) if self.collection_ids else []

    def ensure_available(self, quantity: int) -> None:
        if quantity > (self.stock or 0):
            raise InsufficientStock(self.id, quantity, self.stock or 0)

    def deduct_stock(self, quantity: int) -> None:
        """Guarded decrement: refuses to take stock below zero."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity to deduct must be at least 1"]})
        self.ensure_available(quantity)
        self.stock -= quantity

    def restore_stock(self, quantity: int) -> None:
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity to restore must be at least 1"]})
        self.stock = (self.stock or 0) + quantity


@storefront.repository(part_of=ProductVariant)
class ProductVariantRepository:
    def get_for_tenant(self, tenant_id: str, variant_id: str) -> ProductVariant:
        return get_for_tenant(ProductVariant, tenant_id, variant_id)

    def find_by_sku(self, tenant_id: str, sku: str) -> ProductVariant | None:
        matches = find_for_tenant(ProductVariant, tenant_id, sku=sku)
        return matches[0] if matches else None
