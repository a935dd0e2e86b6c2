"""Cart totals preview.

Returns the five amounts alone when neither a shipping address nor a method
is given (cart badges), and a full breakdown otherwise. Tax and shipping
lookups degrade to zero in a preview; an attached discount code does not, an
invalid code rejects the whole calculation.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.customer.customer import Address
from storefront.discount.engine import CodeQuote
from storefront.pricing.quote import Destination, PriceQuote, PricedLine, PricingService
from storefront.shared.money import ZERO, money_str, to_decimal
from storefront.shipping.calculator import ShippingOption, estimated_delivery_date
from storefront.tax.resolver import TaxResult


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    @classmethod
    def from_quote(cls, quote: PriceQuote) -> "CartTotals":
        return cls(
            subtotal=quote.subtotal,
            discount=quote.discount_amount,
            tax=quote.tax_amount,
            shipping=quote.shipping_amount,
            total=quote.total,
        )

    def as_dict(self) -> dict:
        return {
            "subtotal": money_str(self.subtotal),
            "discount": money_str(self.discount),
            "tax": money_str(self.tax),
            "shipping": money_str(self.shipping),
            "total": money_str(self.total),
        }


@dataclass(frozen=True)
class CartTotalsBreakdown:
    totals: CartTotals
    lines: tuple[PricedLine, ...]
    discount: CodeQuote | None
    tax: TaxResult | None
    shipping: ShippingOption | None
    estimated_delivery_date: date | None = None


def cart_lines(cart: Cart) -> list[PricedLine]:
    return [
        PricedLine(
            product_id=str(item.product_id),
            variant_id=str(item.variant_id),
            quantity=item.quantity,
            unit_price=to_decimal(item.unit_price),
            item_id=str(item.id),
        )
        for item in cart.items
    ]


def cart_weight(cart: Cart) -> Decimal:
    return sum((to_decimal(item.unit_weight) * item.quantity for item in cart.items), ZERO)


class CartTotalsCalculator:
    """``addresses`` only needs ``get_for_tenant(tenant_id, address_id)``."""

    def __init__(self, pricing: PricingService, addresses):
        self.pricing = pricing
        self.addresses = addresses

    @classmethod
    def from_domain(cls) -> "CartTotalsCalculator":
        return cls(PricingService.from_domain(), current_domain.repository_for(Address))

    def _destination(self, tenant_id, shipping_address_id) -> Destination | None:
        try:
            address = self.addresses.get_for_tenant(tenant_id, shipping_address_id)
        except ObjectNotFoundError:
            return None
        return Destination(country=address.country, state_code=address.state)

    def calculate(
        self,
        cart: Cart,
        shipping_address_id: str | None = None,
        shipping_method_id: str | None = None,
        at: datetime | None = None,
    ) -> CartTotals | CartTotalsBreakdown:
        tenant_id = str(cart.tenant_id)
        destination = self._destination(tenant_id, shipping_address_id) if shipping_address_id else None

        quote = self.pricing.quote(
            tenant_id,
            cart_lines(cart),
            discount_code=cart.discount_code,
            destination=destination,
            shipping_method_id=shipping_method_id,
            weight=cart_weight(cart),
            at=at,
        )
        totals = CartTotals.from_quote(quote)

        if not shipping_address_id and not shipping_method_id:
            return totals

        tax = quote.tax
        if shipping_address_id and tax is None:
            # Unknown address: the preview still explains that no tax applied
            tax = TaxResult.no_tax()

        return CartTotalsBreakdown(
            totals=totals,
            lines=quote.lines,
            discount=quote.discount,
            tax=tax,
            shipping=quote.shipping,
            estimated_delivery_date=estimated_delivery_date(quote.shipping, at) if quote.shipping else None,
        )
