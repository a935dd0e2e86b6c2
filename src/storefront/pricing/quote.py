"""One pricing path for cart previews and order placement.

Subtotal, discount code, tax on the discounted base and the selected shipping
option are always derived the same way, so a cart preview and the order
placed from it agree to the cent. The two callers differ only in strictness:
the cart tolerates a vanished shipping method, placement does not.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from storefront.discount.engine import CodeQuote, DiscountEngine
from storefront.shared.money import ZERO, line_total, round_money, to_decimal
from storefront.shipping.calculator import ShippingCalculator, ShippingOption
from storefront.tax.resolver import TaxLine, TaxResolver, TaxResult, apportion_lines


@dataclass(frozen=True)
class PricedLine:
    product_id: str
    variant_id: str
    quantity: int
    unit_price: Decimal
    item_id: str | None = None

    @property
    def line_total(self) -> Decimal:
        return line_total(self.unit_price, self.quantity)


@dataclass(frozen=True)
class Destination:
    country: str
    state_code: str | None = None


@dataclass(frozen=True)
class PriceQuote:
    lines: tuple[PricedLine, ...]
    subtotal: Decimal
    discount: CodeQuote | None
    tax: TaxResult | None
    shipping: ShippingOption | None

    @property
    def discount_amount(self) -> Decimal:
        return self.discount.amount if self.discount else ZERO

    @property
    def tax_amount(self) -> Decimal:
        return self.tax.tax_amount if self.tax else ZERO

    @property
    def shipping_amount(self) -> Decimal:
        return self.shipping.cost if self.shipping else ZERO

    @property
    def total(self) -> Decimal:
        return round_money(self.subtotal - self.discount_amount + self.tax_amount + self.shipping_amount)


class PricingService:
    def __init__(self, tax_resolver: TaxResolver, shipping: ShippingCalculator, discounts: DiscountEngine):
        self.tax_resolver = tax_resolver
        self.shipping = shipping
        self.discounts = discounts

    @classmethod
    def from_domain(cls) -> "PricingService":
        return cls(TaxResolver.from_domain(), ShippingCalculator.from_domain(), DiscountEngine.from_domain())

    def quote(
        self,
        tenant_id: str,
        lines: list[PricedLine],
        discount_code: str | None = None,
        destination: Destination | None = None,
        shipping_method_id: str | None = None,
        weight=None,
        require_shipping: bool = False,
        at: datetime | None = None,
    ) -> PriceQuote:
        lines = tuple(lines)
        subtotal = round_money(sum((line.line_total for line in lines), ZERO))

        # An attached code is re-validated against the current subtotal every time
        code_quote = self.discounts.validate_code(tenant_id, discount_code, subtotal, at) if discount_code else None
        discount_amount = code_quote.amount if code_quote else ZERO

        tax = None
        if destination is not None:
            tax_lines = apportion_lines(
                [TaxLine(line.product_id, line.line_total) for line in lines], subtotal, discount_amount
            )
            tax = self.tax_resolver.resolve(tenant_id, destination.country, destination.state_code, tax_lines, at)

        shipping = None
        if shipping_method_id:
            if require_shipping:
                shipping = self.shipping.require_option(tenant_id, shipping_method_id, subtotal, to_decimal(weight))
            else:
                shipping = self.shipping.find_option(tenant_id, shipping_method_id, subtotal, to_decimal(weight))

        return PriceQuote(lines=lines, subtotal=subtotal, discount=code_quote, tax=tax, shipping=shipping)
