"""Order placement — the atomic cart → order conversion.

``OrderPlacement.place`` validates everything and mutates the loaded
aggregates in memory first; repository writes come last, inside the unit of
work opened for the command. A failure at any step therefore persists
nothing: no order, no stock deduction and no discount redemption.

Attribution is not part of this transaction; it reacts to ``OrderPlaced``
after commit (see ``storefront.order.attribution``).
"""

import json
from dataclasses import dataclass, field

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.variant import ProductVariant
from storefront.customer.customer import Address, Customer
from storefront.discount.discount import DiscountCode
from storefront.domain import storefront
from storefront.order.numbering import generate_order_number
from storefront.order.order import Order, OrderDiscount, OrderItem, ShippingSnapshot, TaxSnapshot
from storefront.pricing.quote import Destination, PricedLine, PricingService
from storefront.shared.money import ZERO, money_str, to_decimal
from storefront.shipping.calculator import estimated_delivery_date

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RequestedItem:
    variant_id: str
    quantity: int


@dataclass
class PlacementRequest:
    tenant_id: str
    customer_id: str
    shipping_address_id: str
    billing_address_id: str
    shipping_method_id: str
    items: list[RequestedItem] = field(default_factory=list)
    discount_code: str | None = None
    notes: str | None = None
    campaign_id: str | None = None
    session_id: str | None = None


def merge_quantities(items: list[RequestedItem]) -> list[RequestedItem]:
    """Collapse repeated variants into one line each, keeping first-seen order."""
    merged: dict[str, int] = {}
    for item in items:
        if item.quantity is None or item.quantity < 1:
            raise ValidationError({"items": [f"Quantity for variant {item.variant_id} must be at least 1"]})
        merged[str(item.variant_id)] = merged.get(str(item.variant_id), 0) + item.quantity
    return [RequestedItem(variant_id, quantity) for variant_id, quantity in merged.items()]


class OrderPlacement:
    def __init__(self, pricing: PricingService | None = None):
        self.pricing = pricing or PricingService.from_domain()

    def place(self, request: PlacementRequest) -> Order:
        tenant_id = str(request.tenant_id)
        customers = current_domain.repository_for(Customer)
        addresses = current_domain.repository_for(Address)
        variants_repo = current_domain.repository_for(ProductVariant)

        # Preconditions
        customer = customers.get_for_tenant(tenant_id, request.customer_id)
        shipping_address = addresses.get_for_tenant(tenant_id, request.shipping_address_id)
        shipping_address.ensure_owned_by(customer.id, "shipping_address_id")
        billing_address = addresses.get_for_tenant(tenant_id, request.billing_address_id)
        billing_address.ensure_owned_by(customer.id, "billing_address_id")

        if not request.items:
            raise ValidationError({"items": ["An order must contain at least one item"]})
        if not request.shipping_method_id:
            raise ValidationError({"shipping_method_id": ["A shipping method is required"]})

        requested = merge_quantities(request.items)
        variants = {}
        for item in requested:
            variant = variants_repo.get_for_tenant(tenant_id, item.variant_id)
            variant.ensure_available(item.quantity)
            variants[item.variant_id] = variant

        # Pricing from live variant prices
        lines = [
            PricedLine(
                product_id=str(variants[item.variant_id].product_id),
                variant_id=item.variant_id,
                quantity=item.quantity,
                unit_price=variants[item.variant_id].unit_price,
            )
            for item in requested
        ]
        weight = sum(
            (to_decimal(variants[item.variant_id].weight) * item.quantity for item in requested),
            ZERO,
        )
        quote = self.pricing.quote(
            tenant_id,
            lines,
            discount_code=request.discount_code,
            destination=Destination(country=shipping_address.country, state_code=shipping_address.state),
            shipping_method_id=request.shipping_method_id,
            weight=weight,
            require_shipping=True,
        )

        order = Order.place(
            tenant_id=tenant_id,
            order_number=generate_order_number(),
            customer_id=str(customer.id),
            shipping_address_id=str(shipping_address.id),
            billing_address_id=str(billing_address.id),
            items=[
                OrderItem(
                    variant_id=line.variant_id,
                    product_id=line.product_id,
                    sku=variants[line.variant_id].sku,
                    title=variants[line.variant_id].title,
                    quantity=line.quantity,
                    unit_price=money_str(line.unit_price),
                    total_price=money_str(line.line_total),
                )
                for line in quote.lines
            ],
            subtotal=quote.subtotal,
            discount_amount=quote.discount_amount,
            tax_amount=quote.tax_amount,
            shipping_amount=quote.shipping_amount,
            tax=TaxSnapshot(
                jurisdiction_id=quote.tax.jurisdiction_id,
                name=quote.tax.jurisdiction_name,
                rate=str(quote.tax.rate),
                taxable_amount=money_str(quote.tax.taxable_amount),
                exempt_amount=money_str(quote.tax.exempt_amount),
            ),
            shipping=ShippingSnapshot(
                method_id=quote.shipping.method_id,
                name=quote.shipping.name,
                carrier=quote.shipping.carrier,
                cost=money_str(quote.shipping.cost),
                estimated_delivery_date=estimated_delivery_date(quote.shipping),
            ),
            discount=(
                OrderDiscount(
                    discount_id=quote.discount.discount_id,
                    discount_code_id=quote.discount.code_id,
                    code=quote.discount.code.code,
                    amount=money_str(quote.discount.amount),
                )
                if quote.discount
                else None
            ),
            notes=request.notes,
            campaign_id=request.campaign_id,
            session_id=request.session_id,
        )

        if quote.discount:
            quote.discount.code.record_usage()

        for line in quote.lines:
            variants[line.variant_id].deduct_stock(line.quantity)

        # Writes: everything above succeeded
        current_domain.repository_for(Order).add(order)
        if quote.discount:
            current_domain.repository_for(DiscountCode).add(quote.discount.code)
        for variant in variants.values():
            variants_repo.add(variant)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            tenant_id=tenant_id,
            total=order.total,
            item_count=len(quote.lines),
            discount_code=quote.discount.code.code if quote.discount else None,
        )
        return order


def parse_items(raw) -> list[RequestedItem]:
    """Items arrive as a JSON array of ``{"variant_id", "quantity"}`` objects."""
    try:
        data = json.loads(raw) if isinstance(raw, str) else (raw or [])
        return [RequestedItem(variant_id=str(entry["variant_id"]), quantity=int(entry["quantity"])) for entry in data]
    except (KeyError, TypeError, ValueError):
        raise ValidationError({"items": ["Each item needs a variant_id and an integer quantity"]})


@storefront.command(part_of="Order")
class PlaceOrder:
    tenant_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    shipping_address_id = Identifier(required=True)
    billing_address_id = Identifier(required=True)
    shipping_method_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"variant_id": ..., "quantity": ...}]
    discount_code = String(max_length=50)
    notes = Text()
    campaign_id = Identifier()
    session_id = String(max_length=255)


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        order = OrderPlacement().place(
            PlacementRequest(
                tenant_id=command.tenant_id,
                customer_id=command.customer_id,
                shipping_address_id=command.shipping_address_id,
                billing_address_id=command.billing_address_id,
                shipping_method_id=command.shipping_method_id,
                items=parse_items(command.items),
                discount_code=command.discount_code,
                notes=command.notes,
                campaign_id=command.campaign_id,
                session_id=command.session_id,
            )
        )
        return str(order.id)
