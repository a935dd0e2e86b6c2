"""Pydantic request/response schemas for the storefront API.

These are the external contracts; commands stay internal. Money is always a
two-decimal string.
"""

from datetime import date

from pydantic import BaseModel, Field

from storefront.cart.cart import Cart
from storefront.cart.totals import CartTotals, CartTotalsBreakdown
from storefront.order.order import Order
from storefront.shared.money import money_str
from storefront.shipping.calculator import ShippingOption


# ---------------------------------------------------------------------------
# Cart requests
# ---------------------------------------------------------------------------
class OpenCartRequest(BaseModel):
    session_id: str
    customer_id: str | None = None

    model_config = {"json_schema_extra": {"examples": [{"session_id": "sess-9f2c", "customer_id": None}]}}


class AddItemRequest(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1, default=1)
    customer_id: str | None = None


class UpdateItemQuantityRequest(BaseModel):
    quantity: int = Field(ge=0)


class ApplyDiscountCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)


class CalculateTotalsRequest(BaseModel):
    shipping_address_id: str | None = None
    shipping_method_id: str | None = None


class CheckoutRequest(BaseModel):
    customer_id: str | None = None
    shipping_address_id: str
    billing_address_id: str
    shipping_method_id: str
    discount_code: str | None = None
    notes: str | None = None
    campaign_id: str | None = None
    visit_session_id: str | None = None


class MergeCartRequest(BaseModel):
    guest_session_id: str
    customer_id: str


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------
class OrderLineRequest(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1)


class PlaceOrderRequest(BaseModel):
    customer_id: str
    shipping_address_id: str
    billing_address_id: str
    shipping_method_id: str
    items: list[OrderLineRequest] = Field(min_length=1)
    discount_code: str | None = None
    notes: str | None = None
    campaign_id: str | None = None
    session_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "shipping_address_id": "addr-001",
                    "billing_address_id": "addr-001",
                    "shipping_method_id": "ship-standard",
                    "items": [{"variant_id": "var-001", "quantity": 2}],
                    "discount_code": "SAVE20",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str
    reason: str | None = None


class ReasonRequest(BaseModel):
    reason: str | None = None


class AddNoteRequest(BaseModel):
    note: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    item_id: str
    variant_id: str
    product_id: str
    quantity: int
    unit_price: str
    line_total: str


class CartResponse(BaseModel):
    cart_id: str
    session_id: str
    customer_id: str | None = None
    status: str
    items: list[CartItemResponse]
    discount_code: str | None = None
    subtotal: str
    discount_total: str
    tax_total: str
    shipping_total: str
    total: str

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartResponse":
        return cls(
            cart_id=str(cart.id),
            session_id=cart.session_id,
            customer_id=str(cart.customer_id) if cart.customer_id else None,
            status=cart.status,
            items=[
                CartItemResponse(
                    item_id=str(item.id),
                    variant_id=str(item.variant_id),
                    product_id=str(item.product_id),
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    line_total=money_str(item.line_total),
                )
                for item in cart.items
            ],
            discount_code=cart.discount_code,
            subtotal=cart.subtotal,
            discount_total=cart.discount_total,
            tax_total=cart.tax_total,
            shipping_total=cart.shipping_total,
            total=cart.total,
        )


class TotalsResponse(BaseModel):
    subtotal: str
    discount: str
    tax: str
    shipping: str
    total: str

    @classmethod
    def from_totals(cls, totals: CartTotals) -> "TotalsResponse":
        return cls(**totals.as_dict())


class BreakdownLine(BaseModel):
    item_id: str | None = None
    variant_id: str
    product_id: str
    quantity: int
    unit_price: str
    line_total: str


class DiscountExplanation(BaseModel):
    code: str
    discount_id: str
    discount_type: str
    value: str
    amount: str


class TaxExplanation(BaseModel):
    jurisdiction_id: str | None = None
    jurisdiction_name: str
    rate: str
    taxable_amount: str
    exempt_amount: str
    tax_amount: str


class ShippingOptionResponse(BaseModel):
    method_id: str
    name: str
    display_name: str
    description: str | None = None
    carrier: str
    cost: str
    is_free: bool
    estimated_days_min: int | None = None
    estimated_days_max: int | None = None

    @classmethod
    def from_option(cls, option: ShippingOption) -> "ShippingOptionResponse":
        return cls(
            method_id=option.method_id,
            name=option.name,
            display_name=option.display_name,
            description=option.description,
            carrier=option.carrier,
            cost=money_str(option.cost),
            is_free=option.is_free,
            estimated_days_min=option.estimated_days_min,
            estimated_days_max=option.estimated_days_max,
        )


class BreakdownResponse(BaseModel):
    totals: TotalsResponse
    lines: list[BreakdownLine]
    discount: DiscountExplanation | None = None
    tax: TaxExplanation | None = None
    shipping: ShippingOptionResponse | None = None
    estimated_delivery_date: date | None = None

    @classmethod
    def from_breakdown(cls, breakdown: CartTotalsBreakdown) -> "BreakdownResponse":
        discount = breakdown.discount
        tax = breakdown.tax
        return cls(
            totals=TotalsResponse.from_totals(breakdown.totals),
            lines=[
                BreakdownLine(
                    item_id=line.item_id,
                    variant_id=line.variant_id,
                    product_id=line.product_id,
                    quantity=line.quantity,
                    unit_price=money_str(line.unit_price),
                    line_total=money_str(line.line_total),
                )
                for line in breakdown.lines
            ],
            discount=(
                DiscountExplanation(
                    code=discount.code.code,
                    discount_id=discount.discount_id,
                    discount_type=discount.discount.discount_type,
                    value=discount.discount.value,
                    amount=money_str(discount.amount),
                )
                if discount
                else None
            ),
            tax=(
                TaxExplanation(
                    jurisdiction_id=tax.jurisdiction_id,
                    jurisdiction_name=tax.jurisdiction_name,
                    rate=str(tax.rate),
                    taxable_amount=money_str(tax.taxable_amount),
                    exempt_amount=money_str(tax.exempt_amount),
                    tax_amount=money_str(tax.tax_amount),
                )
                if tax
                else None
            ),
            shipping=ShippingOptionResponse.from_option(breakdown.shipping) if breakdown.shipping else None,
            estimated_delivery_date=breakdown.estimated_delivery_date,
        )


class DiscountCodeResponse(BaseModel):
    code: str
    discount_id: str
    amount: str
    order_total: str


class OrderItemResponse(BaseModel):
    variant_id: str
    product_id: str
    sku: str | None = None
    quantity: int
    unit_price: str
    total_price: str


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    customer_id: str
    subtotal: str
    discount_amount: str
    tax_amount: str
    shipping_amount: str
    total: str
    tax_jurisdiction: str | None = None
    tax_rate: str | None = None
    shipping_method: str | None = None
    shipping_carrier: str | None = None
    notes: str | None = None
    items: list[OrderItemResponse]

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            customer_id=str(order.customer_id),
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            tax_amount=order.tax_amount,
            shipping_amount=order.shipping_amount,
            total=order.total,
            tax_jurisdiction=order.tax.name if order.tax else None,
            tax_rate=order.tax.rate if order.tax else None,
            shipping_method=order.shipping.name if order.shipping else None,
            shipping_carrier=order.shipping.carrier if order.shipping else None,
            notes=order.notes,
            items=[
                OrderItemResponse(
                    variant_id=str(item.variant_id),
                    product_id=str(item.product_id),
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in order.items
            ],
        )


class BestDiscountResponse(BaseModel):
    discount_id: str
    name: str
    discount_type: str
    value: str
    priority: int
    amount: str


class CountResponse(BaseModel):
    count: int
