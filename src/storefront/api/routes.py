"""FastAPI routes for the storefront — carts, orders and storefront lookups.

The tenant comes from the ``X-Tenant-ID`` header; carts are addressed by the
shopper's session id.
"""

import json

from fastapi import APIRouter, Header, Query
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    AddItemRequest,
    AddNoteRequest,
    ApplyDiscountCodeRequest,
    BestDiscountResponse,
    BreakdownResponse,
    CalculateTotalsRequest,
    CartResponse,
    CheckoutRequest,
    CountResponse,
    DiscountCodeResponse,
    MergeCartRequest,
    OpenCartRequest,
    OrderResponse,
    PlaceOrderRequest,
    ReasonRequest,
    ShippingOptionResponse,
    TotalsResponse,
    UpdateItemQuantityRequest,
    UpdateStatusRequest,
)
from storefront.cart.abandonment import AbandonExpiredCarts
from storefront.cart.cart import Cart
from storefront.cart.checkout import Checkout
from storefront.cart.discounts import ApplyDiscountCode, RemoveDiscountCode
from storefront.cart.items import AddCartItem, ClearCart, RemoveCartItem, UpdateCartItemQuantity
from storefront.cart.management import CalculateCartTotals, GetOrCreateCart, MergeGuestCart
from storefront.cart.totals import CartTotalsBreakdown
from storefront.discount.engine import DiscountEngine
from storefront.order.order import Order
from storefront.order.placement import PlaceOrder
from storefront.order.status import AddOrderNote, CancelOrder, RefundOrder, UpdateOrderStatus
from storefront.shared.money import money_str
from storefront.shipping.calculator import ShippingCalculator


def _cart(tenant_id: str, session_id: str) -> CartResponse:
    cart = current_domain.repository_for(Cart).require_active(tenant_id, session_id)
    return CartResponse.from_cart(cart)


def _order(tenant_id: str, order_id: str) -> OrderResponse:
    return OrderResponse.from_order(current_domain.repository_for(Order).get_for_tenant(tenant_id, order_id))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", response_model=CartResponse)
async def open_cart(body: OpenCartRequest, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(
        GetOrCreateCart(tenant_id=x_tenant_id, session_id=body.session_id, customer_id=body.customer_id),
        asynchronous=False,
    )
    return _cart(x_tenant_id, body.session_id)


@cart_router.get("/{session_id}", response_model=CartResponse)
async def get_cart(session_id: str, x_tenant_id: str = Header()) -> CartResponse:
    return _cart(x_tenant_id, session_id)


@cart_router.post("/{session_id}/items", response_model=CartResponse)
async def add_cart_item(session_id: str, body: AddItemRequest, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(
        AddCartItem(
            tenant_id=x_tenant_id,
            session_id=session_id,
            variant_id=body.variant_id,
            quantity=body.quantity,
            customer_id=body.customer_id,
        ),
        asynchronous=False,
    )
    return _cart(x_tenant_id, session_id)


@cart_router.put("/{session_id}/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    session_id: str, item_id: str, body: UpdateItemQuantityRequest, x_tenant_id: str = Header()
) -> CartResponse:
    current_domain.process(
        UpdateCartItemQuantity(tenant_id=x_tenant_id, session_id=session_id, item_id=item_id, quantity=body.quantity),
        asynchronous=False,
    )
    return _cart(x_tenant_id, session_id)


@cart_router.delete("/{session_id}/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(session_id: str, item_id: str, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(
        RemoveCartItem(tenant_id=x_tenant_id, session_id=session_id, item_id=item_id),
        asynchronous=False,
    )
    return _cart(x_tenant_id, session_id)


@cart_router.delete("/{session_id}/items", response_model=CartResponse)
async def clear_cart(session_id: str, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(ClearCart(tenant_id=x_tenant_id, session_id=session_id), asynchronous=False)
    return _cart(x_tenant_id, session_id)


@cart_router.post("/{session_id}/discount-code", response_model=DiscountCodeResponse)
async def apply_discount_code(
    session_id: str, body: ApplyDiscountCodeRequest, x_tenant_id: str = Header()
) -> DiscountCodeResponse:
    quote = current_domain.process(
        ApplyDiscountCode(tenant_id=x_tenant_id, session_id=session_id, code=body.code),
        asynchronous=False,
    )
    return DiscountCodeResponse(
        code=quote.code.code,
        discount_id=quote.discount_id,
        amount=money_str(quote.amount),
        order_total=money_str(quote.order_total),
    )


@cart_router.delete("/{session_id}/discount-code", response_model=CartResponse)
async def remove_discount_code(session_id: str, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(RemoveDiscountCode(tenant_id=x_tenant_id, session_id=session_id), asynchronous=False)
    return _cart(x_tenant_id, session_id)


@cart_router.post("/{session_id}/totals", response_model=TotalsResponse | BreakdownResponse)
async def calculate_totals(
    session_id: str, body: CalculateTotalsRequest, x_tenant_id: str = Header()
) -> TotalsResponse | BreakdownResponse:
    result = current_domain.process(
        CalculateCartTotals(
            tenant_id=x_tenant_id,
            session_id=session_id,
            shipping_address_id=body.shipping_address_id,
            shipping_method_id=body.shipping_method_id,
        ),
        asynchronous=False,
    )
    if isinstance(result, CartTotalsBreakdown):
        return BreakdownResponse.from_breakdown(result)
    return TotalsResponse.from_totals(result)


@cart_router.post("/{session_id}/checkout", status_code=201, response_model=OrderResponse)
async def checkout(session_id: str, body: CheckoutRequest, x_tenant_id: str = Header()) -> OrderResponse:
    order_id = current_domain.process(
        Checkout(
            tenant_id=x_tenant_id,
            session_id=session_id,
            customer_id=body.customer_id,
            shipping_address_id=body.shipping_address_id,
            billing_address_id=body.billing_address_id,
            shipping_method_id=body.shipping_method_id,
            discount_code=body.discount_code,
            notes=body.notes,
            campaign_id=body.campaign_id,
            visit_session_id=body.visit_session_id,
        ),
        asynchronous=False,
    )
    return _order(x_tenant_id, order_id)


@cart_router.post("/{session_id}/merge", response_model=CartResponse)
async def merge_guest_cart(session_id: str, body: MergeCartRequest, x_tenant_id: str = Header()) -> CartResponse:
    current_domain.process(
        MergeGuestCart(
            tenant_id=x_tenant_id,
            guest_session_id=body.guest_session_id,
            session_id=session_id,
            customer_id=body.customer_id,
        ),
        asynchronous=False,
    )
    return _cart(x_tenant_id, session_id)


# ---------------------------------------------------------------------------
# Maintenance (scheduler-triggered)
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/abandon-expired-carts", response_model=CountResponse)
async def abandon_expired_carts() -> CountResponse:
    count = current_domain.process(AbandonExpiredCarts(), asynchronous=False)
    return CountResponse(count=count or 0)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: PlaceOrderRequest, x_tenant_id: str = Header()) -> OrderResponse:
    order_id = current_domain.process(
        PlaceOrder(
            tenant_id=x_tenant_id,
            customer_id=body.customer_id,
            shipping_address_id=body.shipping_address_id,
            billing_address_id=body.billing_address_id,
            shipping_method_id=body.shipping_method_id,
            items=json.dumps([item.model_dump() for item in body.items]),
            discount_code=body.discount_code,
            notes=body.notes,
            campaign_id=body.campaign_id,
            session_id=body.session_id,
        ),
        asynchronous=False,
    )
    return _order(x_tenant_id, order_id)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str, x_tenant_id: str = Header()) -> OrderResponse:
    return _order(x_tenant_id, order_id)


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(order_id: str, body: UpdateStatusRequest, x_tenant_id: str = Header()) -> OrderResponse:
    current_domain.process(
        UpdateOrderStatus(tenant_id=x_tenant_id, order_id=order_id, status=body.status, reason=body.reason),
        asynchronous=False,
    )
    return _order(x_tenant_id, order_id)


@order_router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: str, body: ReasonRequest, x_tenant_id: str = Header()) -> OrderResponse:
    current_domain.process(
        CancelOrder(tenant_id=x_tenant_id, order_id=order_id, reason=body.reason),
        asynchronous=False,
    )
    return _order(x_tenant_id, order_id)


@order_router.put("/{order_id}/refund", response_model=OrderResponse)
async def refund_order(order_id: str, body: ReasonRequest, x_tenant_id: str = Header()) -> OrderResponse:
    current_domain.process(
        RefundOrder(tenant_id=x_tenant_id, order_id=order_id, reason=body.reason),
        asynchronous=False,
    )
    return _order(x_tenant_id, order_id)


@order_router.post("/{order_id}/notes", response_model=OrderResponse)
async def add_order_note(order_id: str, body: AddNoteRequest, x_tenant_id: str = Header()) -> OrderResponse:
    current_domain.process(AddOrderNote(tenant_id=x_tenant_id, order_id=order_id, note=body.note), asynchronous=False)
    return _order(x_tenant_id, order_id)


# ---------------------------------------------------------------------------
# Storefront lookups (read-only)
# ---------------------------------------------------------------------------
lookup_router = APIRouter(tags=["storefront"])


@lookup_router.get("/shipping/options", response_model=list[ShippingOptionResponse])
async def shipping_options(
    subtotal: str = Query(...), weight: str | None = Query(None), x_tenant_id: str = Header()
) -> list[ShippingOptionResponse]:
    options = ShippingCalculator.from_domain().options(x_tenant_id, subtotal, weight)
    return [ShippingOptionResponse.from_option(option) for option in options]


@lookup_router.get("/discounts/products/{product_id}", response_model=BestDiscountResponse | None)
async def best_product_discount(
    product_id: str,
    price: str = Query(...),
    variant_id: str | None = Query(None),
    collection_id: list[str] = Query(default=[]),
    x_tenant_id: str = Header(),
) -> BestDiscountResponse | None:
    best = DiscountEngine.from_domain().best_discount(
        x_tenant_id, price, product_id=product_id, collection_ids=collection_id, variant_id=variant_id
    )
    if best is None:
        return None
    return BestDiscountResponse(
        discount_id=str(best.discount.id),
        name=best.discount.name,
        discount_type=best.discount.discount_type,
        value=best.discount.value,
        priority=best.discount.priority or 0,
        amount=money_str(best.amount),
    )
