from typing import List, Optional

from fastapi import APIRouter
from loguru import logger
from pydantic import Field

from teashop.services import order_service
from teashop.utils.cart import Cart, build_cart_item, cart_registry
from teashop.utils.catalog import menu_catalog
from teashop.utils.exceptions import CartError, RelayError
from teashop.utils.models import CamelModel, CartItem, IceLevel, OrderData, Size, SugarLevel

router = APIRouter(prefix="/api/cart", tags=["Orders"])


class AddToCartRequest(CamelModel):
    product_id: str
    size: Optional[Size] = None
    sugar: Optional[SugarLevel] = None
    ice: Optional[IceLevel] = None
    topping_ids: List[str] = Field(default_factory=list)
    quantity: int = 1
    note: str = ""


class CheckoutRequest(CamelModel):
    customer_name: str = ""
    customer_phone: str = ""


class CartView(CamelModel):
    items: List[CartItem]
    count: int
    total_amount: int


class CheckoutResult(CamelModel):
    success: bool
    order: OrderData


def _view(session_id: str) -> CartView:
    cart = cart_registry.find(session_id)
    if cart is None:
        return CartView(items=[], count=0, total_amount=0)
    return CartView(items=cart.items, count=cart.count, total_amount=cart.total)


@router.get("/{session_id}", response_model=CartView)
async def get_cart(session_id: str):
    return _view(session_id)


@router.post("/{session_id}/items", response_model=CartItem, status_code=201)
async def add_to_cart(session_id: str, payload: AddToCartRequest):
    product = menu_catalog.find_product(payload.product_id)
    toppings = menu_catalog.find_toppings(payload.topping_ids)
    item = build_cart_item(
        product,
        size=payload.size,
        sugar=payload.sugar,
        ice=payload.ice,
        toppings=toppings,
        quantity=payload.quantity,
        note=payload.note,
    )
    cart_registry.get(session_id).add(item)
    logger.info(f"🛒 {session_id}: +{item.quantity} {product.name} ({item.size.value}) = {item.subtotal}")
    return item


@router.delete("/{session_id}/items/{item_id}", response_model=CartView)
async def remove_from_cart(session_id: str, item_id: str):
    cart = cart_registry.find(session_id)
    if cart is None or not cart.remove(item_id):
        logger.debug(f"{session_id}: item {item_id} not in cart, nothing removed")
    elif cart.is_empty:
        cart_registry.discard(session_id)
    return _view(session_id)


@router.delete("/{session_id}", response_model=CartView)
async def clear_cart(session_id: str):
    cart_registry.discard(session_id)
    return _view(session_id)


@router.post("/{session_id}/checkout", response_model=CheckoutResult)
async def checkout(session_id: str, payload: CheckoutRequest):
    """
    Sends the cart as an order. Only the lines the order carried leave the cart, and
    only once the sink accepted it; a failed submission leaves the cart intact.
    """
    if not menu_catalog.is_open:
        raise CartError("店家目前休息中，暫停接單", status_code=409)

    cart = cart_registry.find(session_id) or Cart()
    order = cart.checkout(payload.customer_name, payload.customer_phone)

    success = await order_service.submit_order(order)
    if not success:
        logger.error(f"❌ Order for {order.customer_name} failed, cart kept ({cart.count} items)")
        raise RelayError("訂單送出失敗，請稍後再試。", status_code=502)

    order.status = "submitted"
    cart.remove_ordered(order)
    if cart.is_empty:
        cart_registry.discard(session_id)
    else:
        logger.info(f"🛒 {session_id}: {cart.count} item(s) added during checkout stay in the cart")
    logger.info(f"✅ Order submitted for {order.customer_name}: {order.total_amount}")
    return CheckoutResult(success=True, order=order)
