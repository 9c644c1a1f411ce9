# teashop/utils/cart.py

import datetime
import uuid
from typing import Dict, List, Optional

from loguru import logger

from teashop.utils.exceptions import CartError
from teashop.utils.helpers import (
    available_ice_levels, cart_total, default_ice, default_size, is_size_available, line_subtotal
)
from teashop.utils.models import CartItem, IceLevel, OrderData, Product, Size, SugarLevel, Topping


def _unique_toppings(toppings: List[Topping]) -> List[Topping]:
    seen = set()
    unique = []
    for topping in toppings:
        if topping.id in seen:
            continue
        seen.add(topping.id)
        unique.append(topping)
    return unique


def build_cart_item(product: Product, size: Optional[Size] = None, sugar: Optional[SugarLevel] = None,
                    ice: Optional[IceLevel] = None, toppings: Optional[List[Topping]] = None,
                    quantity: int = 1, note: str = "") -> CartItem:
    """
    Builds a cart line and freezes its subtotal.

    Unset options fall back to the same defaults the product dialog preselects.
    Raises CartError for a size that is not sold, a non-positive quantity or a
    temperature the drink is not made at.
    """
    size = size or default_size(product)
    sugar = sugar or SugarLevel.REGULAR
    ice = ice or default_ice(product)

    if not is_size_available(product, size):
        raise CartError(f"{product.name} 不提供 {size.value} 尺寸")
    if quantity < 1:
        raise CartError("數量至少為 1")
    allowed_ice = available_ice_levels(product)
    if allowed_ice and ice not in allowed_ice:
        raise CartError(f"{product.name} 不提供「{ice.value}」")

    chosen = _unique_toppings(list(toppings or []))
    return CartItem(
        id=uuid.uuid4().hex,
        product=product.model_copy(deep=True),
        size=size,
        sugar=sugar,
        ice=ice,
        toppings=[t.model_copy() for t in chosen],
        quantity=quantity,
        subtotal=line_subtotal(product, size, chosen, quantity),
        note=note or None,
    )


class Cart:
    """A shopper's cart. Emptied only after the order was accepted."""

    def __init__(self):
        self.items: List[CartItem] = []

    def add(self, item: CartItem) -> CartItem:
        self.items.append(item)
        return item

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        return len(self.items) != before

    def clear(self) -> None:
        self.items = []

    def remove_ordered(self, order: OrderData) -> None:
        """Drops the lines an order carried; lines added since checkout stay."""
        ordered = {item.id for item in order.items}
        self.items = [item for item in self.items if item.id not in ordered]

    @property
    def total(self) -> int:
        return cart_total(self.items)

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def checkout(self, customer_name: str, customer_phone: str,
                 now: Optional[datetime.datetime] = None) -> OrderData:
        """Snapshot of the cart as a pending order. The cart itself is left untouched."""
        name = (customer_name or "").strip()
        phone = (customer_phone or "").strip()
        if not name or not phone:
            raise CartError("請填寫姓名與電話")
        if self.is_empty:
            raise CartError("購物車是空的")

        now = now or datetime.datetime.now(datetime.timezone.utc)
        return OrderData(
            customer_name=name,
            customer_phone=phone,
            items=[item.model_copy(deep=True) for item in self.items],
            total_amount=self.total,
            order_date=now.isoformat(),
            status="pending",
        )


class CartRegistry:
    """In-memory carts keyed by session id. Nothing is persisted."""

    def __init__(self):
        self._carts: Dict[str, Cart] = {}

    def get(self, session_id: str) -> Cart:
        cart = self._carts.get(session_id)
        if cart is None:
            cart = Cart()
            self._carts[session_id] = cart
            logger.debug(f"🛒 New cart for session {session_id}")
        return cart

    def find(self, session_id: str) -> Optional[Cart]:
        """Existing cart or None; unknown sessions are not registered."""
        return self._carts.get(session_id)

    def discard(self, session_id: str) -> None:
        self._carts.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._carts)


cart_registry = CartRegistry()
