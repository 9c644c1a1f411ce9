# teashop/utils/helpers.py

from typing import Iterable, List

from teashop.utils.models import CartItem, IceLevel, Product, Size, Topping

# --- 1. BUILT-IN MENU ---
# Served when the relay is not configured or does not answer.
CATEGORIES = [
    "原茶系列",
    "醇奶茶系列",
    "鮮果特調",
    "濃醇拿鐵",
]

TOPPINGS = [
    Topping(id="t1", name="波霸珍珠", price=10),
    Topping(id="t2", name="椰果", price=10),
    Topping(id="t3", name="仙草凍", price=10),
    Topping(id="t4", name="統一布丁", price=15),
    Topping(id="t5", name="寒天晶球", price=15),
]


def _drink(pid: str, category: str, name: str, description: str, price_m: int, price_l: int) -> Product:
    return Product(
        id=pid,
        category=category,
        name=name,
        description=description,
        price_m=price_m,
        price_l=price_l,
        has_hot=True,
        has_cold=True,
        image=f"https://picsum.photos/400/400?random={pid[1:]}",
    )


MENU_ITEMS = [
    _drink("p1", "原茶系列", "高山金萱茶", "嚴選高山茶葉，口感清爽回甘", 30, 35),
    _drink("p2", "原茶系列", "錫蘭紅茶", "經典斯里蘭卡紅茶，茶香濃郁", 30, 35),
    _drink("p3", "原茶系列", "茉莉綠茶", "清新茉莉花香，解膩首選", 30, 35),
    _drink("p4", "醇奶茶系列", "經典珍珠奶茶", "香濃奶茶搭配Q彈波霸珍珠", 50, 60),
    _drink("p5", "醇奶茶系列", "布丁奶茶", "滑嫩統一布丁融入奶茶", 55, 65),
    _drink("p6", "醇奶茶系列", "仙草凍奶茶", "手工嫩仙草，口感豐富", 50, 60),
    _drink("p7", "鮮果特調", "鮮柚綠茶", "新鮮葡萄柚果肉，酸甜清爽", 60, 70),
    _drink("p8", "鮮果特調", "百香雙響炮", "百香果汁搭配珍珠與椰果", 55, 65),
    _drink("p9", "濃醇拿鐵", "紅茶拿鐵", "錫蘭紅茶加入鮮乳", 55, 65),
    _drink("p10", "濃醇拿鐵", "黑糖珍珠鮮奶", "手炒黑糖紋路，濃郁奶香 (甜度固定)", 65, 75),
]


# --- 2. PRICING ---

def price_for_size(product: Product, size: Size) -> int:
    return product.price_m if size == Size.M else product.price_l


def is_size_available(product: Product, size: Size) -> bool:
    return price_for_size(product, size) > 0


def default_size(product: Product) -> Size:
    """Medium when it is sold, large otherwise."""
    return Size.M if product.price_m > 0 else Size.L


def default_ice(product: Product) -> IceLevel:
    """Hot-only drinks start at 溫熱, everything else at 正常冰."""
    if product.has_hot and not product.has_cold:
        return IceLevel.HOT
    return IceLevel.REGULAR


def available_ice_levels(product: Product) -> List[IceLevel]:
    levels = []
    for level in IceLevel:
        if level == IceLevel.HOT:
            if product.has_hot:
                levels.append(level)
        elif product.has_cold:
            levels.append(level)
    return levels


def line_subtotal(product: Product, size: Size, toppings: Iterable[Topping], quantity: int) -> int:
    """(size price + toppings) x quantity"""
    unit_price = price_for_size(product, size) + sum(t.price for t in toppings)
    return unit_price * quantity


def cart_total(items: Iterable[CartItem]) -> int:
    """Sums the subtotals frozen on each line, products are not re-priced."""
    return sum(item.subtotal for item in items)
