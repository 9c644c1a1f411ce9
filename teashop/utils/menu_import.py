# teashop/utils/menu_import.py

import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from loguru import logger

from teashop.utils.models import ParsedMenu, Product, Topping

TOPPING_CATEGORY = "加料"
EXPORT_TOPPING_CATEGORY = "Toppings/Add-ons"
TOPPING_CATEGORIES = (TOPPING_CATEGORY, EXPORT_TOPPING_CATEGORY)
DEFAULT_CATEGORY = "未分類"

# Header spellings seen in the sheet, the digitizer, the export and the CSV template.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "id": ("id", "ID"),
    "category": ("category", "Category", "類別"),
    "name": ("name", "Name", "飲品名稱"),
    "price_m": ("priceM", "price_m", "price_medium", "Price (M)", "中杯價格", "price", "Price"),
    "price_l": ("priceL", "price_l", "price_large", "Price (L)", "大杯價格"),
    "description": ("description", "Description", "描述"),
    "has_hot": ("hasHot", "has_hot", "hot_available", "Hot", "hot", "可做熱飲(選填True/False)"),
    "has_cold": ("hasCold", "has_cold", "cold_available", "Cold", "cold", "可做冷飲(選填True/False)"),
    "image": ("image", "Image", "圖片連結(選填)"),
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_FALSE_FLAGS = ("false", "no", "0")


def to_int(value: Any) -> int:
    """Leading integer of a cell; missing or unparsable values count as 0."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, float) and not math.isfinite(value):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else 0


def to_flag(value: Any, default: bool = True) -> bool:
    """Only an explicit false/no/0 switches a flag off."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if not text:
        return default
    return text not in _FALSE_FLAGS


def pick(row: Mapping[str, Any], field: str) -> Any:
    for key in FIELD_ALIASES[field]:
        if key in row and row[key] not in (None, ""):
            return row[key]
    return None


def is_topping_category(category: Optional[str]) -> bool:
    return (category or "").strip() in TOPPING_CATEGORIES


def reconcile_rows(rows: Iterable[Mapping[str, Any]]) -> Tuple[List[Product], List[Topping]]:
    """
    Turns raw menu rows into typed records.

    Rows tagged 加料 become toppings priced by whichever size column is filled,
    every other named row becomes a product. Missing prices are 0.
    """
    products: List[Product] = []
    toppings: List[Topping] = []

    for index, row in enumerate(rows, start=1):
        if not isinstance(row, Mapping):
            logger.warning(f"⚠️ Skipping menu row #{index}: not an object ({row!r})")
            continue

        name = str(pick(row, "name") or "").strip()
        if not name:
            logger.debug(f"Skipping menu row #{index} without a name")
            continue

        category = str(pick(row, "category") or "").strip()
        price_m = to_int(pick(row, "price_m"))
        price_l = to_int(pick(row, "price_l"))
        row_id = pick(row, "id")

        if is_topping_category(category):
            toppings.append(Topping(
                id=str(row_id) if row_id is not None else f"topping-{index}",
                name=name,
                price=price_m or price_l,
            ))
            continue

        description = pick(row, "description")
        image = pick(row, "image")
        products.append(Product(
            id=str(row_id) if row_id is not None else f"row-{index}",
            category=category or DEFAULT_CATEGORY,
            name=name,
            price_m=price_m,
            price_l=price_l,
            description=str(description) if description is not None else None,
            has_hot=to_flag(pick(row, "has_hot")),
            has_cold=to_flag(pick(row, "has_cold")),
            image=str(image) if image is not None else None,
        ))

    logger.info(f"📋 Reconciled menu rows: {len(products)} products, {len(toppings)} toppings")
    return products, toppings


def import_scanned_menu(parsed_menu: ParsedMenu) -> Tuple[List[Product], List[Topping]]:
    """Converts a reviewed digitizer result into storefront records."""
    products: List[Product] = []
    toppings: List[Topping] = []

    for index, item in enumerate(parsed_menu.items, start=1):
        if is_topping_category(item.category):
            toppings.append(Topping(
                id=item.id or f"scan-topping-{index}",
                name=item.name,
                price=to_int(item.price_medium) or to_int(item.price_large),
            ))
            continue
        products.append(Product(
            id=item.id or f"scan-{index}",
            category=item.category.strip() or DEFAULT_CATEGORY,
            name=item.name,
            price_m=to_int(item.price_medium),
            price_l=to_int(item.price_large),
            description=item.description,
            has_hot=item.hot_available,
            has_cold=item.cold_available,
        ))

    for index, topping in enumerate(parsed_menu.toppings, start=1):
        toppings.append(Topping(
            id=topping.id or f"scan-addon-{index}",
            name=topping.name,
            price=to_int(topping.price),
        ))

    return products, toppings


def categories_of(products: Iterable[Product]) -> List[str]:
    categories: List[str] = []
    for product in products:
        if product.category not in categories:
            categories.append(product.category)
    return categories


def to_store_rows(products: Iterable[Product], toppings: Iterable[Topping]) -> List[Dict[str, Any]]:
    """Flat rows for the sheet; toppings go back under the 加料 category."""
    rows = [
        {
            "id": p.id,
            "category": p.category,
            "name": p.name,
            "priceM": p.price_m,
            "priceL": p.price_l,
            "description": p.description or "",
            "hasHot": p.has_hot,
            "hasCold": p.has_cold,
            "image": p.image or "",
        }
        for p in products
    ]
    rows.extend(
        {
            "id": t.id,
            "category": TOPPING_CATEGORY,
            "name": t.name,
            "priceM": t.price,
            "priceL": 0,
            "description": "",
            "hasHot": False,
            "hasCold": False,
            "image": "",
        }
        for t in toppings
    )
    return rows
