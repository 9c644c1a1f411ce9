# teashop/utils/csv_parser.py

import csv
import io
from typing import List

from pydantic import BaseModel, Field

from teashop.utils.exceptions import MenuImportError
from teashop.utils.menu_import import DEFAULT_CATEGORY, categories_of, is_topping_category, to_flag, to_int
from teashop.utils.models import Product, Topping

SAMPLE_HEADER = "類別,飲品名稱,描述,中杯價格,大杯價格,圖片連結(選填),可做熱飲(選填True/False),可做冷飲(選填True/False)"


class ParsedCatalog(BaseModel):
    products: List[Product] = Field(default_factory=list)
    categories: List[str] = Field(default_factory=list)
    toppings: List[Topping] = Field(default_factory=list)


def _cell(cols: List[str], index: int) -> str:
    return cols[index].strip() if index < len(cols) else ""


def parse_menu_csv(text: str) -> ParsedCatalog:
    """
    Parses a menu spreadsheet exported as CSV.

    Column order follows SAMPLE_HEADER. The first line is the header. Lines
    with fewer than four columns, without a name or without any price are
    skipped. Rows in the 加料 category become toppings priced by the medium
    column.
    """
    if not text or not text.strip():
        raise MenuImportError("File is empty")

    text = text.lstrip("\ufeff")
    products: List[Product] = []
    toppings: List[Topping] = []

    lines = text.splitlines()
    for index, line in enumerate(lines):
        if index == 0 or not line.strip():
            continue

        cols = next(csv.reader(io.StringIO(line.strip())), [])
        if len(cols) < 4:
            continue

        category = _cell(cols, 0) or DEFAULT_CATEGORY
        name = _cell(cols, 1)
        price_m = to_int(_cell(cols, 3))
        price_l = to_int(_cell(cols, 4))

        if is_topping_category(category):
            if name:
                toppings.append(Topping(id=f"csv-{index}", name=name, price=price_m or price_l))
            continue

        if not name or (price_m == 0 and price_l == 0):
            continue

        products.append(Product(
            id=f"csv-{index}",
            category=category,
            name=name,
            description=_cell(cols, 2),
            price_m=price_m,
            price_l=price_l,
            image=_cell(cols, 5) or None,
            has_hot=to_flag(_cell(cols, 6)),
            has_cold=to_flag(_cell(cols, 7)),
        ))

    return ParsedCatalog(products=products, categories=categories_of(products), toppings=toppings)


def sample_csv_content() -> str:
    return SAMPLE_HEADER
