# teashop/utils/menu_export.py

import csv
import io
import json
from typing import List, Optional

from teashop.utils.menu_import import EXPORT_TOPPING_CATEGORY
from teashop.utils.models import MenuItem, ToppingItem

CSV_FIELDNAMES = ['Category', 'Name', 'Price (M)', 'Price (L)', 'Description', 'Hot', 'Cold']
CSV_FILENAME = "menu_export.csv"
JSON_FILENAME = "menu_export.json"


def _price_cell(price: Optional[float]):
    if not price:
        return ''
    return int(price) if float(price).is_integer() else price


def _yes_no(flag: bool) -> str:
    return 'Yes' if flag else 'No'


def export_menu_csv(items: List[MenuItem], toppings: List[ToppingItem]) -> str:
    """
    CSV with drinks first and toppings appended under their own category.
    Starts with a BOM so Excel opens the Chinese text as UTF-8.
    """
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_FIELDNAMES, lineterminator='\n')
    writer.writeheader()
    for item in items:
        writer.writerow({
            'Category': item.category,
            'Name': item.name,
            'Price (M)': _price_cell(item.price_medium),
            'Price (L)': _price_cell(item.price_large),
            'Description': item.description or '',
            'Hot': _yes_no(item.hot_available),
            'Cold': _yes_no(item.cold_available),
        })
    for topping in toppings:
        writer.writerow({
            'Category': EXPORT_TOPPING_CATEGORY,
            'Name': topping.name,
            # single price lives in the M column
            'Price (M)': _price_cell(topping.price) if topping.price else 0,
            'Price (L)': '',
            'Description': 'Add-on item',
            'Hot': 'No',
            'Cold': 'No',
        })
    return '\ufeff' + output.getvalue()


def export_menu_json(items: List[MenuItem], toppings: List[ToppingItem]) -> str:
    data = {
        "menu_items": [item.model_dump() for item in items],
        "add_ons": [topping.model_dump() for topping in toppings],
    }
    return json.dumps(data, indent=2, ensure_ascii=False)
