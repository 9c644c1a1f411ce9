# teashop/utils/catalog.py

import time
from typing import List, Optional

from loguru import logger

from config import config
from teashop.utils.exceptions import CartError, TeaShopError
from teashop.utils.helpers import CATEGORIES, MENU_ITEMS, TOPPINGS
from teashop.utils.menu_import import categories_of, reconcile_rows
from teashop.utils.models import Catalog, Product, StoreData, Topping


class MenuCatalog:
    """
    The menu the storefront sells from.

    Starts with the built-in menu, is replaced by the sheet's menu when the relay
    answers and by an admin import after a sync or CSV upload.
    """

    def __init__(self, max_age: float = 60):
        self.max_age = max_age
        self.loaded_at: Optional[float] = None
        self.load_builtin()

    def load_builtin(self) -> None:
        self.store_name = ""
        self.is_open = True
        self.products: List[Product] = [p.model_copy() for p in MENU_ITEMS]
        self.toppings: List[Topping] = [t.model_copy() for t in TOPPINGS]
        self.categories: List[str] = list(CATEGORIES)
        self.source = "builtin"

    def replace(self, products: List[Product], toppings: List[Topping], source: str,
                store_name: Optional[str] = None, is_open: Optional[bool] = None) -> None:
        self.products = list(products)
        self.toppings = list(toppings)
        self.categories = categories_of(self.products)
        self.source = source
        if store_name is not None:
            self.store_name = store_name
        if is_open is not None:
            self.is_open = is_open
        self.loaded_at = time.monotonic()
        logger.info(f"📋 Catalog replaced from {source}: {len(self.products)} products, "
                    f"{len(self.toppings)} toppings, {len(self.categories)} categories")

    def apply_store(self, store: StoreData) -> None:
        products, toppings = reconcile_rows(store.menu)
        if not products:
            # keep whatever we sell now, only status and name change
            logger.warning("⚠️ Store data has no products, keeping the current menu")
            self.store_name = store.store_name
            self.is_open = store.is_open
            self.loaded_at = time.monotonic()
            return
        self.replace(products, toppings, "sheet", store.store_name, store.is_open)

    def is_stale(self) -> bool:
        return self.loaded_at is None or time.monotonic() - self.loaded_at > self.max_age

    async def refresh(self, service, force: bool = False) -> None:
        """Pulls the sheet's menu when the cached copy is older than max_age."""
        if not force and not self.is_stale():
            return
        try:
            store = await service.fetch_store()
        except TeaShopError as e:
            logger.warning(f"⚠️ Using {self.source} menu, store data unavailable: {e.message}")
            self.loaded_at = time.monotonic()
            return
        self.apply_store(store)

    def products_in_category(self, category: str) -> List[Product]:
        return [p for p in self.products if p.category == category]

    def find_product(self, product_id: str) -> Product:
        for product in self.products:
            if product.id == product_id:
                return product
        raise CartError(f"找不到品項 {product_id}", status_code=404)

    def find_toppings(self, topping_ids: List[str]) -> List[Topping]:
        by_id = {t.id: t for t in self.toppings}
        missing = [tid for tid in topping_ids if tid not in by_id]
        if missing:
            raise CartError(f"找不到加料 {', '.join(missing)}")
        return [by_id[tid] for tid in topping_ids]

    def snapshot(self) -> Catalog:
        return Catalog(
            store_name=self.store_name,
            is_open=self.is_open,
            categories=list(self.categories),
            products=list(self.products),
            toppings=list(self.toppings),
            source=self.source,
        )


menu_catalog = MenuCatalog(max_age=config.STORE_CACHE_SECONDS)
