from fastapi import APIRouter, Response
from loguru import logger

from config import config
from teashop.services.script_service import google_script_service
from teashop.utils.catalog import menu_catalog
from teashop.utils.exceptions import ConfigurationError
from teashop.utils.google_sheets_manager import google_sheets_manager
from teashop.utils.models import Catalog, Product, StoreData

router = APIRouter(prefix="/api", tags=["Store"])


@router.get("/store", response_model=StoreData)
async def get_store(response: Response):
    """Store status and raw menu rows straight from the sheet."""
    store = await google_script_service.fetch_store()
    response.headers["Cache-Control"] = f"s-maxage={config.STORE_CACHE_SECONDS}, stale-while-revalidate"
    return store


@router.get("/menu", response_model=Catalog)
async def get_menu(response: Response):
    """The storefront menu: sheet data when available, the built-in menu otherwise."""
    await menu_catalog.refresh(google_script_service)
    response.headers["Cache-Control"] = f"s-maxage={config.STORE_CACHE_SECONDS}, stale-while-revalidate"
    return menu_catalog.snapshot()


@router.get("/menu/{category}", response_model=list[Product])
async def get_menu_category(category: str):
    await menu_catalog.refresh(google_script_service)
    return menu_catalog.products_in_category(category)


@router.get("/status")
async def get_status():
    try:
        google_script_service.resolve_url()
        relay_configured = True
    except ConfigurationError as e:
        logger.debug(f"Relay not configured: {e.message}")
        relay_configured = False

    status = {
        "status": "ok",
        "relayConfigured": relay_configured,
        "orderSink": config.ORDER_SINK,
        "catalogSource": menu_catalog.source,
        "products": len(menu_catalog.products),
    }
    if config.ORDER_SINK == "sheets":
        status["sheets"] = await google_sheets_manager.health_check()
    return status
