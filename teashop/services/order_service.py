from loguru import logger

from config import config
from teashop.services.script_service import google_script_service
from teashop.utils.google_sheets_manager import google_sheets_manager
from teashop.utils.models import OrderData


async def submit_order(order: OrderData) -> bool:
    """Sends the order to the configured sink and reports plain success/failure."""
    if config.ORDER_SINK == "sheets":
        logger.info("Order sink: Google Sheets (service account)")
        return await google_sheets_manager.add_order(order)
    return await google_script_service.submit_order(order)
