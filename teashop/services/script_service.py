import json
import time
from typing import Any, Callable, Dict, List, Optional

import aiohttp
from loguru import logger

from config import config
from teashop.utils.exceptions import ConfigurationError, RelayError
from teashop.utils.menu_import import to_store_rows
from teashop.utils.models import OrderData, Product, StoreData, Topping
from teashop.utils.url_store import get_stored_url

# Apps Script web apps reject CORS preflights, so payloads are sent as plain text.
PLAIN_TEXT_HEADERS = {'Content-Type': 'text/plain;charset=utf-8'}


class GoogleScriptService:
    """
    Thin client for the Google Apps Script web app that fronts the shop's spreadsheet.
    doGet returns the store status and menu, doPost takes orders and menu updates.
    """

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None,
                 session_factory: Optional[Callable[..., Any]] = None):
        self.url = url
        self.timeout = aiohttp.ClientTimeout(total=timeout or config.HTTP_TIMEOUT)
        self.session_factory = session_factory or aiohttp.ClientSession

    def resolve_url(self) -> str:
        """Explicit URL, then the environment, then the URL an admin saved locally."""
        url = self.url or config.GOOGLE_SCRIPT_URL or get_stored_url()
        if not url:
            raise ConfigurationError("Server configuration error: GOOGLE_SCRIPT_URL not set")
        return url

    def _session(self):
        return self.session_factory(timeout=self.timeout)

    async def fetch_store(self) -> StoreData:
        """Reads store status and the raw menu rows (doGet)."""
        url = self.resolve_url()
        params = {"t": str(int(time.time() * 1000))}

        logger.debug(f"Fetching store data from Google Script. URL: {url}")
        async with self._session() as session:
            try:
                async with session.get(url, params=params) as resp:
                    if resp.status >= 300:
                        raise RelayError(f"Google API responded with status: {resp.status}")
                    data = await resp.json(content_type=None)
            except RelayError:
                raise
            except Exception as e:
                logger.error(f"❌ Error fetching from Google Sheets: {e}")
                raise RelayError("Failed to fetch store data.")

        if not isinstance(data, dict):
            raise RelayError("Failed to fetch store data.", status_code=502)
        store = StoreData.model_validate(data)
        logger.info(f"✅ Store data fetched: '{store.store_name}', {len(store.menu)} menu rows")
        return store

    async def submit_order(self, order: OrderData) -> bool:
        """Forwards the order (doPost). Never raises: the result is True/False."""
        logger.info("🚀 Sending order to Google Script relay...")
        try:
            url = self.resolve_url()
            payload = json.dumps(order.model_dump(mode="json", by_alias=True), ensure_ascii=False)
            async with self._session() as session:
                async with session.post(url, data=payload.encode("utf-8"), headers=PLAIN_TEXT_HEADERS) as resp:
                    if resp.status >= 300:
                        error_body = await resp.text()
                        logger.error(f"❌ Order relay failed. Status: {resp.status}, body: {error_body}")
                        return False
            logger.info(f"✅ Order forwarded to Google Sheets: {order.customer_name}, {order.total_amount}")
            return True
        except Exception as e:
            logger.error(f"❌ Order submission failed: {e}")
            return False

    async def update_store_menu(self, store_name: str, products: List[Product],
                                toppings: List[Topping]) -> Dict[str, Any]:
        """Replaces the sheet's menu with the given records (doPost, action=update_menu)."""
        url = self.resolve_url()
        body = {
            "action": "update_menu",
            "storeName": store_name,
            "menu": to_store_rows(products, toppings),
        }
        logger.debug(f"Menu update payload: {len(body['menu'])} rows for '{store_name}'")

        async with self._session() as session:
            try:
                async with session.post(url, data=json.dumps(body, ensure_ascii=False).encode("utf-8"),
                                        headers=PLAIN_TEXT_HEADERS) as resp:
                    if resp.status >= 300:
                        raise RelayError(f"Google API status: {resp.status}")
                    text = await resp.text()
            except RelayError:
                raise
            except Exception as e:
                logger.error(f"❌ Error updating menu: {e}")
                raise RelayError(str(e))

        try:
            result = json.loads(text)
        except json.JSONDecodeError:
            logger.error(f"Non-JSON response from Google Script: {text[:500]}")
            raise RelayError("Invalid response from Google Script (Check deployment version)", status_code=502)

        if not isinstance(result, dict):
            result = {"success": True, "data": result}
        result.setdefault("success", True)
        result.setdefault("message", "Menu updated")
        logger.info(f"✅ Menu update answered: success={result['success']}")
        return result


google_script_service = GoogleScriptService()
