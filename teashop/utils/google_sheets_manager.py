import asyncio
import datetime
import json
from typing import Any, Dict, List, Optional

import gspread
from loguru import logger
from oauth2client.client import AccessTokenRefreshError
from oauth2client.service_account import ServiceAccountCredentials

from config import config
from teashop.utils.models import OrderData

ORDER_HEADER = [
    "訂單編號", "下單時間", "顧客姓名", "顧客電話", "品項", "尺寸", "甜度", "冰塊",
    "加料", "數量", "小計", "備註", "訂單總額",
]


class GoogleSheetsManager:
    """
    Writes orders straight into a worksheet with a service account, one row per cart line.
    Used instead of the Apps Script relay when ORDER_SINK=sheets.
    """

    _instance: Optional['GoogleSheetsManager'] = None
    _initialized: bool = False

    def __new__(cls) -> 'GoogleSheetsManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self.client: Optional[gspread.Client] = None
            self.credentials: Optional[ServiceAccountCredentials] = None
            self.spreadsheet: Optional[gspread.Spreadsheet] = None
            self.worksheet: Optional[gspread.Worksheet] = None

            self.service_account_file = config.GOOGLE_CREDS_FILE
            self.spreadsheet_name = config.GOOGLE_SHEETS_SPREADSHEET_NAME
            self.worksheet_name = config.GOOGLE_SHEETS_WORKSHEET_NAME

            self.max_retries = 3
            self.base_delay = 1.0
            self.max_delay = 30.0

            self._order_lock = asyncio.Lock()

            self.connection_stats = self._empty_stats()

            GoogleSheetsManager._initialized = True
            logger.info("GoogleSheetsManager instance created")

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "initialized_at": None,
            "last_used_at": None,
            "requests_count": 0,
            "errors_count": 0,
            "quota_errors_count": 0
        }

    async def initialize(self) -> None:
        if self.client is not None:
            logger.info("GoogleSheetsManager already initialized")
            return

        logger.info("Initializing Google Sheets client...")
        try:
            await self._initialize_credentials()
            await self._authorize_client()
            await self._open_spreadsheet()
            await self._ensure_header()

            self.connection_stats["initialized_at"] = datetime.datetime.now()
            logger.info("✅ Google Sheets client initialized successfully")
            logger.info(f"📊 Connected to spreadsheet: '{self.spreadsheet_name}', worksheet: '{self.worksheet_name}'")

        except Exception as e:
            logger.error(f"❌ Failed to initialize Google Sheets client: {e}")
            await self.close()
            raise

    async def _initialize_credentials(self) -> None:
        scope = [
            "https://spreadsheets.google.com/feeds",
            "https://www.googleapis.com/auth/drive"
        ]
        try:
            self.credentials = await asyncio.to_thread(
                ServiceAccountCredentials.from_json_keyfile_name,
                self.service_account_file,
                scope
            )
            logger.debug("Google API credentials loaded successfully")
        except FileNotFoundError:
            raise FileNotFoundError(
                f"Service account file '{self.service_account_file}' not found. "
                "Make sure the file exists or set GOOGLE_CREDS_FILE."
            )
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in service account file: {e}")

    async def _authorize_client(self) -> None:
        try:
            self.client = await asyncio.to_thread(gspread.authorize, self.credentials)
            logger.debug("Google Sheets client authorized successfully")
        except AccessTokenRefreshError as e:
            raise RuntimeError(f"Google API token refresh failed: {e}")

    async def _open_spreadsheet(self) -> None:
        try:
            self.spreadsheet = await asyncio.to_thread(self.client.open, self.spreadsheet_name)
        except gspread.SpreadsheetNotFound:
            raise RuntimeError(
                f"Spreadsheet '{self.spreadsheet_name}' not found. "
                "Check the spreadsheet name and sharing permissions."
            )

        try:
            self.worksheet = await asyncio.to_thread(self.spreadsheet.worksheet, self.worksheet_name)
        except gspread.WorksheetNotFound:
            logger.warning(f"Worksheet '{self.worksheet_name}' not found, using first available")
            self.worksheet = self.spreadsheet.sheet1
            self.worksheet_name = self.worksheet.title

        logger.debug(f"Opened worksheet: '{self.worksheet.title}'")

    async def _ensure_header(self) -> None:
        first_row = await asyncio.to_thread(self.worksheet.row_values, 1)
        if not first_row:
            await asyncio.to_thread(self.worksheet.append_row, ORDER_HEADER)
            logger.info("📝 Order header row written")

    async def _get_next_order_id(self) -> int:
        """Last numeric id in the first column plus one; -1 when the column cannot be read."""
        try:
            ids = await asyncio.to_thread(self.worksheet.col_values, 1)
        except Exception as e:
            logger.error(f"❌ Failed to get next order ID: {e}")
            return -1

        for value in reversed(ids):
            if value and value.isdigit():
                return int(value) + 1
        return 1

    @staticmethod
    def prepare_order_rows(order_id: int, order: OrderData) -> List[List[Any]]:
        rows = []
        for item in order.items:
            rows.append([
                order_id,
                order.order_date,
                order.customer_name,
                order.customer_phone,
                item.product.name,
                item.size.value,
                item.sugar.value,
                item.ice.value,
                "、".join(t.name for t in item.toppings),
                item.quantity,
                item.subtotal,
                item.note or "",
                order.total_amount,
            ])
        return rows

    async def add_order(self, order: OrderData) -> bool:
        if not self._is_initialized():
            logger.error("GoogleSheetsManager not initialized")
            return False

        # the id read and the append must not interleave with another order
        async with self._order_lock:
            return await self._write_order(order)

    async def _write_order(self, order: OrderData) -> bool:
        order_id = await self._get_next_order_id()
        if order_id == -1:
            logger.error("Failed to add order due to ID generation error.")
            return False

        logger.info(f"Adding order #{order_id} to Google Sheets for {order.customer_name}")
        rows = self.prepare_order_rows(order_id, order)

        for attempt in range(self.max_retries):
            try:
                if await self._append_rows(rows, attempt):
                    self._update_stats(success=True)
                    logger.info(f"✅ Order #{order_id} added ({len(rows)} rows)")
                    return True
                self._update_stats(success=False)
            except Exception as e:
                self._update_stats(success=False)
                logger.error(f"❌ Attempt {attempt + 1} failed: {e}")

            if attempt == self.max_retries - 1:
                logger.error(f"❌ All {self.max_retries} attempts failed for order #{order_id}")
                break

            delay = min(self.base_delay * (2 ** attempt), self.max_delay)
            logger.info(f"⏳ Retrying in {delay:.1f} seconds...")
            await asyncio.sleep(delay)

        return False

    async def _append_rows(self, rows: List[List[Any]], attempt: int) -> bool:
        """False for errors worth retrying (quota, auth), raises for the rest."""
        try:
            if attempt > 0:
                await self._refresh_credentials_if_needed()
            await asyncio.to_thread(self.worksheet.append_rows, rows)
            return True

        except gspread.exceptions.APIError as e:
            error_details = e.response.json() if getattr(e, 'response', None) is not None else {}
            error_code = error_details.get('error', {}).get('code')
            error_message = error_details.get('error', {}).get('message', str(e))

            if error_code == 429:
                self.connection_stats["quota_errors_count"] += 1
                logger.warning(f"⚠️ Google API quota exceeded (attempt {attempt + 1}): {error_message}")
                return False
            if error_code in (401, 403):
                logger.warning(f"⚠️ Authorization error (attempt {attempt + 1}): {error_message}")
                return False
            raise RuntimeError(f"Google Sheets API error: {error_message}")

        except AccessTokenRefreshError:
            logger.warning(f"⚠️ Token refresh error (attempt {attempt + 1})")
            return False

    async def _refresh_credentials_if_needed(self) -> None:
        logger.info("🔄 Refreshing Google Sheets authorization...")
        self.client = await asyncio.to_thread(gspread.authorize, self.credentials)
        self.spreadsheet = await asyncio.to_thread(self.client.open, self.spreadsheet_name)
        self.worksheet = await asyncio.to_thread(self.spreadsheet.worksheet, self.worksheet_name)
        logger.info("✅ Google Sheets authorization refreshed")

    def _update_stats(self, success: bool) -> None:
        self.connection_stats["last_used_at"] = datetime.datetime.now()
        self.connection_stats["requests_count"] += 1
        if not success:
            self.connection_stats["errors_count"] += 1

    def _is_initialized(self) -> bool:
        return (self.client is not None and
                self.spreadsheet is not None and
                self.worksheet is not None)

    async def health_check(self) -> Dict[str, Any]:
        health_info = {
            "status": "unknown",
            "initialized": self._is_initialized(),
            "stats": self.connection_stats.copy()
        }

        if not self._is_initialized():
            health_info["status"] = "not_initialized"
            return health_info

        try:
            await asyncio.to_thread(self.worksheet.acell, "A1")
            health_info["status"] = "healthy"
        except Exception as e:
            health_info["status"] = "error"
            health_info["error"] = str(e)
            logger.warning(f"Google Sheets health check failed: {e}")

        return health_info

    async def close(self) -> None:
        logger.info("🧹 Closing Google Sheets connection...")

        if self.connection_stats["initialized_at"]:
            uptime = datetime.datetime.now() - self.connection_stats["initialized_at"]
            logger.info("📊 Google Sheets Manager Stats:")
            logger.info(f"   • Uptime: {uptime}")
            logger.info(f"   • Total requests: {self.connection_stats['requests_count']}")
            logger.info(f"   • Errors: {self.connection_stats['errors_count']}")
            logger.info(f"   • Quota errors: {self.connection_stats['quota_errors_count']}")

        self.worksheet = None
        self.spreadsheet = None
        self.client = None
        self.credentials = None
        self.connection_stats = self._empty_stats()

        GoogleSheetsManager._initialized = False
        GoogleSheetsManager._instance = None
        logger.info("✅ Google Sheets connection closed successfully")


google_sheets_manager = GoogleSheetsManager()
