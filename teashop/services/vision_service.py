import json
import re
import uuid
from typing import Any, Callable, Dict, Optional, Tuple

import aiohttp
from loguru import logger
from pydantic import ValidationError

from config import config
from teashop.utils.exceptions import ConfigurationError, VisionError
from teashop.utils.models import MenuItem, ParsedMenu, ToppingItem

_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,", re.IGNORECASE)

MENU_PROMPT = """你是一位專業的繁體中文資料輸入助手。請分析這張飲料菜單圖片，並將資料轉換為結構化的 JSON 格式。

主要任務：
1. **飲料項目 (items)**：
   - 提取所有飲料名稱與價格。
   - 必須依照菜單上的區塊歸類「分類」(category)，例如「醇香奶茶」、「鮮果系列」、「原茶」等。
   - 若有中杯/大杯價格請分別提取。
   - 請務必使用**繁體中文**輸出名稱與分類。

2. **加料/配料 (toppings)**：
   - 尋找「加料區」、「配料」、「口感」、「Toppings」等區塊。
   - 提取配料名稱 (如：珍珠、椰果、仙草) 與價格。

重要規則 (IGNORE 列表)：
- **絕對不要** 提取「甜度表」(例如：全糖、七分、半糖、微糖) 作為飲料項目。
- **絕對不要** 提取「冰塊表」(例如：正常冰、少冰、去冰) 作為飲料項目。
- 這些是所有飲料共用的屬性，不需要列在個別項目中。

其他規則：
- 根據圖示 (雪花/熱氣) 或標題判斷是否供應冷飲 (cold_available) / 熱飲 (hot_available)。
- 如果價格是整數 (如 50)，請視為數字。
- 回傳資料請嚴格遵守定義的 JSON Schema。"""

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "items": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "category": {"type": "STRING"},
                    "name": {"type": "STRING"},
                    "price_medium": {"type": "NUMBER", "nullable": True},
                    "price_large": {"type": "NUMBER", "nullable": True},
                    "description": {"type": "STRING", "nullable": True},
                    "hot_available": {"type": "BOOLEAN"},
                    "cold_available": {"type": "BOOLEAN"},
                },
                "required": ["name", "category", "hot_available", "cold_available"],
            },
        },
        "toppings": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "name": {"type": "STRING"},
                    "price": {"type": "NUMBER"},
                },
                "required": ["name", "price"],
            },
        },
    },
    "required": ["items", "toppings"],
}


def split_image_payload(image: str) -> Tuple[str, str]:
    """Returns (mime_type, base64_data); a data URL header is stripped."""
    match = _DATA_URL.match(image)
    if not match:
        return "image/jpeg", image.strip()
    return match.group("mime") or "image/jpeg", image[match.end():].strip()


def build_request_body(mime_type: str, data: str) -> Dict[str, Any]:
    return {
        "contents": [{
            "parts": [
                {"inlineData": {"mimeType": mime_type, "data": data}},
                {"text": MENU_PROMPT},
            ],
        }],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
            "temperature": 0.1,
        },
    }


def extract_answer_text(response: Dict[str, Any]) -> str:
    candidates = response.get("candidates") or []
    if not candidates:
        raise VisionError("No data returned from Gemini.")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts)
    if not text.strip():
        raise VisionError("No data returned from Gemini.")
    return text


def parse_menu_answer(text: str) -> ParsedMenu:
    """Validates the model's JSON and gives every row a fresh id."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise VisionError(f"Gemini returned invalid JSON: {e}")
    if not isinstance(data, dict):
        raise VisionError("Gemini returned an unexpected structure.")

    items = []
    for raw in data.get("items") or []:
        if not isinstance(raw, dict) or not raw.get("name"):
            continue
        try:
            items.append(MenuItem(**{**raw, "id": str(uuid.uuid4()), "category": raw.get("category") or ""}))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping menu item {raw.get('name')!r}: {e.error_count()} invalid field(s)")

    toppings = []
    for raw in data.get("toppings") or []:
        if not isinstance(raw, dict) or not raw.get("name"):
            continue
        try:
            toppings.append(ToppingItem(id=str(uuid.uuid4()), name=raw["name"], price=raw.get("price") or 0))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping topping {raw.get('name')!r}: {e.error_count()} invalid field(s)")

    return ParsedMenu(items=items, toppings=toppings)


class MenuVisionService:
    """
    Sends a photo of a paper menu to Gemini and gets back drinks and toppings for review.
    """

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 session_factory: Optional[Callable[..., Any]] = None):
        self.api_key = api_key
        self.model = model or config.GEMINI_MODEL
        self.timeout = aiohttp.ClientTimeout(total=max(config.HTTP_TIMEOUT, 60))
        self.session_factory = session_factory or aiohttp.ClientSession

    @property
    def endpoint(self) -> str:
        return f"{config.GEMINI_API_URL.rstrip('/')}/{self.model}:generateContent"

    async def analyze_menu_image(self, image: str) -> ParsedMenu:
        api_key = self.api_key or config.API_KEY
        if not api_key:
            logger.error("❌ Critical Error: API_KEY is missing in the environment.")
            raise ConfigurationError("Server configuration error: API Key missing")

        if not image or not image.strip():
            raise VisionError("No image data provided", status_code=400)

        mime_type, data = split_image_payload(image)
        body = build_request_body(mime_type, data)
        headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}

        logger.info(f"📷 Sending menu photo to {self.model} ({len(data)} base64 chars)")
        async with self.session_factory(timeout=self.timeout) as session:
            try:
                async with session.post(self.endpoint, json=body, headers=headers) as resp:
                    if resp.status != 200:
                        error_body = await resp.text()
                        logger.error(f"❌ Gemini error. Status: {resp.status}, body: {error_body[:500]}")
                        raise VisionError(f"Gemini request failed with status {resp.status}")
                    result = await resp.json(content_type=None)
            except VisionError:
                raise
            except Exception as e:
                logger.error(f"❌ Error processing with Gemini: {e}")
                raise VisionError(str(e) or "Failed to analyze menu")

        parsed = parse_menu_answer(extract_answer_text(result))
        logger.info(f"✅ Menu analyzed: {len(parsed.items)} drinks, {len(parsed.toppings)} toppings")
        return parsed


menu_vision_service = MenuVisionService()
