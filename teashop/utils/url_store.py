# teashop/utils/url_store.py

import json
from pathlib import Path
from typing import Optional

from loguru import logger

from config import config

STORAGE_KEY = 'google_script_url'


def _storage_path(path: Optional[Path]) -> Path:
    return Path(path) if path else config.STORED_URL_FILE


def _read(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        logger.warning(f"⚠️ Local storage file {path} is not valid JSON, ignoring it: {e}")
        return {}
    return data if isinstance(data, dict) else {}


def get_stored_url(path: Optional[Path] = None) -> Optional[str]:
    """Fallback relay URL saved by an admin, or None."""
    value = _read(_storage_path(path)).get(STORAGE_KEY)
    return value or None


def save_stored_url(url: str, path: Optional[Path] = None) -> None:
    path = _storage_path(path)
    data = _read(path)
    data[STORAGE_KEY] = url.strip()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info(f"💾 Saved fallback Google Script URL to {path}")
