import secrets
from typing import List, Literal

from fastapi import APIRouter, Depends, Request, Response
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger
from pydantic import BaseModel, Field

from config import config
from teashop.services.script_service import google_script_service
from teashop.services.vision_service import menu_vision_service
from teashop.utils.catalog import menu_catalog
from teashop.utils.csv_parser import parse_menu_csv, sample_csv_content
from teashop.utils.exceptions import AuthenticationError, ConfigurationError, MenuImportError, TeaShopError
from teashop.utils.menu_export import CSV_FILENAME, JSON_FILENAME, export_menu_csv, export_menu_json
from teashop.utils.menu_import import import_scanned_menu
from teashop.utils.models import CamelModel, Catalog, MenuItem, ParsedMenu, ToppingItem, UserProfile
from teashop.utils.url_store import get_stored_url, save_stored_url

router = APIRouter(prefix="/api", tags=["Admin"])
security = HTTPBasic(auto_error=False)


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


class AnalyzeRequest(BaseModel):
    image: str = ""


class MenuSyncRequest(CamelModel):
    store_name: str = ""
    items: List[MenuItem] = Field(default_factory=list)
    toppings: List[ToppingItem] = Field(default_factory=list)


class ScriptUrlRequest(BaseModel):
    url: str


def _check_credentials(username: str, password: str) -> bool:
    if not config.ADMIN_USERNAME or not config.ADMIN_PASSWORD:
        logger.error("❌ Error: Admin credentials not set in the environment.")
        raise ConfigurationError("Server configuration error: Credentials missing")
    user_ok = secrets.compare_digest(username.encode("utf-8"), config.ADMIN_USERNAME.encode("utf-8"))
    pass_ok = secrets.compare_digest(password.encode("utf-8"), config.ADMIN_PASSWORD.encode("utf-8"))
    return user_ok and pass_ok


def require_admin(credentials: HTTPBasicCredentials | None = Depends(security)) -> UserProfile:
    """FastAPI dependency guarding the digitizer and menu management endpoints."""
    if credentials is None or not _check_credentials(credentials.username, credentials.password):
        raise AuthenticationError("Invalid username or password", headers={"WWW-Authenticate": "Basic"})
    return UserProfile(username=credentials.username)


@router.post("/auth")
async def login(payload: LoginRequest):
    if not _check_credentials(payload.username, payload.password):
        logger.warning(f"⚠️ Failed admin login for '{payload.username}'")
        raise AuthenticationError("Invalid username or password")
    profile = UserProfile(username=payload.username)
    logger.info(f"👑 Admin '{profile.username}' signed in")
    return {"success": True, "role": profile.role, "username": profile.username}


@router.post("/analyze", response_model=ParsedMenu)
async def analyze_menu(payload: AnalyzeRequest, admin: UserProfile = Depends(require_admin)):
    logger.info(f"📷 Menu scan requested by {admin.username}")
    return await menu_vision_service.analyze_menu_image(payload.image)


@router.post("/menu/sync")
async def sync_menu(payload: MenuSyncRequest, admin: UserProfile = Depends(require_admin)):
    """
    Publishes a reviewed scan: the storefront switches to it immediately,
    then the sheet is overwritten through the relay.
    """
    store_name = payload.store_name.strip()
    if not store_name:
        raise MenuImportError("Please enter the Shop Name (店家名稱) first.")
    if not payload.items:
        raise MenuImportError("No menu data found. Please scan a menu first.")

    products, toppings = import_scanned_menu(ParsedMenu(items=payload.items, toppings=payload.toppings))
    menu_catalog.replace(products, toppings, "scan", store_name=store_name)
    logger.info(f"🔄 {admin.username} syncing {len(products)} drinks to '{store_name}'")

    return await google_script_service.update_store_menu(store_name, products, toppings)


@router.post("/menu/csv", response_model=Catalog)
async def import_menu_csv(request: Request, admin: UserProfile = Depends(require_admin)):
    """Replaces the storefront menu with an uploaded CSV (raw text/csv body)."""
    raw = await request.body()
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise MenuImportError("CSV must be UTF-8 encoded")

    parsed = parse_menu_csv(text)
    if not parsed.products:
        raise MenuImportError("No valid rows found in CSV")

    toppings = parsed.toppings or menu_catalog.toppings
    menu_catalog.replace(parsed.products, toppings, "csv")
    logger.info(f"📥 {admin.username} imported {len(parsed.products)} products from CSV")
    return menu_catalog.snapshot()


@router.get("/menu/csv/sample")
async def get_sample_csv():
    return Response(
        content="\ufeff" + sample_csv_content() + "\n",
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="menu_template.csv"'},
    )


@router.post("/menu/export")
async def export_menu(payload: ParsedMenu, format: Literal["csv", "json"] = "csv",
                      admin: UserProfile = Depends(require_admin)):
    if format == "json":
        content = export_menu_json(payload.items, payload.toppings)
        media_type, filename = "application/json", JSON_FILENAME
    else:
        content = export_menu_csv(payload.items, payload.toppings)
        media_type, filename = "text/csv; charset=utf-8", CSV_FILENAME
    logger.info(f"📤 {admin.username} exported {len(payload.items)} drinks as {format}")
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/settings/script-url")
async def read_script_url(admin: UserProfile = Depends(require_admin)):
    return {"envUrlSet": bool(config.GOOGLE_SCRIPT_URL), "storedUrl": get_stored_url()}


@router.put("/settings/script-url")
async def update_script_url(payload: ScriptUrlRequest, admin: UserProfile = Depends(require_admin)):
    url = payload.url.strip()
    if not url.startswith(("https://", "http://")):
        raise TeaShopError("URL must start with http:// or https://", status_code=400)
    save_stored_url(url)
    logger.info(f"🔗 {admin.username} saved a fallback Google Script URL")
    return {"success": True, "storedUrl": url}
