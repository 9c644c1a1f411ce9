from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


class Config(BaseSettings):
    """
    Storefront and menu digitizer settings, read from the environment and `.env`.
    """

    # --- General ---
    ENV_MODE: str = Field("local", description="local / docker")
    HOST: str = "0.0.0.0"
    PORT: int = 8010
    DATA_DIR: str = str(BASE_DIR / "data")
    HTTP_TIMEOUT: float = 30.0

    # --- Google Apps Script relay ---
    GOOGLE_SCRIPT_URL: str = ""
    STORE_CACHE_SECONDS: int = 60

    # --- Order sink: "script" relays through Apps Script, "sheets" writes rows with gspread ---
    ORDER_SINK: str = Field("script", description="script / sheets")

    # --- Google Sheets ---
    GOOGLE_CREDS_FILE: str = str(BASE_DIR / "google_sheets_creds.json")
    GOOGLE_SHEETS_SPREADSHEET_NAME: str = "飲料店訂單"
    GOOGLE_SHEETS_WORKSHEET_NAME: str = "訂單"

    # --- Vision API (menu digitizer) ---
    API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GEMINI_API_URL: str = "https://generativelanguage.googleapis.com/v1beta/models"

    # --- Admin ---
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def STORED_URL_FILE(self) -> Path:
        return Path(self.DATA_DIR) / "local_storage.json"

    def validate_env(self):
        """Simple validation of the required fields"""
        required_fields = ["ADMIN_USERNAME", "ADMIN_PASSWORD", "API_KEY"]
        if self.ORDER_SINK == "sheets":
            required_fields.append("GOOGLE_CREDS_FILE")
        missing = [f for f in required_fields if not getattr(self, f)]
        if self.ORDER_SINK not in ("script", "sheets"):
            raise RuntimeError(f"❌ Unknown ORDER_SINK: {self.ORDER_SINK!r}")
        if missing:
            raise RuntimeError(f"❌ Missing required config fields: {missing}")


config = Config()
