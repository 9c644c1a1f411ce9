# main.py

import sys
import traceback
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from loguru import logger

from config import config
from teashop.services.script_service import google_script_service
from teashop.utils.catalog import menu_catalog
from teashop.utils.google_sheets_manager import google_sheets_manager
from teashop.webapp import app as fastapi_app


class ShopApplication:
    """
    Startup and shutdown of the resources the web app depends on.
    """

    def __init__(self):
        logger.info("ShopApplication instance created")

    async def initialize(self) -> None:
        logger.info("Initializing shop components...")
        if config.ORDER_SINK == "sheets":
            await google_sheets_manager.initialize()
            logger.info("✅ Google Sheets order sink ready")

        await menu_catalog.refresh(google_script_service, force=True)
        logger.info(f"✅ Menu loaded from {menu_catalog.source}: {len(menu_catalog.products)} products")
        logger.info("🚀 All shop components initialized successfully")

    async def cleanup(self) -> None:
        logger.info("🧹 Starting cleanup process...")
        try:
            if google_sheets_manager.client is not None:
                await google_sheets_manager.close()
        except Exception as e:
            logger.error(f"❌ Error while closing Google Sheets connection: {e}")
        logger.info("🧹 Cleanup finished")


shop_app = ShopApplication()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Starting application lifespan...")
    await shop_app.initialize()
    yield
    logger.info("🧹 Shutting down application lifespan...")
    await shop_app.cleanup()
    logger.info("👋 Application shutdown complete")


fastapi_app.router.lifespan_context = lifespan

if __name__ == "__main__":
    logger.info("🏁 Launching bubble tea shop...")
    try:
        config.validate_env()
        uvicorn.run(
            fastapi_app,
            host=config.HOST,
            port=config.PORT,
            log_level="info"
        )
    except Exception as e:
        logger.critical(f"💥 Fatal error during application launch: {e}\n{traceback.format_exc()}")
        sys.exit(1)
