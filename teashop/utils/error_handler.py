import traceback
from loguru import logger
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from teashop.utils.exceptions import TeaShopError


async def handle_shop_error(request: Request, exception: TeaShopError):
    """
    Domain errors: the message is safe to show to the client.
    """
    if exception.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exception.message}")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path} rejected: {exception.message}")
    return JSONResponse(
        status_code=exception.status_code,
        content={"success": False, "message": exception.message},
        headers=exception.headers
    )


async def handle_error(request: Request, exception: Exception):
    """
    Global handler for everything the endpoints did not catch.
    """
    error_message = (
        f"❗️❗️❗️ Unhandled error!\n"
        f"Request: {request.method} {request.url.path}\n"
        f"Exception: {exception}\n"
        f"Traceback:\n{''.join(traceback.format_exception(exception))}"
    )
    logger.error(error_message)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"}
    )


def setup_error_handlers(app: FastAPI):
    """
    Registers the exception handlers on the application.
    """
    app.add_exception_handler(TeaShopError, handle_shop_error)
    app.add_exception_handler(Exception, handle_error)
