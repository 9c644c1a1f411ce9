from typing import Dict, Optional


class TeaShopError(Exception):
    """Base class for errors the web layer turns into JSON responses."""
    status_code = 500

    def __init__(self, message: str, status_code: int | None = None,
                 headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(TeaShopError):
    status_code = 500


class AuthenticationError(TeaShopError):
    status_code = 401


class CartError(TeaShopError):
    status_code = 400


class MenuImportError(TeaShopError):
    status_code = 400


class RelayError(TeaShopError):
    status_code = 500


class VisionError(TeaShopError):
    status_code = 500
