import json

import pytest
from fastapi.testclient import TestClient

from config import config
from teashop.utils.cart import cart_registry
from teashop.utils.catalog import menu_catalog
from teashop.webapp import app


class FakeResponse:
    def __init__(self, status=200, payload=None, text=None):
        self.status = status
        self._payload = payload
        self._text = text if text is not None else json.dumps(payload, ensure_ascii=False)

    async def json(self, content_type=None):
        return json.loads(self._text)

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Stands in for aiohttp.ClientSession, answering requests from a queue."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


@pytest.fixture
def make_session():
    def _make(*responses):
        session = FakeSession(responses)
        return (lambda **kwargs: session), session
    return _make


@pytest.fixture(autouse=True)
def isolated_state(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATA_DIR", str(tmp_path))
    monkeypatch.setattr(config, "GOOGLE_SCRIPT_URL", "")
    monkeypatch.setattr(config, "ORDER_SINK", "script")
    monkeypatch.setattr(config, "API_KEY", "")
    monkeypatch.setattr(config, "ADMIN_USERNAME", "admin")
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "secret")
    menu_catalog.load_builtin()
    menu_catalog.loaded_at = None
    cart_registry._carts.clear()
    yield
    cart_registry._carts.clear()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def admin_auth():
    return ("admin", "secret")
