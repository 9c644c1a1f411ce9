import json

from config import config
from teashop.services.script_service import google_script_service
from teashop.services.vision_service import menu_vision_service
from teashop.utils.catalog import menu_catalog
from teashop.utils.csv_parser import sample_csv_content
from teashop.utils.models import MenuItem, ParsedMenu, ToppingItem

SCANNED = {
    "storeName": "清心茶屋",
    "items": [
        {"id": "a", "category": "奶茶", "name": "珍珠奶茶", "price_medium": 50, "price_large": 60,
         "hot_available": True, "cold_available": True},
        {"id": "b", "category": "加料", "name": "芋圓", "price_medium": 15},
    ],
    "toppings": [{"id": "c", "name": "椰果", "price": 10}],
}


def test_login(client):
    response = client.post("/api/auth", json={"username": "admin", "password": "secret"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "role": "Administrator", "username": "admin"}

    response = client.post("/api/auth", json={"username": "admin", "password": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid username or password"}
    assert "www-authenticate" not in response.headers


def test_login_without_configured_credentials(client, monkeypatch):
    monkeypatch.setattr(config, "ADMIN_PASSWORD", "")
    response = client.post("/api/auth", json={"username": "admin", "password": ""})
    assert response.status_code == 500
    assert response.json()["message"] == "Server configuration error: Credentials missing"


def test_admin_endpoints_require_auth(client):
    response = client.post("/api/analyze", json={"image": "AAAA"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Basic"
    assert response.json() == {"success": False, "message": "Invalid username or password"}

    response = client.post("/api/menu/sync", json=SCANNED, auth=("admin", "nope"))
    assert response.status_code == 401


def test_analyze(client, admin_auth, monkeypatch):
    async def fake_analyze(image):
        assert image == "data:image/png;base64,AAAA"
        return ParsedMenu(items=[MenuItem(id="x", category="奶茶", name="紅茶", price_medium=25)],
                          toppings=[ToppingItem(id="y", name="珍珠", price=10)])

    monkeypatch.setattr(menu_vision_service, "analyze_menu_image", fake_analyze)
    response = client.post("/api/analyze", json={"image": "data:image/png;base64,AAAA"}, auth=admin_auth)

    assert response.status_code == 200
    body = response.json()
    assert body["items"][0]["price_medium"] == 25
    assert body["items"][0]["hot_available"] is False
    assert body["toppings"] == [{"id": "y", "name": "珍珠", "price": 10.0}]


def test_analyze_without_api_key(client, admin_auth):
    response = client.post("/api/analyze", json={"image": "AAAA"}, auth=admin_auth)
    assert response.status_code == 500
    assert response.json()["message"] == "Server configuration error: API Key missing"


def test_sync_validation(client, admin_auth):
    response = client.post("/api/menu/sync", json={**SCANNED, "storeName": "  "}, auth=admin_auth)
    assert response.status_code == 400
    assert "店家名稱" in response.json()["message"]

    response = client.post("/api/menu/sync", json={**SCANNED, "items": []}, auth=admin_auth)
    assert response.status_code == 400
    assert menu_catalog.source == "builtin"


def test_sync_publishes_scanned_menu(client, admin_auth, monkeypatch):
    calls = []

    async def fake_update(store_name, products, toppings):
        calls.append((store_name, products, toppings))
        return {"success": True, "message": "Menu updated"}

    monkeypatch.setattr(google_script_service, "update_store_menu", fake_update)
    response = client.post("/api/menu/sync", json=SCANNED, auth=admin_auth)

    assert response.status_code == 200
    assert response.json()["success"] is True

    store_name, products, toppings = calls[0]
    assert store_name == "清心茶屋"
    assert [p.name for p in products] == ["珍珠奶茶"]
    assert [t.name for t in toppings] == ["芋圓", "椰果"]
    assert menu_catalog.source == "scan"
    assert menu_catalog.store_name == "清心茶屋"
    assert menu_catalog.find_product("a").price_l == 60


def test_sync_without_relay_url(client, admin_auth):
    response = client.post("/api/menu/sync", json=SCANNED, auth=admin_auth)
    assert response.status_code == 500
    assert "GOOGLE_SCRIPT_URL" in response.json()["message"]


def test_csv_import(client, admin_auth):
    body = "\ufeff" + sample_csv_content() + "\n原茶,四季春,,25,30\n加料,珍珠,,10,\n"
    response = client.post("/api/menu/csv", content=body.encode("utf-8"),
                           headers={"Content-Type": "text/csv"}, auth=admin_auth)

    assert response.status_code == 200
    menu = response.json()
    assert menu["source"] == "csv"
    assert [p["name"] for p in menu["products"]] == ["四季春"]
    assert [t["name"] for t in menu["toppings"]] == ["珍珠"]


def test_csv_import_keeps_toppings_when_file_has_none(client, admin_auth):
    body = sample_csv_content() + "\n原茶,四季春,,25,30\n"
    menu = client.post("/api/menu/csv", content=body.encode("utf-8"), auth=admin_auth).json()
    assert len(menu["toppings"]) == 5


def test_csv_import_without_rows(client, admin_auth):
    response = client.post("/api/menu/csv", content=sample_csv_content().encode("utf-8"), auth=admin_auth)
    assert response.status_code == 400
    assert menu_catalog.source == "builtin"


def test_sample_csv(client):
    response = client.get("/api/menu/csv/sample")
    assert response.status_code == 200
    assert "attachment" in response.headers["content-disposition"]
    assert response.content.decode("utf-8-sig").startswith("類別,飲品名稱")


def test_export(client, admin_auth):
    payload = {"items": SCANNED["items"][:1], "toppings": SCANNED["toppings"]}

    response = client.post("/api/menu/export", json=payload, auth=admin_auth)
    assert response.status_code == 200
    assert 'filename="menu_export.csv"' in response.headers["content-disposition"]
    lines = response.content.decode("utf-8-sig").splitlines()
    assert lines[1] == "奶茶,珍珠奶茶,50,60,,Yes,Yes"
    assert lines[2] == "Toppings/Add-ons,椰果,10,,Add-on item,No,No"

    response = client.post("/api/menu/export?format=json", json=payload, auth=admin_auth)
    data = json.loads(response.content)
    assert data["add_ons"][0]["name"] == "椰果"

    response = client.post("/api/menu/export?format=xml", json=payload, auth=admin_auth)
    assert response.status_code == 422


def test_script_url_settings(client, admin_auth):
    assert client.get("/api/settings/script-url", auth=admin_auth).json() == {
        "envUrlSet": False, "storedUrl": None,
    }

    response = client.put("/api/settings/script-url", json={"url": "ftp://x"}, auth=admin_auth)
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "URL must start with http:// or https://"}

    url = "https://script.google.com/macros/s/abc/exec"
    response = client.put("/api/settings/script-url", json={"url": f" {url} "}, auth=admin_auth)
    assert response.json() == {"success": True, "storedUrl": url}
    assert client.get("/api/settings/script-url", auth=admin_auth).json()["storedUrl"] == url
    assert google_script_service.resolve_url() == url


def test_sync_with_non_finite_prices(client, admin_auth, monkeypatch):
    async def fake_update(store_name, products, toppings):
        return {"success": True, "message": "Menu updated"}

    monkeypatch.setattr(google_script_service, "update_store_menu", fake_update)
    body = (
        '{"storeName": "清心茶屋", "items": [{"category": "奶茶", "name": "珍珠奶茶", '
        '"price_medium": NaN, "price_large": Infinity}], "toppings": []}'
    )
    response = client.post("/api/menu/sync", content=body.encode("utf-8"),
                           headers={"Content-Type": "application/json"}, auth=admin_auth)

    assert response.status_code == 200
    product = menu_catalog.products[0]
    assert (product.price_m, product.price_l) == (0, 0)
