from config import config
from teashop.services import order_service
from teashop.services.script_service import google_script_service
from teashop.utils.cart import build_cart_item, cart_registry
from teashop.utils.catalog import menu_catalog
from teashop.utils.exceptions import RelayError
from teashop.utils.models import StoreData

CUSTOMER = {"customerName": "王小明", "customerPhone": "0912345678"}


def add_milk_tea(client, sid="s1", **overrides):
    body = {"productId": "p4", "size": "L", "toppingIds": ["t1", "t4"], "quantity": 2}
    body.update(overrides)
    return client.post(f"/api/cart/{sid}/items", json=body)


def test_builtin_menu(client):
    response = client.get("/api/menu")
    assert response.status_code == 200
    assert "s-maxage" in response.headers["cache-control"]

    menu = response.json()
    assert menu["source"] == "builtin"
    assert menu["isOpen"] is True
    assert len(menu["products"]) == 10
    assert menu["categories"][0] == "原茶系列"
    assert menu["products"][3]["priceM"] == 50
    assert menu["products"][3]["hasHot"] is True
    assert [t["id"] for t in menu["toppings"]] == ["t1", "t2", "t3", "t4", "t5"]


def test_menu_category(client):
    response = client.get("/api/menu/醇奶茶系列")
    assert [p["id"] for p in response.json()] == ["p4", "p5", "p6"]
    assert client.get("/api/menu/不存在").json() == []


def test_menu_from_sheet(client, monkeypatch):
    async def fake_fetch_store():
        return StoreData(is_open=False, store_name="清心茶屋", menu=[
            {"category": "原茶", "name": "四季春", "priceM": "25", "priceL": "30"},
            {"category": "加料", "name": "珍珠", "priceM": 10},
        ])

    monkeypatch.setattr(google_script_service, "fetch_store", fake_fetch_store)
    menu = client.get("/api/menu").json()

    assert menu["source"] == "sheet"
    assert menu["storeName"] == "清心茶屋"
    assert menu["isOpen"] is False
    assert [p["name"] for p in menu["products"]] == ["四季春"]
    assert [t["name"] for t in menu["toppings"]] == ["珍珠"]


def test_store_without_relay_url(client):
    response = client.get("/api/store")
    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Server configuration error: GOOGLE_SCRIPT_URL not set",
    }


def test_store_passthrough(client, monkeypatch):
    async def fake_fetch_store():
        return StoreData(is_open=True, store_name="清心茶屋", menu=[{"name": "紅茶"}])

    monkeypatch.setattr(google_script_service, "fetch_store", fake_fetch_store)
    response = client.get("/api/store")

    assert response.status_code == 200
    assert response.headers["cache-control"] == (
        f"s-maxage={config.STORE_CACHE_SECONDS}, stale-while-revalidate"
    )
    assert response.json() == {"isOpen": True, "storeName": "清心茶屋", "menu": [{"name": "紅茶"}]}


def test_status(client):
    status = client.get("/api/status").json()
    assert status["status"] == "ok"
    assert status["relayConfigured"] is False
    assert status["orderSink"] == "script"
    assert "sheets" not in status


def test_add_to_cart_and_totals(client):
    response = add_milk_tea(client)
    assert response.status_code == 201
    item = response.json()
    assert item["subtotal"] == (60 + 10 + 15) * 2
    assert item["sugar"] == "正常糖"
    assert item["ice"] == "正常冰"

    client.post("/api/cart/s1/items", json={"productId": "p1"})
    cart = client.get("/api/cart/s1").json()
    assert cart["count"] == 2
    assert cart["totalAmount"] == 170 + 30

    cart = client.delete(f"/api/cart/s1/items/{item['id']}").json()
    assert cart["count"] == 1
    assert cart["totalAmount"] == 30

    assert client.get("/api/cart/other").json()["count"] == 0


def test_add_to_cart_rejections(client):
    response = client.post("/api/cart/s1/items", json={"productId": "nope"})
    assert response.status_code == 404
    assert response.json()["success"] is False

    assert add_milk_tea(client, toppingIds=["t9"]).status_code == 400
    assert add_milk_tea(client, quantity=0).status_code == 400
    assert add_milk_tea(client, sugar="超甜").status_code == 422


def test_clear_cart(client):
    add_milk_tea(client)
    cart = client.delete("/api/cart/s1").json()
    assert cart == {"items": [], "count": 0, "totalAmount": 0}


def test_checkout_validation(client):
    response = client.post("/api/cart/s1/checkout", json=CUSTOMER)
    assert response.status_code == 400
    assert response.json()["message"] == "購物車是空的"

    add_milk_tea(client)
    response = client.post("/api/cart/s1/checkout", json={"customerName": "王小明"})
    assert response.status_code == 400
    assert response.json()["message"] == "請填寫姓名與電話"


def test_checkout_success(client, monkeypatch):
    sent = []

    async def fake_submit(order):
        sent.append(order)
        return True

    monkeypatch.setattr(order_service, "submit_order", fake_submit)
    add_milk_tea(client)

    response = client.post("/api/cart/s1/checkout", json=CUSTOMER)

    assert response.status_code == 200
    result = response.json()
    assert result["success"] is True
    assert result["order"]["status"] == "submitted"
    assert result["order"]["totalAmount"] == 170
    assert sent[0].status == "pending"
    assert client.get("/api/cart/s1").json()["count"] == 0


def test_checkout_failure_keeps_cart(client, monkeypatch):
    async def fake_submit(order):
        return False

    monkeypatch.setattr(order_service, "submit_order", fake_submit)
    add_milk_tea(client)

    response = client.post("/api/cart/s1/checkout", json=CUSTOMER)

    assert response.status_code == 502
    assert response.json()["message"] == "訂單送出失敗，請稍後再試。"
    assert client.get("/api/cart/s1").json()["count"] == 1


def test_checkout_when_store_closed(client, monkeypatch):
    monkeypatch.setattr(menu_catalog, "is_open", False)
    add_milk_tea(client)
    response = client.post("/api/cart/s1/checkout", json=CUSTOMER)
    assert response.status_code == 409


def test_checkout_through_relay_without_url(client):
    add_milk_tea(client)
    response = client.post("/api/cart/s1/checkout", json=CUSTOMER)
    assert response.status_code == 502


def test_menu_survives_relay_errors(client, monkeypatch):
    async def failing_fetch_store():
        raise RelayError("Failed to fetch store data.")

    monkeypatch.setattr(google_script_service, "fetch_store", failing_fetch_store)
    menu = client.get("/api/menu").json()
    assert menu["source"] == "builtin"
    assert len(menu["products"]) == 10


def test_checkout_keeps_lines_added_while_submitting(client, monkeypatch):
    late = []

    async def slow_submit(order):
        late.append(cart_registry.get("s1").add(build_cart_item(menu_catalog.find_product("p1"))))
        return True

    monkeypatch.setattr(order_service, "submit_order", slow_submit)
    ordered_id = add_milk_tea(client).json()["id"]

    result = client.post("/api/cart/s1/checkout", json=CUSTOMER).json()

    assert [item["id"] for item in result["order"]["items"]] == [ordered_id]
    cart = client.get("/api/cart/s1").json()
    assert [item["id"] for item in cart["items"]] == [late[0].id]
    assert cart["totalAmount"] == 30


def test_successful_checkout_drops_the_session(client, monkeypatch):
    async def fake_submit(order):
        return True

    monkeypatch.setattr(order_service, "submit_order", fake_submit)
    add_milk_tea(client)
    client.post("/api/cart/s1/checkout", json=CUSTOMER)

    assert cart_registry.find("s1") is None
    assert len(cart_registry) == 0


def test_reading_unknown_carts_registers_nothing(client):
    for i in range(20):
        assert client.get(f"/api/cart/visitor-{i}").json()["count"] == 0
        client.delete(f"/api/cart/visitor-{i}/items/missing")
        client.delete(f"/api/cart/visitor-{i}")
    response = client.post("/api/cart/visitor-0/checkout", json=CUSTOMER)

    assert response.status_code == 400
    assert len(cart_registry) == 0


def test_removing_the_last_line_drops_the_session(client):
    item_id = add_milk_tea(client).json()["id"]
    add_milk_tea(client, sid="s2")

    client.delete(f"/api/cart/s1/items/{item_id}")

    assert cart_registry.find("s1") is None
    assert cart_registry.find("s2") is not None
