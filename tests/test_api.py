import uuid

from restaurant.middleware.metrics import normalise_path


async def test_health(http):
    response = await http.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["X-Request-ID"]


async def test_request_id_is_echoed(http):
    response = await http.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


async def test_identity_headers_required(http, menu):
    assert (await http.get("/menu")).status_code == 401

    response = await http.get("/menu", headers={"X-User-ID": str(uuid.uuid4()), "X-User-Role": "chef"})
    assert response.status_code == 422
    assert response.json()["fields"] == ["role"]


async def test_browse_menu(http, menu, client_caller, identity):
    response = await http.get("/menu", headers=identity(client_caller))

    assert response.status_code == 200
    sections = response.json()
    assert [s["category"]["name"] for s in sections] == ["Pizzas", "Drinks"]
    assert [i["name"] for i in sections[0]["items"]] == ["Calzone", "Margherita Pizza"]


async def test_cart_checkout_and_lifecycle(http, menu, client_caller, server, identity):
    client_headers = identity(client_caller)
    for key in ("margherita", "margherita", "soda"):
        response = await http.post("/cart/items", json={"menu_item_id": str(menu[key].id)}, headers=client_headers)
        assert response.status_code == 200

    cart = (await http.get("/cart", headers=client_headers)).json()
    assert cart["total"] == "21.00"
    assert cart["item_count"] == 3

    response = await http.post("/cart/checkout", json={"table_ref": "T2"}, headers=client_headers)
    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["total_amount"] == "21.00"
    assert len(order["items"]) == 2

    assert (await http.get("/cart", headers=client_headers)).json()["lines"] == []

    response = await http.post(f"/orders/{order['id']}/advance", headers=identity(server))
    assert response.status_code == 200
    assert response.json()["order"]["status"] == "confirmed"
    assert response.json()["previous_status"] == "pending"

    response = await http.post(f"/orders/{order['id']}/advance", headers=client_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "forbidden", "detail": "Operation not permitted"}


async def test_unavailable_item_returns_409(http, menu, client_caller, identity):
    response = await http.post(
        "/cart/items", json={"menu_item_id": str(menu["tiramisu"].id)}, headers=identity(client_caller)
    )
    assert response.status_code == 409
    assert response.json()["error"] == "item_unavailable"


async def test_empty_checkout(http, client_caller, identity):
    response = await http.post("/cart/checkout", json={}, headers=identity(client_caller))
    assert response.status_code == 400
    assert response.json()["error"] == "empty_cart"

    orders = await http.get("/orders", headers=identity(client_caller))
    assert orders.json() == []


async def test_invalid_transition_and_recancel(http, menu, client_caller, server, identity):
    headers = identity(client_caller)
    await http.post("/cart/items", json={"menu_item_id": str(menu["soda"].id)}, headers=headers)
    order = (await http.post("/cart/checkout", json={}, headers=headers)).json()

    first = await http.post(f"/orders/{order['id']}/cancel", headers=headers)
    assert first.json()["changed"] is True

    again = await http.post(f"/orders/{order['id']}/cancel", headers=headers)
    assert again.status_code == 200
    assert again.json()["changed"] is False

    response = await http.post(f"/orders/{order['id']}/advance", headers=identity(server))
    assert response.status_code == 409
    assert response.json()["current_status"] == "cancelled"


async def test_admin_edits_menu_server_cannot(http, menu, admin, server, identity):
    body = {"name": "Lemonade", "price": "3.20", "category_id": str(menu["drinks"].id)}

    assert (await http.post("/menu/items", json=body, headers=identity(server))).status_code == 403

    response = await http.post("/menu/items", json=body, headers=identity(admin))
    assert response.status_code == 201
    assert response.json()["price"] == "3.20"

    item_id = response.json()["id"]
    response = await http.put(
        f"/menu/items/{item_id}/availability", json={"is_available": False}, headers=identity(admin)
    )
    assert response.json()["is_available"] is False


async def test_users_and_dashboard(http, users, admin, client_caller, identity):
    response = await http.put(f"/users/{client_caller.user_id}/role", json={"role": "server"}, headers=identity(admin))
    assert response.status_code == 200
    assert response.json()["role"] == "server"

    response = await http.put(f"/users/{client_caller.user_id}/role", json={"role": "boss"}, headers=identity(admin))
    assert response.status_code == 422
    assert response.json()["fields"] == ["role"]

    dashboard = (await http.get("/dashboard", headers=identity(admin))).json()
    assert dashboard["capabilities"] == ["administration", "service"]
    assert dashboard["users_by_role"] == {"admin": 1, "server": 2, "client": 1}

    client_view = (await http.get("/dashboard", headers=identity(client_caller))).json()
    assert "users_by_role" not in client_view
    assert client_view["total_spent"] == "0.00"


async def test_user_profile_routes(http, admin, client_caller, other_client, identity):
    response = await http.get(f"/users/{client_caller.user_id}", headers=identity(admin))
    assert response.status_code == 200
    assert response.json()["email"] == "chloe@example.com"

    own = await http.get(f"/users/{client_caller.user_id}", headers=identity(client_caller))
    assert own.status_code == 200
    assert own.json()["role"] == "client"

    response = await http.get(f"/users/{client_caller.user_id}", headers=identity(other_client))
    assert response.status_code == 403

    response = await http.get(f"/users/{uuid.uuid4()}", headers=identity(admin))
    assert response.status_code == 404

    response = await http.get("/users", params={"role": "client"}, headers=identity(admin))
    assert {u["first_name"] for u in response.json()} == {"Chloe", "Oscar"}

    response = await http.get("/users", params={"role": "boss"}, headers=identity(admin))
    assert response.status_code == 422
    assert response.json()["fields"] == ["role"]


async def test_malformed_catalog_body_uses_error_envelope(http, menu, admin, identity):
    body = {"name": "", "price": "abc", "category_id": str(menu["drinks"].id)}

    response = await http.post("/menu/items", json=body, headers=identity(admin))

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["fields"] == ["name", "price"]


async def test_caller_without_permission_is_refused_before_body_is_checked(
    http, menu, server, client_caller, identity
):
    response = await http.post("/menu/items", json={"name": "", "price": "abc"}, headers=identity(server))
    assert response.status_code == 403
    assert response.json() == {"error": "forbidden", "detail": "Operation not permitted"}

    response = await http.put(
        f"/users/{server.user_id}/role", json={"role": "boss"}, headers=identity(client_caller)
    )
    assert response.status_code == 403


async def test_item_of_retired_category_cannot_be_added(http, menu, client_caller, identity):
    response = await http.post(
        "/cart/items", json={"menu_item_id": str(menu["special"].id)}, headers=identity(client_caller)
    )
    assert response.status_code == 409
    assert response.json()["error"] == "item_unavailable"


async def test_cart_instructions(http, menu, client_caller, identity):
    headers = identity(client_caller)
    calzone = str(menu["calzone"].id)

    await http.post("/cart/items", json={"menu_item_id": calzone, "special_instructions": "no olives"}, headers=headers)
    response = await http.post(
        "/cart/items", json={"menu_item_id": calzone, "special_instructions": "extra cheese"}, headers=headers
    )
    line = response.json()["lines"][0]
    assert (line["quantity"], line["special_instructions"]) == (2, "no olives")

    response = await http.put(
        f"/cart/items/{calzone}/instructions", json={"special_instructions": "well done"}, headers=headers
    )
    assert response.json()["lines"][0]["special_instructions"] == "well done"

    response = await http.put(
        f"/cart/items/{menu['soda'].id}/instructions", json={"special_instructions": "no ice"}, headers=headers
    )
    assert response.status_code == 404


async def test_missing_order_is_404_for_staff(http, server, identity):
    response = await http.get(f"/orders/{uuid.uuid4()}", headers=identity(server))
    assert response.status_code == 404


def test_metric_paths_collapse_ids():
    order_id = uuid.uuid4()
    assert normalise_path(f"/orders/{order_id}/advance") == "/orders/{id}/advance"
    assert normalise_path("/menu") == "/menu"
