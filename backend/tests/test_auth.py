"""Тесты авторизации: логин, токен, /auth/me."""
from conftest import PASSWORD, auth_headers


def test_login_returns_token(client, floor):
    """POST /auth/login с верными данными возвращает access_token."""
    r = client.post("/auth/login", data={"username": "Admin", "password": PASSWORD})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["access_token"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "admin"
    assert data["user"]["name"] == "Admin"


def test_login_wrong_password(client, floor):
    r = client.post("/auth/login", data={"username": "aziz", "password": "wrong"})
    assert r.status_code == 401


def test_login_inactive_worker(client, floor):
    """Уволенный сотрудник войти не может."""
    r = client.post("/auth/login", data={"username": "fired", "password": PASSWORD})
    assert r.status_code == 401


def test_me_requires_auth(client):
    """GET /auth/me без токена возвращает 401."""
    r = client.get("/auth/me")
    assert r.status_code == 401


def test_me_rejects_garbage_token(client):
    r = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_login_token_works_for_me(client, floor):
    token = client.post("/auth/login", data={"username": "aziz", "password": PASSWORD}).json()["access_token"]
    r = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 200
    assert r.json()["id"] == floor.waiter.id


def test_me_lists_operations_of_role(client, floor):
    r = client.get("/auth/me", headers=auth_headers(floor.waiter))
    assert r.status_code == 200
    data = r.json()
    assert data["role"] == "waiter"
    assert "create_order" in data["operations"]
    assert "settle_table" not in data["operations"]

    chef_ops = client.get("/auth/me", headers=auth_headers(floor.chef)).json()["operations"]
    assert "restock_dish" in chef_ops
    assert "create_order" not in chef_ops


def test_deactivated_worker_token_is_not_found(client, floor, db):
    """Токен есть, но сотрудник уволен: сервис не находит его в хранилище."""
    r = client.post(
        "/orders",
        json={"table_id": floor.table1.id, "items": [{"dish_id": floor.osh.id, "quantity": 1}]},
        headers=auth_headers(floor.fired),
    )
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"
    assert db.stock(floor.osh.id) == 10
