"""
Login, tokens and user administration.
"""
from app.core.security import create_access_token, decode_access_token, hash_password, verify_password
from app.services.logger_service import logging_controller


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)


def test_token_roundtrip():
    payload = decode_access_token(create_access_token(7, "USER"))
    assert payload["sub"] == "7"
    assert payload["role"] == "USER"


def test_expired_token_is_rejected(client, regular_user):
    token = create_access_token(regular_user.id, regular_user.role, expires_minutes=-1)
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_login_with_username_or_email(client, regular_user):
    response = client.post("/auth/login", json={"username": "operator", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["data"]["access_token"]

    response = client.post("/auth/login", json={"username": "operator@example.com", "password": "secret123"})
    assert response.status_code == 200

    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"}).json()["data"]
    assert me["username"] == "operator"
    assert me["role"] == "USER"


def test_login_failures(client, regular_user):
    assert client.post("/auth/login", json={"username": "operator", "password": "nope"}).status_code == 401
    assert client.post("/auth/login", json={"username": "ghost", "password": "secret123"}).status_code == 401


def test_deactivated_user_is_locked_out(client, admin_headers, user_headers, regular_user):
    response = client.patch(f"/users/{regular_user.id}/status", headers=admin_headers)
    assert response.json()["data"]["is_active"] is False

    assert client.get("/auth/me", headers=user_headers).status_code == 403
    assert client.post("/auth/login", json={"username": "operator", "password": "secret123"}).status_code == 403


def test_user_crud(client, admin_headers, user_headers):
    payload = {"username": "tech", "email": "tech@example.com", "password": "secret123"}
    assert client.post("/users/", json=payload, headers=user_headers).status_code == 403

    response = client.post("/users/", json=payload, headers=admin_headers)
    assert response.status_code == 201
    user_id = response.json()["data"]["id"]
    assert client.post("/users/", json=payload, headers=admin_headers).status_code == 409
    assert client.post("/users/", json={**payload, "username": "x" * 5, "email": "x@example.com", "password": "123"},
                       headers=admin_headers).status_code == 400

    response = client.put(f"/users/{user_id}", json={"role": "admin"}, headers=admin_headers)
    assert response.json()["data"]["role"] == "ADMIN"

    usernames = [u["username"] for u in client.get("/users/", headers=admin_headers).json()["data"]]
    assert "tech" in usernames

    assert client.delete(f"/users/{user_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/users/{user_id}", headers=admin_headers).status_code == 404


def test_admin_cannot_delete_self(client, admin_headers, admin_user):
    assert client.delete(f"/users/{admin_user.id}", headers=admin_headers).status_code == 400
    assert client.patch(f"/users/{admin_user.id}/status", headers=admin_headers).status_code == 400


def test_deleting_user_stops_their_session(client, admin_headers, user_headers, regular_user):
    client.post("/logger/start", json={"humidity": "all", "interval": 60000}, headers=user_headers)
    assert logging_controller.is_logging(regular_user.id)

    client.delete(f"/users/{regular_user.id}", headers=admin_headers)
    assert not logging_controller.is_logging(regular_user.id)


def test_change_password(client, user_headers):
    payload = {"current_password": "wrong", "new_password": "newsecret"}
    assert client.patch("/users/change-password", json=payload, headers=user_headers).status_code == 400

    payload["current_password"] = "secret123"
    assert client.patch("/users/change-password", json=payload, headers=user_headers).status_code == 200
    assert client.post("/auth/login", json={"username": "operator", "password": "newsecret"}).status_code == 200
