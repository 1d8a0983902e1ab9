from datetime import timedelta

from fastapi.testclient import TestClient

from main import app
from utils.auth import create_access_token


def test_crated_existed_user(client):
    response = client.post("/api/auth/register",
                           json={"name": "User", "email": "user@example.com", "password": "Password1!"})
    assert response.status_code == 400
    assert response.json() == {"detail": "User already exists"}


def test_created_user_with_password_validation_error(client):
    response = client.post("/api/auth/register",
                           json={"name": "User", "email": "new@example.com", "password": "password"})
    assert response.status_code == 422
    error_detail = response.json()["detail"][0]
    assert error_detail["loc"] == ["body", "password"]
    assert "Password must contain at least one digit" in error_detail["msg"]
    assert "Password must contain at least one uppercase letter" in error_detail["msg"]
    assert "Password must contain at least one special character" in error_detail["msg"]


def test_login_with_wrong_password(client):
    response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "Wrong1!xx"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid credentials"}


def test_login_with_unknown_email(client):
    response = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "Password1!"})
    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid credentials"}


def test_admin_cannot_use_user_login(client):
    response = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "Password1!"})
    assert response.status_code == 403
    assert response.json() == {"detail": "Access denied. Use /admin/login instead."}


def test_user_cannot_use_admin_login(client):
    response = client.post("/api/auth/admin/login", json={"email": "user@example.com", "password": "Password1!"})
    assert response.status_code == 403
    assert response.json() == {"detail": "Access denied. Use /user/login instead."}


def test_logging_out_a_logged_out_user(client, user_headers):
    response = client.post("/api/auth/logout", headers=user_headers)
    assert response.status_code == 200
    response = client.post("/api/auth/logout", headers=user_headers)
    assert response.status_code == 200
    assert response.json() == {"detail": "User already logged out"}


def test_logout_with_invalid_token(client):
    response = client.post("/api/auth/logout", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Token is invalid"}


def test_logout_with_expired_token(client):
    token = create_access_token({"sub": "1"}, expires_delta=timedelta(seconds=-10))
    response = client.post("/api/auth/logout", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Token has already expired"}


def test_protected_route_without_token():
    response = TestClient(app).get("/api/auth/me")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized. Please log in."}


def test_protected_route_with_garbage_token(client):
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401
    assert response.json() == {"detail": "Invalid or expired token"}


def test_protected_route_for_deleted_user(client):
    token = create_access_token({"sub": "999"})
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json() == {"detail": "User not found."}


def test_request_from_other_device(client, user_headers):
    headers = dict(user_headers, **{"X-Device-Token": "some-other-device"})
    response = client.get("/api/auth/me", headers=headers)
    assert response.status_code == 403
    assert response.json() == {"detail": "Unauthorized device. Please log in again."}


def test_admin_route_as_user(client, user_headers):
    response = client.get("/api/admin/dashboard", headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"detail": "Access Denied. Admins only."}


def test_unknown_feed_item(client):
    response = client.get("/api/feed/12345")
    assert response.status_code == 404
    assert response.json() == {"detail": "Item not found"}
