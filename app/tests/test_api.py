import pytest


def test_create_user(client):
    response = client.post(
        "/api/auth/register", json={
              "name": "Test",
              "email": "test@example.com",
              "password": "Password1!"
            }
        )
    assert response.status_code == 201, response.text
    assert response.json() == {"detail": "User registered successfully as user"}


def test_register_admin_email_gets_admin_role(client, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "boss@example.com")
    response = client.post("/api/auth/register",
                           json={"name": "Boss", "email": "boss@example.com", "password": "Password1!"})
    assert response.status_code == 201, response.text
    assert response.json() == {"detail": "User registered successfully as admin"}

    response = client.post("/api/auth/admin/login", json={"email": "boss@example.com", "password": "Password1!"})
    assert response.status_code == 200, response.text
    assert response.json()["user"]["role"] == "admin"


@pytest.fixture()
def logged_in_user(client):
    response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "Password1!"})
    token = response.json()
    headers = {
        "Authorization": f"Bearer {token['accessToken']}",
        "X-Device-Token": token["user"]["deviceToken"],
    }

    def logout():
        client.post("/api/auth/logout", headers=headers)

    yield headers, logout


def test_login_returns_token_and_cookies(client):
    response = client.post("/api/auth/login", json={"email": "user@example.com", "password": "Password1!"},
                           headers={"User-Agent": "pytest", "CF-IPCountry": "PL"})
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["tokenType"] == "bearer"
    assert data["user"]["email"] == "user@example.com"
    assert data["user"]["deviceToken"]
    assert response.cookies.get("jwt") == data["accessToken"]
    assert response.cookies.get("deviceToken") == data["user"]["deviceToken"]


def test_login_keeps_supplied_device_token(client):
    response = client.post("/api/auth/login",
                           json={"email": "user@example.com", "password": "Password1!", "deviceToken": "laptop-1"})
    assert response.status_code == 200, response.text
    assert response.json()["user"]["deviceToken"] == "laptop-1"


@pytest.mark.parametrize("logout_before", [False, True])
def test_get_user_info(logged_in_user, logout_before, client):
    headers, logout = logged_in_user

    if logout_before:
        logout()

    response = client.get("/api/auth/me", headers=headers)

    if logout_before:
        assert response.status_code == 400
        assert response.json()["detail"] == "Token has been revoked, please login again"
    else:
        assert response.status_code == 200, response.text
        data = response.json()["user"]
        assert data["id"] == 1
        assert data["email"] == "user@example.com"
        assert data["downloadLimit"] == 2.0


@pytest.mark.parametrize("logout_before", [False, True])
def test_get_profile(logged_in_user, logout_before, client):
    headers, logout = logged_in_user

    if logout_before:
        logout()

    response = client.get("/api/profile/", headers=headers)

    if logout_before:
        assert response.status_code == 400
        assert response.json()["detail"] == "Token has been revoked, please login again"
    else:
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["user"]["email"] == "user@example.com"
        assert data["transactions"] == []
        assert data["downloads"] == []


def test_profile_lists_recent_downloads(client, user_headers, make_feed_item):
    item = make_feed_item(size_mb=512)
    assert client.get(f"/api/feed/download/{item.id}", headers=user_headers).status_code == 200

    response = client.get("/api/profile/", headers=user_headers)
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["user"]["downloadLimit"] == pytest.approx(1.5)
    assert data["user"]["totalDownloads"] == pytest.approx(0.5)
    assert len(data["downloads"]) == 1
    assert data["downloads"][0]["fileSizeMb"] == pytest.approx(512)


def test_me_cookie_session(client):
    client.post("/api/auth/login", json={"email": "user@example.com", "password": "Password1!"})
    response = client.get("/api/auth/me")
    assert response.status_code == 200, response.text
    assert response.json()["user"]["email"] == "user@example.com"


def test_logout(client, logged_in_user):
    headers, _ = logged_in_user
    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"detail": "User logged out successfully"}
