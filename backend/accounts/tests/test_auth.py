import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

User = get_user_model()


@pytest.fixture
def client():
    return APIClient()


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username="driver@example.com",
        email="driver@example.com",
        password="examplepass",
        first_name="Dana",
        last_name="Driver",
    )


def _login(client, email="driver@example.com", password="examplepass"):
    return client.post(
        "/api/auth/login/",
        {"email": email, "password": password},
        format="json",
    )


def test_register_creates_user_and_returns_tokens(db, client):
    payload = {
        "email": "New.Owner@Example.com",
        "password": "password123",
        "first_name": "New",
        "last_name": "Owner",
        "phone": "07700 900123",
    }
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["user"]["email"] == "new.owner@example.com"
    assert body["user"]["display_name"] == "New Owner"
    assert "access" in body and "refresh" in body
    created = User.objects.get(email="new.owner@example.com")
    assert created.username == "new.owner@example.com"
    assert created.phone == "07700 900123"


def test_register_with_existing_email_is_rejected(db, client, user):
    payload = {
        "email": "DRIVER@example.com",
        "password": "password123",
    }
    response = client.post("/api/auth/register/", payload, format="json")

    assert response.status_code == 400
    assert "email" in response.json()


def test_register_requires_long_enough_password(db, client):
    response = client.post(
        "/api/auth/register/",
        {"email": "short@example.com", "password": "abc"},
        format="json",
    )

    assert response.status_code == 400
    assert "password" in response.json()


def test_login_returns_tokens_and_user_payload(db, client, user):
    response = _login(client)

    assert response.status_code == 200
    data = response.json()
    assert set(data.keys()) == {"access", "refresh", "user"}
    assert data["user"]["email"] == "driver@example.com"


def test_login_with_wrong_password_is_rejected(db, client, user):
    response = _login(client, password="not-the-password")

    assert response.status_code == 401


def test_refresh_issues_new_access_token(db, client, user):
    refresh_token = _login(client).json()["refresh"]
    refresh_response = client.post(
        "/api/auth/refresh/", {"refresh": refresh_token}, format="json"
    )

    assert refresh_response.status_code == 200
    assert "access" in refresh_response.json()


def test_me_endpoint_returns_authenticated_user(db, client, user):
    access = _login(client).json()["access"]

    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    response = client.get("/api/auth/me/")

    assert response.status_code == 200
    assert response.json()["email"] == "driver@example.com"


def test_me_endpoint_requires_authentication(db, client):
    response = client.get("/api/auth/me/")
    assert response.status_code == 401


def test_me_patch_updates_email_and_username(db, client, user):
    client.force_authenticate(user=user)

    response = client.patch(
        "/api/auth/me/",
        {"email": "Updated@Example.com", "display_name": "Dana D."},
        format="json",
    )

    assert response.status_code == 200
    assert response.json()["display_name"] == "Dana D."
    user.refresh_from_db()
    assert user.email == "updated@example.com"
    assert user.username == "updated@example.com"


def test_me_patch_rejects_duplicate_email(db, client, user):
    User.objects.create_user(
        username="taken@example.com",
        email="taken@example.com",
        password="password123",
    )
    client.force_authenticate(user=user)

    response = client.patch("/api/auth/me/", {"email": "taken@example.com"}, format="json")

    assert response.status_code == 400
    assert "email" in response.json()


def test_change_password_requires_correct_current_password(db, client, user):
    client.force_authenticate(user=user)
    response = client.post(
        "/api/auth/change-password/",
        {"current_password": "wrongpass", "new_password": "newsecurepass"},
        format="json",
    )

    assert response.status_code == 400
    assert "current_password" in response.json()


def test_change_password_updates_password(db, client, user):
    client.force_authenticate(user=user)
    response = client.post(
        "/api/auth/change-password/",
        {"current_password": "examplepass", "new_password": "newsecurepass"},
        format="json",
    )

    assert response.status_code == 204
    user.refresh_from_db()
    assert user.check_password("newsecurepass")


def test_login_matches_email_regardless_of_username(db, client):
    User.objects.create_user(
        username="legacy-host",
        email="Host@Example.com",
        password="examplepass",
    )

    response = _login(client, email="host@example.com")

    assert response.status_code == 200
    assert response.json()["user"]["email"] == "Host@Example.com"


def test_register_rejects_unusable_phone(db, client):
    response = client.post(
        "/api/auth/register/",
        {"email": "driver2@example.com", "password": "password123", "phone": "call me maybe"},
        format="json",
    )

    assert response.status_code == 400
    assert "phone" in response.json()


def test_me_reports_hosting_state(db, client, user):
    client.force_authenticate(user=user)

    body = client.get("/api/auth/me/").json()

    assert body["can_receive_payouts"] is False
    assert body["listed_spaces"] == 0
    assert "username" not in body


def test_change_password_must_pick_a_new_one(db, client, user):
    client.force_authenticate(user=user)
    response = client.post(
        "/api/auth/change-password/",
        {"current_password": "examplepass", "new_password": "examplepass"},
        format="json",
    )

    assert response.status_code == 400
    assert "new_password" in response.json()
