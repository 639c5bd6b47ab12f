"""Tests for password hashing, JWT handling and the auth endpoints."""

import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from maintrack.auth.jwt import create_access_token, decode_access_token, get_user_id_from_token
from maintrack.auth.passwords import hash_password, verify_password


class TestPasswords:

    def test_hash_and_verify(self):
        stored = hash_password("correct horse")
        assert stored.startswith("$2b$")
        assert "correct horse" not in stored
        assert verify_password("correct horse", stored) is True
        assert verify_password("wrong horse", stored) is False

    def test_salts_differ(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize("stored", [None, "", "garbage", "pbkdf2_sha256$1000$salt$abc", "$2b$04$short"])
    def test_malformed_hash_never_verifies(self, stored):
        assert verify_password("anything", stored) is False


class TestJWT:

    def test_round_trip(self):
        token = create_access_token("user-1")
        assert get_user_id_from_token(token) == "user-1"

    def test_expired_token(self):
        token = create_access_token("user-1", expires_in=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_garbage_token(self):
        assert get_user_id_from_token("not-a-jwt") is None


@pytest.fixture
def auth_client(db_session):
    """Test client with the real authentication dependency."""
    from maintrack.api.app import app
    from maintrack.database.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


class TestAuthEndpoints:

    def test_register_then_access_protected_route(self, auth_client):
        response = auth_client.post(
            "/auth/register",
            json={"email": "New@Example.com", "password": "s3cret-pass", "name": "New"},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "new@example.com"

        me = auth_client.get("/users/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "new@example.com"

    def test_duplicate_registration(self, auth_client):
        payload = {"email": "dup@example.com", "password": "s3cret-pass"}
        assert auth_client.post("/auth/register", json=payload).status_code == 201
        assert auth_client.post("/auth/register", json=payload).status_code == 409

    def test_login(self, auth_client):
        auth_client.post("/auth/register", json={"email": "a@example.com", "password": "s3cret-pass"})

        ok = auth_client.post("/auth/login", json={"email": "a@example.com", "password": "s3cret-pass"})
        assert ok.status_code == 200
        assert ok.json()["access_token"]

        bad = auth_client.post("/auth/login", json={"email": "a@example.com", "password": "nope"})
        assert bad.status_code == 401

    def test_missing_token(self, auth_client):
        assert auth_client.get("/products").status_code == 401

    def test_invalid_token(self, auth_client):
        response = auth_client.get("/products", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    def test_token_for_deleted_user(self, auth_client):
        token = create_access_token("ghost")
        response = auth_client.get("/users/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
