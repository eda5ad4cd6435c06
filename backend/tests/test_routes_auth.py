"""
RecipeShare Backend — Auth Endpoint Tests
===========================================

What:  POST /api/signup and /api/login through the ASGI app, plus the
       403 behavior of protected routes.
"""

import pytest


class TestSignup:
    @pytest.mark.asyncio
    async def test_signup_created(self, test_client):
        response = await test_client.post(
            "/api/signup", json={"username": "alice", "password": "pw"}
        )
        assert response.status_code == 201
        assert response.json() == {"message": "User created successfully"}

    @pytest.mark.asyncio
    async def test_signup_missing_fields(self, test_client):
        response = await test_client.post("/api/signup", json={"username": "alice"})
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Username and password are required"
        assert body["request_id"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_signup_duplicate(self, test_client):
        await test_client.post("/api/signup", json={"username": "alice", "password": "pw"})
        response = await test_client.post(
            "/api/signup", json={"username": "alice", "password": "other"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Username already exists"


    @pytest.mark.asyncio
    @pytest.mark.parametrize("username", ["al", "a" * 51])
    async def test_signup_username_length(self, test_client, username):
        response = await test_client.post(
            "/api/signup", json={"username": username, "password": "pw"}
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Username must be between 3 and 50 characters"

    @pytest.mark.asyncio
    async def test_signup_wrong_field_type(self, test_client):
        response = await test_client.post(
            "/api/signup", json={"username": ["alice"], "password": "pw"}
        )
        assert response.status_code == 400
        assert response.json()["details"]["errors"][0]["field"] == "username"


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_returns_token_and_user_id(self, test_client):
        await test_client.post("/api/signup", json={"username": "alice", "password": "pw"})
        response = await test_client.post("/api/login", json={"username": "alice", "password": "pw"})

        assert response.status_code == 200
        body = response.json()
        assert set(body) == {"token", "userId"}
        assert body["token"].count(".") == 2

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, test_client):
        await test_client.post("/api/signup", json={"username": "alice", "password": "pw"})
        response = await test_client.post(
            "/api/login", json={"username": "alice", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_failed"
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, test_client):
        response = await test_client.post("/api/login", json={"username": "ghost", "password": "pw"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, test_client):
        response = await test_client.post("/api/login", json={})
        assert response.status_code == 400


class TestProtectedRoutes:
    @pytest.mark.asyncio
    async def test_missing_token(self, test_client):
        response = await test_client.post("/api/recipes", data={"title": "x"})
        assert response.status_code == 403
        assert response.json()["error"] == "access_denied"
        assert response.json()["message"] == "Access denied"

    @pytest.mark.asyncio
    async def test_invalid_token(self, test_client):
        response = await test_client.post(
            "/api/recipes", data={"title": "x"}, headers={"Authorization": "Bearer forged"}
        )
        assert response.status_code == 403
        assert response.json()["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_bare_token_accepted(self, test_client, auth_headers):
        headers = await auth_headers("alice")
        bare = {"Authorization": headers["Authorization"].split(" ", 1)[1]}
        response = await test_client.post(
            "/api/recipes",
            data={"title": "Toast", "ingredients": "bread", "instructions": "toast it"},
            headers=bare,
        )
        assert response.status_code == 201
