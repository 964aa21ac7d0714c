"""Integration tests for account endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


class TestSignupAndLogin:

    @pytest.mark.asyncio
    async def test_signup_returns_token_and_code(self, client: AsyncClient):
        response = await client.post("/api/v1/users", json={"display_name": "Robin", "email": "robin@example.com"})

        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["display_name"] == "Robin"
        assert data["user"]["unique_code"]
        assert data["user"]["features"] == []

        me = await client.get("/api/v1/users/me", headers={"Authorization": f"Bearer {data['token']}"})
        assert me.json()["id"] == data["user"]["id"]

    @pytest.mark.asyncio
    async def test_login_with_code(self, client: AsyncClient):
        signup = (await client.post("/api/v1/users", json={"display_name": "Robin"})).json()

        login = await client.post("/api/v1/users/login", json={"code": signup["user"]["unique_code"].upper()})

        assert login.status_code == 200
        assert login.json()["user"]["id"] == signup["user"]["id"]

    @pytest.mark.asyncio
    async def test_bad_code_is_401(self, client: AsyncClient):
        response = await client.post("/api/v1/users/login", json={"code": "wrong-code-1"})

        assert response.status_code == 401
        assert response.json() == {"detail": "Invalid login code", "error": "unauthenticated"}

    @pytest.mark.asyncio
    async def test_regenerate_code(self, client: AsyncClient):
        signup = (await client.post("/api/v1/users", json={"display_name": "Robin"})).json()
        headers = {"Authorization": f"Bearer {signup['token']}"}

        new_code = (await client.post("/api/v1/users/me/code", headers=headers)).json()["code"]

        assert new_code != signup["user"]["unique_code"]
        old = await client.post("/api/v1/users/login", json={"code": signup["user"]["unique_code"]})
        assert old.status_code == 401
        new = await client.post("/api/v1/users/login", json={"code": new_code})
        assert new.status_code == 200


class TestProfileApi:

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client: AsyncClient):
        assert (await client.get("/api/v1/users/me")).status_code == 401

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_update_profile(self, client: AsyncClient, make_user, db_session, auth):
        user = await make_user("Before")
        await db_session.commit()

        response = await client.patch("/api/v1/users/me", json={"display_name": "After"}, headers=auth(user.id))

        assert response.status_code == 200
        assert response.json()["display_name"] == "After"

    @pytest.mark.asyncio
    async def test_public_profile_hides_private_fields(self, client: AsyncClient):
        signup = (await client.post("/api/v1/users", json={"display_name": "Robin", "email": "r@example.com"})).json()

        response = await client.get(f"/api/v1/users/{signup['user']['id']}")

        assert response.status_code == 200
        assert "email" not in response.json()
        assert "unique_code" not in response.json()
        assert (await client.get("/api/v1/users/999999")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_account(self, client: AsyncClient):
        signup = (await client.post("/api/v1/users", json={"display_name": "Robin"})).json()
        headers = {"Authorization": f"Bearer {signup['token']}"}

        assert (await client.delete("/api/v1/users/me", headers=headers)).status_code == 204
        # Token outlives the account but no longer resolves to a user
        assert (await client.get("/api/v1/users/me", headers=headers)).status_code == 401
