"""Integration tests for friend connection endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _signup(client: AsyncClient, name: str) -> tuple[int, dict[str, str]]:
    data = (await client.post("/api/v1/users", json={"display_name": name})).json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


class TestConnectionsApi:

    @pytest.mark.asyncio
    async def test_request_accept_remove(self, client: AsyncClient):
        alice_id, alice = await _signup(client, "Alice")
        bob_id, bob = await _signup(client, "Bob")

        sent = await client.post("/api/v1/connections", json={"receiver_id": bob_id}, headers=alice)
        assert sent.status_code == 201
        connection = sent.json()
        assert connection["status"] == "PENDING"
        assert connection["sender"]["id"] == alice_id

        assert [c["id"] for c in (await client.get("/api/v1/connections/sent", headers=alice)).json()] == [connection["id"]]
        assert [c["id"] for c in (await client.get("/api/v1/connections/pending", headers=bob)).json()] == [connection["id"]]

        status = await client.get(f"/api/v1/connections/status/{alice_id}", headers=bob)
        assert status.json()["status"] == "PENDING"
        assert status.json()["can_connect"] is False

        # The sender cannot answer their own request
        assert (await client.post(f"/api/v1/connections/{connection['id']}/accept", headers=alice)).status_code == 403

        accepted = await client.post(f"/api/v1/connections/{connection['id']}/accept", headers=bob)
        assert accepted.json()["status"] == "ACCEPTED"
        friends = await client.get("/api/v1/connections", headers=alice)
        assert [c["receiver"]["id"] for c in friends.json()] == [bob_id]

        removed = await client.delete(f"/api/v1/connections/{connection['id']}", headers=alice)
        assert removed.status_code == 204
        status = await client.get(f"/api/v1/connections/status/{bob_id}", headers=alice)
        assert status.json() == {"status": None, "connection_id": None, "is_connected": False, "can_connect": True}

    @pytest.mark.asyncio
    async def test_duplicate_request_is_409(self, client: AsyncClient):
        _, alice = await _signup(client, "Alice")
        bob_id, _ = await _signup(client, "Bob")
        await client.post("/api/v1/connections", json={"receiver_id": bob_id}, headers=alice)

        again = await client.post("/api/v1/connections", json={"receiver_id": bob_id}, headers=alice)

        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_reject(self, client: AsyncClient):
        _, alice = await _signup(client, "Alice")
        bob_id, bob = await _signup(client, "Bob")
        connection_id = (
            await client.post("/api/v1/connections", json={"receiver_id": bob_id}, headers=alice)
        ).json()["id"]

        rejected = await client.post(f"/api/v1/connections/{connection_id}/reject", headers=bob)

        assert rejected.json()["status"] == "REJECTED"
        assert (await client.get("/api/v1/connections/pending", headers=bob)).json() == []
