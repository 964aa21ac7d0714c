"""End-to-end tests for group feeds, comment threads, reactions and unread counts."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _signup(client: AsyncClient, name: str) -> tuple[int, dict[str, str]]:
    response = await client.post("/api/v1/users", json={"display_name": name})
    assert response.status_code == 201
    data = response.json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


async def _group(client: AsyncClient, headers: dict[str, str], name: str = "Family") -> int:
    response = await client.post("/api/v1/groups", json={"name": name}, headers=headers)
    assert response.status_code == 201
    return response.json()["id"]


async def _join(client: AsyncClient, group_id: int, owner: dict[str, str], user_id: int, user: dict[str, str]):
    response = await client.post(
        f"/api/v1/groups/{group_id}/invites", json={"user_id": user_id}, headers=owner
    )
    assert response.status_code == 201
    response = await client.post(f"/api/v1/groups/{group_id}/accept", headers=user)
    assert response.status_code == 200


class TestSharedScoreWalkthrough:

    @pytest.mark.asyncio
    async def test_visibility_comments_and_unread(self, client: AsyncClient):
        a_id, a = await _signup(client, "Alice")
        b_id, b = await _signup(client, "Bob")
        group_id = await _group(client, a)

        posted = await client.post(
            "/api/v1/scores",
            json={"score": 7, "status_text": "ok", "group_ids": [group_id]},
            headers=a,
        )
        assert posted.status_code == 201
        assert posted.json()["group_ids"] == [group_id]
        score_id = posted.json()["id"]

        # Bob is not in the group yet
        before = await client.get(f"/api/v1/scores/{score_id}", headers=b)
        assert before.status_code == 200
        assert before.json()["status_text"] is None
        assert before.json()["score"] == 7

        await _join(client, group_id, a, b_id, b)

        after = await client.get(f"/api/v1/scores/{score_id}", headers=b)
        assert after.json()["status_text"] == "ok"

        comment = await client.post(
            f"/api/v1/scores/{score_id}/groups/{group_id}/comments",
            json={"content": "nice"},
            headers=b,
        )
        assert comment.status_code == 201
        assert comment.json()["author"]["id"] == b_id
        assert comment.json()["is_owner_comment"] is False

        unread = await client.get(f"/api/v1/groups/{group_id}/unread-count", headers=a)
        assert unread.json() == {"unread_count": 1}

        marked = await client.post(f"/api/v1/scores/{score_id}/groups/{group_id}/read", headers=a)
        assert marked.status_code == 200

        unread = await client.get(f"/api/v1/groups/{group_id}/unread-count", headers=a)
        assert unread.json() == {"unread_count": 0}

    @pytest.mark.asyncio
    async def test_anonymous_viewer_sees_score_without_status(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        posted = await client.post("/api/v1/scores", json={"score": 3, "status_text": "rough"}, headers=a)

        response = await client.get(f"/api/v1/scores/{posted.json()['id']}")

        assert response.status_code == 200
        assert response.json()["status_text"] is None
        assert response.json()["thread"] is None


class TestThreadEndpoints:

    @pytest.mark.asyncio
    async def test_outsider_gets_403_on_thread(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        _, c = await _signup(client, "Carol")
        group_id = await _group(client, a)
        posted = await client.post("/api/v1/scores", json={"score": 5, "group_ids": [group_id]}, headers=a)
        score_id = posted.json()["id"]

        response = await client.get(f"/api/v1/scores/{score_id}/groups/{group_id}/comments", headers=c)

        assert response.status_code == 403
        assert response.json()["error"] == "unauthorized"
        assert "member of this group" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_thread_on_unshared_group_is_409(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        shared = await _group(client, a, "Shared")
        other = await _group(client, a, "Other")
        posted = await client.post("/api/v1/scores", json={"score": 5, "group_ids": [shared]}, headers=a)

        response = await client.post(
            f"/api/v1/scores/{posted.json()['id']}/groups/{other}/comments",
            json={"content": "hi"},
            headers=a,
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invariant_violation"

    @pytest.mark.asyncio
    async def test_reaction_toggle_and_feed_thread_state(self, client: AsyncClient):
        a_id, a = await _signup(client, "Alice")
        b_id, b = await _signup(client, "Bob")
        group_id = await _group(client, a)
        await _join(client, group_id, a, b_id, b)
        posted = await client.post("/api/v1/scores", json={"score": 9, "group_ids": [group_id]}, headers=a)
        score_id = posted.json()["id"]
        url = f"/api/v1/scores/{score_id}/groups/{group_id}/reactions"

        added = await client.post(url, json={"emoji": "🔥"}, headers=b)
        assert added.json() == {"action": "ADDED", "emoji": "🔥"}
        replaced = await client.post(url, json={"emoji": "👏"}, headers=b)
        assert replaced.json() == {"action": "REPLACED", "emoji": "👏"}

        tallies = await client.get(url, headers=a)
        assert tallies.status_code == 200
        assert tallies.json()[0]["emoji"] == "👏"
        assert tallies.json()[0]["count"] == 1
        assert tallies.json()[0]["has_reacted"] is False
        assert tallies.json()[0]["users"][0]["id"] == b_id

        feed = await client.get(f"/api/v1/groups/{group_id}/scores", headers=b)
        assert feed.status_code == 200
        card = feed.json()[0]
        assert card["id"] == score_id
        assert card["user"]["id"] == a_id
        assert card["thread"]["my_reaction"] == "👏"
        assert card["thread"]["comment_count"] == 0

        removed = await client.post(url, json={"emoji": "👏"}, headers=b)
        assert removed.json() == {"action": "REMOVED", "emoji": None}

    @pytest.mark.asyncio
    async def test_comment_reactions_and_deletion(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        b_id, b = await _signup(client, "Bob")
        group_id = await _group(client, a)
        await _join(client, group_id, a, b_id, b)
        posted = await client.post("/api/v1/scores", json={"score": 4, "group_ids": [group_id]}, headers=a)
        score_id = posted.json()["id"]
        comment = await client.post(
            f"/api/v1/scores/{score_id}/groups/{group_id}/comments",
            json={"content": "thinking of you"},
            headers=b,
        )
        comment_id = comment.json()["id"]

        reacted = await client.post(f"/api/v1/comments/{comment_id}/reactions", json={"emoji": "❤️"}, headers=a)
        assert reacted.json()["action"] == "ADDED"

        reply = await client.post(
            f"/api/v1/scores/{score_id}/groups/{group_id}/comments",
            json={"content": "thanks"},
            headers=a,
        )
        assert reply.json()["is_owner_comment"] is True

        thread = await client.get(f"/api/v1/scores/{score_id}/groups/{group_id}/comments", headers=a)
        assert thread.json()[0]["reactions"][0]["emoji"] == "❤️"
        assert thread.json()[0]["my_reaction"] == "❤️"
        assert [c["is_owner_comment"] for c in thread.json()] == [False, True]

        forbidden = await client.delete(f"/api/v1/comments/{comment_id}", headers=a)
        assert forbidden.status_code == 403
        deleted = await client.delete(f"/api/v1/comments/{comment_id}", headers=b)
        assert deleted.status_code == 204

        thread = await client.get(f"/api/v1/scores/{score_id}/groups/{group_id}/comments", headers=a)
        assert [c["content"] for c in thread.json()] == ["thanks"]

    @pytest.mark.asyncio
    async def test_thread_unread_count(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        b_id, b = await _signup(client, "Bob")
        group_id = await _group(client, a)
        await _join(client, group_id, a, b_id, b)
        posted = await client.post("/api/v1/scores", json={"score": 6, "group_ids": [group_id]}, headers=a)
        score_id = posted.json()["id"]
        base = f"/api/v1/scores/{score_id}/groups/{group_id}"
        await client.post(f"{base}/comments", json={"content": "one"}, headers=b)
        await client.post(f"{base}/comments", json={"content": "two"}, headers=b)

        assert (await client.get(f"{base}/unread-count", headers=a)).json() == {"unread_count": 2}
        assert (await client.get(f"{base}/unread-count", headers=b)).json() == {"unread_count": 0}

        with_thread = await client.get(f"/api/v1/scores/{score_id}", params={"group_id": group_id}, headers=a)
        assert with_thread.json()["thread"]["unread_count"] == 2
        assert with_thread.json()["thread"]["comment_count"] == 2


class TestScoreEndpoints:

    @pytest.mark.asyncio
    async def test_posting_requires_login(self, client: AsyncClient):
        response = await client.post("/api/v1/scores", json={"score": 5})

        assert response.status_code == 401
        assert response.json()["error"] == "unauthenticated"

    @pytest.mark.asyncio
    async def test_out_of_range_score_is_422(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")

        response = await client.post("/api/v1/scores", json={"score": 12}, headers=a)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_sharing_to_foreign_group_writes_nothing(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        _, b = await _signup(client, "Bob")
        mine = await _group(client, a, "Mine")
        theirs = await _group(client, b, "Theirs")

        response = await client.post(
            "/api/v1/scores", json={"score": 5, "group_ids": [mine, theirs]}, headers=a
        )
        assert response.status_code == 403

        feed = await client.get(f"/api/v1/groups/{mine}/scores", headers=a)
        assert feed.json() == []

    @pytest.mark.asyncio
    async def test_delete_own_score_only(self, client: AsyncClient):
        _, a = await _signup(client, "Alice")
        _, b = await _signup(client, "Bob")
        posted = await client.post("/api/v1/scores", json={"score": 5}, headers=a)
        score_id = posted.json()["id"]

        assert (await client.delete(f"/api/v1/scores/{score_id}", headers=b)).status_code == 403
        assert (await client.delete(f"/api/v1/scores/{score_id}", headers=a)).status_code == 204
        assert (await client.get(f"/api/v1/scores/{score_id}")).status_code == 404
