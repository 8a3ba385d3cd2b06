"""Tuit endpoints: posting, reading, disabling, feedback, comments and the feed."""

import uuid

import pytest

COUNTERS = ("views", "likes", "retuits", "bookmarks", "comments", "quotes")


class TestPostTuit:

    @pytest.mark.asyncio
    async def test_post_root_tuit(self, client, make_user, login_as):
        alice = await make_user("alice")

        response = await client.post("/api/v1/tuits", json={"body": "hello world\n "}, headers=await login_as(alice))

        assert response.status_code == 201
        body = response.json()
        assert body["body"] == "hello world"
        assert body["owner_id"] == str(alice.id)
        assert body["parent_id"] is None
        assert all(body[c] == 0 for c in COUNTERS)

    @pytest.mark.asyncio
    async def test_comment_increments_parent(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        parent = (await client.post("/api/v1/tuits", json={"body": "parent"}, headers=headers)).json()

        reply = await client.post(
            "/api/v1/tuits", json={"body": "reply", "parent_id": parent["id"]}, headers=headers,
        )
        assert reply.status_code == 201
        assert reply.json()["parent_id"] == parent["id"]

        reloaded = await client.get(f"/api/v1/tuits/{parent['id']}")
        assert reloaded.json()["comments"] == 1

    @pytest.mark.asyncio
    async def test_missing_parent(self, client, make_user, login_as):
        alice = await make_user("alice")
        response = await client.post(
            "/api/v1/tuits", json={"body": "orphan", "parent_id": str(uuid.uuid4())}, headers=await login_as(alice),
        )
        assert response.status_code == 400
        assert response.json()["key"] == "parent_id"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", [" leading space", "", "x" * 256, "\u200b"])
    async def test_invalid_body(self, client, make_user, login_as, text):
        alice = await make_user("alice")
        response = await client.post("/api/v1/tuits", json={"body": text}, headers=await login_as(alice))
        assert response.status_code == 400
        assert response.json()["key"] == "body"

    @pytest.mark.asyncio
    async def test_anonymous_cannot_post(self, client):
        response = await client.post("/api/v1/tuits", json={"body": "hi"})
        assert response.status_code == 403


class TestReadTuit:

    @pytest.mark.asyncio
    async def test_anonymous_can_read(self, client, make_user, login_as):
        alice = await make_user("alice")
        created = (await client.post("/api/v1/tuits", json={"body": "public"}, headers=await login_as(alice))).json()

        response = await client.get(f"/api/v1/tuits/{created['id']}")

        assert response.status_code == 200
        assert response.json()["body"] == "public"

    @pytest.mark.asyncio
    async def test_unknown_tuit(self, client):
        response = await client.get(f"/api/v1/tuits/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_location_code"] == "MODEL:TUIT:FIND_BY_ID:NOT_FOUND"

    @pytest.mark.asyncio
    async def test_malformed_id(self, client):
        response = await client.get("/api/v1/tuits/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["key"] == "tuit_id"


class TestDisableTuit:

    @pytest.mark.asyncio
    async def test_owner_disables(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        created = (await client.post("/api/v1/tuits", json={"body": "oops"}, headers=headers)).json()

        response = await client.delete(f"/api/v1/tuits/{created['id']}", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "disabled"
        assert "body" not in body
        assert not any(c in body for c in COUNTERS)

        again = await client.delete(f"/api/v1/tuits/{created['id']}", headers=headers)
        assert again.status_code == 422

    @pytest.mark.asyncio
    async def test_stranger_cannot_disable(self, client, make_user, login_as):
        alice = await make_user("alice")
        bob = await make_user("bob")
        created = (await client.post("/api/v1/tuits", json={"body": "mine"}, headers=await login_as(alice))).json()

        response = await client.delete(f"/api/v1/tuits/{created['id']}", headers=await login_as(bob))

        assert response.status_code == 403
        assert response.json()["error_location_code"] == (
            "CONTROLLER:TUITS:DELETE:USER_CANT_UPDATE_TUIT_FROM_OTHER_USER"
        )

    @pytest.mark.asyncio
    async def test_moderator_disables_any_tuit(self, client, make_user, login_as):
        alice = await make_user("alice")
        moderator = await make_user("mod", ["update:tuit:others"])
        created = (await client.post("/api/v1/tuits", json={"body": "spam"}, headers=await login_as(alice))).json()

        response = await client.delete(f"/api/v1/tuits/{created['id']}", headers=await login_as(moderator))

        assert response.status_code == 200
        assert response.json()["status"] == "disabled"


class TestFeedback:

    @pytest.mark.asyncio
    async def test_like_toggles(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        tuit = (await client.post("/api/v1/tuits", json={"body": "like me"}, headers=headers)).json()
        url = f"/api/v1/tuits/{tuit['id']}/feedback"

        liked = await client.post(url, json={"feedback_type": "like"}, headers=headers)
        assert liked.status_code == 201
        assert liked.json()["tuit_id"] == tuit["id"]
        assert (await client.get(f"/api/v1/tuits/{tuit['id']}")).json()["likes"] == 1

        await client.post(url, json={"feedback_type": "like"}, headers=headers)
        assert (await client.get(f"/api/v1/tuits/{tuit['id']}")).json()["likes"] == 0

    @pytest.mark.asyncio
    async def test_repeat_view_returns_null(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        tuit = (await client.post("/api/v1/tuits", json={"body": "look"}, headers=headers)).json()
        url = f"/api/v1/tuits/{tuit['id']}/feedback"

        first = await client.post(url, json={"feedback_type": "view"}, headers=headers)
        second = await client.post(url, json={"feedback_type": "view"}, headers=headers)

        assert first.json() is not None
        assert second.status_code == 201
        assert second.json() is None
        assert (await client.get(f"/api/v1/tuits/{tuit['id']}")).json()["views"] == 1

    @pytest.mark.asyncio
    async def test_unknown_feedback_type(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        tuit = (await client.post("/api/v1/tuits", json={"body": "look"}, headers=headers)).json()

        response = await client.post(
            f"/api/v1/tuits/{tuit['id']}/feedback", json={"feedback_type": "dislike"}, headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["key"] == "feedback_type"

    @pytest.mark.asyncio
    async def test_feedback_on_missing_tuit(self, client, make_user, login_as):
        alice = await make_user("alice")
        response = await client.post(
            f"/api/v1/tuits/{uuid.uuid4()}/feedback", json={"feedback_type": "like"}, headers=await login_as(alice),
        )
        assert response.status_code == 404


class TestCommentsAndFeed:

    @pytest.mark.asyncio
    async def test_comment_pages(self, client, make_user, login_as):
        alice = await make_user("alice")
        headers = await login_as(alice)
        parent = (await client.post("/api/v1/tuits", json={"body": "parent"}, headers=headers)).json()
        for i in range(12):
            await client.post("/api/v1/tuits", json={"body": f"reply {i}", "parent_id": parent["id"]}, headers=headers)
        url = f"/api/v1/tuits/{parent['id']}/comments"

        first_page = await client.post(url, headers=headers)
        assert first_page.status_code == 200
        shown = [t["id"] for t in first_page.json()]
        assert len(shown) == 10

        second_page = await client.post(url, json={"comments_ids": shown}, headers=headers)
        rest = [t["id"] for t in second_page.json()]
        assert len(rest) == 2
        assert not set(rest) & set(shown)

    @pytest.mark.asyncio
    async def test_feed_skips_viewed(self, client, make_user, login_as):
        alice = await make_user("alice")
        bob = await make_user("bob")
        alice_headers = await login_as(alice)
        bob_headers = await login_as(bob)
        seen = (await client.post("/api/v1/tuits", json={"body": "seen"}, headers=alice_headers)).json()
        fresh = (await client.post("/api/v1/tuits", json={"body": "fresh"}, headers=alice_headers)).json()
        await client.post(f"/api/v1/tuits/{seen['id']}/feedback", json={"feedback_type": "view"}, headers=bob_headers)

        response = await client.get("/api/v1/tuits", headers=bob_headers)

        assert response.status_code == 200
        ids = [t["id"] for t in response.json()]
        assert fresh["id"] in ids
        assert seen["id"] not in ids

    @pytest.mark.asyncio
    async def test_anonymous_has_no_feed(self, client):
        response = await client.get("/api/v1/tuits")
        assert response.status_code == 403
