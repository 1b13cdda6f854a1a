"""HTTP tests for profile, league and notification endpoints."""

import pytest

from tests.conftest import auth_headers, make_profile
from trivia.social.notification_service import create_notification


class TestProfileApi:
    @pytest.mark.asyncio
    async def test_signup_flow(self, client):
        headers = auth_headers("user-1")

        missing = await client.get("/api/v1/users/me", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["code"] == "profile_not_found"

        created = await client.post(
            "/api/v1/users/me", json={"username": "quiz_whiz", "display_name": "Quiz Whiz"}, headers=headers
        )
        assert created.status_code == 201
        assert created.json()["id"] == "user-1"
        assert created.json()["level_info"]["title"] == "Newcomer"

        patched = await client.patch("/api/v1/users/me", json={"display_name": "QW"}, headers=headers)
        assert patched.json()["display_name"] == "QW"
        assert patched.json()["username"] == "quiz_whiz"

    @pytest.mark.asyncio
    async def test_invalid_username(self, client):
        response = await client.post(
            "/api/v1/users/me", json={"username": "no spaces!", "display_name": "X"}, headers=auth_headers("u")
        )
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_username_conflict(self, client, db_session):
        await make_profile(db_session, "taken")
        response = await client.post(
            "/api/v1/users/me", json={"username": "TAKEN", "display_name": "X"}, headers=auth_headers("u")
        )
        assert response.status_code == 409
        assert response.json()["code"] == "username_taken"

    @pytest.mark.asyncio
    async def test_stats_not_client_writable(self, client, db_session):
        alice = await make_profile(db_session, "alice")
        response = await client.patch(
            "/api/v1/users/me", json={"total_points": 9999}, headers=auth_headers(alice.id)
        )
        assert response.status_code == 200
        assert response.json()["total_points"] == 0

    @pytest.mark.asyncio
    async def test_search_and_leaderboard(self, client, db_session):
        alice = await make_profile(db_session, "alice", total_points=5)
        await make_profile(db_session, "albert", total_points=9)

        found = (await client.get("/api/v1/users/search", params={"q": "al"}, headers=auth_headers(alice.id))).json()
        assert [u["username"] for u in found["users"]] == ["albert", "alice"]

        board = (await client.get("/api/v1/users/leaderboard")).json()
        assert [u["username"] for u in board["users"]] == ["albert", "alice"]

    @pytest.mark.asyncio
    async def test_reconcile_endpoint(self, client, db_session):
        alice = await make_profile(db_session, "alice", total_points=50)
        response = await client.post("/api/v1/users/me/stats/reconcile", headers=auth_headers(alice.id))
        assert response.status_code == 200
        assert response.json()["total_points"] == 0


class TestLeagueApi:
    @pytest.mark.asyncio
    async def test_create_join_and_rank(self, client, db_session):
        alice = await make_profile(db_session, "alice", total_points=10)
        bob = await make_profile(db_session, "bob", total_points=20)

        created = await client.post(
            "/api/v1/leagues", json={"name": "Office League", "is_private": True}, headers=auth_headers(alice.id)
        )
        assert created.status_code == 201
        league = created.json()
        assert league["member_count"] == 1
        assert league["max_members"] == 50

        joined = await client.post(
            "/api/v1/leagues/join", json={"invite_code": league["invite_code"].lower()}, headers=auth_headers(bob.id)
        )
        assert joined.status_code == 201

        board = (await client.get(f"/api/v1/leagues/{league['id']}/leaderboard", headers=auth_headers(bob.id))).json()
        assert [(e["rank"], e["user_profile"]["username"]) for e in board["entries"]] == [(1, "bob"), (2, "alice")]

        mine = (await client.get("/api/v1/leagues", headers=auth_headers(bob.id))).json()
        assert [lg["member_count"] for lg in mine["leagues"]] == [2]

    @pytest.mark.asyncio
    async def test_public_listing_hides_invite_code(self, client, db_session):
        alice = await make_profile(db_session, "alice")
        await client.post("/api/v1/leagues", json={"name": "Open League"}, headers=auth_headers(alice.id))

        listed = (await client.get("/api/v1/leagues/public", headers=auth_headers(alice.id))).json()

        assert [lg["name"] for lg in listed["leagues"]] == ["Open League"]
        assert listed["leagues"][0]["invite_code"] is None

    @pytest.mark.asyncio
    async def test_join_twice_conflicts(self, client, db_session):
        alice = await make_profile(db_session, "alice")
        created = await client.post("/api/v1/leagues", json={"name": "Solo"}, headers=auth_headers(alice.id))

        response = await client.post(f"/api/v1/leagues/{created.json()['id']}/join", headers=auth_headers(alice.id))

        assert response.status_code == 409
        assert response.json()["code"] == "already_member"

    @pytest.mark.asyncio
    async def test_only_creator_deletes(self, client, db_session):
        alice = await make_profile(db_session, "alice")
        bob = await make_profile(db_session, "bob")
        league_id = (await client.post(
            "/api/v1/leagues", json={"name": "Mine"}, headers=auth_headers(alice.id)
        )).json()["id"]

        denied = await client.delete(f"/api/v1/leagues/{league_id}", headers=auth_headers(bob.id))
        deleted = await client.delete(f"/api/v1/leagues/{league_id}", headers=auth_headers(alice.id))
        gone = await client.get(f"/api/v1/leagues/{league_id}/leaderboard", headers=auth_headers(alice.id))

        assert denied.status_code == 403
        assert deleted.status_code == 204
        assert gone.status_code == 404


class TestNotificationApi:
    @pytest.mark.asyncio
    async def test_read_flow(self, client, db_session):
        alice = await make_profile(db_session, "alice")
        first = await create_notification(db_session, alice.id, "quiz_reminder", "Quiz", "New quiz")
        await create_notification(db_session, alice.id, "streak_warning", "Streak", "Keep it up")
        await db_session.commit()
        headers = auth_headers(alice.id)

        assert (await client.get("/api/v1/notifications/unread-count", headers=headers)).json() == {"count": 2}

        read = await client.post(f"/api/v1/notifications/{first.id}/read", headers=headers)
        assert read.json() == {"updated": 1}

        missing = await client.post("/api/v1/notifications/nope/read", headers=headers)
        assert missing.status_code == 404

        read_all = await client.post("/api/v1/notifications/read-all", headers=headers)
        assert read_all.json() == {"updated": 1}
        assert (await client.get("/api/v1/notifications/unread-count", headers=headers)).json() == {"count": 0}
