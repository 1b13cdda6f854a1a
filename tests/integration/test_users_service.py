"""User profile service against a real (SQLite) store."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import InterfaceError, OperationalError

from tests.conftest import make_profile
from trivia.errors import ProfileNotFound, UsernameTaken
from trivia.users import service


class TestCreateProfile:
    @pytest.mark.asyncio
    async def test_create(self, db_session):
        profile = await service.create_profile(db_session, "user-1", "QuizWhiz", "Quiz Whiz")

        assert profile.id == "user-1"
        assert profile.level == 1
        assert profile.total_points == 0
        assert (await service.get_profile(db_session, "user-1")).username == "QuizWhiz"

    @pytest.mark.asyncio
    async def test_username_taken_case_insensitive(self, db_session):
        await service.create_profile(db_session, "user-1", "QuizWhiz", "Quiz Whiz")
        with pytest.raises(UsernameTaken):
            await service.create_profile(db_session, "user-2", "quizwhiz", "Copycat")

    @pytest.mark.asyncio
    async def test_second_profile_for_same_user(self, db_session):
        await service.create_profile(db_session, "user-1", "first", "First")
        with pytest.raises(UsernameTaken):
            await service.create_profile(db_session, "user-1", "second", "Second")

    @pytest.mark.asyncio
    async def test_missing_profile(self, db_session):
        with pytest.raises(ProfileNotFound):
            await service.get_profile(db_session, "nobody")


class TestUpdateProfile:
    @pytest.mark.asyncio
    async def test_update_fields(self, db_session):
        profile = await make_profile(db_session, "alice")

        updated = await service.update_profile(
            db_session, profile.id, display_name="Alice A.", username="alice_a", avatar_url="https://img/a.png"
        )

        assert updated.display_name == "Alice A."
        assert updated.username == "alice_a"
        assert updated.avatar_url == "https://img/a.png"

    @pytest.mark.asyncio
    async def test_rename_to_taken_username(self, db_session):
        alice = await make_profile(db_session, "alice")
        await make_profile(db_session, "bob")

        with pytest.raises(UsernameTaken):
            await service.update_profile(db_session, alice.id, username="BOB")

    @pytest.mark.asyncio
    async def test_case_change_of_own_username(self, db_session):
        alice = await make_profile(db_session, "alice")
        updated = await service.update_profile(db_session, alice.id, username="Alice")
        assert updated.username == "Alice"


class TestSearchAndLeaderboard:
    @pytest.mark.asyncio
    async def test_search_matches_username_and_display_name(self, db_session):
        await make_profile(db_session, "alice", display_name="Wonderland")
        await make_profile(db_session, "bob", display_name="Builder")
        await make_profile(db_session, "carol", display_name="Alicia Keys")

        found = await service.search_users(db_session, "ALIC")

        assert [p.username for p in found] == ["alice", "carol"]

    @pytest.mark.asyncio
    async def test_blank_query(self, db_session):
        await make_profile(db_session, "alice")
        assert await service.search_users(db_session, "   ") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        OperationalError("SELECT", {}, Exception("timeout")),
        InterfaceError("SELECT", {}, Exception("closed")),
    ])
    async def test_search_degrades_when_store_unreachable(self, error):
        db = AsyncMock()
        db.execute.side_effect = error

        assert await service.search_users(db, "alice") == []

    @pytest.mark.asyncio
    async def test_leaderboard_order(self, db_session):
        await make_profile(db_session, "alice", total_points=10, current_streak=1)
        await make_profile(db_session, "bob", total_points=30)
        await make_profile(db_session, "carol", total_points=10, current_streak=4)

        board = await service.get_leaderboard(db_session, limit=2)

        assert [p.username for p in board] == ["bob", "carol"]
