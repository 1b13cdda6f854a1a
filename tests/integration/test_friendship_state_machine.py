"""Friendship lifecycle against a real (SQLite) store."""

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from tests.conftest import make_profile
from trivia.db.models import Friendship, Notification, UserActivity
from trivia.errors import (
    DuplicateRequest,
    FriendshipNotFound,
    InvalidTransition,
    PermissionDenied,
    ProfileNotFound,
    SelfRequest,
)
from trivia.friends.events import NotifyingFriendshipEvents
from trivia.friends.state_machine import FriendshipStateMachine
from trivia.realtime.hub import hub
from trivia.store import SqlTriviaStore


class RecordingEvents:
    def __init__(self):
        self.sent = []
        self.accepted = []

    async def request_sent(self, friendship):
        self.sent.append(friendship.id)

    async def request_accepted(self, friendship):
        self.accepted.append(friendship.id)


@pytest.fixture
def events():
    return RecordingEvents()


@pytest.fixture
def machine(db_session, events):
    return FriendshipStateMachine(SqlTriviaStore(db_session), events=events)


async def _pair(db):
    alice = await make_profile(db, "alice")
    bob = await make_profile(db, "bob")
    return alice.id, bob.id


class TestSendRequest:
    @pytest.mark.asyncio
    async def test_creates_pending_row(self, db_session, machine, events):
        alice, bob = await _pair(db_session)

        friendship = await machine.send_request(alice, bob)

        assert friendship.status == "pending"
        assert friendship.requester_id == alice
        assert friendship.addressee_id == bob
        assert events.sent == [friendship.id]

    @pytest.mark.asyncio
    async def test_self_request(self, db_session, machine):
        alice, _ = await _pair(db_session)
        with pytest.raises(SelfRequest):
            await machine.send_request(alice, alice)

    @pytest.mark.asyncio
    async def test_unknown_addressee(self, db_session, machine):
        alice, _ = await _pair(db_session)
        with pytest.raises(ProfileNotFound):
            await machine.send_request(alice, "ghost")

    @pytest.mark.asyncio
    async def test_requester_without_profile(self, db_session, machine):
        _, bob = await _pair(db_session)
        with pytest.raises(ProfileNotFound, match="Create a profile"):
            await machine.send_request("ghost-user-id", bob)
        assert (await db_session.execute(select(Friendship))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_foreign_key_failure_is_not_a_duplicate(self, db_session, machine, monkeypatch):
        _, bob = await _pair(db_session)

        async def any_profile(user_id):
            return object()

        monkeypatch.setattr(machine.store, "get_profile", any_profile)

        with pytest.raises(IntegrityError, match="FOREIGN KEY"):
            await machine.send_request("ghost-user-id", bob)

    @pytest.mark.asyncio
    async def test_duplicate_same_direction(self, db_session, machine):
        alice, bob = await _pair(db_session)
        await machine.send_request(alice, bob)
        with pytest.raises(DuplicateRequest):
            await machine.send_request(alice, bob)

    @pytest.mark.asyncio
    async def test_duplicate_reverse_direction(self, db_session, machine):
        alice, bob = await _pair(db_session)
        await machine.send_request(alice, bob)
        with pytest.raises(DuplicateRequest):
            await machine.send_request(bob, alice)

    @pytest.mark.asyncio
    async def test_declined_pair_cannot_be_re_requested(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.decline_request(friendship.id, bob)

        with pytest.raises(DuplicateRequest):
            await machine.send_request(alice, bob)

    @pytest.mark.asyncio
    async def test_constraint_catches_race_past_lookup(self, db_session, machine, monkeypatch):
        """Two requests racing past the lookup still leave one row for the pair."""
        alice, bob = await _pair(db_session)
        await machine.send_request(alice, bob)

        async def not_found(user_a, user_b):
            return None

        monkeypatch.setattr(machine.store, "find_friendship", not_found)

        with pytest.raises(DuplicateRequest):
            await machine.send_request(bob, alice)


class TestStatus:
    @pytest.mark.asyncio
    async def test_symmetric(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)

        forward = await machine.get_friendship_status(alice, bob)
        backward = await machine.get_friendship_status(bob, alice)

        assert forward.id == backward.id == friendship.id

    @pytest.mark.asyncio
    async def test_none_without_relationship(self, db_session, machine):
        alice, bob = await _pair(db_session)
        assert await machine.get_friendship_status(alice, bob) is None


class TestTransitions:
    @pytest.mark.asyncio
    async def test_accept(self, db_session, machine, events):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)

        accepted = await machine.accept_request(friendship.id, bob)

        assert accepted.status == "accepted"
        assert events.accepted == [friendship.id]

    @pytest.mark.asyncio
    async def test_accept_twice_is_noop(self, db_session, machine, events):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.accept_request(friendship.id, bob)

        again = await machine.accept_request(friendship.id, bob)

        assert again.status == "accepted"
        assert events.accepted == [friendship.id]

    @pytest.mark.asyncio
    async def test_requester_cannot_accept(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)

        with pytest.raises(PermissionDenied):
            await machine.accept_request(friendship.id, alice)

    @pytest.mark.asyncio
    async def test_requester_cannot_decline(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)

        with pytest.raises(PermissionDenied):
            await machine.decline_request(friendship.id, alice)

    @pytest.mark.asyncio
    async def test_declined_cannot_be_accepted(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.decline_request(friendship.id, bob)

        with pytest.raises(InvalidTransition):
            await machine.accept_request(friendship.id, bob)

    @pytest.mark.asyncio
    async def test_accepted_cannot_be_declined(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.accept_request(friendship.id, bob)

        with pytest.raises(InvalidTransition):
            await machine.decline_request(friendship.id, bob)

    @pytest.mark.asyncio
    async def test_blocked_is_terminal_for_accept(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.block(friendship.id, alice)

        with pytest.raises(InvalidTransition):
            await machine.accept_request(friendship.id, bob)

    @pytest.mark.asyncio
    async def test_either_party_can_block_accepted(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.accept_request(friendship.id, bob)

        blocked = await machine.block(friendship.id, alice)

        assert blocked.status == "blocked"

    @pytest.mark.asyncio
    async def test_outsider_sees_not_found(self, db_session, machine):
        alice, bob = await _pair(db_session)
        carol = (await make_profile(db_session, "carol")).id
        friendship = await machine.send_request(alice, bob)

        with pytest.raises(FriendshipNotFound):
            await machine.accept_request(friendship.id, carol)
        with pytest.raises(FriendshipNotFound):
            await machine.remove_friend(friendship.id, carol)

    @pytest.mark.asyncio
    async def test_unknown_id(self, machine):
        with pytest.raises(FriendshipNotFound):
            await machine.block("missing")


class TestRemove:
    @pytest.mark.asyncio
    async def test_remove_returns_pair_to_none(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.accept_request(friendship.id, bob)

        await machine.remove_friend(friendship.id, alice)

        assert await machine.get_friendship_status(alice, bob) is None

    @pytest.mark.asyncio
    async def test_request_again_after_remove(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)
        await machine.remove_friend(friendship.id, bob)

        again = await machine.send_request(bob, alice)

        assert again.status == "pending"
        assert again.requester_id == bob


class TestListings:
    @pytest.mark.asyncio
    async def test_friends_list_with_presence(self, db_session):
        alice, bob = await _pair(db_session)
        carol = (await make_profile(db_session, "carol")).id
        machine = FriendshipStateMachine(SqlTriviaStore(db_session), is_online=lambda uid: uid == bob)
        f1 = await machine.send_request(alice, bob)
        await machine.accept_request(f1.id, bob)
        f2 = await machine.send_request(carol, alice)
        await machine.accept_request(f2.id, alice)

        friends = await machine.list_friends(alice)

        assert {f.friend_username: f.status for f in friends} == {"bob": "online", "carol": "offline"}
        assert [f.friend_username for f in await machine.list_friends(bob)] == ["alice"]

    @pytest.mark.asyncio
    async def test_pending_not_listed_as_friend(self, db_session, machine):
        alice, bob = await _pair(db_session)
        await machine.send_request(alice, bob)

        assert await machine.list_friends(alice) == []

    @pytest.mark.asyncio
    async def test_request_inboxes(self, db_session, machine):
        alice, bob = await _pair(db_session)
        friendship = await machine.send_request(alice, bob)

        received = await machine.list_received_requests(bob)
        sent = await machine.list_sent_requests(alice)

        assert [r.id for r in received] == [friendship.id]
        assert received[0].requester.username == "alice"
        assert received[0].addressee is None
        assert [r.id for r in sent] == [friendship.id]
        assert sent[0].addressee.username == "bob"
        assert await machine.list_received_requests(alice) == []


class TestNotifyingEvents:
    @pytest.mark.asyncio
    async def test_request_and_accept_notify_other_party(self, db_session):
        alice, bob = await _pair(db_session)
        machine = FriendshipStateMachine(
            SqlTriviaStore(db_session), events=NotifyingFriendshipEvents(db_session)
        )

        friendship = await machine.send_request(alice, bob)
        await machine.accept_request(friendship.id, bob)

        result = await db_session.execute(select(Notification).order_by(Notification.created_at))
        notifications = result.scalars().all()
        assert [(n.user_id, n.type) for n in notifications] == [
            (bob, "friend_request"),
            (alice, "friend_accepted"),
        ]
        assert notifications[0].data["friendship_id"] == friendship.id

        result = await db_session.execute(select(UserActivity))
        activities = result.scalars().all()
        assert [(a.user_id, a.activity_type) for a in activities] == [(bob, "friend_added")]

    @pytest.mark.asyncio
    async def test_notification_pushed_only_after_commit(self, db_session):
        alice, bob = await _pair(db_session)
        events = NotifyingFriendshipEvents(db_session)
        machine = FriendshipStateMachine(SqlTriviaStore(db_session), events=events)
        pushed = []

        async def handler(topic, payload):
            pushed.append(payload["data"]["type"])

        sub = hub.subscribe(f"notifications:{bob}", handler)
        try:
            real_commit = db_session.commit
            calls = 0

            async def commit_then_fail():
                nonlocal calls
                calls += 1
                if calls == 2:
                    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))
                await real_commit()

            with patch.object(db_session, "commit", commit_then_fail):
                friendship = await machine.send_request(alice, bob)

            assert pushed == []
            assert (await db_session.execute(select(Notification))).scalars().all() == []

            await machine.remove_friend(friendship.id, bob)
            await machine.send_request(alice, bob)
        finally:
            sub.unsubscribe()

        assert pushed == ["friend_request"]
