"""Friendship lifecycle.

States: none -> pending -> {accepted, declined, blocked}

Rules:
- One friendship row per unordered user pair, whatever its status. Only
  removing the row (back to "none") allows a new request for the pair.
- Only the addressee accepts or declines, and only a pending request.
  Repeating the same transition is a no-op.
- Either party may block (from any status) or remove the friendship.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

import structlog

from trivia.db.models import Friendship
from trivia.errors import (
    DuplicateRequest,
    FriendshipNotFound,
    InvalidTransition,
    PermissionDenied,
    ProfileNotFound,
    SelfRequest,
)
from trivia.friends.schemas import FriendEntry, FriendRequestEntry, ProfileSummary
from trivia.store.protocol import RequestDirection, TriviaStore

logger = structlog.get_logger()

PENDING = "pending"
ACCEPTED = "accepted"
DECLINED = "declined"
BLOCKED = "blocked"

# target status -> statuses it may be entered from
ALLOWED_SOURCES: dict[str, frozenset[str]] = {
    ACCEPTED: frozenset({PENDING, ACCEPTED}),
    DECLINED: frozenset({PENDING, DECLINED}),
    BLOCKED: frozenset({PENDING, ACCEPTED, DECLINED, BLOCKED}),
}

# transitions only the addressee may perform
ADDRESSEE_ONLY = frozenset({ACCEPTED, DECLINED})


class FriendshipEvents(Protocol):
    """Hooks fired after a committed state change."""

    async def request_sent(self, friendship: Friendship) -> None: ...

    async def request_accepted(self, friendship: Friendship) -> None: ...


class FriendshipStateMachine:
    """Applies friendship transitions against a TriviaStore."""

    def __init__(
        self,
        store: TriviaStore,
        events: FriendshipEvents | None = None,
        is_online: Callable[[str], bool] | None = None,
    ) -> None:
        self.store = store
        self.events = events
        self.is_online = is_online or (lambda _user_id: False)

    async def send_request(self, requester_id: str, addressee_id: str) -> Friendship:
        """Create a pending request.

        Raises:
            SelfRequest: requester and addressee are the same user.
            ProfileNotFound: the requester or the addressee has no profile.
            DuplicateRequest: a row already exists for the pair, in either direction.
        """
        if requester_id == addressee_id:
            raise SelfRequest()

        if await self.store.get_profile(requester_id) is None:
            raise ProfileNotFound("Create a profile before sending friend requests")
        if await self.store.get_profile(addressee_id) is None:
            raise ProfileNotFound()

        if await self.store.find_friendship(requester_id, addressee_id) is not None:
            raise DuplicateRequest()

        friendship = await self.store.insert_friendship(requester_id, addressee_id, PENDING)
        await self.store.commit()
        logger.info("friend_request_sent", friendship_id=friendship.id, requester_id=requester_id,
                    addressee_id=addressee_id)

        if self.events is not None:
            await self.events.request_sent(friendship)
        return friendship

    async def accept_request(self, friendship_id: str, acting_user_id: str | None = None) -> Friendship:
        friendship, changed = await self._transition(friendship_id, ACCEPTED, acting_user_id)
        if changed and self.events is not None:
            await self.events.request_accepted(friendship)
        return friendship

    async def decline_request(self, friendship_id: str, acting_user_id: str | None = None) -> Friendship:
        friendship, _ = await self._transition(friendship_id, DECLINED, acting_user_id)
        return friendship

    async def block(self, friendship_id: str, acting_user_id: str | None = None) -> Friendship:
        friendship, _ = await self._transition(friendship_id, BLOCKED, acting_user_id)
        return friendship

    async def remove_friend(self, friendship_id: str, acting_user_id: str | None = None) -> None:
        """Delete the row, returning the pair to "none"."""
        await self._load_for(friendship_id, acting_user_id)
        await self.store.delete_friendship(friendship_id)
        await self.store.commit()
        logger.info("friendship_removed", friendship_id=friendship_id, acting_user_id=acting_user_id)

    async def get_friendship_status(self, user_a: str, user_b: str) -> Friendship | None:
        """Symmetric lookup: same answer for (a, b) and (b, a). None means no relationship."""
        return await self.store.find_friendship(user_a, user_b)

    async def list_friends(self, user_id: str) -> list[FriendEntry]:
        rows = await self.store.list_friends(user_id)
        return [
            FriendEntry(
                friendship_id=friendship.id,
                friend_id=friend.id,
                friend_username=friend.username,
                friend_display_name=friend.display_name,
                friend_avatar_url=friend.avatar_url,
                friend_streak=friend.current_streak,
                friend_points=friend.total_points,
                status="online" if self.is_online(friend.id) else "offline",
                created_at=friendship.created_at,
                updated_at=friendship.updated_at,
            )
            for friendship, friend in rows
        ]

    async def list_requests(self, user_id: str, direction: RequestDirection) -> list[FriendRequestEntry]:
        """Pending requests received by or sent by the user, with the other side's profile."""
        rows = await self.store.list_pending_requests(user_id, direction)
        entries = []
        for friendship, other in rows:
            summary = ProfileSummary.model_validate(other)
            entries.append(FriendRequestEntry(
                id=friendship.id,
                requester_id=friendship.requester_id,
                addressee_id=friendship.addressee_id,
                status=friendship.status,
                created_at=friendship.created_at,
                updated_at=friendship.updated_at,
                requester=summary if direction == "received" else None,
                addressee=summary if direction == "sent" else None,
            ))
        return entries

    async def list_received_requests(self, user_id: str) -> list[FriendRequestEntry]:
        return await self.list_requests(user_id, "received")

    async def list_sent_requests(self, user_id: str) -> list[FriendRequestEntry]:
        return await self.list_requests(user_id, "sent")

    # ── Internals ──

    async def _load_for(self, friendship_id: str, acting_user_id: str | None) -> Friendship:
        friendship = await self.store.get_friendship(friendship_id)
        if friendship is None:
            raise FriendshipNotFound()
        if acting_user_id is not None and not friendship.involves(acting_user_id):
            raise FriendshipNotFound()
        return friendship

    async def _transition(
        self, friendship_id: str, target: str, acting_user_id: str | None
    ) -> tuple[Friendship, bool]:
        """Move a friendship to `target`. Returns (row, whether the status changed)."""
        friendship = await self._load_for(friendship_id, acting_user_id)

        if (
            target in ADDRESSEE_ONLY
            and acting_user_id is not None
            and acting_user_id != friendship.addressee_id
        ):
            msg = f"Only the addressee can mark a request as {target}"
            raise PermissionDenied(msg)

        if friendship.status not in ALLOWED_SOURCES[target]:
            msg = f"Cannot move a {friendship.status} friendship to {target}"
            raise InvalidTransition(msg)

        if friendship.status == target:
            return friendship, False

        previous = friendship.status
        friendship = await self.store.update_friendship_status(friendship_id, target)
        await self.store.commit()
        logger.info(
            "friendship_transition",
            friendship_id=friendship_id,
            from_status=previous,
            to_status=target,
            acting_user_id=acting_user_id,
        )
        return friendship, True
