"""Friends API endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.auth.dependencies import get_current_user_id
from trivia.database import get_session
from trivia.friends.events import NotifyingFriendshipEvents
from trivia.friends.schemas import (
    FriendListResponse,
    FriendRequestCreate,
    FriendRequestListResponse,
    FriendshipResponse,
    FriendshipStatusResponse,
)
from trivia.friends.state_machine import FriendshipStateMachine
from trivia.realtime.manager import manager
from trivia.redis_client import get_optional_redis
from trivia.store import SqlTriviaStore

router = APIRouter(prefix="/api/v1/friends", tags=["Friends"])


def get_state_machine(
    db: AsyncSession = Depends(get_session),
    redis: Any = Depends(get_optional_redis),
) -> FriendshipStateMachine:
    return FriendshipStateMachine(
        SqlTriviaStore(db),
        events=NotifyingFriendshipEvents(db, redis),
        is_online=manager.is_online,
    )


@router.get("", response_model=FriendListResponse)
async def list_friends(
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendListResponse:
    return FriendListResponse(friends=await machine.list_friends(user_id))


@router.get("/requests/received", response_model=FriendRequestListResponse)
async def received_requests(
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendRequestListResponse:
    return FriendRequestListResponse(requests=await machine.list_received_requests(user_id))


@router.get("/requests/sent", response_model=FriendRequestListResponse)
async def sent_requests(
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendRequestListResponse:
    return FriendRequestListResponse(requests=await machine.list_sent_requests(user_id))


@router.post("/requests", response_model=FriendshipResponse, status_code=status.HTTP_201_CREATED)
async def send_request(
    body: FriendRequestCreate,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendshipResponse:
    friendship = await machine.send_request(user_id, body.addressee_id)
    return FriendshipResponse.model_validate(friendship)


@router.post("/{friendship_id}/accept", response_model=FriendshipResponse)
async def accept_request(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendshipResponse:
    return FriendshipResponse.model_validate(await machine.accept_request(friendship_id, user_id))


@router.post("/{friendship_id}/decline", response_model=FriendshipResponse)
async def decline_request(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendshipResponse:
    return FriendshipResponse.model_validate(await machine.decline_request(friendship_id, user_id))


@router.post("/{friendship_id}/block", response_model=FriendshipResponse)
async def block(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendshipResponse:
    return FriendshipResponse.model_validate(await machine.block(friendship_id, user_id))


@router.delete("/{friendship_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
    friendship_id: str,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> None:
    await machine.remove_friend(friendship_id, user_id)


@router.get("/status/{other_user_id}", response_model=FriendshipStatusResponse)
async def friendship_status(
    other_user_id: str,
    user_id: str = Depends(get_current_user_id),
    machine: FriendshipStateMachine = Depends(get_state_machine),
) -> FriendshipStatusResponse:
    friendship = await machine.get_friendship_status(user_id, other_user_id)
    if friendship is None:
        return FriendshipStatusResponse(status="none")
    return FriendshipStatusResponse(
        status=friendship.status,
        friendship=FriendshipResponse.model_validate(friendship),
    )
