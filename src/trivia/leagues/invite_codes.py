"""Invite code generation for leagues.

Codes are 8-character alphanumeric (A-Z, 0-9), generated server-side with a
cryptographic random source and matched case-insensitively.
"""

from __future__ import annotations

import secrets
import string

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.db.models import League

INVITE_CHARSET = string.ascii_uppercase + string.digits
INVITE_LENGTH = 8


def generate_invite_code() -> str:
    return "".join(secrets.choice(INVITE_CHARSET) for _ in range(INVITE_LENGTH))


def normalize_invite_code(code: str) -> str:
    return code.strip().upper()


async def generate_unique_invite_code(db: AsyncSession, attempts: int = 10) -> str:
    """Generate an invite code no league uses yet."""
    for _ in range(attempts):
        code = generate_invite_code()
        existing = await db.execute(select(League.id).where(League.invite_code == code))
        if existing.first() is None:
            return code
    raise RuntimeError(f"Failed to generate unique invite code after {attempts} attempts")
