"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from trivia.config import get_settings
from trivia.database import get_session
from trivia.db.models import DailyQuiz
from trivia.quiz.service import utc_today
from trivia.realtime.manager import manager
from trivia.redis_client import get_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: 200 while the process is alive."""
    return {"status": "healthy"}


async def _todays_quiz_state(db: AsyncSession) -> str:
    result = await db.execute(
        select(DailyQuiz.id).where(DailyQuiz.quiz_date == utc_today(), DailyQuiz.is_active.is_(True))
    )
    return "published" if result.first() is not None else "missing"


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe.

    ``status`` follows the database and Redis checks only. A missing quiz for
    the current UTC date is reported for the content team but does not make
    the instance unready; neither does running without Redis, in which case
    realtime events stay on this process's hub.
    """
    checks: dict[str, object] = {}
    todays_quiz = "unknown"

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
        todays_quiz = await _todays_quiz_state(db)
    except Exception as exc:
        checks["database"] = f"error: {exc}"

    try:
        redis = get_redis()
        await redis.ping()
        checks["redis"] = "ok"
    except Exception as exc:
        checks["redis"] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "todays_quiz": todays_quiz,
        "realtime": {
            "transport": "redis" if checks["redis"] == "ok" else "local",
            **manager.get_stats(),
        },
    }


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
