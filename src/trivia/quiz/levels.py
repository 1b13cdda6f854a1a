"""Player levels derived from lifetime quiz points.

The level is a server-side rule: clients only display the stored
``UserProfile.level`` and the progress block on ``/users/me``. Each rank
starts at a cumulative point total; ranks are sparse after 10.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True)
class Rank:
    level: int
    title: str
    min_points: int


@dataclass(frozen=True)
class LevelInfo:
    level: int
    title: str
    points_into_level: int
    points_for_level: int | None = None
    next_level: int | None = None
    next_title: str | None = None

    @property
    def is_max(self) -> bool:
        return self.next_level is None


RANKS: tuple[Rank, ...] = (
    Rank(1, "Newcomer", 0),
    Rank(2, "Curious Mind", 25),
    Rank(3, "Fact Finder", 75),
    Rank(4, "Quiz Regular", 150),
    Rank(5, "Know-It-Some", 250),
    Rank(6, "Trivia Buff", 400),
    Rank(7, "Brainiac", 600),
    Rank(8, "Scholar", 850),
    Rank(9, "Sage", 1200),
    Rank(10, "Quiz Master", 1700),
    Rank(15, "Walking Encyclopedia", 3000),
    Rank(20, "Grandmaster", 5000),
    Rank(25, "Living Legend", 10000),
)

_STARTS = [rank.min_points for rank in RANKS]


def rank_for(total_points: int) -> Rank:
    """Highest rank whose threshold ``total_points`` has reached."""
    # Negative totals never occur; clamp to the first rank anyway.
    return RANKS[max(bisect_right(_STARTS, total_points) - 1, 0)]


def compute_level(total_points: int) -> LevelInfo:
    """Level plus progress toward the next rank."""
    index = max(bisect_right(_STARTS, total_points) - 1, 0)
    current = RANKS[index]
    into = total_points - current.min_points
    if index + 1 == len(RANKS):
        return LevelInfo(level=current.level, title=current.title, points_into_level=into)

    following = RANKS[index + 1]
    return LevelInfo(
        level=current.level,
        title=current.title,
        points_into_level=into,
        points_for_level=following.min_points - current.min_points,
        next_level=following.level,
        next_title=following.title,
    )
