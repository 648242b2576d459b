"""
StreakCalculator: pure functions over a user's claim history (most recent first).
No I/O; rows only need `claimed_at` and `streak_position`.
"""
from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from app.bonus.clock import bonus_day
from app.bonus.errors import SameDayClaimError
from app.bonus.models import StreakResult


class ClaimLike(Protocol):
    claimed_at: datetime
    streak_position: int


def _advance(last_position: int | None, cycle_length: int) -> int:
    """Position following `last_position`, wrapping at the end of the cycle."""
    return ((last_position or 0) % max(1, cycle_length)) + 1


def compute_streak(
    history: Sequence[ClaimLike],
    now: datetime,
    cycle_length: int,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> StreakResult:
    """
    Cycle position for a claim made at `now`.

    Previous claim on the previous claim day continues the streak and advances the
    position modulo the cycle; a larger gap restarts at 1. A claim already on today's
    claim day raises SameDayClaimError.
    """
    if not history:
        return StreakResult(cycle_position=1, continuing=False)

    last = history[0]
    today = bonus_day(now, tz_name, boundary_hour)
    gap = (today - bonus_day(last.claimed_at, tz_name, boundary_hour)).days

    # gap < 0 only with clock skew between instances
    if gap <= 0:
        raise SameDayClaimError()
    if gap == 1:
        return StreakResult(cycle_position=_advance(last.streak_position, cycle_length), continuing=True)
    return StreakResult(cycle_position=1, continuing=False)


def next_cycle_position(
    history: Sequence[ClaimLike],
    now: datetime,
    cycle_length: int,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> int:
    """
    Position the user's next claim will pay, for display. Never raises.

    Advances the stored position of the last claim, as compute_streak does. A claim
    already made today shows the position the next claim day will pay.
    """
    if not history:
        return 1
    last = history[0]
    gap = (bonus_day(now, tz_name, boundary_hour) - bonus_day(last.claimed_at, tz_name, boundary_hour)).days
    if gap <= 1:
        return _advance(last.streak_position, cycle_length)
    return 1


def count_current_streak(
    history: Sequence[ClaimLike],
    now: datetime,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> int:
    """
    Consecutive claim days already claimed, ending today or yesterday.
    0 when the streak is broken (last claim two or more days ago) or there is no history.
    """
    days = []
    for claim in history:
        day = bonus_day(claim.claimed_at, tz_name, boundary_hour)
        if not days or days[-1] != day:
            days.append(day)
    if not days:
        return 0

    today = bonus_day(now, tz_name, boundary_hour)
    if (today - days[0]).days > 1:
        return 0

    streak = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days != 1:
            break
        streak += 1
    return streak


def claimed_today(
    history: Sequence[ClaimLike],
    now: datetime,
    tz_name: str | None = None,
    boundary_hour: int | None = None,
) -> bool:
    if not history:
        return False
    return bonus_day(history[0].claimed_at, tz_name, boundary_hour) == bonus_day(now, tz_name, boundary_hour)
