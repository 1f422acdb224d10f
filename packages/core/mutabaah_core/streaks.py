from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta

from mutabaah_core.catalog import STREAK_BONUSES, StreakBonusDef


@dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    last_checkin_date: date | None = None
    earned_bonuses: frozenset[int] = field(default_factory=frozenset)


@dataclass(frozen=True)
class ReconcileResult:
    state: StreakState
    # Only drives the one-time notification; totals read state.earned_bonuses.
    bonus_earned: int
    newly_earned: tuple[int, ...]
    bonuses_reset: bool


def count_trailing_run(checkin_dates: Iterable[date], *, today: date) -> int:
    """Consecutive days with a check-in ending at (and including) today."""
    days = set(checkin_dates or ())
    run = 0
    cursor = today
    while cursor in days:
        run += 1
        cursor = cursor - timedelta(days=1)
    return run


def _should_reset(*, new_streak: int, prior: StreakState) -> bool:
    if new_streak <= 0:
        return True
    if not prior.earned_bonuses:
        return False
    return new_streak < int(prior.current_streak or 0) and new_streak < min(
        prior.earned_bonuses
    )


def reconcile(
    checkin_dates: Iterable[date],
    prior: StreakState | None,
    *,
    today: date,
    bonuses: Iterable[StreakBonusDef] = STREAK_BONUSES,
) -> ReconcileResult:
    """
    Re-derive a streak from the complete set of check-in dates.

    Always a full recompute: backfilled or edited past days can change the
    trailing run retroactively, so the prior record only contributes its
    earned bonus set (the current cycle) and its previous length.

    Earned bonuses survive a shrinking streak as long as the new length stays at
    or above the smallest threshold already earned. A streak of zero (nothing
    checked in today) always closes the cycle.
    """
    prior = prior or StreakState()
    days = set(checkin_dates or ())
    if not days:
        return ReconcileResult(
            state=StreakState(),
            bonus_earned=0,
            newly_earned=(),
            bonuses_reset=bool(prior.earned_bonuses),
        )

    new_streak = count_trailing_run(days, today=today)

    reset = _should_reset(new_streak=new_streak, prior=prior)
    earned: set[int] = set() if reset else {int(d) for d in prior.earned_bonuses}

    bonus_earned = 0
    newly_earned: list[int] = []
    for bonus in sorted(bonuses, key=lambda b: int(b.days)):
        if int(bonus.days) in earned:
            continue
        if new_streak >= int(bonus.days):
            earned.add(int(bonus.days))
            newly_earned.append(int(bonus.days))
            bonus_earned += int(bonus.points)

    return ReconcileResult(
        state=StreakState(
            current_streak=new_streak,
            last_checkin_date=max(days),
            earned_bonuses=frozenset(earned),
        ),
        bonus_earned=bonus_earned,
        newly_earned=tuple(newly_earned),
        bonuses_reset=bool(reset and prior.earned_bonuses),
    )
