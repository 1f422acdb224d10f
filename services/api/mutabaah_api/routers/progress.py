from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from mutabaah_api.deps import CurrentUserId, DBSession, Now, Today
from mutabaah_api.progression import WritePolicy, progress_summary
from mutabaah_api.store import BadgeRecord, SqlScoreStore
from mutabaah_core.catalog import LEVELS, LevelDef

router = APIRouter(prefix="/api/progress", tags=["progress"])

_LEVELS_BY_NAME = {lv.name: lv for lv in LEVELS}


class LevelOut(BaseModel):
    level: int
    name: str
    points: int
    badge: str


class BadgeOut(BaseModel):
    level_name: str
    badge: str | None = None
    unlocked_at: datetime


class ProgressOut(BaseModel):
    today: date
    total_score: int
    current_level: LevelOut | None = None
    next_level: LevelOut | None = None
    points_to_next: int | None = None
    level_percent: float
    current_streak: int
    earned_bonuses: list[int] = Field(default_factory=list)
    badges: list[BadgeOut] = Field(default_factory=list)
    editable_dates: list[date] = Field(default_factory=list)
    checked_dates: list[date] = Field(default_factory=list)
    challenge_active: bool
    checked_in_today: bool
    quiz_done_today: bool


def level_out(level: LevelDef | None) -> LevelOut | None:
    if level is None:
        return None
    return LevelOut(
        level=level.level, name=level.name, points=level.points, badge=level.badge
    )


def badge_out(b: BadgeRecord) -> BadgeOut:
    level = _LEVELS_BY_NAME.get(b.level_name)
    return BadgeOut(
        level_name=b.level_name,
        badge=level.badge if level else None,
        unlocked_at=b.unlocked_at,
    )


@router.get("", response_model=ProgressOut)
def progress(
    user_id: str = CurrentUserId,
    today: date = Today,
    now: datetime = Now,
    db: Session = DBSession,
) -> ProgressOut:
    store = SqlScoreStore(db, now=now)
    summary = progress_summary(
        store, user_id, policy=WritePolicy.from_settings(today=today)
    )
    return ProgressOut(
        today=summary.today,
        total_score=summary.total_score,
        current_level=level_out(summary.level.current),
        next_level=level_out(summary.level.next),
        points_to_next=summary.level.points_to_next,
        level_percent=summary.level.percent,
        current_streak=summary.current_streak,
        earned_bonuses=sorted(summary.earned_bonuses),
        badges=[badge_out(b) for b in summary.badges],
        editable_dates=summary.editable_dates,
        checked_dates=summary.checked_dates,
        challenge_active=summary.challenge_active,
        checked_in_today=summary.checked_in_today,
        quiz_done_today=summary.quiz_done_today,
    )
