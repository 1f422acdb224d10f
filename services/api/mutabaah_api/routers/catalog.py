from __future__ import annotations

from datetime import date

from fastapi import APIRouter
from pydantic import BaseModel

from mutabaah_api.core.config import Settings
from mutabaah_core.catalog import (
    ACTIVITIES,
    LEVELS,
    MAX_DAILY_POINTS,
    QUIZ_POINTS,
    STREAK_BONUSES,
)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


class ActivityOut(BaseModel):
    id: str
    label: str
    points: int
    icon: str


class LevelOut(BaseModel):
    level: int
    name: str
    points: int
    badge: str
    description: str


class StreakBonusOut(BaseModel):
    days: int
    points: int
    label: str


class CatalogOut(BaseModel):
    activities: list[ActivityOut]
    levels: list[LevelOut]
    streak_bonuses: list[StreakBonusOut]
    quiz_points: dict[str, int]
    max_daily_points: int
    challenge_start: date
    challenge_end: date
    edit_window_days: int
    timezone: str


@router.get("", response_model=CatalogOut)
def catalog() -> CatalogOut:
    settings = Settings()
    return CatalogOut(
        activities=[
            ActivityOut(id=a.id, label=a.label, points=a.points, icon=a.icon)
            for a in ACTIVITIES.values()
        ],
        levels=[
            LevelOut(
                level=lv.level,
                name=lv.name,
                points=lv.points,
                badge=lv.badge,
                description=lv.description,
            )
            for lv in LEVELS
        ],
        streak_bonuses=[
            StreakBonusOut(days=b.days, points=b.points, label=b.label)
            for b in STREAK_BONUSES
        ],
        quiz_points=dict(QUIZ_POINTS),
        max_daily_points=MAX_DAILY_POINTS,
        challenge_start=settings.challenge_start,
        challenge_end=settings.challenge_end,
        edit_window_days=int(settings.edit_window_days),
        timezone=settings.timezone,
    )
