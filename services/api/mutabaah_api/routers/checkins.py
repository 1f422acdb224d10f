from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from mutabaah_api.deps import CurrentUserId, DBSession, Now, Today
from mutabaah_api.eventlog import log_event
from mutabaah_api.progression import WritePolicy, submit_checkin
from mutabaah_api.routers.progress import BadgeOut, badge_out
from mutabaah_api.store import CheckinRecord, SqlScoreStore
from mutabaah_core.models import CheckinSpec
from mutabaah_core.windows import is_editable

router = APIRouter(prefix="/api/checkins", tags=["checkins"])


class CheckinOut(BaseModel):
    day: date
    activities: list[str]
    notes: dict[str, str] = Field(default_factory=dict)
    daily_score: int
    editable: bool
    updated_at: datetime | None = None


class CheckinSubmitOut(BaseModel):
    ok: bool = True
    checkin: CheckinOut
    current_streak: int
    earned_bonuses: list[int] = Field(default_factory=list)
    bonus_earned: int = 0
    bonuses_reset: bool = False
    total_score: int
    new_badges: list[BadgeOut] = Field(default_factory=list)


def _checkin_out(c: CheckinRecord, *, policy: WritePolicy) -> CheckinOut:
    return CheckinOut(
        day=c.day,
        activities=list(c.activities),
        notes=dict(c.notes),
        daily_score=int(c.daily_score),
        editable=is_editable(c.day, today=policy.today, window_days=policy.edit_window_days),
        updated_at=c.updated_at,
    )


@router.get("", response_model=list[CheckinOut])
def list_checkins(
    user_id: str = CurrentUserId,
    today: date = Today,
    db: Session = DBSession,
) -> list[CheckinOut]:
    policy = WritePolicy.from_settings(today=today)
    store = SqlScoreStore(db)
    return [_checkin_out(c, policy=policy) for c in store.get_checkins_for_user(user_id)]


@router.get("/{day}", response_model=CheckinOut)
def get_checkin(
    day: date,
    user_id: str = CurrentUserId,
    today: date = Today,
    db: Session = DBSession,
) -> CheckinOut:
    row = SqlScoreStore(db).get_checkin_for_date(user_id, day)
    if row is None:
        raise HTTPException(status_code=404, detail="checkin_not_found")
    return _checkin_out(row, policy=WritePolicy.from_settings(today=today))


@router.put("/{day}", response_model=CheckinSubmitOut)
def put_checkin(
    day: date,
    payload: CheckinSpec,
    request: Request,
    user_id: str = CurrentUserId,
    today: date = Today,
    now: datetime = Now,
    db: Session = DBSession,
) -> CheckinSubmitOut:
    policy = WritePolicy.from_settings(today=today)
    store = SqlScoreStore(db, now=now)
    outcome = submit_checkin(
        store, user_id=user_id, day=day, spec=payload, policy=policy, now=now
    )

    log_event(
        db,
        type="checkin_submitted",
        user_id=user_id,
        request=request,
        payload={
            "day": day.isoformat(),
            "activities": list(outcome.checkin.activities),
            "daily_score": outcome.checkin.daily_score,
            "current_streak": outcome.streak.current_streak,
            "backfill": day != today,
        },
        now=now,
    )
    if outcome.bonus_earned:
        log_event(
            db,
            type="streak_bonus_earned",
            user_id=user_id,
            request=request,
            payload={
                "thresholds": list(outcome.newly_earned_bonuses),
                "points": outcome.bonus_earned,
            },
            now=now,
        )
    for b in outcome.new_badges:
        log_event(
            db,
            type="badge_unlocked",
            user_id=user_id,
            request=request,
            payload={"level_name": b.level_name, "total_score": outcome.total_score},
            now=now,
        )
    db.commit()

    return CheckinSubmitOut(
        checkin=_checkin_out(outcome.checkin, policy=policy),
        current_streak=outcome.streak.current_streak,
        earned_bonuses=sorted(outcome.streak.earned_bonuses),
        bonus_earned=outcome.bonus_earned,
        bonuses_reset=outcome.bonuses_reset,
        total_score=outcome.total_score,
        new_badges=[badge_out(b) for b in outcome.new_badges],
    )
