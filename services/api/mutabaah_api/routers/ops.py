from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.orm import Session

from mutabaah_api.core.config import Settings
from mutabaah_api.deps import AdminOnly, DBSession, Now
from mutabaah_api.eventlog import log_event
from mutabaah_api.models import User
from mutabaah_api.progression import purge_pre_challenge
from mutabaah_api.store import SqlScoreStore

router = APIRouter(prefix="/api/ops", tags=["ops"], dependencies=[AdminOnly])


class PurgeIn(BaseModel):
    user_id: str | None = None
    cutoff: date | None = None


class PurgeUserOut(BaseModel):
    user_id: str
    checkins_deleted: int
    quiz_answers_deleted: int
    badges_deleted: int
    streak_reset: bool


class PurgeOut(BaseModel):
    ok: bool = True
    cutoff: date
    users: list[PurgeUserOut]


@router.post("/purge-pre-challenge", response_model=PurgeOut)
def purge(
    payload: PurgeIn,
    request: Request,
    now: datetime = Now,
    db: Session = DBSession,
) -> PurgeOut:
    cutoff = payload.cutoff or Settings().challenge_start
    if payload.user_id:
        user_ids = [str(payload.user_id)]
    else:
        user_ids = [str(u) for u in db.scalars(select(User.id).order_by(User.id)).all()]

    store = SqlScoreStore(db, now=now)
    out: list[PurgeUserOut] = []
    for uid in user_ids:
        res = purge_pre_challenge(store, uid, cutoff=cutoff)
        out.append(
            PurgeUserOut(
                user_id=uid,
                checkins_deleted=res.checkins_deleted,
                quiz_answers_deleted=res.quiz_answers_deleted,
                badges_deleted=res.badges_deleted,
                streak_reset=res.streak_reset,
            )
        )
        log_event(
            db,
            type="pre_challenge_purged",
            user_id=uid,
            request=request,
            payload={"cutoff": cutoff.isoformat(), **out[-1].model_dump(exclude={"user_id"})},
            now=now,
        )
    db.commit()
    return PurgeOut(cutoff=cutoff, users=out)
