from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from mutabaah_api.core.config import Settings
from mutabaah_api.deps import CurrentUserId, DBSession
from mutabaah_api.models import User
from mutabaah_api.store import SqlScoreStore

router = APIRouter(prefix="/api/leaderboard", tags=["leaderboard"])


class LeaderboardRowOut(BaseModel):
    rank: int
    user_id: str
    display_name: str
    total_score: int
    is_me: bool


@router.get("", response_model=list[LeaderboardRowOut])
def leaderboard(
    scope: Literal["global", "community"] = "global",
    limit: int | None = Query(default=None, ge=1, le=500),
    user_id: str = CurrentUserId,
    db: Session = DBSession,
) -> list[LeaderboardRowOut]:
    community_code: str | None = None
    if scope == "community":
        me = db.get(User, user_id)
        if me is None:
            raise HTTPException(status_code=404, detail="User not found")
        if not me.community_code:
            raise HTTPException(status_code=400, detail="no_community_code")
        community_code = str(me.community_code)

    rows = SqlScoreStore(db).rank_leaderboard(
        community_code=community_code,
        requester_id=user_id,
        limit=int(limit or Settings().leaderboard_limit),
    )
    return [
        LeaderboardRowOut(
            rank=r.rank,
            user_id=r.user_id,
            display_name=r.display_name,
            total_score=r.total_score,
            is_me=r.is_requester,
        )
        for r in rows
    ]
