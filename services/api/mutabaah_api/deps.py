from __future__ import annotations

from datetime import UTC, date, datetime

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from mutabaah_api.core.config import Settings
from mutabaah_api.core.security import TokenError, decode_token
from mutabaah_api.db import SessionLocal
from mutabaah_core.windows import local_today


def get_db() -> Session:
    with SessionLocal() as session:
        yield session


def get_now() -> datetime:
    """Clock capability; tests override it to pin "today"."""
    return datetime.now(UTC)


def get_today(now: datetime = Depends(get_now)) -> date:
    return local_today(now_utc=now, tz=Settings().timezone)


def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Invalid Authorization header")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return decode_token(token)
    except TokenError as e:
        raise HTTPException(status_code=401, detail="Invalid token") from e


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    expected = str(Settings().admin_token or "").strip()
    if not expected:
        raise HTTPException(status_code=401, detail="admin_disabled")
    if str(x_admin_token or "").strip() != expected:
        raise HTTPException(status_code=401, detail="unauthorized")


CurrentUserId = Depends(get_current_user_id)
DBSession = Depends(get_db)
Now = Depends(get_now)
Today = Depends(get_today)
AdminOnly = Depends(require_admin)
