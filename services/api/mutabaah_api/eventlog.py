from __future__ import annotations

import hashlib
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import orjson
from fastapi import Request
from sqlalchemy import select
from sqlalchemy.orm import Session

from mutabaah_api.core.config import Settings
from mutabaah_api.models import Event

EVENT_TYPES = frozenset(
    {
        "user_registered",
        "checkin_submitted",
        "streak_bonus_earned",
        "badge_unlocked",
        "quiz_submitted",
        "pre_challenge_purged",
    }
)


def client_fingerprint(request: Request | None) -> str | None:
    """Salted hash of the client address; raw IPs are never stored."""
    host = getattr(getattr(request, "client", None), "host", None)
    if not host:
        return None
    salt = Settings().auth_jwt_secret
    return hashlib.sha256(f"{host}|{salt}".encode("utf-8")).hexdigest()[:32]


def _encode(obj: Any) -> Any:
    if isinstance(obj, (set, frozenset, tuple)):
        return sorted(obj)
    raise TypeError(f"unserializable: {type(obj).__name__}")


def log_event(
    session: Session,
    *,
    type: str,
    user_id: str | None,
    request: Request | None = None,
    payload: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> Event:
    if type not in EVENT_TYPES:
        raise ValueError(f"unknown event type: {type}")

    body: dict[str, Any] = {"v": 1, **(payload or {})}
    if request is not None:
        body["path"] = request.url.path
        request_id = getattr(request.state, "request_id", None)
        if request_id:
            body["request_id"] = str(request_id)
        fingerprint = client_fingerprint(request)
        if fingerprint:
            body["client"] = fingerprint

    event = Event(
        id=f"ev_{uuid4().hex}",
        user_id=user_id,
        type=type,
        payload_json=orjson.dumps(body, default=_encode).decode("utf-8"),
        created_at=now or datetime.now(UTC),
    )
    session.add(event)
    return event


def events_for_user(
    session: Session, *, user_id: str, type: str | None = None
) -> list[dict[str, Any]]:
    stmt = select(Event).where(Event.user_id == str(user_id))
    if type is not None:
        stmt = stmt.where(Event.type == type)
    stmt = stmt.order_by(Event.created_at.asc(), Event.id.asc())
    return [
        {
            "type": ev.type,
            "payload": orjson.loads(ev.payload_json or "{}"),
            "created_at": ev.created_at,
        }
        for ev in session.scalars(stmt)
    ]
