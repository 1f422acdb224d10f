from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.orm import Session

from mutabaah_api.core.security import create_access_token
from mutabaah_api.deps import CurrentUserId, DBSession, Now
from mutabaah_api.eventlog import log_event
from mutabaah_api.models import User
from mutabaah_core.pseudonym import generate_pseudonym

router = APIRouter(prefix="/api/auth", tags=["auth"])


class AuthResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"


class RegisterRequest(BaseModel):
    username: str = Field(min_length=2, max_length=40, pattern=r"^[a-zA-Z0-9_.-]+$")
    name: str = Field(min_length=1, max_length=80)
    community_code: str | None = Field(default=None, max_length=40)
    pseudonym: str | None = Field(default=None, max_length=60)


class LoginRequest(BaseModel):
    username: str


class MeResponse(BaseModel):
    user_id: str
    username: str
    name: str
    pseudonym: str | None = None
    community_code: str | None = None


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=80)
    pseudonym: str | None = Field(default=None, max_length=60)


class PseudonymOut(BaseModel):
    pseudonym: str


def _clean(value: str | None) -> str | None:
    out = str(value or "").strip()
    return out or None


def _me(user: User) -> MeResponse:
    return MeResponse(
        user_id=user.id,
        username=user.username,
        name=user.name,
        pseudonym=user.pseudonym,
        community_code=user.community_code,
    )


@router.post("/register", response_model=AuthResponse)
def auth_register(
    req: RegisterRequest,
    request: Request,
    now: datetime = Now,
    db: Session = DBSession,
) -> AuthResponse:
    username = req.username.strip().lower()
    if db.scalar(select(User).where(User.username == username)) is not None:
        raise HTTPException(status_code=409, detail="username_taken")
    community = _clean(req.community_code)
    user = User(
        id=f"user_{uuid4().hex}",
        username=username,
        name=req.name.strip(),
        pseudonym=_clean(req.pseudonym) or generate_pseudonym(),
        community_code=community.upper() if community else None,
        created_at=now,
    )
    db.add(user)
    db.flush()
    log_event(
        db,
        type="user_registered",
        user_id=user.id,
        request=request,
        payload={"community_code": user.community_code},
        now=now,
    )
    db.commit()
    return AuthResponse(access_token=create_access_token(subject=user.id))


@router.post("/login", response_model=AuthResponse)
def auth_login(req: LoginRequest, db: Session = DBSession) -> AuthResponse:
    user = db.scalar(select(User).where(User.username == req.username.strip().lower()))
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return AuthResponse(access_token=create_access_token(subject=user.id))


@router.get("/me", response_model=MeResponse)
def auth_me(user_id: str = CurrentUserId, db: Session = DBSession) -> MeResponse:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return _me(user)


@router.patch("/me", response_model=MeResponse)
def auth_update_me(
    req: ProfileUpdate,
    user_id: str = CurrentUserId,
    db: Session = DBSession,
) -> MeResponse:
    user = db.get(User, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if req.name is not None:
        user.name = req.name.strip()
    if "pseudonym" in req.model_fields_set:
        user.pseudonym = _clean(req.pseudonym)
    db.add(user)
    db.commit()
    return _me(user)


@router.get("/pseudonym", response_model=PseudonymOut)
def auth_suggest_pseudonym() -> PseudonymOut:
    return PseudonymOut(pseudonym=generate_pseudonym())
