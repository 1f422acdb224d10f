from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mutabaah_core.catalog import CHALLENGE_END, CHALLENGE_START
from mutabaah_core.windows import EDIT_WINDOW_DAYS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="MUTABAAH_", extra="ignore")

    public_base_url: str | None = None
    trust_proxy_headers: bool = False
    allowed_hosts: str = "localhost,127.0.0.1,testserver"
    cors_allowed_origins: str = "http://localhost:5173,http://127.0.0.1:5173"
    log_json: bool = False

    db_url: str = "sqlite:///./artifacts/mutabaah.db"

    auth_jwt_secret: str = "dev-secret-change-me"
    auth_jwt_issuer: str = "mutabaah-local"
    auth_jwt_exp_minutes: int = 60 * 24 * 30

    admin_token: str | None = None

    # "Today" is the participant's local calendar day, not the UTC one.
    timezone: str = "Asia/Jakarta"

    challenge_start: date = CHALLENGE_START
    challenge_end: date = CHALLENGE_END
    edit_window_days: int = EDIT_WINDOW_DAYS
    # Refuse writes for dates outside [challenge_start, challenge_end].
    enforce_challenge_window: bool = True

    leaderboard_limit: int = 100

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        raw = str(v or "").strip()
        try:
            ZoneInfo(raw)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"MUTABAAH_TIMEZONE is not a known zone: {raw!r}") from e
        return raw

    @field_validator("edit_window_days")
    @classmethod
    def _validate_edit_window(cls, v: int) -> int:
        if int(v) < 0:
            raise ValueError("MUTABAAH_EDIT_WINDOW_DAYS must be >= 0")
        return int(v)

    @model_validator(mode="after")
    def _validate_challenge_window(self) -> "Settings":
        if self.challenge_end < self.challenge_start:
            raise ValueError(
                "MUTABAAH_CHALLENGE_END must not be before MUTABAAH_CHALLENGE_START "
                f"({self.challenge_end} < {self.challenge_start})"
            )
        return self
