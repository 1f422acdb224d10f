from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Protocol
from uuid import uuid4

import orjson
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from mutabaah_api.models import Badge, DailyCheckin, QuizAnswer, StreakRecord, User
from mutabaah_core.models import QuizAnswerItem
from mutabaah_core.pseudonym import anonymous_label
from mutabaah_core.scoring import bonus_points
from mutabaah_core.streaks import StreakState


@dataclass(frozen=True)
class CheckinRecord:
    user_id: str
    day: date
    activities: tuple[str, ...]
    daily_score: int
    notes: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class QuizRecord:
    user_id: str
    day: date
    answers: tuple[QuizAnswerItem, ...]
    quiz_score: int


@dataclass(frozen=True)
class BadgeRecord:
    user_id: str
    level_name: str
    unlocked_at: datetime


@dataclass(frozen=True)
class RankedEntry:
    rank: int
    user_id: str
    display_name: str
    total_score: int
    is_requester: bool


@dataclass(frozen=True)
class PurgeResult:
    checkins_deleted: int
    quiz_answers_deleted: int
    badges_deleted: int
    streak_reset: bool


class ScoreStore(Protocol):
    def get_checkins_for_user(self, user_id: str) -> list[CheckinRecord]: ...

    def get_checkin_for_date(self, user_id: str, day: date) -> CheckinRecord | None: ...

    def upsert_checkin(self, checkin: CheckinRecord) -> None: ...

    def get_quiz_answers_for_user(self, user_id: str) -> list[QuizRecord]: ...

    def get_quiz_answer_for_date(self, user_id: str, day: date) -> QuizRecord | None: ...

    def upsert_quiz_answer(self, answer: QuizRecord) -> None: ...

    def get_streak_record(self, user_id: str) -> StreakState: ...

    def upsert_streak_record(self, user_id: str, state: StreakState) -> None: ...

    def get_badges(self, user_id: str) -> list[BadgeRecord]: ...

    def insert_badges(self, badges: list[BadgeRecord]) -> None: ...

    def rank_leaderboard(
        self,
        *,
        community_code: str | None,
        requester_id: str | None,
        limit: int | None = None,
    ) -> list[RankedEntry]: ...

    def purge_pre_challenge_data(self, user_id: str, cutoff: date) -> PurgeResult: ...


def _loads(raw: str | None, default):
    try:
        out = orjson.loads(raw or "")
    except orjson.JSONDecodeError:
        return default
    return out if isinstance(out, type(default)) else default


def _checkin_out(row: DailyCheckin) -> CheckinRecord:
    activities = _loads(row.activities_json, [])
    notes = _loads(row.notes_json, {})
    return CheckinRecord(
        user_id=str(row.user_id),
        day=row.day,
        activities=tuple(str(a) for a in activities),
        daily_score=int(row.daily_score or 0),
        notes={str(k): str(v) for k, v in notes.items()},
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _quiz_out(row: QuizAnswer) -> QuizRecord:
    answers = _loads(row.answers_json, [])
    return QuizRecord(
        user_id=str(row.user_id),
        day=row.day,
        answers=tuple(
            QuizAnswerItem.model_validate(a) for a in answers if isinstance(a, dict)
        ),
        quiz_score=int(row.quiz_score or 0),
    )


def display_name_for(user: User, *, requester_id: str | None) -> str:
    if requester_id is not None and str(user.id) == str(requester_id):
        return str(user.name)
    pseudonym = str(user.pseudonym or "").strip()
    if pseudonym:
        return pseudonym
    return anonymous_label(str(user.id))


class SqlScoreStore:
    """
    SQLAlchemy-backed storage collaborator.

    Writes are flushed but never committed: the caller owns the transaction so a
    failed reconcile leaves the previous state in place.
    """

    def __init__(self, session: Session, *, now: datetime | None = None) -> None:
        self.session = session
        self._now = now

    def _stamp(self) -> datetime:
        return self._now or datetime.now(UTC)

    def _checkin_row(self, user_id: str, day: date) -> DailyCheckin | None:
        return self.session.scalar(
            select(DailyCheckin)
            .where(DailyCheckin.user_id == str(user_id))
            .where(DailyCheckin.day == day)
        )

    def _quiz_row(self, user_id: str, day: date) -> QuizAnswer | None:
        return self.session.scalar(
            select(QuizAnswer)
            .where(QuizAnswer.user_id == str(user_id))
            .where(QuizAnswer.day == day)
        )

    def get_checkins_for_user(self, user_id: str) -> list[CheckinRecord]:
        rows = self.session.scalars(
            select(DailyCheckin)
            .where(DailyCheckin.user_id == str(user_id))
            .order_by(DailyCheckin.day.asc())
        ).all()
        return [_checkin_out(r) for r in rows]

    def get_checkin_for_date(self, user_id: str, day: date) -> CheckinRecord | None:
        row = self._checkin_row(user_id, day)
        return _checkin_out(row) if row is not None else None

    def upsert_checkin(self, checkin: CheckinRecord) -> None:
        now = self._stamp()
        row = self._checkin_row(checkin.user_id, checkin.day)
        if row is None:
            row = DailyCheckin(
                id=f"ci_{uuid4().hex}",
                user_id=str(checkin.user_id),
                day=checkin.day,
                created_at=now,
            )
        row.activities_json = orjson.dumps(list(checkin.activities)).decode("utf-8")
        row.notes_json = orjson.dumps(dict(checkin.notes or {})).decode("utf-8")
        row.daily_score = int(checkin.daily_score)
        row.updated_at = now
        self.session.add(row)
        self.session.flush()

    def get_quiz_answers_for_user(self, user_id: str) -> list[QuizRecord]:
        rows = self.session.scalars(
            select(QuizAnswer)
            .where(QuizAnswer.user_id == str(user_id))
            .order_by(QuizAnswer.day.asc())
        ).all()
        return [_quiz_out(r) for r in rows]

    def get_quiz_answer_for_date(self, user_id: str, day: date) -> QuizRecord | None:
        row = self._quiz_row(user_id, day)
        return _quiz_out(row) if row is not None else None

    def upsert_quiz_answer(self, answer: QuizRecord) -> None:
        now = self._stamp()
        row = self._quiz_row(answer.user_id, answer.day)
        if row is None:
            row = QuizAnswer(
                id=f"qz_{uuid4().hex}",
                user_id=str(answer.user_id),
                day=answer.day,
                created_at=now,
            )
        row.answers_json = orjson.dumps(
            [a.model_dump() for a in answer.answers]
        ).decode("utf-8")
        row.quiz_score = int(answer.quiz_score)
        row.updated_at = now
        self.session.add(row)
        self.session.flush()

    def get_streak_record(self, user_id: str) -> StreakState:
        row = self.session.get(StreakRecord, str(user_id))
        if row is None:
            return StreakState()
        earned = _loads(row.earned_bonuses_json, [])
        return StreakState(
            current_streak=int(row.current_streak or 0),
            last_checkin_date=row.last_checkin_date,
            earned_bonuses=frozenset(int(d) for d in earned),
        )

    def upsert_streak_record(self, user_id: str, state: StreakState) -> None:
        row = self.session.get(StreakRecord, str(user_id))
        if row is None:
            row = StreakRecord(user_id=str(user_id))
        row.current_streak = int(state.current_streak)
        row.last_checkin_date = state.last_checkin_date
        row.earned_bonuses_json = orjson.dumps(sorted(state.earned_bonuses)).decode(
            "utf-8"
        )
        row.updated_at = self._stamp()
        self.session.add(row)
        self.session.flush()

    def get_badges(self, user_id: str) -> list[BadgeRecord]:
        rows = self.session.scalars(
            select(Badge)
            .where(Badge.user_id == str(user_id))
            .order_by(Badge.unlocked_at.asc(), Badge.level_name.asc())
        ).all()
        return [
            BadgeRecord(
                user_id=str(r.user_id),
                level_name=str(r.level_name),
                unlocked_at=r.unlocked_at,
            )
            for r in rows
        ]

    def insert_badges(self, badges: list[BadgeRecord]) -> None:
        for b in badges:
            self.session.add(
                Badge(
                    id=f"bd_{uuid4().hex}",
                    user_id=str(b.user_id),
                    level_name=str(b.level_name),
                    unlocked_at=b.unlocked_at,
                )
            )
        if badges:
            self.session.flush()

    def rank_leaderboard(
        self,
        *,
        community_code: str | None,
        requester_id: str | None,
        limit: int | None = None,
    ) -> list[RankedEntry]:
        checkin_pts = (
            select(
                DailyCheckin.user_id.label("user_id"),
                func.sum(DailyCheckin.daily_score).label("pts"),
            )
            .group_by(DailyCheckin.user_id)
            .subquery()
        )
        quiz_pts = (
            select(
                QuizAnswer.user_id.label("user_id"),
                func.sum(QuizAnswer.quiz_score).label("pts"),
            )
            .group_by(QuizAnswer.user_id)
            .subquery()
        )
        q = (
            select(
                User,
                func.coalesce(checkin_pts.c.pts, 0),
                func.coalesce(quiz_pts.c.pts, 0),
                StreakRecord.earned_bonuses_json,
            )
            .outerjoin(checkin_pts, checkin_pts.c.user_id == User.id)
            .outerjoin(quiz_pts, quiz_pts.c.user_id == User.id)
            .outerjoin(StreakRecord, StreakRecord.user_id == User.id)
        )
        if community_code is not None:
            q = q.where(User.community_code == str(community_code))

        scored: list[tuple[User, int]] = []
        for user, c_pts, q_pts, bonuses_json in self.session.execute(q).all():
            earned = _loads(bonuses_json, [])
            total = int(c_pts or 0) + int(q_pts or 0) + bonus_points(earned)
            scored.append((user, total))

        scored.sort(key=lambda item: (-item[1], str(item[0].id)))
        entries = [
            RankedEntry(
                rank=i + 1,
                user_id=str(user.id),
                display_name=display_name_for(user, requester_id=requester_id),
                total_score=int(total),
                is_requester=requester_id is not None
                and str(user.id) == str(requester_id),
            )
            for i, (user, total) in enumerate(scored)
        ]
        if limit is None:
            return entries

        top = entries[: max(0, int(limit))]
        # The requester always sees their own row, at its true rank.
        if requester_id is not None and not any(e.is_requester for e in top):
            top.extend(e for e in entries[len(top) :] if e.is_requester)
        return top

    def purge_pre_challenge_data(self, user_id: str, cutoff: date) -> PurgeResult:
        checkins = self.session.execute(
            delete(DailyCheckin)
            .where(DailyCheckin.user_id == str(user_id))
            .where(DailyCheckin.day < cutoff)
        )
        quizzes = self.session.execute(
            delete(QuizAnswer)
            .where(QuizAnswer.user_id == str(user_id))
            .where(QuizAnswer.day < cutoff)
        )
        badges = self.session.execute(
            delete(Badge).where(Badge.user_id == str(user_id))
        )

        streak_reset = False
        row = self.session.get(StreakRecord, str(user_id))
        if (
            row is not None
            and row.last_checkin_date is not None
            and row.last_checkin_date < cutoff
        ):
            self.upsert_streak_record(user_id, StreakState())
            streak_reset = True
        self.session.flush()

        return PurgeResult(
            checkins_deleted=int(checkins.rowcount or 0),
            quiz_answers_deleted=int(quizzes.rowcount or 0),
            badges_deleted=int(badges.rowcount or 0),
            streak_reset=streak_reset,
        )
