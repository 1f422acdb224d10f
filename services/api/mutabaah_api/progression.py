from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime

from mutabaah_api.core.config import Settings
from mutabaah_api.store import (
    BadgeRecord,
    CheckinRecord,
    PurgeResult,
    QuizRecord,
    ScoreStore,
)
from mutabaah_core.catalog import ACTIVITIES, QuizDef, quiz_for_day
from mutabaah_core.levels import LevelProgress, level_progress, levels_to_unlock
from mutabaah_core.models import CheckinSpec, QuizAnswerItem
from mutabaah_core.scoring import activity_score, quiz_score, total_score
from mutabaah_core.streaks import (
    ReconcileResult,
    StreakState,
    count_trailing_run,
    reconcile,
)
from mutabaah_core.windows import (
    challenge_active,
    editable_dates,
    is_editable,
    within_challenge,
)


class ProgressionError(Exception):
    status_code = 400

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


class EmptyCheckinError(ProgressionError):
    status_code = 422

    def __init__(self) -> None:
        super().__init__("empty_checkin", "at least one activity must be selected")


class EditWindowError(ProgressionError):
    status_code = 403

    def __init__(self, day: date, today: date) -> None:
        super().__init__("edit_window_closed", f"{day} is not editable on {today}")


class ChallengeClosedError(ProgressionError):
    status_code = 403

    def __init__(self, day: date) -> None:
        super().__init__("challenge_closed", f"{day} is outside the challenge period")


class InvalidAnswerError(ProgressionError):
    status_code = 422

    def __init__(self, question_id: str) -> None:
        super().__init__("invalid_answer", f"selected_index out of range for {question_id}")


@dataclass(frozen=True)
class WritePolicy:
    today: date
    challenge_start: date
    challenge_end: date
    edit_window_days: int = 2
    enforce_challenge_window: bool = True

    @classmethod
    def from_settings(cls, *, today: date, settings: Settings | None = None) -> "WritePolicy":
        settings = settings or Settings()
        return cls(
            today=today,
            challenge_start=settings.challenge_start,
            challenge_end=settings.challenge_end,
            edit_window_days=int(settings.edit_window_days),
            enforce_challenge_window=bool(settings.enforce_challenge_window),
        )

    def editable_dates(self) -> list[date]:
        return editable_dates(
            today=self.today,
            window_days=self.edit_window_days,
            start=self.challenge_start,
            end=self.challenge_end,
        )

    def challenge_active(self) -> bool:
        return challenge_active(
            today=self.today, start=self.challenge_start, end=self.challenge_end
        )

    def ensure_writable(self, day: date) -> None:
        if not is_editable(day, today=self.today, window_days=self.edit_window_days):
            raise EditWindowError(day, self.today)
        if self.enforce_challenge_window:
            if not self.challenge_active() or not within_challenge(
                day, start=self.challenge_start, end=self.challenge_end
            ):
                raise ChallengeClosedError(day)


@dataclass(frozen=True)
class CheckinOutcome:
    checkin: CheckinRecord
    streak: StreakState
    bonus_earned: int
    newly_earned_bonuses: tuple[int, ...]
    bonuses_reset: bool
    total_score: int
    new_badges: list[BadgeRecord]


@dataclass(frozen=True)
class QuizOutcome:
    answer: QuizRecord
    total_score: int
    new_badges: list[BadgeRecord]


@dataclass(frozen=True)
class ProgressSummary:
    total_score: int
    level: LevelProgress
    current_streak: int
    earned_bonuses: frozenset[int]
    badges: list[BadgeRecord]
    editable_dates: list[date]
    checked_dates: list[date]
    challenge_active: bool
    today: date
    checked_in_today: bool
    quiz_done_today: bool


def compute_total_score(store: ScoreStore, user_id: str) -> int:
    """Never cached: edits to past check-ins change historical daily scores."""
    return total_score(
        daily_scores=[c.daily_score for c in store.get_checkins_for_user(user_id)],
        quiz_scores=[q.quiz_score for q in store.get_quiz_answers_for_user(user_id)],
        earned_bonuses=store.get_streak_record(user_id).earned_bonuses,
    )


def reconcile_user_streak(store: ScoreStore, user_id: str, *, today: date) -> ReconcileResult:
    dates = {c.day for c in store.get_checkins_for_user(user_id)}
    prior = store.get_streak_record(user_id)
    result = reconcile(dates, prior, today=today)
    store.upsert_streak_record(user_id, result.state)
    return result


def unlock_new_badges(
    store: ScoreStore,
    user_id: str,
    *,
    total_points: int,
    now: datetime | None = None,
    existing: list[BadgeRecord] | None = None,
) -> list[BadgeRecord]:
    now_dt = now or datetime.now(UTC)
    have = existing if existing is not None else store.get_badges(user_id)
    created = [
        BadgeRecord(user_id=str(user_id), level_name=level.name, unlocked_at=now_dt)
        for level in levels_to_unlock(total_points, [b.level_name for b in have])
    ]
    store.insert_badges(created)
    return created


def submit_checkin(
    store: ScoreStore,
    *,
    user_id: str,
    day: date,
    spec: CheckinSpec,
    policy: WritePolicy,
    now: datetime | None = None,
) -> CheckinOutcome:
    # Unknown ids ride along at 0 points but cannot make up a check-in alone.
    if not any(a in ACTIVITIES for a in spec.activities):
        raise EmptyCheckinError()
    policy.ensure_writable(day)

    checkin = CheckinRecord(
        user_id=str(user_id),
        day=day,
        activities=tuple(spec.activities),
        daily_score=activity_score(spec.activities),
        notes=dict(spec.notes),
    )
    store.upsert_checkin(checkin)

    streak = reconcile_user_streak(store, user_id, today=policy.today)
    total = compute_total_score(store, user_id)
    new_badges = unlock_new_badges(store, user_id, total_points=total, now=now)

    return CheckinOutcome(
        checkin=store.get_checkin_for_date(user_id, day) or checkin,
        streak=streak.state,
        bonus_earned=streak.bonus_earned,
        newly_earned_bonuses=streak.newly_earned,
        bonuses_reset=streak.bonuses_reset,
        total_score=total,
        new_badges=new_badges,
    )


def normalize_answers(
    quiz: QuizDef, answers: list[QuizAnswerItem]
) -> tuple[QuizAnswerItem, ...]:
    # One entry per quiz question in quiz order; unknown question ids are dropped.
    given = {a.question_id: a.selected_index for a in answers}
    out: list[QuizAnswerItem] = []
    for question in quiz.questions:
        selected = given.get(question.id)
        if selected is not None and int(selected) >= len(question.options):
            raise InvalidAnswerError(question.id)
        out.append(QuizAnswerItem(question_id=question.id, selected_index=selected))
    return tuple(out)


def submit_quiz(
    store: ScoreStore,
    *,
    user_id: str,
    day: date,
    answers: list[QuizAnswerItem],
    policy: WritePolicy,
    now: datetime | None = None,
) -> QuizOutcome:
    policy.ensure_writable(day)
    quiz = quiz_for_day(day, start=policy.challenge_start)
    normalized = normalize_answers(quiz, answers)
    record = QuizRecord(
        user_id=str(user_id),
        day=day,
        answers=normalized,
        quiz_score=quiz_score(
            quiz, {a.question_id: a.selected_index for a in normalized}
        ),
    )
    store.upsert_quiz_answer(record)

    total = compute_total_score(store, user_id)
    new_badges = unlock_new_badges(store, user_id, total_points=total, now=now)
    return QuizOutcome(answer=record, total_score=total, new_badges=new_badges)


def live_streak(store: ScoreStore, user_id: str, *, today: date) -> int:
    return count_trailing_run(
        (c.day for c in store.get_checkins_for_user(user_id)), today=today
    )


def progress_summary(
    store: ScoreStore, user_id: str, *, policy: WritePolicy
) -> ProgressSummary:
    checkins = store.get_checkins_for_user(user_id)
    checked = sorted({c.day for c in checkins})
    streak = store.get_streak_record(user_id)
    total = compute_total_score(store, user_id)
    return ProgressSummary(
        total_score=total,
        level=level_progress(total),
        current_streak=count_trailing_run(checked, today=policy.today),
        earned_bonuses=streak.earned_bonuses,
        badges=store.get_badges(user_id),
        editable_dates=policy.editable_dates(),
        checked_dates=checked,
        challenge_active=policy.challenge_active(),
        today=policy.today,
        checked_in_today=policy.today in set(checked),
        quiz_done_today=store.get_quiz_answer_for_date(user_id, policy.today) is not None,
    )


def purge_pre_challenge(store: ScoreStore, user_id: str, *, cutoff: date) -> PurgeResult:
    return store.purge_pre_challenge_data(user_id, cutoff)
