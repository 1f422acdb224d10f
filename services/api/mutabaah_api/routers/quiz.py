from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from mutabaah_api.deps import CurrentUserId, DBSession, Now, Today
from mutabaah_api.eventlog import log_event
from mutabaah_api.progression import WritePolicy, submit_quiz
from mutabaah_api.routers.progress import BadgeOut, badge_out
from mutabaah_api.store import SqlScoreStore
from mutabaah_core.catalog import QUIZ_POINTS, quiz_for_day
from mutabaah_core.models import QuizAnswerItem

router = APIRouter(prefix="/api/quiz", tags=["quiz"])


class QuizQuestionOut(BaseModel):
    id: str
    question: str
    options: list[str]


class QuizOut(BaseModel):
    day: date
    video_title: str
    video_url: str
    questions: list[QuizQuestionOut]
    points: dict[str, int]
    answers: list[QuizAnswerItem] | None = None
    quiz_score: int | None = None


class QuizSubmitIn(BaseModel):
    answers: list[QuizAnswerItem] = Field(default_factory=list, max_length=50)


class QuizSubmitOut(BaseModel):
    ok: bool = True
    day: date
    answers: list[QuizAnswerItem]
    quiz_score: int
    total_score: int
    new_badges: list[BadgeOut] = Field(default_factory=list)


@router.get("/{day}", response_model=QuizOut)
def get_quiz(
    day: date,
    user_id: str = CurrentUserId,
    today: date = Today,
    db: Session = DBSession,
) -> QuizOut:
    policy = WritePolicy.from_settings(today=today)
    quiz = quiz_for_day(day, start=policy.challenge_start)
    stored = SqlScoreStore(db).get_quiz_answer_for_date(user_id, day)
    return QuizOut(
        day=day,
        video_title=quiz.video_title,
        video_url=quiz.video_url,
        questions=[
            QuizQuestionOut(id=q.id, question=q.question, options=list(q.options))
            for q in quiz.questions
        ],
        points=dict(QUIZ_POINTS),
        answers=list(stored.answers) if stored else None,
        quiz_score=stored.quiz_score if stored else None,
    )


@router.put("/{day}", response_model=QuizSubmitOut)
def put_quiz(
    day: date,
    payload: QuizSubmitIn,
    request: Request,
    user_id: str = CurrentUserId,
    today: date = Today,
    now: datetime = Now,
    db: Session = DBSession,
) -> QuizSubmitOut:
    store = SqlScoreStore(db, now=now)
    outcome = submit_quiz(
        store,
        user_id=user_id,
        day=day,
        answers=payload.answers,
        policy=WritePolicy.from_settings(today=today),
        now=now,
    )
    log_event(
        db,
        type="quiz_submitted",
        user_id=user_id,
        request=request,
        payload={"day": day.isoformat(), "quiz_score": outcome.answer.quiz_score},
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

    return QuizSubmitOut(
        day=day,
        answers=list(outcome.answer.answers),
        quiz_score=outcome.answer.quiz_score,
        total_score=outcome.total_score,
        new_badges=[badge_out(b) for b in outcome.new_badges],
    )
