from __future__ import annotations

import argparse
import random
from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import delete

from mutabaah_api.core.config import Settings
from mutabaah_api.db import Base, SessionLocal, engine
from mutabaah_api.models import (
    Badge,
    DailyCheckin,
    Event,
    QuizAnswer,
    StreakRecord,
    User,
)
from mutabaah_api.progression import WritePolicy, submit_checkin, submit_quiz
from mutabaah_api.store import SqlScoreStore
from mutabaah_core.catalog import ACTIVITIES, quiz_for_day
from mutabaah_core.models import CheckinSpec, QuizAnswerItem
from mutabaah_core.pseudonym import generate_pseudonym


DEMO_USER_ID = "user_demo"

# (user_id, username, name, community_code, daily check-in probability)
SEED_USERS = [
    (DEMO_USER_ID, "demo", "Demo Peserta", "MASJID01", 1.0),
    ("user_aisyah", "aisyah", "Aisyah", "MASJID01", 0.95),
    ("user_fatimah", "fatimah", "Fatimah", "MASJID01", 0.8),
    ("user_umar", "umar", "Umar", "KAMPUS02", 0.9),
    ("user_ali", "ali", "Ali", "KAMPUS02", 0.6),
    ("user_khadijah", "khadijah", "Khadijah", None, 0.75),
]


def _ensure_user(
    session,
    *,
    user_id: str,
    username: str,
    name: str,
    community_code: str | None,
    rng: random.Random,
) -> None:
    user = session.get(User, user_id)
    if not user:
        session.add(
            User(
                id=user_id,
                username=username,
                name=name,
                pseudonym=generate_pseudonym(rng),
                community_code=community_code,
                created_at=datetime.now(UTC),
            )
        )
    else:
        user.name = name
        user.community_code = community_code
    session.flush()


def _seed_days(
    session,
    *,
    user_id: str,
    days: list[date],
    probability: float,
    settings: Settings,
    rng: random.Random,
) -> int:
    store = SqlScoreStore(session)
    activity_ids = list(ACTIVITIES)
    submitted = 0
    for day in days:
        if rng.random() > probability:
            continue
        # Replay each day as if submitted on that day so the edit window holds.
        policy = WritePolicy.from_settings(today=day, settings=settings)
        now = datetime.combine(day, time(20, 0), tzinfo=UTC)
        picked = rng.sample(activity_ids, k=rng.randint(1, len(activity_ids)))
        submit_checkin(
            store,
            user_id=user_id,
            day=day,
            spec=CheckinSpec(activities=picked),
            policy=policy,
            now=now,
        )
        quiz = quiz_for_day(day, start=settings.challenge_start)
        submit_quiz(
            store,
            user_id=user_id,
            day=day,
            answers=[
                QuizAnswerItem(
                    question_id=q.id,
                    selected_index=rng.choice([None, q.correct_index, 0]),
                )
                for q in quiz.questions
            ],
            policy=policy,
            now=now,
        )
        submitted += 1
    return submitted


def main() -> None:
    settings = Settings()

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--reset", action="store_true", help="Delete all score data before seeding."
    )
    parser.add_argument(
        "--days",
        type=int,
        default=10,
        help="Number of challenge days to simulate from the challenge start.",
    )
    parser.add_argument("--seed", type=int, default=1447)
    args = parser.parse_args()

    rng = random.Random(int(args.seed))
    Base.metadata.create_all(engine)

    span = max(1, min(int(args.days), (settings.challenge_end - settings.challenge_start).days + 1))
    days = [settings.challenge_start + timedelta(days=i) for i in range(span)]

    with SessionLocal() as session:
        if args.reset:
            session.execute(delete(Event))
            session.execute(delete(Badge))
            session.execute(delete(StreakRecord))
            session.execute(delete(QuizAnswer))
            session.execute(delete(DailyCheckin))

        for user_id, username, name, community, probability in SEED_USERS:
            _ensure_user(
                session,
                user_id=user_id,
                username=username,
                name=name,
                community_code=community,
                rng=rng,
            )
            n = _seed_days(
                session,
                user_id=user_id,
                days=days,
                probability=probability,
                settings=settings,
                rng=rng,
            )
            print(f"seeded {username}: {n}/{len(days)} days")

        session.commit()


if __name__ == "__main__":
    main()
