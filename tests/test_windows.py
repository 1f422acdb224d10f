from __future__ import annotations

import random
import re
from datetime import UTC, date, datetime, timedelta

from mutabaah_core.catalog import CHALLENGE_END, CHALLENGE_START, QUIZZES, bonus_for_days, quiz_for_day
from mutabaah_core.pseudonym import anonymous_label, generate_pseudonym
from mutabaah_core.windows import (
    challenge_active,
    challenge_day,
    editable_dates,
    is_editable,
    local_today,
)


def test_edit_window_is_two_days_inclusive() -> None:
    today = date(2026, 2, 25)
    assert is_editable(today, today=today)
    assert is_editable(today - timedelta(days=2), today=today)
    assert not is_editable(today - timedelta(days=3), today=today)
    assert not is_editable(today + timedelta(days=1), today=today)


def test_editable_dates_clipped_to_challenge() -> None:
    assert editable_dates(today=CHALLENGE_START) == [CHALLENGE_START]
    mid = date(2026, 2, 25)
    assert editable_dates(today=mid) == [mid - timedelta(days=2), mid - timedelta(days=1), mid]
    assert editable_dates(today=CHALLENGE_END + timedelta(days=1)) == [
        CHALLENGE_END - timedelta(days=1),
        CHALLENGE_END,
    ]


def test_challenge_active_bounds() -> None:
    assert challenge_active(today=CHALLENGE_START)
    assert challenge_active(today=CHALLENGE_END)
    assert not challenge_active(today=CHALLENGE_START - timedelta(days=1))
    assert not challenge_active(today=CHALLENGE_END + timedelta(days=1))
    assert challenge_day(CHALLENGE_START) == 1


def test_local_today_uses_participant_zone() -> None:
    late_utc = datetime(2026, 2, 24, 18, 0, tzinfo=UTC)
    assert local_today(now_utc=late_utc, tz="Asia/Jakarta") == date(2026, 2, 25)
    assert local_today(now_utc=late_utc, tz="UTC") == date(2026, 2, 24)


def test_quiz_for_day_falls_back_to_first_quiz() -> None:
    assert quiz_for_day(CHALLENGE_START) is QUIZZES[0]
    assert quiz_for_day(CHALLENGE_START - timedelta(days=5)) is QUIZZES[0]
    assert bonus_for_days(7).points == 150
    assert bonus_for_days(4) is None


def test_pseudonym_shape_and_anonymous_label_stable() -> None:
    name = generate_pseudonym(random.Random(7))
    assert re.fullmatch(r"\w+ \w+ \d{3}", name)
    assert generate_pseudonym(random.Random(7)) == name
    assert anonymous_label("user_a") == anonymous_label("user_a")
    assert anonymous_label("user_a").startswith("Hamba Allah #")
