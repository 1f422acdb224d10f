from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class ActivityDef:
    id: str
    label: str
    points: int
    icon: str = ""


@dataclass(frozen=True)
class LevelDef:
    level: int
    name: str
    points: int  # cumulative threshold
    badge: str
    description: str = ""


@dataclass(frozen=True)
class StreakBonusDef:
    days: int
    points: int
    label: str = ""


@dataclass(frozen=True)
class QuizQuestionDef:
    id: str
    question: str
    options: tuple[str, ...]
    correct_index: int


@dataclass(frozen=True)
class QuizDef:
    day: int  # 1-based challenge day
    video_title: str
    video_url: str
    questions: tuple[QuizQuestionDef, ...]


ACTIVITIES: dict[str, ActivityDef] = {
    "ngaji": ActivityDef(
        id="ngaji",
        label="Ngaji (2 halaman mushaf Madinah)",
        points=30,
        icon="📖",
    ),
    "sedekah": ActivityDef(
        id="sedekah",
        label="Sedekah (berapapun)",
        points=15,
        icon="💝",
    ),
    "dzikir_pagi_petang": ActivityDef(
        id="dzikir_pagi_petang",
        label="Dzikir pagi/petang",
        points=10,
        icon="🤲",
    ),
    "tidak_tidur": ActivityDef(
        id="tidak_tidur",
        label="Tidak tidur hingga matahari terbit",
        points=10,
        icon="🌅",
    ),
    "dzikir_tidur": ActivityDef(
        id="dzikir_tidur",
        label="Dzikir sebelum tidur",
        points=5,
        icon="🌙",
    ),
    "kebaikan": ActivityDef(
        id="kebaikan",
        label="Berbuat kebaikan",
        points=10,
        icon="✨",
    ),
}

QUIZ_POINTS: dict[str, int] = {
    "correct": 10,
    "wrong": 5,
    "unanswered": 0,
}

MAX_DAILY_POINTS = 100

# Each bonus is granted at most once per streak cycle.
STREAK_BONUSES: tuple[StreakBonusDef, ...] = (
    StreakBonusDef(days=3, points=50, label="3 hari berturut-turut"),
    StreakBonusDef(days=7, points=150, label="7 hari berturut-turut"),
    StreakBonusDef(days=14, points=400, label="14 hari berturut-turut"),
    StreakBonusDef(days=21, points=700, label="21 hari berturut-turut"),
)

# Ascending by threshold.
LEVELS: tuple[LevelDef, ...] = (
    LevelDef(level=1, name="Mulai Melangkah", points=300, badge="🌱", description="Starter"),
    LevelDef(level=2, name="Terjaga", points=700, badge="🕊️", description="Habit Builder"),
    LevelDef(level=3, name="Konsisten", points=1500, badge="🔥", description="Consistency Master"),
    LevelDef(level=4, name="Istiqomah", points=2500, badge="⭐", description="Istiqomah Lillah"),
    LevelDef(level=5, name="Perfect", points=3500, badge="👑", description="Perfect Achiever"),
)

CHALLENGE_START = date(2026, 2, 18)
CHALLENGE_END = date(2026, 3, 18)

QUIZZES: tuple[QuizDef, ...] = (
    QuizDef(
        day=1,
        video_title="Kajian Ramadhan - Episode 1",
        video_url="https://youtube.com/playlist?list=PL0gi92PTPH63uLZqFJl3gjp1WOQP1kYRK",
        questions=(
            QuizQuestionDef(
                id="q1",
                question="Apa hikmah utama berpuasa di bulan Ramadhan?",
                options=(
                    "Untuk menahan lapar dan haus",
                    "Untuk meningkatkan ketakwaan kepada Allah",
                    "Untuk menurunkan berat badan",
                    "Untuk menghemat makanan",
                ),
                correct_index=1,
            ),
            QuizQuestionDef(
                id="q2",
                question="Kapan waktu yang mustajab untuk berdoa saat puasa?",
                options=(
                    "Saat sahur",
                    "Saat berbuka",
                    "Sebelum berbuka",
                    "Semua waktu di atas",
                ),
                correct_index=3,
            ),
        ),
    ),
)


def bonus_for_days(days: int) -> StreakBonusDef | None:
    for bonus in STREAK_BONUSES:
        if bonus.days == int(days):
            return bonus
    return None


def quiz_for_day(day: date, *, start: date = CHALLENGE_START) -> QuizDef:
    """
    Quiz shown for a calendar date.

    Quizzes rotate by challenge day; dates before the start (or a catalog with a
    single quiz) fall back to the first entry.
    """
    index = max(0, (day - start).days)
    by_day = {q.day: q for q in QUIZZES}
    return by_day.get(index + 1, QUIZZES[index % len(QUIZZES)])
