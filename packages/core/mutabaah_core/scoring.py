from __future__ import annotations

from collections.abc import Iterable, Mapping

from mutabaah_core.catalog import (
    ACTIVITIES,
    QUIZ_POINTS,
    STREAK_BONUSES,
    ActivityDef,
    QuizDef,
    StreakBonusDef,
)


def activity_score(
    activity_ids: Iterable[str],
    *,
    activities: Mapping[str, ActivityDef] = ACTIVITIES,
) -> int:
    # Unknown ids score 0 (stale client config); duplicates count once.
    total = 0
    for activity_id in set(activity_ids or ()):
        activity = activities.get(str(activity_id))
        if activity is not None:
            total += int(activity.points)
    return total


def quiz_score(
    quiz: QuizDef,
    answers: Mapping[str, int | None],
    *,
    points: Mapping[str, int] = QUIZ_POINTS,
) -> int:
    total = 0
    for question in quiz.questions:
        selected = answers.get(question.id)
        if selected is None:
            total += int(points["unanswered"])
        elif int(selected) == int(question.correct_index):
            total += int(points["correct"])
        else:
            total += int(points["wrong"])
    return total


def bonus_points(
    earned_bonuses: Iterable[int],
    *,
    bonuses: Iterable[StreakBonusDef] = STREAK_BONUSES,
) -> int:
    by_days = {int(b.days): int(b.points) for b in bonuses}
    return sum(by_days.get(int(days), 0) for days in set(earned_bonuses or ()))


def total_score(
    *,
    daily_scores: Iterable[int],
    quiz_scores: Iterable[int],
    earned_bonuses: Iterable[int],
    bonuses: Iterable[StreakBonusDef] = STREAK_BONUSES,
) -> int:
    """
    Lifetime total: check-in scores + quiz scores + earned streak bonuses.

    The bonus term resolves thresholds against the bonus table rather than
    trusting any one-off "bonus earned" figure reported at reconcile time.
    """
    return (
        sum(int(s or 0) for s in daily_scores)
        + sum(int(s or 0) for s in quiz_scores)
        + bonus_points(earned_bonuses, bonuses=bonuses)
    )
