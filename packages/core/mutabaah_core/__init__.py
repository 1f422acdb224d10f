__all__ = [
    "ACTIVITIES",
    "LEVELS",
    "STREAK_BONUSES",
    "CheckinSpec",
    "QuizAnswerItem",
    "ReconcileResult",
    "StreakState",
    "activity_score",
    "current_level",
    "is_editable",
    "levels_to_unlock",
    "next_level",
    "quiz_score",
    "reconcile",
    "total_score",
]

from mutabaah_core.catalog import ACTIVITIES, LEVELS, STREAK_BONUSES
from mutabaah_core.levels import current_level, levels_to_unlock, next_level
from mutabaah_core.models import CheckinSpec, QuizAnswerItem
from mutabaah_core.scoring import activity_score, quiz_score, total_score
from mutabaah_core.streaks import ReconcileResult, StreakState, reconcile
from mutabaah_core.windows import is_editable
