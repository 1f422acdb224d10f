from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from mutabaah_core.catalog import LEVELS, LevelDef


@dataclass(frozen=True)
class LevelProgress:
    total_points: int
    current: LevelDef | None
    next: LevelDef | None
    points_to_next: int | None
    percent: float  # 0..100 toward next; 100 at max level


def current_level(
    total_points: int, *, levels: Iterable[LevelDef] = LEVELS
) -> LevelDef | None:
    out: LevelDef | None = None
    for level in sorted(levels, key=lambda lv: int(lv.points)):
        if int(total_points) >= int(level.points):
            out = level
    return out


def next_level(
    total_points: int, *, levels: Iterable[LevelDef] = LEVELS
) -> LevelDef | None:
    for level in sorted(levels, key=lambda lv: int(lv.points)):
        if int(total_points) < int(level.points):
            return level
    return None


def level_progress(
    total_points: int, *, levels: Iterable[LevelDef] = LEVELS
) -> LevelProgress:
    levels = tuple(levels)
    cur = current_level(total_points, levels=levels)
    nxt = next_level(total_points, levels=levels)
    if nxt is None:
        return LevelProgress(
            total_points=int(total_points),
            current=cur,
            next=None,
            points_to_next=None,
            percent=100.0,
        )
    floor = int(cur.points) if cur is not None else 0
    span = max(1, int(nxt.points) - floor)
    pct = (int(total_points) - floor) / span * 100.0
    return LevelProgress(
        total_points=int(total_points),
        current=cur,
        next=nxt,
        points_to_next=int(nxt.points) - int(total_points),
        percent=round(max(0.0, min(100.0, pct)), 1),
    )


def levels_to_unlock(
    total_points: int,
    existing_badge_names: Iterable[str],
    *,
    levels: Iterable[LevelDef] = LEVELS,
) -> list[LevelDef]:
    """Levels whose threshold is met and whose badge the user does not hold yet."""
    have = {str(n) for n in existing_badge_names or ()}
    return [
        level
        for level in sorted(levels, key=lambda lv: int(lv.points))
        if int(total_points) >= int(level.points) and level.name not in have
    ]
