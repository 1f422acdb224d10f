from __future__ import annotations

from mutabaah_core.levels import current_level, level_progress, levels_to_unlock, next_level


def test_no_level_below_first_threshold() -> None:
    assert current_level(0) is None
    assert current_level(299) is None
    assert next_level(299).name == "Mulai Melangkah"


def test_current_level_is_highest_met_threshold() -> None:
    assert current_level(300).name == "Mulai Melangkah"
    assert current_level(699).name == "Mulai Melangkah"
    assert current_level(700).name == "Terjaga"
    assert current_level(10_000).name == "Perfect"


def test_next_level_absent_at_max() -> None:
    assert next_level(3500) is None
    assert next_level(3499).name == "Perfect"


def test_level_progress_percent_between_levels() -> None:
    p = level_progress(500)
    assert p.current.name == "Mulai Melangkah"
    assert p.next.name == "Terjaga"
    assert p.points_to_next == 200
    assert p.percent == 50.0


def test_level_progress_before_first_and_at_max() -> None:
    start = level_progress(150)
    assert start.current is None
    assert start.percent == 50.0

    top = level_progress(4000)
    assert top.next is None
    assert top.points_to_next is None
    assert top.percent == 100.0


def test_levels_to_unlock_is_idempotent_with_refreshed_badges() -> None:
    first = levels_to_unlock(1500, [])
    assert [lv.name for lv in first] == ["Mulai Melangkah", "Terjaga", "Konsisten"]

    second = levels_to_unlock(1500, [lv.name for lv in first])
    assert second == []


def test_levels_to_unlock_only_missing_ones() -> None:
    out = levels_to_unlock(800, ["Mulai Melangkah"])
    assert [lv.name for lv in out] == ["Terjaga"]
