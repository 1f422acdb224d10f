from __future__ import annotations

from datetime import timedelta


def test_checkin_roundtrip_and_streak_bonus(api_client, register, clock) -> None:
    headers, _ = register()
    start = clock.today

    for i in range(3):
        day = start + timedelta(days=i)
        clock.set_day(day)
        resp = api_client.put(
            f"/api/checkins/{day.isoformat()}",
            headers=headers,
            json={"activities": ["ngaji", "sedekah"], "notes": {"ngaji": "Al-Baqarah 1-5"}},
        )
        assert resp.status_code == 200, resp.text
        out = resp.json()
        assert out["checkin"]["daily_score"] == 45
        assert out["current_streak"] == i + 1

    assert out["bonus_earned"] == 50
    assert out["earned_bonuses"] == [3]
    assert out["total_score"] == 185
    assert out["checkin"]["notes"] == {"ngaji": "Al-Baqarah 1-5"}
    assert resp.headers.get("X-Request-Id")

    listing = api_client.get("/api/checkins", headers=headers)
    assert listing.status_code == 200
    assert len(listing.json()) == 3

    one = api_client.get(f"/api/checkins/{clock.today.isoformat()}", headers=headers)
    assert one.status_code == 200
    assert one.json()["activities"] == ["ngaji", "sedekah"]
    assert one.json()["editable"] is True


def test_empty_checkin_rejected(api_client, register, clock) -> None:
    headers, _ = register()
    resp = api_client.put(
        f"/api/checkins/{clock.today.isoformat()}",
        headers=headers,
        json={"activities": []},
    )
    assert resp.status_code == 422
    assert resp.json()["detail"] == "empty_checkin"


def test_old_date_outside_edit_window(api_client, register, clock) -> None:
    headers, _ = register()
    old = clock.today - timedelta(days=3)
    resp = api_client.put(
        f"/api/checkins/{old.isoformat()}",
        headers=headers,
        json={"activities": ["ngaji"]},
    )
    assert resp.status_code == 403
    assert resp.json()["detail"] == "edit_window_closed"

    missing = api_client.get(f"/api/checkins/{old.isoformat()}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["detail"] == "checkin_not_found"


def test_backfill_within_window(api_client, register, clock) -> None:
    headers, _ = register()
    today = clock.today
    for offset in (2, 0, 1):
        day = today - timedelta(days=offset)
        resp = api_client.put(
            f"/api/checkins/{day.isoformat()}",
            headers=headers,
            json={"activities": ["kebaikan"]},
        )
        assert resp.status_code == 200, resp.text
    assert resp.json()["current_streak"] == 3
    assert resp.json()["bonus_earned"] == 50


def test_checkin_requires_auth(api_client, clock) -> None:
    resp = api_client.put(
        f"/api/checkins/{clock.today.isoformat()}", json={"activities": ["ngaji"]}
    )
    assert resp.status_code == 401


def test_malformed_date_is_validation_error(api_client, register) -> None:
    headers, _ = register()
    resp = api_client.put("/api/checkins/not-a-date", headers=headers, json={"activities": ["ngaji"]})
    assert resp.status_code == 422


def test_progress_summary_endpoint(api_client, register, clock) -> None:
    headers, _ = register()
    today = clock.today
    api_client.put(
        f"/api/checkins/{today.isoformat()}",
        headers=headers,
        json={"activities": ["ngaji", "sedekah", "tidak_tidur"]},
    )
    resp = api_client.get("/api/progress", headers=headers)
    assert resp.status_code == 200
    out = resp.json()
    assert out["today"] == today.isoformat()
    assert out["total_score"] == 55
    assert out["current_level"] is None
    assert out["next_level"]["name"] == "Mulai Melangkah"
    assert out["points_to_next"] == 245
    assert out["current_streak"] == 1
    assert out["checked_in_today"] is True
    assert out["challenge_active"] is True
    assert len(out["editable_dates"]) == 3

    # A day later without a check-in the displayed streak drops to zero.
    clock.advance(1)
    later = api_client.get("/api/progress", headers=headers).json()
    assert later["current_streak"] == 0
    assert later["checked_in_today"] is False


def test_checkin_events_are_recorded(api_client, register, clock, db_session) -> None:
    from mutabaah_api.eventlog import events_for_user

    headers, user_id = register()
    start = clock.today
    for i in range(3):
        clock.set_day(start + timedelta(days=i))
        api_client.put(
            f"/api/checkins/{clock.today.isoformat()}",
            headers={**headers, "X-Request-Id": f"req-test-{i}"},
            json={"activities": ["ngaji"]},
        )

    submitted = events_for_user(db_session, user_id=user_id, type="checkin_submitted")
    assert [e["payload"]["daily_score"] for e in submitted] == [30, 30, 30]
    assert submitted[-1]["payload"]["request_id"] == "req-test-2"

    bonus = events_for_user(db_session, user_id=user_id, type="streak_bonus_earned")
    assert len(bonus) == 1
    assert bonus[0]["payload"]["thresholds"] == [3]
    assert bonus[0]["payload"]["points"] == 50


def test_only_unknown_activities_is_an_empty_checkin(api_client, register, clock) -> None:
    headers, _ = register()
    start = clock.today
    for i in range(3):
        clock.set_day(start + timedelta(days=i))
        resp = api_client.put(
            f"/api/checkins/{clock.today.isoformat()}",
            headers=headers,
            json={"activities": ["not_a_real_activity"]},
        )
        assert resp.status_code == 422
        assert resp.json()["detail"] == "empty_checkin"

    progress = api_client.get("/api/progress", headers=headers).json()
    assert progress["current_streak"] == 0
    assert progress["earned_bonuses"] == []
    assert progress["total_score"] == 0

    # Mixed with a real activity, the unknown id is kept but scores nothing.
    mixed = api_client.put(
        f"/api/checkins/{clock.today.isoformat()}",
        headers=headers,
        json={"activities": ["not_a_real_activity", "ngaji"]},
    )
    assert mixed.status_code == 200
    assert mixed.json()["checkin"]["daily_score"] == 30


def test_failed_write_leaves_prior_state(api_client, register, clock, db_session, monkeypatch) -> None:
    from fastapi.testclient import TestClient
    from sqlalchemy.exc import SQLAlchemyError

    from mutabaah_api.main import app
    from mutabaah_api.store import SqlScoreStore

    headers, user_id = register()
    today = clock.today
    for day in (today - timedelta(days=1), today):
        resp = api_client.put(
            f"/api/checkins/{day.isoformat()}", headers=headers, json={"activities": ["ngaji"]}
        )
        assert resp.status_code == 200

    def _fail(self, user_id, state):
        raise SQLAlchemyError("disk I/O error")

    monkeypatch.setattr(SqlScoreStore, "upsert_streak_record", _fail)
    client = TestClient(app, raise_server_exceptions=False)
    resp = client.put(
        f"/api/checkins/{today.isoformat()}",
        headers=headers,
        json={"activities": ["sedekah", "kebaikan"]},
    )
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Internal Server Error"}
    assert resp.headers.get("X-Request-Id")

    store = SqlScoreStore(db_session)
    kept = store.get_checkin_for_date(user_id, today)
    assert kept is not None
    assert kept.activities == ("ngaji",)
    assert kept.daily_score == 30
    streak = store.get_streak_record(user_id)
    assert streak.current_streak == 2
    assert streak.last_checkin_date == today
