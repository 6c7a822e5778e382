# backend/tests/test_ledger.py

from datetime import datetime, timedelta, timezone

import pytest

from conftest import NOW, make_session, make_user
from studytogether.core.exceptions import (
    InternalComputationError,
    NotFoundError,
    ValidationError,
)
from studytogether.services import ledger

UTC = timezone.utc
TODAY = datetime(2026, 10, 16, tzinfo=UTC)
YESTERDAY = TODAY - timedelta(days=1)


def record(user, start, minutes=30, now=NOW):
    session = {
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "duration": minutes * 60 * 1000,
    }
    return ledger.record_session(user, session, now, tz=UTC)


def test_first_session_on_fresh_user(user):
    updated, new = record(user, NOW - timedelta(minutes=30))

    assert updated.total_study_time == 1_800_000
    assert updated.weekly_study_time == 1_800_000
    assert updated.monthly_study_time == 1_800_000
    assert updated.current_streak == 1
    assert updated.last_study_date == TODAY
    assert new == ["first_session"]
    assert updated.has_achievement("first_session")


def test_record_does_not_mutate_input(user):
    updated, _ = record(user, NOW - timedelta(minutes=30))

    assert user.study_sessions == []
    assert user.total_study_time == 0
    assert user.achievements == []
    assert len(updated.study_sessions) == 1


def test_fifth_session_unlocks_five_sessions_only():
    prior = [make_session(NOW - timedelta(days=d, hours=2)) for d in range(1, 5)]
    user = make_user(study_sessions=prior)

    _, new = record(user, NOW - timedelta(minutes=30))

    assert "five_sessions" in new
    assert "first_session" not in new


def test_same_content_twice_appends_twice(user):
    start = NOW - timedelta(hours=1)
    once, first = record(user, start)
    twice, second = record(once, start)

    assert len(twice.study_sessions) == 2
    assert twice.total_study_time == 2 * 1_800_000
    assert first == ["first_session"]
    assert second == []


def test_streak_continues_from_yesterday_once_per_day():
    user = make_user(current_streak=1, last_study_date=YESTERDAY)

    after_first, _ = record(user, NOW - timedelta(hours=3))
    after_second, _ = record(after_first, NOW - timedelta(hours=1))

    assert after_first.current_streak == 2
    assert after_second.current_streak == 2
    assert after_second.last_study_date == TODAY


def test_streak_resets_after_gap():
    user = make_user(current_streak=2, last_study_date=TODAY - timedelta(days=3))

    updated, _ = record(user, NOW - timedelta(minutes=30))

    assert updated.current_streak == 1
    assert updated.last_study_date == TODAY


def test_backdated_session_does_not_touch_existing_streak():
    user = make_user(current_streak=4, last_study_date=YESTERDAY)

    updated, _ = record(user, NOW - timedelta(days=2))

    assert updated.current_streak == 4
    assert updated.last_study_date == YESTERDAY


def test_first_ever_session_starts_streak_even_if_backdated(user):
    start = datetime(2026, 10, 5, 9, 0, tzinfo=UTC)

    updated, _ = record(user, start)

    assert updated.current_streak == 1
    assert updated.last_study_date == datetime(2026, 10, 5, tzinfo=UTC)


def test_windows_compare_session_start_against_now(user):
    # 10-05 은 지난 주(일요일 10-11 이전)지만 이번 달
    last_week = datetime(2026, 10, 5, 9, 0, tzinfo=UTC)
    # 9월은 이번 달도 아님
    last_month = datetime(2026, 9, 28, 9, 0, tzinfo=UTC)

    updated, _ = record(user, last_week)
    updated, _ = record(updated, last_month)

    assert updated.total_study_time == 2 * 1_800_000
    assert updated.weekly_study_time == 0
    assert updated.monthly_study_time == 1_800_000


def test_sunday_session_counts_for_current_week(user):
    sunday = datetime(2026, 10, 11, 0, 5, tzinfo=UTC)

    updated, _ = record(user, sunday)

    assert updated.weekly_study_time == 1_800_000


def test_streak_failure_is_logged_and_does_not_abort(user, monkeypatch, caplog):
    def boom(*args, **kwargs):
        raise RuntimeError("clock broke")

    monkeypatch.setattr(ledger, "local_midnight", boom)

    updated, new = record(user, NOW - timedelta(minutes=30))

    assert updated.current_streak == 0
    assert updated.last_study_date is None
    assert updated.total_study_time == 1_800_000
    assert new == ["first_session"]
    assert "Error updating streak" in caplog.text


def test_next_streak_wraps_unexpected_errors(user, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("clock broke")

    monkeypatch.setattr(ledger, "local_midnight", boom)

    with pytest.raises(InternalComputationError) as exc_info:
        ledger.next_streak(user, NOW, NOW, UTC)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


@pytest.mark.parametrize(
    "session",
    [
        {"start_time": NOW, "end_time": NOW + timedelta(minutes=1)},
        {"start_time": NOW, "end_time": NOW, "duration": 0},
        {"start_time": NOW, "end_time": NOW, "duration": -5},
        {"start_time": NOW, "end_time": NOW - timedelta(minutes=1), "duration": 60_000},
        {"start_time": "yesterday-ish", "end_time": NOW, "duration": 60_000},
        {"start_time": NOW, "end_time": NOW, "duration": "a lot"},
        {"start_time": NOW - timedelta(minutes=30), "end_time": NOW, "duration": "1800000"},
        {"start_time": NOW - timedelta(minutes=30), "end_time": NOW, "duration": 1800000.0},
        {"start_time": NOW - timedelta(minutes=30), "end_time": NOW, "duration": True},
        {"start_time": NOW.isoformat(), "end_time": NOW, "duration": 60_000},
        42,
    ],
)
def test_invalid_session_fails_before_mutation(user, session):
    with pytest.raises(ValidationError):
        ledger.record_session(user, session, NOW, tz=UTC)

    assert user.study_sessions == []
    assert user.total_study_time == 0


def test_remove_session_clamps_and_keeps_streak():
    session = make_session(NOW - timedelta(hours=2), minutes=60)
    user = make_user(
        study_sessions=[session],
        total_study_time=3_600_000,
        weekly_study_time=3_600_000,
        monthly_study_time=3_600_000,
        current_streak=5,
        last_study_date=TODAY,
        achievements=[{"type": "first_session", "date": NOW}],
    )

    updated = ledger.remove_session(user, session.id, NOW, tz=UTC)

    assert updated.study_sessions == []
    assert updated.total_study_time == 0
    assert updated.weekly_study_time == 0
    assert updated.monthly_study_time == 0
    # 삭제는 스트릭/업적을 되돌리지 않음
    assert updated.current_streak == 5
    assert updated.last_study_date == TODAY
    assert updated.has_achievement("first_session")

    with pytest.raises(NotFoundError):
        ledger.remove_session(updated, session.id, NOW, tz=UTC)
    assert updated.total_study_time == 0


def test_remove_never_goes_negative_with_stale_aggregates():
    session = make_session(NOW - timedelta(hours=2), minutes=60)
    user = make_user(study_sessions=[session], total_study_time=1_000, weekly_study_time=0)

    updated = ledger.remove_session(user, session.id, NOW, tz=UTC)

    assert updated.total_study_time == 0
    assert updated.weekly_study_time == 0
    assert updated.monthly_study_time == 0


def test_remove_uses_window_at_call_time():
    # 기록 당시엔 이번 주였지만, 삭제 시점엔 다음 주
    start = datetime(2026, 10, 12, 9, 0, tzinfo=UTC)
    user = make_user()
    user, _ = record(user, start, minutes=60, now=datetime(2026, 10, 12, 12, 0, tzinfo=UTC))
    assert user.weekly_study_time == 3_600_000

    later = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)
    updated = ledger.remove_session(user, user.study_sessions[0].id, later, tz=UTC)

    assert updated.total_study_time == 0
    assert updated.weekly_study_time == 3_600_000
    assert updated.monthly_study_time == 0


def test_total_matches_sum_of_sessions_after_mixed_operations(user):
    state = user
    for hours_ago, minutes in [(1, 30), (3, 45), (26, 60), (50, 15)]:
        state, _ = record(state, NOW - timedelta(hours=hours_ago), minutes=minutes)

    state = ledger.remove_session(state, state.study_sessions[1].id, NOW, tz=UTC)
    state, _ = record(state, NOW - timedelta(minutes=90), minutes=20)

    assert state.total_study_time == sum(s.duration for s in state.study_sessions)
    assert state.total_study_time >= 0
    assert state.weekly_study_time >= 0
    assert state.monthly_study_time >= 0
    types = [a.type for a in state.achievements]
    assert len(types) == len(set(types))
