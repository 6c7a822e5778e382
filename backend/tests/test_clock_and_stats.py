# backend/tests/test_clock_and_stats.py

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from conftest import NOW, make_session, make_user
from studytogether.models.schedule import StudyScheduleInDB
from studytogether.services import clock, stats

UTC = timezone.utc
SEOUL = ZoneInfo("Asia/Seoul")


def test_week_starts_on_sunday():
    assert clock.week_start(NOW, UTC) == date(2026, 10, 11)
    sunday = datetime(2026, 10, 11, 0, 0, tzinfo=UTC)
    assert clock.week_start(sunday, UTC) == date(2026, 10, 11)
    saturday = datetime(2026, 10, 10, 23, 59, tzinfo=UTC)
    assert clock.week_start(saturday, UTC) == date(2026, 10, 4)


def test_month_start():
    assert clock.month_start(NOW, UTC) == date(2026, 10, 1)


def test_local_day_uses_configured_timezone():
    # UTC 15:00 = 서울 다음날 00:00
    assert clock.local_day(NOW, UTC) == date(2026, 10, 16)
    assert clock.local_day(NOW, SEOUL) == date(2026, 10, 17)
    assert clock.week_start(datetime(2026, 10, 17, 15, 0, tzinfo=UTC), SEOUL) == date(2026, 10, 18)


def test_naive_datetime_is_treated_as_utc():
    naive = datetime(2026, 10, 16, 23, 30)
    assert clock.ensure_aware(naive).tzinfo is UTC
    assert clock.local_day(naive, SEOUL) == date(2026, 10, 17)


def test_day_bounds():
    start, end = clock.day_bounds(date(2026, 10, 16), SEOUL)
    assert start == datetime(2026, 10, 16, tzinfo=SEOUL)
    assert end - start == timedelta(days=1)


def test_today_and_week_series():
    user = make_user(study_sessions=[
        make_session(NOW - timedelta(hours=2), minutes=30),
        make_session(NOW - timedelta(hours=1), minutes=15),
        make_session(NOW - timedelta(days=2), minutes=60),
        make_session(NOW - timedelta(days=9), minutes=90),
    ])

    assert stats.today_study_time(user, NOW, UTC) == 45 * 60 * 1000

    series = stats.week_series(user, NOW, UTC)
    assert [d["date"] for d in series] == [
        "2026-10-10", "2026-10-11", "2026-10-12", "2026-10-13",
        "2026-10-14", "2026-10-15", "2026-10-16",
    ]
    assert series[4]["study_time"] == 3_600_000
    assert series[6]["study_time"] == 45 * 60 * 1000
    assert sum(d["study_time"] for d in series) == 105 * 60 * 1000


def test_subject_breakdown():
    user = make_user(study_sessions=[
        make_session(NOW - timedelta(hours=3), minutes=30, subject="Math"),
        make_session(NOW - timedelta(hours=2), minutes=20),
        make_session(NOW - timedelta(hours=1), minutes=10, subject="Math"),
    ])

    assert stats.subject_breakdown(user) == {
        "Math": 40 * 60 * 1000,
        "General Study": 20 * 60 * 1000,
    }


def _schedule(minutes):
    start = datetime(2026, 10, 16, 13, 0, tzinfo=UTC)
    return StudyScheduleInDB(
        title="Linear algebra",
        subject="Math",
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
    )


def test_schedule_completes_once_planned_time_is_reached():
    schedule = _schedule(60)
    user = make_user(study_schedules=[schedule])
    target = user.study_schedules[0]

    first = make_session(NOW - timedelta(minutes=90), minutes=40)
    assert stats.apply_schedule_progress(user, target.id, first, NOW) is True
    assert target.completed is False
    assert target.completed_sessions[0].duration == 40 * 60 * 1000

    second = make_session(NOW - timedelta(minutes=30), minutes=20)
    assert stats.apply_schedule_progress(user, target.id, second, NOW) is True
    assert target.completed is True
    assert len(target.completed_sessions) == 2


def test_schedule_progress_ignores_missing_schedule():
    user = make_user()
    session = make_session(NOW - timedelta(minutes=30))

    assert stats.apply_schedule_progress(user, None, session, NOW) is False
    assert stats.apply_schedule_progress(user, "nope", session, NOW) is False
