# backend/studytogether/services/clock.py
"""
달력 경계 계산 헬퍼.

모든 "오늘/이번 주/이번 달" 판정은 설정된 타임존의 자정을 기준으로 합니다.
naive datetime은 UTC로 간주합니다 (crud/sessions.py의 기존 정책과 동일).
"""

from datetime import date, datetime, timedelta, timezone, tzinfo


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def local_day(dt: datetime, tz: tzinfo) -> date:
    """dt가 속한 로컬 달력 날짜"""
    return ensure_aware(dt).astimezone(tz).date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)


def week_start(now: datetime, tz: tzinfo) -> date:
    """now 기준 가장 최근 일요일 (주의 시작은 일요일)"""
    today = local_day(now, tz)
    # weekday(): 월=0 ... 일=6
    return today - timedelta(days=(today.weekday() + 1) % 7)


def month_start(now: datetime, tz: tzinfo) -> date:
    return local_day(now, tz).replace(day=1)


def day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[해당일 자정, 다음날 자정)"""
    return local_midnight(day, tz), local_midnight(day + timedelta(days=1), tz)
