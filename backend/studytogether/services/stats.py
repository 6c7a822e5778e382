# backend/studytogether/services/stats.py

import logging
from collections import OrderedDict
from datetime import datetime, timedelta, tzinfo
from typing import Dict, List, Optional

from studytogether.models.schedule import CompletedScheduleSession
from studytogether.models.session import DEFAULT_SUBJECT, StudySessionInDB
from studytogether.models.user import UserInDB
from studytogether.services.clock import local_day

logger = logging.getLogger(__name__)


def sessions_on_day(user: UserInDB, now: datetime, tz: tzinfo, days_ago: int = 0) -> List[StudySessionInDB]:
    day = local_day(now, tz) - timedelta(days=days_ago)
    return [s for s in user.study_sessions if s.start_time and local_day(s.start_time, tz) == day]


def today_study_time(user: UserInDB, now: datetime, tz: tzinfo) -> int:
    return sum(s.duration or 0 for s in sessions_on_day(user, now, tz))


def week_series(user: UserInDB, now: datetime, tz: tzinfo) -> List[Dict]:
    """최근 7일(오늘 포함, 과거 -> 오늘) 일별 공부 시간"""
    series = []
    for days_ago in range(6, -1, -1):
        day = local_day(now, tz) - timedelta(days=days_ago)
        total = sum(s.duration or 0 for s in sessions_on_day(user, now, tz, days_ago))
        series.append({"date": day.isoformat(), "study_time": total})
    return series


def subject_breakdown(user: UserInDB) -> Dict[str, int]:
    breakdown: Dict[str, int] = OrderedDict()
    for s in user.study_sessions:
        subject = s.subject or DEFAULT_SUBJECT
        breakdown[subject] = breakdown.get(subject, 0) + (s.duration or 0)
    return dict(breakdown)


def apply_schedule_progress(
    user: UserInDB,
    schedule_id: Optional[str],
    session: StudySessionInDB,
    now: datetime,
) -> bool:
    """
    세션이 스케줄에 연결돼 있으면 완료 기록을 추가하고,
    누적 시간이 계획 시간 이상이 되면 스케줄을 완료 처리합니다.
    실패해도 세션 저장은 계속되어야 하므로 예외를 삼키고 False 를 반환합니다.
    """
    if not schedule_id:
        return False
    try:
        schedule = user.find_schedule(schedule_id)
        if schedule is None:
            logger.warning("Schedule %s not found for user %s", schedule_id, user.id)
            return False

        schedule.completed_sessions.append(CompletedScheduleSession(
            date=now,
            duration=session.duration,
            actual_start_time=session.start_time,
            actual_end_time=session.end_time,
        ))
        done = sum(c.duration or 0 for c in schedule.completed_sessions)
        if done >= schedule.planned_duration:
            schedule.completed = True
        return True
    except Exception:
        logger.exception("Error updating schedule progress (schedule=%s)", schedule_id)
        return False
