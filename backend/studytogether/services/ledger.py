# backend/studytogether/services/ledger.py
"""
세션 원장: 세션 기록/삭제에 따른 누적 시간, 스트릭, 업적 갱신.

I/O 없는 순수 함수입니다. 인자로 받은 UserInDB 는 건드리지 않고
갱신된 사본을 반환하며, 저장은 crud 계층이 담당합니다.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta, tzinfo
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from studytogether.core.config import settings
from studytogether.core.exceptions import (
    InternalComputationError,
    NotFoundError,
    ValidationError,
)
from studytogether.models.session import StudySessionInDB
from studytogether.models.user import UserInDB
from studytogether.services.achievements import check_achievements
from studytogether.services.clock import (
    ensure_aware,
    local_day,
    local_midnight,
    month_start,
    week_start,
)

logger = logging.getLogger(__name__)

REQUIRED_SESSION_FIELDS = ("start_time", "end_time", "duration")

SessionInput = Union[StudySessionInDB, Mapping]


def _coerce_session(session: SessionInput) -> StudySessionInDB:
    """입력 세션 검증. 실패 시 상태 변경 전에 ValidationError."""
    if isinstance(session, StudySessionInDB):
        record = session
    elif isinstance(session, Mapping):
        missing = [k for k in REQUIRED_SESSION_FIELDS if session.get(k) is None]
        if missing:
            raise ValidationError(
                f"Missing required session fields ({', '.join(missing)})"
            )
        try:
            # strict: "1800000", 1800000.0, True 같은 값을 duration 으로 변환하지 않음
            record = StudySessionInDB.model_validate(dict(session), strict=True)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid session data: {e.errors()[0]['msg']}") from e
    else:
        raise ValidationError("Invalid session data provided")

    if record.duration <= 0:
        raise ValidationError("Invalid session duration")
    if ensure_aware(record.start_time) > ensure_aware(record.end_time):
        raise ValidationError("start_time must not be after end_time")
    return record


def in_current_week(start_time: datetime, now: datetime, tz: tzinfo) -> bool:
    return local_day(start_time, tz) >= week_start(now, tz)


def in_current_month(start_time: datetime, now: datetime, tz: tzinfo) -> bool:
    return local_day(start_time, tz) >= month_start(now, tz)


def next_streak(
    user: UserInDB, session_start: datetime, now: datetime, tz: tzinfo
) -> Optional[Tuple[int, datetime]]:
    """
    (새 스트릭, 새 last_study_date) 또는 변경 없음이면 None.
    - 첫 기록: 1
    - 어제 공부했으면 +1, 오늘 이미 반영됐으면 그대로, 그 외(공백)는 1로 리셋
    - 오늘이 아닌 날짜의 세션은 스트릭을 바꾸지 않음
    예기치 못한 오류는 InternalComputationError 로 감싸서 던집니다.
    """
    try:
        today = local_day(now, tz)
        yesterday = today - timedelta(days=1)
        session_day = local_day(session_start, tz)

        streak = user.current_streak if isinstance(user.current_streak, int) else 0

        if user.last_study_date is None:
            streak = 1
        elif session_day == today:
            last_day = local_day(user.last_study_date, tz)
            if last_day == today:
                return None
            streak = streak + 1 if last_day == yesterday else 1
        else:
            return None

        return streak, local_midnight(session_day, tz)
    except Exception as e:
        raise InternalComputationError(f"Streak computation failed: {e}") from e


def update_streak(user: UserInDB, session_start: datetime, now: datetime, tz: tzinfo) -> None:
    """오늘 날짜 세션만 스트릭에 반영. 계산 실패는 로그만 남기고 스트릭은 그대로."""
    try:
        result = next_streak(user, session_start, now, tz)
    except InternalComputationError:
        logger.exception("Error updating streak for user %s", user.id)
        return

    if result is not None:
        user.current_streak, user.last_study_date = result


def record_session(
    user: UserInDB,
    session: SessionInput,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> Tuple[UserInDB, List[str]]:
    """
    완료된 세션 1건을 반영한 (새 유저 상태, 새로 달성한 업적 목록)을 반환합니다.
    같은 내용의 세션이라도 호출할 때마다 새로 추가됩니다 (중복 제거 없음).
    """
    tz = tz or settings.tz
    record = _coerce_session(session)

    state = user.model_copy(deep=True)
    state.study_sessions.append(record)
    state.total_study_time = (state.total_study_time or 0) + record.duration

    # 주간/월간 창은 세션 시각이 아니라 호출 시점(now) 기준
    try:
        if in_current_week(record.start_time, now, tz):
            state.weekly_study_time = (state.weekly_study_time or 0) + record.duration
        if in_current_month(record.start_time, now, tz):
            state.monthly_study_time = (state.monthly_study_time or 0) + record.duration
    except Exception:
        logger.exception("Error updating weekly/monthly stats for user %s", user.id)

    update_streak(state, record.start_time, now, tz)

    new_achievements = check_achievements(state, now, tz)
    return state, new_achievements


def remove_session(
    user: UserInDB,
    session_id: str,
    now: datetime,
    tz: Optional[tzinfo] = None,
) -> UserInDB:
    """
    세션을 삭제하고 누적 시간을 되돌립니다 (0 미만으로 내려가지 않음).
    스트릭, last_study_date, 이미 받은 업적은 되돌리지 않습니다.
    """
    tz = tz or settings.tz
    target = user.find_session(session_id)
    if target is None:
        raise NotFoundError("Session not found")

    state = user.model_copy(deep=True)
    state.study_sessions = [s for s in state.study_sessions if s.id != session_id]
    state.total_study_time = max(0, (state.total_study_time or 0) - target.duration)

    if in_current_week(target.start_time, now, tz):
        state.weekly_study_time = max(0, (state.weekly_study_time or 0) - target.duration)
    if in_current_month(target.start_time, now, tz):
        state.monthly_study_time = max(0, (state.monthly_study_time or 0) - target.duration)

    return state
