# backend/studytogether/crud/sessions.py

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from fastapi import HTTPException

from studytogether.crud import users as users_crud
from studytogether.models.session import DEFAULT_SUBJECT, StudySessionInDB
from studytogether.models.user import UserInDB
from studytogether.schemas.session import SessionRead, SessionStop
from studytogether.services import ledger
from studytogether.services.locks import user_locks
from studytogether.services.stats import apply_schedule_progress

logger = logging.getLogger(__name__)

MIN_SESSION = timedelta(seconds=1)
MAX_SESSION = timedelta(hours=24)


def serialize_session(session: StudySessionInDB) -> SessionRead:
    """
    StudySessionInDB -> SessionRead
    """
    return SessionRead(
        id=str(session.id),
        start_time=session.start_time,
        end_time=session.end_time,
        duration=session.duration,
        subject=session.subject or DEFAULT_SUBJECT,
        notes=session.notes or "",
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_aware_utc(dt: datetime) -> datetime:
    """
    start_time/end_time에 naive가 들어오는 케이스 방어.
    naive면 UTC로 간주해서 tzinfo를 붙임.
    """
    if dt is None:
        return dt
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _compute_duration_ms(start_time: datetime, end_time: datetime) -> int:
    """
    duration을 밀리초 단위로 계산. 미래 시작/1초 미만/24시간 초과는 400.
    """
    st = _ensure_aware_utc(start_time)
    et = _ensure_aware_utc(end_time)

    if st > et:
        raise HTTPException(status_code=400, detail="Start time cannot be in the future")

    delta = et - st
    if delta < MIN_SESSION:
        raise HTTPException(status_code=400, detail="Session too short (minimum 1 second)")
    if delta > MAX_SESSION:
        raise HTTPException(status_code=400, detail="Session too long (maximum 24 hours)")

    return int(delta.total_seconds() * 1000)


# CREATE (STOP)
async def record_study_session(
    user_id: str,
    data: SessionStop,
    now: Optional[datetime] = None,
) -> Tuple[UserInDB, StudySessionInDB, List[str]]:
    """
    세션 종료 요청을 받아 세션을 기록하고 (유저 상태, 세션, 새 업적)을 반환합니다.
    같은 유저에 대한 읽기-수정-저장은 유저 락으로 직렬화합니다.
    """
    end_time = _ensure_aware_utc(now or _utcnow())
    start_time = _ensure_aware_utc(data.start_time)
    duration = _compute_duration_ms(start_time, end_time)

    session_data = {
        "start_time": start_time,
        "end_time": end_time,
        "duration": duration,
        "subject": data.subject or DEFAULT_SUBJECT,
        "notes": data.notes or "",
    }

    async with user_locks.for_user(str(user_id)):
        user = await users_crud.require_user(user_id)

        updated, new_achievements = ledger.record_session(user, session_data, end_time)
        recorded = updated.study_sessions[-1]

        # 스케줄 진행도 반영은 실패해도 세션 저장은 계속
        apply_schedule_progress(updated, data.schedule_id, recorded, end_time)

        await users_crud.save_study_state(updated)

    logger.info(
        "Recorded session %s for user %s (%d ms, achievements=%s)",
        recorded.id, user_id, duration, new_achievements,
    )
    return updated, recorded, new_achievements


# READ ALL
async def get_sessions(user_id: str) -> List[SessionRead]:
    user = await users_crud.require_user(user_id)
    sessions = sorted(user.study_sessions, key=lambda s: _ensure_aware_utc(s.start_time), reverse=True)
    return [serialize_session(s) for s in sessions]


# DELETE
async def delete_study_session(
    user_id: str,
    session_id: str,
    now: Optional[datetime] = None,
) -> UserInDB:
    now = now or _utcnow()
    session_id = session_id.strip()

    async with user_locks.for_user(str(user_id)):
        user = await users_crud.require_user(user_id)
        updated = ledger.remove_session(user, session_id, now)
        await users_crud.save_study_state(updated)

    logger.info("Deleted session %s for user %s", session_id, user_id)
    return updated
