# backend/studytogether/api/endpoints/study.py

from fastapi import APIRouter, Depends, HTTPException, status

from studytogether.api.deps import get_current_user_id
from studytogether.core.config import settings
from studytogether.crud import schedules as schedule_crud
from studytogether.crud import sessions as session_crud
from studytogether.crud import users as users_crud
from studytogether.schemas.session import (
    AchievementRead,
    AggregateStats,
    DailyGoalRead,
    DailyGoalUpdate,
    SessionDeleteResponse,
    SessionListResponse,
    SessionStart,
    SessionStartRead,
    SessionStop,
    SessionStopResponse,
    StatsRead,
    StudyStats,
    TodayProgress,
)
from studytogether.models.session import DEFAULT_SUBJECT
from studytogether.services import stats as study_stats
from studytogether.services.clock import utcnow

router = APIRouter(prefix="/api/study", tags=["Study"])


def _aggregates(user) -> AggregateStats:
    return AggregateStats(
        total_study_time=user.total_study_time or 0,
        weekly_study_time=user.weekly_study_time or 0,
        monthly_study_time=user.monthly_study_time or 0,
    )


@router.post("/session/start", response_model=SessionStartRead)
async def start_session(
    payload: SessionStart,
    user_id: str = Depends(get_current_user_id),
):
    """
    타이머 시작 시각만 돌려줍니다. 세션은 stop 에서 한 번에 저장됩니다.
    """
    return SessionStartRead(
        subject=payload.subject or DEFAULT_SUBJECT,
        schedule_id=payload.schedule_id,
        start_time=utcnow(),
    )


@router.post("/session/stop", response_model=SessionStopResponse)
async def stop_session(
    payload: SessionStop,
    user_id: str = Depends(get_current_user_id),
):
    now = utcnow()
    user, recorded, new_achievements = await session_crud.record_study_session(user_id, payload, now)

    return SessionStopResponse(
        session=session_crud.serialize_session(recorded),
        new_achievements=new_achievements,
        stats=StudyStats(
            total_study_time=user.total_study_time,
            weekly_study_time=user.weekly_study_time,
            monthly_study_time=user.monthly_study_time,
            current_streak=user.current_streak,
            today_study_time=study_stats.today_study_time(user, now, settings.tz),
            daily_goal=user.daily_goal,
        ),
    )


@router.get("/sessions", response_model=SessionListResponse)
async def read_sessions(user_id: str = Depends(get_current_user_id)):
    sessions = await session_crud.get_sessions(user_id)
    return SessionListResponse(sessions=sessions, total_sessions=len(sessions))


@router.delete("/session/{session_id}", response_model=SessionDeleteResponse)
async def delete_session(
    session_id: str,
    user_id: str = Depends(get_current_user_id),
):
    user = await session_crud.delete_study_session(user_id, session_id, utcnow())
    return SessionDeleteResponse(stats=_aggregates(user))


@router.put("/goal", response_model=DailyGoalRead)
async def set_daily_goal(
    payload: DailyGoalUpdate,
    user_id: str = Depends(get_current_user_id),
):
    user = await users_crud.update_daily_goal(user_id, payload.daily_goal)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return DailyGoalRead(daily_goal=user.daily_goal)


@router.get("/today", response_model=TodayProgress)
async def read_today(user_id: str = Depends(get_current_user_id)):
    user = await users_crud.require_user(user_id)
    now = utcnow()
    today_sessions = study_stats.sessions_on_day(user, now, settings.tz)

    return TodayProgress(
        today_study_time=sum(s.duration for s in today_sessions),
        today_sessions=len(today_sessions),
        daily_goal=user.daily_goal,
        current_streak=user.current_streak,
        achievements=[AchievementRead.model_validate(a) for a in user.achievements[-5:]],
    )


@router.get("/stats", response_model=StatsRead)
async def read_stats(user_id: str = Depends(get_current_user_id)):
    user = await users_crud.require_user(user_id)
    now = utcnow()

    return StatsRead(
        **_aggregates(user).model_dump(),
        week_stats=study_stats.week_series(user, now, settings.tz),
        subject_stats=study_stats.subject_breakdown(user),
        total_sessions=len(user.study_sessions),
        schedules=[schedule_crud.serialize_schedule(s) for s in user.study_schedules],
    )
