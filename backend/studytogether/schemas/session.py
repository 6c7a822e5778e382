# 파일 위치: backend/studytogether/schemas/session.py

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, conint, field_validator

from studytogether.models.user import MAX_DAILY_GOAL, MIN_DAILY_GOAL
from studytogether.schemas.schedule import ScheduleRead


def _strip_to_none(v):
    if v is None:
        return None
    if not isinstance(v, str):
        return v
    s = v.strip()
    return s or None


# --- API 요청(Request) 스키마 ---

class SessionStart(BaseModel):
    """
    [요청] POST /api/study/session/start
    타이머 시작. 서버는 아무것도 저장하지 않고 시작 정보를 돌려줍니다.
    """
    subject: Optional[str] = None
    schedule_id: Optional[str] = None

    @field_validator("subject", "schedule_id", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _strip_to_none(v)


class SessionStop(BaseModel):
    """
    [요청] POST /api/study/session/stop
    종료 시각은 서버 시간, 시작 시각은 클라이언트가 보관하던 값을 보냅니다.
    """
    start_time: datetime
    subject: Optional[str] = None
    schedule_id: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("subject", "schedule_id", "notes", mode="before")
    @classmethod
    def strip_optional(cls, v):
        return _strip_to_none(v)


class DailyGoalUpdate(BaseModel):
    """
    [요청] PUT /api/study/goal
    15분 ~ 12시간 (밀리초)
    """
    daily_goal: conint(ge=MIN_DAILY_GOAL, le=MAX_DAILY_GOAL)


# --- API 응답(Response) 스키마 ---

class SessionStartRead(BaseModel):
    subject: str
    schedule_id: Optional[str] = None
    start_time: datetime


class SessionRead(BaseModel):
    """
    [응답] 저장된 공부 세션 1건
    """
    id: str
    start_time: datetime
    end_time: datetime
    duration: int  # 밀리초
    subject: str
    notes: str = ""

    model_config = ConfigDict(from_attributes=True)


class StudyStats(BaseModel):
    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0
    current_streak: int = 0
    today_study_time: int = 0
    daily_goal: int


class SessionStopResponse(BaseModel):
    message: str = "Study session completed"
    session: SessionRead
    new_achievements: List[str] = Field(default_factory=list)
    stats: StudyStats


class SessionListResponse(BaseModel):
    sessions: List[SessionRead]
    total_sessions: int


class AggregateStats(BaseModel):
    total_study_time: int
    weekly_study_time: int
    monthly_study_time: int


class SessionDeleteResponse(BaseModel):
    message: str = "Session deleted successfully"
    stats: AggregateStats


class DailyGoalRead(BaseModel):
    message: str = "Daily goal updated successfully"
    daily_goal: int


class AchievementRead(BaseModel):
    type: str
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class TodayProgress(BaseModel):
    today_study_time: int
    today_sessions: int
    daily_goal: int
    current_streak: int
    achievements: List[AchievementRead]  # 최근 5개


class DayStat(BaseModel):
    date: str  # YYYY-MM-DD
    study_time: int


class StatsRead(AggregateStats):
    week_stats: List[DayStat]
    subject_stats: Dict[str, int]
    total_sessions: int
    schedules: List[ScheduleRead]
