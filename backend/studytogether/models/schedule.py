# 파일 위치: backend/studytogether/models/schedule.py

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from studytogether.models.common import PyObjectId, new_object_id


class RecurringEnum(str, Enum):
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CompletedScheduleSession(BaseModel):
    """스케줄에 연결되어 실제로 완료된 세션 기록"""
    date: datetime
    duration: int  # 밀리초
    actual_start_time: datetime
    actual_end_time: datetime


class StudyScheduleInDB(BaseModel):
    """
    users.study_schedules 배열에 임베디드로 저장되는 공부 스케줄입니다.
    """
    id: PyObjectId = Field(default_factory=new_object_id, alias="_id")
    title: str
    subject: Optional[str] = None
    start_time: datetime
    end_time: datetime
    recurring: RecurringEnum = RecurringEnum.NONE
    completed: bool = False
    completed_sessions: List[CompletedScheduleSession] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )

    @property
    def planned_duration(self) -> int:
        """계획된 길이 (밀리초)"""
        return int((self.end_time - self.start_time).total_seconds() * 1000)
