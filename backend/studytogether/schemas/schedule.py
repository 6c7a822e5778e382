from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from studytogether.models.schedule import RecurringEnum

# --- API 요청(Request) 스키마 ---


class ScheduleCreate(BaseModel):
    """
    [요청] POST /api/study/schedule
    새로운 공부 스케줄을 생성할 때 클라이언트가 보내는 데이터 구조입니다.
    """
    title: str
    subject: Optional[str] = None
    start_time: datetime
    end_time: datetime
    recurring: RecurringEnum = RecurringEnum.NONE

    model_config = ConfigDict(str_strip_whitespace=True)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleUpdate(BaseModel):
    """
    [요청] PUT /api/study/schedule/{schedule_id}
    모든 필드는 선택 사항(Optional)입니다.
    """
    title: Optional[str] = None
    subject: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    recurring: Optional[RecurringEnum] = None

    model_config = ConfigDict(str_strip_whitespace=True)


# --- API 응답(Response) 스키마 ---


class CompletedScheduleSessionRead(BaseModel):
    date: datetime
    duration: int
    actual_start_time: datetime
    actual_end_time: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduleRead(BaseModel):
    """
    [응답] 스케줄 조회/생성 성공 시 반환되는 데이터 구조입니다.
    """
    id: str
    title: str
    subject: Optional[str] = None
    start_time: datetime
    end_time: datetime
    recurring: str
    completed: bool
    completed_sessions: List[CompletedScheduleSessionRead] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
