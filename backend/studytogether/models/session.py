# 파일 위치: backend/studytogether/models/session.py

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from studytogether.models.common import PyObjectId, new_object_id

DEFAULT_SUBJECT = "General Study"


class StudySessionInDB(BaseModel):
    """
    users.study_sessions 배열에 임베디드로 저장되는 공부 세션 1건입니다.
    세션 종료(stop) 시점에 한 번에 생성됩니다.
    """
    id: PyObjectId = Field(default_factory=new_object_id, alias="_id")
    start_time: datetime
    end_time: datetime
    duration: int  # 밀리초 (end_time - start_time)
    subject: str = DEFAULT_SUBJECT
    notes: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )
