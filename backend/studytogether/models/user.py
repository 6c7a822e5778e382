# 파일 위치: backend/studytogether/models/user.py
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from studytogether.models.achievement import AchievementRecord
from studytogether.models.common import PyObjectId
from studytogether.models.schedule import StudyScheduleInDB
from studytogether.models.session import StudySessionInDB

DEFAULT_DAILY_GOAL = 7_200_000  # 2시간 (밀리초)
MIN_DAILY_GOAL = 900_000  # 15분
MAX_DAILY_GOAL = 43_200_000  # 12시간


class UserInDB(BaseModel):
    """
    MongoDB 'users' 컬렉션에 저장되는 완전한 형태의 User 모델입니다.
    세션/스케줄/업적은 별도 컬렉션 없이 유저 문서에 임베디드로 저장됩니다.
    """
    # MongoDB의 고유 ID인 "_id"를 "id" 필드로 사용하기 위한 설정입니다.
    id: PyObjectId = Field(..., alias="_id")

    username: str
    email: EmailStr
    avatar: str = ""
    google_id: Optional[str] = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login_at: Optional[datetime] = None

    # 친구 관계 (대칭). 친구 추가/삭제 시 양쪽 문서를 같이 갱신합니다.
    friends: List[PyObjectId] = Field(default_factory=list)
    friend_invite_code: str

    study_sessions: List[StudySessionInDB] = Field(default_factory=list)
    study_schedules: List[StudyScheduleInDB] = Field(default_factory=list)

    # 누적 캐시 값 (밀리초). 읽을 때 재계산하지 않고 증감만 합니다.
    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0

    daily_goal: int = DEFAULT_DAILY_GOAL

    current_streak: int = 0
    last_study_date: Optional[datetime] = None  # 자정으로 잘린 날짜

    achievements: List[AchievementRecord] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,       # 'id'라는 이름으로 값을 넣어도 '_id' 필드에 할당 허용
        from_attributes=True,
        arbitrary_types_allowed=True,
    )

    def find_session(self, session_id: str) -> Optional[StudySessionInDB]:
        for s in self.study_sessions:
            if s.id == session_id:
                return s
        return None

    def find_schedule(self, schedule_id: str) -> Optional[StudyScheduleInDB]:
        for s in self.study_schedules:
            if s.id == schedule_id:
                return s
        return None

    def has_achievement(self, achievement_type: str) -> bool:
        return any(a.type == achievement_type for a in self.achievements)
