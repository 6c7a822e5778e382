# 파일 위치: backend/studytogether/models/achievement.py

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class AchievementType(str, Enum):
    """업적 식별자 (닫힌 집합). 표시용 문구는 클라이언트가 매핑합니다."""
    FIRST_SESSION = "first_session"
    FIVE_SESSIONS = "five_sessions"
    TWENTY_FIVE_SESSIONS = "twenty_five_sessions"
    STREAK_3 = "streak_3"
    STREAK_7 = "streak_7"
    STREAK_30 = "streak_30"
    GOAL_ACHIEVER = "goal_achiever"


class AchievementRecord(BaseModel):
    """users.achievements 배열 원소. 추가만 되고 수정/삭제되지 않습니다."""
    type: AchievementType
    date: datetime

    # DB에는 enum 대신 순수 문자열로 저장
    model_config = ConfigDict(use_enum_values=True)
