# backend/studytogether/schemas/user.py

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from studytogether.schemas.schedule import ScheduleRead
from studytogether.schemas.session import AchievementRead, SessionRead


# -------------------------
# 공백 방지 공통 유틸
# -------------------------
def _strip_and_reject_blank(v: str, field_name: str) -> str:
    """
    문자열 양쪽 공백 제거 후,
    빈 문자열이면 ValidationError 유발을 위해 ValueError 발생.
    """
    if v is None:
        return v
    if not isinstance(v, str):
        return v
    stripped = v.strip()
    if stripped == "":
        raise ValueError(f"{field_name} must not be blank")
    return stripped


# ---------- 요청 스키마 ----------

class FriendAdd(BaseModel):
    """
    [요청] POST /api/users/add-friend
    상대방의 초대 코드로 친구 추가 (대소문자 무시)
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    invite_code: str

    @field_validator("invite_code")
    @classmethod
    def validate_invite_code(cls, v: str) -> str:
        return _strip_and_reject_blank(v, "invite_code").upper()


RankingFilter = Literal["total", "weekly", "monthly"]


# ---------- 응답 스키마 ----------

class UserRead(BaseModel):
    """[응답] GET /api/users/me"""
    id: str
    username: str
    email: EmailStr
    avatar: str = ""
    friend_invite_code: str
    friends: List[str] = Field(default_factory=list)
    created_at: datetime
    last_login_at: Optional[datetime] = None

    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0
    daily_goal: int
    current_streak: int = 0
    achievements: List[AchievementRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


class FriendRead(BaseModel):
    id: str
    username: str
    email: EmailStr
    avatar: str = ""
    friend_invite_code: str
    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0
    recent_sessions: List[SessionRead] = Field(default_factory=list)  # 최근 5개


class FriendAddResponse(BaseModel):
    message: str = "Friend added successfully"
    friend: FriendRead


class FriendListResponse(BaseModel):
    friends: List[FriendRead]


class RankingEntry(BaseModel):
    id: str
    username: str
    avatar: str = ""
    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0
    current_streak: int = 0
    rank: int


class RankingsResponse(BaseModel):
    rankings: List[RankingEntry]
    my_rank: Optional[RankingEntry] = None


class ProfileRead(BaseModel):
    """[응답] GET /api/users/profile/{user_id} (친구만 조회 가능)"""
    id: str
    username: str
    avatar: str = ""
    total_study_time: int = 0
    weekly_study_time: int = 0
    monthly_study_time: int = 0
    study_schedules: List[ScheduleRead] = Field(default_factory=list)
    recent_sessions: List[SessionRead] = Field(default_factory=list)  # 최근 10개


class SuccessMessage(BaseModel):
    success: bool = True
    message: str = "Operation successful"
