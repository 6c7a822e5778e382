# 파일 위치: backend/studytogether/schemas/presence.py

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class PresenceCommand(BaseModel):
    """
    [요청] WebSocket /ws 로 클라이언트가 보내는 메시지
    예: {"type": "start_study", "subject": "수학"}
        {"type": "get_online_friends", "friend_ids": ["...", "..."]}
    """
    type: Literal["start_study", "stop_study", "get_online_friends", "ping"]
    subject: Optional[str] = None
    target: Optional[int] = None  # 목표 시간 (밀리초), 방송용
    friend_ids: List[str] = Field(default_factory=list)
