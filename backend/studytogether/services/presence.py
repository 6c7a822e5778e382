# backend/studytogether/services/presence.py
"""
접속 중인 유저 레지스트리와 친구 대상 이벤트 팬아웃.

- 유저마다 자기 채널(send 콜러블) 하나만 가집니다.
- 친구가 관심 가질 이벤트는 행동한 쪽이 각 친구의 채널에 직접 publish 합니다.
- publish 는 호출 스택에서 동기적으로 큐에 넣기 때문에, 한 유저가 만든 이벤트는
  친구에게 발행 순서대로 도착합니다. 유저 간 순서는 보장하지 않습니다.
- 아무것도 DB에 저장하지 않습니다. 프로세스가 내려가면 모두 사라지고
  클라이언트 재접속으로 다시 채워집니다.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional, Set

from studytogether.core.exceptions import NotFoundError
from studytogether.models.session import DEFAULT_SUBJECT
from studytogether.services.clock import utcnow

logger = logging.getLogger(__name__)

Event = Dict[str, Any]
Sink = Callable[[Event], None]

FRIEND_ONLINE = "friend_online"
FRIEND_OFFLINE = "friend_offline"
FRIEND_STARTED_STUDYING = "friend_started_studying"
FRIEND_STOPPED_STUDYING = "friend_stopped_studying"


@dataclass
class LiveActivity:
    """방송 전용 '지금 공부 중' 표시. 저장되는 세션과는 별개입니다."""
    start_time: datetime
    subject: str = DEFAULT_SUBJECT
    target: Optional[int] = None


@dataclass
class PresenceEntry:
    user_id: str
    send: Sink
    friend_ids: Set[str] = field(default_factory=set)
    activity: Optional[LiveActivity] = None
    connected_at: Optional[datetime] = None


class PresenceHub:
    """
    프로세스 소유 레지스트리. FastAPI lifespan 에서 만들어 app.state 에 둡니다.
    모든 메서드는 이벤트 루프 스레드에서만 호출된다는 전제입니다.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock
        self._entries: Dict[str, PresenceEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, user_id: str) -> bool:
        return user_id in self._entries

    def get(self, user_id: str) -> Optional[PresenceEntry]:
        return self._entries.get(user_id)

    # ---------- 연결 ----------

    def connect(self, user_id: str, friend_ids: Iterable[str], send: Sink) -> PresenceEntry:
        """같은 유저가 다시 접속하면 이전 엔트리를 덮어씁니다 (last writer wins)."""
        entry = PresenceEntry(
            user_id=user_id,
            send=send,
            friend_ids={str(f) for f in friend_ids},
            connected_at=self._clock(),
        )
        replaced = self._entries.get(user_id)
        self._entries[user_id] = entry
        if replaced is not None:
            logger.info("User %s reconnected, previous connection replaced", user_id)
        else:
            logger.info("User connected: %s (online=%d)", user_id, len(self._entries))

        self._publish_to_friends(entry, {"type": FRIEND_ONLINE, "user_id": user_id})
        return entry

    def disconnect(self, user_id: str, entry: Optional[PresenceEntry] = None) -> None:
        """
        엔트리를 제거하고 친구들에게 offline 을 알립니다.
        entry 를 넘기면 그게 현재 등록된 엔트리일 때만 제거합니다
        (교체된 옛 연결의 늦은 disconnect 가 새 연결을 지우지 않도록).
        """
        current = self._entries.get(user_id)
        if current is None:
            return
        if entry is not None and current is not entry:
            return

        del self._entries[user_id]
        logger.info("User disconnected: %s (online=%d)", user_id, len(self._entries))
        self._publish_to_friends(current, {"type": FRIEND_OFFLINE, "user_id": user_id})

    def update_friends(self, user_id: str, friend_ids: Iterable[str]) -> None:
        """REST 로 친구 관계가 바뀌었을 때 접속 중인 유저의 팬아웃 대상을 갱신"""
        entry = self._entries.get(user_id)
        if entry is not None:
            entry.friend_ids = {str(f) for f in friend_ids}

    # ---------- 공부 활동 ----------

    def start_activity(
        self,
        user_id: str,
        subject: Optional[str] = None,
        target: Optional[int] = None,
    ) -> LiveActivity:
        entry = self._require(user_id)
        activity = LiveActivity(
            start_time=self._clock(),
            subject=(subject or "").strip() or DEFAULT_SUBJECT,
            target=target,
        )
        entry.activity = activity

        self._publish_to_friends(entry, {
            "type": FRIEND_STARTED_STUDYING,
            "user_id": user_id,
            "start_time": activity.start_time.isoformat(),
            "subject": activity.subject,
        })
        return activity

    def stop_activity(self, user_id: str) -> Optional[int]:
        """경과 시간(ms)을 반환. 진행 중인 활동이 없으면 아무것도 하지 않고 None."""
        entry = self._entries.get(user_id)
        if entry is None or entry.activity is None:
            return None

        activity = entry.activity
        duration = int((self._clock() - activity.start_time).total_seconds() * 1000)
        entry.activity = None

        self._publish_to_friends(entry, {
            "type": FRIEND_STOPPED_STUDYING,
            "user_id": user_id,
            "start_time": activity.start_time.isoformat(),
            "subject": activity.subject,
            "duration": duration,
        })
        return duration

    # ---------- 조회 ----------

    def query_online_friends(self, user_id: str, candidate_ids: Iterable[str]) -> Set[str]:
        return {str(c) for c in candidate_ids if str(c) in self._entries}

    # ---------- 내부 ----------

    def _require(self, user_id: str) -> PresenceEntry:
        entry = self._entries.get(user_id)
        if entry is None:
            raise NotFoundError("User is not connected")
        return entry

    def _publish_to_friends(self, origin: PresenceEntry, event: Event) -> None:
        for friend_id in sorted(origin.friend_ids):
            friend = self._entries.get(friend_id)
            if friend is None:
                continue
            try:
                friend.send(event)
            except Exception:
                logger.exception(
                    "Failed to deliver %s from %s to %s", event.get("type"), origin.user_id, friend_id
                )
