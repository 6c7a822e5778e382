# backend/studytogether/services/locks.py

import asyncio
import weakref


class UserLocks:
    """
    유저 id별 asyncio.Lock.
    같은 유저의 문서를 읽고-수정하고-저장하는 구간(세션 기록/삭제)을 직렬화합니다.
    프로세스 내부에서만 유효하며, 여러 프로세스 간 경합은 DB의 last-write-wins 입니다.
    """

    def __init__(self):
        # 아무도 잡고 있지 않은 락은 자동으로 정리됨
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_user(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock


user_locks = UserLocks()
