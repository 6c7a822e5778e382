# backend/studytogether/services/achievements.py
"""
업적 평가기.

규칙 하나하나가 독립된 평가 함수이고, 루프에서 순서대로 실행됩니다.
어떤 규칙이 예외를 던져도 로그만 남기고 나머지 규칙은 계속 평가합니다.
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, tzinfo
from typing import Callable, List, Optional, Tuple

from studytogether.core.config import settings
from studytogether.core.exceptions import InternalComputationError
from studytogether.models.achievement import AchievementRecord, AchievementType
from studytogether.models.user import DEFAULT_DAILY_GOAL, UserInDB
from studytogether.services.clock import ensure_aware, local_day

logger = logging.getLogger(__name__)

AchievementRule = Callable[[UserInDB, datetime, tzinfo], bool]

GOAL_WINDOW = timedelta(days=7)
GOAL_DAYS_REQUIRED = 7


def _session_count_equals(n: int) -> AchievementRule:
    def rule(user: UserInDB, now: datetime, tz: tzinfo) -> bool:
        return len(user.study_sessions) == n
    return rule


def _session_count_at_least(n: int) -> AchievementRule:
    def rule(user: UserInDB, now: datetime, tz: tzinfo) -> bool:
        return len(user.study_sessions) >= n
    return rule


def _streak_at_least(n: int) -> AchievementRule:
    def rule(user: UserInDB, now: datetime, tz: tzinfo) -> bool:
        return (user.current_streak or 0) >= n
    return rule


def count_goal_days(user: UserInDB, now: datetime, tz: tzinfo) -> int:
    """
    now 기준 최근 7일(now - 7일 이후 시작한 세션)을 로컬 날짜별로 합산해서
    daily_goal 이상 공부한 날의 수를 반환합니다.
    """
    window_start = ensure_aware(now) - GOAL_WINDOW
    per_day = defaultdict(int)

    for s in user.study_sessions:
        if s.start_time is None or not s.duration:
            continue
        if ensure_aware(s.start_time) >= window_start:
            per_day[local_day(s.start_time, tz)] += s.duration

    goal = user.daily_goal or DEFAULT_DAILY_GOAL
    return sum(1 for total in per_day.values() if total >= goal)


def _goal_achiever(user: UserInDB, now: datetime, tz: tzinfo) -> bool:
    return count_goal_days(user, now, tz) >= GOAL_DAYS_REQUIRED


# 평가 순서 = 반환 순서
RULES: List[Tuple[AchievementType, AchievementRule]] = [
    (AchievementType.FIRST_SESSION, _session_count_equals(1)),
    (AchievementType.FIVE_SESSIONS, _session_count_at_least(5)),
    (AchievementType.TWENTY_FIVE_SESSIONS, _session_count_at_least(25)),
    (AchievementType.STREAK_3, _streak_at_least(3)),
    (AchievementType.STREAK_7, _streak_at_least(7)),
    (AchievementType.STREAK_30, _streak_at_least(30)),
    (AchievementType.GOAL_ACHIEVER, _goal_achiever),
]


def evaluate_rule(
    achievement_type: AchievementType,
    rule: AchievementRule,
    user: UserInDB,
    now: datetime,
    tz: tzinfo,
) -> bool:
    try:
        return bool(rule(user, now, tz))
    except Exception as e:
        raise InternalComputationError(
            f"Achievement rule {achievement_type.value} failed: {e}"
        ) from e


def check_achievements(
    user: UserInDB,
    now: datetime,
    tz: Optional[tzinfo] = None,
    rules: Optional[List[Tuple[AchievementType, AchievementRule]]] = None,
) -> List[str]:
    """
    user의 현재 상태로 규칙을 평가해서 새로 달성한 업적을 user.achievements 에
    추가하고, 새 업적 타입 목록을 규칙 순서대로 반환합니다.
    전체가 실패하면 빈 리스트를 반환합니다 (예외를 던지지 않음).
    """
    tz = tz or settings.tz
    try:
        unlocked: List[str] = []
        for achievement_type, rule in rules if rules is not None else RULES:
            if user.has_achievement(achievement_type):
                continue
            try:
                if evaluate_rule(achievement_type, rule, user, now, tz):
                    unlocked.append(achievement_type.value)
            except InternalComputationError:
                logger.exception("Achievement rule %s failed", achievement_type.value)

        for t in unlocked:
            user.achievements.append(AchievementRecord(type=t, date=now))

        if unlocked:
            logger.info("User %s unlocked achievements: %s", user.id, ", ".join(unlocked))
        return unlocked
    except Exception:
        logger.exception("Error checking achievements for user %s", user.id)
        return []
