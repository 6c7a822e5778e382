# backend/studytogether/crud/users.py

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException

from studytogether.core.exceptions import NotFoundError
from studytogether.db.mongo import get_db
from studytogether.models.user import UserInDB
from studytogether.schemas.user import RankingEntry

logger = logging.getLogger(__name__)

RANKING_LIMIT = 50

RANKING_SORT_FIELDS = {
    "total": "total_study_time",
    "weekly": "weekly_study_time",
    "monthly": "monthly_study_time",
}


def get_users_collection():
    """
    Motor DB 핸들에서 users 컬렉션을 가져옵니다.
    connect_to_mongo() 이후에 db가 세팅되어 있어야 합니다.
    """
    return get_db()["users"]


def _strip_or_none(v):
    if v is None:
        return None
    if not isinstance(v, str):
        return v
    s = v.strip()
    return s or None


def _safe_object_id(user_id: Union[str, ObjectId]) -> Optional[ObjectId]:
    """
    str/ObjectId 입력을 안전하게 ObjectId로 변환합니다.
    """
    if isinstance(user_id, ObjectId):
        return user_id

    if isinstance(user_id, str):
        user_id = user_id.strip()

    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


def _id_filter(user_id: Union[str, ObjectId]) -> Dict[str, Any]:
    """
    users 컬렉션의 _id 타입이 ObjectId / string 혼재된 상황을 모두 커버하는 필터.
    - ObjectId로 변환 가능하면: ObjectId / string 둘 다 매칭
    - 변환 불가하면: string 매칭
    """
    if isinstance(user_id, str):
        user_id = user_id.strip()

    oid = _safe_object_id(user_id)

    if isinstance(user_id, str) and oid is not None:
        return {"$or": [{"_id": oid}, {"_id": user_id}]}

    if oid is not None:
        return {"_id": oid}

    return {"_id": user_id}


def _ids_filter(user_ids: Iterable[str]) -> Dict[str, Any]:
    """여러 id에 대한 _id_filter ($in 버전)"""
    strs = [str(u).strip() for u in user_ids]
    oids = [oid for oid in (_safe_object_id(u) for u in strs) if oid is not None]
    return {"$or": [{"_id": {"$in": oids}}, {"_id": {"$in": strs}}]}


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------- READ ----------

async def get_user_by_id(user_id: Union[str, ObjectId]) -> Optional[UserInDB]:
    user = await get_users_collection().find_one(_id_filter(user_id))
    return UserInDB(**user) if user else None


async def get_user_by_email(email: str) -> Optional[UserInDB]:
    email = (_strip_or_none(email) or email).lower()
    user = await get_users_collection().find_one({"email": email})
    return UserInDB(**user) if user else None


async def get_user_by_invite_code(invite_code: str) -> Optional[UserInDB]:
    code = (_strip_or_none(invite_code) or "").upper()
    if not code:
        return None
    user = await get_users_collection().find_one({"friend_invite_code": code})
    return UserInDB(**user) if user else None


async def require_user(user_id: Union[str, ObjectId]) -> UserInDB:
    user = await get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_friend_ids(user_id: str) -> List[str]:
    """
    접속 시 팬아웃 대상 로딩용. 유저가 없으면 NotFoundError (호출 측에서 연결 종료).
    """
    doc = await get_users_collection().find_one(_id_filter(user_id), {"friends": 1})
    if doc is None:
        raise NotFoundError("User not found")
    return [str(f) for f in doc.get("friends", [])]


async def get_friends(user_id: str) -> List[UserInDB]:
    user = await require_user(user_id)
    if not user.friends:
        return []
    cursor = get_users_collection().find(_ids_filter(user.friends))
    docs = await cursor.to_list(length=len(user.friends))
    return [UserInDB(**d) for d in docs]


async def get_rankings(filter_name: str = "total", limit: int = RANKING_LIMIT) -> List[RankingEntry]:
    sort_field = RANKING_SORT_FIELDS.get(filter_name, "total_study_time")
    projection = {
        "username": 1,
        "avatar": 1,
        "total_study_time": 1,
        "weekly_study_time": 1,
        "monthly_study_time": 1,
        "current_streak": 1,
    }
    cursor = get_users_collection().find({}, projection).sort(sort_field, -1).limit(limit)
    docs = await cursor.to_list(length=limit)

    return [
        RankingEntry(
            id=str(d["_id"]),
            username=d.get("username", ""),
            avatar=d.get("avatar") or "",
            total_study_time=d.get("total_study_time") or 0,
            weekly_study_time=d.get("weekly_study_time") or 0,
            monthly_study_time=d.get("monthly_study_time") or 0,
            current_streak=d.get("current_streak") or 0,
            rank=i + 1,
        )
        for i, d in enumerate(docs)
    ]


# ---------- CREATE ----------

async def _generate_invite_code() -> str:
    """8자리 대문자 hex, 중복 없을 때까지 재생성"""
    col = get_users_collection()
    while True:
        code = secrets.token_hex(4).upper()
        if not await col.find_one({"friend_invite_code": code}, {"_id": 1}):
            return code


async def _available_username(email: str) -> str:
    col = get_users_collection()
    base = (email.split("@")[0] or "user")[:16]
    candidate = base
    while await col.find_one({"username": candidate}, {"_id": 1}):
        candidate = f"{base}{secrets.randbelow(10000):04d}"
    return candidate


async def create_user(*, email: str, google_id: Optional[str] = None) -> UserInDB:
    now = _now()
    email = (_strip_or_none(email) or email).lower()

    user_data = {
        "username": await _available_username(email),
        "email": email,
        "google_id": _strip_or_none(google_id),
        "avatar": "",
        "created_at": now,
        "last_login_at": now,
        "friends": [],
        "friend_invite_code": await _generate_invite_code(),
        "study_sessions": [],
        "study_schedules": [],
        "total_study_time": 0,
        "weekly_study_time": 0,
        "monthly_study_time": 0,
        "current_streak": 0,
        "last_study_date": None,
        "achievements": [],
    }

    result = await get_users_collection().insert_one(user_data)
    user_data["_id"] = result.inserted_id
    logger.info("Created user %s (%s)", result.inserted_id, user_data["username"])
    return UserInDB(**user_data)


# ---------- UPDATE ----------

async def update_last_login(user_id: Union[str, ObjectId]) -> Optional[UserInDB]:
    result = await get_users_collection().update_one(
        _id_filter(user_id),
        {"$set": {"last_login_at": _now()}}
    )
    if result.matched_count == 0:
        return None

    return await get_user_by_id(user_id)


async def update_daily_goal(user_id: str, daily_goal: int) -> Optional[UserInDB]:
    result = await get_users_collection().update_one(
        _id_filter(user_id),
        {"$set": {"daily_goal": daily_goal}}
    )
    if result.matched_count == 0:
        return None

    return await get_user_by_id(user_id)


async def save_study_state(user: UserInDB) -> None:
    """
    원장 계산 결과(세션/누적시간/스트릭/업적/스케줄)를 한 번에 저장합니다.
    """
    dumped = user.model_dump(by_alias=True)
    fields = (
        "study_sessions",
        "study_schedules",
        "total_study_time",
        "weekly_study_time",
        "monthly_study_time",
        "current_streak",
        "last_study_date",
        "achievements",
    )
    result = await get_users_collection().update_one(
        _id_filter(user.id),
        {"$set": {f: dumped[f] for f in fields}},
    )
    if result.matched_count == 0:
        raise NotFoundError("User not found")


# ---------- FRIENDS ----------

async def add_friend(user_id: str, invite_code: str) -> UserInDB:
    """
    초대 코드로 친구 추가. 양쪽 문서의 friends 를 함께 갱신합니다 (대칭 관계).
    """
    friend = await get_user_by_invite_code(invite_code)
    if friend is None:
        raise HTTPException(status_code=404, detail="Invalid invite code")

    if friend.id == str(user_id):
        raise HTTPException(status_code=400, detail="Cannot add yourself as a friend")

    me = await require_user(user_id)
    if friend.id in me.friends:
        raise HTTPException(status_code=400, detail="User is already your friend")

    col = get_users_collection()
    await col.update_one(_id_filter(me.id), {"$addToSet": {"friends": friend.id}})
    await col.update_one(_id_filter(friend.id), {"$addToSet": {"friends": me.id}})
    logger.info("Users %s and %s are now friends", me.id, friend.id)
    return friend


async def remove_friend(user_id: str, friend_id: str) -> None:
    col = get_users_collection()
    friend_id = _strip_or_none(friend_id) or friend_id
    await col.update_one(_id_filter(user_id), {"$pull": {"friends": friend_id}})
    await col.update_one(_id_filter(friend_id), {"$pull": {"friends": str(user_id)}})
