# backend/studytogether/api/endpoints/users.py

from fastapi import APIRouter, Depends, HTTPException, Query, status

from studytogether.api.deps import get_current_user_id, get_presence_hub
from studytogether.crud import schedules as schedule_crud
from studytogether.crud import sessions as session_crud
from studytogether.crud import users as users_crud
from studytogether.models.user import UserInDB
from studytogether.schemas.session import AchievementRead
from studytogether.schemas.user import (
    FriendAdd,
    FriendAddResponse,
    FriendListResponse,
    FriendRead,
    ProfileRead,
    RankingFilter,
    RankingsResponse,
    SuccessMessage,
    UserRead,
)
from studytogether.services.presence import PresenceHub

router = APIRouter(prefix="/api/users", tags=["Users"])


def _to_user_read(user: UserInDB) -> UserRead:
    return UserRead(
        id=str(user.id),
        username=user.username,
        email=user.email,
        avatar=user.avatar,
        friend_invite_code=user.friend_invite_code,
        friends=user.friends,
        created_at=user.created_at,
        last_login_at=user.last_login_at,
        total_study_time=user.total_study_time,
        weekly_study_time=user.weekly_study_time,
        monthly_study_time=user.monthly_study_time,
        daily_goal=user.daily_goal,
        current_streak=user.current_streak,
        achievements=[AchievementRead.model_validate(a) for a in user.achievements],
    )


def _to_friend_read(friend: UserInDB) -> FriendRead:
    return FriendRead(
        id=str(friend.id),
        username=friend.username,
        email=friend.email,
        avatar=friend.avatar,
        friend_invite_code=friend.friend_invite_code,
        total_study_time=friend.total_study_time,
        weekly_study_time=friend.weekly_study_time,
        monthly_study_time=friend.monthly_study_time,
        recent_sessions=[session_crud.serialize_session(s) for s in friend.study_sessions[-5:]],
    )


async def _refresh_presence(presence: PresenceHub, *user_ids: str) -> None:
    """친구 관계 변경 후 접속 중인 유저들의 팬아웃 대상을 다시 로딩"""
    for uid in user_ids:
        if uid in presence:
            presence.update_friends(uid, await users_crud.get_friend_ids(uid))


@router.get("/me", response_model=UserRead)
async def read_my_profile(user_id: str = Depends(get_current_user_id)):
    user = await users_crud.get_user_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    return _to_user_read(user)


@router.get("/rankings", response_model=RankingsResponse)
async def read_rankings(
    filter: RankingFilter = Query(default="total"),
    user_id: str = Depends(get_current_user_id),
):
    rankings = await users_crud.get_rankings(filter)
    my_rank = next((r for r in rankings if r.id == str(user_id)), None)
    return RankingsResponse(rankings=rankings, my_rank=my_rank)


@router.post("/add-friend", response_model=FriendAddResponse)
async def add_friend(
    payload: FriendAdd,
    user_id: str = Depends(get_current_user_id),
    presence: PresenceHub = Depends(get_presence_hub),
):
    friend = await users_crud.add_friend(user_id, payload.invite_code)
    await _refresh_presence(presence, str(user_id), friend.id)
    return FriendAddResponse(friend=_to_friend_read(friend))


@router.delete("/remove-friend/{friend_id}", response_model=SuccessMessage)
async def remove_friend(
    friend_id: str,
    user_id: str = Depends(get_current_user_id),
    presence: PresenceHub = Depends(get_presence_hub),
):
    await users_crud.remove_friend(user_id, friend_id)
    await _refresh_presence(presence, str(user_id), friend_id)
    return SuccessMessage(message="Friend removed successfully")


@router.get("/friends", response_model=FriendListResponse)
async def read_friends(user_id: str = Depends(get_current_user_id)):
    friends = await users_crud.get_friends(user_id)
    return FriendListResponse(friends=[_to_friend_read(f) for f in friends])


@router.get("/profile/{profile_id}", response_model=ProfileRead)
async def read_profile(
    profile_id: str,
    user_id: str = Depends(get_current_user_id),
):
    """
    친구(또는 본인)의 프로필만 조회할 수 있습니다.
    """
    user = await users_crud.get_user_by_id(profile_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    if user.id != str(user_id) and str(user_id) not in user.friends:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only view friends' profiles")

    return ProfileRead(
        id=str(user.id),
        username=user.username,
        avatar=user.avatar,
        total_study_time=user.total_study_time,
        weekly_study_time=user.weekly_study_time,
        monthly_study_time=user.monthly_study_time,
        study_schedules=[schedule_crud.serialize_schedule(s) for s in user.study_schedules],
        recent_sessions=[session_crud.serialize_session(s) for s in user.study_sessions[-10:]],
    )
