from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from studytogether.core.security import decode_access_token
from studytogether.services.presence import PresenceHub

# FastAPI가 스와거 문서에서 토큰 입력창을 보여주게 함
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/google/verify")


async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """
    JWT 토큰을 검증하고 user_id (sub)를 반환합니다.
    """
    user_id = decode_access_token(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user_id


def get_presence_hub(request: Request) -> PresenceHub:
    """lifespan 에서 app.state 에 올려둔 프로세스 단위 레지스트리"""
    return request.app.state.presence
