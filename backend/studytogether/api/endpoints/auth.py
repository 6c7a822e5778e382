import logging

from fastapi import APIRouter, HTTPException
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from pydantic import BaseModel

from studytogether.core.config import settings
from studytogether.core.security import create_access_token, create_refresh_token
from studytogether.crud import users as users_crud

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class GoogleTokenBody(BaseModel):
    token: str


def verify_google_id_token(token: str) -> dict:
    """구글 서버 공개키로 ID 토큰 검증. 실패 시 ValueError."""
    return id_token.verify_oauth2_token(
        token,
        google_requests.Request(),
        audience=settings.GOOGLE_CLIENT_ID,
    )


@router.post("/google/verify", response_model=TokenResponse)
async def verify_google_token(body: GoogleTokenBody):
    """
    Google ID 토큰 검증 후 유저 조회/생성 (신규 유저는 고유 초대 코드 발급)
    """
    if not settings.GOOGLE_CLIENT_ID:
        raise HTTPException(status_code=500, detail="Google OAuth env is not configured")

    try:
        idinfo = verify_google_id_token(body.token)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Google token")

    email = idinfo.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Google token missing email")

    user = await users_crud.get_user_by_email(email)
    if user:
        await users_crud.update_last_login(user.id)
    else:
        user = await users_crud.create_user(email=email, google_id=idinfo.get("sub"))

    logger.info("User %s logged in", user.id)
    return TokenResponse(
        access_token=create_access_token(user.id),
        refresh_token=create_refresh_token(user.id),
    )
