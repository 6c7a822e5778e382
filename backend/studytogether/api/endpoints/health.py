# backend/studytogether/api/endpoints/health.py

import logging

from fastapi import APIRouter, Request

from studytogether.db.mongo import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request):
    """
    [운영] 헬스 체크
    - 서버 생존 여부 + Mongo 연결 여부 + 현재 접속자 수
    """
    mongo_ok = False
    mongo_error = None

    try:
        await get_db().command("ping")
        mongo_ok = True
    except Exception as e:
        logger.warning("Mongo ping failed: %s", e)
        mongo_error = str(e)

    presence = getattr(request.app.state, "presence", None)

    return {
        "status": "ok" if mongo_ok else "degraded",
        "mongo": mongo_ok,
        "mongo_error": mongo_error,
        "online_users": len(presence) if presence is not None else 0,
    }
