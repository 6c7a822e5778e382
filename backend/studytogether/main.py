# main.py
import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studytogether.api.endpoints import auth, health, realtime, schedules, study, users
from studytogether.core.config import settings
from studytogether.core.exceptions import NotFoundError, ValidationError
from studytogether.core.logger import setup_logging
from studytogether.db import mongo
from studytogether.services.presence import PresenceHub

load_dotenv()

logger = logging.getLogger(__name__)


# [수명 주기 관리] 로깅/DB 연결, 접속자 레지스트리 생성 및 해제
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    if not settings.is_production:
        logger.warning("Running in %s mode.", settings.ENVIRONMENT)

    await mongo.connect_to_mongo()
    # 접속자 레지스트리는 프로세스 수명과 같이 감 (모듈 로드 시점 아님)
    app.state.presence = PresenceHub()
    yield
    app.state.presence = None
    await mongo.close_mongo_connection()


app = FastAPI(title="StudyTogether Backend", lifespan=lifespan)

# --- 미들웨어 설정 ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)


# --- 도메인 예외 -> HTTP 응답 ---
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": exc.detail})


@app.exception_handler(NotFoundError)
async def not_found_error_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": exc.detail})


@app.get("/")
async def read_root():
    return {"message": "Backend is running!"}


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(users.router)
app.include_router(study.router)
app.include_router(schedules.router)
app.include_router(realtime.router)
