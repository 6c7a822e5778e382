# backend/studytogether/api/endpoints/realtime.py

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from studytogether.core.exceptions import StudyTogetherError
from studytogether.core.security import decode_access_token
from studytogether.crud import users as users_crud
from studytogether.schemas.presence import PresenceCommand
from studytogether.services.presence import PresenceHub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


async def _drain_outbox(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    """연결별 outbox 를 순서대로 소켓에 씁니다."""
    try:
        while True:
            event = await outbox.get()
            await websocket.send_json(event)
    except (WebSocketDisconnect, RuntimeError):
        # 상대가 이미 끊김. 수신 루프 쪽에서 정리함
        return


def _handle_command(presence: PresenceHub, user_id: str, command: PresenceCommand, reply) -> None:
    if command.type == "start_study":
        presence.start_activity(user_id, command.subject, command.target)
    elif command.type == "stop_study":
        duration = presence.stop_activity(user_id)
        if duration is not None:
            reply({"type": "study_stopped", "duration": duration})
    elif command.type == "get_online_friends":
        online = presence.query_online_friends(user_id, command.friend_ids)
        reply({"type": "online_friends", "friend_ids": sorted(online)})
    elif command.type == "ping":
        reply({"type": "pong"})


@router.websocket("/ws")
async def presence_socket(websocket: WebSocket, token: Optional[str] = Query(default=None)):
    """
    친구 접속/공부 상태 실시간 중계.
    토큰이 유효하지 않거나 친구 목록을 못 불러오면 등록 전에 연결을 닫습니다.
    """
    presence: PresenceHub = websocket.app.state.presence

    user_id = decode_access_token(token) if token else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        friend_ids = await users_crud.get_friend_ids(user_id)
    except Exception:
        logger.exception("Could not load friends for %s, closing connection", user_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()

    outbox: asyncio.Queue = asyncio.Queue()
    entry = presence.connect(user_id, friend_ids, outbox.put_nowait)
    writer = asyncio.create_task(_drain_outbox(websocket, outbox))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))

            raw = message.get("text")
            if raw is None:
                # 바이너리 프레임은 받지 않음
                outbox.put_nowait({"type": "error", "detail": "Invalid message"})
                continue
            try:
                command = PresenceCommand.model_validate_json(raw)
            except PydanticValidationError:
                outbox.put_nowait({"type": "error", "detail": "Invalid message"})
                continue

            try:
                _handle_command(presence, user_id, command, outbox.put_nowait)
            except StudyTogetherError as e:
                # 예: 새 연결에 밀려난 뒤 그 연결도 끊긴 상태에서 start_study
                outbox.put_nowait({"type": "error", "detail": e.detail})
    except WebSocketDisconnect:
        pass
    finally:
        presence.disconnect(user_id, entry)
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
