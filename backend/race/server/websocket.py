from __future__ import annotations

import contextlib
import re
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from race.messaging.encoder import DecodeError, decode
from race.messaging.protocol import ConnectionProtocol
from race.messaging.types import MAX_ROOM_ID_LENGTH, ClientMessageType, ErrorMessage, SessionErrorCode
from race.server.rate_limit import MessageThrottle

if TYPE_CHECKING:
    from race.messaging.router import MessageRouter

logger = structlog.get_logger()

_ROOM_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")

# 30 messages/sec sustained, burst of 60: a fast typist sends a few
# player-typed updates per second, so this only catches floods.
RATE_LIMIT_RATE = 30.0
RATE_LIMIT_BURST = 60

# disconnect after this many consecutive undecodable frames
MAX_DECODE_ERRORS = 5

INVALID_ROOM_ID_CLOSE_CODE = 4000
TOO_MANY_DECODE_ERRORS_CLOSE_CODE = 4004


def is_valid_room_id(room_id: str) -> bool:
    return bool(_ROOM_ID_PATTERN.match(room_id)) and len(room_id) <= MAX_ROOM_ID_LENGTH


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise ConnectionError("WebSocket already disconnected")
        # text frames count as undecodable
        return message.get("bytes") or b""

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


def _with_path_room_id(data: dict[str, Any], room_id: str | None) -> dict[str, Any]:
    """Fill in the room id from the URL for join-room frames on /ws/{room_id}."""
    if room_id is None or data.get("type") != ClientMessageType.JOIN_ROOM:
        return data
    return {**data, "room_id": room_id}


async def websocket_endpoint(websocket: WebSocket, router: MessageRouter) -> None:
    room_id = websocket.path_params.get("room_id")
    if room_id is not None and not is_valid_room_id(room_id):
        await websocket.close(code=INVALID_ROOM_ID_CLOSE_CODE, reason="invalid_room_id")
        return

    await websocket.accept()

    connection = WebSocketConnection(websocket)
    structlog.contextvars.bind_contextvars(connection_id=connection.connection_id)
    logger.info("websocket connected", path_room_id=room_id)
    await router.handle_connect(connection)

    throttle = MessageThrottle(rate=RATE_LIMIT_RATE, burst=RATE_LIMIT_BURST)
    decode_errors = 0

    try:
        while True:
            raw = await connection.receive_bytes()

            # decode before the rate check so the strike counter sees every frame
            try:
                data = decode(raw)
            except DecodeError as e:
                decode_errors += 1
                logger.warning("decode error", error=str(e), strikes=decode_errors)
                await connection.send_message(
                    ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
                )
                if decode_errors >= MAX_DECODE_ERRORS:
                    logger.info("too many decode errors, disconnecting")
                    await connection.close(code=TOO_MANY_DECODE_ERRORS_CLOSE_CODE, reason="too_many_decode_errors")
                    return
                continue

            decode_errors = 0

            dropped_before = throttle.dropped
            if not throttle.allow():
                if throttle.dropped == 1:
                    logger.warning("rate limited, dropping messages")
                await connection.send_message(
                    ErrorMessage(code=SessionErrorCode.RATE_LIMITED, message="too many messages").model_dump(),
                )
                continue
            if dropped_before:
                logger.info("rate limit lifted", dropped=dropped_before)
            await router.handle_message(connection, _with_path_room_id(data, room_id))
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        logger.info("websocket disconnected")
        await router.handle_disconnect(connection)
        structlog.contextvars.clear_contextvars()
