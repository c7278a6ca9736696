from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from pydantic import ValidationError

from race.messaging.types import (
    ErrorMessage,
    JoinRoomMessage,
    LeaveMessage,
    PingMessage,
    PlayerTypedMessage,
    SessionErrorCode,
    StartGameMessage,
    parse_client_message,
)
from race.session.broadcast import send_to_connection

if TYPE_CHECKING:
    from race.messaging.protocol import ConnectionProtocol
    from race.session.manager import SessionManager

logger = structlog.get_logger()


class MessageRouter:
    """
    Routes incoming messages to the session manager.

    Pure dispatch logic, testable without a real WebSocket.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", error=str(e))
            await send_to_connection(
                connection,
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).model_dump(),
            )
            return

        try:
            await self._dispatch(connection, message)
        except Exception:
            # one bad message must not take down the connection or the room
            logger.exception("failed to handle message", message_type=message.type)
            await send_to_connection(
                connection,
                ErrorMessage(code=SessionErrorCode.ACTION_FAILED, message="internal error").model_dump(),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: Any) -> None:
        if isinstance(message, JoinRoomMessage):
            await self._session_manager.join_room(connection, message.room_id, message.name)
        elif isinstance(message, StartGameMessage):
            await self._session_manager.start_game(connection)
        elif isinstance(message, PlayerTypedMessage):
            await self._session_manager.player_typed(connection, message.text, message.wpm)
        elif isinstance(message, LeaveMessage):
            await self._session_manager.leave_room(connection)
        elif isinstance(message, PingMessage):
            await self._session_manager.handle_ping(connection)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        await self._session_manager.handle_disconnect(connection)
