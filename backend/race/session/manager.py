from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from race.messaging.types import ErrorMessage, PongMessage, SessionErrorCode
from race.session.registry import RegistryFullError, RoomRegistry
from race.session.session import SessionClosedError
from race.session.types import RoomInfo

if TYPE_CHECKING:
    from race.logic.paragraph import ParagraphProvider
    from race.logic.settings import RaceSettings
    from race.messaging.protocol import ConnectionProtocol
    from race.session.session import RaceSession

logger = structlog.get_logger()


class SessionManager:
    """Bind connections to rooms and forward their operations.

    A connection belongs to at most one room at a time. All room state lives in
    the RaceSession; this class only tracks membership.
    """

    def __init__(
        self,
        paragraph_provider: ParagraphProvider,
        settings: RaceSettings | None = None,
        max_rooms: int | None = None,
    ) -> None:
        self._registry = RoomRegistry(paragraph_provider, settings=settings, max_rooms=max_rooms)
        self._connections: dict[str, ConnectionProtocol] = {}
        self._memberships: dict[str, str] = {}  # connection_id -> room_id

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def room_count(self) -> int:
        return self._registry.room_count

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register_connection(self, connection: ConnectionProtocol) -> None:
        self._connections[connection.connection_id] = connection

    def unregister_connection(self, connection: ConnectionProtocol) -> None:
        self._connections.pop(connection.connection_id, None)
        self._memberships.pop(connection.connection_id, None)

    def get_room_id(self, connection_id: str) -> str | None:
        return self._memberships.get(connection_id)

    def get_rooms_info(self) -> list[RoomInfo]:
        return [
            RoomInfo(
                room_id=session.room_id,
                phase=session.phase,
                player_count=session.player_count,
                players=session.player_names,
            )
            for session in self._registry.sessions()
        ]

    async def join_room(self, connection: ConnectionProtocol, room_id: str, name: str) -> None:
        if not room_id.strip():
            await self._send_error(connection, SessionErrorCode.INVALID_ROOM_ID, "room does not exist")
            return
        if not name.strip():
            await self._send_error(connection, SessionErrorCode.INVALID_NAME, "invalid name")
            return

        current = self._memberships.get(connection.connection_id)
        if current is not None and current != room_id:
            await self._send_error(
                connection,
                SessionErrorCode.ALREADY_IN_ROOM,
                "you must leave your current room first",
            )
            return

        structlog.contextvars.bind_contextvars(room_id=room_id)

        # a session picked up here can lose its last player before our join
        # runs; it is then already out of the registry, so a retry gets a new one
        while True:
            try:
                session = self._registry.get_or_create(room_id)
            except RegistryFullError:
                await self._send_error(
                    connection,
                    SessionErrorCode.SERVER_AT_CAPACITY,
                    "server is at capacity, try again later",
                )
                structlog.contextvars.unbind_contextvars("room_id")
                return
            try:
                joined = await session.join(connection, name)
            except SessionClosedError:
                logger.debug("room closed before join, retrying")
                continue
            break

        if joined:
            self._memberships[connection.connection_id] = room_id
        else:
            structlog.contextvars.unbind_contextvars("room_id")

    async def start_game(self, connection: ConnectionProtocol) -> None:
        session = await self._require_session(connection)
        if session is not None:
            await session.start(connection)

    async def player_typed(self, connection: ConnectionProtocol, text: str, wpm: float) -> None:
        session = await self._require_session(connection)
        if session is not None:
            await session.player_typed(connection, text, wpm)

    async def leave_room(self, connection: ConnectionProtocol) -> None:
        session = await self._require_session(connection)
        if session is None:
            return
        self._memberships.pop(connection.connection_id, None)
        await session.remove_player(connection.connection_id)
        structlog.contextvars.unbind_contextvars("room_id")

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        """Treat a closed transport like a leave, then forget the connection."""
        room_id = self._memberships.pop(connection.connection_id, None)
        if room_id is not None:
            session = self._registry.get(room_id)
            if session is not None:
                await session.remove_player(connection.connection_id)
        self.unregister_connection(connection)

    async def handle_ping(self, connection: ConnectionProtocol) -> None:
        await connection.send_message(PongMessage().model_dump())

    def shutdown(self) -> None:
        """Cancel all armed round timers."""
        logger.info("shutting down session manager", room_count=self.room_count)
        self._registry.shutdown()

    async def _require_session(self, connection: ConnectionProtocol) -> RaceSession | None:
        room_id = self._memberships.get(connection.connection_id)
        session = self._registry.get(room_id) if room_id is not None else None
        if session is None:
            await self._send_error(connection, SessionErrorCode.NOT_IN_ROOM, "you must join a room first")
        return session

    async def _send_error(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("session error sent to client", error_code=code, error_message=message)
        await connection.send_message(ErrorMessage(code=code, message=message).model_dump())
