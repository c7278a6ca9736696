"""Process-wide map from room id to its RaceSession."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from race.session.session import RaceSession

if TYPE_CHECKING:
    from race.logic.paragraph import ParagraphProvider
    from race.logic.settings import RaceSettings

logger = structlog.get_logger()


class RegistryFullError(Exception):
    """A new room was requested while the registry is at capacity."""


class RoomRegistry:
    """Own the room map; the only state shared between rooms.

    get_or_create and remove never await, so on the event loop each runs to
    completion without interleaving: two first-joins racing for the same
    unknown room id always end up with the same session.
    """

    def __init__(
        self,
        paragraph_provider: ParagraphProvider,
        settings: RaceSettings | None = None,
        max_rooms: int | None = None,
    ) -> None:
        self._paragraph_provider = paragraph_provider
        self._settings = settings
        self._max_rooms = max_rooms
        self._sessions: dict[str, RaceSession] = {}

    @property
    def room_count(self) -> int:
        return len(self._sessions)

    def get(self, room_id: str) -> RaceSession | None:
        return self._sessions.get(room_id)

    def sessions(self) -> list[RaceSession]:
        return list(self._sessions.values())

    def get_or_create(self, room_id: str) -> RaceSession:
        session = self._sessions.get(room_id)
        if session is not None:
            return session

        if self._max_rooms is not None and len(self._sessions) >= self._max_rooms:
            raise RegistryFullError(f"room limit of {self._max_rooms} reached")

        session = RaceSession(
            room_id,
            paragraph_provider=self._paragraph_provider,
            settings=self._settings,
            on_empty=self._on_session_empty,
        )
        self._sessions[room_id] = session
        logger.info("room created", room_id=room_id, room_count=self.room_count)
        return session

    def remove(self, room_id: str, session: RaceSession) -> None:
        """Drop an empty room. Idempotent.

        Only that exact instance is removed, so a late call for a deleted room
        cannot evict a newer session with the same id. A room that still has
        players is kept.
        """
        current = self._sessions.get(room_id)
        if current is not session or not session.is_empty:
            return
        del self._sessions[room_id]
        logger.info("room removed", room_id=room_id, room_count=self.room_count)

    def shutdown(self) -> None:
        """Cancel every room's round timer."""
        for session in self._sessions.values():
            session.shutdown()

    def _on_session_empty(self, session: RaceSession) -> None:
        self.remove(session.room_id, session)
