"""Per-room race state machine.

Every operation runs under the room's asyncio.Lock, so a room processes its
operations one at a time in arrival order while other rooms run freely.

Phases cycle NOT_STARTED -> IN_PROGRESS -> FINISHED -> IN_PROGRESS -> ...
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from race.logic.paragraph import FALLBACK_PARAGRAPH
from race.logic.scoring import count_matching_words
from race.logic.settings import RaceSettings
from race.logic.timer import RoundTimer
from race.messaging.types import (
    ErrorMessage,
    GameFinishedMessage,
    GameStartedMessage,
    NewHostMessage,
    PlayerJoinedMessage,
    PlayerLeftMessage,
    PlayerScoreMessage,
    PlayersMessage,
    SessionErrorCode,
)
from race.session.broadcast import broadcast_to_players, send_to_connection
from race.session.models import Player, RoundPhase

if TYPE_CHECKING:
    from collections.abc import Callable

    from race.logic.paragraph import ParagraphProvider
    from race.messaging.protocol import ConnectionProtocol
    from race.session.models import PlayerInfo

logger = structlog.get_logger()


class SessionClosedError(Exception):
    """The session lost its last player and was dropped from the registry."""


class RaceSession:
    def __init__(
        self,
        room_id: str,
        paragraph_provider: ParagraphProvider,
        settings: RaceSettings | None = None,
        on_empty: Callable[[RaceSession], None] | None = None,
    ) -> None:
        self.room_id = room_id
        self.phase = RoundPhase.NOT_STARTED
        self.host_id: str | None = None
        self.round_text = ""
        self._players: dict[str, Player] = {}  # connection_id -> Player, in join order
        self._paragraph_provider = paragraph_provider
        self._settings = settings or RaceSettings()
        self._on_empty = on_empty
        self._lock = asyncio.Lock()
        self._timer = RoundTimer()
        self._round_number = 0
        self._closed = False

    @property
    def player_names(self) -> list[str]:
        return [p.name for p in self._players.values()]

    @property
    def player_count(self) -> int:
        return len(self._players)

    @property
    def is_empty(self) -> bool:
        return not self._players

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def timer_pending(self) -> bool:
        return self._timer.is_pending

    def get_player(self, connection_id: str) -> Player | None:
        return self._players.get(connection_id)

    def roster(self) -> list[PlayerInfo]:
        return [p.to_info() for p in self._players.values()]

    # --- operations ---

    async def join(self, connection: ConnectionProtocol, name: str) -> bool:
        """Add a player to the room.

        Returns True when the connection is in the roster afterwards. Raises
        SessionClosedError if the room was deleted before the join ran; the
        caller should retry against a fresh session.
        """
        async with self._lock:
            if self._closed:
                raise SessionClosedError(self.room_id)

            connection_id = connection.connection_id
            if connection_id not in self._players:
                if self.phase == RoundPhase.IN_PROGRESS:
                    await self._reject(
                        connection,
                        SessionErrorCode.GAME_IN_PROGRESS,
                        "game already in progress, wait for this round",
                    )
                    return False

                player = Player(connection=connection, name=name)
                self._players[connection_id] = player
                if self.host_id is None:
                    self.host_id = connection_id
                logger.info("player joined", player_name=name, player_count=self.player_count)
                await self._broadcast(PlayerJoinedMessage(player=player.to_info()).model_dump())

            # private snapshot so a late joiner sees what the others already have
            await self._send(connection, PlayersMessage(players=self.roster()).model_dump())
            await self._send(connection, NewHostMessage(id=self.host_id).model_dump())
            return True

    async def start(self, connection: ConnectionProtocol) -> None:
        async with self._lock:
            if self._closed:
                return

            if self.phase == RoundPhase.IN_PROGRESS:
                await self._reject(connection, SessionErrorCode.GAME_ALREADY_STARTED, "game has already started")
                return

            if connection.connection_id != self.host_id:
                await self._reject(
                    connection,
                    SessionErrorCode.NOT_HOST,
                    "you are not the host, only the host can start the game",
                )
                return

            for player in self._players.values():
                player.reset_progress()
            await self._broadcast(PlayersMessage(players=self.roster()).model_dump())

            self.phase = RoundPhase.IN_PROGRESS
            self._round_number += 1
            round_number = self._round_number

            # the fetch may be slow; the lock stays held so the room's other
            # operations queue behind it instead of seeing a round with no text
            try:
                self.round_text = await self._paragraph_provider.fetch_paragraph()
            except Exception:
                logger.exception("paragraph provider raised, using fallback")
                self.round_text = FALLBACK_PARAGRAPH
            if self._closed:
                return

            await self._broadcast(GameStartedMessage(paragraph=self.round_text).model_dump())
            self._timer.start(
                self._settings.round_duration_seconds,
                lambda: self._handle_timeout(round_number),
            )
            logger.info(
                "round started",
                round_number=round_number,
                word_count=len(self.round_text.split()),
                duration=self._settings.round_duration_seconds,
            )

    async def player_typed(self, connection: ConnectionProtocol, text: str, wpm: float) -> None:
        async with self._lock:
            if self._closed:
                return

            if self.phase != RoundPhase.IN_PROGRESS:
                await self._reject(connection, SessionErrorCode.GAME_NOT_STARTED, "game has not started yet")
                return

            player = self._players.get(connection.connection_id)
            if player is None:
                await self._reject(connection, SessionErrorCode.NOT_IN_ROOM, "you must join a room first")
                return

            # wpm is client-reported and taken as-is once validated as finite and >= 0
            player.score = count_matching_words(self.round_text, text)
            player.wpm = wpm
            await self._broadcast(
                PlayerScoreMessage(id=player.connection_id, score=player.score, wpm=player.wpm).model_dump(),
            )

    async def remove_player(self, connection_id: str) -> None:
        """Remove a player on explicit leave or transport disconnect.

        Idempotent. Promotes the next player in join order when the host goes;
        deletes the room (cancelling its timer) when the last player goes.
        """
        async with self._lock:
            player = self._players.pop(connection_id, None)
            if player is None:
                return

            logger.info("player left", player_name=player.name, player_count=self.player_count)

            if connection_id == self.host_id:
                if self._players:
                    self.host_id = next(iter(self._players))
                    logger.info("host reassigned", host_id=self.host_id)
                    await self._broadcast(NewHostMessage(id=self.host_id).model_dump())
                else:
                    self._close()
                    return

            await self._broadcast(PlayerLeftMessage(id=connection_id).model_dump())

    async def _handle_timeout(self, round_number: int) -> None:
        async with self._lock:
            # stale timer from a deleted room or an earlier round
            if self._closed or round_number != self._round_number or self.phase != RoundPhase.IN_PROGRESS:
                return

            self.phase = RoundPhase.FINISHED
            logger.info("round finished", round_number=round_number)
            await self._broadcast(GameFinishedMessage().model_dump())
            await self._broadcast(PlayersMessage(players=self.roster()).model_dump())

    def shutdown(self) -> None:
        """Cancel the round timer without touching the roster (server shutdown)."""
        self._timer.cancel()

    # --- internal helpers ---

    def _close(self) -> None:
        self._closed = True
        self.host_id = None
        self._timer.cancel()
        logger.info("room is empty, removing")
        if self._on_empty is not None:
            self._on_empty(self)

    async def _broadcast(self, message: dict[str, Any]) -> None:
        await broadcast_to_players(self._players.values(), message)

    @staticmethod
    async def _send(connection: ConnectionProtocol, message: dict[str, Any]) -> None:
        await send_to_connection(connection, message)

    async def _reject(self, connection: ConnectionProtocol, code: SessionErrorCode, message: str) -> None:
        logger.warning("operation rejected", error_code=code, error_message=message, phase=self.phase)
        await self._send(connection, ErrorMessage(code=code, message=message).model_dump())
