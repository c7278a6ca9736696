from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from race.messaging.protocol import ConnectionProtocol


class RoundPhase(StrEnum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    FINISHED = "finished"


class PlayerInfo(BaseModel):
    """Player record as sent to clients."""

    id: str
    name: str
    score: int
    wpm: float


@dataclass
class Player:
    """A participant in a race room.

    Keyed by its connection id. The name is fixed at join time; score and wpm
    are reset to 0 whenever a new round starts.
    """

    connection: ConnectionProtocol
    name: str
    score: int = 0
    wpm: float = 0

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    def reset_progress(self) -> None:
        self.score = 0
        self.wpm = 0

    def to_info(self) -> PlayerInfo:
        return PlayerInfo(id=self.connection_id, name=self.name, score=self.score, wpm=self.wpm)
