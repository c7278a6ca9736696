from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter

from race.session.models import PlayerInfo

MAX_ROOM_ID_LENGTH = 50
MAX_NAME_LENGTH = 50
MAX_TYPED_TEXT_LENGTH = 20000


class ClientMessageType(StrEnum):
    JOIN_ROOM = "join-room"
    START_GAME = "start-game"
    PLAYER_TYPED = "player-typed"
    LEAVE = "leave"
    PING = "ping"


class SessionMessageType(StrEnum):
    PLAYERS = "players"
    PLAYER_JOINED = "player-joined"
    PLAYER_LEFT = "player-left"
    NEW_HOST = "new-host"
    GAME_STARTED = "game-started"
    PLAYER_SCORE = "player-score"
    GAME_FINISHED = "game-finished"
    ERROR = "error"
    PONG = "pong"


class SessionErrorCode(StrEnum):
    INVALID_MESSAGE = "invalid_message"
    INVALID_ROOM_ID = "invalid_room_id"
    INVALID_NAME = "invalid_name"
    ALREADY_IN_ROOM = "already_in_room"
    NOT_IN_ROOM = "not_in_room"
    GAME_IN_PROGRESS = "game_in_progress"
    GAME_ALREADY_STARTED = "game_already_started"
    NOT_HOST = "not_host"
    GAME_NOT_STARTED = "game_not_started"
    SERVER_AT_CAPACITY = "server_at_capacity"
    RATE_LIMITED = "rate_limited"
    ACTION_FAILED = "action_failed"


# --- client -> server ---


class JoinRoomMessage(BaseModel):
    # blank ids/names are rejected by the session manager with dedicated codes
    type: Literal[ClientMessageType.JOIN_ROOM] = ClientMessageType.JOIN_ROOM
    room_id: str = Field(max_length=MAX_ROOM_ID_LENGTH)
    name: str = Field(max_length=MAX_NAME_LENGTH)


class StartGameMessage(BaseModel):
    type: Literal[ClientMessageType.START_GAME] = ClientMessageType.START_GAME


class PlayerTypedMessage(BaseModel):
    type: Literal[ClientMessageType.PLAYER_TYPED] = ClientMessageType.PLAYER_TYPED
    text: str = Field(max_length=MAX_TYPED_TEXT_LENGTH)
    wpm: float = Field(default=0, ge=0, allow_inf_nan=False)


class LeaveMessage(BaseModel):
    type: Literal[ClientMessageType.LEAVE] = ClientMessageType.LEAVE


class PingMessage(BaseModel):
    type: Literal[ClientMessageType.PING] = ClientMessageType.PING


ClientMessage = Annotated[
    JoinRoomMessage | StartGameMessage | PlayerTypedMessage | LeaveMessage | PingMessage,
    Field(discriminator="type"),
]

_client_message_adapter = TypeAdapter(ClientMessage)


def parse_client_message(data: dict[str, Any]) -> ClientMessage:
    """Validate a decoded frame into a typed client message."""
    return _client_message_adapter.validate_python(data)


# --- server -> client ---


class PlayersMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYERS] = SessionMessageType.PLAYERS
    players: list[PlayerInfo]


class PlayerJoinedMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_JOINED] = SessionMessageType.PLAYER_JOINED
    player: PlayerInfo


class PlayerLeftMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_LEFT] = SessionMessageType.PLAYER_LEFT
    id: str


class NewHostMessage(BaseModel):
    type: Literal[SessionMessageType.NEW_HOST] = SessionMessageType.NEW_HOST
    id: str


class GameStartedMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_STARTED] = SessionMessageType.GAME_STARTED
    paragraph: str


class PlayerScoreMessage(BaseModel):
    type: Literal[SessionMessageType.PLAYER_SCORE] = SessionMessageType.PLAYER_SCORE
    id: str
    score: int
    wpm: float


class GameFinishedMessage(BaseModel):
    type: Literal[SessionMessageType.GAME_FINISHED] = SessionMessageType.GAME_FINISHED


class ErrorMessage(BaseModel):
    type: Literal[SessionMessageType.ERROR] = SessionMessageType.ERROR
    code: SessionErrorCode
    message: str


class PongMessage(BaseModel):
    type: Literal[SessionMessageType.PONG] = SessionMessageType.PONG
