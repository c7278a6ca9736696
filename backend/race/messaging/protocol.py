"""Abstract client connection speaking MessagePack frames."""

from abc import ABC, abstractmethod
from typing import Any

from race.messaging.encoder import encode


class ConnectionProtocol(ABC):
    """
    One participant's channel to the server.

    Session logic talks only to this interface, so it can be exercised in
    tests without a real WebSocket.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Opaque identifier, stable for the connection's lifetime."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))
