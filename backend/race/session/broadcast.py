"""Delivery helpers for roster broadcasts and single-connection replies."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from race.messaging.protocol import ConnectionProtocol
    from race.session.models import Player


async def send_to_connection(connection: ConnectionProtocol, message: dict[str, Any]) -> None:
    """Send to one connection, ignoring a socket that is already gone."""
    with contextlib.suppress(RuntimeError, OSError):
        await connection.send_message(message)


async def broadcast_to_players(players: Iterable[Player], message: dict[str, Any]) -> None:
    """Send message to each player; a dead socket never blocks the others.

    The roster is snapshotted first so a concurrent removal cannot change it
    while we yield on send.
    """
    for player in list(players):
        await send_to_connection(player.connection, message)
