"""Shared WebSocket test helpers."""

from race.messaging.encoder import decode, encode


def send_ws(ws, data: dict) -> None:
    """Send a MessagePack-encoded message over a test WebSocket."""
    ws.send_bytes(encode(data))


def recv_ws(ws) -> dict:
    """Receive and decode a MessagePack message from a test WebSocket."""
    return decode(ws.receive_bytes())


def recv_until(ws, message_type: str, limit: int = 20) -> list[dict]:
    """Read messages until one of message_type arrives; return all read."""
    messages = []
    for _ in range(limit):
        message = recv_ws(ws)
        messages.append(message)
        if message["type"] == message_type:
            return messages
    raise AssertionError(f"no {message_type} message within {limit} messages")
