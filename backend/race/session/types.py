"""
Pydantic models for the session layer.
"""

from pydantic import BaseModel

from race.session.models import RoundPhase


class RoomInfo(BaseModel):
    """Room summary for the /rooms listing."""

    room_id: str
    phase: RoundPhase
    player_count: int
    players: list[str]
