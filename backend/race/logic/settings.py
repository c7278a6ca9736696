from pydantic import BaseModel, ConfigDict, Field

DEFAULT_ROUND_DURATION_SECONDS = 60.0


class RaceSettings(BaseModel):
    """Per-room race tunables."""

    model_config = ConfigDict(frozen=True)

    round_duration_seconds: float = Field(default=DEFAULT_ROUND_DURATION_SECONDS, gt=0)
