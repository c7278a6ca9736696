"""Race server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from race.logic.paragraph import DEFAULT_PARAGRAPH_URL, DEFAULT_TIMEOUT_SECONDS
from race.logic.settings import DEFAULT_ROUND_DURATION_SECONDS, RaceSettings
from shared.validators import RawListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class RaceServerSettings(BaseSettings):
    model_config = {"env_prefix": "RACE_"}

    max_rooms: int = Field(default=100, ge=1)
    log_dir: str = Field(default="backend/logs/race", min_length=1)
    cors_origins: list[str] = ["http://localhost:3000"]
    round_duration_seconds: float = Field(default=DEFAULT_ROUND_DURATION_SECONDS, gt=0)
    paragraph_url: str = Field(default=DEFAULT_PARAGRAPH_URL, min_length=1)
    paragraph_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    # serve the built-in text instead of calling paragraph_url
    offline_paragraphs: bool = False

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    def race_settings(self) -> RaceSettings:
        return RaceSettings(round_duration_seconds=self.round_duration_seconds)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, RawListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
