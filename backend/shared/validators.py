"""Helpers for parsing list-valued settings from the environment."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from pydantic_settings import EnvSettingsSource

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def parse_origin_list(value: str | list[str]) -> list[str]:
    """Parse a list of origins given either as a list, a JSON array or CSV.

    Empty input (``""``, ``"[]"``, ``","``) is rejected with ValueError, since a
    server that allows no origin at all is always a misconfiguration.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(decoded, list) or any(not isinstance(item, str) for item in decoded):
                raise ValueError("JSON value must be an array of strings")
            items = [item.strip() for item in decoded]
        else:
            items = [part.strip() for part in text.split(",")]
    else:
        items = [item.strip() for item in value]

    origins = [item for item in items if item]
    if not origins:
        raise ValueError("Origin list must not be empty")
    return origins


class RawListEnvSettingsSource(EnvSettingsSource):
    """Env source that hands list fields to validators as raw strings.

    pydantic-settings JSON-decodes complex (list) fields before validators run,
    which breaks the CSV form accepted by parse_origin_list.
    """

    raw_fields: frozenset[str] = frozenset({"cors_origins"})

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in self.raw_fields and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
