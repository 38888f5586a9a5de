"""Shared validation helpers for service settings."""

import json
from typing import Any

from pydantic.fields import FieldInfo
from pydantic_settings import EnvSettingsSource


def parse_string_list(value: str | list[str], *, allow_empty: bool = False) -> list[str]:
    """Parse a string list from an environment variable or config value.

    Accepts a list of strings, a JSON array string ('["a","b"]') or a
    comma-separated string ('a,b'). Raises ValueError for malformed JSON and,
    unless allow_empty is set, for empty values.
    """
    if isinstance(value, list):
        items = value
    else:
        stripped = value.strip()
        if stripped.startswith("["):
            try:
                items = json.loads(stripped)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON array: {e}") from e
            if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
                raise ValueError("JSON value must be an array of strings")
        else:
            items = [part.strip() for part in stripped.split(",") if part.strip()]

    if not allow_empty and not items:
        raise ValueError("String list value must not be empty")
    return items


_STRING_LIST_FIELDS = {"cors_origins", "share_keywords"}


class StringListEnvSettingsSource(EnvSettingsSource):
    """Env settings source that hands string-list fields to validators as raw strings.

    pydantic-settings JSON-decodes list-typed env vars before validators run,
    which rejects the CSV form. Skipping that step for string-list fields lets
    parse_string_list accept both formats.
    """

    def prepare_field_value(
        self,
        field_name: str,
        field: FieldInfo,
        value: Any,  # noqa: ANN401
        value_is_complex: bool,  # noqa: FBT001
    ) -> Any:  # noqa: ANN401
        if field_name in _STRING_LIST_FIELDS and isinstance(value, str):
            return value
        return super().prepare_field_value(field_name, field, value, value_is_complex)
