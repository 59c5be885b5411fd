"""Shared Pydantic base model for Luna records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class LunaBase(BaseModel):
    """Base model with shared config for all persisted Luna records.

    Field names are snake_case in Python; the persisted JSON uses the
    camelCase aliases declared on each field.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def to_record(self) -> dict[str, Any]:
        """Return the JSON-ready dict written to the key-value store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
