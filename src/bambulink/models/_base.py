"""Base model and enum for printer report and state models.

Every report model inherits from :class:`BambuBaseModel` which provides:

* frozen instances that ignore unknown keys, so new firmware fields
  never break parsing.
* A ``model_validator(mode="before")`` that drops ``None`` and blank
  strings so the field default (absent) is used.

The ``Opt*`` annotated types wrap the total coercion helpers from
:mod:`bambulink.ingestion.normalize`; a value that cannot be coerced
becomes ``None`` instead of raising a validation error.

State enums inherit from :class:`BambuEnum` whose :meth:`BambuEnum.coerce`
maps unknown values to ``None`` rather than raising ``ValueError``.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, model_validator

from bambulink.ingestion.normalize import (
    mapping_items,
    safe_bool,
    safe_number,
    safe_str,
)

OptNumber = Annotated[int | float | None, BeforeValidator(safe_number)]
"""Number, numeric-looking string, or absent."""

OptStr = Annotated[str | None, BeforeValidator(safe_str)]
"""Non-blank string (scalars are stringified), or absent."""

OptBool = Annotated[bool | None, BeforeValidator(safe_bool)]
"""Boolean (``"true"``/``"false"`` accepted), or absent."""

ObjectList = Annotated[list[dict[str, Any]], BeforeValidator(mapping_items)]
"""List of object entries; non-object entries and non-list values are dropped."""


class BambuEnum(enum.StrEnum):
    """Base for string enums reported by the printer."""

    @classmethod
    def coerce(cls, value: Any) -> Self | None:
        """Return the member for *value*, or ``None`` when it has no mapped member."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class BambuBaseModel(BaseModel):
    """Base for raw printer report models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            cleaned[key] = value
        return cleaned
