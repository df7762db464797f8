"""Base model for pywaypoint value objects.

Every model inherits from :class:`WaypointModel` which provides:

* ``alias_generator=to_camel`` so the camelCase keys used by the app's
  user documents (``displayName``, ``photoUrl``) map to snake_case fields.
* A ``model_validator(mode="before")`` that drops ``None`` and NaN values
  so the field default is used instead.
* Immutability: snapshots handed to observers can never be changed in place.
"""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


class WaypointModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_missing_values(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned
