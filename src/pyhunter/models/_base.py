"""Base model for telemetry messages.

Every telemetry model inherits from :class:`HunterBaseModel` which provides:

* A ``model_validator(mode="before")`` that strips sentinel values
  (``""``, ``"--"``, NaN, infinities) so the field default (``None``) is used.
* A ``raw`` dict that captures the original payload.
* Lenient numeric coercion: a field that cannot be parsed becomes ``None``
  instead of failing the whole message.
"""

from __future__ import annotations

import math
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pyhunter.ingestion.normalize import safe_float, safe_int

# Sentinel strings publishers use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan"})


class HunterBaseModel(BaseModel):
    """Base for telemetry message models."""

    _FLOAT_FIELDS: ClassVar[tuple[str, ...]] = ()
    """Fields coerced with :func:`safe_float` before validation."""

    _INT_FIELDS: ClassVar[tuple[str, ...]] = ()
    """Fields coerced with :func:`safe_int` before validation."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
    """Original message dict."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and not math.isfinite(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Strip sentinels, coerce numeric fields, and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = HunterBaseModel._clean_dict(original)

        for name in cls._FLOAT_FIELDS:
            if name in cleaned:
                cleaned[name] = safe_float(cleaned[name])
        for name in cls._INT_FIELDS:
            if name in cleaned:
                cleaned[name] = safe_int(cleaned[name])

        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
