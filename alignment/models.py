"""Pydantic models -- shared contract between the engine shell and the front end.

API Naming Contract:
  - Python code uses snake_case field names.
  - The front end expects camelCase; every model inherits CamelModel so that
    model.model_dump(by_alias=True) produces camelCase keys, and
    populate_by_name=True accepts either spelling on input.
  - Keys *inside* the derived/status/display dicts are quantity names
    (``toe_front_left``), not model fields, and are never re-cased.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from alignment.geometry.engine import DIMENSION_DEFAULTS, QuantityStatus


# ---------------------------------------------------------------------------
# Base model for camelCase serialization
# ---------------------------------------------------------------------------

class CamelModel(BaseModel):
    """Base for models serialized to the front end with camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# ---------------------------------------------------------------------------
# MeasurementSet -- complete set of raw inputs for one stateless computation
# ---------------------------------------------------------------------------

class MeasurementSet(CamelModel):
    """Vehicle dimensions and laser readings, millimetres.

    Dimensions default to the nominal vehicle shape.  Readings left out (or
    null) stay unset, so the quantities that depend on them come back
    unresolved.
    """

    model_config = ConfigDict(allow_inf_nan=False)

    # ── Vehicle / rig dimensions ─────────────────────────────────────
    wheelbase: float = DIMENSION_DEFAULTS["wheelbase"]
    front_overhang: float = DIMENSION_DEFAULTS["front_overhang"]
    rear_overhang: float = DIMENSION_DEFAULTS["rear_overhang"]
    laser_width_front: float = DIMENSION_DEFAULTS["laser_width_front"]
    laser_width_rear: float = DIMENSION_DEFAULTS["laser_width_rear"]
    wheel_diameter: float = DIMENSION_DEFAULTS["wheel_diameter"]

    # ── Wheel-face readings (toe): W{axle}{front|back}{side} ─────────
    wffl: float | None = None
    wfbl: float | None = None
    wffr: float | None = None
    wfbr: float | None = None
    wbfl: float | None = None
    wbbl: float | None = None
    wbfr: float | None = None
    wbbr: float | None = None

    # ── Wheel-height readings (camber): H{axle}{top|bottom}{side} ────
    hftl: float | None = None
    hfbl: float | None = None
    hftr: float | None = None
    hfbr: float | None = None
    hbtl: float | None = None
    hbbl: float | None = None
    hbtr: float | None = None
    hbbr: float | None = None

    @model_validator(mode="before")
    @classmethod
    def normalise_key_case(cls, data: object) -> object:
        """Match input names case-insensitively (``Wffl`` is ``wffl``).

        Both the snake_case name and its camelCase alias are recognised in
        any letter case; keys that match neither are left untouched.
        """
        if not isinstance(data, dict):
            return data
        normalised: dict = {}
        for key, value in data.items():
            if isinstance(key, str):
                key = _FIELD_BY_FOLDED_KEY.get(key.lower(), key)
            normalised[key] = value
        return normalised


_FIELD_BY_FOLDED_KEY: dict[str, str] = {
    spelling.lower(): name
    for name in MeasurementSet.model_fields
    for spelling in (name, to_camel(name))
}


# ---------------------------------------------------------------------------
# WebSocket edit message
# ---------------------------------------------------------------------------

class InputEdit(CamelModel):
    """One field edit: input name plus the text typed into the field."""

    name: str = Field(min_length=1, max_length=64)
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def number_to_text(cls, v: object) -> object:
        """Accept a JSON number as well as text; the engine parses either."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return repr(v)
        return v


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class ComputeResult(CamelModel):
    """Derived values with their status and display text.

    Degenerate (non-finite) values are sent as null; ``status`` tells them
    apart from unresolved ones.
    """

    inputs: dict[str, float] = Field(default_factory=dict)
    derived: dict[str, float | None] = Field(default_factory=dict)
    status: dict[str, QuantityStatus] = Field(default_factory=dict)
    display: dict[str, str] = Field(default_factory=dict)
    readouts: dict[str, str] = Field(default_factory=dict)


class QuantityInfo(CamelModel):
    """Description of one raw input or derived quantity."""

    name: str
    unit: Literal["mm", "deg"]
    inputs: list[str] = Field(default_factory=list)
    default: float | None = None


class EngineInfo(CamelModel):
    """Response from GET /api/info."""

    version: str
    inputs: list[QuantityInfo] = Field(default_factory=list)
    derived: list[QuantityInfo] = Field(default_factory=list)
