"""Display boundary -- turns derived values into the strings shown on the sheet.

This is the only place where an unresolved value becomes ``0.00``.  Callers
that prefer an empty field pass ``blank_unresolved=True``.
"""

from __future__ import annotations

from typing import Mapping

from alignment.geometry.engine import GeometryEngine, classify, get_formula
from alignment.models import ComputeResult

DEFAULT_DIGITS = 2

# Readout labels of the measurement sheet, per derived quantity.
LABELS: dict[str, str] = {
    "toe_front_left": "Toe Left",
    "toe_front_right": "Toe Right",
    "toe_rear_left": "Toe Left",
    "toe_rear_right": "Toe Right",
    "total_toe_front": "Total Toe",
    "total_toe_rear": "Total Toe",
    "track_width_front": "Front Width",
    "track_width_rear": "Width",
    "car_yaw_angle": "Car angle",
    "laser_half_angle": "Laser half-angle",
    "camber_front_left": "Camber Left",
    "camber_front_right": "Camber Right",
    "camber_rear_left": "Camber Left",
    "camber_rear_right": "Camber Right",
}


def format_value(
    value: float | None,
    digits: int = DEFAULT_DIGITS,
    blank_unresolved: bool = False,
) -> str:
    """Fixed-point text for one value.

    ``None`` becomes ``0.00`` (or ``""``); ``inf``/``nan`` are shown as such.
    A result that rounds to zero is never shown with a minus sign.
    """
    if value is None:
        return "" if blank_unresolved else f"{0.0:.{digits}f}"
    text = f"{value:.{digits}f}"
    if text.startswith("-") and float(text) == 0.0:
        text = text[1:]
    return text


def unit_suffix(name: str) -> str:
    """Degree sign for angles, nothing for lengths."""
    return "°" if get_formula(name).unit == "deg" else ""


def format_snapshot(
    snapshot: Mapping[str, float | None],
    digits: int = DEFAULT_DIGITS,
    blank_unresolved: bool = False,
) -> dict[str, str]:
    """Format every value of a snapshot, keyed by derived name."""
    return {
        name: format_value(value, digits, blank_unresolved)
        for name, value in snapshot.items()
    }


def render_readouts(
    snapshot: Mapping[str, float | None],
    blank_unresolved: bool = False,
) -> dict[str, str]:
    """Labelled readouts, e.g. ``{"toe_front_left": "Toe Left: 1.25°"}``.

    Only quantities that carry a label on the sheet are included.
    """
    out: dict[str, str] = {}
    for name, label in LABELS.items():
        text = format_value(snapshot.get(name), blank_unresolved=blank_unresolved)
        out[name] = f"{label}: {text}{unit_suffix(name) if text else ''}"
    return out


def build_result(engine: GeometryEngine, blank_unresolved: bool = False) -> ComputeResult:
    """Pull every derived quantity from *engine* into a ComputeResult."""
    snapshot = engine.snapshot()
    return ComputeResult(
        inputs=engine.inputs(),
        derived={
            name: value if classify(value) == "resolved" else None
            for name, value in snapshot.items()
        },
        status={name: classify(value) for name, value in snapshot.items()},
        display=format_snapshot(snapshot, blank_unresolved=blank_unresolved),
        readouts=render_readouts(snapshot, blank_unresolved=blank_unresolved),
    )
