"""Geometry engine -- raw inputs, the derived-value graph, and its evaluation.

The engine owns every raw input (vehicle dimensions plus the sixteen laser
readings) and every derived quantity.  Derived quantities are declared once,
in ``FORMULAS``, as a name, the names they read and a pure function from
:mod:`alignment.geometry.formulas`.  The declaration order is the evaluation
order; ``_check_topological_order()`` rejects a declaration that reads a
quantity defined further down.

**Evaluation order:**
1. hub offsets (face readings) and height offsets (camber readings)
2. laser_half_angle
3. track_width_rear, track_width_front
4. car_yaw_angle
5. toe angles
6. camber angles
7. total toe per axle

**Unresolved values.**  The sixteen readings start unset.  A derived quantity
reading an unset input (directly or through another derived quantity) is
unresolved and reported as ``None``, never as ``0.0``.  The single exception
is ``track_width_front``, which substitutes 0 for a missing front hub offset
as long as the other one is present.

**Recompute.**  ``set_input()`` marks the transitive dependents of the edited
input stale; the next read re-evaluates only those, in declaration order.
``recompute_all()`` re-evaluates everything.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Literal, Mapping

from alignment.geometry import formulas

logger = logging.getLogger("alignment.engine")

QuantityStatus = Literal["resolved", "unresolved", "degenerate"]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class ParseError(ValueError):
    """Raw input text is not a usable real number.  State is left untouched."""

    def __init__(self, name: str, raw_text: object, reason: str = "not a valid number") -> None:
        self.name = name
        self.raw_text = raw_text
        self.reason = reason
        super().__init__(f"{name}: {raw_text!r} is {reason}")


class UnknownQuantityError(KeyError):
    """Name is neither a raw input nor a derived quantity of the engine."""

    def __init__(self, name: str, kind: str = "quantity") -> None:
        self.name = name
        self.kind = kind
        super().__init__(name)

    def __str__(self) -> str:
        return f"Unknown {self.kind}: {self.name!r}"


# ---------------------------------------------------------------------------
# Raw inputs
# ---------------------------------------------------------------------------

AXLES: tuple[str, ...] = ("front", "rear")
SIDES: tuple[str, ...] = ("left", "right")

# Reading names follow the measurement sheet: W{axle}{front|back}{side} for
# the wheel-face (toe) readings, H{axle}{top|bottom}{side} for the camber
# readings.  Axle letter "b" is the back (rear) axle.
_AXLE_CODE: dict[str, str] = {"front": "f", "rear": "b"}
_SIDE_CODE: dict[str, str] = {"left": "l", "right": "r"}

# Nominal vehicle shape: 2420 mm wheelbase, 4181 mm overall length split
# evenly into both overhangs, 1980 mm beam spacing, 18 in wheels.
DIMENSION_DEFAULTS: Mapping[str, float] = MappingProxyType({
    "wheelbase": 2420.0,
    "front_overhang": (4181.0 - 2420.0) * 0.5,
    "rear_overhang": (4181.0 - 2420.0) * 0.5,
    "laser_width_front": 1980.0,
    "laser_width_rear": 1980.0,
    "wheel_diameter": 18.0 * 25.4,
})


def face_reading(axle: str, position: str, side: str) -> str:
    """Name of a wheel-face reading; position is ``"front"`` or ``"back"``."""
    return f"w{_AXLE_CODE[axle]}{position[0]}{_SIDE_CODE[side]}"


def height_reading(axle: str, position: str, side: str) -> str:
    """Name of a wheel-height reading; position is ``"top"`` or ``"bottom"``."""
    return f"h{_AXLE_CODE[axle]}{position[0]}{_SIDE_CODE[side]}"


FACE_READINGS: tuple[str, ...] = tuple(
    face_reading(axle, position, side)
    for axle in AXLES
    for side in SIDES
    for position in ("front", "back")
)
HEIGHT_READINGS: tuple[str, ...] = tuple(
    height_reading(axle, position, side)
    for axle in AXLES
    for side in SIDES
    for position in ("top", "bottom")
)
READING_NAMES: tuple[str, ...] = FACE_READINGS + HEIGHT_READINGS
INPUT_NAMES: tuple[str, ...] = tuple(DIMENSION_DEFAULTS) + READING_NAMES

_DIMENSIONS: tuple[str, ...] = (
    "wheelbase", "front_overhang", "rear_overhang", "laser_width_front", "laser_width_rear",
)


# ---------------------------------------------------------------------------
# Derived quantities
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Formula:
    """One node of the derived-value graph.

    ``compute`` receives the values of ``inputs`` positionally.  Names listed
    in ``fallback`` are replaced by 0.0 when unresolved, provided at least
    one of them is resolved.
    """

    name: str
    inputs: tuple[str, ...]
    compute: Callable[..., float]
    unit: str = "deg"
    fallback: frozenset[str] = frozenset()


def _hub(axle: str, side: str) -> str:
    return f"hub_offset_{axle}_{side}"


def _toe_formula(axle: str, side: str) -> Formula:
    def compute(front: float, back: float, diameter: float, half_angle: float, yaw: float) -> float:
        return formulas.toe_angle(front, back, diameter, half_angle, yaw, side)

    return Formula(
        name=f"toe_{axle}_{side}",
        inputs=(
            face_reading(axle, "front", side),
            face_reading(axle, "back", side),
            "wheel_diameter",
            "laser_half_angle",
            "car_yaw_angle",
        ),
        compute=compute,
    )


def _build_formulas() -> tuple[Formula, ...]:
    out: list[Formula] = []

    # 1. Hub offsets (toe side) and height offsets (camber side)
    for axle in AXLES:
        for side in SIDES:
            out.append(Formula(
                name=_hub(axle, side),
                inputs=(face_reading(axle, "front", side), face_reading(axle, "back", side)),
                compute=formulas.hub_offset,
                unit="mm",
            ))
    for axle in AXLES:
        for side in SIDES:
            out.append(Formula(
                name=f"height_offset_{axle}_{side}",
                inputs=(height_reading(axle, "top", side), height_reading(axle, "bottom", side)),
                compute=formulas.hub_offset,
                unit="mm",
            ))

    # 2. Beam tilt
    out.append(Formula(
        name="laser_half_angle",
        inputs=_DIMENSIONS[3:] + _DIMENSIONS[:3],
        compute=lambda lf, lr, wb, fo, ro: formulas.laser_half_angle(lf, lr, wb, fo, ro),
    ))

    # 3. Track widths
    out.append(Formula(
        name="track_width_rear",
        inputs=_DIMENSIONS[3:] + _DIMENSIONS[:3] + (_hub("rear", "left"), _hub("rear", "right")),
        compute=lambda lf, lr, wb, fo, ro, left, right: formulas.track_width(
            formulas.laser_width_at_rear_axle(lf, lr, wb, fo, ro), left, right,
        ),
        unit="mm",
    ))
    out.append(Formula(
        name="track_width_front",
        inputs=_DIMENSIONS[3:] + _DIMENSIONS[:3] + (_hub("front", "left"), _hub("front", "right")),
        compute=lambda lf, lr, wb, fo, ro, left, right: formulas.track_width(
            formulas.laser_width_at_front_axle(lf, lr, wb, fo, ro), left, right,
        ),
        unit="mm",
        fallback=frozenset({_hub("front", "left"), _hub("front", "right")}),
    ))

    # 4. Chassis yaw
    out.append(Formula(
        name="car_yaw_angle",
        inputs=(
            _hub("front", "left"), _hub("front", "right"),
            _hub("rear", "left"), _hub("rear", "right"),
            "wheelbase",
        ),
        compute=formulas.car_yaw_angle,
    ))

    # 5. Toe
    for axle in AXLES:
        for side in SIDES:
            out.append(_toe_formula(axle, side))

    # 6. Camber
    for axle in AXLES:
        for side in SIDES:
            out.append(Formula(
                name=f"camber_{axle}_{side}",
                inputs=(
                    height_reading(axle, "top", side),
                    height_reading(axle, "bottom", side),
                    "wheel_diameter",
                ),
                compute=formulas.camber_angle,
            ))

    # 7. Total toe
    for axle in AXLES:
        out.append(Formula(
            name=f"total_toe_{axle}",
            inputs=(f"toe_{axle}_left", f"toe_{axle}_right"),
            compute=formulas.total_toe,
        ))

    return tuple(out)


def _check_topological_order(nodes: Iterable[Formula]) -> None:
    """Raise RuntimeError unless every formula only reads inputs or earlier formulas."""
    known = set(INPUT_NAMES)
    for node in nodes:
        if node.name in known:
            raise RuntimeError(f"Duplicate quantity name: {node.name}")
        unknown = [dep for dep in node.inputs if dep not in known]
        if unknown:
            raise RuntimeError(
                f"{node.name} reads {', '.join(unknown)} before it is defined"
            )
        if not node.fallback <= set(node.inputs):
            raise RuntimeError(f"{node.name}: fallback names must be inputs")
        known.add(node.name)


def _transitive_dependents(nodes: tuple[Formula, ...]) -> dict[str, frozenset[str]]:
    """Map every input/derived name to the derived names that read it, transitively."""
    direct: dict[str, set[str]] = {name: set() for name in INPUT_NAMES}
    for node in nodes:
        direct[node.name] = set()
        for dep in node.inputs:
            direct[dep].add(node.name)

    closure: dict[str, frozenset[str]] = {}
    # Reverse declaration order: a node's dependents are complete before
    # anything upstream of it is visited.
    for name in [node.name for node in reversed(nodes)] + list(INPUT_NAMES):
        acc: set[str] = set()
        for child in direct[name]:
            acc.add(child)
            acc |= closure[child]
        closure[name] = frozenset(acc)
    return closure


FORMULAS: tuple[Formula, ...] = _build_formulas()
_check_topological_order(FORMULAS)

DERIVED_NAMES: tuple[str, ...] = tuple(node.name for node in FORMULAS)
DEPENDENTS: Mapping[str, frozenset[str]] = MappingProxyType(_transitive_dependents(FORMULAS))
_FORMULA_BY_NAME: dict[str, Formula] = {node.name: node for node in FORMULAS}


def get_formula(name: str) -> Formula:
    """Return the graph node for a derived quantity."""
    key = name.lower()
    try:
        return _FORMULA_BY_NAME[key]
    except KeyError:
        raise UnknownQuantityError(name, "derived quantity") from None


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_measurement(name: str, raw_text: object) -> float:
    """Parse free-form field text into a finite float.

    Surrounding whitespace is ignored.  Empty text, non-ASCII digits, digit
    group underscores and non-finite spellings (``nan``, ``inf``) are
    rejected.

    Raises:
        ParseError: If the text is not a finite real number.
    """
    if not isinstance(raw_text, str):
        raise ParseError(name, raw_text, "not text")
    text = raw_text.strip()
    if not text:
        raise ParseError(name, raw_text, "empty")
    if "_" in text or not text.isascii():
        raise ParseError(name, raw_text)
    try:
        value = float(text)
    except ValueError:
        raise ParseError(name, raw_text) from None
    if not math.isfinite(value):
        raise ParseError(name, raw_text, "not a finite number")
    return value


def classify(value: float | None) -> QuantityStatus:
    """Three-state classification of a derived value."""
    if value is None:
        return "unresolved"
    if not math.isfinite(value):
        return "degenerate"
    return "resolved"


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class GeometryEngine:
    """Owns the raw inputs and evaluates the derived-value graph on demand.

    Not thread-safe: edits must be serialised by the caller (one writer at a
    time), which the UI event loop guarantees.
    """

    def __init__(self, **dimensions: float) -> None:
        self._inputs: dict[str, float] = dict(DIMENSION_DEFAULTS)
        self._derived: dict[str, float | None] = dict.fromkeys(DERIVED_NAMES)
        self._stale: set[str] = set(DERIVED_NAMES)
        for name, value in dimensions.items():
            key = self._input_key(name)
            if key not in DIMENSION_DEFAULTS:
                raise TypeError(f"{name!r} is a reading, not a vehicle dimension")
            self.set_value(key, value)

    @classmethod
    def from_measurements(cls, values: Mapping[str, float | None]) -> "GeometryEngine":
        """Build an engine from numeric values; ``None`` leaves an input at its default."""
        engine = cls()
        for name, value in values.items():
            if value is not None:
                engine.set_value(name, value)
        return engine

    # -- name handling ---------------------------------------------------

    @staticmethod
    def _input_key(name: str) -> str:
        key = name.lower()
        if key not in DIMENSION_DEFAULTS and key not in READING_NAMES:
            raise UnknownQuantityError(name, "input")
        return key

    @staticmethod
    def _derived_key(name: str) -> str:
        key = name.lower()
        if key not in _FORMULA_BY_NAME:
            raise UnknownQuantityError(name, "derived quantity")
        return key

    # -- mutators --------------------------------------------------------

    def set_input(self, name: str, raw_text: str) -> None:
        """Parse *raw_text* and store it as the value of input *name*.

        Raises:
            UnknownQuantityError: If *name* is not a raw input.
            ParseError: If *raw_text* is not a finite number.  The previous
                value is kept and nothing is marked stale.
        """
        key = self._input_key(name)
        try:
            value = parse_measurement(key, raw_text)
        except ParseError as exc:
            logger.warning("Rejected edit %s", exc)
            raise
        self._store(key, value)

    def set_value(self, name: str, value: float) -> None:
        """Store an already-numeric value.  Non-finite values raise ParseError."""
        key = self._input_key(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ParseError(key, value, "not a number")
        if not math.isfinite(value):
            raise ParseError(key, value, "not a finite number")
        self._store(key, float(value))

    def clear_input(self, name: str) -> None:
        """Return a reading to unset, or a dimension to its nominal default."""
        key = self._input_key(name)
        if key in DIMENSION_DEFAULTS:
            self._store(key, DIMENSION_DEFAULTS[key])
        elif key in self._inputs:
            del self._inputs[key]
            self._stale |= DEPENDENTS[key]

    def reset(self) -> None:
        """Discard every edit: nominal dimensions, all readings unset."""
        self._inputs = dict(DIMENSION_DEFAULTS)
        self._stale = set(DERIVED_NAMES)

    def _store(self, key: str, value: float) -> None:
        previous = self._inputs.get(key)
        # -0.0 == 0.0, so compare signs too
        if previous == value and math.copysign(1.0, previous) == math.copysign(1.0, value):
            return
        self._inputs[key] = value
        self._stale |= DEPENDENTS[key]
        logger.debug("%s = %r (%d dependents stale)", key, value, len(DEPENDENTS[key]))

    # -- accessors -------------------------------------------------------

    def get_input(self, name: str) -> float:
        """Current raw value; unset readings report 0.0."""
        return self._inputs.get(self._input_key(name), 0.0)

    def is_set(self, name: str) -> bool:
        return self._input_key(name) in self._inputs

    def inputs(self) -> dict[str, float]:
        """Every raw input that currently holds a value."""
        return {name: self._inputs[name] for name in INPUT_NAMES if name in self._inputs}

    def get_derived(self, name: str) -> float | None:
        """Current value of a derived quantity, ``None`` while unresolved.

        Degenerate geometry (zero wheelbase, zero wheel diameter) is returned
        as ``inf``/``nan``.
        """
        key = self._derived_key(name)
        self._refresh()
        return self._derived[key]

    def status(self, name: str) -> QuantityStatus:
        return classify(self.get_derived(name))

    def snapshot(self) -> Mapping[str, float | None]:
        """Read-only view of every derived quantity, in evaluation order."""
        self._refresh()
        return MappingProxyType(dict(self._derived))

    @property
    def stale(self) -> frozenset[str]:
        """Derived quantities awaiting re-evaluation."""
        return frozenset(self._stale)

    # -- evaluation ------------------------------------------------------

    def recompute_all(self) -> None:
        """Re-evaluate every formula in declaration order."""
        self._stale = set(DERIVED_NAMES)
        self._refresh()

    def _refresh(self) -> None:
        if not self._stale:
            return
        for node in FORMULAS:
            if node.name in self._stale:
                self._derived[node.name] = self._evaluate(node)
        self._stale.clear()

    def _lookup(self, name: str) -> float | None:
        if name in self._derived:
            return self._derived[name]
        return self._inputs.get(name)

    def _evaluate(self, node: Formula) -> float | None:
        args: list[float] = []
        missing = 0
        for dep in node.inputs:
            value = self._lookup(dep)
            if value is None:
                if dep not in node.fallback:
                    return None
                missing += 1
                value = 0.0
            args.append(value)
        if node.fallback and missing == len(node.fallback):
            return None
        return node.compute(*args)
