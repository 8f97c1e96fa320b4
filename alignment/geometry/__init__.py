"""Geometry engine -- public API re-exports.

Usage::

    from alignment.geometry import GeometryEngine, ParseError
"""

from __future__ import annotations

from alignment.geometry.engine import (
    DERIVED_NAMES,
    INPUT_NAMES,
    GeometryEngine,
    ParseError,
    UnknownQuantityError,
)

__all__ = [
    "DERIVED_NAMES",
    "INPUT_NAMES",
    "GeometryEngine",
    "ParseError",
    "UnknownQuantityError",
]
