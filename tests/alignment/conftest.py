"""Shared fixtures for alignment tests."""

from __future__ import annotations

import pytest

from alignment.geometry.engine import (
    FACE_READINGS,
    HEIGHT_READINGS,
    READING_NAMES,
    GeometryEngine,
)


def set_readings(engine: GeometryEngine, names, text: str) -> None:
    """Type the same text into every named field."""
    for name in names:
        engine.set_input(name, text)


# ---------------------------------------------------------------------------
# Engine Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine() -> GeometryEngine:
    """A fresh engine: nominal dimensions, every reading unset."""
    return GeometryEngine()


@pytest.fixture
def zeroed_engine() -> GeometryEngine:
    """Nominal dimensions with all sixteen readings entered as 0."""
    eng = GeometryEngine()
    set_readings(eng, READING_NAMES, "0")
    return eng


@pytest.fixture
def face_names() -> tuple[str, ...]:
    return FACE_READINGS


@pytest.fixture
def height_names() -> tuple[str, ...]:
    return HEIGHT_READINGS


# ---------------------------------------------------------------------------
# HTTP Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def all_zero_body() -> dict[str, float]:
    """POST /api/compute body with every reading set to 0 (camelCase dims omitted)."""
    return {name: 0.0 for name in READING_NAMES}
