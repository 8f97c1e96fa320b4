"""Tests for the display boundary -- formatting, labels, result assembly."""

from __future__ import annotations

import pytest

from alignment.display import (
    LABELS,
    build_result,
    format_snapshot,
    format_value,
    render_readouts,
    unit_suffix,
)
from alignment.geometry.engine import DERIVED_NAMES, GeometryEngine


class TestFormatValue:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (1.25297, "1.25"),
            (1980.0, "1980.00"),
            (-0.3749, "-0.37"),
            (-0.001, "0.00"),
            (-0.0, "0.00"),
            (float("nan"), "nan"),
            (float("inf"), "inf"),
            (None, "0.00"),
        ],
    )
    def test_two_decimals(self, value, expected) -> None:
        assert format_value(value) == expected

    def test_blank_unresolved(self) -> None:
        assert format_value(None, blank_unresolved=True) == ""
        assert format_value(0.0, blank_unresolved=True) == "0.00"

    def test_digits(self) -> None:
        assert format_value(1.23456, digits=3) == "1.235"


class TestReadouts:
    def test_unit_suffix(self) -> None:
        assert unit_suffix("toe_front_left") == "°"
        assert unit_suffix("track_width_rear") == ""

    def test_labels_name_derived_quantities(self) -> None:
        assert set(LABELS) <= set(DERIVED_NAMES)

    def test_rendered_text(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wffl", "10")
        zeroed_engine.set_input("wbfl", "10")
        readouts = render_readouts(zeroed_engine.snapshot())
        assert readouts["toe_front_left"] == "Toe Left: 1.25°"
        assert readouts["track_width_front"] == "Front Width: 1975.00"
        assert readouts["car_yaw_angle"] == "Car angle: 0.00°"

    def test_unresolved_shown_as_zero(self, engine: GeometryEngine) -> None:
        readouts = render_readouts(engine.snapshot())
        assert readouts["track_width_front"] == "Front Width: 0.00"

    def test_unresolved_blanked(self, engine: GeometryEngine) -> None:
        readouts = render_readouts(engine.snapshot(), blank_unresolved=True)
        assert readouts["camber_rear_left"] == "Camber Left: "
        assert readouts["laser_half_angle"] == "Laser half-angle: 0.00°"

    def test_format_snapshot_covers_every_quantity(self, engine: GeometryEngine) -> None:
        assert list(format_snapshot(engine.snapshot())) == list(DERIVED_NAMES)


class TestBuildResult:
    def test_unresolved(self, engine: GeometryEngine) -> None:
        result = build_result(engine)
        assert result.derived["track_width_front"] is None
        assert result.status["track_width_front"] == "unresolved"
        assert result.display["track_width_front"] == "0.00"
        assert result.status["laser_half_angle"] == "resolved"

    def test_degenerate_sent_as_null(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wheel_diameter", "0")
        result = build_result(zeroed_engine)
        assert result.derived["camber_front_right"] is None
        assert result.status["camber_front_right"] == "degenerate"
        assert result.display["camber_front_right"] == "nan"

    def test_inputs_echoed(self, engine: GeometryEngine) -> None:
        engine.set_input("hbtl", "4.5")
        assert build_result(engine).inputs["hbtl"] == 4.5

    def test_camel_case_dump(self, zeroed_engine: GeometryEngine) -> None:
        dumped = build_result(zeroed_engine).model_dump(by_alias=True)
        assert set(dumped) == {"inputs", "derived", "status", "display", "readouts"}
        # quantity names inside the dicts keep their snake_case spelling
        assert "track_width_rear" in dumped["derived"]
