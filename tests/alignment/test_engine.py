"""Tests for GeometryEngine -- input parsing, accessors, staleness and graph order."""

from __future__ import annotations

import math

import pytest

from alignment.geometry.engine import (
    DEPENDENTS,
    DERIVED_NAMES,
    DIMENSION_DEFAULTS,
    FORMULAS,
    INPUT_NAMES,
    READING_NAMES,
    Formula,
    GeometryEngine,
    ParseError,
    UnknownQuantityError,
    _check_topological_order,
    parse_measurement,
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class TestSetInput:
    @pytest.mark.parametrize("text", ["2420", "12.5", "-3.25", "1e3", "0.1", " 7 ", "+4"])
    def test_round_trip(self, engine: GeometryEngine, text: str) -> None:
        engine.set_input("wffl", text)
        assert engine.get_input("wffl") == float(text)

    @pytest.mark.parametrize(
        "text", ["abc", "", "   ", "1_000", "nan", "inf", "-Infinity", "1.2.3", "10mm", "1,5"],
    )
    def test_malformed_leaves_value(self, engine: GeometryEngine, text: str) -> None:
        engine.set_input("wheelbase", "2500")
        with pytest.raises(ParseError):
            engine.set_input("wheelbase", text)
        assert engine.get_input("wheelbase") == 2500.0

    def test_malformed_marks_nothing_stale(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.recompute_all()
        with pytest.raises(ParseError):
            zeroed_engine.set_input("wffl", "x")
        assert zeroed_engine.stale == frozenset()

    def test_parse_error_is_value_error(self) -> None:
        with pytest.raises(ValueError) as info:
            parse_measurement("wffl", "twelve")
        assert info.value.name == "wffl"
        assert info.value.raw_text == "twelve"
        assert "wffl" in str(info.value)

    def test_non_text_rejected(self) -> None:
        with pytest.raises(ParseError):
            parse_measurement("wffl", None)  # type: ignore[arg-type]

    @pytest.mark.parametrize("text", ["\u0661\u0662", "\uff11\uff12", "1\u0662"])
    def test_non_ascii_digits_rejected(self, engine: GeometryEngine, text: str) -> None:
        with pytest.raises(ParseError):
            engine.set_input("wffl", text)
        assert not engine.is_set("wffl")

    def test_names_case_insensitive(self, engine: GeometryEngine) -> None:
        engine.set_input("Wffl", "3")
        assert engine.get_input("wffl") == 3.0
        assert engine.is_set("WFFL")

    def test_unknown_input(self, engine: GeometryEngine) -> None:
        with pytest.raises(UnknownQuantityError):
            engine.set_input("bogus", "1")

    def test_derived_cannot_be_set(self, engine: GeometryEngine) -> None:
        with pytest.raises(KeyError):
            engine.set_input("toe_front_left", "1")

    def test_rejected_edit_is_logged(self, engine: GeometryEngine, caplog) -> None:
        with caplog.at_level("WARNING", logger="alignment.engine"):
            with pytest.raises(ParseError):
                engine.set_input("hftl", "oops")
        assert "hftl" in caplog.text


class TestSetValue:
    def test_accepts_int_and_float(self, engine: GeometryEngine) -> None:
        engine.set_value("wfbl", 4)
        engine.set_value("wffl", 2.5)
        assert engine.get_input("wfbl") == 4.0
        assert engine.get_derived("hub_offset_front_left") == pytest.approx(3.25)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), True, "3"])
    def test_rejects_non_finite_and_non_numbers(self, engine: GeometryEngine, value) -> None:
        with pytest.raises(ParseError):
            engine.set_value("wffl", value)
        assert not engine.is_set("wffl")


# ---------------------------------------------------------------------------
# Construction and accessors
# ---------------------------------------------------------------------------


class TestEngineState:
    def test_defaults(self, engine: GeometryEngine) -> None:
        assert engine.get_input("wheelbase") == 2420.0
        assert engine.get_input("front_overhang") == pytest.approx(880.5)
        assert engine.get_input("rear_overhang") == pytest.approx(880.5)
        assert engine.get_input("wheel_diameter") == pytest.approx(457.2)
        assert engine.get_input("laser_width_front") == 1980.0

    def test_unset_reading_reports_zero(self, engine: GeometryEngine) -> None:
        assert engine.get_input("hbbr") == 0.0
        assert not engine.is_set("hbbr")

    def test_inputs_lists_only_set_values(self, engine: GeometryEngine) -> None:
        engine.set_input("hbbr", "2")
        assert engine.inputs() == {**DIMENSION_DEFAULTS, "hbbr": 2.0}

    def test_dimension_overrides(self) -> None:
        eng = GeometryEngine(wheelbase=2600, Laser_Width_Rear=1900)
        assert eng.get_input("wheelbase") == 2600.0
        assert eng.get_input("laser_width_rear") == 1900.0

    def test_readings_not_accepted_as_dimensions(self) -> None:
        with pytest.raises(TypeError):
            GeometryEngine(wffl=1.0)

    def test_from_measurements_skips_none(self) -> None:
        eng = GeometryEngine.from_measurements({"wffl": 1.0, "wfbl": None, "wheelbase": 2500.0})
        assert eng.get_input("wffl") == 1.0
        assert not eng.is_set("wfbl")
        assert eng.get_input("wheelbase") == 2500.0

    def test_unknown_derived(self, engine: GeometryEngine) -> None:
        with pytest.raises(UnknownQuantityError) as info:
            engine.get_derived("wffl")
        assert "derived quantity" in str(info.value)

    def test_snapshot_is_read_only(self, zeroed_engine: GeometryEngine) -> None:
        snap = zeroed_engine.snapshot()
        assert list(snap) == list(DERIVED_NAMES)
        with pytest.raises(TypeError):
            snap["toe_front_left"] = 1.0  # type: ignore[index]

    def test_clear_reading(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.clear_input("wffl")
        assert not zeroed_engine.is_set("wffl")
        assert zeroed_engine.get_derived("hub_offset_front_left") is None
        assert zeroed_engine.get_derived("toe_rear_right") is None

    def test_clear_dimension_restores_default(self, engine: GeometryEngine) -> None:
        engine.set_input("wheelbase", "3000")
        engine.clear_input("wheelbase")
        assert engine.get_input("wheelbase") == 2420.0

    def test_reset(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wheelbase", "2000")
        zeroed_engine.reset()
        assert zeroed_engine.inputs() == dict(DIMENSION_DEFAULTS)
        assert zeroed_engine.get_derived("track_width_rear") is None


# ---------------------------------------------------------------------------
# Recompute
# ---------------------------------------------------------------------------


class TestRecompute:
    def test_recompute_all_idempotent(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wffl", "8")
        zeroed_engine.set_input("hbtr", "-3")
        zeroed_engine.recompute_all()
        first = dict(zeroed_engine.snapshot())
        zeroed_engine.recompute_all()
        assert dict(zeroed_engine.snapshot()) == first

    def test_edit_marks_only_dependents_stale(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.recompute_all()
        zeroed_engine.set_input("wffl", "1")
        stale = zeroed_engine.stale
        assert "hub_offset_front_left" in stale
        assert "track_width_front" in stale
        assert "car_yaw_angle" in stale
        assert "toe_rear_right" in stale  # through the yaw angle
        assert "total_toe_rear" in stale
        assert "track_width_rear" not in stale
        assert "laser_half_angle" not in stale
        assert "camber_front_left" not in stale

    def test_same_value_marks_nothing(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.recompute_all()
        zeroed_engine.set_input("wffl", "0.0")
        assert zeroed_engine.stale == frozenset()

    def test_negative_zero_is_stored(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.recompute_all()
        zeroed_engine.set_input("wffl", "-0")
        assert math.copysign(1.0, zeroed_engine.get_input("wffl")) == -1.0
        assert "hub_offset_front_left" in zeroed_engine.stale

    def test_read_clears_stale(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wffl", "1")
        zeroed_engine.get_derived("laser_half_angle")
        assert zeroed_engine.stale == frozenset()

    def test_lazy_read_matches_full_recompute(self, zeroed_engine: GeometryEngine) -> None:
        zeroed_engine.set_input("wbbr", "6")
        zeroed_engine.set_input("laser_width_front", "1990")
        lazy = dict(zeroed_engine.snapshot())
        zeroed_engine.recompute_all()
        assert dict(zeroed_engine.snapshot()) == lazy


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class TestGraph:
    def test_every_input_declared_once(self) -> None:
        assert len(set(INPUT_NAMES)) == len(INPUT_NAMES) == 22
        assert len(READING_NAMES) == 16

    def test_derived_names(self) -> None:
        assert len(DERIVED_NAMES) == len(set(DERIVED_NAMES)) == 22
        assert DERIVED_NAMES[-2:] == ("total_toe_front", "total_toe_rear")

    def test_order_is_topological(self) -> None:
        position = {node.name: i for i, node in enumerate(FORMULAS)}
        for node in FORMULAS:
            for dep in node.inputs:
                if dep in position:
                    assert position[dep] < position[node.name]

    def test_forward_reference_rejected(self) -> None:
        nodes = (
            Formula("a_total", ("b_part",), lambda x: x),
            Formula("b_part", ("wffl",), lambda x: x),
        )
        with pytest.raises(RuntimeError, match="before it is defined"):
            _check_topological_order(nodes)

    def test_duplicate_rejected(self) -> None:
        nodes = (Formula("wffl", ("wfbl",), lambda x: x),)
        with pytest.raises(RuntimeError, match="Duplicate"):
            _check_topological_order(nodes)

    def test_wheel_diameter_dependents(self) -> None:
        deps = DEPENDENTS["wheel_diameter"]
        assert "toe_front_left" in deps
        assert "camber_rear_right" in deps
        assert "total_toe_front" in deps
        assert "hub_offset_front_left" not in deps
        assert "car_yaw_angle" not in deps

    def test_camber_readings_do_not_reach_toe(self) -> None:
        assert DEPENDENTS["hftl"] == frozenset({"height_offset_front_left", "camber_front_left"})
