"""Alignment formulas -- pure math on millimetre inputs, angles in degrees.

Every function here is side-effect free and follows IEEE-754 semantics:
a zero wheelbase or wheel diameter yields ``inf``/``nan`` instead of raising
``ZeroDivisionError``.  numpy scalars are used for the division and the
arctangent so that degenerate geometry propagates to the caller untouched.

The engine in :mod:`alignment.geometry.engine` decides *when* each formula
runs; nothing in this module knows about unresolved inputs.
"""

from __future__ import annotations

import numpy as np


def _ratio(numerator: float, denominator: float) -> float:
    """numerator / denominator with IEEE semantics (x/0 -> +-inf, 0/0 -> nan)."""
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(np.float64(numerator), np.float64(denominator)))


def atan_deg(numerator: float, denominator: float) -> float:
    """atan(numerator / denominator) in degrees."""
    return float(np.degrees(np.arctan(_ratio(numerator, denominator))))


def hub_offset(first: float, second: float) -> float:
    """Distance from the laser plane to the wheel centre.

    The average of two opposing readings on the same wheel (front/back for
    toe, top/bottom for camber).
    """
    return 0.5 * (first + second)


def measure_length(wheelbase: float, front_overhang: float, rear_overhang: float) -> float:
    """Distance between the front and rear laser planes."""
    return rear_overhang + wheelbase + front_overhang


def laser_half_angle(
    laser_width_front: float,
    laser_width_rear: float,
    wheelbase: float,
    front_overhang: float,
    rear_overhang: float,
) -> float:
    """Half the included angle between the two laser beams (degrees).

    The beams converge when the front emitters are wider apart than the rear
    ones; each beam is therefore tilted by half the taper angle.
    """
    length = measure_length(wheelbase, front_overhang, rear_overhang)
    return 0.5 * atan_deg(laser_width_front - laser_width_rear, length)


def laser_width_at_rear_axle(
    laser_width_front: float,
    laser_width_rear: float,
    wheelbase: float,
    front_overhang: float,
    rear_overhang: float,
) -> float:
    """Beam spacing interpolated to the rear axle."""
    length = measure_length(wheelbase, front_overhang, rear_overhang)
    taper = _ratio(laser_width_front - laser_width_rear, length)
    return laser_width_rear + taper * rear_overhang


def laser_width_at_front_axle(
    laser_width_front: float,
    laser_width_rear: float,
    wheelbase: float,
    front_overhang: float,
    rear_overhang: float,
) -> float:
    """Beam spacing interpolated to the front axle."""
    length = measure_length(wheelbase, front_overhang, rear_overhang)
    taper = _ratio(laser_width_front - laser_width_rear, length)
    return laser_width_front - taper * front_overhang


def track_width(laser_width_at_axle: float, hub_left: float, hub_right: float) -> float:
    """Track width: beam spacing at the axle minus both hub offsets."""
    return laser_width_at_axle - hub_left - hub_right


def car_yaw_angle(
    hub_front_left: float,
    hub_front_right: float,
    hub_rear_left: float,
    hub_rear_right: float,
    wheelbase: float,
) -> float:
    """Chassis skew relative to the laser frame (degrees).

    Each axle's lateral offset from the beam centreline is half its
    right/left hub-offset difference; the yaw is the angle between the two
    axle centres over the wheelbase.
    """
    front_shift = (hub_front_right - hub_front_left) * 0.5
    rear_shift = (hub_rear_right - hub_rear_left) * 0.5
    return atan_deg(front_shift - rear_shift, wheelbase)


def toe_angle(
    front_reading: float,
    back_reading: float,
    wheel_diameter: float,
    laser_half_angle_deg: float,
    car_yaw_angle_deg: float,
    side: str,
) -> float:
    """Toe angle of one wheel (degrees), corrected for beam tilt and yaw.

    Left wheels subtract the yaw angle, right wheels add it.  The laser
    half-angle is always subtracted.
    """
    raw = atan_deg(front_reading - back_reading, wheel_diameter)
    if side == "left":
        return raw - laser_half_angle_deg - car_yaw_angle_deg
    if side == "right":
        return raw - laser_half_angle_deg + car_yaw_angle_deg
    raise ValueError(f"side must be 'left' or 'right', got {side!r}")


def camber_angle(top_reading: float, bottom_reading: float, wheel_diameter: float) -> float:
    """Camber angle of one wheel (degrees).  No beam or yaw correction."""
    return atan_deg(bottom_reading - top_reading, wheel_diameter)


def total_toe(toe_left: float, toe_right: float) -> float:
    return toe_left + toe_right
