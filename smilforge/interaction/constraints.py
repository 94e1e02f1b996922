"""Modifier-driven drag constraints. Pure functions, no drag state."""
from __future__ import annotations

import math

from smilforge.gizmos.types import ModifierState
from smilforge.models.geometry import Point

DEFAULT_ROTATION_INCREMENT = 15.0


def round_half_away(value: float) -> float:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return math.copysign(math.floor(abs(value) + 0.5), value)


def constrain_to_axis(delta: Point, modifiers: ModifierState) -> Point:
    """With shift held keep only the dominant axis; ties keep Y."""
    if not modifiers.shift:
        return delta
    if abs(delta.x) > abs(delta.y):
        return Point(delta.x, 0.0)
    return Point(0.0, delta.y)


def snap_to_grid(point: Point, grid_size: float, enabled: bool = True) -> Point:
    if not enabled or grid_size <= 0:
        return point
    return Point(
        round_half_away(point.x / grid_size) * grid_size,
        round_half_away(point.y / grid_size) * grid_size,
    )


def constrain_rotation(
    angle: float,
    modifiers: ModifierState,
    increment: float = DEFAULT_ROTATION_INCREMENT,
) -> float:
    if not modifiers.shift or increment <= 0:
        return angle
    return round_half_away(angle / increment) * increment


def constrain_uniform_scale(scale_x: float, scale_y: float, modifiers: ModifierState) -> Point:
    """With shift held both axes take the larger magnitude, keeping their own sign."""
    if not modifiers.shift:
        return Point(scale_x, scale_y)
    magnitude = max(abs(scale_x), abs(scale_y))
    return Point(math.copysign(magnitude, scale_x), math.copysign(magnitude, scale_y))
