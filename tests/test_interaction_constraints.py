from smilforge.gizmos.types import ModifierState
from smilforge.interaction.constraints import (
    constrain_rotation,
    constrain_to_axis,
    constrain_uniform_scale,
    round_half_away,
    snap_to_grid,
)
from smilforge.interaction.coordinates import canvas_to_client, client_delta_to_canvas, client_to_canvas
from smilforge.models import Point, Viewport

SHIFT = ModifierState(shift=True)
NONE = ModifierState()


def test_axis_lock_keeps_dominant_axis():
    assert constrain_to_axis(Point(50, 30), SHIFT) == Point(50, 0)
    assert constrain_to_axis(Point(30, 50), SHIFT) == Point(0, 50)
    assert constrain_to_axis(Point(-60, 20), SHIFT) == Point(-60, 0)


def test_axis_lock_tie_keeps_y():
    assert constrain_to_axis(Point(40, 40), SHIFT) == Point(0, 40)


def test_axis_lock_needs_shift():
    assert constrain_to_axis(Point(50, 30), NONE) == Point(50, 30)
    assert constrain_to_axis(Point(50, 30), ModifierState(alt=True, ctrl=True)) == Point(50, 30)


def test_snap_to_grid():
    assert snap_to_grid(Point(17, 23), 10, True) == Point(20, 20)
    assert snap_to_grid(Point(-15, 25), 10, True) == Point(-20, 30)
    assert snap_to_grid(Point(17, 23), 10, False) == Point(17, 23)
    assert snap_to_grid(Point(17, 23), 0, True) == Point(17, 23)
    assert snap_to_grid(Point(17, 23), -5, True) == Point(17, 23)


def test_rotation_snaps_with_shift_only():
    assert constrain_rotation(37, SHIFT) == 30
    assert constrain_rotation(38, SHIFT) == 45
    assert constrain_rotation(-37, SHIFT) == -30
    assert constrain_rotation(-38, SHIFT) == -45
    assert constrain_rotation(37, NONE) == 37
    assert constrain_rotation(37, SHIFT, increment=10) == 40


def test_round_half_away_from_zero():
    assert round_half_away(2.5) == 3
    assert round_half_away(-2.5) == -3
    assert round_half_away(0.4) == 0


def test_uniform_scale_uses_larger_magnitude():
    assert constrain_uniform_scale(2, -3, SHIFT) == Point(3, -3)
    assert constrain_uniform_scale(1.5, 0.5, SHIFT) == Point(1.5, 1.5)
    assert constrain_uniform_scale(2, -3, NONE) == Point(2, -3)


def test_client_to_canvas_applies_origin_pan_and_zoom():
    viewport = Viewport(zoom=2, pan_x=10, pan_y=0)
    canvas = client_to_canvas(Point(150, 120), Point(50, 20), viewport)
    assert canvas == Point(45, 50)
    assert canvas_to_client(canvas, Point(50, 20), viewport) == Point(150, 120)


def test_client_delta_scales_with_zoom():
    assert client_delta_to_canvas(Point(20, -10), Viewport(zoom=2)) == Point(10, -5)
