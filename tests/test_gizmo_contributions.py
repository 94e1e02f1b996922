import math

import pytest

from smilforge.gizmos.contributions.common import clamp_index, format_keyframes, parse_keyframes
from smilforge.gizmos.contributions.transform import rotate_gizmo
from smilforge.gizmos.contributions.vector import format_polyline, polyline_points
from smilforge.gizmos.types import ModifierState
from smilforge.interaction import GizmoSession
from smilforge.models import CanvasElement, Point, SVGAnimation

SHIFT = ModifierState(shift=True)


def _anim(**fields):
    fields.setdefault("id", "a1")
    fields.setdefault("targetElementId", "r1")
    fields.setdefault("dur", "2s")
    return SVGAnimation(**fields)


@pytest.fixture
def open_session(registry, make_document):
    def factory(animation, elements=None):
        session = GizmoSession(registry, make_document(animation, elements=elements))
        session.set_gizmo_edit_mode(True)
        assert session.activate_gizmo(animation.id) is not None
        return session

    return factory


def drag_through(session, handle_id, *points, modifiers=None, animation_id="a1"):
    start = session.handle_positions(animation_id)[handle_id]
    assert session.start_drag(animation_id, handle_id, start)
    for point in points:
        session.update_drag(point, modifiers)
    session.end_drag()
    return session.get_animation(animation_id)


def drag_in_steps(session, handle_id, step, count, modifiers=None, animation_id="a1"):
    """Drag a handle by ``count`` small increments of ``step``, then release."""
    point = session.handle_positions(animation_id)[handle_id]
    assert session.start_drag(animation_id, handle_id, point)
    for _ in range(count):
        point = point + step
        session.update_drag(point, modifiers)
    session.end_drag()
    return session.get_animation(animation_id)


def test_keyframe_helpers():
    assert parse_keyframes("10 20; 30 40") == [[10, 20], [30, 40]]
    assert parse_keyframes(None) == []
    assert format_keyframes([[1.23456, 2], [3, 4]]) == "1.235 2;3 4"
    assert clamp_index(None, 3) == 2
    assert clamp_index(7, 3) == 2
    assert clamp_index(1, 3) == 1


def test_translate_multi_keyframe_edits_active_keyframe(open_session):
    session = open_session(_anim(type="animateTransform", transformType="translate", values="0 0;50 0;100 0"))
    assert set(session.handle_positions("a1")) == {"keyframe"}
    animation = drag_through(session, "keyframe", Point(150, 35))
    assert animation.values == "0 0;50 0;100 10"
    assert animation.from_ is None and animation.to is None


def test_rotate_arc_drag_accumulates_angle(open_session):
    session = open_session(_anim(type="animateTransform", transformType="rotate", **{"from": "0"}, to="0"))
    arc = session.handle_positions("a1")["arc"]
    assert (arc.x, arc.y) == (pytest.approx(50), pytest.approx(-35))
    animation = drag_through(session, "arc", Point(110, 25), Point(50, 85))
    assert animation.to == "180"
    assert session.get_state("a1").props.raw_degrees is None


def test_rotate_arc_snaps_with_shift(open_session):
    session = open_session(_anim(type="animateTransform", transformType="rotate", **{"from": "0"}, to="0"))
    angle = math.radians(32)
    end = Point(50 + 60 * math.cos(angle), 25 + 60 * math.sin(angle))
    animation = drag_through(session, "arc", Point(110, 25), end, modifiers=SHIFT)
    assert animation.to == "120"


def test_rotate_keeps_pivot(open_session):
    session = open_session(_anim(type="animateTransform", transformType="rotate", **{"from": "0 10 20"}, to="90 10 20"))
    state = session.get_state("a1")
    assert (state.props.pivot_x, state.props.pivot_y) == (10, 20)
    assert session.handle_positions("a1")["pivot"] == Point(10, 20)

    animation = drag_through(session, "pivot", Point(20, 20))
    assert animation.from_ == "0 20 20"
    assert animation.to == "90 20 20"


def test_rotate_to_animation_defaults_to_plain_angles():
    state = rotate_gizmo.from_animation(
        _anim(type="animateTransform", transformType="rotate", values="0;90;180"),
        CanvasElement(id="r1", type="rect"),
    )
    assert state.props.multi_keyframe
    assert rotate_gizmo.to_animation(state, None)["values"] == "0;90;180"


def test_scale_corner_uniform_with_shift(open_session):
    session = open_session(_anim(type="animateTransform", transformType="scale", **{"from": "1"}, to="1"))
    assert session.handle_positions("a1")["corner-se"] == Point(100, 50)
    animation = drag_through(session, "corner-se", Point(110, 50), modifiers=SHIFT)
    assert animation.to == "1.2 1.2"
    assert animation.from_ == "1 1"


def test_skew_handle_sets_angle(open_session):
    session = open_session(_anim(type="animateTransform", transformType="skewX", **{"from": "0"}, to="0"))
    assert session.handle_positions("a1")["skew-x"] == Point(50, 0)
    animation = drag_through(session, "skew-x", Point(75, 0))
    assert animation.to == "45"


def test_opacity_slider_clamps(open_session):
    session = open_session(_anim(type="animate", attributeName="opacity", **{"from": 0}, to=1))
    assert session.handle_positions("a1")["to"] == Point(132, 0)
    animation = drag_through(session, "to", Point(132, 25))
    assert animation.to == "0.5"

    animation = drag_through(session, "to", Point(132, 500))
    assert animation.to == "0"


def test_stroke_width_slider(open_session, rect):
    outlined = rect.model_copy(update={"data": {**rect.data, "strokeWidth": 2}})
    session = open_session(_anim(type="animate", attributeName="stroke-width", to=2), elements=[outlined])
    state = session.get_state("a1")
    assert (state.props.from_width, state.props.to_width) == (2, 2)
    animation = drag_through(session, "width", Point(30, 66))
    assert animation.to == "3"


def test_motion_vertex_drag_rewrites_path(open_session):
    session = open_session(_anim(type="animateMotion", path="M 0 0 L 100 0 L 100 100"))
    assert session.handle_positions("a1")["vertex-1"] == Point(150, 25)
    animation = drag_through(session, "vertex-1", Point(150, 45))
    assert animation.path == "M 0 0 L 100 20 L 100 100"


def test_curved_or_referenced_paths_are_read_only(open_session):
    session = open_session(_anim(type="animateMotion", path="M 0 0 C 10 10 20 20 30 30"))
    assert not session.get_state("a1").props.editable
    assert session.get_handles("a1") == []

    session = open_session(_anim(type="animateMotion", mpath="route"))
    assert not session.get_state("a1").props.editable


def test_polyline_round_trip_and_subpaths():
    points, closed = polyline_points("M 0 0 L 10 0 L 10 10 Z")
    assert points == [(0, 0), (10, 0), (10, 10)]
    assert closed
    assert format_polyline(points, closed) == "M 0 0 L 10 0 L 10 10 Z"
    assert polyline_points("M 0 0 L 1 1 M 5 5 L 6 6") is None


def test_stroke_draw_progress(open_session):
    line = CanvasElement(id="p1", type="path", data={"d": "M 0 0 L 100 0"})
    session = open_session(
        _anim(type="animate", attributeName="stroke-dashoffset", targetElementId="p1", **{"from": 100}, to=100),
        elements=[line],
    )
    assert session.get_state("a1").props.path_length == pytest.approx(100)
    assert session.handle_positions("a1")["progress"] == Point(0, -12)
    animation = drag_through(session, "progress", Point(50, -12))
    assert animation.to == "50"


def test_set_begin_handle(open_session):
    session = open_session(_anim(type="set", attributeName="visibility", to="hidden", begin="1s", dur=None))
    assert session.handle_positions("a1")["begin"] == Point(50, 74)
    animation = drag_through(session, "begin", Point(75, 74))
    assert animation.begin == "1.5s"
    assert animation.to == "hidden"


def test_set_begin_snaps_to_tenths(open_session):
    session = open_session(_anim(type="set", attributeName="visibility", to="hidden", begin="1s", dur=None))
    animation = drag_through(session, "begin", Point(57, 74), modifiers=SHIFT)
    assert animation.begin == "1.1s"


def test_event_begin_is_not_editable(open_session):
    session = open_session(_anim(type="set", attributeName="display", to="none", begin="click", dur=None))
    assert not session.get_state("a1").props.editable
    assert session.get_handles("a1") == []


def test_translate_small_steps_reach_grid_cells(open_session, snap_grid):
    session = open_session(_anim(type="animateTransform", transformType="translate", **{"from": "0 0"}, to="0 0"))
    point = session.handle_positions("a1")["destination"]
    session.start_drag("a1", "destination", point)
    session.update_drag(point + Point(4, 0))
    assert session.get_state("a1").props.to_x == 0
    session.update_drag(point + Point(6, 0))
    assert session.get_state("a1").props.to_x == 10
    session.end_drag()
    assert session.get_state("a1").props.raw_point is None

    animation = drag_in_steps(session, "destination", Point(2, 0), 15)
    assert animation.to == "40 0"


def test_pivot_small_steps_reach_grid_cells(open_session, snap_grid):
    session = open_session(_anim(type="animateTransform", transformType="rotate", **{"from": "0 10 20"}, to="90 10 20"))
    animation = drag_in_steps(session, "pivot", Point(0, 2), 15)
    assert animation.from_ == "0 10 50"
    assert animation.to == "90 10 50"
    assert session.get_state("a1").props.raw_pivot is None


def test_vertex_small_steps_reach_grid_cells(open_session, snap_grid):
    session = open_session(_anim(type="animateMotion", path="M 0 0 L 100 0 L 100 100"))
    animation = drag_in_steps(session, "vertex-1", Point(0, 2), 10)
    assert animation.path == "M 0 0 L 100 20 L 100 100"
    assert session.get_state("a1").props.raw_point is None


def test_set_begin_small_steps_snap_with_shift(open_session):
    session = open_session(_anim(type="set", attributeName="visibility", to="hidden", begin="1s", dur=None))
    animation = drag_in_steps(session, "begin", Point(1, 0), 25, modifiers=SHIFT)
    assert animation.begin == "1.5s"
    assert session.get_state("a1").props.raw_begin is None

    animation = drag_in_steps(session, "begin", Point(1, 0), 2, modifiers=SHIFT)
    assert animation.begin == "1.5s"


def test_skew_small_steps_snap_with_shift(open_session):
    session = open_session(_anim(type="animateTransform", transformType="skewX", **{"from": "0"}, to="0"))
    animation = drag_in_steps(session, "skew-x", Point(1, 0), 25, modifiers=SHIFT)
    assert animation.to == "45"
    assert session.get_state("a1").props.raw_angle is None
