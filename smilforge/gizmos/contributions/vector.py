"""Vector gizmos: editable motion paths and stroke drawing progress."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from svg.path import Close, Line, Move, parse_path

from smilforge.gizmos.contributions.common import drag_point, first_number, format_vector, new_state, write_back
from smilforge.gizmos.types import (
    Computed,
    GizmoCategory,
    GizmoDefinition,
    GizmoHandle,
    GizmoInteractionContext,
    GizmoMetadata,
    GizmoState,
    HandleConstraints,
    HandleType,
    MatchByKind,
    MatchByPredicate,
    Static,
)
from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation
from smilforge.models.geometry import Point

logger = logging.getLogger(__name__)

PROGRESS_HANDLE_OFFSET = 12.0


# ---------------------------------------------------------------------------
# Motion path
# ---------------------------------------------------------------------------


@dataclass
class MotionPathProps:
    points: List[Tuple[float, float]] = field(default_factory=list)
    closed: bool = False
    rotate: Optional[str] = None
    # False for mpath references and paths with curves.
    editable: bool = True
    # Unsnapped vertex accumulated during a drag.
    raw_point: Optional[Tuple[float, float]] = None


def polyline_points(d: str) -> Optional[Tuple[List[Tuple[float, float]], bool]]:
    """Vertices of a path made only of straight segments; None otherwise."""
    try:
        path = parse_path(d)
    except (ValueError, IndexError) as exc:
        logger.debug("Motion path %r is not parseable: %s", d[:40], exc)
        return None
    points: List[Tuple[float, float]] = []
    closed = False
    for segment in path:
        if isinstance(segment, Move):
            if points:
                # Subpaths are not editable as one polyline.
                return None
            points.append((segment.start.real, segment.start.imag))
        elif isinstance(segment, Close):
            closed = True
        elif isinstance(segment, Line):
            points.append((segment.end.real, segment.end.imag))
        else:
            return None
    return points, closed


def format_polyline(points: List[Tuple[float, float]], closed: bool, precision: Optional[int] = None) -> str:
    if not points:
        return ""
    commands = [f"M {format_vector(points[0], precision)}"]
    commands.extend(f"L {format_vector(p, precision)}" for p in points[1:])
    if closed:
        commands.append("Z")
    return " ".join(commands)


def _motion_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[MotionPathProps]:
    rotate = None if animation.rotate is None else str(animation.rotate)
    parsed = polyline_points(animation.path) if animation.path else None
    if parsed is None:
        props = MotionPathProps(rotate=rotate, editable=False)
    else:
        points, closed = parsed
        props = MotionPathProps(points=points, closed=closed, rotate=rotate)
    return new_state("motion-path", animation, element, props)


def _motion_to_animation(state: GizmoState[MotionPathProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    updates: Dict[str, Any] = {"type": AnimationType.ANIMATE_MOTION}
    if p.editable:
        updates["path"] = format_polyline(p.points, p.closed)
        updates["mpath"] = None
    if p.rotate is not None:
        updates["rotate"] = p.rotate
    return updates


def _drag_vertex(index: int):
    def on_drag(delta: Point, ctx: GizmoInteractionContext) -> None:
        p: MotionPathProps = ctx.state.props
        points = list(p.points)
        raw, moved = drag_point(p.raw_point, Point(*points[index]), delta, ctx)
        points[index] = (round(moved.x, ctx.precision), round(moved.y, ctx.precision))
        ctx.update_state({"points": points, "raw_point": (raw.x, raw.y)})

    return on_drag


def _motion_handles(ctx) -> List[GizmoHandle]:
    p: MotionPathProps = ctx.state.props
    if not p.editable:
        return []
    center = ctx.element_center
    end_drag = write_back(_motion_to_animation, reset={"raw_point": None})
    return [
        GizmoHandle(
            id=f"vertex-{i}",
            type=HandleType.POSITION,
            position=Static(Point(center.x + x, center.y + y)),
            label=Static(str(i + 1)),
            on_drag=_drag_vertex(i),
            on_drag_end=end_drag,
        )
        for i, (x, y) in enumerate(p.points)
    ]


motion_path_gizmo = GizmoDefinition(
    id="motion-path",
    category=GizmoCategory.VECTOR,
    from_animation=_motion_from_animation,
    to_animation=_motion_to_animation,
    handles=Computed(_motion_handles),
    match=MatchByKind(lambda a: a.type == AnimationType.ANIMATE_MOTION),
    smil_target=AnimationType.ANIMATE_MOTION,
    target_attributes=["transform"],
    metadata=GizmoMetadata(name="Motion Path", description="Move element along a path", keyboard_shortcut="M"),
)


# ---------------------------------------------------------------------------
# Stroke draw
# ---------------------------------------------------------------------------


@dataclass
class StrokeDrawProps:
    path_length: float = 100.0
    from_offset: float = 100.0
    to_offset: float = 0.0


def _path_length(element: CanvasElement) -> Optional[float]:
    length = first_number(element.data.get("pathLength"), 0.0)
    if length > 0:
        return length
    d = element.data.get("d")
    if not d:
        return None
    try:
        return parse_path(d).length()
    except (ValueError, IndexError, ZeroDivisionError):
        logger.debug("Could not measure path of element %s", element.id)
        return None


def _stroke_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[StrokeDrawProps]:
    values = animation.value_list
    from_offset = first_number(values[0] if values else animation.from_, 0.0)
    to_offset = first_number(values[-1] if values else animation.to, 0.0)
    length = _path_length(element) or max(abs(from_offset), abs(to_offset), 1.0)
    props = StrokeDrawProps(path_length=length, from_offset=from_offset, to_offset=to_offset)
    return new_state("stroke-draw", animation, element, props)


def _stroke_to_animation(state: GizmoState[StrokeDrawProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    return {
        "type": AnimationType.ANIMATE,
        "attribute_name": "stroke-dashoffset",
        "from_": format_vector([p.from_offset]),
        "to": format_vector([p.to_offset]),
        "values": None,
    }


def _drawn_fraction(p: StrokeDrawProps) -> float:
    if p.path_length <= 0:
        return 0.0
    return max(0.0, min(1.0, 1.0 - p.to_offset / p.path_length))


def _drag_progress(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: StrokeDrawProps = ctx.state.props
    width = ctx.element_bounds.width
    if not width:
        return
    fraction = max(0.0, min(1.0, _drawn_fraction(p) + delta.x / width))
    ctx.update_state({"to_offset": p.path_length * (1.0 - fraction)})


def _stroke_handles(ctx) -> List[GizmoHandle]:
    p: StrokeDrawProps = ctx.state.props
    bounds = ctx.element_bounds
    fraction = _drawn_fraction(p)
    return [
        GizmoHandle(
            id="progress",
            type=HandleType.VALUE,
            position=Static(Point(
                bounds.min_x + bounds.width * fraction,
                bounds.min_y - PROGRESS_HANDLE_OFFSET,
            )),
            label=Static(f"{round(fraction * 100)}%"),
            cursor="ew-resize",
            constraints=HandleConstraints(axis="x"),
            on_drag=_drag_progress,
            on_drag_end=write_back(_stroke_to_animation),
        )
    ]


stroke_draw_gizmo = GizmoDefinition(
    id="stroke-draw",
    category=GizmoCategory.VECTOR,
    from_animation=_stroke_from_animation,
    to_animation=_stroke_to_animation,
    handles=Computed(_stroke_handles),
    match=MatchByPredicate(
        lambda a, _el: a.type == AnimationType.ANIMATE and a.attribute_name == "stroke-dashoffset"
    ),
    smil_target=AnimationType.ANIMATE,
    target_attributes=["stroke-dashoffset"],
    metadata=GizmoMetadata(name="Stroke Draw", description="Reveal a stroke as if drawn"),
)


VECTOR_GIZMOS = [motion_path_gizmo, stroke_draw_gizmo]
