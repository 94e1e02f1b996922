"""Helpers shared by the built-in gizmo contributions."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from smilforge.compiler.smil_compiler import round_number
from smilforge.gizmos.types import GizmoInteractionContext, GizmoState
from smilforge.interaction.constraints import constrain_to_axis, snap_to_grid
from smilforge.models.animation import AnimationValue, CanvasElement, SVGAnimation
from smilforge.models.geometry import Point
from smilforge.timeline.interpolation import parse_number, parse_numbers
from smilforge.utils.config import settings

ToAnimation = Callable[[GizmoState[Any], Optional[SVGAnimation]], Dict[str, Any]]


def new_state(gizmo_id: str, animation: SVGAnimation, element: CanvasElement, props: Any) -> GizmoState[Any]:
    return GizmoState(gizmo_id=gizmo_id, animation_id=animation.id, element_id=element.id, props=props)


def first_number(value: Optional[AnimationValue], default: float) -> float:
    number = parse_number(value) if value is not None else None
    return default if number is None else number


def parse_vector(value: Optional[AnimationValue]) -> List[float]:
    return parse_numbers(value) if value is not None else []


def parse_keyframes(values: Optional[str]) -> List[List[float]]:
    """"10 20; 30 40" -> [[10, 20], [30, 40]]."""
    if not values:
        return []
    return [parse_numbers(part) for part in values.split(";") if part.strip()]


def format_vector(numbers: Sequence[float], precision: Optional[int] = None) -> str:
    precision = settings.edit_precision if precision is None else precision
    return " ".join(round_number(n, precision) for n in numbers)


def format_keyframes(keyframes: Sequence[Sequence[float]], precision: Optional[int] = None) -> str:
    return ";".join(format_vector(kf, precision) for kf in keyframes)


def clamp_index(index: Optional[int], length: int) -> int:
    """Active keyframe index; anything out of range selects the last keyframe."""
    if length <= 0:
        return 0
    if index is None or index < 0 or index >= length:
        return length - 1
    return index


def drag_point(
    raw: Optional[Tuple[float, float]], current: Point, delta: Point, ctx: GizmoInteractionContext
) -> Tuple[Point, Point]:
    """Move the unsnapped drag position by ``delta``.

    Returns ``(raw, snapped)``. ``raw`` starts from ``current`` on the first
    event and must be stored by the caller so small steps add up before the
    grid snap is applied.
    """
    start = current if raw is None else Point(*raw)
    moved = start + constrain_to_axis(delta, ctx.modifiers)
    return moved, snap_to_grid(moved, settings.grid_size, settings.snap_to_grid)


def write_back(
    to_animation: ToAnimation, reset: Optional[Dict[str, Any]] = None
) -> Callable[[GizmoInteractionContext], None]:
    """Drag-end callback that writes the edited props back and commits.

    ``reset`` props (drag scratch values) are applied first.
    """

    def on_drag_end(ctx: GizmoInteractionContext) -> None:
        if reset:
            ctx.update_state(dict(reset))
        ctx.update_animation(to_animation(ctx.state, ctx.animation))
        ctx.commit_changes()

    return on_drag_end
