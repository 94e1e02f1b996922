"""Interactive gizmos: timing handle for ``set`` visibility switches."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from smilforge.gizmos.contributions.common import new_state, write_back
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
    Static,
)
from smilforge.interaction.constraints import round_half_away
from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation
from smilforge.models.geometry import Point
from smilforge.utils.clock import format_seconds, parse_clock_value

VISIBILITY_ATTRIBUTES = ("visibility", "display")
# Canvas units of handle travel per second of begin offset.
PIXELS_PER_SECOND = 50.0
TIMING_HANDLE_OFFSET = 24.0


@dataclass
class SetVisibilityProps:
    attribute: str = "visibility"
    to: str = "visible"
    begin: float = 0.0
    # Event or sync-base begins are shown but not draggable.
    editable: bool = True
    # Unsnapped begin accumulated during a drag.
    raw_begin: Optional[float] = None


def _set_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[SetVisibilityProps]:
    begin = parse_clock_value(animation.begin) if animation.begin is not None else 0.0
    editable = begin is not None and math.isfinite(begin)
    props = SetVisibilityProps(
        attribute=animation.attribute_name or "visibility",
        to="" if animation.to is None else str(animation.to),
        begin=begin if editable else 0.0,
        editable=editable,
    )
    return new_state("set-visibility", animation, element, props)


def _set_to_animation(state: GizmoState[SetVisibilityProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    updates: Dict[str, Any] = {"type": AnimationType.SET, "attribute_name": p.attribute, "to": p.to}
    if p.editable:
        updates["begin"] = format_seconds(p.begin)
    return updates


def _drag_begin(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: SetVisibilityProps = ctx.state.props
    raw = max(0.0, (p.begin if p.raw_begin is None else p.raw_begin) + delta.x / PIXELS_PER_SECOND)
    begin = round_half_away(raw * 10) / 10 if ctx.modifiers.shift else raw
    ctx.update_state({"begin": begin, "raw_begin": raw})


def _set_handles(ctx) -> List[GizmoHandle]:
    p: SetVisibilityProps = ctx.state.props
    if not p.editable:
        return []
    bounds = ctx.element_bounds
    return [
        GizmoHandle(
            id="begin",
            type=HandleType.TIMING,
            position=Static(Point(
                bounds.min_x + p.begin * PIXELS_PER_SECOND,
                bounds.max_y + TIMING_HANDLE_OFFSET,
            )),
            label=Static(format_seconds(p.begin, 2)),
            tooltip="Shift snaps to tenths of a second",
            constraints=HandleConstraints(axis="x", min=Point(0, 0)),
            on_drag=_drag_begin,
            on_drag_end=write_back(_set_to_animation, reset={"raw_begin": None}),
        )
    ]


set_visibility_gizmo = GizmoDefinition(
    id="set-visibility",
    category=GizmoCategory.INTERACTIVE,
    from_animation=_set_from_animation,
    to_animation=_set_to_animation,
    handles=Computed(_set_handles),
    match=MatchByKind(lambda a: a.type == AnimationType.SET and a.attribute_name in VISIBILITY_ATTRIBUTES),
    smil_target=AnimationType.SET,
    target_attributes=list(VISIBILITY_ATTRIBUTES),
    metadata=GizmoMetadata(name="Visibility Switch", description="Show or hide element at a point in time"),
)


INTERACTIVE_GIZMOS = [set_visibility_gizmo]
