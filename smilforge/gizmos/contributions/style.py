"""Style gizmos: opacity and stroke-width value sliders."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from smilforge.gizmos.contributions.common import first_number, format_vector, new_state, write_back
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
from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation
from smilforge.models.geometry import Point

OPACITY_ATTRIBUTES = ("opacity", "fill-opacity", "stroke-opacity")
SLIDER_OFFSET = 16.0
SLIDER_MIN_TRACK = 40.0
# Canvas units of handle travel per unit of stroke width.
STROKE_WIDTH_SCALE = 10.0


def _endpoints(animation: SVGAnimation, default_from: float, default_to: float):
    values = animation.value_list
    return (
        first_number(values[0] if values else animation.from_, default_from),
        first_number(values[-1] if values else animation.to, default_to),
    )


def _endpoint_updates(attribute: str, start: float, end: float) -> Dict[str, Any]:
    return {
        "type": AnimationType.ANIMATE,
        "attribute_name": attribute,
        "from_": format_vector([start]),
        "to": format_vector([end]),
        "values": None,
    }


# ---------------------------------------------------------------------------
# Opacity
# ---------------------------------------------------------------------------


@dataclass
class OpacityProps:
    attribute: str = "opacity"
    from_value: float = 0.0
    to_value: float = 1.0


def _opacity_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[OpacityProps]:
    start, end = _endpoints(animation, 0.0, 1.0)
    props = OpacityProps(attribute=animation.attribute_name or "opacity", from_value=start, to_value=end)
    return new_state("opacity", animation, element, props)


def _opacity_to_animation(state: GizmoState[OpacityProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    return _endpoint_updates(p.attribute, p.from_value, p.to_value)


def _track(ctx) -> float:
    return max(ctx.element_bounds.height, SLIDER_MIN_TRACK)


def _drag_opacity(prop: str):
    def on_drag(delta: Point, ctx: GizmoInteractionContext) -> None:
        value = getattr(ctx.state.props, prop) - delta.y / _track(ctx)
        ctx.update_state({prop: max(0.0, min(1.0, value))})

    return on_drag


def _opacity_handles(ctx) -> List[GizmoHandle]:
    p: OpacityProps = ctx.state.props
    bounds = ctx.element_bounds
    bottom = bounds.min_y + _track(ctx)
    end_drag = write_back(_opacity_to_animation)
    handles = []
    for offset, prop, handle_id in ((1, "from_value", "from"), (2, "to_value", "to")):
        value = getattr(p, prop)
        handles.append(
            GizmoHandle(
                id=handle_id,
                type=HandleType.VALUE,
                position=Static(Point(bounds.max_x + SLIDER_OFFSET * offset, bottom - value * _track(ctx))),
                label=Static(format_vector([value], 2)),
                constraints=HandleConstraints(axis="y", min=Point(0, 0), max=Point(0, 1)),
                on_drag=_drag_opacity(prop),
                on_drag_end=end_drag,
            )
        )
    return handles


opacity_gizmo = GizmoDefinition(
    id="opacity",
    category=GizmoCategory.STYLE,
    from_animation=_opacity_from_animation,
    to_animation=_opacity_to_animation,
    handles=Computed(_opacity_handles),
    match=MatchByKind(lambda a: a.type == AnimationType.ANIMATE and a.attribute_name in OPACITY_ATTRIBUTES),
    smil_target=AnimationType.ANIMATE,
    target_attributes=list(OPACITY_ATTRIBUTES),
    metadata=GizmoMetadata(name="Opacity", description="Fade element in or out", keyboard_shortcut="O"),
)


# ---------------------------------------------------------------------------
# Stroke width
# ---------------------------------------------------------------------------


@dataclass
class StrokeWidthProps:
    from_width: float = 1.0
    to_width: float = 1.0


def _stroke_width_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[StrokeWidthProps]:
    static_width = first_number(element.data.get("strokeWidth"), 1.0)
    start, end = _endpoints(animation, static_width, static_width)
    return new_state("stroke-width", animation, element, StrokeWidthProps(start, end))


def _stroke_width_to_animation(state: GizmoState[StrokeWidthProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    return _endpoint_updates("stroke-width", p.from_width, p.to_width)


def _drag_width(delta: Point, ctx: GizmoInteractionContext) -> None:
    width = ctx.state.props.to_width + delta.x / STROKE_WIDTH_SCALE
    ctx.update_state({"to_width": max(0.0, width)})


def _stroke_width_handles(ctx) -> List[GizmoHandle]:
    p: StrokeWidthProps = ctx.state.props
    bounds = ctx.element_bounds
    return [
        GizmoHandle(
            id="width",
            type=HandleType.VALUE,
            position=Static(Point(bounds.min_x + p.to_width * STROKE_WIDTH_SCALE, bounds.max_y + SLIDER_OFFSET)),
            label=Static(format_vector([p.to_width], ctx.precision)),
            cursor="ew-resize",
            constraints=HandleConstraints(axis="x", min=Point(0, 0)),
            on_drag=_drag_width,
            on_drag_end=write_back(_stroke_width_to_animation),
        )
    ]


stroke_width_gizmo = GizmoDefinition(
    id="stroke-width",
    category=GizmoCategory.STYLE,
    from_animation=_stroke_width_from_animation,
    to_animation=_stroke_width_to_animation,
    handles=Computed(_stroke_width_handles),
    match=MatchByKind(lambda a: a.type == AnimationType.ANIMATE and a.attribute_name == "stroke-width"),
    smil_target=AnimationType.ANIMATE,
    target_attributes=["stroke-width"],
    metadata=GizmoMetadata(name="Stroke Width", description="Animate stroke thickness"),
)


STYLE_GIZMOS = [opacity_gizmo, stroke_width_gizmo]
