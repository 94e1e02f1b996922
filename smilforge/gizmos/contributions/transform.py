"""Transform gizmos: translate, rotate, scale and skew on ``animateTransform``."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from smilforge.gizmos.contributions.common import (
    clamp_index,
    drag_point,
    first_number,
    format_keyframes,
    format_vector,
    new_state,
    parse_keyframes,
    parse_vector,
    write_back,
)
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
from smilforge.interaction.constraints import (
    constrain_rotation,
    constrain_to_axis,
    constrain_uniform_scale,
)
from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation, TransformType
from smilforge.models.geometry import Point
from smilforge.utils.config import settings

ROTATION_HANDLE_RADIUS = 60.0
MAX_SKEW_DEGREES = 89.0


def _is_transform(*types: TransformType) -> MatchByKind:
    return MatchByKind(
        lambda a: a.type == AnimationType.ANIMATE_TRANSFORM and a.transform_type in types
    )


# ---------------------------------------------------------------------------
# Translate
# ---------------------------------------------------------------------------


@dataclass
class TranslateProps:
    from_x: float = 0.0
    from_y: float = 0.0
    to_x: float = 0.0
    to_y: float = 0.0
    has_values: bool = False
    keyframes: List[List[float]] = field(default_factory=list)
    active_keyframe: Optional[int] = None
    # Unsnapped endpoint accumulated during a drag.
    raw_point: Optional[Tuple[float, float]] = None

    @property
    def multi_keyframe(self) -> bool:
        return self.has_values and len(self.keyframes) > 2


def _translate_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[TranslateProps]:
    keyframes = parse_keyframes(animation.values)
    if keyframes:
        first, last = keyframes[0], keyframes[-1]
    else:
        first, last = parse_vector(animation.from_), parse_vector(animation.to)
    props = TranslateProps(
        from_x=first[0] if first else 0.0,
        from_y=first[1] if len(first) > 1 else 0.0,
        to_x=last[0] if last else 0.0,
        to_y=last[1] if len(last) > 1 else 0.0,
        has_values=bool(keyframes),
        keyframes=keyframes,
        active_keyframe=len(keyframes) - 1 if len(keyframes) > 2 else None,
    )
    return new_state("translate", animation, element, props)


def _translate_to_animation(state: GizmoState[TranslateProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    updates: Dict[str, Any] = {
        "type": AnimationType.ANIMATE_TRANSFORM,
        "transform_type": TransformType.TRANSLATE,
    }
    if p.has_values and p.keyframes:
        keyframes = [list(kf) for kf in p.keyframes]
        if not p.multi_keyframe:
            keyframes[0] = [p.from_x, p.from_y]
            keyframes[-1] = [p.to_x, p.to_y]
        updates.update(values=format_keyframes(keyframes), from_=None, to=None)
    else:
        updates.update(
            from_=format_vector([p.from_x, p.from_y]),
            to=format_vector([p.to_x, p.to_y]),
            values=None,
        )
    return updates


def _move_endpoint(prefix: str):
    def on_drag(delta: Point, ctx: GizmoInteractionContext) -> None:
        p: TranslateProps = ctx.state.props
        current = Point(getattr(p, f"{prefix}_x"), getattr(p, f"{prefix}_y"))
        raw, target = drag_point(p.raw_point, current, delta, ctx)
        ctx.update_state({
            f"{prefix}_x": target.x, f"{prefix}_y": target.y,
            "raw_point": (raw.x, raw.y),
        })

    return on_drag


def _move_keyframe(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: TranslateProps = ctx.state.props
    delta = constrain_to_axis(delta, ctx.modifiers)
    index = clamp_index(p.active_keyframe, len(p.keyframes))
    keyframes = [list(kf) for kf in p.keyframes]
    current = keyframes[index] + [0.0, 0.0]
    keyframes[index] = [
        round(current[0] + delta.x, ctx.precision),
        round(current[1] + delta.y, ctx.precision),
    ]
    first, last = keyframes[0] + [0.0, 0.0], keyframes[-1] + [0.0, 0.0]
    ctx.update_state({
        "keyframes": keyframes,
        "from_x": first[0], "from_y": first[1],
        "to_x": last[0], "to_y": last[1],
    })


def _translate_handles(ctx) -> List[GizmoHandle]:
    p: TranslateProps = ctx.state.props
    center = ctx.element_center
    end_drag = write_back(_translate_to_animation, reset={"raw_point": None})
    if p.multi_keyframe:
        index = clamp_index(p.active_keyframe, len(p.keyframes))
        kf = p.keyframes[index] + [0.0, 0.0]
        return [
            GizmoHandle(
                id="keyframe",
                type=HandleType.POSITION,
                position=Static(Point(center.x + kf[0], center.y + kf[1])),
                label=Static(str(index + 1)),
                on_drag=_move_keyframe,
                on_drag_end=end_drag,
            )
        ]
    return [
        GizmoHandle(
            id="origin",
            type=HandleType.ORIGIN,
            position=Static(Point(center.x + p.from_x, center.y + p.from_y)),
            tooltip="Start position",
            on_drag=_move_endpoint("from"),
            on_drag_end=end_drag,
        ),
        GizmoHandle(
            id="destination",
            type=HandleType.POSITION,
            position=Static(Point(center.x + p.to_x, center.y + p.to_y)),
            tooltip="End position",
            on_drag=_move_endpoint("to"),
            on_drag_end=end_drag,
        ),
    ]


translate_gizmo = GizmoDefinition(
    id="translate",
    category=GizmoCategory.TRANSFORM,
    from_animation=_translate_from_animation,
    to_animation=_translate_to_animation,
    handles=Computed(_translate_handles),
    match=_is_transform(TransformType.TRANSLATE),
    smil_target=AnimationType.ANIMATE_TRANSFORM,
    target_attributes=["transform"],
    metadata=GizmoMetadata(name="Translation", description="Move element from one position to another", keyboard_shortcut="T"),
)


# ---------------------------------------------------------------------------
# Rotate
# ---------------------------------------------------------------------------


@dataclass
class RotateProps:
    from_degrees: float = 0.0
    to_degrees: float = 360.0
    pivot_x: Optional[float] = None
    pivot_y: Optional[float] = None
    has_values: bool = False
    keyframes: List[List[float]] = field(default_factory=list)
    active_keyframe: Optional[int] = None
    # Unsnapped angle and pivot accumulated during a drag.
    raw_degrees: Optional[float] = None
    raw_pivot: Optional[Tuple[float, float]] = None

    @property
    def multi_keyframe(self) -> bool:
        return self.has_values and len(self.keyframes) > 2

    @property
    def edited_degrees(self) -> float:
        if self.multi_keyframe:
            kf = self.keyframes[clamp_index(self.active_keyframe, len(self.keyframes))]
            return kf[0] if kf else 0.0
        return self.to_degrees


def _rotate_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[RotateProps]:
    keyframes = parse_keyframes(animation.values)
    if keyframes:
        first, last = keyframes[0], keyframes[-1]
        props = RotateProps(
            from_degrees=first[0] if first else 0.0,
            to_degrees=last[0] if last else 360.0,
            has_values=True,
            keyframes=keyframes,
            active_keyframe=len(keyframes) - 1 if len(keyframes) > 2 else None,
        )
    else:
        first, last = parse_vector(animation.from_), parse_vector(animation.to)
        props = RotateProps(
            from_degrees=first[0] if first else 0.0,
            to_degrees=last[0] if last else 0.0,
        )
    pivot = last[1:3] if len(last) >= 3 else first[1:3] if len(first) >= 3 else None
    if pivot:
        props.pivot_x, props.pivot_y = pivot
    return new_state("rotate", animation, element, props)


def _rotate_vector(degrees: float, p: RotateProps) -> List[float]:
    if p.pivot_x is None or p.pivot_y is None:
        return [degrees]
    return [degrees, p.pivot_x, p.pivot_y]


def _rotate_to_animation(state: GizmoState[RotateProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    updates: Dict[str, Any] = {
        "type": AnimationType.ANIMATE_TRANSFORM,
        "transform_type": TransformType.ROTATE,
    }
    if p.has_values and p.keyframes:
        degrees = [kf[0] if kf else 0.0 for kf in p.keyframes]
        if not p.multi_keyframe:
            degrees[0], degrees[-1] = p.from_degrees, p.to_degrees
        keyframes = [_rotate_vector(d, p) for d in degrees]
        updates.update(values=format_keyframes(keyframes), from_=None, to=None)
    else:
        updates.update(
            from_=format_vector(_rotate_vector(p.from_degrees, p)),
            to=format_vector(_rotate_vector(p.to_degrees, p)),
            values=None,
        )
    return updates


def _pivot(ctx) -> Point:
    p: RotateProps = ctx.state.props
    center = ctx.element_center
    return Point(
        center.x if p.pivot_x is None else p.pivot_x,
        center.y if p.pivot_y is None else p.pivot_y,
    )


def _drag_pivot(delta: Point, ctx: GizmoInteractionContext) -> None:
    raw, pivot = drag_point(ctx.state.props.raw_pivot, _pivot(ctx), delta, ctx)
    ctx.update_state({"pivot_x": pivot.x, "pivot_y": pivot.y, "raw_pivot": (raw.x, raw.y)})


def _start_arc(ctx: GizmoInteractionContext) -> None:
    ctx.update_state({"raw_degrees": ctx.state.props.edited_degrees})


def _drag_arc(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: RotateProps = ctx.state.props
    pivot = _pivot(ctx)
    previous = math.atan2(ctx.drag_start.y - pivot.y, ctx.drag_start.x - pivot.x)
    current = math.atan2(ctx.current_point.y - pivot.y, ctx.current_point.x - pivot.x)
    step = math.degrees(current - previous)
    if step > 180:
        step -= 360
    elif step < -180:
        step += 360

    raw = (p.edited_degrees if p.raw_degrees is None else p.raw_degrees) + step
    degrees = constrain_rotation(raw, ctx.modifiers, settings.rotation_snap_increment)

    if p.multi_keyframe:
        keyframes = [list(kf) for kf in p.keyframes]
        index = clamp_index(p.active_keyframe, len(keyframes))
        keyframes[index] = [round(degrees, ctx.precision)] + keyframes[index][1:]
        ctx.update_state({
            "keyframes": keyframes,
            "from_degrees": keyframes[0][0],
            "to_degrees": keyframes[-1][0],
            "raw_degrees": raw,
        })
    else:
        ctx.update_state({"to_degrees": degrees, "raw_degrees": raw})


def _rotate_handles(ctx) -> List[GizmoHandle]:
    p: RotateProps = ctx.state.props
    pivot = _pivot(ctx)
    angle = math.radians(p.edited_degrees - 90)
    return [
        GizmoHandle(
            id="pivot",
            type=HandleType.ORIGIN,
            position=Static(pivot),
            tooltip="Rotation center",
            on_drag=_drag_pivot,
            on_drag_end=write_back(_rotate_to_animation, reset={"raw_pivot": None}),
        ),
        GizmoHandle(
            id="arc",
            type=HandleType.ROTATION,
            position=Static(Point(
                pivot.x + ROTATION_HANDLE_RADIUS * math.cos(angle),
                pivot.y + ROTATION_HANDLE_RADIUS * math.sin(angle),
            )),
            label=Static(f"{format_vector([p.edited_degrees], ctx.precision)}°"),
            constraints=HandleConstraints(axis="circular", snap=settings.rotation_snap_increment),
            on_drag_start=_start_arc,
            on_drag=_drag_arc,
            on_drag_end=write_back(_rotate_to_animation, reset={"raw_degrees": None}),
        ),
    ]


rotate_gizmo = GizmoDefinition(
    id="rotate",
    category=GizmoCategory.TRANSFORM,
    from_animation=_rotate_from_animation,
    to_animation=_rotate_to_animation,
    handles=Computed(_rotate_handles),
    match=_is_transform(TransformType.ROTATE),
    smil_target=AnimationType.ANIMATE_TRANSFORM,
    target_attributes=["transform"],
    metadata=GizmoMetadata(name="Rotation", description="Rotate element around a pivot point", keyboard_shortcut="R"),
)


# ---------------------------------------------------------------------------
# Scale
# ---------------------------------------------------------------------------


@dataclass
class ScaleProps:
    from_scale_x: float = 1.0
    from_scale_y: float = 1.0
    to_scale_x: float = 1.0
    to_scale_y: float = 1.0


def _scale_pair(numbers: List[float]) -> List[float]:
    if not numbers:
        return [1.0, 1.0]
    return [numbers[0], numbers[1] if len(numbers) > 1 else numbers[0]]


def _scale_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[ScaleProps]:
    keyframes = parse_keyframes(animation.values)
    if keyframes:
        first, last = _scale_pair(keyframes[0]), _scale_pair(keyframes[-1])
    else:
        first, last = _scale_pair(parse_vector(animation.from_)), _scale_pair(parse_vector(animation.to))
    props = ScaleProps(first[0], first[1], last[0], last[1])
    return new_state("scale", animation, element, props)


def _scale_to_animation(state: GizmoState[ScaleProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    updates: Dict[str, Any] = {
        "type": AnimationType.ANIMATE_TRANSFORM,
        "transform_type": TransformType.SCALE,
    }
    keyframes = parse_keyframes(existing.values) if existing is not None else []
    if keyframes:
        keyframes[0] = [p.from_scale_x, p.from_scale_y]
        keyframes[-1] = [p.to_scale_x, p.to_scale_y]
        updates.update(values=format_keyframes(keyframes), from_=None, to=None)
    else:
        updates.update(
            from_=format_vector([p.from_scale_x, p.from_scale_y]),
            to=format_vector([p.to_scale_x, p.to_scale_y]),
            values=None,
        )
    return updates


def _drag_corner(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: ScaleProps = ctx.state.props
    half_w = ctx.element_bounds.width / 2
    half_h = ctx.element_bounds.height / 2
    scale_x = p.to_scale_x + (delta.x / half_w if half_w else 0.0)
    scale_y = p.to_scale_y + (delta.y / half_h if half_h else 0.0)
    scale = constrain_uniform_scale(scale_x, scale_y, ctx.modifiers)
    ctx.update_state({"to_scale_x": scale.x, "to_scale_y": scale.y})


def _scale_handles(ctx) -> List[GizmoHandle]:
    p: ScaleProps = ctx.state.props
    center = ctx.element_center
    bounds = ctx.element_bounds
    return [
        GizmoHandle(
            id="corner-se",
            type=HandleType.SCALE,
            position=Static(Point(
                center.x + bounds.width / 2 * p.to_scale_x,
                center.y + bounds.height / 2 * p.to_scale_y,
            )),
            tooltip="Shift keeps proportions",
            on_drag=_drag_corner,
            on_drag_end=write_back(_scale_to_animation),
        )
    ]


scale_gizmo = GizmoDefinition(
    id="scale",
    category=GizmoCategory.TRANSFORM,
    from_animation=_scale_from_animation,
    to_animation=_scale_to_animation,
    handles=Computed(_scale_handles),
    match=_is_transform(TransformType.SCALE),
    smil_target=AnimationType.ANIMATE_TRANSFORM,
    target_attributes=["transform"],
    metadata=GizmoMetadata(name="Scale", description="Scale element size", keyboard_shortcut="S"),
)


# ---------------------------------------------------------------------------
# Skew
# ---------------------------------------------------------------------------


@dataclass
class SkewProps:
    axis: str = "x"
    from_angle: float = 0.0
    to_angle: float = 0.0
    # Unsnapped angle accumulated during a drag.
    raw_angle: Optional[float] = None


def _skew_from_animation(animation: SVGAnimation, element: CanvasElement) -> GizmoState[SkewProps]:
    values = animation.value_list
    props = SkewProps(
        axis="y" if animation.transform_type == TransformType.SKEW_Y else "x",
        from_angle=first_number(values[0] if values else animation.from_, 0.0),
        to_angle=first_number(values[-1] if values else animation.to, 0.0),
    )
    return new_state("skew", animation, element, props)


def _skew_to_animation(state: GizmoState[SkewProps], existing: Optional[SVGAnimation]) -> Dict[str, Any]:
    p = state.props
    return {
        "type": AnimationType.ANIMATE_TRANSFORM,
        "transform_type": TransformType.SKEW_Y if p.axis == "y" else TransformType.SKEW_X,
        "from_": format_vector([p.from_angle]),
        "to": format_vector([p.to_angle]),
        "values": None,
    }


def _skew_lever(ctx) -> float:
    bounds = ctx.element_bounds
    return (bounds.height if ctx.state.props.axis == "x" else bounds.width) / 2


def _drag_skew(delta: Point, ctx: GizmoInteractionContext) -> None:
    p: SkewProps = ctx.state.props
    lever = _skew_lever(ctx)
    if not lever:
        return
    start = p.to_angle if p.raw_angle is None else p.raw_angle
    offset = lever * math.tan(math.radians(start))
    offset += delta.x if p.axis == "x" else delta.y
    raw = math.degrees(math.atan2(offset, lever))
    raw = max(-MAX_SKEW_DEGREES, min(MAX_SKEW_DEGREES, raw))
    angle = constrain_rotation(raw, ctx.modifiers, settings.rotation_snap_increment)
    ctx.update_state({"to_angle": angle, "raw_angle": raw})


def _skew_handles(ctx) -> List[GizmoHandle]:
    p: SkewProps = ctx.state.props
    bounds = ctx.element_bounds
    center = ctx.element_center
    offset = _skew_lever(ctx) * math.tan(math.radians(p.to_angle))
    if p.axis == "x":
        position = Point(center.x + offset, bounds.min_y)
    else:
        position = Point(bounds.max_x, center.y + offset)
    return [
        GizmoHandle(
            id=f"skew-{p.axis}",
            type=HandleType.VALUE,
            position=Static(position),
            label=Static(f"{format_vector([p.to_angle], ctx.precision)}°"),
            cursor="ew-resize" if p.axis == "x" else "ns-resize",
            constraints=HandleConstraints(axis=p.axis),
            on_drag=_drag_skew,
            on_drag_end=write_back(_skew_to_animation, reset={"raw_angle": None}),
        )
    ]


skew_gizmo = GizmoDefinition(
    id="skew",
    category=GizmoCategory.TRANSFORM,
    from_animation=_skew_from_animation,
    to_animation=_skew_to_animation,
    handles=Computed(_skew_handles),
    match=_is_transform(TransformType.SKEW_X, TransformType.SKEW_Y),
    smil_target=AnimationType.ANIMATE_TRANSFORM,
    target_attributes=["transform"],
    metadata=GizmoMetadata(name="Skew", description="Shear element along one axis"),
)


TRANSFORM_GIZMOS = [translate_gizmo, rotate_gizmo, scale_gizmo, skew_gizmo]
