"""Gizmo definitions, handles, edit state and the contexts handed to callbacks."""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation
from smilforge.models.geometry import Bounds, Point, Viewport

T = TypeVar("T")
PropsT = TypeVar("PropsT")


class GizmoCategory(str, Enum):
    """Closed set of gizmo families."""
    TRANSFORM = "transform"
    VECTOR = "vector"
    STYLE = "style"
    CLIP_MASK = "clip-mask"
    GRADIENT = "gradient"
    FILTER = "filter"
    HIERARCHY = "hierarchy"
    INTERACTIVE = "interactive"
    TYPOGRAPHY = "typography"
    FX = "fx"
    SCENE = "scene"


class HandleType(str, Enum):
    POSITION = "position"
    ROTATION = "rotation"
    SCALE = "scale"
    TANGENT = "tangent"
    TIMING = "timing"
    VALUE = "value"
    ORIGIN = "origin"
    CUSTOM = "custom"

    @property
    def cursor(self) -> str:
        return _HANDLE_CURSORS[self]


_HANDLE_CURSORS: Dict[HandleType, str] = {
    HandleType.POSITION: "move",
    HandleType.ROTATION: "grab",
    HandleType.SCALE: "nwse-resize",
    HandleType.TANGENT: "crosshair",
    HandleType.TIMING: "ew-resize",
    HandleType.VALUE: "ns-resize",
    HandleType.ORIGIN: "crosshair",
    HandleType.CUSTOM: "pointer",
}


@dataclass(frozen=True)
class ModifierState:
    shift: bool = False
    alt: bool = False
    meta: bool = False
    ctrl: bool = False


# ---------------------------------------------------------------------------
# Literal-or-contextual values
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Static(Generic[T]):
    value: T


@dataclass(frozen=True)
class Computed(Generic[T]):
    fn: Callable[["GizmoContext"], T]


Dynamic = Union[Static[T], Computed[T]]


def resolve(value: Dynamic[T], ctx: "GizmoContext") -> T:
    """Evaluate a Static/Computed value against the live context."""
    if isinstance(value, Computed):
        return value.fn(ctx)
    return value.value


# ---------------------------------------------------------------------------
# Match strategies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MatchByPredicate:
    """Match on the animation and the element it targets."""
    predicate: Callable[[SVGAnimation, CanvasElement], bool]


@dataclass(frozen=True)
class MatchByKind:
    """Match on the animation alone."""
    predicate: Callable[[SVGAnimation], bool]


MatchStrategy = Union[MatchByPredicate, MatchByKind]
Matcher = Callable[[SVGAnimation, CanvasElement], bool]


def build_matcher(match: Optional[MatchStrategy]) -> Matcher:
    if isinstance(match, MatchByPredicate):
        return match.predicate
    if isinstance(match, MatchByKind):
        kind_predicate = match.predicate
        return lambda animation, _element: kind_predicate(animation)
    return lambda _animation, _element: False


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


@dataclass
class InteractionState:
    active_handle: Optional[str] = None
    is_dragging: bool = False
    drag_start: Optional[Point] = None
    is_hovered: bool = False
    hovered_handle: Optional[str] = None


@dataclass
class GizmoState(Generic[PropsT]):
    """Per-activation edit state; props is the gizmo kind's own record."""
    gizmo_id: str
    animation_id: str
    element_id: str
    props: PropsT
    is_focused: bool = False
    interaction: InteractionState = field(default_factory=InteractionState)

    def with_props(self, updates: Dict[str, Any]) -> "GizmoState[PropsT]":
        """Copy with ``updates`` merged into the props record."""
        if isinstance(self.props, dict):
            return replace(self, props={**self.props, **updates})
        return replace(self, props=replace(self.props, **updates))


@dataclass
class GizmoContext:
    state: GizmoState[Any]
    animation: SVGAnimation
    element: CanvasElement
    element_bounds: Bounds
    element_center: Point
    viewport: Viewport
    precision: int


@dataclass
class GizmoRenderContext(GizmoContext):
    current_time: float
    duration: float
    is_playing: bool
    progress: float


@dataclass
class GizmoInteractionContext(GizmoRenderContext):
    drag_start: Point
    current_point: Point
    delta: Point
    modifiers: ModifierState
    update_state: Callable[[Dict[str, Any]], None]
    update_animation: Callable[[Dict[str, Any]], None]
    commit_changes: Callable[[], None]


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------


@dataclass
class HandleConstraints:
    axis: Optional[str] = None  # x, y, free, circular
    min: Optional[Point] = None
    max: Optional[Point] = None
    snap: Optional[float] = None


@dataclass
class GizmoHandle:
    id: str
    type: HandleType
    on_drag: Callable[[Point, GizmoInteractionContext], None]
    position: Dynamic[Point] = field(default_factory=lambda: Static(Point()))
    label: Optional[Dynamic[str]] = None
    visible: Dynamic[bool] = field(default_factory=lambda: Static(True))
    tooltip: Optional[str] = None
    cursor: Optional[str] = None
    constraints: Optional[HandleConstraints] = None
    on_drag_start: Optional[Callable[[GizmoInteractionContext], None]] = None
    on_drag_end: Optional[Callable[[GizmoInteractionContext], None]] = None

    @property
    def effective_cursor(self) -> str:
        return self.cursor or self.type.cursor


@dataclass
class GizmoMetadata:
    name: str
    description: str = ""
    icon: Optional[str] = None
    keyboard_shortcut: Optional[str] = None


@dataclass
class GizmoDefinition:
    id: str
    category: GizmoCategory
    from_animation: Callable[[SVGAnimation, CanvasElement], GizmoState[Any]]
    to_animation: Callable[[GizmoState[Any], Optional[SVGAnimation]], Dict[str, Any]]
    handles: Dynamic[List[GizmoHandle]] = field(default_factory=lambda: Static([]))
    match: Optional[MatchStrategy] = None
    smil_target: Optional[AnimationType] = None
    target_attributes: List[str] = field(default_factory=list)
    render: Optional[Callable[[GizmoRenderContext], Any]] = None
    priority: int = 0
    metadata: Optional[GizmoMetadata] = None

    def __post_init__(self) -> None:
        self.matches: Matcher = build_matcher(self.match)

