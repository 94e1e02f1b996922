"""Document-store collaborators: element/animation storage, chains and bounds."""
from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Literal, Optional, Protocol

from pydantic import BaseModel, Field
from svg.path import parse_path

from smilforge.models.animation import CanvasElement, SVGAnimation, with_defaults
from smilforge.models.geometry import Bounds, Viewport

logger = logging.getLogger(__name__)


class AnimationChainEntry(BaseModel):
    animation_id: str = Field(..., alias="animationId")
    delay: float = 0.0  # seconds
    trigger: Literal["start", "end", "repeat"] = "start"

    model_config = {
        "populate_by_name": True,
    }


class AnimationChain(BaseModel):
    id: str
    name: Optional[str] = None
    animations: List[AnimationChainEntry] = Field(default_factory=list)


class AnimationBundle(BaseModel):
    """Serialized editor state consumed by the CLI."""
    elements: List[CanvasElement] = Field(default_factory=list)
    animations: List[SVGAnimation] = Field(default_factory=list)
    chains: List[AnimationChain] = Field(default_factory=list)
    svg: Optional[str] = None


class AnimationDocument(Protocol):
    """Store that owns elements and animation descriptions."""

    @property
    def elements(self) -> List[CanvasElement]: ...

    @property
    def animations(self) -> List[SVGAnimation]: ...

    def update_animation(self, animation_id: str, updates: Dict[str, Any]) -> None: ...

    def update_element(self, element_id: str, updates: Dict[str, Any]) -> None: ...


class BoundsProvider(Protocol):
    def get_bounds(self, element: CanvasElement, viewport: Viewport) -> Optional[Bounds]: ...


class InMemoryDocument:
    """List-backed document store."""

    def __init__(
        self,
        elements: Optional[List[CanvasElement]] = None,
        animations: Optional[List[SVGAnimation]] = None,
        chains: Optional[List[AnimationChain]] = None,
    ) -> None:
        self._elements: List[CanvasElement] = list(elements or [])
        self._animations: List[SVGAnimation] = list(animations or [])
        self.chains: List[AnimationChain] = list(chains or [])

    @property
    def elements(self) -> List[CanvasElement]:
        return self._elements

    @property
    def animations(self) -> List[SVGAnimation]:
        return self._animations

    def get_element(self, element_id: str) -> Optional[CanvasElement]:
        return next((el for el in self._elements if el.id == element_id), None)

    def get_animation(self, animation_id: str) -> Optional[SVGAnimation]:
        return next((anim for anim in self._animations if anim.id == animation_id), None)

    def add_animation(self, animation: SVGAnimation) -> SVGAnimation:
        animation = with_defaults(animation)
        self._animations.append(animation)
        return animation

    def remove_animation(self, animation_id: str) -> bool:
        before = len(self._animations)
        self._animations = [anim for anim in self._animations if anim.id != animation_id]
        return len(self._animations) != before

    def update_animation(self, animation_id: str, updates: Dict[str, Any]) -> None:
        for index, anim in enumerate(self._animations):
            if anim.id == animation_id:
                self._animations[index] = with_defaults(anim.merged(updates))
                return
        logger.warning("update_animation: unknown animation %s", animation_id)

    def update_element(self, element_id: str, updates: Dict[str, Any]) -> None:
        for index, el in enumerate(self._elements):
            if el.id == element_id:
                data = {**el.data, **updates.get("data", {})}
                rest = {k: v for k, v in updates.items() if k != "data"}
                self._elements[index] = el.model_copy(update={**rest, "data": data})
                return
        logger.warning("update_element: unknown element %s", element_id)


def _num(data: Dict[str, Any], key: str, default: float = 0.0) -> float:
    try:
        return float(data.get(key, default))
    except (TypeError, ValueError):
        return default


@lru_cache(maxsize=256)
def _path_bounds(d: str, samples: int = 64) -> Optional[Bounds]:
    path = parse_path(d)
    if len(path) == 0:
        return None
    points = [path.point(i / samples) for i in range(samples + 1)]
    xs = [p.real for p in points]
    ys = [p.imag for p in points]
    return Bounds(min(xs), min(ys), max(xs), max(ys))


class ElementBoundsService:
    """Geometric bounds derived from an element's ``data`` mapping."""

    def get_bounds(self, element: CanvasElement, viewport: Viewport) -> Optional[Bounds]:
        data = element.data
        kind = element.type
        if kind in ("rect", "image", "group", "foreignObject") and "width" in data:
            x, y = _num(data, "x"), _num(data, "y")
            return Bounds(x, y, x + _num(data, "width"), y + _num(data, "height"))
        if kind == "circle":
            cx, cy, r = _num(data, "cx"), _num(data, "cy"), _num(data, "r")
            return Bounds(cx - r, cy - r, cx + r, cy + r)
        if kind == "ellipse":
            cx, cy = _num(data, "cx"), _num(data, "cy")
            rx, ry = _num(data, "rx"), _num(data, "ry")
            return Bounds(cx - rx, cy - ry, cx + rx, cy + ry)
        if kind == "line":
            x1, y1, x2, y2 = (_num(data, k) for k in ("x1", "y1", "x2", "y2"))
            return Bounds(min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2))
        if kind == "path" and data.get("d"):
            try:
                return _path_bounds(str(data["d"]))
            except (ValueError, IndexError) as exc:
                logger.warning("Cannot measure path %s: %s", element.id, exc)
                return None
        if kind == "text":
            x, y = _num(data, "x"), _num(data, "y")
            size = _num(data, "fontSize", 16.0)
            width = len(str(data.get("text", ""))) * size * 0.6
            return Bounds(x, y - size, x + width, y)
        logger.debug("No bounds for element %s of type %s", element.id, kind)
        return None
