"""Computed per-element animation state at a point in time."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Union

from smilforge.models.geometry import Point


@dataclass
class TransformState:
    translate_x: float = 0.0
    translate_y: float = 0.0
    rotate: float = 0.0
    rotate_cx: Optional[float] = None
    rotate_cy: Optional[float] = None
    scale_x: float = 1.0
    scale_y: float = 1.0
    skew_x: float = 0.0
    skew_y: float = 0.0

    def to_svg(self) -> str:
        """SVG transform attribute equivalent to this record."""
        parts = []
        if self.translate_x or self.translate_y:
            parts.append(f"translate({self.translate_x:g} {self.translate_y:g})")
        if self.rotate:
            if self.rotate_cx is not None or self.rotate_cy is not None:
                parts.append(f"rotate({self.rotate:g} {self.rotate_cx or 0:g} {self.rotate_cy or 0:g})")
            else:
                parts.append(f"rotate({self.rotate:g})")
        if self.scale_x != 1 or self.scale_y != 1:
            parts.append(f"scale({self.scale_x:g} {self.scale_y:g})")
        if self.skew_x:
            parts.append(f"skewX({self.skew_x:g})")
        if self.skew_y:
            parts.append(f"skewY({self.skew_y:g})")
        return " ".join(parts)


@dataclass
class MotionState:
    position: Point
    angle: float = 0.0


@dataclass
class StyleState:
    opacity: Optional[float] = None
    fill_color: Optional[str] = None
    stroke_color: Optional[str] = None
    stroke_width: Optional[float] = None
    stroke_dashoffset: Optional[float] = None


@dataclass
class ElementAnimationState:
    element_id: str
    time: float
    transform: Optional[TransformState] = None
    motion_path: Optional[MotionState] = None
    style: Optional[StyleState] = None
    path_data: Optional[str] = None
    attributes: Dict[str, Union[str, float]] = field(default_factory=dict)

    def ensure_transform(self) -> TransformState:
        if self.transform is None:
            self.transform = TransformState()
        return self.transform

    def ensure_style(self) -> StyleState:
        if self.style is None:
            self.style = StyleState()
        return self.style

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
