"""Domain models: animation descriptions, canvas elements and geometry."""
from smilforge.models.animation import (
    AccumulateMode,
    AdditiveMode,
    AnimationType,
    CalcMode,
    CanvasElement,
    FillMode,
    SVGAnimation,
    TransformType,
    with_defaults,
)
from smilforge.models.geometry import Bounds, Point, Viewport

__all__ = [
    "AccumulateMode",
    "AdditiveMode",
    "AnimationType",
    "Bounds",
    "CalcMode",
    "CanvasElement",
    "FillMode",
    "Point",
    "SVGAnimation",
    "TransformType",
    "Viewport",
    "with_defaults",
]
