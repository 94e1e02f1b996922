"""Typed SMIL animation descriptions and the canvas elements they target."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class AnimationType(str, Enum):
    """SMIL animation element kinds."""
    ANIMATE = "animate"
    ANIMATE_TRANSFORM = "animateTransform"
    ANIMATE_MOTION = "animateMotion"
    SET = "set"


class TransformType(str, Enum):
    TRANSLATE = "translate"
    SCALE = "scale"
    ROTATE = "rotate"
    SKEW_X = "skewX"
    SKEW_Y = "skewY"


class CalcMode(str, Enum):
    LINEAR = "linear"
    DISCRETE = "discrete"
    PACED = "paced"
    SPLINE = "spline"


class FillMode(str, Enum):
    FREEZE = "freeze"
    REMOVE = "remove"


class AdditiveMode(str, Enum):
    REPLACE = "replace"
    SUM = "sum"


class AccumulateMode(str, Enum):
    NONE = "none"
    SUM = "sum"


AnimationValue = Union[str, float]


class SVGAnimation(BaseModel):
    """One declarative animation bound to a canvas element.

    Field names are snake_case; the camelCase SMIL attribute names are accepted
    as aliases so documents exported by the editor load unchanged.
    """

    id: str
    type: Optional[AnimationType] = None
    target_element_id: str = Field(default="", alias="targetElementId")

    # Timing
    dur: Optional[AnimationValue] = None
    begin: Optional[AnimationValue] = None
    end: Optional[str] = None
    repeat_count: Optional[Union[float, Literal["indefinite"]]] = Field(default=None, alias="repeatCount")
    repeat_dur: Optional[str] = Field(default=None, alias="repeatDur")
    fill: Optional[FillMode] = None
    calc_mode: Optional[CalcMode] = Field(default=None, alias="calcMode")
    key_times: Optional[str] = Field(default=None, alias="keyTimes")
    key_splines: Optional[str] = Field(default=None, alias="keySplines")
    additive: Optional[AdditiveMode] = None
    accumulate: Optional[AccumulateMode] = None

    # Values
    attribute_name: Optional[str] = Field(default=None, alias="attributeName")
    from_: Optional[AnimationValue] = Field(default=None, alias="from")
    to: Optional[AnimationValue] = None
    by: Optional[AnimationValue] = None
    values: Optional[str] = None

    # animateTransform
    transform_type: Optional[TransformType] = Field(default=None, alias="transformType")

    # animateMotion
    path: Optional[str] = None
    mpath: Optional[str] = None
    rotate: Optional[AnimationValue] = None
    key_points: Optional[str] = Field(default=None, alias="keyPoints")

    model_config = {
        "populate_by_name": True,
    }

    @property
    def value_list(self) -> List[str]:
        """Keyframe values split on ';' with blanks removed."""
        if not self.values:
            return []
        return [v.strip() for v in self.values.split(";") if v.strip()]

    def merged(self, updates: Dict[str, Any]) -> "SVGAnimation":
        """Return a validated copy with ``updates`` (keyed by field name) applied."""
        data = self.model_dump()
        data.update(updates)
        return SVGAnimation.model_validate(data)

    def to_markup_dict(self) -> Dict[str, Any]:
        """SMIL attribute names mapped to set values, as stored in bundles."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class CanvasElement(BaseModel):
    """A drawable element on the canvas; geometry and style live in ``data``."""

    id: str
    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    parent_id: Optional[str] = Field(default=None, alias="parentId")

    model_config = {
        "populate_by_name": True,
    }


def with_defaults(animation: SVGAnimation) -> SVGAnimation:
    """Fill in the editor defaults for a newly added animation."""
    updates: Dict[str, Any] = {}
    if animation.fill is None:
        updates["fill"] = FillMode.FREEZE
    if animation.repeat_count is None:
        updates["repeat_count"] = 1
    if animation.dur is None:
        updates["dur"] = "2s"
    return animation.model_copy(update=updates) if updates else animation
