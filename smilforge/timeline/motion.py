"""Position and heading along an animateMotion path."""
from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Optional, Sequence, Union

from svg.path import Path, parse_path

from smilforge.models.geometry import Point
from smilforge.timeline.interpolation import lerp, locate_segment, parse_number
from smilforge.timeline.state import MotionState

logger = logging.getLogger(__name__)

_TANGENT_STEP = 0.001


@lru_cache(maxsize=128)
def _parsed(d: str) -> Path:
    return parse_path(d)


def path_progress(
    progress: float,
    key_points: Optional[Sequence[float]],
    key_times: Optional[Sequence[float]],
) -> float:
    """Map time progress to distance-along-path progress through keyPoints."""
    if not key_points:
        return progress
    if key_times and len(key_times) == len(key_points):
        index, local = locate_segment(progress, key_times)
        if len(key_points) == 1:
            return key_points[0]
        return lerp(key_points[index], key_points[index + 1], local)
    if len(key_points) == 1:
        return key_points[0]
    scaled = progress * (len(key_points) - 1)
    index = min(int(scaled), len(key_points) - 2)
    return lerp(key_points[index], key_points[index + 1], scaled - index)


def motion_at(
    d: str,
    progress: float,
    rotate: Union[str, float, None] = None,
    key_points: Optional[Sequence[float]] = None,
    key_times: Optional[Sequence[float]] = None,
) -> Optional[MotionState]:
    """Sample the path at ``progress``; None if the path cannot be parsed."""
    try:
        path = _parsed(d)
    except (ValueError, IndexError) as exc:
        logger.warning("Cannot parse motion path %r: %s", d[:40], exc)
        return None
    if len(path) == 0:
        return None

    pos = max(0.0, min(1.0, path_progress(progress, key_points, key_times)))
    point = path.point(pos)

    angle = 0.0
    fixed = parse_number(rotate) if rotate is not None else None
    if fixed is not None:
        angle = fixed
    elif rotate in ("auto", "auto-reverse"):
        if pos + _TANGENT_STEP <= 1.0:
            a, b = point, path.point(pos + _TANGENT_STEP)
        else:
            a, b = path.point(pos - _TANGENT_STEP), point
        angle = math.degrees(math.atan2(b.imag - a.imag, b.real - a.real))
        if rotate == "auto-reverse":
            angle += 180.0

    return MotionState(position=Point(point.real, point.imag), angle=angle)
