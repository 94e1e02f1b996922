"""Value interpolation: numbers, colors, token strings and keyframe lookup."""
from __future__ import annotations

import bisect
import math
import re
from typing import List, Optional, Sequence, Tuple

_TOKEN_SPLIT_RE = re.compile(r"(-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_RGB_RE = re.compile(r"^rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*[\d.]+\s*)?\)$")

Rgb = Tuple[int, int, int]


def lerp(start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def parse_number(value: object) -> Optional[float]:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_numbers(value: object) -> List[float]:
    """Whitespace/comma separated numbers; non-numeric tokens are dropped."""
    if value is None:
        return []
    if isinstance(value, (int, float)):
        return [float(value)]
    numbers = []
    for token in re.split(r"[\s,]+", str(value).strip()):
        number = parse_number(token) if token else None
        if number is not None:
            numbers.append(number)
    return numbers


def parse_color(value: str) -> Optional[Rgb]:
    text = value.strip()
    match = _HEX_RE.match(text)
    if match:
        digits = match.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    match = _RGB_RE.match(text)
    if match:
        return tuple(min(255, int(round(float(c)))) for c in match.groups())  # type: ignore[return-value]
    return None


def interpolate_color(start: str, end: str, t: float) -> str:
    """``rgb(r, g, b)`` between two hex/rgb colors; discrete switch otherwise."""
    start_rgb = parse_color(start)
    end_rgb = parse_color(end)
    if start_rgb is None or end_rgb is None:
        return start if t < 0.5 else end
    r, g, b = (int(round(lerp(a, b, t))) for a, b in zip(start_rgb, end_rgb))
    return f"rgb({r}, {g}, {b})"


def _format(number: float) -> str:
    text = f"{number:.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def interpolate_tokens(start: str, end: str, t: float) -> Optional[str]:
    """Interpolate the numbers of two strings with identical non-numeric skeletons.

    Works for path data with matching commands, viewBox lists and the like.
    Returns None when the skeletons differ.
    """
    start_parts = _TOKEN_SPLIT_RE.split(start.strip())
    end_parts = _TOKEN_SPLIT_RE.split(end.strip())
    if len(start_parts) != len(end_parts):
        return None
    out: List[str] = []
    for index, (a, b) in enumerate(zip(start_parts, end_parts)):
        if index % 2 == 1:
            out.append(_format(lerp(float(a), float(b), t)))
        elif a.strip() != b.strip():
            return None
        else:
            out.append(a)
    return "".join(out)


def cubic_bezier(t: float, x1: float, y1: float, x2: float, y2: float) -> float:
    """Ease ``t`` through the unit cubic Bezier (0,0) (x1,y1) (x2,y2) (1,1)."""
    if t <= 0:
        return 0.0
    if t >= 1:
        return 1.0
    cx = 3 * x1
    bx = 3 * (x2 - x1) - cx
    ax = 1 - cx - bx
    cy = 3 * y1
    by = 3 * (y2 - y1) - cy
    ay = 1 - cy - by

    def sample_x(s: float) -> float:
        return ((ax * s + bx) * s + cx) * s

    low, high, mid = 0.0, 1.0, t
    for _ in range(40):
        x = sample_x(mid)
        if abs(x - t) < 1e-6:
            break
        if x < t:
            low = mid
        else:
            high = mid
        mid = (low + high) / 2
    return ((ay * mid + by) * mid + cy) * mid


def parse_splines(text: Optional[str]) -> List[Tuple[float, float, float, float]]:
    splines = []
    for item in (text or "").split(";"):
        coords = parse_numbers(item)
        if len(coords) == 4:
            splines.append((coords[0], coords[1], coords[2], coords[3]))
    return splines


def uniform_times(count: int) -> List[float]:
    if count <= 1:
        return [0.0]
    return [i / (count - 1) for i in range(count)]


def paced_times(values: Sequence[str]) -> List[float]:
    """Key times proportional to the distance between successive values."""
    vectors = [parse_numbers(v) for v in values]
    if any(not vec for vec in vectors) or len({len(v) for v in vectors}) != 1:
        return uniform_times(len(values))
    distances = [math.dist(a, b) for a, b in zip(vectors, vectors[1:])]
    total = sum(distances)
    if total == 0:
        return uniform_times(len(values))
    times = [0.0]
    for distance in distances:
        times.append(times[-1] + distance / total)
    times[-1] = 1.0
    return times


def locate_segment(progress: float, times: Sequence[float]) -> Tuple[int, float]:
    """Index of the keyframe pair bracketing ``progress`` and the local fraction."""
    if len(times) < 2:
        return 0, 0.0
    index = bisect.bisect_right(times, progress) - 1
    index = max(0, min(index, len(times) - 2))
    start, end = times[index], times[index + 1]
    if end <= start:
        return index, 1.0
    return index, max(0.0, min(1.0, (progress - start) / (end - start)))


def discrete_index(progress: float, times: Optional[Sequence[float]], count: int) -> int:
    """Keyframe shown at ``progress`` in discrete mode."""
    if count <= 1:
        return 0
    if times and len(times) == count:
        return max(0, bisect.bisect_right(times, progress) - 1)
    return min(int(progress * count), count - 1)
