"""SMIL clock-value parsing ("2s", "500ms", "1.5min", "00:01:02.5", "indefinite")."""
from __future__ import annotations

import math
import re
from typing import Optional, Union

_TIMECOUNT_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)\s*(h|min|s|ms)?$")
_CLOCK_RE = re.compile(r"^(?:(\d+):)?(\d{1,2}):(\d{2}(?:\.\d+)?)$")

_UNIT_SECONDS = {"h": 3600.0, "min": 60.0, "s": 1.0, "ms": 0.001, None: 1.0}


def parse_clock_value(value: Union[str, float, int, None]) -> Optional[float]:
    """Seconds for a clock value, ``inf`` for "indefinite", None if unparseable."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = value.strip()
    if not text:
        return None
    if text == "indefinite":
        return math.inf
    match = _TIMECOUNT_RE.match(text)
    if match:
        return float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    match = _CLOCK_RE.match(text)
    if match:
        hours = float(match.group(1) or 0)
        return hours * 3600.0 + float(match.group(2)) * 60.0 + float(match.group(3))
    return None


def format_seconds(seconds: float, precision: int = 3) -> str:
    """Render seconds as a SMIL timecount, e.g. ``1.5s``."""
    if math.isinf(seconds):
        return "indefinite"
    text = f"{seconds:.{precision}f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        text = "0"
    return f"{text}s"
