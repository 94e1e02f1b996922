"""Timing resolution: simple/total durations, begin offsets and chain delays."""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional

from smilforge.models.animation import AnimationType, SVGAnimation
from smilforge.models.document import AnimationChain
from smilforge.utils.clock import parse_clock_value

logger = logging.getLogger(__name__)

DEFAULT_SIMPLE_DURATION = 1.0

_SYNCBASE_RE = re.compile(
    r"^(?P<ref>[A-Za-z_][\w-]*)\.(?P<event>begin|end)"
    r"(?:\s*(?P<sign>[+-])\s*(?P<offset>.+))?$"
)


def simple_duration(animation: SVGAnimation) -> float:
    """Length of one iteration in seconds (``inf`` for dur="indefinite")."""
    dur = parse_clock_value(animation.dur)
    if dur is None:
        return 0.0 if animation.type == AnimationType.SET else DEFAULT_SIMPLE_DURATION
    return max(dur, 0.0)


def repeat_count(animation: SVGAnimation) -> float:
    if animation.repeat_count is None:
        return 1.0
    if animation.repeat_count == "indefinite":
        return math.inf
    return float(animation.repeat_count)


def compute_total_duration(animation: Optional[SVGAnimation]) -> float:
    """Active duration: repeatDur when set, else dur * repeatCount."""
    if animation is None:
        return 0.0
    repeat_dur = parse_clock_value(animation.repeat_dur)
    if repeat_dur is not None and repeat_dur > 0:
        return repeat_dur
    count = repeat_count(animation)
    if math.isinf(count):
        return math.inf
    dur = simple_duration(animation)
    if dur == 0:
        return 0.0
    return dur * count


def resolve_begin(
    animation: SVGAnimation,
    animations_by_id: Mapping[str, SVGAnimation],
    _seen: FrozenSet[str] = frozenset(),
) -> float:
    """Begin offset in seconds.

    Handles plain clock values and sync-base references such as
    ``intro.end+0.5s``. For a list of begin values the earliest resolvable
    one wins. Event begins ("click") and unresolvable references start at 0.
    """
    if animation.begin is None or animation.begin == "":
        return 0.0
    if isinstance(animation.begin, (int, float)):
        return float(animation.begin)

    seen = _seen | {animation.id}
    resolved: List[float] = []
    for part in animation.begin.split(";"):
        part = part.strip()
        if not part:
            continue
        offset = parse_clock_value(part)
        if offset is not None:
            if math.isfinite(offset):
                resolved.append(offset)
            continue
        match = _SYNCBASE_RE.match(part)
        if not match:
            logger.debug("Begin %r of %s is event-driven; treating as 0", part, animation.id)
            continue
        ref_id = match.group("ref")
        ref = animations_by_id.get(ref_id)
        if ref is None:
            logger.warning("Animation %s begins on unknown animation %r", animation.id, ref_id)
            continue
        if ref_id in seen:
            logger.warning("Begin cycle detected at %s -> %s", animation.id, ref_id)
            continue
        base = resolve_begin(ref, animations_by_id, seen)
        if match.group("event") == "end":
            base += compute_total_duration(ref)
        delta = parse_clock_value(match.group("offset")) if match.group("offset") else 0.0
        if delta is None:
            logger.warning("Bad sync offset %r in begin of %s", match.group("offset"), animation.id)
            delta = 0.0
        if match.group("sign") == "-":
            delta = -delta
        value = base + delta
        if math.isfinite(value):
            resolved.append(value)

    return min(resolved) if resolved else 0.0


def calculate_chain_delays(
    chains: Iterable[AnimationChain], animations: Iterable[SVGAnimation]
) -> Dict[str, float]:
    """Start offsets (seconds) for chained animations keyed by animation id.

    An ``end`` trigger starts once every earlier entry of the chain has finished,
    plus its delay; ``start`` and ``repeat`` triggers start at their own delay.
    """
    by_id = {anim.id: anim for anim in animations}
    delays: Dict[str, float] = {}
    for chain in chains:
        cursor = 0.0
        for entry in chain.animations:
            total = compute_total_duration(by_id.get(entry.animation_id))
            duration = total if math.isfinite(total) else 0.0
            entry_delay = max(0.0, entry.delay)
            base = cursor + entry_delay if entry.trigger == "end" else entry_delay
            delays[entry.animation_id] = base
            cursor = max(cursor, base + duration)
    return delays


def compute_max_duration(
    animations: List[SVGAnimation],
    chain_delays: Optional[Mapping[str, float]] = None,
) -> float:
    """Timeline length: max of chain delay + begin + active duration; ``inf`` if any is unbounded."""
    chain_delays = chain_delays or {}
    by_id = {anim.id: anim for anim in animations}
    longest = 0.0
    for animation in animations:
        end = (
            chain_delays.get(animation.id, 0.0)
            + resolve_begin(animation, by_id)
            + compute_total_duration(animation)
        )
        if math.isinf(end):
            return math.inf
        longest = max(longest, end)
    return longest
