"""Animation simulation engine.

Computes the interpolated state of animated elements at any time without
touching the document, and runs a cooperative playback transport on top of a
``FrameScheduler``. Only export produces SMIL markup; preview and gizmo
overlays read the states computed here.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from smilforge.models.animation import (
    AccumulateMode,
    AdditiveMode,
    AnimationType,
    CalcMode,
    CanvasElement,
    FillMode,
    SVGAnimation,
    TransformType,
)
from smilforge.models.document import AnimationChain
from smilforge.timeline.interpolation import (
    cubic_bezier,
    discrete_index,
    interpolate_color,
    interpolate_tokens,
    lerp,
    locate_segment,
    paced_times,
    parse_number,
    parse_numbers,
    parse_splines,
    uniform_times,
)
from smilforge.timeline.motion import motion_at
from smilforge.timeline.scheduler import AsyncioFrameScheduler, FrameScheduler
from smilforge.timeline.state import ElementAnimationState
from smilforge.timeline.timing import (
    calculate_chain_delays,
    compute_max_duration,
    compute_total_duration,
    resolve_begin,
    simple_duration,
)
from smilforge.utils.clock import parse_clock_value
from smilforge.utils.config import settings

logger = logging.getLogger(__name__)

AttributeValue = Union[str, float]
TimeUpdateListener = Callable[[float, Dict[str, ElementAnimationState]], None]

# Playing within this distance of the end restarts from zero.
END_EPSILON = 0.05

COLOR_ATTRIBUTES = {"fill", "stroke", "color", "stop-color", "flood-color", "lighting-color"}
START_DEFAULTS: Dict[str, float] = {
    "opacity": 1.0,
    "fill-opacity": 1.0,
    "stroke-opacity": 1.0,
    "stroke-width": 1.0,
}
STYLE_CHANNELS = {
    "opacity": "opacity",
    "fill": "fill_color",
    "stroke": "stroke_color",
    "stroke-width": "stroke_width",
    "stroke-dashoffset": "stroke_dashoffset",
}
NUMERIC_STYLE_CHANNELS = {"opacity", "stroke-width", "stroke-dashoffset"}


class SimulationQuality(str, Enum):
    EDITING = "editing"
    PREVIEW = "preview"
    EXPORT = "export"


@dataclass(frozen=True)
class QualitySettings:
    mode: SimulationQuality
    filter_quality: str
    update_rate: int  # Hz
    disable_filters: bool = False


QUALITY_PRESETS: Dict[SimulationQuality, QualitySettings] = {
    SimulationQuality.EDITING: QualitySettings(SimulationQuality.EDITING, "low", 30, True),
    SimulationQuality.PREVIEW: QualitySettings(SimulationQuality.PREVIEW, "medium", 60, False),
    SimulationQuality.EXPORT: QualitySettings(SimulationQuality.EXPORT, "high", 60, False),
}


@dataclass(frozen=True)
class TimingSample:
    """Progress within the current iteration plus the iteration index."""
    progress: float
    iteration: int


def sample_timing(animation: SVGAnimation, time: float, begin: float) -> Optional[TimingSample]:
    """Progress of ``animation`` at ``time``; None once a non-frozen animation has ended."""
    local = time - begin
    if local < 0:
        return TimingSample(0.0, 0)

    dur = simple_duration(animation)
    active = compute_total_duration(animation)
    end_at = parse_clock_value(animation.end) if animation.end else None
    if end_at is not None and math.isfinite(end_at):
        active = min(active, max(0.0, end_at - begin))

    if local >= active:
        if animation.fill != FillMode.FREEZE:
            return None
        if dur == 0 or math.isinf(dur):
            return TimingSample(1.0, 0)
        iterations = active / dur
        whole = math.floor(iterations)
        fraction = iterations - whole
        if fraction > 1e-9:
            return TimingSample(fraction, int(whole))
        return TimingSample(1.0, max(int(whole) - 1, 0))

    if dur == 0:
        return TimingSample(1.0, 0)
    if math.isinf(dur):
        return TimingSample(0.0, 0)
    iteration = int(local // dur)
    return TimingSample((local - iteration * dur) / dur, iteration)


def keyframe_pair(
    animation: SVGAnimation, progress: float
) -> Tuple[Optional[str], Optional[str], float]:
    """Bracketing values around ``progress`` and the eased local fraction."""
    values: List[Optional[str]] = list(animation.value_list)
    if not values:
        start = None if animation.from_ is None else str(animation.from_)
        end = None if animation.to is None else str(animation.to)
        if end is None and animation.by is not None:
            base = parse_numbers(start) or [0.0]
            by = parse_numbers(animation.by)
            end = " ".join(repr(a + b) for a, b in zip(base, by)) or None
        values = [start, end]
    if len(values) == 1:
        return values[0], values[0], 0.0

    calc_mode = animation.calc_mode or CalcMode.LINEAR
    times = parse_numbers(animation.key_times) if animation.key_times else None
    if times is not None and len(times) != len(values):
        logger.debug("Ignoring keyTimes of %s: %d times for %d values", animation.id, len(times), len(values))
        times = None

    if calc_mode == CalcMode.DISCRETE:
        index = discrete_index(progress, times, len(values))
        return values[index], values[index], 0.0

    if times is None:
        if calc_mode == CalcMode.PACED and all(v is not None for v in values):
            times = paced_times([v for v in values if v is not None])
        else:
            times = uniform_times(len(values))

    index, local = locate_segment(progress, times)
    if calc_mode == CalcMode.SPLINE:
        splines = parse_splines(animation.key_splines)
        if index < len(splines):
            local = cubic_bezier(local, *splines[index])
    return values[index], values[index + 1], local


def _transform_vector(numbers: Sequence[float], transform_type: TransformType) -> List[Optional[float]]:
    def at(i: int) -> Optional[float]:
        return numbers[i] if len(numbers) > i else None

    if transform_type == TransformType.TRANSLATE:
        return [at(0) or 0.0, at(1) or 0.0]
    if transform_type == TransformType.SCALE:
        sx = 1.0 if at(0) is None else at(0)
        return [sx, sx if at(1) is None else at(1)]
    if transform_type == TransformType.ROTATE:
        return [at(0) or 0.0, at(1), at(2)]
    return [at(0) or 0.0]


def _lerp_optional(a: Optional[float], b: Optional[float], t: float) -> Optional[float]:
    if a is None and b is None:
        return None
    if a is None:
        return b
    if b is None:
        return a
    return lerp(a, b, t)


class AnimationEngine:
    """Computes element states and runs the playback transport.

    Playback is cooperative: each frame advances time and requests the next
    frame unless the engine stopped, paused or was disposed.
    """

    def __init__(
        self,
        scheduler: Optional[FrameScheduler] = None,
        quality: Union[SimulationQuality, str, None] = None,
    ) -> None:
        self._quality = QUALITY_PRESETS[SimulationQuality(quality or settings.simulation_quality)]
        # A scheduler created here follows the quality update rate.
        self._owns_scheduler = scheduler is None
        self._scheduler: FrameScheduler = scheduler or AsyncioFrameScheduler(fps=self._quality.update_rate)
        self._animations: List[SVGAnimation] = []
        self._by_id: Dict[str, SVGAnimation] = {}
        self._elements: Dict[str, CanvasElement] = {}
        self._chain_delays: Dict[str, float] = {}
        self._max_duration = 0.0

        self._current_time = 0.0
        self._is_playing = False
        self._start_timestamp: Optional[float] = None
        self._frame: Optional[int] = None
        self._playback_rate = 1.0
        self._last_notify: Optional[float] = None
        self._listeners: List[TimeUpdateListener] = []
        self._states: Dict[str, ElementAnimationState] = {}

    # ------------------------------------------------------------------
    # Data and quality
    # ------------------------------------------------------------------

    def set_data(
        self,
        animations: Sequence[SVGAnimation],
        elements: Sequence[CanvasElement],
        chains: Optional[Sequence[AnimationChain]] = None,
    ) -> None:
        self._animations = list(animations)
        self._by_id = {anim.id: anim for anim in self._animations}
        self._elements = {el.id: el for el in elements}
        self._chain_delays = calculate_chain_delays(chains or [], self._animations)
        self._max_duration = compute_max_duration(self._animations, self._chain_delays)

    def set_quality(self, mode: Union[SimulationQuality, str]) -> None:
        self._quality = QUALITY_PRESETS[SimulationQuality(mode)]
        if self._owns_scheduler and isinstance(self._scheduler, AsyncioFrameScheduler):
            self._scheduler.set_fps(self._quality.update_rate)

    @property
    def quality(self) -> QualitySettings:
        return self._quality

    @property
    def scheduler(self) -> FrameScheduler:
        return self._scheduler

    @property
    def max_duration(self) -> float:
        return self._max_duration

    @property
    def chain_delays(self) -> Mapping[str, float]:
        return dict(self._chain_delays)

    # ------------------------------------------------------------------
    # State calculation
    # ------------------------------------------------------------------

    def calculate_element_state(
        self, element: CanvasElement, animations: Sequence[SVGAnimation], time: float
    ) -> ElementAnimationState:
        state = ElementAnimationState(element_id=element.id, time=time)
        by_id = {**self._by_id, **{anim.id: anim for anim in animations}}
        for animation in animations:
            if animation.target_element_id != element.id:
                continue
            begin = self._chain_delays.get(animation.id, 0.0) + resolve_begin(animation, by_id)
            self._apply_animation(state, animation, time, begin)
        return state

    def calculate_all_states(self, time: float) -> Dict[str, ElementAnimationState]:
        grouped: Dict[str, List[SVGAnimation]] = {}
        for animation in self._animations:
            grouped.setdefault(animation.target_element_id, []).append(animation)

        states: Dict[str, ElementAnimationState] = {}
        for element_id, animations in grouped.items():
            element = self._elements.get(element_id)
            if element is None:
                logger.debug("Skipping animations for missing element %s", element_id)
                continue
            states[element_id] = self.calculate_element_state(element, animations, time)
        return states

    def _apply_animation(
        self, state: ElementAnimationState, animation: SVGAnimation, time: float, begin: float
    ) -> None:
        if animation.type == AnimationType.SET:
            self._apply_set(state, animation, time, begin)
            return
        sample = sample_timing(animation, time, begin)
        if sample is None:
            return
        if animation.type == AnimationType.ANIMATE_TRANSFORM:
            self._apply_transform(state, animation, sample)
        elif animation.type == AnimationType.ANIMATE_MOTION:
            self._apply_motion(state, animation, sample)
        elif animation.type == AnimationType.ANIMATE:
            self._apply_attribute(state, animation, sample)

    def _apply_transform(
        self, state: ElementAnimationState, animation: SVGAnimation, sample: TimingSample
    ) -> None:
        transform_type = animation.transform_type
        if transform_type is None:
            return
        start, end, t = keyframe_pair(animation, sample.progress)
        identity = [1.0] if transform_type == TransformType.SCALE else [0.0]
        start_vec = _transform_vector(parse_numbers(start) if start is not None else identity, transform_type)
        end_vec = _transform_vector(parse_numbers(end) if end is not None else identity, transform_type)
        vec = [_lerp_optional(a, b, t) for a, b in zip(start_vec, end_vec)]

        if animation.accumulate == AccumulateMode.SUM and sample.iteration > 0:
            last_values = animation.value_list
            last = parse_numbers(last_values[-1] if last_values else animation.to)
            last_vec = _transform_vector(last, transform_type)
            # Rotation centres are not accumulated.
            summed = 2 if transform_type in (TransformType.TRANSLATE, TransformType.SCALE) else 1
            vec = [
                v + sample.iteration * (lv or 0.0) if v is not None and i < summed else v
                for i, (v, lv) in enumerate(zip(vec, last_vec))
            ]

        additive = animation.additive == AdditiveMode.SUM
        record = state.ensure_transform()
        if transform_type == TransformType.TRANSLATE:
            if additive:
                record.translate_x += vec[0]
                record.translate_y += vec[1]
            else:
                record.translate_x, record.translate_y = vec[0], vec[1]
        elif transform_type == TransformType.ROTATE:
            record.rotate = record.rotate + vec[0] if additive else vec[0]
            if vec[1] is not None:
                record.rotate_cx = vec[1]
            if vec[2] is not None:
                record.rotate_cy = vec[2]
        elif transform_type == TransformType.SCALE:
            if additive:
                record.scale_x *= vec[0]
                record.scale_y *= vec[1]
            else:
                record.scale_x, record.scale_y = vec[0], vec[1]
        elif transform_type == TransformType.SKEW_X:
            record.skew_x = record.skew_x + vec[0] if additive else vec[0]
        elif transform_type == TransformType.SKEW_Y:
            record.skew_y = record.skew_y + vec[0] if additive else vec[0]

    def _apply_motion(
        self, state: ElementAnimationState, animation: SVGAnimation, sample: TimingSample
    ) -> None:
        d = animation.path
        if animation.mpath:
            referenced = self._elements.get(animation.mpath)
            d = str(referenced.data.get("d", "")) if referenced is not None else None
            if not d:
                logger.debug("Motion %s references missing path %s", animation.id, animation.mpath)
                return
        if not d:
            return
        key_points = parse_numbers(animation.key_points) if animation.key_points else None
        key_times = parse_numbers(animation.key_times) if animation.key_times else None
        motion = motion_at(d, sample.progress, animation.rotate, key_points, key_times)
        if motion is not None:
            state.motion_path = motion

    def _apply_attribute(
        self, state: ElementAnimationState, animation: SVGAnimation, sample: TimingSample
    ) -> None:
        name = animation.attribute_name
        if not name:
            return
        start, end, t = keyframe_pair(animation, sample.progress)
        value = self._interpolate(name, start, end, t)
        if value is None:
            return

        if (
            isinstance(value, float)
            and animation.accumulate == AccumulateMode.SUM
            and sample.iteration > 0
        ):
            last = parse_number(animation.value_list[-1] if animation.value_list else animation.to)
            if last is not None:
                value += sample.iteration * last

        self._store_channel(state, name, value, additive=animation.additive == AdditiveMode.SUM)

    def _apply_set(
        self, state: ElementAnimationState, animation: SVGAnimation, time: float, begin: float
    ) -> None:
        if not animation.attribute_name or animation.to is None:
            return
        dur = parse_clock_value(animation.dur) if animation.dur is not None else None
        window_end = begin + (math.inf if dur is None else dur)
        active = begin <= time < window_end
        frozen = time >= window_end and animation.fill == FillMode.FREEZE
        if active or frozen:
            value: AttributeValue = str(animation.to)
            number = parse_number(animation.to)
            if number is not None and animation.attribute_name in NUMERIC_STYLE_CHANNELS:
                value = number
            self._store_channel(state, animation.attribute_name, value, additive=False)

    @staticmethod
    def _interpolate(
        name: str, start: Optional[str], end: Optional[str], t: float
    ) -> Optional[AttributeValue]:
        if end is None and start is None:
            return None
        if name in COLOR_ATTRIBUTES:
            start = start if start is not None else end
            end = end if end is not None else start
            return interpolate_color(start, end, t)

        end_number = parse_number(end) if end is not None else None
        if start is None:
            if end_number is not None:
                return lerp(START_DEFAULTS.get(name, 0.0), end_number, t)
            return end
        start_number = parse_number(start)
        if end is None:
            return start_number if start_number is not None else start
        if start_number is not None and end_number is not None:
            return lerp(start_number, end_number, t)
        tokens = interpolate_tokens(start, end, t)
        if tokens is not None:
            return tokens
        return start if t < 0.5 else end

    @staticmethod
    def _store_channel(
        state: ElementAnimationState, name: str, value: AttributeValue, additive: bool
    ) -> None:
        if name == "d":
            state.path_data = str(value)
            return
        if name in STYLE_CHANNELS:
            style = state.ensure_style()
            field_name = STYLE_CHANNELS[name]
            if name in NUMERIC_STYLE_CHANNELS:
                number = value if isinstance(value, float) else parse_number(value)
                if number is None:
                    return
                current = getattr(style, field_name)
                if additive and current is not None:
                    number += current
                setattr(style, field_name, number)
            else:
                setattr(style, field_name, str(value))
            return
        current_attr = state.attributes.get(name)
        if additive and isinstance(value, float) and isinstance(current_attr, float):
            value += current_attr
        state.attributes[name] = value

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    @property
    def current_time(self) -> float:
        return self._current_time

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def playback_rate(self) -> float:
        return self._playback_rate

    @property
    def element_states(self) -> Dict[str, ElementAnimationState]:
        return self._states

    def play(self) -> None:
        if self._is_playing:
            return
        if math.isfinite(self._max_duration) and self._max_duration > 0:
            if self._current_time >= self._max_duration - END_EPSILON:
                self._current_time = 0.0
        self._is_playing = True
        self._start_timestamp = self._scheduler.now() - self._current_time / self._playback_rate
        self._last_notify = None
        self._request_frame()

    def pause(self) -> None:
        if not self._is_playing:
            return
        self._is_playing = False
        self._cancel_frame()

    def stop(self) -> None:
        self.pause()
        self._cancel_frame()
        self._current_time = 0.0
        self._start_timestamp = None
        self._notify(0.0)

    def seek_to(self, time: float) -> None:
        time = max(0.0, time)
        self._current_time = time
        if self._is_playing:
            self._start_timestamp = self._scheduler.now() - time / self._playback_rate
        self._notify(time)

    def set_playback_rate(self, rate: float) -> None:
        self._playback_rate = max(settings.min_playback_rate, rate)
        if self._is_playing:
            self._start_timestamp = self._scheduler.now() - self._current_time / self._playback_rate

    def subscribe(self, listener: TimeUpdateListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        self._is_playing = False
        self._cancel_frame()
        self._current_time = 0.0
        self._start_timestamp = None
        self._listeners.clear()
        self._states = {}
        self._animations = []
        self._by_id = {}
        self._elements = {}
        self._chain_delays = {}
        self._max_duration = 0.0

    def _request_frame(self) -> None:
        self._frame = self._scheduler.request_frame(self._tick)

    def _cancel_frame(self) -> None:
        if self._frame is not None:
            self._scheduler.cancel_frame(self._frame)
            self._frame = None

    def _tick(self, now: float) -> None:
        self._frame = None
        if not self._is_playing or self._start_timestamp is None:
            return

        elapsed = (now - self._start_timestamp) * self._playback_rate
        if math.isfinite(self._max_duration) and elapsed >= self._max_duration:
            self._current_time = self._max_duration
            self._is_playing = False
            self._notify(self._max_duration)
            return

        self._current_time = elapsed
        min_interval = 1.0 / self._quality.update_rate
        if self._last_notify is None or now - self._last_notify >= min_interval:
            self._last_notify = now
            self._notify(elapsed)
        self._request_frame()

    def _notify(self, time: float) -> None:
        self._states = self.calculate_all_states(time)
        for listener in list(self._listeners):
            try:
                listener(time, self._states)
            except Exception:
                logger.exception("Animation engine listener failed")
