"""Timeline simulation: timing resolution, interpolation and playback."""
from smilforge.timeline.engine import (
    QUALITY_PRESETS,
    AnimationEngine,
    QualitySettings,
    SimulationQuality,
)
from smilforge.timeline.scheduler import (
    AsyncioFrameScheduler,
    FrameScheduler,
    ManualFrameScheduler,
)
from smilforge.timeline.state import (
    ElementAnimationState,
    MotionState,
    StyleState,
    TransformState,
)
from smilforge.timeline.timing import (
    calculate_chain_delays,
    compute_max_duration,
    compute_total_duration,
    resolve_begin,
)

__all__ = [
    "QUALITY_PRESETS",
    "AnimationEngine",
    "AsyncioFrameScheduler",
    "ElementAnimationState",
    "FrameScheduler",
    "ManualFrameScheduler",
    "MotionState",
    "QualitySettings",
    "SimulationQuality",
    "StyleState",
    "TransformState",
    "calculate_chain_delays",
    "compute_max_duration",
    "compute_total_duration",
    "resolve_begin",
]
