import asyncio
import math

import pytest

from smilforge.models import CanvasElement, SVGAnimation, with_defaults
from smilforge.models.document import AnimationChain, AnimationChainEntry
from smilforge.timeline import AnimationEngine, AsyncioFrameScheduler, ManualFrameScheduler, SimulationQuality
from smilforge.timeline.engine import keyframe_pair, sample_timing

RECT = CanvasElement(id="r1", type="rect", data={"x": 0, "y": 0, "width": 100, "height": 50})


def _anim(anim_id="a1", **fields):
    return SVGAnimation(id=anim_id, targetElementId="r1", **fields)


def _engine(*animations, chains=None, quality="export"):
    scheduler = ManualFrameScheduler()
    engine = AnimationEngine(scheduler=scheduler, quality=quality)
    engine.set_data(list(animations), [RECT], chains)
    return engine, scheduler


def _state(engine, time):
    return engine.calculate_all_states(time)["r1"]


def test_rotate_progresses_linearly():
    spin = with_defaults(_anim(type="animateTransform", transformType="rotate", **{"from": "0"}, to="360"))
    engine, _ = _engine(spin)
    assert _state(engine, 1.0).transform.rotate == pytest.approx(180)
    assert _state(engine, 2.0).transform.rotate == pytest.approx(360)
    assert _state(engine, 5.0).transform.rotate == pytest.approx(360)


def test_rotation_center_is_carried():
    spin = _anim(type="animateTransform", transformType="rotate", **{"from": "0 50 25"}, to="90 50 25", dur="1s")
    transform = _state(_engine(spin)[0], 0.5).transform
    assert transform.rotate == pytest.approx(45)
    assert (transform.rotate_cx, transform.rotate_cy) == (50, 25)
    assert transform.to_svg() == "rotate(45 50 25)"


def test_before_begin_shows_from_value():
    fade = _anim(type="animate", attributeName="opacity", **{"from": 0.2}, to=1, dur="1s", begin="1s")
    assert _state(_engine(fade)[0], 0.5).style.opacity == pytest.approx(0.2)


def test_fill_remove_drops_contribution_after_end():
    fade = _anim(type="animate", attributeName="opacity", **{"from": 0}, to=1, dur="1s", fill="remove")
    engine, _ = _engine(fade)
    assert _state(engine, 0.5).style.opacity == pytest.approx(0.5)
    assert _state(engine, 2.0).style is None


def test_fill_freeze_holds_last_value():
    fade = _anim(type="animate", attributeName="opacity", **{"from": 0}, to=1, dur="1s", fill="freeze", repeatCount=2)
    assert _state(_engine(fade)[0], 10).style.opacity == pytest.approx(1)


def test_repeat_wraps_progress():
    fade = _anim(type="animate", attributeName="opacity", **{"from": 0}, to=1, dur="1s", repeatCount=3)
    assert _state(_engine(fade)[0], 1.25).style.opacity == pytest.approx(0.25)


def test_accumulate_sum_adds_end_value_per_iteration():
    move = _anim(
        type="animateTransform", transformType="translate", **{"from": "0 0"}, to="10 0",
        dur="1s", repeatCount=2, accumulate="sum",
    )
    assert _state(_engine(move)[0], 1.5).transform.translate_x == pytest.approx(15)


def test_accumulate_sum_leaves_rotation_center_in_place():
    spin = _anim(
        type="animateTransform", transformType="rotate", **{"from": "0 50 50"}, to="90 50 50",
        dur="1s", repeatCount=2, accumulate="sum",
    )
    transform = _state(_engine(spin)[0], 1.5).transform
    assert transform.rotate == pytest.approx(135)
    assert (transform.rotate_cx, transform.rotate_cy) == (50, 50)


def test_transform_types_coexist_and_additive_composes():
    animations = [
        _anim("t1", type="animateTransform", transformType="translate", **{"from": "0 0"}, to="10 0", dur="1s"),
        _anim("t2", type="animateTransform", transformType="translate", **{"from": "0 0"}, to="0 20", dur="1s", additive="sum"),
        _anim("s1", type="animateTransform", transformType="scale", **{"from": "1"}, to="3", dur="1s"),
        _anim("s2", type="animateTransform", transformType="scale", **{"from": "2"}, to="2", dur="1s", additive="sum"),
    ]
    transform = _state(_engine(*animations)[0], 0.5).transform
    assert (transform.translate_x, transform.translate_y) == (pytest.approx(5), pytest.approx(10))
    assert transform.scale_x == pytest.approx(4)
    assert transform.scale_y == pytest.approx(4)


def test_color_interpolation():
    tint = _anim(type="animate", attributeName="fill", **{"from": "#000000"}, to="#ffffff", dur="2s")
    assert _state(_engine(tint)[0], 1.0).style.fill_color == "rgb(128, 128, 128)"


def test_discrete_values_step():
    blink = _anim(type="animate", attributeName="visibility", values="visible;hidden", calcMode="discrete", dur="2s")
    engine, _ = _engine(blink)
    assert _state(engine, 0.5).attributes["visibility"] == "visible"
    assert _state(engine, 1.5).attributes["visibility"] == "hidden"


def test_keyframes_with_key_times():
    bounce = _anim(type="animate", attributeName="y", values="0;100;0", keyTimes="0;0.25;1", dur="4s")
    engine, _ = _engine(bounce)
    assert _state(engine, 0.5).attributes["y"] == pytest.approx(50)
    assert _state(engine, 2.5).attributes["y"] == pytest.approx(50)


def test_spline_easing_is_symmetric():
    ease = _anim(
        type="animate", attributeName="x", values="0;100", calcMode="spline",
        keySplines="0.42 0 0.58 1", dur="1s",
    )
    engine, _ = _engine(ease)
    assert _state(engine, 0.5).attributes["x"] == pytest.approx(50, abs=0.1)
    assert _state(engine, 0.25).attributes["x"] < 25


def test_path_data_morphs_token_wise():
    morph = _anim(type="animate", attributeName="d", **{"from": "M0 0 L10 0"}, to="M0 0 L20 10", dur="1s")
    assert _state(_engine(morph)[0], 0.5).path_data == "M0 0 L15 5"


def test_set_applies_inside_window():
    hide = _anim(type="set", attributeName="visibility", to="hidden", begin="1s", dur="1s")
    engine, _ = _engine(hide)
    assert "visibility" not in _state(engine, 0.5).attributes
    assert _state(engine, 1.5).attributes["visibility"] == "hidden"
    assert "visibility" not in _state(engine, 2.5).attributes


def test_set_freeze_and_open_window():
    frozen = _anim(type="set", attributeName="visibility", to="hidden", begin="1s", dur="1s", fill="freeze")
    assert _state(_engine(frozen)[0], 5).attributes["visibility"] == "hidden"
    forever = _anim(type="set", attributeName="opacity", to="0.5", begin="1s")
    assert _state(_engine(forever)[0], 100).style.opacity == 0.5


def test_motion_path_position_and_auto_rotate():
    glide = _anim(type="animateMotion", path="M 0 0 L 100 0 L 100 100", rotate="auto", dur="2s")
    engine, _ = _engine(glide)
    motion = _state(engine, 0.5).motion_path
    assert motion.position.x == pytest.approx(50, abs=0.01)
    assert motion.position.y == pytest.approx(0, abs=0.01)
    assert motion.angle == pytest.approx(0, abs=0.01)
    assert _state(engine, 1.5).motion_path.angle == pytest.approx(90, abs=0.01)


def test_motion_through_mpath_reference():
    route = CanvasElement(id="route", type="path", data={"d": "M 0 0 L 0 40"})
    glide = _anim(type="animateMotion", mpath="route", dur="1s")
    engine = AnimationEngine(scheduler=ManualFrameScheduler())
    engine.set_data([glide], [RECT, route])
    assert engine.calculate_all_states(0.5)["r1"].motion_path.position.y == pytest.approx(20)


def test_chain_delay_shifts_begin():
    first = _anim("first", type="animate", attributeName="x", **{"from": 0}, to=10, dur="2s")
    second = _anim("second", type="animate", attributeName="y", **{"from": 0}, to=10, dur="2s")
    chain = AnimationChain(
        id="c", animations=[AnimationChainEntry(animation_id="first"), AnimationChainEntry(animation_id="second", trigger="end")]
    )
    engine, _ = _engine(first, second, chains=[chain])
    assert engine.chain_delays == {"first": 0.0, "second": 2.0}
    assert engine.max_duration == 4
    assert _state(engine, 3.0).attributes["y"] == pytest.approx(5)


def test_sample_timing_and_keyframe_pair():
    anim = _anim(type="animate", attributeName="x", values="0;10;20", dur="2s")
    assert sample_timing(anim, -1, 0).progress == 0
    assert sample_timing(anim, 1, 0).progress == pytest.approx(0.5)
    assert sample_timing(anim, 3, 0) is None
    assert keyframe_pair(anim, 0.75) == ("10", "20", pytest.approx(0.5))


# -- transport ---------------------------------------------------------------


def _fade(**fields):
    fields.setdefault("dur", "2s")
    return _anim(type="animate", attributeName="opacity", **{"from": 0}, to=1, fill="freeze", **fields)


def test_play_advances_and_auto_stops_at_max_duration():
    engine, scheduler = _engine(_fade())
    times = []
    engine.subscribe(lambda t, states: times.append(t))

    engine.play()
    scheduler.advance(1.0)
    assert engine.is_playing
    assert engine.current_time == pytest.approx(1.0)

    scheduler.advance(1.5)
    assert not engine.is_playing
    assert engine.current_time == 2.0
    assert scheduler.pending == 0
    assert times[-1] == 2.0


def test_unbounded_timeline_never_auto_stops():
    engine, scheduler = _engine(_fade(repeatCount="indefinite"))
    assert engine.max_duration == math.inf
    engine.play()
    scheduler.advance(1000)
    assert engine.is_playing
    assert engine.current_time == pytest.approx(1000)


def test_play_at_end_restarts_from_zero():
    engine, scheduler = _engine(_fade())
    engine.seek_to(2.0)
    engine.play()
    assert engine.current_time == 0
    scheduler.advance(0.5)
    assert engine.current_time == pytest.approx(0.5)


def test_pause_and_stop_cancel_frames():
    engine, scheduler = _engine(_fade())
    engine.play()
    scheduler.advance(0.5)
    engine.pause()
    assert scheduler.pending == 0
    assert engine.current_time == pytest.approx(0.5)

    notified = []
    engine.subscribe(lambda t, states: notified.append(t))
    engine.stop()
    assert engine.current_time == 0
    assert notified == [0.0]


def test_seek_keeps_play_state():
    engine, scheduler = _engine(_fade(dur="10s"))
    engine.seek_to(-3)
    assert engine.current_time == 0

    engine.play()
    engine.seek_to(4)
    assert engine.is_playing
    scheduler.advance(1)
    assert engine.current_time == pytest.approx(5)
    assert engine.element_states["r1"].style.opacity == pytest.approx(0.5)


def test_playback_rate_is_clamped_and_scales_time():
    engine, scheduler = _engine(_fade(dur="10s"))
    engine.set_playback_rate(0.01)
    assert engine.playback_rate == pytest.approx(0.1)

    engine.set_playback_rate(2)
    engine.play()
    scheduler.advance(0.5)
    assert engine.current_time == pytest.approx(1.0)


def test_listeners_are_throttled_to_quality_rate():
    engine, scheduler = _engine(_fade(dur="10s"), quality="editing")
    calls = []
    engine.subscribe(lambda t, states: calls.append(t))
    engine.play()
    scheduler.advance(0.01)
    scheduler.advance(0.01)
    assert len(calls) == 1
    scheduler.advance(0.05)
    assert len(calls) == 2


def test_raising_listener_does_not_stop_others():
    engine, _ = _engine(_fade())
    received = []

    def broken(t, states):
        raise RuntimeError("listener failed")

    engine.subscribe(broken)
    unsubscribe = engine.subscribe(lambda t, states: received.append(t))
    engine.seek_to(1)
    unsubscribe()
    engine.seek_to(1.5)
    assert received == [1]


def test_quality_presets():
    engine, _ = _engine(_fade(), quality=None)
    assert engine.quality.mode == SimulationQuality.EDITING
    assert engine.quality.update_rate == 30
    assert engine.quality.disable_filters
    engine.set_quality("preview")
    assert engine.quality.filter_quality == "medium"
    engine.set_quality(SimulationQuality.EXPORT)
    assert engine.quality.filter_quality == "high"
    assert engine.quality.update_rate == 60


def test_dispose_cancels_and_clears():
    engine, scheduler = _engine(_fade())
    engine.subscribe(lambda t, states: None)
    engine.play()
    engine.dispose()
    assert scheduler.pending == 0
    assert not engine.is_playing
    assert engine.max_duration == 0
    assert engine.calculate_all_states(1) == {}


def test_asyncio_scheduler_drives_playback_to_the_end():
    async def run():
        engine = AnimationEngine(scheduler=AsyncioFrameScheduler(fps=200), quality="export")
        engine.set_data([_fade(dur="0.05s")], [RECT])
        engine.play()
        await asyncio.sleep(0.3)
        return engine

    engine = asyncio.run(run())
    assert not engine.is_playing
    assert engine.current_time == pytest.approx(0.05)


def test_default_scheduler_follows_quality_update_rate():
    engine = AnimationEngine(quality="editing")
    assert isinstance(engine.scheduler, AsyncioFrameScheduler)
    assert engine.scheduler.interval == pytest.approx(1 / 30)
    engine.set_quality("preview")
    assert engine.scheduler.interval == pytest.approx(1 / 60)

    own = AsyncioFrameScheduler(fps=200)
    engine = AnimationEngine(scheduler=own, quality="editing")
    engine.set_quality("export")
    assert own.interval == pytest.approx(1 / 200)
