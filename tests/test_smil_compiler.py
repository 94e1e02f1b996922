import logging
from xml.etree import ElementTree as ET

import pytest

from smilforge.compiler import (
    CompileOptions,
    SMILCompileError,
    SMILCompiler,
    compile_svg_document,
    round_number,
)
from smilforge.compiler.document import SVG_NS, XLINK_NS
from smilforge.models import SVGAnimation


def _compiler(**overrides):
    options = CompileOptions(precision=4, optimize=True, include_comments=False, compatibility="standard")
    return SMILCompiler(options.model_copy(update=overrides))


def _anim(**fields):
    fields.setdefault("id", "a1")
    fields.setdefault("targetElementId", "r1")
    return SVGAnimation(**fields)


def test_round_number():
    assert round_number(0.123456789, 2) == "0.12"
    assert round_number(100.987654321, 2) == "100.99"
    assert round_number(2.0, 4) == "2"
    assert round_number(-0.00001, 2) == "0"


def test_compile_opacity_fade():
    markup = _compiler().compile(_anim(type="animate", attributeName="opacity", **{"from": 0}, to=1, dur="2s"))
    assert markup == '<animate attributeName="opacity" from="0" to="1" dur="2s"/>'


def test_precision_rounds_from_and_to():
    markup = _compiler(precision=2).compile(
        _anim(type="animate", attributeName="x", **{"from": 0.123456789}, to=100.987654321, dur="1s")
    )
    assert 'from="0.12"' in markup
    assert 'to="100.99"' in markup


def test_non_numeric_tokens_pass_through():
    markup = _compiler(precision=1).compile(
        _anim(type="animate", attributeName="fill", values="#ff0000;#00ff00;rgb(0, 0, 255)", dur="3s")
    )
    assert 'values="#ff0000;#00ff00;rgb(0, 0, 255)"' in markup


def test_compile_rotate_transform():
    markup = _compiler().compile(
        _anim(
            type="animateTransform", transformType="rotate", **{"from": "0 50 50"}, to="360 50 50",
            dur="2s", repeatCount="indefinite", fill="freeze",
        )
    )
    assert markup.startswith('<animateTransform attributeName="transform" type="rotate"')
    assert 'from="0 50 50"' in markup
    assert 'repeatCount="indefinite"' in markup
    assert 'fill="freeze"' in markup


def test_numeric_timing_gets_seconds_suffix():
    markup = _compiler().compile(
        _anim(type="animate", attributeName="opacity", to=1, dur=1.5, begin=0.25, repeatCount=2)
    )
    assert 'dur="1.5s"' in markup
    assert 'begin="0.25s"' in markup
    assert 'repeatCount="2"' in markup


def test_defaults_are_omitted():
    markup = _compiler().compile(
        _anim(type="animate", attributeName="x", to=5, calcMode="linear", additive="replace", accumulate="none")
    )
    assert "calcMode" not in markup
    assert "additive" not in markup
    assert "accumulate" not in markup


def test_additive_and_accumulate_are_emitted():
    markup = _compiler().compile(
        _anim(type="animateTransform", transformType="translate", to="10 0", additive="sum", accumulate="sum")
    )
    assert 'additive="sum"' in markup
    assert 'accumulate="sum"' in markup


def test_spline_keyframes():
    markup = _compiler().compile(
        _anim(
            type="animate", attributeName="opacity", values="0;1;0", keyTimes="0;0.5;1",
            calcMode="spline", keySplines="0.42 0 0.58 1;0.42,0,0.58,1", dur="2s",
        )
    )
    assert 'calcMode="spline"' in markup
    assert 'keyTimes="0;0.5;1"' in markup
    assert 'keySplines="0.42 0 0.58 1;0.42 0 0.58 1"' in markup


def test_redundant_key_times_dropped_when_optimizing():
    animation = _anim(type="animate", attributeName="opacity", values="0;1", keyTimes="0;1", dur="1s")
    assert "keyTimes" not in _compiler().compile(animation)
    assert 'keyTimes="0;1"' in _compiler(optimize=False).compile(animation)


def test_motion_path_is_rounded_when_optimizing():
    animation = _anim(type="animateMotion", path="M 0.123456 0 L 10.987654 20", rotate="auto", dur="3s")
    markup = _compiler(precision=2).compile(animation)
    assert 'path="M 0.12 0 L 10.99 20"' in markup
    assert 'rotate="auto"' in markup
    assert 'path="M 0.123456 0 L 10.987654 20"' in _compiler(optimize=False).compile(animation)


def test_mpath_child_per_compatibility_mode():
    animation = _anim(type="animateMotion", mpath="route", dur="3s")
    assert _compiler().compile(animation) == '<animateMotion dur="3s"><mpath href="#route"/></animateMotion>'
    assert '<mpath xlink:href="#route"/>' in _compiler(compatibility="webkit").compile(animation)
    assert '<mpath href="#route" xlink:href="#route"/>' in _compiler(compatibility="all").compile(animation)


def test_set_emits_only_set_attributes():
    markup = _compiler().compile(
        _anim(type="set", attributeName="visibility", to="hidden", begin="1s", repeatCount=3, calcMode="discrete")
    )
    assert markup == '<set attributeName="visibility" to="hidden" begin="1s"/>'


def test_include_comments_names_animation_and_target():
    markup = _compiler(include_comments=True).compile(_anim(type="animate", attributeName="opacity", to=1))
    assert markup.startswith("<!-- a1: animate on #r1 --><animate")


def test_attribute_values_are_escaped():
    markup = _compiler().compile(_anim(type="set", attributeName="class", to='a"b<c'))
    assert 'to="a&quot;b&lt;c"' in markup


def test_compile_raises_for_uncompilable_input():
    with pytest.raises(SMILCompileError):
        _compiler().compile(_anim())
    with pytest.raises(ValueError):
        _compiler().compile(_anim(type="animateTransform", to="1"))


def test_compile_all_collects_warnings_and_defs():
    animations = [
        _anim(id="fade", type="animate", attributeName="opacity", to=1),
        _anim(id="bad", type="animate", to=1),
        _anim(id="move", targetElementId="r2", type="animateMotion", mpath="route"),
        _anim(id="spin", type="animateTransform", transformType="rotate", to=90),
    ]
    result = _compiler().compile_all(animations)

    assert len(result.elements) == 3
    assert result.warnings == ["Failed to compile animation bad: animate requires attributeName"]
    assert result.defs == ["route"]
    assert not result.ok
    # Grouped by target in first-seen order.
    assert "opacity" in result.elements[0]
    assert "rotate" in result.elements[1]
    assert "animateMotion" in result.elements[2]


def test_compile_all_without_failures():
    animations = [_anim(id=f"a{i}", type="animate", attributeName="opacity", to=1) for i in range(3)]
    result = _compiler().compile_all(animations)
    assert len(result.elements) == 3
    assert result.warnings == []
    assert result.ok


def test_validate_structural_errors():
    compiler = _compiler()
    errors = compiler.validate(SVGAnimation(id="x")).errors
    assert "Animation type is required" in errors
    assert "Target element ID is required" in errors

    errors = compiler.validate(_anim(type="animate")).errors
    assert errors == ["attributeName is required for animate", "Either from/to or values must be specified"]

    assert compiler.validate(_anim(type="animateTransform")).errors == [
        "transformType is required for animateTransform"
    ]
    assert compiler.validate(_anim(type="animateMotion")).errors == [
        "Either path or mpath is required for animateMotion"
    ]
    assert compiler.validate(_anim(type="set")).errors == [
        "attributeName is required for set",
        "to value is required for set",
    ]


def test_validate_accepts_complete_description():
    result = _compiler().validate(
        _anim(type="animate", attributeName="opacity", values="0;1;0", keyTimes="0;0.4;1", dur="2s", begin="click")
    )
    assert result.valid
    assert result.errors == []


def test_validate_keyframe_errors():
    compiler = _compiler()
    errors = compiler.validate(
        _anim(type="animate", attributeName="x", values="0;1;0", keyTimes="0;1")
    ).errors
    assert "keyTimes has 2 entries but values has 3" in errors

    errors = compiler.validate(
        _anim(type="animate", attributeName="x", values="0;1;0", keyTimes="0.1;0.5;0.9")
    ).errors
    assert "keyTimes must start at 0" in errors
    assert "keyTimes must end at 1" in errors

    errors = compiler.validate(
        _anim(type="animate", attributeName="x", values="0;1;0", keyTimes="0;0.6;0.5")
    ).errors
    assert "keyTimes must be non-decreasing" in errors

    errors = compiler.validate(
        _anim(type="animate", attributeName="x", values="0;1;0", calcMode="spline", keySplines="0 0 1 1")
    ).errors
    assert "keySplines must have 2 entries, found 1" in errors

    errors = compiler.validate(
        _anim(type="animate", attributeName="x", values="0;1", calcMode="spline", keySplines="0 0 1.5 1")
    ).errors
    assert "Invalid keySplines entry: '0 0 1.5 1'" in errors


def test_discrete_key_times_need_not_end_at_one():
    result = _compiler().validate(
        _anim(type="animate", attributeName="visibility", values="visible;hidden", keyTimes="0;0.5", calcMode="discrete")
    )
    assert result.valid


def test_validate_timing_errors():
    compiler = _compiler()
    assert not compiler.validate(_anim(type="animate", attributeName="x", to=1, dur="-1s")).valid
    assert not compiler.validate(_anim(type="animate", attributeName="x", to=1, repeatCount=0)).valid
    assert not compiler.validate(_anim(type="animate", attributeName="x", to=1, begin="2q")).valid
    assert compiler.validate(_anim(type="animate", attributeName="x", to=1, begin="intro.end+1s")).valid


def test_compile_svg_document_embeds_under_targets(caplog):
    svg = f'<svg xmlns="{SVG_NS}"><path id="route" d="M0 0 L10 10"/><rect id="r1" width="10" height="10"/></svg>'
    animations = [
        _anim(type="animate", attributeName="opacity", to=1, dur="1s"),
        _anim(id="move", type="animateMotion", mpath="route", dur="2s"),
        _anim(id="ghost", targetElementId="nowhere", type="animate", attributeName="x", to=1),
    ]
    with caplog.at_level(logging.WARNING):
        output = compile_svg_document(svg, animations, CompileOptions(compatibility="webkit"))

    root = ET.fromstring(output)
    rect = root.find(f"{{{SVG_NS}}}rect")
    assert rect.find(f"{{{SVG_NS}}}animate").get("attributeName") == "opacity"
    mpath = rect.find(f"{{{SVG_NS}}}animateMotion/{{{SVG_NS}}}mpath")
    assert mpath.get(f"{{{XLINK_NS}}}href") == "#route"
    assert "nowhere" in caplog.text


def test_compile_svg_document_without_namespace():
    output = compile_svg_document('<svg><rect id="r1"/></svg>', [_anim(type="set", attributeName="visibility", to="hidden")])
    root = ET.fromstring(output)
    assert root.find("rect/set").get("to") == "hidden"


def test_default_options_can_be_overridden():
    compiler = _compiler()
    compiler.set_default_options(include_comments=True)
    animation = _anim(type="animate", attributeName="opacity", to=1)
    assert compiler.compile(animation).startswith("<!--")
    override = CompileOptions(include_comments=False)
    assert compiler.compile(animation, override).startswith("<animate")
