"""Compile typed animation descriptions into SMIL markup."""
from __future__ import annotations

import logging
import math
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, Field

from smilforge.models.animation import (
    AccumulateMode,
    AdditiveMode,
    AnimationType,
    AnimationValue,
    CalcMode,
    SVGAnimation,
)
from smilforge.utils.clock import parse_clock_value
from smilforge.utils.config import settings

logger = logging.getLogger(__name__)

_SEPARATOR_RE = re.compile(r"([\s,]+)")
_PATH_NUMBER_RE = re.compile(r"-?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_NUMERIC_START_RE = re.compile(r"^[+\-.\d]")


class SMILCompileError(ValueError):
    """Raised when a single description cannot be turned into markup."""


class CompileOptions(BaseModel):
    precision: int = Field(default=4, ge=0, le=10)
    optimize: bool = True
    include_comments: bool = False
    compatibility: Literal["standard", "webkit", "all"] = "standard"

    @classmethod
    def from_settings(cls) -> "CompileOptions":
        return cls(
            precision=settings.compile_precision,
            optimize=settings.compile_optimize,
            include_comments=settings.compile_include_comments,
            compatibility=settings.compile_compatibility,
        )


@dataclass
class CompileResult:
    """Markup for a batch: one element per description, warnings and defs."""
    elements: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    defs: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


@dataclass
class ValidationResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def round_number(num: float, precision: int) -> str:
    """Round and print without trailing zeros: 0.123456 -> "0.12" at precision 2."""
    rounded = round(num, precision)
    if rounded == 0:
        return "0"
    text = f"{rounded:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _as_number(token: str) -> Optional[float]:
    try:
        value = float(token)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def escape_attribute(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


class SMILCompiler:
    """Turns ``SVGAnimation`` descriptions into ``<animate*>``/``<set>`` markup."""

    def __init__(self, options: Optional[CompileOptions] = None) -> None:
        self.options = options or CompileOptions.from_settings()

    def set_default_options(self, **overrides) -> None:
        self.options = self.options.model_copy(update=overrides)

    def _resolve_options(self, options: Optional[CompileOptions]) -> CompileOptions:
        return options if options is not None else self.options

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def compile(self, animation: SVGAnimation, options: Optional[CompileOptions] = None) -> str:
        opts = self._resolve_options(options)
        if animation.type == AnimationType.ANIMATE:
            markup = self._compile_animate(animation, opts)
        elif animation.type == AnimationType.ANIMATE_TRANSFORM:
            markup = self._compile_animate_transform(animation, opts)
        elif animation.type == AnimationType.ANIMATE_MOTION:
            markup = self._compile_animate_motion(animation, opts)
        elif animation.type == AnimationType.SET:
            markup = self._compile_set(animation, opts)
        else:
            raise SMILCompileError(f"Unknown animation type: {animation.type}")

        if opts.include_comments:
            kind = animation.type.value
            target = animation.target_element_id or "?"
            comment = f"<!-- {animation.id}: {kind} on #{target} -->"
            markup = f"{comment}{markup}"
        return markup

    def compile_all(
        self, animations: List[SVGAnimation], options: Optional[CompileOptions] = None
    ) -> CompileResult:
        opts = self._resolve_options(options)
        result = CompileResult()

        for target_animations in self._group_by_target(animations).values():
            for animation in target_animations:
                try:
                    result.elements.append(self.compile(animation, opts))
                except ValueError as exc:
                    result.warnings.append(f"Failed to compile animation {animation.id}: {exc}")
                    continue
                if animation.type == AnimationType.ANIMATE_MOTION and animation.mpath:
                    if animation.mpath not in result.defs:
                        result.defs.append(animation.mpath)

        if result.warnings:
            logger.warning("SMIL compilation produced %d warning(s)", len(result.warnings))
        return result

    def validate(self, animation: SVGAnimation) -> ValidationResult:
        errors: List[str] = []

        if animation.type is None:
            errors.append("Animation type is required")
        if not animation.target_element_id:
            errors.append("Target element ID is required")

        if animation.type == AnimationType.ANIMATE:
            if not animation.attribute_name:
                errors.append("attributeName is required for animate")
            if animation.from_ is None and animation.to is None and not animation.values:
                errors.append("Either from/to or values must be specified")
        elif animation.type == AnimationType.ANIMATE_TRANSFORM:
            if animation.transform_type is None:
                errors.append("transformType is required for animateTransform")
        elif animation.type == AnimationType.ANIMATE_MOTION:
            if not animation.path and not animation.mpath:
                errors.append("Either path or mpath is required for animateMotion")
        elif animation.type == AnimationType.SET:
            if not animation.attribute_name:
                errors.append("attributeName is required for set")
            if animation.to is None:
                errors.append("to value is required for set")

        errors.extend(self._validate_keyframes(animation))
        errors.extend(self._validate_timing(animation))
        return ValidationResult(valid=not errors, errors=errors)

    # ------------------------------------------------------------------
    # Per-kind compilation
    # ------------------------------------------------------------------

    def _compile_animate(self, animation: SVGAnimation, opts: CompileOptions) -> str:
        if not animation.attribute_name:
            raise SMILCompileError("animate requires attributeName")
        attrs: Dict[str, str] = {"attributeName": animation.attribute_name}
        self._add_value_attributes(attrs, animation, opts)
        self._add_common_attributes(attrs, animation, opts)
        self._add_additive_attributes(attrs, animation)
        return self._build_element("animate", attrs)

    def _compile_animate_transform(self, animation: SVGAnimation, opts: CompileOptions) -> str:
        if animation.transform_type is None:
            raise SMILCompileError("animateTransform requires transformType")
        attrs: Dict[str, str] = {
            "attributeName": "transform",
            "type": animation.transform_type.value,
        }
        self._add_value_attributes(attrs, animation, opts)
        self._add_common_attributes(attrs, animation, opts)
        self._add_additive_attributes(attrs, animation)
        return self._build_element("animateTransform", attrs)

    def _compile_animate_motion(self, animation: SVGAnimation, opts: CompileOptions) -> str:
        if not animation.path and not animation.mpath:
            raise SMILCompileError("animateMotion requires path or mpath")
        attrs: Dict[str, str] = {}
        if animation.path and not animation.mpath:
            attrs["path"] = self._optimize_path(animation.path, opts)
        if animation.rotate is not None:
            attrs["rotate"] = self.format_value(animation.rotate, opts)
        if animation.key_points:
            attrs["keyPoints"] = self._format_list(animation.key_points, opts)
        self._add_common_attributes(attrs, animation, opts)
        self._add_additive_attributes(attrs, animation)

        if animation.mpath:
            return self._build_element("animateMotion", attrs, self._mpath_child(animation.mpath, opts))
        return self._build_element("animateMotion", attrs)

    def _compile_set(self, animation: SVGAnimation, opts: CompileOptions) -> str:
        if not animation.attribute_name:
            raise SMILCompileError("set requires attributeName")
        attrs: Dict[str, str] = {"attributeName": animation.attribute_name}
        if animation.to is not None:
            attrs["to"] = self.format_value(animation.to, opts)
        for name in ("begin", "dur", "end"):
            value = getattr(animation, name)
            if value is not None and value != "":
                attrs[name] = self._clock_attribute(value)
        if animation.fill is not None:
            attrs["fill"] = animation.fill.value
        return self._build_element("set", attrs)

    # ------------------------------------------------------------------
    # Attribute groups
    # ------------------------------------------------------------------

    def _add_value_attributes(
        self, attrs: Dict[str, str], animation: SVGAnimation, opts: CompileOptions
    ) -> None:
        if animation.values:
            attrs["values"] = self.format_values(animation.values, opts)
            return
        if animation.from_ is not None:
            attrs["from"] = self.format_value(animation.from_, opts)
        if animation.to is not None:
            attrs["to"] = self.format_value(animation.to, opts)
        if animation.by is not None and animation.to is None:
            attrs["by"] = self.format_value(animation.by, opts)

    def _add_common_attributes(
        self, attrs: Dict[str, str], animation: SVGAnimation, opts: CompileOptions
    ) -> None:
        for name in ("dur", "begin", "end"):
            value = getattr(animation, name)
            if value is not None and value != "":
                attrs[name] = self._clock_attribute(value)
        if animation.fill is not None:
            attrs["fill"] = animation.fill.value
        if animation.repeat_count is not None:
            attrs["repeatCount"] = self._repeat_count(animation.repeat_count)
        if animation.repeat_dur:
            attrs["repeatDur"] = animation.repeat_dur
        if animation.calc_mode is not None and animation.calc_mode != CalcMode.LINEAR:
            attrs["calcMode"] = animation.calc_mode.value
        if animation.key_times and not self._redundant_key_times(animation, opts):
            attrs["keyTimes"] = self._format_list(animation.key_times, opts)
        if animation.key_splines:
            attrs["keySplines"] = self._format_splines(animation.key_splines, opts)

    @staticmethod
    def _add_additive_attributes(attrs: Dict[str, str], animation: SVGAnimation) -> None:
        if animation.additive is not None and animation.additive != AdditiveMode.REPLACE:
            attrs["additive"] = animation.additive.value
        if animation.accumulate is not None and animation.accumulate != AccumulateMode.NONE:
            attrs["accumulate"] = animation.accumulate.value

    @staticmethod
    def _mpath_child(path_id: str, opts: CompileOptions) -> str:
        ref = escape_attribute(path_id)
        if opts.compatibility == "webkit":
            return f'<mpath xlink:href="#{ref}"/>'
        if opts.compatibility == "all":
            return f'<mpath href="#{ref}" xlink:href="#{ref}"/>'
        return f'<mpath href="#{ref}"/>'

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def format_value(self, value: AnimationValue, opts: Optional[CompileOptions] = None) -> str:
        """Round numeric tokens, leave everything else (colors, units) untouched."""
        opts = self._resolve_options(opts)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return round_number(float(value), opts.precision)
        parts = _SEPARATOR_RE.split(str(value).strip())
        formatted = []
        for part in parts:
            number = _as_number(part) if part and not _SEPARATOR_RE.fullmatch(part) else None
            formatted.append(round_number(number, opts.precision) if number is not None else part)
        return "".join(formatted)

    def format_values(self, values: str, opts: Optional[CompileOptions] = None) -> str:
        return ";".join(self.format_value(v.strip(), opts) for v in values.split(";") if v.strip())

    def _format_list(self, text: str, opts: CompileOptions) -> str:
        items = [item.strip() for item in text.split(";") if item.strip()]
        return ";".join(self.format_value(item, opts) for item in items)

    def _format_splines(self, text: str, opts: CompileOptions) -> str:
        items = [item.strip() for item in text.split(";") if item.strip()]
        return ";".join(
            " ".join(self.format_value(token, opts) for token in re.split(r"[\s,]+", item))
            for item in items
        )

    def _optimize_path(self, path: str, opts: CompileOptions) -> str:
        if not opts.optimize:
            return path
        return _PATH_NUMBER_RE.sub(lambda m: round_number(float(m.group(0)), opts.precision), path)

    @staticmethod
    def _clock_attribute(value: AnimationValue) -> str:
        if isinstance(value, (int, float)):
            return f"{round_number(float(value), 6)}s"
        return str(value)

    @staticmethod
    def _repeat_count(value) -> str:
        if value == "indefinite":
            return "indefinite"
        return round_number(float(value), 6)

    @staticmethod
    def _redundant_key_times(animation: SVGAnimation, opts: CompileOptions) -> bool:
        if not opts.optimize:
            return False
        if animation.calc_mode not in (None, CalcMode.LINEAR):
            return False
        times = [t.strip() for t in (animation.key_times or "").split(";") if t.strip()]
        if len(times) != 2 or len(animation.value_list) > 2:
            return False
        return _as_number(times[0]) == 0 and _as_number(times[1]) == 1

    def _build_element(self, tag: str, attrs: Dict[str, str], children: Optional[str] = None) -> str:
        attr_text = " ".join(
            f'{key}="{escape_attribute(value)}"' for key, value in attrs.items() if value != ""
        )
        if children:
            return f"<{tag} {attr_text}>{children}</{tag}>"
        return f"<{tag} {attr_text}/>"

    @staticmethod
    def _group_by_target(animations: List[SVGAnimation]) -> "OrderedDict[str, List[SVGAnimation]]":
        groups: "OrderedDict[str, List[SVGAnimation]]" = OrderedDict()
        for animation in animations:
            groups.setdefault(animation.target_element_id, []).append(animation)
        return groups

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_number_list(text: str) -> Tuple[List[float], bool]:
        numbers: List[float] = []
        for item in text.split(";"):
            item = item.strip()
            if not item:
                continue
            number = _as_number(item)
            if number is None:
                return numbers, False
            numbers.append(number)
        return numbers, True

    def _validate_keyframes(self, animation: SVGAnimation) -> List[str]:
        errors: List[str] = []
        values = animation.value_list
        is_discrete = animation.calc_mode == CalcMode.DISCRETE

        if animation.key_times:
            times, ok = self._parse_number_list(animation.key_times)
            if not ok:
                errors.append("keyTimes must be a semicolon-separated list of numbers")
            else:
                if values and len(times) != len(values):
                    errors.append(
                        f"keyTimes has {len(times)} entries but values has {len(values)}"
                    )
                if times and times[0] != 0:
                    errors.append("keyTimes must start at 0")
                if times and not is_discrete and times[-1] != 1:
                    errors.append("keyTimes must end at 1")
                if any(b < a for a, b in zip(times, times[1:])):
                    errors.append("keyTimes must be non-decreasing")
                if any(t < 0 or t > 1 for t in times):
                    errors.append("keyTimes must lie between 0 and 1")

        if animation.key_points:
            points, ok = self._parse_number_list(animation.key_points)
            if not ok or any(p < 0 or p > 1 for p in points):
                errors.append("keyPoints must be numbers between 0 and 1")
            elif animation.key_times:
                times, _ = self._parse_number_list(animation.key_times)
                if len(points) != len(times):
                    errors.append("keyPoints and keyTimes must have the same number of entries")

        if animation.calc_mode == CalcMode.SPLINE:
            if not animation.key_splines:
                errors.append("keySplines is required when calcMode is spline")
            else:
                splines = [s.strip() for s in animation.key_splines.split(";") if s.strip()]
                segments = len(values) - 1 if values else 1
                if len(splines) != segments:
                    errors.append(
                        f"keySplines must have {segments} entries, found {len(splines)}"
                    )
                for spline in splines:
                    coords = [_as_number(c) for c in re.split(r"[\s,]+", spline) if c]
                    if len(coords) != 4 or any(c is None or c < 0 or c > 1 for c in coords):
                        errors.append(f"Invalid keySplines entry: {spline!r}")
                        break
        return errors

    @staticmethod
    def _validate_timing(animation: SVGAnimation) -> List[str]:
        errors: List[str] = []
        if animation.dur is not None:
            dur = parse_clock_value(animation.dur)
            if dur is None or dur < 0:
                errors.append(f"dur must be a non-negative clock value, got {animation.dur!r}")
        if animation.repeat_dur is not None:
            repeat_dur = parse_clock_value(animation.repeat_dur)
            if repeat_dur is None or repeat_dur < 0:
                errors.append(f"repeatDur must be a non-negative clock value, got {animation.repeat_dur!r}")
        if animation.repeat_count is not None and animation.repeat_count != "indefinite":
            count = float(animation.repeat_count)
            if not math.isfinite(count) or count <= 0:
                errors.append("repeatCount must be a positive finite number or 'indefinite'")
        if animation.begin is not None and animation.begin != "":
            # Event and sync-base begins ("click", "a.end+1s") are not checked here.
            for part in str(animation.begin).split(";"):
                part = part.strip()
                if not part or not _NUMERIC_START_RE.match(part):
                    continue
                offset = parse_clock_value(part)
                if offset is None or not math.isfinite(offset):
                    errors.append(f"begin offset must be a finite clock value, got {part!r}")
        return errors
