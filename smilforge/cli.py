"""CLI interface."""
from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError

from smilforge.compiler import CompileOptions, SMILCompiler, compile_svg_document
from smilforge.models.document import AnimationBundle
from smilforge.timeline.engine import AnimationEngine
from smilforge.timeline.scheduler import ManualFrameScheduler
from smilforge.utils.config import settings

app = typer.Typer(add_completion=False)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level.")):
    """Compile, validate and simulate SMIL animation bundles."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _load_bundle(file: Path) -> AnimationBundle:
    try:
        return AnimationBundle.model_validate_json(file.read_text(encoding="utf-8"))
    except ValidationError as exc:
        raise typer.BadParameter(f"{file} is not a valid animation bundle:\n{exc}") from exc


def _seconds(value: float):
    return value if math.isfinite(value) else "indefinite"


@app.command("compile")
def compile_bundle(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Animation bundle JSON."),
    precision: Optional[int] = typer.Option(None, "--precision", "-p", min=0, max=10),
    optimize: bool = typer.Option(settings.compile_optimize, "--optimize/--no-optimize"),
    comments: bool = typer.Option(settings.compile_include_comments, "--comments/--no-comments"),
    compat: str = typer.Option(settings.compile_compatibility, "--compat", help="standard, webkit or all."),
):
    """Print SMIL markup; embedded into the bundle's SVG when it carries one."""
    try:
        options = CompileOptions(
            precision=settings.compile_precision if precision is None else precision,
            optimize=optimize,
            include_comments=comments,
            compatibility=compat,
        )
    except ValidationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    bundle = _load_bundle(file)
    compiler = SMILCompiler(options)
    if bundle.svg:
        typer.echo(compile_svg_document(bundle.svg, bundle.animations, options, compiler))
        return

    result = compiler.compile_all(bundle.animations)
    for warning in result.warnings:
        typer.echo(warning, err=True)
    for markup in result.elements:
        typer.echo(markup)
    if result.defs:
        typer.echo(f"<!-- referenced paths: {', '.join(result.defs)} -->", err=True)


@app.command()
def validate(file: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Report validation errors per animation; exit 1 when any is invalid."""
    bundle = _load_bundle(file)
    compiler = SMILCompiler()
    report = {}
    for animation in bundle.animations:
        result = compiler.validate(animation)
        if not result.valid:
            report[animation.id] = result.errors
    typer.echo(json.dumps({"valid": not report, "errors": report}, indent=2))
    if report:
        raise typer.Exit(code=1)


@app.command()
def state(
    file: Path = typer.Argument(..., exists=True, dir_okay=False),
    time: float = typer.Option(0.0, "--time", "-t", min=0.0, help="Seconds into the timeline."),
):
    """Print every animated element's computed state at --time."""
    bundle = _load_bundle(file)
    engine = AnimationEngine(scheduler=ManualFrameScheduler())
    engine.set_data(bundle.animations, bundle.elements, bundle.chains)
    states = engine.calculate_all_states(time)
    typer.echo(json.dumps({eid: s.to_dict() for eid, s in states.items()}, indent=2, default=str))


@app.command()
def duration(file: Path = typer.Argument(..., exists=True, dir_okay=False)):
    """Print the timeline length and the start delay of chained animations."""
    bundle = _load_bundle(file)
    engine = AnimationEngine(scheduler=ManualFrameScheduler())
    engine.set_data(bundle.animations, bundle.elements, bundle.chains)
    payload = {
        "max_duration": _seconds(engine.max_duration),
        "chain_delays": {key: _seconds(value) for key, value in engine.chain_delays.items()},
    }
    typer.echo(json.dumps(payload, indent=2))


if __name__ == "__main__":
    app()
