"""Embed compiled SMIL elements into an SVG document."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional
from xml.etree import ElementTree as ET

from smilforge.compiler.smil_compiler import CompileOptions, SMILCompiler
from smilforge.models.animation import SVGAnimation

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"


def _register_namespaces() -> None:
    ET.register_namespace("", SVG_NS)
    ET.register_namespace("xlink", XLINK_NS)


def _parse_fragment(markup: str, namespaced: bool) -> List[ET.Element]:
    default_ns = f' xmlns="{SVG_NS}"' if namespaced else ""
    wrapper = ET.fromstring(f'<g{default_ns} xmlns:xlink="{XLINK_NS}">{markup}</g>')
    return list(wrapper)


def compile_svg_document(
    svg_content: str,
    animations: List[SVGAnimation],
    options: Optional[CompileOptions] = None,
    compiler: Optional[SMILCompiler] = None,
) -> str:
    """Return ``svg_content`` with each animation appended under its target element.

    Animations whose target id is absent from the document are skipped with a
    warning; referenced ``mpath`` ids that are missing are reported the same way.
    """
    compiler = compiler or SMILCompiler()
    _register_namespaces()
    root = ET.fromstring(svg_content)
    namespaced = root.tag.startswith("{")
    by_id: Dict[str, ET.Element] = {el.get("id"): el for el in root.iter() if el.get("id")}

    for animation in animations:
        target = by_id.get(animation.target_element_id)
        if target is None:
            logger.warning(
                "Animation %s targets missing element %r", animation.id, animation.target_element_id
            )
            continue
        try:
            markup = compiler.compile(animation, options)
        except ValueError as exc:
            logger.warning("Failed to compile animation %s: %s", animation.id, exc)
            continue
        for child in _parse_fragment(markup, namespaced):
            target.append(child)
        if animation.mpath and animation.mpath not in by_id:
            logger.warning("Animation %s references missing path #%s", animation.id, animation.mpath)

    return ET.tostring(root, encoding="unicode")
