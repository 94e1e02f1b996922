"""Gizmo editing session: active edit states and the handle drag lifecycle.

The session owns every ``GizmoState``. Handles never mutate state directly;
they go through the ``update_state``/``update_animation``/``commit_changes``
callbacks of the interaction context built for each drag event. Lookup
failures and callback errors are logged and abort the current operation only.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from smilforge.compiler.smil_compiler import SMILCompiler
from smilforge.gizmos.registry import GizmoRegistry
from smilforge.gizmos.types import (
    GizmoDefinition,
    GizmoHandle,
    GizmoInteractionContext,
    GizmoRenderContext,
    GizmoState,
    InteractionState,
    ModifierState,
    resolve,
)
from smilforge.models.animation import CanvasElement, SVGAnimation
from smilforge.models.document import AnimationDocument, BoundsProvider, ElementBoundsService
from smilforge.models.geometry import Bounds, Point, Viewport
from smilforge.timeline.engine import AnimationEngine
from smilforge.timeline.timing import simple_duration
from smilforge.utils.config import settings

logger = logging.getLogger(__name__)

CommitHook = Callable[[SVGAnimation, str], None]


@dataclass
class DragSession:
    animation_id: str
    handle_id: str
    anchor: Point
    current: Point
    modifiers: ModifierState = ModifierState()
    dirty: bool = False
    committed: bool = False


def round_updates(updates: Dict[str, Any], precision: int) -> Dict[str, Any]:
    """Round finite float values to ``precision`` decimals; leave everything else."""
    rounded: Dict[str, Any] = {}
    for key, value in updates.items():
        if isinstance(value, float) and math.isfinite(value):
            value = round(value, precision)
        rounded[key] = value
    return rounded


class GizmoSession:
    def __init__(
        self,
        registry: GizmoRegistry,
        document: AnimationDocument,
        compiler: Optional[SMILCompiler] = None,
        bounds_provider: Optional[BoundsProvider] = None,
        engine: Optional[AnimationEngine] = None,
        on_commit: Optional[CommitHook] = None,
        precision: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.document = document
        self.compiler = compiler or SMILCompiler()
        self.bounds_provider = bounds_provider or ElementBoundsService()
        self.engine = engine
        self.on_commit = on_commit
        self.precision = settings.edit_precision if precision is None else precision
        self.viewport = Viewport()

        self._states: Dict[str, GizmoState[Any]] = {}
        self._focused: Optional[str] = None
        self._edit_mode = False
        self._drag: Optional[DragSession] = None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_animation(self, animation_id: str) -> Optional[SVGAnimation]:
        return next((a for a in self.document.animations if a.id == animation_id), None)

    def get_element(self, element_id: str) -> Optional[CanvasElement]:
        return next((e for e in self.document.elements if e.id == element_id), None)

    def get_element_bounds(self, element_id: str) -> Optional[Bounds]:
        element = self.get_element(element_id)
        if element is None:
            return None
        return self.bounds_provider.get_bounds(element, self.viewport)

    def get_gizmo_definition(self, animation_id: str) -> Optional[GizmoDefinition]:
        state = self._states.get(animation_id)
        if state is not None:
            return self.registry.get(state.gizmo_id)
        animation = self.get_animation(animation_id)
        if animation is None:
            return None
        element = self.get_element(animation.target_element_id)
        if element is None:
            return None
        return self.registry.find_for_animation(animation, element)

    # ------------------------------------------------------------------
    # Activation and edit mode
    # ------------------------------------------------------------------

    @property
    def edit_mode(self) -> bool:
        return self._edit_mode

    @property
    def active_gizmos(self) -> Dict[str, GizmoState[Any]]:
        return dict(self._states)

    @property
    def focused_animation_id(self) -> Optional[str]:
        return self._focused

    def get_state(self, animation_id: str) -> Optional[GizmoState[Any]]:
        return self._states.get(animation_id)

    def activate_gizmo(self, animation_id: str) -> Optional[GizmoState[Any]]:
        animation = self.get_animation(animation_id)
        if animation is None:
            logger.warning("Animation not found: %s", animation_id)
            return None
        element = self.get_element(animation.target_element_id)
        if element is None:
            logger.warning("Element not found: %s", animation.target_element_id)
            return None
        definition = self.registry.find_for_animation(animation, element)
        if definition is None:
            logger.warning("No gizmo found for animation: %s", animation_id)
            return None
        try:
            state = definition.from_animation(animation, element)
        except Exception:
            logger.exception("Gizmo %s could not read animation %s", definition.id, animation_id)
            return None

        self._states[animation_id] = state
        self.set_focused_gizmo(animation_id)
        return self._states[animation_id]

    def deactivate_gizmo(self, animation_id: str) -> None:
        if self._drag is not None and self._drag.animation_id == animation_id:
            self.end_drag()
        self._states.pop(animation_id, None)
        if self._focused == animation_id:
            self._focused = None

    def deactivate_all_gizmos(self) -> None:
        if self._drag is not None:
            self.end_drag()
        self._states.clear()
        self._focused = None

    def set_gizmo_edit_mode(self, enabled: bool) -> None:
        self._edit_mode = enabled
        if not enabled:
            self.deactivate_all_gizmos()

    def set_focused_gizmo(self, animation_id: Optional[str]) -> None:
        self._focused = animation_id
        for key, state in self._states.items():
            focused = key == animation_id
            if state.is_focused != focused:
                self._states[key] = replace(state, is_focused=focused)

    def update_gizmo_state(self, animation_id: str, updates: Dict[str, Any]) -> None:
        state = self._states.get(animation_id)
        if state is None:
            logger.debug("update_gizmo_state: no active gizmo for %s", animation_id)
            return
        self._states[animation_id] = state.with_props(round_updates(updates, self.precision))

    def set_hovered_handle(self, animation_id: str, handle_id: Optional[str]) -> None:
        state = self._states.get(animation_id)
        if state is None:
            return
        interaction = replace(
            state.interaction, is_hovered=handle_id is not None, hovered_handle=handle_id
        )
        self._states[animation_id] = replace(state, interaction=interaction)

    # ------------------------------------------------------------------
    # Render context and handles
    # ------------------------------------------------------------------

    def _time_snapshot(self, animation: SVGAnimation) -> Tuple[float, float, bool, float]:
        current_time = self.engine.current_time if self.engine is not None else 0.0
        is_playing = self.engine.is_playing if self.engine is not None else False
        duration = simple_duration(animation)
        if duration > 0 and math.isfinite(duration):
            progress = max(0.0, min(1.0, current_time / duration))
        else:
            progress = 0.0
        return current_time, duration, is_playing, progress

    def get_render_context(self, animation_id: str) -> Optional[GizmoRenderContext]:
        state = self._states.get(animation_id)
        animation = self.get_animation(animation_id)
        if state is None or animation is None:
            return None
        element = self.get_element(animation.target_element_id)
        if element is None:
            return None
        bounds = self.bounds_provider.get_bounds(element, self.viewport)
        if bounds is None:
            return None
        current_time, duration, is_playing, progress = self._time_snapshot(animation)
        return GizmoRenderContext(
            state=state,
            animation=animation,
            element=element,
            element_bounds=bounds,
            element_center=bounds.center,
            viewport=self.viewport,
            precision=self.precision,
            current_time=current_time,
            duration=duration,
            is_playing=is_playing,
            progress=progress,
        )

    def get_handles(self, animation_id: str, visible_only: bool = True) -> List[GizmoHandle]:
        context = self.get_render_context(animation_id)
        definition = self.get_gizmo_definition(animation_id)
        if context is None or definition is None:
            return []
        try:
            handles = resolve(definition.handles, context)
            if visible_only:
                handles = [h for h in handles if resolve(h.visible, context)]
        except Exception:
            logger.exception("Resolving handles of gizmo %s failed", definition.id)
            return []
        return handles

    def handle_positions(self, animation_id: str) -> Dict[str, Point]:
        context = self.get_render_context(animation_id)
        if context is None:
            return {}
        positions: Dict[str, Point] = {}
        for handle in self.get_handles(animation_id):
            try:
                positions[handle.id] = resolve(handle.position, context)
            except Exception:
                logger.exception("Position of handle %s failed", handle.id)
        return positions

    def hit_test(self, animation_id: str, point: Point, tolerance: Optional[float] = None) -> Optional[str]:
        """Closest visible handle within ``tolerance`` screen pixels of ``point``."""
        tolerance = settings.hit_tolerance if tolerance is None else tolerance
        radius = tolerance / (self.viewport.zoom or 1.0)
        best: Optional[Tuple[float, str]] = None
        for handle_id, position in self.handle_positions(animation_id).items():
            distance = position.distance_to(point)
            if distance <= radius and (best is None or distance < best[0]):
                best = (distance, handle_id)
        return best[1] if best else None

    # ------------------------------------------------------------------
    # Drag lifecycle
    # ------------------------------------------------------------------

    @property
    def is_dragging(self) -> bool:
        return self._drag is not None

    @property
    def dragging_handle(self) -> Optional[Tuple[str, str]]:
        if self._drag is None:
            return None
        return self._drag.animation_id, self._drag.handle_id

    def start_drag(self, animation_id: str, handle_id: str, point: Point) -> bool:
        if self._drag is not None:
            logger.warning(
                "Drag already active on %s/%s; ignoring start on %s/%s",
                self._drag.animation_id, self._drag.handle_id, animation_id, handle_id,
            )
            return False
        state = self._states.get(animation_id)
        if state is None:
            logger.debug("start_drag: no active gizmo for %s", animation_id)
            return False

        self._drag = DragSession(animation_id, handle_id, anchor=point, current=point)
        interaction = replace(
            state.interaction, active_handle=handle_id, is_dragging=True, drag_start=point
        )
        self._states[animation_id] = replace(state, interaction=interaction)

        resolved = self._resolve_drag_target(point)
        if resolved is not None:
            handle, context = resolved
            if handle.on_drag_start is not None:
                self._invoke(handle.on_drag_start, context)
        return True

    def update_drag(self, point: Point, modifiers: Optional[ModifierState] = None) -> None:
        drag = self._drag
        if drag is None:
            logger.debug("update_drag: no drag in progress")
            return
        drag.current = point
        drag.modifiers = modifiers or ModifierState()

        resolved = self._resolve_drag_target(point)
        if resolved is None:
            return
        handle, context = resolved
        self._invoke(handle.on_drag, context.delta, context)
        # Deltas are incremental: the next event measures from here.
        drag.anchor = point
        state = self._states.get(drag.animation_id)
        if state is not None:
            interaction = replace(state.interaction, drag_start=point)
            self._states[drag.animation_id] = replace(state, interaction=interaction)

    def end_drag(self) -> None:
        drag = self._drag
        if drag is None:
            return
        try:
            resolved = self._resolve_drag_target(drag.current)
            if resolved is not None:
                handle, context = resolved
                if handle.on_drag_end is not None:
                    self._invoke(handle.on_drag_end, context)
            if drag.dirty and not drag.committed:
                self.commit(drag.animation_id)
        finally:
            self._drag = None
            state = self._states.get(drag.animation_id)
            if state is not None:
                self._states[drag.animation_id] = replace(state, interaction=InteractionState())

    def cancel_drag(self) -> None:
        if self._drag is not None:
            logger.debug("Drag on %s/%s cancelled", self._drag.animation_id, self._drag.handle_id)
        self.end_drag()

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def commit(self, animation_id: str) -> Optional[str]:
        """Validate and compile the description; hand the markup to ``on_commit``."""
        animation = self.get_animation(animation_id)
        if animation is None:
            logger.warning("commit: animation not found: %s", animation_id)
            return None
        result = self.compiler.validate(animation)
        if not result.valid:
            logger.warning("Not committing %s: %s", animation_id, "; ".join(result.errors))
            return None
        try:
            markup = self.compiler.compile(animation)
        except ValueError as exc:
            logger.warning("Failed to compile animation %s: %s", animation_id, exc)
            return None
        if self.on_commit is not None:
            self._invoke(self.on_commit, animation, markup)
        return markup

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve_drag_target(
        self, point: Point
    ) -> Optional[Tuple[GizmoHandle, GizmoInteractionContext]]:
        drag = self._drag
        if drag is None:
            return None
        animation_id = drag.animation_id
        state = self._states.get(animation_id)
        if state is None:
            logger.debug("Drag target: no gizmo for %s", animation_id)
            return None
        animation = self.get_animation(animation_id)
        if animation is None:
            logger.debug("Drag target: no animation %s", animation_id)
            return None
        element = self.get_element(animation.target_element_id)
        if element is None:
            logger.debug("Drag target: no element %s", animation.target_element_id)
            return None
        definition = self.registry.get(state.gizmo_id)
        if definition is None:
            logger.debug("Drag target: no definition %s", state.gizmo_id)
            return None
        bounds = self.bounds_provider.get_bounds(element, self.viewport)
        if bounds is None:
            logger.debug("Drag target: no bounds for %s", element.id)
            return None

        context = self._interaction_context(drag, state, animation, element, bounds, point)
        try:
            handles = resolve(definition.handles, context)
        except Exception:
            logger.exception("Resolving handles of gizmo %s failed", definition.id)
            return None
        handle = next((h for h in handles if h.id == drag.handle_id), None)
        if handle is None:
            logger.debug("Drag target: no handle %s on %s", drag.handle_id, definition.id)
            return None
        return handle, context

    def _interaction_context(
        self,
        drag: DragSession,
        state: GizmoState[Any],
        animation: SVGAnimation,
        element: CanvasElement,
        bounds: Bounds,
        point: Point,
    ) -> GizmoInteractionContext:
        animation_id = drag.animation_id
        current_time, duration, is_playing, progress = self._time_snapshot(animation)

        def update_state(updates: Dict[str, Any]) -> None:
            self.update_gizmo_state(animation_id, updates)
            latest = self._states.get(animation_id)
            if latest is not None:
                context.state = latest

        def update_animation(updates: Dict[str, Any]) -> None:
            self.document.update_animation(animation_id, round_updates(updates, self.precision))
            drag.dirty = True
            latest = self.get_animation(animation_id)
            if latest is not None:
                context.animation = latest

        def commit_changes() -> None:
            drag.committed = True
            self.commit(animation_id)

        context = GizmoInteractionContext(
            state=state,
            animation=animation,
            element=element,
            element_bounds=bounds,
            element_center=bounds.center,
            viewport=self.viewport,
            precision=self.precision,
            current_time=current_time,
            duration=duration,
            is_playing=is_playing,
            progress=progress,
            drag_start=drag.anchor,
            current_point=point,
            delta=point - drag.anchor,
            modifiers=drag.modifiers,
            update_state=update_state,
            update_animation=update_animation,
            commit_changes=commit_changes,
        )
        return context

    @staticmethod
    def _invoke(callback: Callable[..., Any], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Gizmo callback %s failed", getattr(callback, "__name__", callback))
