"""Translate pointer and keyboard input into session drag calls."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from smilforge.gizmos.types import ModifierState
from smilforge.interaction.coordinates import client_to_canvas
from smilforge.interaction.session import GizmoSession
from smilforge.models.geometry import Point

logger = logging.getLogger(__name__)

_MODIFIER_KEYS = {"Shift": "shift", "Alt": "alt", "Meta": "meta", "Control": "ctrl"}


class GizmoInteractionHandler:
    """Stateful bridge between a drawing surface and a ``GizmoSession``.

    Points arrive in client (device pixel) coordinates. ``surface_origin`` is
    the client position of the surface's top-left corner; without one, points
    are passed through unchanged.
    """

    def __init__(self, session: GizmoSession, surface_origin: Optional[Point] = None) -> None:
        self.session = session
        self.surface_origin = surface_origin
        self._enabled = True
        self._modifiers = ModifierState()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def dragging(self) -> bool:
        return self.session.is_dragging

    @property
    def current_modifiers(self) -> ModifierState:
        return self._modifiers

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled and self.session.is_dragging:
            self.session.end_drag()

    def client_to_canvas(self, point: Point) -> Point:
        if self.surface_origin is None:
            return point
        return client_to_canvas(point, self.surface_origin, self.session.viewport)

    def handle_drag_start(
        self,
        animation_id: str,
        handle_id: str,
        client_point: Point,
        modifiers: Optional[ModifierState] = None,
    ) -> bool:
        if not self._enabled:
            logger.debug("Drag start on %s/%s blocked: interactions disabled", animation_id, handle_id)
            return False
        if modifiers is not None:
            self._modifiers = modifiers
        return self.session.start_drag(animation_id, handle_id, self.client_to_canvas(client_point))

    def handle_pointer_down(
        self, animation_id: str, client_point: Point, modifiers: Optional[ModifierState] = None
    ) -> bool:
        """Start a drag on whichever handle of the gizmo lies under the pointer."""
        if not self._enabled:
            return False
        handle_id = self.session.hit_test(animation_id, self.client_to_canvas(client_point))
        if handle_id is None:
            return False
        return self.handle_drag_start(animation_id, handle_id, client_point, modifiers)

    def handle_pointer_move(self, client_point: Point, modifiers: Optional[ModifierState] = None) -> None:
        if not self._enabled or not self.session.is_dragging:
            return
        if modifiers is not None:
            self._modifiers = modifiers
        self.session.update_drag(self.client_to_canvas(client_point), self._modifiers)

    def handle_pointer_hover(self, animation_id: str, client_point: Point) -> Optional[str]:
        if not self._enabled or self.session.is_dragging:
            return None
        handle_id = self.session.hit_test(animation_id, self.client_to_canvas(client_point))
        self.session.set_hovered_handle(animation_id, handle_id)
        return handle_id

    def handle_pointer_up(self) -> None:
        if self.session.is_dragging:
            self.session.end_drag()

    def handle_key_down(self, key: str, modifiers: Optional[ModifierState] = None) -> None:
        self._update_modifiers(key, modifiers, pressed=True)
        if key == "Escape" and self.session.is_dragging:
            self.session.cancel_drag()

    def handle_key_up(self, key: str, modifiers: Optional[ModifierState] = None) -> None:
        self._update_modifiers(key, modifiers, pressed=False)

    def _update_modifiers(self, key: str, modifiers: Optional[ModifierState], pressed: bool) -> None:
        if modifiers is not None:
            self._modifiers = modifiers
            return
        name = _MODIFIER_KEYS.get(key)
        if name is not None:
            self._modifiers = replace(self._modifiers, **{name: pressed})
