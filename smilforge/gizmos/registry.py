"""Registry of gizmo definitions, indexed by category and animation kind."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional

from smilforge.gizmos.types import GizmoCategory, GizmoDefinition
from smilforge.models.animation import AnimationType, CanvasElement, SVGAnimation

logger = logging.getLogger(__name__)

RegistryListener = Callable[[], None]


class GizmoRegistry:
    """Lookup table from gizmo id to definition.

    Definitions keep registration order. ``find_for_animation`` narrows the
    search to definitions registered for the animation's kind when any exist,
    then returns the first definition whose match strategy accepts the pair.
    """

    def __init__(self) -> None:
        self._definitions: Dict[str, GizmoDefinition] = {}
        self._by_category: Dict[GizmoCategory, Dict[str, None]] = {}
        self._by_kind: Dict[AnimationType, Dict[str, None]] = {}
        self._listeners: List[RegistryListener] = []

    # -- mutation -----------------------------------------------------------

    def register(self, definition: GizmoDefinition) -> None:
        previous = self._definitions.get(definition.id)
        if previous is not None:
            logger.warning("Gizmo %r already registered, replacing.", definition.id)
            self._drop_from_indexes(previous)

        self._definitions[definition.id] = definition
        self._by_category.setdefault(definition.category, {})[definition.id] = None
        if definition.smil_target is not None:
            self._by_kind.setdefault(definition.smil_target, {})[definition.id] = None
        self._notify()

    def register_all(self, definitions: Iterable[GizmoDefinition]) -> None:
        for definition in definitions:
            self.register(definition)

    def unregister(self, gizmo_id: str) -> bool:
        definition = self._definitions.pop(gizmo_id, None)
        if definition is None:
            return False
        self._drop_from_indexes(definition)
        self._notify()
        return True

    def clear(self) -> None:
        self._definitions.clear()
        self._by_category.clear()
        self._by_kind.clear()
        self._notify()

    # -- lookup -------------------------------------------------------------

    def get(self, gizmo_id: str) -> Optional[GizmoDefinition]:
        return self._definitions.get(gizmo_id)

    def has(self, gizmo_id: str) -> bool:
        return gizmo_id in self._definitions

    def get_all(self) -> List[GizmoDefinition]:
        return list(self._definitions.values())

    @property
    def size(self) -> int:
        return len(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    def get_by_category(self, category: GizmoCategory) -> List[GizmoDefinition]:
        return self._ordered(self._by_category.get(category, {}))

    def get_by_kind(self, kind: AnimationType) -> List[GizmoDefinition]:
        return self._ordered(self._by_kind.get(kind, {}))

    def get_categories(self) -> List[GizmoCategory]:
        return [category for category, ids in self._by_category.items() if ids]

    def query(
        self,
        category: Optional[GizmoCategory] = None,
        kind: Optional[AnimationType] = None,
        attribute: Optional[str] = None,
    ) -> List[GizmoDefinition]:
        results = self.get_all()
        if category is not None:
            results = [d for d in results if d.category == category]
        if kind is not None:
            results = [d for d in results if d.smil_target == kind]
        if attribute is not None:
            results = [d for d in results if attribute in d.target_attributes]
        return results

    def find_for_animation(
        self, animation: SVGAnimation, element: CanvasElement
    ) -> Optional[GizmoDefinition]:
        for definition in self._candidates(animation):
            if self._safe_match(definition, animation, element):
                return definition
        return None

    def find_all_for_animation(
        self, animation: SVGAnimation, element: CanvasElement
    ) -> List[GizmoDefinition]:
        return [
            definition
            for definition in self.get_all()
            if self._safe_match(definition, animation, element)
        ]

    # -- subscriptions ------------------------------------------------------

    def subscribe(self, listener: RegistryListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- internals ----------------------------------------------------------

    def _candidates(self, animation: SVGAnimation) -> List[GizmoDefinition]:
        if animation.type is not None:
            bucket = self.get_by_kind(animation.type)
            if bucket:
                return bucket
        return self.get_all()

    @staticmethod
    def _safe_match(
        definition: GizmoDefinition, animation: SVGAnimation, element: CanvasElement
    ) -> bool:
        try:
            return bool(definition.matches(animation, element))
        except Exception as exc:
            logger.warning("Match predicate for gizmo %r failed: %s", definition.id, exc)
            return False

    def _ordered(self, ids: Dict[str, None]) -> List[GizmoDefinition]:
        return [d for gid, d in self._definitions.items() if gid in ids]

    def _drop_from_indexes(self, definition: GizmoDefinition) -> None:
        self._by_category.get(definition.category, {}).pop(definition.id, None)
        if definition.smil_target is not None:
            self._by_kind.get(definition.smil_target, {}).pop(definition.id, None)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Gizmo registry listener failed")
