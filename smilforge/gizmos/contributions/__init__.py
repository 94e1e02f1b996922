"""Built-in gizmo definitions."""
from typing import List

from smilforge.gizmos.contributions.interactive import INTERACTIVE_GIZMOS
from smilforge.gizmos.contributions.style import STYLE_GIZMOS
from smilforge.gizmos.contributions.transform import TRANSFORM_GIZMOS
from smilforge.gizmos.contributions.vector import VECTOR_GIZMOS
from smilforge.gizmos.registry import GizmoRegistry
from smilforge.gizmos.types import GizmoDefinition

BUILTIN_GIZMOS: List[GizmoDefinition] = [
    *TRANSFORM_GIZMOS,
    *VECTOR_GIZMOS,
    *STYLE_GIZMOS,
    *INTERACTIVE_GIZMOS,
]


def register_builtin_gizmos(registry: GizmoRegistry) -> GizmoRegistry:
    registry.register_all(BUILTIN_GIZMOS)
    return registry
