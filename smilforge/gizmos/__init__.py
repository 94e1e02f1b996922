"""Gizmo definitions and the registry that resolves them for animations."""
from smilforge.gizmos.registry import GizmoRegistry


def build_default_registry() -> GizmoRegistry:
    """A fresh registry holding every built-in gizmo."""
    from smilforge.gizmos.contributions import register_builtin_gizmos

    return register_builtin_gizmos(GizmoRegistry())


__all__ = ["GizmoRegistry", "build_default_registry"]
