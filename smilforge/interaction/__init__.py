from smilforge.interaction.constraints import (
    constrain_rotation,
    constrain_to_axis,
    constrain_uniform_scale,
    snap_to_grid,
)
from smilforge.interaction.coordinates import canvas_to_client, client_to_canvas
from smilforge.interaction.handler import GizmoInteractionHandler
from smilforge.interaction.session import GizmoSession

__all__ = [
    "GizmoInteractionHandler",
    "GizmoSession",
    "canvas_to_client",
    "client_to_canvas",
    "constrain_rotation",
    "constrain_to_axis",
    "constrain_uniform_scale",
    "snap_to_grid",
]
