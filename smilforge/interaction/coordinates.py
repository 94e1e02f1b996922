"""Client (device pixel) <-> canvas (logical unit) conversion."""
from __future__ import annotations

from smilforge.models.geometry import Point, Viewport


def client_to_canvas(point: Point, surface_origin: Point, viewport: Viewport) -> Point:
    zoom = viewport.zoom or 1.0
    return Point(
        (point.x - surface_origin.x - viewport.pan_x) / zoom,
        (point.y - surface_origin.y - viewport.pan_y) / zoom,
    )


def canvas_to_client(point: Point, surface_origin: Point, viewport: Viewport) -> Point:
    return Point(
        point.x * viewport.zoom + viewport.pan_x + surface_origin.x,
        point.y * viewport.zoom + viewport.pan_y + surface_origin.y,
    )


def client_delta_to_canvas(delta: Point, viewport: Viewport) -> Point:
    zoom = viewport.zoom or 1.0
    return Point(delta.x / zoom, delta.y / zoom)
