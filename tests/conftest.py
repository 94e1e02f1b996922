import pytest

from smilforge.gizmos import build_default_registry
from smilforge.models import CanvasElement, SVGAnimation
from smilforge.models.document import InMemoryDocument
from smilforge.utils.config import settings


@pytest.fixture
def rect():
    return CanvasElement(id="r1", type="rect", data={"x": 0, "y": 0, "width": 100, "height": 50})


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def make_document(rect):
    def factory(*animations: SVGAnimation, elements=None) -> InMemoryDocument:
        return InMemoryDocument(elements or [rect], list(animations))

    return factory


@pytest.fixture
def snap_grid(monkeypatch):
    """Grid snapping on with a 10 unit grid for the duration of a test."""
    monkeypatch.setattr(settings, "snap_to_grid", True)
    monkeypatch.setattr(settings, "grid_size", 10.0)
    return settings
