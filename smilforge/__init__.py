"""smilforge: gizmo-driven SMIL animation authoring."""

__version__ = "0.1.0"
