"""Shading and presentation."""

from melscope.render.colorgrade import map_color, shade
from melscope.render.display import ArraySink, DisplaySink, DisplayUniforms

__all__ = ["ArraySink", "DisplaySink", "DisplayUniforms", "map_color", "shade"]
