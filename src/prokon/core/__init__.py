"""Interaction core: viewport transform, gesture routing and mask painting."""

from .gestures import GestureDisambiguator, GesturePhase, InteractionMode, PanSession, PinchSession
from .mask import MaskPainter, Tool
from .viewport import MAX_SCALE, MIN_SCALE, Viewport, ViewportState

__all__ = [
    "GestureDisambiguator",
    "GesturePhase",
    "InteractionMode",
    "PanSession",
    "PinchSession",
    "MaskPainter",
    "Tool",
    "Viewport",
    "ViewportState",
    "MIN_SCALE",
    "MAX_SCALE",
]
