"""PySide6 desktop host for the visualizer."""

from .app import run
from .canvas import VisualizerCanvas
from .window import VisualizerWindow

__all__ = ["run", "VisualizerCanvas", "VisualizerWindow"]
