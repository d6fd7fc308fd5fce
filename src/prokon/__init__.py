"""
Room visualizer core: viewport transform, gesture routing and mask painting.

The Qt host lives in :mod:`prokon.gui` and is only imported on demand.
"""

from .config import VisualizerConfig, load_visualizer_config
from .core.gestures import GestureDisambiguator, GesturePhase, InteractionMode
from .core.imaging import ImageLoadError
from .core.mask import MaskPainter, Tool
from .core.viewport import MAX_SCALE, MIN_SCALE, Viewport, ViewportState
from .replay import GestureScript, load_gesture_script, replay
from .plugins import PluginNotFoundError, discover_editors, discover_scanners
from .session import EditRequest, ImageEditor, ImageScanner, ScanResult, VisualizerSession, VisualizerTab
from .settings import output_root, reset_settings_cache

__all__ = [
    "VisualizerConfig",
    "load_visualizer_config",
    "GestureDisambiguator",
    "GesturePhase",
    "InteractionMode",
    "ImageLoadError",
    "MaskPainter",
    "Tool",
    "Viewport",
    "ViewportState",
    "MIN_SCALE",
    "MAX_SCALE",
    "GestureScript",
    "load_gesture_script",
    "replay",
    "EditRequest",
    "ImageEditor",
    "ImageScanner",
    "ScanResult",
    "PluginNotFoundError",
    "discover_editors",
    "discover_scanners",
    "VisualizerSession",
    "VisualizerTab",
    "output_root",
    "reset_settings_cache",
]
