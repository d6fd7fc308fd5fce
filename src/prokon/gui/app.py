"""Application entry point for the desktop visualizer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from ..config import VisualizerConfig
from ..session import ImageEditor, ImageScanner
from .window import VisualizerWindow

logger = logging.getLogger(__name__)


def _apply_dark_palette(app: QApplication) -> None:
    app.setStyle("Fusion")
    palette = QPalette()
    palette.setColor(QPalette.ColorRole.Window, QColor(53, 53, 53))
    palette.setColor(QPalette.ColorRole.WindowText, QColor(255, 255, 255))
    palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
    palette.setColor(QPalette.ColorRole.AlternateBase, QColor(53, 53, 53))
    palette.setColor(QPalette.ColorRole.ToolTipBase, QColor(25, 25, 25))
    palette.setColor(QPalette.ColorRole.ToolTipText, QColor(255, 255, 255))
    palette.setColor(QPalette.ColorRole.Text, QColor(255, 255, 255))
    palette.setColor(QPalette.ColorRole.Button, QColor(53, 53, 53))
    palette.setColor(QPalette.ColorRole.ButtonText, QColor(255, 255, 255))
    palette.setColor(QPalette.ColorRole.BrightText, QColor(255, 0, 0))
    palette.setColor(QPalette.ColorRole.Highlight, QColor(79, 70, 229))
    palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))
    app.setPalette(palette)


def run(
    image_path: Optional[Path] = None,
    config: Optional[VisualizerConfig] = None,
    editor: Optional[ImageEditor] = None,
    scanner: Optional[ImageScanner] = None,
) -> int:
    app = QApplication.instance() or QApplication([])
    _apply_dark_palette(app)

    window = VisualizerWindow(config, editor, scanner)
    if image_path is not None:
        window.load_image(image_path)
    window.show()
    return app.exec()
