"""Shared helpers for turning numpy buffers into Qt images for the canvas."""

from __future__ import annotations

import numpy as np
from PySide6.QtGui import QImage


def rgb_to_qimage(image: np.ndarray) -> QImage:
    """Build a detached ``QImage`` from an ``H x W x 3`` uint8 RGB array."""
    rgb = np.require(image, np.uint8, ["C_CONTIGUOUS", "WRITEABLE"])
    height, width = rgb.shape[:2]
    qimage = QImage(rgb.data, width, height, width * 3, QImage.Format.Format_RGB888)
    return qimage.copy()


def rgba_to_qimage(surface: np.ndarray) -> QImage:
    """Build a detached ``QImage`` from an ``H x W x 4`` uint8 RGBA array."""
    rgba = np.require(surface, np.uint8, ["C_CONTIGUOUS", "WRITEABLE"])
    height, width = rgba.shape[:2]
    qimage = QImage(rgba.data, width, height, width * 4, QImage.Format.Format_RGBA8888)
    return qimage.copy()
