"""Freehand mask painting at source-image resolution."""

from __future__ import annotations

import base64
import logging
import math
from enum import Enum
from typing import Optional, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

MARKER_RGBA = np.array([255, 0, 0, 255], dtype=np.uint8)
CLEAR_RGBA = np.array([0, 0, 0, 0], dtype=np.uint8)

MIN_BRUSH_SIZE = 10
MAX_BRUSH_SIZE = 300
DEFAULT_BRUSH_SIZE = 50

Point = Tuple[float, float]


class Tool(str, Enum):
    BRUSH = "brush"
    ERASER = "eraser"


def segment_coverage(
    shape: Tuple[int, int],
    start: Point,
    end: Point,
    width: float,
) -> Optional[Tuple[Tuple[slice, slice], np.ndarray]]:
    """Return the pixels covered by a round-capped segment.

    A pixel is covered when its centre lies within ``width / 2`` of the
    segment, which yields round caps and, across consecutive segments,
    round joins. The result is ``(region, hits)`` where ``region`` is a
    ``(rows, cols)`` slice pair into an array of ``shape`` and ``hits`` a
    boolean array for that region, or ``None`` when nothing is covered.
    """
    height, width_px = shape
    radius = width / 2.0
    ax, ay = start
    bx, by = end

    x_min = max(0, int(math.floor(min(ax, bx) - radius)))
    x_max = min(width_px, int(math.ceil(max(ax, bx) + radius)) + 1)
    y_min = max(0, int(math.floor(min(ay, by) - radius)))
    y_max = min(height, int(math.ceil(max(ay, by) + radius)) + 1)
    if x_min >= x_max or y_min >= y_max:
        return None

    yy, xx = np.ogrid[y_min:y_max, x_min:x_max]
    px = xx + 0.5 - ax
    py = yy + 0.5 - ay
    dx = bx - ax
    dy = by - ay
    length_sq = dx * dx + dy * dy
    if length_sq == 0.0:
        dist_sq = px**2 + py**2
    else:
        t = np.clip((px * dx + py * dy) / length_sq, 0.0, 1.0)
        dist_sq = (px - t * dx) ** 2 + (py - t * dy) ** 2

    hits = dist_sq <= radius * radius
    if not hits.any():
        return None
    return (slice(y_min, y_max), slice(x_min, x_max)), hits


class MaskPainter:
    """Paints brush/eraser strokes onto an RGBA surface sized like the source image.

    The surface is stored row-major (``height x width x 4``). Every operation
    is a no-op while no surface is allocated, so callers never need to guard
    against a missing image.
    """

    def __init__(
        self,
        brush_size: int = DEFAULT_BRUSH_SIZE,
        min_brush_size: int = MIN_BRUSH_SIZE,
        max_brush_size: int = MAX_BRUSH_SIZE,
    ) -> None:
        self._min_brush = max(1, int(min_brush_size))
        self._max_brush = max(self._min_brush, int(max_brush_size))
        self._brush_size = self._clamp_brush(brush_size)
        self._tool = Tool.BRUSH
        self._surface: Optional[np.ndarray] = None
        self._last_point: Optional[Point] = None
        self._has_paint = False

    # ------------------------------------------------------------------
    # Surface lifecycle
    # ------------------------------------------------------------------
    def allocate(self, width: int, height: int) -> None:
        """Reallocate a transparent surface for a newly loaded source image."""
        if width <= 0 or height <= 0:
            self.release()
            return
        self._surface = np.zeros((int(height), int(width), 4), dtype=np.uint8)
        self._last_point = None
        self._has_paint = False
        logger.debug("Allocated %dx%d mask surface", width, height)

    def release(self) -> None:
        self._surface = None
        self._last_point = None
        self._has_paint = False

    @property
    def is_allocated(self) -> bool:
        return self._surface is not None

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        if self._surface is None:
            return None
        height, width = self._surface.shape[:2]
        return width, height

    @property
    def surface(self) -> Optional[np.ndarray]:
        """Read-only view of the RGBA surface."""
        if self._surface is None:
            return None
        view = self._surface.view()
        view.flags.writeable = False
        return view

    # ------------------------------------------------------------------
    # Tool state
    # ------------------------------------------------------------------
    def _clamp_brush(self, value: float) -> int:
        try:
            size = int(round(float(value)))
        except (TypeError, ValueError):
            return self._min_brush
        return max(self._min_brush, min(self._max_brush, size))

    @property
    def brush_size(self) -> int:
        return self._brush_size

    @brush_size.setter
    def brush_size(self, value: float) -> None:
        self._brush_size = self._clamp_brush(value)

    @property
    def tool(self) -> Tool:
        return self._tool

    @tool.setter
    def tool(self, value: Tool | str) -> None:
        self._tool = Tool(value)

    @property
    def has_paint(self) -> bool:
        return self._has_paint

    @property
    def is_stroking(self) -> bool:
        return self._last_point is not None

    # ------------------------------------------------------------------
    # Strokes
    # ------------------------------------------------------------------
    def begin_stroke(self, point: Point) -> None:
        if self._surface is None:
            return
        self._last_point = (float(point[0]), float(point[1]))

    def paint_to(self, point: Point) -> bool:
        """Draw from the last recorded point to ``point``.

        Returns ``True`` when any pixel changed.
        """
        if self._surface is None or self._last_point is None:
            return False
        target = (float(point[0]), float(point[1]))
        if not all(math.isfinite(v) for v in target):
            return False

        start = self._last_point
        self._last_point = target
        self._has_paint = True

        coverage = segment_coverage(self._surface.shape[:2], start, target, self._brush_size)
        if coverage is None:
            return False
        region, hits = coverage
        sub = self._surface[region]
        value = MARKER_RGBA if self._tool is Tool.BRUSH else CLEAR_RGBA
        changed = bool(np.any(sub[hits] != value))
        sub[hits] = value
        return changed

    def end_stroke(self) -> None:
        self._last_point = None

    def clear(self) -> None:
        if self._surface is not None:
            self._surface.fill(0)
        self._last_point = None
        self._has_paint = False

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------
    def alpha(self) -> Optional[np.ndarray]:
        if self._surface is None:
            return None
        return self._surface[..., 3].copy()

    def is_empty(self) -> bool:
        return self._surface is None or not self._surface[..., 3].any()

    def export_png(self) -> Optional[bytes]:
        """Encode the surface as a PNG at the exact source dimensions."""
        if self._surface is None:
            return None
        bgra = cv2.cvtColor(self._surface, cv2.COLOR_RGBA2BGRA)
        ok, buffer = cv2.imencode(".png", bgra)
        if not ok:
            logger.error("Failed to encode mask surface as PNG")
            return None
        return buffer.tobytes()

    def export_base64(self) -> Optional[str]:
        """PNG payload for downstream requests, or ``None`` when nothing was painted."""
        if not self._has_paint:
            return None
        data = self.export_png()
        if data is None:
            return None
        return base64.b64encode(data).decode("ascii")
