"""Viewport transform for the pannable, zoomable image surface."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Tuple

logger = logging.getLogger(__name__)

MIN_SCALE = 0.1
MAX_SCALE = 10.0

Point = Tuple[float, float]
Size = Tuple[float, float]


def clamp_scale(value: float) -> float:
    return max(MIN_SCALE, min(MAX_SCALE, value))


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


@dataclass
class ViewportState:
    """Current (scale, offset) pair mapping image pixels to screen pixels."""

    scale: float = 1.0
    offset: Point = (0.0, 0.0)


class Viewport:
    """Owns the viewport state and every mutation of it.

    Screen coordinates are client coordinates (the same space pointer events
    arrive in); ``container_origin`` is the top-left corner of the hosting
    widget in that space.
    """

    def __init__(self, state: ViewportState | None = None) -> None:
        self._state = state or ViewportState()
        self._state.scale = clamp_scale(self._state.scale)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def scale(self) -> float:
        return self._state.scale

    @property
    def offset(self) -> Point:
        return self._state.offset

    @property
    def zoom_percent(self) -> int:
        return int(round(self._state.scale * 100))

    def snapshot(self) -> ViewportState:
        return ViewportState(scale=self._state.scale, offset=self._state.offset)

    # ------------------------------------------------------------------
    # Coordinate mapping
    # ------------------------------------------------------------------
    def screen_to_image(self, client_point: Point, container_origin: Point = (0.0, 0.0)) -> Point:
        scale = self._state.scale
        off_x, off_y = self._state.offset
        return (
            (client_point[0] - container_origin[0] - off_x) / scale,
            (client_point[1] - container_origin[1] - off_y) / scale,
        )

    def image_to_screen(self, image_point: Point, container_origin: Point = (0.0, 0.0)) -> Point:
        scale = self._state.scale
        off_x, off_y = self._state.offset
        return (
            image_point[0] * scale + off_x + container_origin[0],
            image_point[1] * scale + off_y + container_origin[1],
        )

    # ------------------------------------------------------------------
    # Mutation helpers
    # ------------------------------------------------------------------
    def fit_to_screen(self, image_size: Size, container_size: Size) -> bool:
        """Scale the image to fit the container and center it.

        Returns ``False`` without touching the state when the container has
        not been laid out yet (a zero dimension); the caller retries later.
        """
        container_w, container_h = container_size
        image_w, image_h = image_size
        if not _finite(container_w, container_h, image_w, image_h):
            return False
        if container_w <= 0 or container_h <= 0:
            logger.debug("Container not laid out yet (%sx%s), deferring fit", container_w, container_h)
            return False
        if image_w <= 0 or image_h <= 0:
            return False

        scale = clamp_scale(min(container_w / image_w, container_h / image_h))
        self._state.scale = scale
        self._state.offset = (
            (container_w - image_w * scale) / 2.0,
            (container_h - image_h * scale) / 2.0,
        )
        logger.debug("Fit %sx%s image into %sx%s at scale %.4f", image_w, image_h, container_w, container_h, scale)
        return True

    def pan(self, delta: Point) -> None:
        dx, dy = delta
        if not _finite(dx, dy):
            return
        off_x, off_y = self._state.offset
        self._state.offset = (off_x + dx, off_y + dy)

    def zoom_by(self, delta: float) -> None:
        if not _finite(delta):
            return
        self._state.scale = clamp_scale(self._state.scale + delta)

    def zoom_to_ratio(self, ratio: float, base_scale: float) -> None:
        if not _finite(ratio, base_scale) or ratio <= 0 or base_scale <= 0:
            return
        self._state.scale = clamp_scale(base_scale * ratio)
