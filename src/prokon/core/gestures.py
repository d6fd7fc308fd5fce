"""Gesture disambiguation between pan, pinch-zoom and paint strokes.

Every pointer/touch event is routed through :class:`GestureDisambiguator`.
The decision of what a gesture *is* happens once, when it starts, from the
number of touch points and the effective :class:`InteractionMode`. The
short-lived per-gesture state lives in frozen session objects that are
created on start and dropped on end.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Optional, Sequence, Tuple

from .mask import MaskPainter
from .viewport import Viewport

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class InteractionMode(str, Enum):
    DRAW = "draw"
    MOVE = "move"


class GesturePhase(str, Enum):
    IDLE = "idle"
    PANNING = "panning"
    PINCHING = "pinching"
    PAINTING = "painting"


@dataclass(frozen=True)
class PinchSession:
    initial_distance: float
    initial_scale: float


@dataclass(frozen=True)
class PanSession:
    last_point: Point


def pinch_distance(points: Sequence[Point]) -> float:
    """Euclidean distance between the first two tracked points."""
    (x0, y0), (x1, y1) = points[0], points[1]
    return math.hypot(x0 - x1, y0 - y1)


class GestureDisambiguator:
    """State machine: ``IDLE -> {PANNING | PINCHING | PAINTING} -> IDLE``.

    ``points`` arguments are client-space coordinates of the active pointers
    (one entry for a mouse, one per finger for touch input). Points beyond
    the second are ignored.
    """

    def __init__(
        self,
        viewport: Viewport,
        painter: MaskPainter,
        mode: InteractionMode = InteractionMode.DRAW,
        on_idle: Optional[Callable[[], None]] = None,
    ) -> None:
        self.viewport = viewport
        self.painter = painter
        self._mode = InteractionMode(mode)
        self._forced_move = False
        self._phase = GesturePhase.IDLE
        self._pinch: Optional[PinchSession] = None
        self._pan: Optional[PanSession] = None
        self._on_idle = on_idle

    # ------------------------------------------------------------------
    # Mode
    # ------------------------------------------------------------------
    @property
    def mode(self) -> InteractionMode:
        return self._mode

    @mode.setter
    def mode(self, value: InteractionMode | str) -> None:
        self._mode = InteractionMode(value)

    @property
    def forced_move(self) -> bool:
        return self._forced_move

    @forced_move.setter
    def forced_move(self, value: bool) -> None:
        self._forced_move = bool(value)

    @property
    def effective_mode(self) -> InteractionMode:
        if self._forced_move:
            return InteractionMode.MOVE
        return self._mode

    @property
    def phase(self) -> GesturePhase:
        return self._phase

    @property
    def pinch_session(self) -> Optional[PinchSession]:
        return self._pinch

    @property
    def pan_session(self) -> Optional[PanSession]:
        return self._pan

    @property
    def is_idle(self) -> bool:
        return self._phase is GesturePhase.IDLE

    # ------------------------------------------------------------------
    # Event entry points
    # ------------------------------------------------------------------
    def press(self, points: Sequence[Point], origin: Point = (0.0, 0.0)) -> bool:
        """Pointer/touch start. Returns ``True`` when a gesture was entered."""
        if not points:
            return False
        if len(points) >= 2:
            self._start_pinch(points)
            return True

        if self._phase is not GesturePhase.IDLE:
            # A stray second press for a single pointer restarts the gesture.
            self._finish(notify=False)

        point = points[0]
        if self.effective_mode is InteractionMode.MOVE:
            self._pan = PanSession(last_point=(float(point[0]), float(point[1])))
            self._phase = GesturePhase.PANNING
            return True

        if not self.painter.is_allocated:
            return False
        image_point = self.viewport.screen_to_image(point, origin)
        self._phase = GesturePhase.PAINTING
        self.painter.begin_stroke(image_point)
        self.painter.paint_to(image_point)
        return True

    def move(self, points: Sequence[Point], origin: Point = (0.0, 0.0)) -> bool:
        """Pointer/touch move. Returns ``True`` when default scrolling must be suppressed."""
        if not points or self._phase is GesturePhase.IDLE:
            return False

        if len(points) >= 2:
            if self._phase is not GesturePhase.PINCHING:
                self._start_pinch(points)
                return True
            return self._update_pinch(points)

        point = points[0]
        if self._phase is GesturePhase.PANNING and self._pan is not None:
            last_x, last_y = self._pan.last_point
            self.viewport.pan((point[0] - last_x, point[1] - last_y))
            self._pan = replace(self._pan, last_point=(float(point[0]), float(point[1])))
            return True
        if self._phase is GesturePhase.PAINTING:
            self.painter.paint_to(self.viewport.screen_to_image(point, origin))
            return True
        # One finger left over from a pinch: wait for the end event.
        return False

    def release(self) -> None:
        """Pointer/touch end or leave, valid from any phase."""
        self._finish(notify=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _start_pinch(self, points: Sequence[Point]) -> None:
        if self._phase is GesturePhase.PAINTING:
            logger.debug("Second touch during stroke, abandoning stroke for pinch")
        self.painter.end_stroke()
        self._pan = None
        self._pinch = PinchSession(
            initial_distance=pinch_distance(points),
            initial_scale=self.viewport.scale,
        )
        self._phase = GesturePhase.PINCHING

    def _update_pinch(self, points: Sequence[Point]) -> bool:
        if self._pinch is None:
            return False
        distance = pinch_distance(points)
        if self._pinch.initial_distance <= 0:
            self._pinch = PinchSession(initial_distance=distance, initial_scale=self.viewport.scale)
            return True
        self.viewport.zoom_to_ratio(distance / self._pinch.initial_distance, self._pinch.initial_scale)
        return True

    def _finish(self, notify: bool) -> None:
        was_active = self._phase is not GesturePhase.IDLE
        self.painter.end_stroke()
        self._phase = GesturePhase.IDLE
        self._pinch = None
        self._pan = None
        if notify and was_active and self._on_idle is not None:
            self._on_idle()
