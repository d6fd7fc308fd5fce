"""Canvas widget that renders the session through the viewport transform."""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import numpy as np
from PySide6.QtCore import QEvent, QPointF, QRectF, Qt, QTimer, Signal
from PySide6.QtGui import (
    QColor,
    QEventPoint,
    QImage,
    QMouseEvent,
    QPainter,
    QPaintEvent,
    QPen,
    QResizeEvent,
    QTouchEvent,
)
from PySide6.QtWidgets import QSizePolicy, QWidget

from ..core.gestures import GesturePhase, InteractionMode
from ..session import VisualizerSession, VisualizerTab
from .qt_images import rgb_to_qimage, rgba_to_qimage

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


class VisualizerCanvas(QWidget):
    """Routes mouse/touch input into the session's gesture disambiguator.

    Event positions are widget-local, so the container origin passed to the
    core is always ``(0, 0)``.
    """

    view_changed = Signal(float)  # Emits the current scale
    mask_changed = Signal()

    def __init__(self, session: VisualizerSession, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.session = session
        self._image_cache: Optional[QImage] = None
        self._image_source: Optional[np.ndarray] = None
        self._cursor_pos: Optional[QPointF] = None

        self.setAttribute(Qt.WidgetAttribute.WA_AcceptTouchEvents, True)
        self.setMouseTracking(True)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setMinimumSize(200, 200)

    # ------------------------------------------------------------------
    # Session hooks
    # ------------------------------------------------------------------
    def schedule_retry(self, delay_ms: int, callback: Callable[[], None]) -> None:
        def _fire() -> None:
            callback()
            self.refresh()

        QTimer.singleShot(delay_ms, _fire)

    def refresh(self) -> None:
        """Drop cached images and repaint (after a load, result or reset)."""
        self._image_cache = None
        self._image_source = None
        self.view_changed.emit(self.session.viewport.scale)
        self.update()

    def _base_image(self) -> Optional[QImage]:
        array = self.session.result if self.session.result is not None else self.session.source
        if array is None:
            return None
        if self._image_cache is None or self._image_source is not array:
            self._image_cache = rgb_to_qimage(array)
            self._image_source = array
        return self._image_cache

    def _mask_visible(self) -> bool:
        return (
            self.session.result is None
            and self.session.tab is VisualizerTab.VISUALIZER
            and self.session.painter.surface is not None
        )

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------
    def paintEvent(self, event: QPaintEvent) -> None:  # noqa: N802
        painter = QPainter(self)
        painter.fillRect(self.rect(), QColor(17, 24, 39))
        image = self._base_image()
        if image is None:
            painter.setPen(QColor(156, 163, 175))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "Open a photo to start")
            painter.end()
            return

        viewport = self.session.viewport
        off_x, off_y = viewport.offset
        painter.save()
        painter.translate(off_x, off_y)
        painter.scale(viewport.scale, viewport.scale)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, viewport.scale < 1.0)
        painter.drawImage(QPointF(0, 0), image)
        if self._mask_visible():
            painter.setOpacity(self.session.config.overlay.opacity)
            painter.drawImage(QPointF(0, 0), rgba_to_qimage(self.session.painter.surface))
        painter.restore()
        self._draw_brush_cursor(painter)
        painter.end()

    def _draw_brush_cursor(self, painter: QPainter) -> None:
        if (
            self._cursor_pos is None
            or not self._mask_visible()
            or self.session.gestures.effective_mode is InteractionMode.MOVE
        ):
            return
        radius = self.session.painter.brush_size * self.session.viewport.scale / 2.0
        pen = QPen(Qt.GlobalColor.white)
        pen.setWidthF(1.25)
        pen.setCosmetic(True)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawEllipse(QRectF(self._cursor_pos.x() - radius, self._cursor_pos.y() - radius, radius * 2, radius * 2))

    def resizeEvent(self, event: QResizeEvent) -> None:  # noqa: N802
        super().resizeEvent(event)
        size = event.size()
        self.session.set_container_size(size.width(), size.height())
        self.view_changed.emit(self.session.viewport.scale)

    # ------------------------------------------------------------------
    # Mouse input
    # ------------------------------------------------------------------
    def mousePressEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        if self.session.gestures.press([self._point(event.position())]):
            self._after_input()
        event.accept()

    def mouseMoveEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        self._cursor_pos = event.position()
        if event.buttons() & Qt.MouseButton.LeftButton:
            if self.session.gestures.move([self._point(event.position())]):
                event.accept()
        self._after_input()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:  # noqa: N802
        if event.button() == Qt.MouseButton.LeftButton:
            self._end_gesture()
        event.accept()

    def leaveEvent(self, event: QEvent) -> None:  # noqa: N802
        self._cursor_pos = None
        self._end_gesture()
        super().leaveEvent(event)

    # ------------------------------------------------------------------
    # Touch input
    # ------------------------------------------------------------------
    def event(self, event: QEvent) -> bool:  # noqa: D401
        """Intercept touch events; everything else goes to the default handlers."""
        etype = event.type()
        if etype in (QEvent.Type.TouchBegin, QEvent.Type.TouchUpdate, QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            return self._handle_touch(event)  # type: ignore[arg-type]
        return super().event(event)

    def _handle_touch(self, event: QTouchEvent) -> bool:
        etype = event.type()
        if etype in (QEvent.Type.TouchEnd, QEvent.Type.TouchCancel):
            self._end_gesture()
            event.accept()
            return True

        points = event.points()
        if any(p.state() == QEventPoint.State.Released for p in points):
            self._end_gesture()
            event.accept()
            return True

        active = self._active_points(points)
        gestures = self.session.gestures
        if etype == QEvent.Type.TouchBegin or any(p.state() == QEventPoint.State.Pressed for p in points):
            gestures.press(active)
        else:
            gestures.move(active)
        self._after_input()
        event.accept()
        return True

    def _active_points(self, points: List[QEventPoint]) -> List[Point]:
        return [self._point(p.position()) for p in points if p.state() != QEventPoint.State.Released]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _point(pos: QPointF) -> Point:
        return float(pos.x()), float(pos.y())

    def _after_input(self) -> None:
        if self.session.gestures.phase is GesturePhase.PAINTING:
            self.mask_changed.emit()
        self.view_changed.emit(self.session.viewport.scale)
        self.update()

    def _end_gesture(self) -> None:
        had_result = self.session.result
        self.session.gestures.release()
        if self.session.result is not had_result:
            self.refresh()
            return
        self.update()
