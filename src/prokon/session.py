"""Visualizer session: one source image plus the state built around it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Protocol, Tuple, Union, runtime_checkable

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .config import VisualizerConfig
from .core.gestures import GestureDisambiguator, InteractionMode
from .core.imaging import (
    as_rgb,
    decode_image,
    downscale_to_max_side,
    encode_jpeg,
    overlay_mask,
    read_image,
    to_base64,
)
from .core.mask import MaskPainter
from .core.viewport import Viewport

logger = logging.getLogger(__name__)

Size = Tuple[float, float]


class VisualizerTab(str, Enum):
    VISUALIZER = "visualizer"
    SCANNER = "scanner"


@dataclass(frozen=True)
class EditRequest:
    """Payload handed to the image-editing collaborator."""

    image_b64: str
    prompt: str
    mask_b64: Optional[str] = None
    image_mime: str = "image/jpeg"
    mask_mime: str = "image/png"
    generation: int = 0

    @property
    def has_mask(self) -> bool:
        return self.mask_b64 is not None


class ScanResult(BaseModel):
    """Material analysis of the source photo."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    detected_material: str = Field(default="", alias="detectedMaterial")
    condition: str = ""
    suggestion: str = ""
    ahsp_suggestion: str = Field(default="", alias="ahspSuggestion", description="Suggested bill-of-quantities work item")


@runtime_checkable
class ImageEditor(Protocol):
    """Remote generative editing service: request in, encoded image out."""

    def edit(self, request: EditRequest) -> bytes:
        ...


@runtime_checkable
class ImageScanner(Protocol):
    """Material detection service for a base64 JPEG of the source photo."""

    def scan(self, image_b64: str) -> ScanResult | Mapping[str, Any]:
        ...


class VisualizerSession:
    """Owns the source/result images, the viewport, the mask and gesture routing."""

    def __init__(
        self,
        config: Optional[VisualizerConfig] = None,
        schedule_retry: Optional[Callable[[int, Callable[[], None]], None]] = None,
    ) -> None:
        self.config = config or VisualizerConfig()
        self.viewport = Viewport()
        self.painter = MaskPainter(
            brush_size=self.config.brush.default_size,
            min_brush_size=self.config.brush.min_size,
            max_brush_size=self.config.brush.max_size,
        )
        self.painter.tool = self.config.brush.default_tool
        self.gestures = GestureDisambiguator(
            self.viewport,
            self.painter,
            mode=self.config.viewport.default_mode,
            on_idle=self._apply_pending_result,
        )
        self.schedule_retry = schedule_retry
        self._container_size: Size = (0.0, 0.0)
        self._fit_pending = False
        self._tab = VisualizerTab.VISUALIZER
        self._source: Optional[np.ndarray] = None
        self._source_jpeg: Optional[bytes] = None
        self._result: Optional[np.ndarray] = None
        self._pending_result: Optional[np.ndarray] = None
        self._scan_result: Optional[ScanResult] = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def source(self) -> Optional[np.ndarray]:
        return self._source

    @property
    def result(self) -> Optional[np.ndarray]:
        return self._result

    @property
    def scan_result(self) -> Optional[ScanResult]:
        return self._scan_result

    @property
    def generation(self) -> int:
        """Bumped whenever the source changes; results from older generations are dropped."""
        return self._generation

    @property
    def has_image(self) -> bool:
        return self._source is not None

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        if self._source is None:
            return None
        height, width = self._source.shape[:2]
        return width, height

    @property
    def tab(self) -> VisualizerTab:
        return self._tab

    @property
    def fit_pending(self) -> bool:
        return self._fit_pending

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------
    def load_image(self, image: np.ndarray) -> None:
        """Make ``image`` the new source; the mask is reallocated and the view refit."""
        rgb = as_rgb(image)
        rgb = downscale_to_max_side(rgb, self.config.image.max_side)
        self.gestures.release()
        self._source = rgb
        self._source_jpeg = None
        self._result = None
        self._pending_result = None
        self._scan_result = None
        self._generation += 1
        height, width = rgb.shape[:2]
        self.painter.allocate(width, height)
        self.gestures.mode = InteractionMode.DRAW
        self._sync_forced_move()
        logger.info("Loaded source image %dx%d", width, height)
        self.request_fit()

    def load_image_bytes(self, data: bytes) -> None:
        self.load_image(decode_image(data))

    def load_image_file(self, path: Union[str, Path]) -> None:
        self.load_image(read_image(path))

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------
    def set_container_size(self, width: float, height: float) -> None:
        self._container_size = (float(width), float(height))
        if self._fit_pending:
            self.request_fit()

    def request_fit(self) -> bool:
        """Fit the image to the container, deferring while the layout has no size."""
        size = self.image_size
        if size is None:
            self._fit_pending = False
            return False
        if self.viewport.fit_to_screen(size, self._container_size):
            self._fit_pending = False
            return True
        if not self._fit_pending:
            self._fit_pending = True
            if self.schedule_retry is not None:
                self.schedule_retry(self.config.viewport.fit_retry_ms, self._retry_fit)
        return False

    def _retry_fit(self) -> None:
        if not self._fit_pending:
            return
        self._fit_pending = False
        self.request_fit()

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------
    def set_tab(self, tab: VisualizerTab | str) -> None:
        self._tab = VisualizerTab(tab)
        scanning = self._tab is VisualizerTab.SCANNER
        self.gestures.mode = InteractionMode.MOVE if scanning else InteractionMode.DRAW
        self._sync_forced_move()

    def _sync_forced_move(self) -> None:
        # The mask is hidden while scanning or while a result is shown.
        self.gestures.forced_move = self._tab is VisualizerTab.SCANNER or self._result is not None

    def set_mode(self, mode: InteractionMode | str) -> None:
        self.gestures.mode = mode

    def toggle_mode(self) -> InteractionMode:
        current = self.gestures.mode
        self.gestures.mode = InteractionMode.DRAW if current is InteractionMode.MOVE else InteractionMode.MOVE
        return self.gestures.mode

    def zoom_in(self) -> None:
        self.viewport.zoom_by(self.config.viewport.zoom_step)

    def zoom_out(self) -> None:
        self.viewport.zoom_by(-self.config.viewport.zoom_step)

    # ------------------------------------------------------------------
    # Edit requests and results
    # ------------------------------------------------------------------
    def source_jpeg(self) -> Optional[bytes]:
        if self._source is None:
            return None
        if self._source_jpeg is None:
            self._source_jpeg = encode_jpeg(self._source, self.config.image.jpeg_quality)
        return self._source_jpeg

    def source_b64(self) -> Optional[str]:
        jpeg = self.source_jpeg()
        return to_base64(jpeg) if jpeg is not None else None

    def build_edit_request(self, prompt: str) -> EditRequest:
        image_b64 = self.source_b64()
        if image_b64 is None:
            raise ValueError("No source image loaded")
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must not be empty")
        mask_b64 = self.painter.export_base64()
        logger.info("Composed edit request (mask=%s)", "yes" if mask_b64 else "no")
        return EditRequest(
            image_b64=image_b64,
            prompt=prompt.strip(),
            mask_b64=mask_b64,
            generation=self._generation,
        )

    def submit(self, editor: ImageEditor, prompt: str) -> bool:
        request = self.build_edit_request(prompt)
        data = editor.edit(request)
        return self.apply_result(decode_image(data), request.generation)

    def _is_stale(self, generation: Optional[int], what: str) -> bool:
        if generation is None or generation == self._generation:
            return False
        logger.debug("Dropping %s for source generation %d (current %d)", what, generation, self._generation)
        return True

    def apply_result(self, image: np.ndarray, generation: Optional[int] = None) -> bool:
        """Install an edited image. Held until idle while a gesture is in progress.

        ``generation`` is the value stamped on the originating request; a
        result built from an earlier source is discarded. Returns ``True``
        when the result was applied immediately.
        """
        if self._is_stale(generation, "edit result"):
            return False
        rgb = as_rgb(image)
        if not self.gestures.is_idle:
            logger.debug("Gesture in progress, deferring result")
            self._pending_result = rgb
            return False
        self._result = rgb
        self._pending_result = None
        self._sync_forced_move()
        return True

    def _apply_pending_result(self) -> None:
        if self._pending_result is not None:
            self._result = self._pending_result
            self._pending_result = None
            self._sync_forced_move()
            logger.debug("Applied deferred result")

    def scan(self, scanner: ImageScanner) -> Optional[ScanResult]:
        """Run material detection on the current source; raises ``ValueError`` without one."""
        image_b64 = self.source_b64()
        if image_b64 is None:
            raise ValueError("No source image loaded")
        generation = self._generation
        result = scanner.scan(image_b64)
        if not self.apply_scan_result(result, generation):
            return None
        return self._scan_result

    def apply_scan_result(
        self, result: ScanResult | Mapping[str, Any], generation: Optional[int] = None
    ) -> bool:
        if self._is_stale(generation, "scan result"):
            return False
        self._scan_result = ScanResult.model_validate(result)
        logger.info("Scan result: %s", self._scan_result.detected_material or "<unknown material>")
        return True

    def clear_scan(self) -> None:
        self._scan_result = None

    def continue_edit(self) -> bool:
        """Promote the result to be the new source image."""
        if self._result is None:
            return False
        result = self._result
        self.load_image(result)
        return True

    def reset(self) -> None:
        self.gestures.release()
        self._result = None
        self._pending_result = None
        self._scan_result = None
        self._generation += 1
        self.gestures.mode = InteractionMode.DRAW
        self._sync_forced_move()
        self.painter.clear()

    def clear_mask(self) -> None:
        self.painter.clear()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def display_image(self) -> Optional[np.ndarray]:
        if self._result is not None:
            return self._result
        if self._source is None:
            return None
        surface = self.painter.surface
        if surface is None or self._tab is VisualizerTab.SCANNER:
            return self._source
        return overlay_mask(self._source, surface, self.config.overlay.opacity)
