"""
Configuration models and loader for the visualizer.

Tool defaults and limits can be tuned from a YAML file; every field has a
default so an empty or missing file yields a working configuration.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, model_validator

from .core.gestures import InteractionMode
from .core.imaging import DEFAULT_JPEG_QUALITY, DEFAULT_MAX_SIDE
from .core.mask import DEFAULT_BRUSH_SIZE, MAX_BRUSH_SIZE, MIN_BRUSH_SIZE, Tool


class BrushConfig(BaseModel):
    """Brush/eraser defaults, in image pixels."""

    default_size: int = Field(default=DEFAULT_BRUSH_SIZE, gt=0, description="Initial brush width")
    min_size: int = Field(default=MIN_BRUSH_SIZE, gt=0, description="Smallest selectable width")
    max_size: int = Field(default=MAX_BRUSH_SIZE, gt=0, description="Largest selectable width")
    default_tool: Tool = Field(default=Tool.BRUSH, description="Tool selected on startup")

    @model_validator(mode="after")
    def _validate_bounds(self) -> "BrushConfig":
        if self.min_size > self.max_size:
            raise ValueError("min_size must not exceed max_size")
        if not self.min_size <= self.default_size <= self.max_size:
            raise ValueError("default_size must lie within [min_size, max_size]")
        return self


class ViewportConfig(BaseModel):
    """Zoom controls and layout retry behaviour."""

    zoom_step: float = Field(default=0.2, gt=0, description="Scale delta applied by the +/- buttons")
    fit_retry_ms: int = Field(
        default=50, gt=0, description="Delay before retrying a fit while the container has no size"
    )
    default_mode: InteractionMode = Field(default=InteractionMode.DRAW)


class ImageConfig(BaseModel):
    """Preparation applied to source images before editing/transmission."""

    max_side: int = Field(default=DEFAULT_MAX_SIDE, ge=0, description="Longest side in pixels (0 keeps size)")
    jpeg_quality: int = Field(default=DEFAULT_JPEG_QUALITY, ge=1, le=100)


class OverlayConfig(BaseModel):
    opacity: float = Field(default=0.5, ge=0.0, le=1.0, description="Mask overlay opacity on screen")


class VisualizerConfig(BaseModel):
    """Top-level configuration object."""

    brush: BrushConfig = Field(default_factory=BrushConfig)
    viewport: ViewportConfig = Field(default_factory=ViewportConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    overlay: OverlayConfig = Field(default_factory=OverlayConfig)


def load_visualizer_config(path: Optional[Union[str, Path]] = None) -> VisualizerConfig:
    """
    Load and validate a visualizer configuration from a YAML file.

    Parameters
    ----------
    path:
        Path to the YAML file, or ``None`` for the built-in defaults.

    Returns
    -------
    VisualizerConfig
        Parsed and validated configuration object.
    """

    if path is None:
        return VisualizerConfig()

    config_path = Path(path).resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw_data = yaml.safe_load(handle) or {}

    return VisualizerConfig.model_validate(raw_data)
