"""Image decoding, preparation and overlay helpers.

Arrays handled here are ``uint8`` RGB images in row-major order
(``height x width x 3``) unless noted otherwise.
"""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Union

import cv2
import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_MAX_SIDE = 512
DEFAULT_JPEG_QUALITY = 70


class ImageLoadError(ValueError):
    """Raised when a source image cannot be decoded."""


def as_rgb(image: np.ndarray) -> np.ndarray:
    """Normalize grayscale/RGBA arrays to 3-channel ``uint8`` RGB."""
    array = np.asarray(image)
    if array.size == 0:
        raise ImageLoadError(f"Image is empty (shape {array.shape})")
    if array.dtype != np.uint8:
        array = np.clip(array, 0, 255).astype(np.uint8)
    if array.ndim == 2:
        return cv2.cvtColor(array, cv2.COLOR_GRAY2RGB)
    if array.ndim == 3 and array.shape[2] == 4:
        return cv2.cvtColor(array, cv2.COLOR_RGBA2RGB)
    if array.ndim == 3 and array.shape[2] == 3:
        return np.ascontiguousarray(array)
    raise ImageLoadError(f"Unsupported image shape {array.shape}")


def decode_image(data: bytes) -> np.ndarray:
    if not data:
        raise ImageLoadError("Image data is empty")
    buffer = np.frombuffer(data, dtype=np.uint8)
    decoded = cv2.imdecode(buffer, cv2.IMREAD_COLOR)
    if decoded is None:
        raise ImageLoadError("Failed to decode image data")
    return cv2.cvtColor(decoded, cv2.COLOR_BGR2RGB)


def read_image(path: Union[str, Path]) -> np.ndarray:
    path = Path(path)
    if not path.exists():
        raise ImageLoadError(f"Image file not found: {path}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise ImageLoadError(f"Failed to read image {path}: {exc}") from exc
    image = decode_image(data)
    logger.debug("Read %s (%dx%d)", path, image.shape[1], image.shape[0])
    return image


def downscale_to_max_side(image: np.ndarray, max_side: int = DEFAULT_MAX_SIDE) -> np.ndarray:
    """Shrink so the longest side is at most ``max_side``; never upscale."""
    height, width = image.shape[:2]
    longest = max(width, height)
    if max_side <= 0 or longest <= max_side:
        return image
    ratio = max_side / float(longest)
    new_size = (max(1, int(round(width * ratio))), max(1, int(round(height * ratio))))
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)


def encode_jpeg(image: np.ndarray, quality: int = DEFAULT_JPEG_QUALITY) -> bytes:
    bgr = cv2.cvtColor(as_rgb(image), cv2.COLOR_RGB2BGR)
    ok, buffer = cv2.imencode(".jpg", bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    if not ok:
        raise ValueError("Failed to encode image as JPEG")
    return buffer.tobytes()


def encode_png(image: np.ndarray) -> bytes:
    bgr = cv2.cvtColor(as_rgb(image), cv2.COLOR_RGB2BGR)
    ok, buffer = cv2.imencode(".png", bgr)
    if not ok:
        raise ValueError("Failed to encode image as PNG")
    return buffer.tobytes()


def to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def overlay_mask(image: np.ndarray, mask_rgba: np.ndarray, opacity: float = 0.5) -> np.ndarray:
    """Blend the painted mask over ``image`` for display."""
    if image.shape[:2] != mask_rgba.shape[:2]:
        raise ValueError(
            f"Image/mask dimensions differ: {image.shape[:2]} vs {mask_rgba.shape[:2]}"
        )
    opacity = max(0.0, min(1.0, float(opacity)))
    alpha = (mask_rgba[..., 3:4].astype(np.float32) / 255.0) * opacity
    base = image.astype(np.float32)
    color = mask_rgba[..., :3].astype(np.float32)
    blended = base * (1.0 - alpha) + color * alpha
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)
