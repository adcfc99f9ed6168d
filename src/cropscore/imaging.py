"""Pixel buffer conversion, loading and resizing.

The analyzer works on RGBA ``uint8`` arrays of shape (H, W, 4). Decoding and
resampling are delegated to OpenCV or Pillow.
"""

from pathlib import Path
from typing import Protocol, Union

import cv2
import numpy as np
from PIL import Image, ImageOps

ImageLike = Union[np.ndarray, Image.Image]


def to_rgba(image: ImageLike) -> np.ndarray:
    """Return a fresh (H, W, 4) uint8 RGBA copy of image.

    Accepts a PIL image, a 2-D grey array, an (H, W, 3) RGB array or an
    (H, W, 4) RGBA array. The caller's buffer is never shared.
    """
    if isinstance(image, Image.Image):
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return np.array(image, dtype=np.uint8)

    arr = np.ascontiguousarray(image)
    if arr.dtype != np.uint8:
        arr = np.clip(arr, 0, 255).astype(np.uint8)

    if arr.ndim == 2:
        return cv2.cvtColor(arr, cv2.COLOR_GRAY2RGBA)
    if arr.ndim == 3 and arr.shape[2] == 3:
        return cv2.cvtColor(arr, cv2.COLOR_RGB2RGBA)
    if arr.ndim == 3 and arr.shape[2] == 4:
        return arr.copy()
    raise ValueError(f"Unsupported pixel buffer shape {arr.shape}")


def load_image(path: Path) -> np.ndarray:
    """Decode an image file into an RGBA buffer, honouring EXIF orientation."""
    with Image.open(path) as img:
        img = ImageOps.exif_transpose(img)
        return to_rgba(img)


def _target_size(src_w: int, src_h: int, width: int, height: int) -> tuple[int, int]:
    if width == 0 and height == 0:
        return src_w, src_h
    if width == 0:
        width = max(1, int(round(src_w * height / src_h)))
    elif height == 0:
        height = max(1, int(round(src_h * width / src_w)))
    return width, height


# ---------------------------------------------------------------------------
# Resizers
# ---------------------------------------------------------------------------


class Resizer(Protocol):
    """Resampling capability used by the prescale step."""

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        """Resize an RGBA buffer; a zero width or height preserves aspect."""
        ...


class Cv2Resizer:
    """Resize with cv2.resize (INTER_AREA suits the downscaling we do)."""

    def __init__(self, interpolation: int = cv2.INTER_AREA):
        self.interpolation = interpolation

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        h, w = pixels.shape[:2]
        out_w, out_h = _target_size(w, h, width, height)
        if (out_w, out_h) == (w, h):
            return pixels.copy()
        return cv2.resize(pixels, (out_w, out_h), interpolation=self.interpolation)


class PillowResizer:
    def __init__(self, resample: int = Image.LANCZOS):
        self.resample = resample

    def resize(self, pixels: np.ndarray, width: int, height: int) -> np.ndarray:
        h, w = pixels.shape[:2]
        out_w, out_h = _target_size(w, h, width, height)
        img = Image.fromarray(np.ascontiguousarray(pixels))
        return np.array(img.resize((out_w, out_h), self.resample), dtype=np.uint8)
