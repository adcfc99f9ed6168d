"""Per-pixel feature maps: edge detail, skin likelihood and saturation.

Each extractor reads the RGBA pixel buffer and writes one channel of a shared
feature buffer so the scorer can fetch all three with a single lookup:

  channel 0  skin
  channel 1  edge / detail
  channel 2  saturation
  channel 3  unused (255)
"""

from typing import Optional

import cv2
import numpy as np

from cropscore.config import Config

SKIN_CHANNEL = 0
DETAIL_CHANNEL = 1
SATURATION_CHANNEL = 2

SKIN_COLOR = np.array([0.78, 0.57, 0.44], dtype=np.float64)

_LAPLACIAN_KERNEL = np.array(
    [
        [0.0, -1.0, 0.0],
        [-1.0, 4.0, -1.0],
        [0.0, -1.0, 0.0],
    ],
    dtype=np.float64,
)


def _rgb(pixels: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    rgb = pixels[:, :, :3].astype(np.float64)
    return rgb[:, :, 0], rgb[:, :, 1], rgb[:, :, 2]


def luma(pixels: np.ndarray) -> np.ndarray:
    """Perceptual lightness in [0, ~331] (the coefficients sum to 1.3)."""
    r, g, b = _rgb(pixels)
    return 0.0722 * r + 0.7152 * g + 0.5126 * b


def _gated(
    raw: np.ndarray,
    lightness: np.ndarray,
    threshold: float,
    brightness_min: float,
    brightness_max: float,
) -> np.ndarray:
    """Rescale raw so threshold maps to 0 and 1.0 to 255, outside the band 0."""
    keep = (raw > threshold) & (lightness >= brightness_min) & (lightness <= brightness_max)
    scaled = np.clip((raw - threshold) * (255.0 / (1.0 - threshold)), 0.0, 255.0)
    return np.where(keep, scaled, 0.0).astype(np.uint8)


# ---------------------------------------------------------------------------
# Raw per-pixel measures
# ---------------------------------------------------------------------------


def edge_strength(cie: np.ndarray) -> np.ndarray:
    """4-neighbour Laplacian of luma, clamped to [0, 255]; border pixels are 0."""
    lap = cv2.filter2D(cie, cv2.CV_64F, _LAPLACIAN_KERNEL, borderType=cv2.BORDER_REPLICATE)
    out = np.clip(lap, 0.0, 255.0)
    out[0, :] = 0.0
    out[-1, :] = 0.0
    out[:, 0] = 0.0
    out[:, -1] = 0.0
    return out.astype(np.uint8)


def skin_likeness(pixels: np.ndarray) -> np.ndarray:
    """1 - distance between the pixel's unit RGB vector and the skin colour."""
    r, g, b = _rgb(pixels)
    mag = np.sqrt(r * r + g * g + b * b)
    safe = np.where(mag > 0, mag, 1.0)
    d = np.sqrt(
        (r / safe - SKIN_COLOR[0]) ** 2
        + (g / safe - SKIN_COLOR[1]) ** 2
        + (b / safe - SKIN_COLOR[2]) ** 2
    )
    # black has no direction, so it cannot look like skin
    return np.where(mag > 0, 1.0 - d, 0.0)


def saturation(pixels: np.ndarray) -> np.ndarray:
    """HSL saturation in [0, 1]."""
    rgb = pixels[:, :, :3].astype(np.float64) / 255.0
    maximum = rgb.max(axis=2)
    minimum = rgb.min(axis=2)
    lightness = (maximum + minimum) / 2.0
    d = maximum - minimum

    dark = maximum + minimum
    light = 2.0 - maximum - minimum
    sat = np.where(
        lightness > 0.5,
        d / np.where(light > 0, light, 1.0),
        d / np.where(dark > 0, dark, 1.0),
    )
    return np.where(maximum == minimum, 0.0, sat)


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------


def edge_detect(pixels: np.ndarray, out: np.ndarray, cie: Optional[np.ndarray] = None) -> None:
    if cie is None:
        cie = luma(pixels)
    out[:, :, DETAIL_CHANNEL] = edge_strength(cie)


def skin_detect(pixels: np.ndarray, out: np.ndarray, config: Config, cie: Optional[np.ndarray] = None) -> None:
    if cie is None:
        cie = luma(pixels)
    out[:, :, SKIN_CHANNEL] = _gated(
        skin_likeness(pixels),
        cie / 255.0,
        config.skin_threshold,
        config.skin_brightness_min,
        config.skin_brightness_max,
    )


def saturation_detect(
    pixels: np.ndarray, out: np.ndarray, config: Config, cie: Optional[np.ndarray] = None
) -> None:
    if cie is None:
        cie = luma(pixels)
    out[:, :, SATURATION_CHANNEL] = _gated(
        saturation(pixels),
        cie / 255.0,
        config.saturation_threshold,
        config.saturation_brightness_min,
        config.saturation_brightness_max,
    )


def extract_features(pixels: np.ndarray, config: Config) -> np.ndarray:
    """Build the feature buffer for an RGBA pixel buffer.

    The returned array is marked read-only; scoring never mutates it.
    """
    h, w = pixels.shape[:2]
    out = np.zeros((h, w, 4), dtype=np.uint8)
    out[:, :, 3] = 255

    cie = luma(pixels)
    edge_detect(pixels, out, cie)
    skin_detect(pixels, out, config, cie)
    saturation_detect(pixels, out, config, cie)

    out.flags.writeable = False
    return out
