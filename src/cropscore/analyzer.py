"""
Content-aware crop analyzer
===========================

Finds the crop of an image that best keeps its interesting content when the
image has to fit a target aspect ratio.

Pipeline:
  1. Prescale the image toward ``prescale_min`` on its shorter edge
  2. Build edge, skin and saturation feature maps
  3. Locate faces (optional)
  4. Generate candidate crops over scale x position
  5. Score every candidate and pick the best (or return them all)

All geometry is computed on the prescaled image and mapped back to native
resolution before it is returned.
"""

import math
import time
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from PIL import Image

from cropscore.config import DEBUG_ENV_VAR, DEFAULT_CONFIG, Config, resolve_env_bool
from cropscore.errors import InvalidDimensionsError
from cropscore.faces import FaceDetector, HaarFaceDetector, locate_faces
from cropscore.features import extract_features
from cropscore.geometry import Crop, Rectangle, chop
from cropscore.imaging import Cv2Resizer, ImageLike, Resizer, to_rgba
from cropscore.scoring import score_crops

SCALE_EPSILON = 1e-9


# ---------------------------------------------------------------------------
# Preprocessing
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Prescaled:
    """The image the analysis runs on, plus what is needed to map results back."""

    pixels: np.ndarray
    factor: float
    crop_width: int
    crop_height: int
    min_scale: float


def _validate_dimensions(width: int, height: int) -> None:
    if width < 0 or height < 0 or (width == 0 and height == 0):
        raise InvalidDimensionsError(width, height)


def _axis_scale(source: int, target: int) -> float:
    return source / target if target else math.inf


def downsample(pixels: np.ndarray, config: Config, resizer: Resizer) -> tuple[np.ndarray, float]:
    """Shrink pixels so the shorter edge is prescale_min; returns (pixels, factor).

    The factor is measured from the resized buffer, not the requested one. A
    failing resizer leaves the image at native resolution.
    """
    src_h, src_w = pixels.shape[:2]
    if not config.prescale:
        return pixels, 1.0
    factor = config.prescale_min / min(src_w, src_h)
    if factor >= 1.0:
        return pixels, 1.0
    try:
        resized = resizer.resize(pixels, int(src_w * factor), 0)
    except Exception as e:
        print(f"  ⚠ Prescale failed, analysing at native resolution: {e}")
        return pixels, 1.0
    return resized, resized.shape[1] / src_w


def prescale(
    pixels: np.ndarray,
    width: int,
    height: int,
    config: Config,
    resizer: Resizer,
) -> Prescaled:
    """Downsample pixels for analysis and work out crop size and scale bounds."""
    src_h, src_w = pixels.shape[:2]
    scale = min(_axis_scale(src_w, width), _axis_scale(src_h, height))
    pixels, factor = downsample(pixels, config, resizer)
    new_h, new_w = pixels.shape[:2]

    # resampler rounding can leave the buffer a pixel short of the ideal crop
    crop_width = min(chop(width * scale * factor), new_w)
    crop_height = min(chop(height * scale * factor), new_h)
    real_min_scale = min(config.max_scale, max(1.0 / scale, config.min_scale))

    return Prescaled(
        pixels=pixels,
        factor=factor,
        crop_width=crop_width,
        crop_height=crop_height,
        min_scale=real_min_scale,
    )


# ---------------------------------------------------------------------------
# Candidate generation
# ---------------------------------------------------------------------------


def generate_crops(
    image_width: int,
    image_height: int,
    crop_width: float,
    crop_height: float,
    real_min_scale: float,
    config: Config,
) -> list[Rectangle]:
    """Enumerate candidate rectangles: scale descending, then y, then x.

    A zero crop dimension defaults to the image's shorter edge. Identical
    rectangles can be emitted at different scales; they are not merged.
    """
    min_dimension = min(image_width, image_height)
    crop_w = crop_width or min_dimension
    crop_h = crop_height or min_dimension

    rects: list[Rectangle] = []
    i = 0
    while True:
        scale = config.max_scale - i * config.scale_step
        if scale < real_min_scale - SCALE_EPSILON:
            break
        scaled_w = crop_w * scale
        scaled_h = crop_h * scale

        y = 0
        while y + scaled_h <= image_height:
            x = 0
            while x + scaled_w <= image_width:
                rects.append(Rectangle(x, y, x + int(scaled_w), y + int(scaled_h)))
                x += config.step
            y += config.step
        i += 1
    return rects


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


def select_best(crops: Sequence[Crop]) -> Optional[Crop]:
    """Highest total wins; on a tie the first one seen is kept."""
    best: Optional[Crop] = None
    for crop in crops:
        if best is None or crop.total > best.total:
            best = crop
    return best


class SmartCropAnalyzer:
    """Scores candidate crops of an image against content feature maps.

    Args:
        config: Weights, thresholds and search bounds.
        resizer: Used for prescaling; defaults to :class:`Cv2Resizer`.
        face_detector: Used when ``config.face_detect_enabled``; defaults to a
            :class:`HaarFaceDetector` built from config.
        debug: Print timings and intermediate values (also enabled by
            ``CROPSCORE_DEBUG=1``).
    """

    def __init__(
        self,
        config: Config = DEFAULT_CONFIG,
        resizer: Optional[Resizer] = None,
        face_detector: Optional[FaceDetector] = None,
        debug: Optional[bool] = None,
    ):
        self.config = config
        self.resizer = resizer if resizer is not None else Cv2Resizer()
        self.debug = resolve_env_bool(DEBUG_ENV_VAR, False) if debug is None else debug
        if face_detector is None and config.face_detect_enabled:
            face_detector = HaarFaceDetector(config, debug=self.debug)
        self.face_detector = face_detector

    def _log(self, message: str) -> None:
        if self.debug:
            print(message)

    def _prepare(self, image: ImageLike, width: int, height: int) -> Prescaled:
        pixels = to_rgba(image)
        prepared = prescale(pixels, width, height, self.config, self.resizer)
        self._log(f"prescale factor: {prepared.factor:.4f}")
        self._log(f"original resolution: {pixels.shape[1]}x{pixels.shape[0]}")
        self._log(
            f"crop: {prepared.crop_width}x{prepared.crop_height} | "
            f"min scale: {prepared.min_scale:.3f}"
        )
        return prepared

    def _faces(self, pixels: np.ndarray) -> list[Rectangle]:
        if not self.config.face_detect_enabled or self.face_detector is None:
            return []
        now = time.perf_counter()
        faces = locate_faces(self.face_detector, pixels)
        self._log(f"Time elapsed faces: {time.perf_counter() - now:.4f}s ({len(faces)} kept)")
        return faces

    def _analyse(self, prepared: Prescaled) -> list[Crop]:
        pixels = prepared.pixels
        h, w = pixels.shape[:2]

        now = time.perf_counter()
        features = extract_features(pixels, self.config)
        self._log(f"Time elapsed features: {time.perf_counter() - now:.4f}s")

        faces = self._faces(pixels)

        now = time.perf_counter()
        rects = generate_crops(
            w, h, prepared.crop_width, prepared.crop_height, prepared.min_scale, self.config
        )
        self._log(f"Time elapsed crops: {time.perf_counter() - now:.4f}s ({len(rects)} candidates)")

        now = time.perf_counter()
        crops = score_crops(features, rects, self.config, faces)
        self._log(f"Time elapsed score: {time.perf_counter() - now:.4f}s")
        return crops

    def find_best_crop(self, image: ImageLike, width: int, height: int) -> Rectangle:
        """Return the best crop rectangle in native image coordinates."""
        _validate_dimensions(width, height)
        prepared = self._prepare(image, width, height)

        best = select_best(self._analyse(prepared))
        if best is None:
            # image too small to hold a single candidate
            return Rectangle(0, 0, 0, 0)
        self._log(f"best total: {best.total:.6f} at {best.rect}")
        return best.rect.scaled_down(prepared.factor).canon()

    def find_all_crops(self, image: ImageLike, width: int, height: int) -> list[Crop]:
        """Return every scored candidate in native coordinates, unranked."""
        _validate_dimensions(width, height)
        prepared = self._prepare(image, width, height)

        crops = self._analyse(prepared)
        return [
            Crop(rect=crop.rect.scaled_down(prepared.factor).canon(), score=crop.score)
            for crop in crops
        ]

    def find_faces(self, image: ImageLike) -> list[Rectangle]:
        """Detect faces worth cropping for, in native image coordinates.

        Runs regardless of ``config.face_detect_enabled``.
        """
        detector = self.face_detector or HaarFaceDetector(self.config, debug=self.debug)
        pixels, factor = downsample(to_rgba(image), self.config, self.resizer)
        faces = locate_faces(detector, pixels)
        return [face.scaled_down(factor).canon() for face in faces]


# ---------------------------------------------------------------------------
# Convenience wrappers
# ---------------------------------------------------------------------------


def find_best_crop(
    image: ImageLike, width: int, height: int, config: Config = DEFAULT_CONFIG
) -> Rectangle:
    return SmartCropAnalyzer(config).find_best_crop(image, width, height)


def find_all_crops(
    image: ImageLike, width: int, height: int, config: Config = DEFAULT_CONFIG
) -> list[Crop]:
    return SmartCropAnalyzer(config).find_all_crops(image, width, height)


def find_faces(image: ImageLike, config: Config = DEFAULT_CONFIG) -> list[Rectangle]:
    return SmartCropAnalyzer(config).find_faces(image)


def crop_image(image: ImageLike, rect: Rectangle) -> Image.Image:
    """Cut rect out of image and return it as a PIL image."""
    if isinstance(image, Image.Image):
        return image.crop(rect.as_box())
    return Image.fromarray(to_rgba(image)).crop(rect.as_box())
