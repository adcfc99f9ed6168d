"""Face location helpers (OpenCV Haar cascade)."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol

import cv2
import numpy as np

from cropscore.config import DEFAULT_FACE_CASCADE, FACE_CLASSIFIER_ENV_VAR, Config, resolve_env_string
from cropscore.errors import ClassifierLoadError
from cropscore.geometry import Rectangle

MIN_FACE_AREA_RATIO = 0.05


class FaceDetector(Protocol):
    """Protocol for face detectors used by the analyzer."""

    def detect(self, pixels: np.ndarray) -> list[Rectangle]:
        """Detect faces in an RGBA uint8 buffer.

        Returns:
            Face bounding boxes in the buffer's pixel coordinates.

        Raises:
            ClassifierLoadError: If the underlying model cannot be loaded.
        """
        ...


def resolve_classifier_path(config: Config, debug: bool = False) -> Path:
    """
    Resolve the Haar cascade file.

    Priority:
      1. config.face_detect_classifier_file
      2. CROPSCORE_FACE_CLASSIFIER (environment, then ./.env)
      3. the frontal-face cascade bundled with OpenCV
    """
    if config.face_detect_classifier_file:
        return Path(config.face_detect_classifier_file).expanduser()

    override = resolve_env_string(FACE_CLASSIFIER_ENV_VAR)
    if override:
        model_path = Path(override).expanduser()
        if debug:
            print(f"Using face classifier from {FACE_CLASSIFIER_ENV_VAR}: {model_path}")
        return model_path

    return Path(cv2.data.haarcascades) / DEFAULT_FACE_CASCADE


def _classifier_setup_hint(path: Path) -> str:
    if not path.exists():
        return (
            f"Cascade file not found: {path}\n"
            f"Set Config.face_detect_classifier_file or {FACE_CLASSIFIER_ENV_VAR} to a valid "
            "Haar cascade XML, e.g. cv2.data.haarcascades + 'haarcascade_frontalface_default.xml'."
        )
    return f"OpenCV could not parse {path}; is it a Haar cascade XML?"


class HaarFaceDetector:
    """Frontal face detection with cv2.CascadeClassifier.

    The classifier is loaded on first use and cached on the instance.
    """

    def __init__(
        self,
        config: Config,
        scale_factor: float = 1.1,
        min_neighbors: int = 3,
        debug: bool = False,
    ):
        self.config = config
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.debug = debug
        self._classifier: Optional[cv2.CascadeClassifier] = None

    def _load(self) -> cv2.CascadeClassifier:
        if self._classifier is not None:
            return self._classifier

        try:
            path = resolve_classifier_path(self.config, debug=self.debug)
            classifier = cv2.CascadeClassifier()
        except AttributeError as e:
            raise ClassifierLoadError(
                f"This OpenCV build has no Haar cascade support ({e}); "
                "install opencv-python-headless."
            ) from e
        try:
            loaded = path.is_file() and classifier.load(str(path))
        except cv2.error as e:
            raise ClassifierLoadError(_classifier_setup_hint(path)) from e
        if not loaded or classifier.empty():
            raise ClassifierLoadError(_classifier_setup_hint(path))

        if self.debug:
            print(f"Loaded face classifier {path}")
        self._classifier = classifier
        return classifier

    def detect(self, pixels: np.ndarray) -> list[Rectangle]:
        classifier = self._load()
        gray = cv2.cvtColor(pixels, cv2.COLOR_RGBA2GRAY)
        found = classifier.detectMultiScale(
            gray, scaleFactor=self.scale_factor, minNeighbors=self.min_neighbors
        )
        return [Rectangle.from_xywh(x, y, w, h) for (x, y, w, h) in found]


def filter_faces(faces: list[Rectangle], width: int, height: int) -> list[Rectangle]:
    """Drop boxes covering no more than 5% of the image; detector order is kept."""
    threshold = MIN_FACE_AREA_RATIO * width * height
    return [face for face in faces if face.area > threshold]


def locate_faces(detector: FaceDetector, pixels: np.ndarray) -> list[Rectangle]:
    """Run detector on pixels and keep faces large enough to matter.

    Detection errors degrade to no faces; a classifier that cannot be loaded
    is fatal and propagates.
    """
    h, w = pixels.shape[:2]
    try:
        faces = detector.detect(pixels)
    except ClassifierLoadError:
        raise
    except (cv2.error, ValueError) as e:
        print(f"  ⚠ Face detection failed, scoring without faces: {e}")
        return []
    return filter_faces(list(faces), w, h)
