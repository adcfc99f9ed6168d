"""Content-aware crop selection for image pipelines."""

from cropscore.analyzer import (
    SmartCropAnalyzer,
    crop_image,
    find_all_crops,
    find_best_crop,
    find_faces,
)
from cropscore.config import DEFAULT_CONFIG, FACE_DETECT_CONFIG, Config
from cropscore.errors import ClassifierLoadError, CropScoreError, InvalidDimensionsError
from cropscore.geometry import Crop, Rectangle, Score

__version__ = "1.0.0"

__all__ = [
    "ClassifierLoadError",
    "Config",
    "Crop",
    "CropScoreError",
    "DEFAULT_CONFIG",
    "FACE_DETECT_CONFIG",
    "InvalidDimensionsError",
    "Rectangle",
    "Score",
    "SmartCropAnalyzer",
    "crop_image",
    "find_all_crops",
    "find_best_crop",
    "find_faces",
]
