"""Exception types raised by the crop analyzer."""


class CropScoreError(Exception):
    """Base class for all cropscore failures."""


class InvalidDimensionsError(CropScoreError, ValueError):
    """Raised when neither a target width nor a target height was given."""

    def __init__(self, width: int = 0, height: int = 0):
        super().__init__(f"Expect either a height or width (got {width}x{height})")
        self.width = width
        self.height = height


class ClassifierLoadError(CropScoreError, RuntimeError):
    """Raised when face detection is enabled but its classifier cannot be loaded.

    This is a configuration error: the analysis is aborted instead of silently
    scoring without faces.
    """
