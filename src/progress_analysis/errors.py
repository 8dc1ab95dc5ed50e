"""
Error taxonomy for the progress-photo analysis engine.

Every error carries a stable ``error_code`` so the caller's UI can tell an
unreadable image apart from a too-short photo series or an engine outage.
"""

from typing import Optional


class ProgressAnalysisError(Exception):
    """Base class for all analysis failures."""
    error_code = "ANALYSIS_FAILED"


class BackendInitError(ProgressAnalysisError, RuntimeError):
    """No array backend could be initialized on any candidate strategy."""
    error_code = "ANALYSIS_UNAVAILABLE"


class ComputationError(ProgressAnalysisError, RuntimeError):
    """Shape mismatch or another invariant violation during array math."""
    error_code = "ANALYSIS_UNAVAILABLE"


class InsufficientDataError(ProgressAnalysisError, ValueError):
    """Fewer photos than a timeline analysis needs."""
    error_code = "INSUFFICIENT_PHOTOS"


class ImageError(ProgressAnalysisError, ValueError):
    """A specific image could not be turned into pixels."""
    error_code = "IMAGE_UNREADABLE"

    def __init__(self, message: str, image_index: Optional[int] = None):
        super().__init__(message)
        self.image_index = image_index

    def with_index(self, image_index: int) -> "ImageError":
        """Return a copy of this error tagged with its position in a series."""
        return type(self)(f"Photo {image_index}: {self}", image_index=image_index)


class FetchError(ImageError):
    """The image reference could not be resolved to bytes."""


class DecodeError(ImageError):
    """The bytes are not a supported image format."""
