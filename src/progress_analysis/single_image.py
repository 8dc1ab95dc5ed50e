"""
Single-photo analysis.

Computes global pixel statistics, a Sobel edge map and heuristic lighting,
image-quality and muscle-definition scores from one canonical tensor.
"""

import logging
import math
from typing import Optional

from .backend import ArrayBackend, ensure_initialized
from .config import (
    CONTRAST_SCORE_SCALE,
    EDGE_POINTS,
    EDGE_SCORE_SCALE,
    IMAGE_QUALITY_BASE,
    IMAGE_QUALITY_TIERS,
    LIGHTING_TIERS,
    SOBEL_X,
    SOBEL_Y,
    VARIANCE_POINTS,
    VARIANCE_SCORE_SCALE,
)
from .models import ImageQuality, LightingQuality, QualityTier, SingleImageAnalysis

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(value, high))


# ---------------------------------------------------------------------------
# Array-level helpers
# ---------------------------------------------------------------------------

def detect_edges(tensor, backend: ArrayBackend):
    """Sobel gradient magnitude of the channel-averaged image, same spatial size."""
    grayscale = backend.channel_mean(tensor)
    edges_x = backend.conv2d_same(grayscale, SOBEL_X)
    edges_y = backend.conv2d_same(grayscale, SOBEL_Y)
    return backend.sqrt(backend.add(backend.square(edges_x), backend.square(edges_y)))


def calculate_contrast(tensor, backend: ArrayBackend) -> float:
    """Global standard deviation, recomputed independently of the variance pass."""
    mean = backend.mean(tensor)
    squared_diff = backend.square(backend.subtract(tensor, mean))
    variance = backend.mean(squared_diff)
    return math.sqrt(variance)


# ---------------------------------------------------------------------------
# Scalar scoring rules
# ---------------------------------------------------------------------------

def calculate_muscle_definition_score(edge_intensity: float, contrast: float, std: float) -> float:
    """Average of clamped edge, contrast and variance sub-scores (0-100)."""
    edge_score = _clamp(edge_intensity * EDGE_SCORE_SCALE)
    contrast_score = _clamp(contrast * CONTRAST_SCORE_SCALE)
    variance_score = _clamp(std * VARIANCE_SCORE_SCALE)
    return (edge_score + contrast_score + variance_score) / 3


def assess_lighting_quality(mean: float, std: float) -> LightingQuality:
    """Classify lighting from brightness (mean) and evenness (1 - std)."""
    brightness = mean
    evenness = 1 - std

    quality = QualityTier.POOR
    for tier, low, high, min_evenness in LIGHTING_TIERS:
        if not (low < brightness < high):
            continue
        if min_evenness is not None and not evenness > min_evenness:
            continue
        quality = QualityTier(tier)
        break

    return LightingQuality(
        quality=quality,
        brightness=round(brightness, 3),
        evenness=round(evenness, 3),
    )


def _points(value: float, table: list[tuple[float, int]]) -> int:
    for threshold, points in table:
        if value > threshold:
            return points
    return table[-1][1]


def assess_image_quality(variance: float, edge_intensity: float) -> ImageQuality:
    """Score detail (variance) and sharpness (edge intensity) on top of a base of 30."""
    score = IMAGE_QUALITY_BASE
    score += _points(variance, VARIANCE_POINTS)
    score += _points(edge_intensity, EDGE_POINTS)
    score = min(score, 100)

    quality = QualityTier.POOR
    for minimum, tier in IMAGE_QUALITY_TIERS:
        if score >= minimum:
            quality = QualityTier(tier)
            break

    return ImageQuality(quality=quality, score=score)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def analyze_tensor(tensor, backend: Optional[ArrayBackend] = None) -> SingleImageAnalysis:
    """Analyze one canonical tensor.

    Args:
        tensor: (224, 224, 3) or (1, 224, 224, 3) array with values in [0, 1].
        backend: Array backend; defaults to the process-wide one.

    Returns:
        ``SingleImageAnalysis`` with display values rounded to 3 decimals.

    Raises:
        ComputationError: If *tensor* is not an image-shaped array with
            finite values in [0, 1].
    """
    backend = backend or ensure_initialized()

    with backend.compute_scope():
        x = backend.as_batch(tensor)

        mean = backend.mean(x)
        squared_diff = backend.square(backend.subtract(x, mean))
        variance = backend.mean(squared_diff)
        std = math.sqrt(variance)
        del squared_diff

        edges = detect_edges(x, backend)
        edge_intensity = backend.mean(edges)
        del edges

        contrast = calculate_contrast(x, backend)
        del x

    logger.debug(
        "Single image stats: mean=%.4f var=%.4f std=%.4f edges=%.4f contrast=%.4f",
        mean, variance, std, edge_intensity, contrast,
    )

    return SingleImageAnalysis(
        mean_pixel_intensity=round(mean, 3),
        variance=round(variance, 3),
        standard_deviation=round(std, 3),
        edge_intensity=round(edge_intensity, 3),
        contrast=round(contrast, 3),
        muscle_definition_score=calculate_muscle_definition_score(edge_intensity, contrast, std),
        lighting_quality=assess_lighting_quality(mean, std),
        image_quality=assess_image_quality(variance, edge_intensity),
    )
