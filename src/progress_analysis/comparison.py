"""
Pairwise before/after comparison.

Computes global change, an exponential-decay similarity, per-region change
for three horizontal bands and the aggregate progress score.
"""

import logging
import math
from typing import Optional

from .backend import ArrayBackend, ensure_initialized
from .config import (
    CHANGE_SCORE_CAP,
    CHANGE_SCORE_SCALE,
    CONSISTENCY_WEIGHT,
    REGION_SCORE_FLOOR,
    REGION_SCORE_STEPS,
    REGION_WEIGHT,
    SIMILARITY_DECAY,
)
from .errors import ComputationError
from .models import ComparisonAnalysis, Region, RegionAnalysis, RegionChange
from .recommendations import generate_recommendations

logger = logging.getLogger(__name__)


def region_bounds(height: int) -> list[tuple[Region, int, int]]:
    """Split *height* rows into upper / middle / lower ``(region, start, stop)`` bands.

    The first two bands get ``height // 3`` rows each; the lower band takes
    the remainder, so the bands always tile the full height.
    """
    if height < 0:
        raise ComputationError(f"Image height must be non-negative, got {height}.")
    band = height // 3
    return [
        (Region.UPPER, 0, band),
        (Region.MIDDLE, band, 2 * band),
        (Region.LOWER, 2 * band, height),
    ]


def interpret_region_change(change: float) -> int:
    """Map an unscaled mean absolute difference onto a stepped 25-85 score."""
    for threshold, score in REGION_SCORE_STEPS:
        if change > threshold:
            return score
    return REGION_SCORE_FLOOR


def calculate_similarity(before, after, backend: ArrayBackend) -> float:
    """exp(-10 * MSE): 1.0 for identical inputs, decaying towards 0."""
    squared_diff = backend.square(backend.subtract(before, after))
    mse = backend.mean(squared_diff)
    return math.exp(-SIMILARITY_DECAY * mse)


def analyze_regions(before, after, backend: ArrayBackend) -> RegionAnalysis:
    height = backend.shape(before)[1]
    regions: dict[str, RegionChange] = {}

    for region, start, stop in region_bounds(height):
        band_before = backend.slice_rows(before, start, stop)
        band_after = backend.slice_rows(after, start, stop)
        if stop > start:
            diff = backend.mean(backend.abs(backend.subtract(band_after, band_before)))
        else:
            # Images shorter than three rows leave the upper bands empty.
            diff = 0.0
        regions[region.value] = RegionChange(
            score=interpret_region_change(diff),
            change=round(diff * 100, 2),
        )

    return RegionAnalysis(**regions)


def calculate_progress_score(total_change: float, similarity: float, region_analysis: RegionAnalysis) -> float:
    """Change (max 40) + consistency (max 20) + region significance (max 40), clamped to 0-100."""
    change_score = min(total_change * CHANGE_SCORE_SCALE, CHANGE_SCORE_CAP)
    consistency_score = similarity * CONSISTENCY_WEIGHT
    region_scores = [change.score for _, change in region_analysis.items()]
    region_score = (sum(region_scores) / len(region_scores)) * REGION_WEIGHT

    return max(0.0, min(change_score + consistency_score + region_score, 100.0))


def compare_tensors(before, after, backend: Optional[ArrayBackend] = None) -> ComparisonAnalysis:
    """Compare two canonical tensors of identical shape.

    Args:
        before: Earlier photo tensor.
        after: Later photo tensor.
        backend: Array backend; defaults to the process-wide one.

    Returns:
        ``ComparisonAnalysis`` including recommendations.

    Raises:
        ComputationError: On mismatched or non-image shapes, or values
            outside [0, 1].
    """
    backend = backend or ensure_initialized()

    with backend.compute_scope():
        before = backend.as_batch(before)
        after = backend.as_batch(after)
        if backend.shape(before) != backend.shape(after):
            raise ComputationError(
                f"Cannot compare images of different shapes: "
                f"{backend.shape(before)} vs {backend.shape(after)}."
            )

        abs_diff = backend.abs(backend.subtract(after, before))
        total_change = backend.mean(abs_diff)
        max_change = backend.max(abs_diff)
        del abs_diff

        similarity = calculate_similarity(before, after, backend)
        region_analysis = analyze_regions(before, after, backend)
        del before, after

    progress_score = calculate_progress_score(total_change, similarity, region_analysis)
    logger.debug(
        "Comparison: total=%.4f max=%.4f similarity=%.4f progress=%.2f",
        total_change, max_change, similarity, progress_score,
    )

    return ComparisonAnalysis(
        total_change=round(total_change, 3),
        max_change=round(max_change, 3),
        similarity=round(similarity, 3),
        progress_score=round(progress_score, 1),
        change_percentage=round(total_change * 100, 2),
        region_analysis=region_analysis,
        recommendations=generate_recommendations(progress_score, region_analysis),
    )
