"""
Rule-based guidance from a progress score and region scores.
"""

from .config import (
    GENERAL_GUIDANCE,
    REGION_GUIDANCE,
    SLOW_PROGRESS_THRESHOLD,
    STEADY_PROGRESS_THRESHOLD,
    WEAK_REGION_THRESHOLD,
)
from .models import Region, RegionAnalysis, RegionChange


def weakest_region(region_analysis: RegionAnalysis) -> tuple[Region, RegionChange]:
    """Lowest-scoring region, scanning upper -> middle -> lower; the first minimum wins ties."""
    weakest = None
    for region, change in region_analysis.items():
        if weakest is None or change.score < weakest[1].score:
            weakest = (region, change)
    return weakest


def generate_recommendations(progress_score: float, region_analysis: RegionAnalysis) -> list[str]:
    """Two tiered general tips, plus one targeted tip when the weakest region scores below 50."""
    if progress_score < SLOW_PROGRESS_THRESHOLD:
        recommendations = list(GENERAL_GUIDANCE["slow"])
    elif progress_score < STEADY_PROGRESS_THRESHOLD:
        recommendations = list(GENERAL_GUIDANCE["steady"])
    else:
        recommendations = list(GENERAL_GUIDANCE["strong"])

    region, change = weakest_region(region_analysis)
    if change.score < WEAK_REGION_THRESHOLD:
        recommendations.append(REGION_GUIDANCE[region.value])

    return recommendations
