"""
Immutable value records returned by the analysis engine.

Uses Pydantic so records validate their ranges on construction and can be
dumped back to the camelCase field names the mobile client expects
(``record.model_dump(by_alias=True)``).
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Region(str, Enum):
    """Horizontal image band, top to bottom."""
    UPPER = "upper"
    MIDDLE = "middle"
    LOWER = "lower"


class QualityTier(str, Enum):
    POOR = "Poor"
    FAIR = "Fair"
    GOOD = "Good"
    EXCELLENT = "Excellent"


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# Single image
# ============================================================================

class LightingQuality(_Record):
    quality: QualityTier
    brightness: float = Field(ge=0.0, le=1.0)
    evenness: float


class ImageQuality(_Record):
    quality: QualityTier
    score: int = Field(ge=0, le=100)


class SingleImageAnalysis(_Record):
    """Per-photo statistics and heuristic quality scores."""
    mean_pixel_intensity: float = Field(ge=0.0, le=1.0)
    variance: float = Field(ge=0.0)
    standard_deviation: float = Field(ge=0.0)
    edge_intensity: float = Field(ge=0.0)
    contrast: float = Field(ge=0.0)
    muscle_definition_score: float = Field(ge=0.0, le=100.0)
    lighting_quality: LightingQuality
    image_quality: ImageQuality


# ============================================================================
# Pairwise comparison
# ============================================================================

class RegionChange(_Record):
    score: int = Field(ge=0, le=100)
    change: float = Field(ge=0.0, description="Mean absolute difference as a percentage")


class RegionAnalysis(_Record):
    upper: RegionChange
    middle: RegionChange
    lower: RegionChange

    def items(self) -> list[tuple[Region, RegionChange]]:
        """Regions in their fixed top-to-bottom order."""
        return [(region, getattr(self, region.value)) for region in Region]


class ComparisonAnalysis(_Record):
    """Change metrics between a before and an after photo."""
    total_change: float = Field(ge=0.0)
    max_change: float = Field(ge=0.0)
    similarity: float = Field(ge=0.0, le=1.0)
    progress_score: float = Field(ge=0.0, le=100.0)
    change_percentage: float = Field(ge=0.0)
    region_analysis: RegionAnalysis
    recommendations: tuple[str, ...] = ()


# ============================================================================
# Timeline
# ============================================================================

class TimelineEntry(_Record):
    photo_index: int = Field(ge=1)
    comparison: ComparisonAnalysis
    estimated_timestamp: datetime


class SeriesAnalysis(_Record):
    overall_progress: float = Field(ge=0.0, le=100.0)
    timeline_analysis: tuple[TimelineEntry, ...]
    trends: tuple[str, ...] = ()
