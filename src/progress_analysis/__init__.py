"""
Progress-photo analysis engine.

Turns one or two fitness progress photos into pixel statistics, heuristic
quality scores and a 0-100 progress score:
    Preprocessing : image reference -> (1, 224, 224, 3) canonical tensor
    Single image  : statistics, edge intensity, lighting/quality tiers
    Comparison    : change, similarity, region scores, progress score
    Timeline      : consecutive-pair comparisons and trend narrative
    Report        : markdown text for display
"""

from .analyzer import ProgressPhotoAnalyzer
from .backend import BackendStrategy, active_strategy, ensure_initialized, reset_backend
from .comparison import compare_tensors, region_bounds
from .config import AnalysisSettings, load_settings
from .errors import (
    BackendInitError,
    ComputationError,
    DecodeError,
    FetchError,
    ImageError,
    InsufficientDataError,
    ProgressAnalysisError,
)
from .models import (
    ComparisonAnalysis,
    ImageQuality,
    LightingQuality,
    QualityTier,
    Region,
    RegionAnalysis,
    RegionChange,
    SeriesAnalysis,
    SingleImageAnalysis,
    TimelineEntry,
)
from .preprocessing import canonical_tensor, to_canonical_tensor
from .recommendations import generate_recommendations
from .report import generate_analysis_report
from .single_image import analyze_tensor
from .timeline import compare_series

__all__ = [
    "ProgressPhotoAnalyzer",
    "BackendStrategy",
    "active_strategy",
    "ensure_initialized",
    "reset_backend",
    "compare_tensors",
    "region_bounds",
    "AnalysisSettings",
    "load_settings",
    "BackendInitError",
    "ComputationError",
    "DecodeError",
    "FetchError",
    "ImageError",
    "InsufficientDataError",
    "ProgressAnalysisError",
    "ComparisonAnalysis",
    "ImageQuality",
    "LightingQuality",
    "QualityTier",
    "Region",
    "RegionAnalysis",
    "RegionChange",
    "SeriesAnalysis",
    "SingleImageAnalysis",
    "TimelineEntry",
    "canonical_tensor",
    "to_canonical_tensor",
    "generate_recommendations",
    "generate_analysis_report",
    "analyze_tensor",
    "compare_series",
]
