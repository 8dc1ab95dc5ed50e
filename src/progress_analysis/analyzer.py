"""
Caller-facing facade over the analysis engine.

Bundles settings, the image fetcher and lazy backend initialization so the
mobile client's service layer only has to hold one object.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

from .backend import ArrayBackend, ensure_initialized
from .comparison import compare_tensors
from .config import AnalysisSettings, load_settings
from .models import ComparisonAnalysis, SeriesAnalysis, SingleImageAnalysis
from .preprocessing import ImageFetcher, canonical_tensor
from .report import generate_analysis_report
from .single_image import analyze_tensor
from .timeline import compare_series

logger = logging.getLogger(__name__)


class ProgressPhotoAnalyzer:
    """Progress-photo analysis for one caller.

    Args:
        settings: Runtime settings; loaded from YAML/environment when omitted.
        fetcher: Resolves opaque image references (URIs, storage keys) to bytes.
    """

    def __init__(
        self,
        settings: Optional[AnalysisSettings] = None,
        fetcher: Optional[ImageFetcher] = None,
    ):
        self.settings = settings or load_settings()
        self.fetcher = fetcher

    def initialize(self) -> ArrayBackend:
        """Ensure the process-wide backend is ready; safe to call repeatedly."""
        return ensure_initialized(self.settings.backend)

    def analyze_single_image(self, image_ref: Any) -> SingleImageAnalysis:
        backend = self.initialize()
        with canonical_tensor(image_ref, fetcher=self.fetcher, backend=backend) as tensor:
            analysis = analyze_tensor(tensor, backend=backend)
        logger.info(
            "Single image analyzed: definition=%.1f quality=%s lighting=%s",
            analysis.muscle_definition_score,
            analysis.image_quality.quality.value,
            analysis.lighting_quality.quality.value,
        )
        return analysis

    def compare_images(self, before_ref: Any, after_ref: Any) -> ComparisonAnalysis:
        backend = self.initialize()
        with canonical_tensor(before_ref, fetcher=self.fetcher, backend=backend) as before, \
                canonical_tensor(after_ref, fetcher=self.fetcher, backend=backend) as after:
            comparison = compare_tensors(before, after, backend=backend)
        logger.info(
            "Images compared: progress=%.1f change=%.2f%%",
            comparison.progress_score, comparison.change_percentage,
        )
        return comparison

    def compare_series(self, photo_refs: Sequence[Any], now: Optional[datetime] = None) -> SeriesAnalysis:
        return compare_series(
            photo_refs,
            fetcher=self.fetcher,
            backend=self.initialize(),
            max_workers=self.settings.max_workers,
            interval=timedelta(days=self.settings.timeline_interval_days),
            now=now,
        )

    @staticmethod
    def generate_report(
        single: Optional[SingleImageAnalysis] = None,
        comparison: Optional[ComparisonAnalysis] = None,
    ) -> str:
        return generate_analysis_report(single, comparison)
