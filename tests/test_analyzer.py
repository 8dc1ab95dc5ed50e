"""End-to-end tests through the ProgressPhotoAnalyzer facade."""

from datetime import datetime, timezone

import numpy as np
import pytest
from pydantic import ValidationError

from src.progress_analysis import (
    AnalysisSettings,
    BackendStrategy,
    DecodeError,
    InsufficientDataError,
    ProgressPhotoAnalyzer,
    active_strategy,
    reset_backend,
)


@pytest.fixture
def photo_store(png_bytes):
    """Encoded progress photos keyed by a storage path, as the client would hold them."""
    rng = np.random.RandomState(21)
    store = {}
    for week in range(4):
        frame = rng.randint(60, 190, size=(120, 90, 3)).astype(np.uint8)
        frame[: 40 + 10 * week] //= 2
        store[f"user-1/week-{week}.png"] = png_bytes(frame)
    return store


@pytest.fixture
def analyzer(photo_store):
    return ProgressPhotoAnalyzer(
        settings=AnalysisSettings(backend="numpy", max_workers=2),
        fetcher=photo_store.__getitem__,
    )


class TestProgressPhotoAnalyzer:

    def test_initialize_uses_configured_backend(self, photo_store):
        reset_backend()
        analyzer = ProgressPhotoAnalyzer(settings=AnalysisSettings(backend="numpy"))
        analyzer.initialize()
        assert active_strategy() == BackendStrategy.NUMPY

    def test_analyze_single_image(self, analyzer):
        analysis = analyzer.analyze_single_image("user-1/week-0.png")
        assert 0.0 <= analysis.mean_pixel_intensity <= 1.0
        assert 0.0 <= analysis.muscle_definition_score <= 100.0

    def test_compare_images(self, analyzer):
        comparison = analyzer.compare_images("user-1/week-0.png", "user-1/week-3.png")
        assert 0.0 <= comparison.progress_score <= 100.0
        assert comparison.total_change > 0.0
        assert len(comparison.recommendations) >= 2

    def test_compare_same_photo(self, analyzer):
        comparison = analyzer.compare_images("user-1/week-1.png", "user-1/week-1.png")
        assert comparison.similarity == 1.0
        assert comparison.total_change == 0.0

    def test_compare_series(self, analyzer, photo_store):
        now = datetime(2026, 10, 18, tzinfo=timezone.utc)
        result = analyzer.compare_series(sorted(photo_store), now=now)
        assert [e.photo_index for e in result.timeline_analysis] == [1, 2, 3]
        assert len(result.trends) in (1, 2)

    def test_compare_series_needs_two_photos(self, analyzer):
        with pytest.raises(InsufficientDataError):
            analyzer.compare_series(["user-1/week-0.png"])

    def test_unreadable_bytes(self, analyzer):
        with pytest.raises(DecodeError):
            analyzer.analyze_single_image(b"\x89PNG broken")

    def test_generate_report(self, analyzer):
        single = analyzer.analyze_single_image("user-1/week-0.png")
        comparison = analyzer.compare_images("user-1/week-0.png", "user-1/week-1.png")
        report = analyzer.generate_report(single, comparison)
        assert "### Single Photo Analysis" in report
        assert "### Regional Analysis" in report


class TestRecordSerialization:

    def test_camel_case_dump(self, analyzer):
        comparison = analyzer.compare_images("user-1/week-0.png", "user-1/week-2.png")
        payload = comparison.model_dump(by_alias=True, mode="json")

        assert set(payload) == {
            "totalChange", "maxChange", "similarity", "progressScore",
            "changePercentage", "regionAnalysis", "recommendations",
        }
        assert set(payload["regionAnalysis"]) == {"upper", "middle", "lower"}
        assert isinstance(payload["recommendations"], list)

    def test_single_analysis_dump(self, analyzer):
        payload = analyzer.analyze_single_image("user-1/week-0.png").model_dump(by_alias=True, mode="json")
        assert payload["lightingQuality"]["quality"] in {"Poor", "Fair", "Good", "Excellent"}
        assert "muscleDefinitionScore" in payload

    def test_records_are_immutable(self, analyzer):
        analysis = analyzer.analyze_single_image("user-1/week-0.png")
        with pytest.raises(ValidationError):
            analysis.variance = 1.0
