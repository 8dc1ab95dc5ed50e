"""Tests for pairwise comparison, region partitioning and progress scoring."""

import math

import numpy as np
import pytest

from src.progress_analysis.comparison import (
    calculate_progress_score,
    compare_tensors,
    interpret_region_change,
    region_bounds,
)
from src.progress_analysis.config import GENERAL_GUIDANCE, REGION_GUIDANCE
from src.progress_analysis.errors import ComputationError
from src.progress_analysis.models import Region, RegionAnalysis, RegionChange


def _gray(value: float, height: int = 224, width: int = 224) -> np.ndarray:
    return np.full((1, height, width, 3), value, dtype=np.float32)


# ============================================================================
# Test: region partitioning
# ============================================================================

class TestRegionBounds:

    @pytest.mark.parametrize("height", [0, 1, 2, 3, 9, 10, 11, 224, 225, 226])
    def test_bands_tile_full_height(self, height):
        bounds = region_bounds(height)

        assert [region for region, _, _ in bounds] == [Region.UPPER, Region.MIDDLE, Region.LOWER]
        assert bounds[0][1] == 0
        assert bounds[-1][2] == height
        for (_, _, prev_stop), (_, next_start, _) in zip(bounds, bounds[1:]):
            assert prev_stop == next_start
        assert sum(stop - start for _, start, stop in bounds) == height

    def test_remainder_goes_to_lower_band(self):
        assert region_bounds(224) == [
            (Region.UPPER, 0, 74),
            (Region.MIDDLE, 74, 148),
            (Region.LOWER, 148, 224),
        ]

    def test_negative_height_rejected(self):
        with pytest.raises(ComputationError):
            region_bounds(-1)


class TestRegionScore:

    @pytest.mark.parametrize(
        "change, expected",
        [
            (0.2, 85),
            (0.15, 70),
            (0.11, 70),
            (0.10, 55),
            (0.06, 55),
            (0.05, 40),
            (0.03, 40),
            (0.02, 25),
            (0.0, 25),
        ],
    )
    def test_step_thresholds(self, change, expected):
        assert interpret_region_change(change) == expected


# ============================================================================
# Test: identical images
# ============================================================================

class TestIdenticalImages:

    @pytest.fixture
    def comparison(self):
        return compare_tensors(_gray(0.5), _gray(0.5))

    def test_no_change(self, comparison):
        assert comparison.total_change == 0.0
        assert comparison.max_change == 0.0
        assert comparison.change_percentage == 0.0
        assert comparison.similarity == 1.0

    def test_regions_have_zero_change(self, comparison):
        for _, change in comparison.region_analysis.items():
            assert change.change == 0.0
            assert change.score == 25

    def test_progress_score_is_thirty(self, comparison):
        # 0 (change) + 20 (similarity) + 25 * 0.4 (regions)
        assert comparison.progress_score == 30.0

    def test_recommendations(self, comparison):
        assert list(comparison.recommendations) == GENERAL_GUIDANCE["steady"] + [REGION_GUIDANCE["upper"]]

    def test_self_comparison_of_random_image(self):
        image = np.random.RandomState(11).rand(1, 40, 40, 3).astype(np.float32)
        comparison = compare_tensors(image, image.copy())

        assert comparison.total_change == 0.0
        assert comparison.max_change == 0.0
        assert comparison.similarity == 1.0


# ============================================================================
# Test: known differences
# ============================================================================

class TestKnownDifferences:

    def test_uniform_shift(self):
        comparison = compare_tensors(_gray(0.0, 30, 30), _gray(0.2, 30, 30))

        assert comparison.total_change == pytest.approx(0.2, abs=1e-3)
        assert comparison.max_change == pytest.approx(0.2, abs=1e-3)
        assert comparison.similarity == round(math.exp(-0.4), 3)
        for _, change in comparison.region_analysis.items():
            assert change.score == 85
            assert change.change == pytest.approx(20.0, abs=1e-2)

        expected = 40 + math.exp(-0.4) * 20 + 85 * 0.4
        assert comparison.progress_score == round(expected, 1)
        assert list(comparison.recommendations) == GENERAL_GUIDANCE["strong"]

    def test_change_in_lower_band_only(self):
        before = _gray(0.5, 30, 30)
        after = before.copy()
        after[:, 20:] = 0.9

        regions = compare_tensors(before, after).region_analysis
        assert regions.upper.score == 25
        assert regions.middle.score == 25
        assert regions.lower.score == 85
        assert regions.lower.change == pytest.approx(40.0, abs=1e-2)

    def test_weakest_region_middle_gets_core_advice(self):
        before = _gray(0.5, 30, 30)
        after = before.copy()
        after[:, :10] = 0.9
        after[:, 20:] = 0.9

        comparison = compare_tensors(before, after)
        assert comparison.region_analysis.middle.score == 25
        assert comparison.recommendations[-1] == REGION_GUIDANCE["middle"]

    def test_progress_score_bounded_for_random_pairs(self):
        rng = np.random.RandomState(5)
        for _ in range(5):
            a = rng.rand(1, 24, 24, 3).astype(np.float32)
            b = rng.rand(1, 24, 24, 3).astype(np.float32)
            comparison = compare_tensors(a, b)
            assert 0.0 <= comparison.progress_score <= 100.0
            assert 0.0 <= comparison.similarity <= 1.0

    def test_progress_score_clamped_to_hundred(self):
        regions = RegionAnalysis(
            upper=RegionChange(score=85, change=50.0),
            middle=RegionChange(score=85, change=50.0),
            lower=RegionChange(score=85, change=50.0),
        )
        assert calculate_progress_score(1.0, 1.0, regions) == 94.0
        assert calculate_progress_score(10.0, 5.0, regions) == 100.0


class TestShapes:

    def test_mismatched_shapes_raise(self):
        with pytest.raises(ComputationError) as exc_info:
            compare_tensors(_gray(0.5, 10, 10), _gray(0.5, 12, 10))
        assert exc_info.value.error_code == "ANALYSIS_UNAVAILABLE"

    def test_unbatched_tensors_are_accepted(self):
        comparison = compare_tensors(_gray(0.5)[0], _gray(0.5)[0])
        assert comparison.progress_score == 30.0

    def test_odd_height_regions(self):
        before = _gray(0.0, 11, 4)
        after = _gray(0.3, 11, 4)
        regions = compare_tensors(before, after).region_analysis
        for _, change in regions.items():
            assert change.change == pytest.approx(30.0, abs=1e-2)

    def test_nan_cell_raises(self):
        after = _gray(0.5)
        after[0, 3, 3, 1] = np.nan
        with pytest.raises(ComputationError) as exc_info:
            compare_tensors(_gray(0.5), after)
        assert exc_info.value.error_code == "ANALYSIS_UNAVAILABLE"

    def test_out_of_range_values_raise(self):
        with pytest.raises(ComputationError):
            compare_tensors(_gray(1.5), _gray(0.5))
