"""Tests for tiered guidance and weakest-region selection."""

import pytest

from src.progress_analysis.config import GENERAL_GUIDANCE, REGION_GUIDANCE
from src.progress_analysis.models import Region, RegionAnalysis, RegionChange
from src.progress_analysis.recommendations import generate_recommendations, weakest_region


def _regions(upper: int, middle: int, lower: int) -> RegionAnalysis:
    return RegionAnalysis(
        upper=RegionChange(score=upper, change=0.0),
        middle=RegionChange(score=middle, change=0.0),
        lower=RegionChange(score=lower, change=0.0),
    )


class TestGeneralGuidance:

    @pytest.mark.parametrize(
        "score, tier",
        [
            (0.0, "slow"),
            (29.99, "slow"),
            (30.0, "steady"),
            (59.99, "steady"),
            (60.0, "strong"),
            (100.0, "strong"),
        ],
    )
    def test_tiers(self, score, tier):
        recommendations = generate_recommendations(score, _regions(70, 70, 70))
        assert recommendations == GENERAL_GUIDANCE[tier]


class TestWeakestRegion:

    def test_tie_keeps_first_in_fixed_order(self):
        region, change = weakest_region(_regions(40, 40, 40))
        assert region == Region.UPPER
        assert change.score == 40

    def test_tie_between_middle_and_lower(self):
        region, _ = weakest_region(_regions(70, 25, 25))
        assert region == Region.MIDDLE

    @pytest.mark.parametrize(
        "scores, region",
        [
            ((25, 70, 85), "upper"),
            ((70, 40, 85), "middle"),
            ((85, 70, 25), "lower"),
        ],
    )
    def test_targeted_advice_for_weak_region(self, scores, region):
        recommendations = generate_recommendations(45.0, _regions(*scores))
        assert len(recommendations) == 3
        assert recommendations[-1] == REGION_GUIDANCE[region]

    def test_no_targeted_advice_when_all_regions_strong(self):
        recommendations = generate_recommendations(75.0, _regions(55, 50, 70))
        assert len(recommendations) == 2
