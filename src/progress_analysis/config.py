"""
Configuration constants for the progress-photo analysis engine.

Centralizes the canonical tensor size, edge kernels, scoring thresholds,
guidance texts and environment/YAML driven runtime settings.
"""

import os
from pathlib import Path
from typing import Optional

import numpy as np
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Project paths
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_PATH = PROJECT_ROOT / ".env"
load_dotenv(_ENV_PATH)

# ---------------------------------------------------------------------------
# Canonical tensor
# ---------------------------------------------------------------------------
CANONICAL_SIZE: int = 224
CANONICAL_CHANNELS: int = 3
PIXEL_SCALE: float = 255.0

# ---------------------------------------------------------------------------
# Edge detection (Sobel)
# ---------------------------------------------------------------------------
SOBEL_X: np.ndarray = np.array(
    [
        [-1.0, 0.0, 1.0],
        [-2.0, 0.0, 2.0],
        [-1.0, 0.0, 1.0],
    ],
    dtype=np.float32,
)
SOBEL_Y: np.ndarray = SOBEL_X.T.copy()

# ---------------------------------------------------------------------------
# Single-image scoring
# ---------------------------------------------------------------------------
EDGE_SCORE_SCALE: float = 1000.0
CONTRAST_SCORE_SCALE: float = 400.0
VARIANCE_SCORE_SCALE: float = 400.0

# (brightness_low, brightness_high, min_evenness) checked in order.
LIGHTING_TIERS: list[tuple[str, float, float, Optional[float]]] = [
    ("Excellent", 0.3, 0.7, 0.3),
    ("Good", 0.2, 0.8, 0.2),
    ("Fair", 0.1, 0.9, None),
]

IMAGE_QUALITY_BASE: int = 30
# (threshold, points) checked in order; the trailing entry is the floor.
VARIANCE_POINTS: list[tuple[float, int]] = [(0.05, 30), (0.02, 20), (float("-inf"), 10)]
EDGE_POINTS: list[tuple[float, int]] = [(0.1, 40), (0.05, 25), (float("-inf"), 10)]
IMAGE_QUALITY_TIERS: list[tuple[int, str]] = [(80, "Excellent"), (60, "Good"), (40, "Fair")]

# ---------------------------------------------------------------------------
# Pairwise comparison
# ---------------------------------------------------------------------------
SIMILARITY_DECAY: float = 10.0

# Unscaled mean-absolute-difference -> region score.
REGION_SCORE_STEPS: list[tuple[float, int]] = [
    (0.15, 85),
    (0.10, 70),
    (0.05, 55),
    (0.02, 40),
]
REGION_SCORE_FLOOR: int = 25

CHANGE_SCORE_SCALE: float = 500.0
CHANGE_SCORE_CAP: float = 40.0
CONSISTENCY_WEIGHT: float = 20.0
REGION_WEIGHT: float = 0.4

# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------
SLOW_PROGRESS_THRESHOLD: float = 30.0
STEADY_PROGRESS_THRESHOLD: float = 60.0
WEAK_REGION_THRESHOLD: float = 50.0

GENERAL_GUIDANCE: dict[str, list[str]] = {
    "slow": [
        "Progress is slow. Consider adjusting your workout routine and nutrition plan.",
        "Ensure consistent lighting and pose in your photos for better analysis.",
    ],
    "steady": [
        "Good progress! Keep up the consistency in your training.",
        "Consider tracking measurements alongside photos for comprehensive progress monitoring.",
    ],
    "strong": [
        "Excellent progress! Your hard work is paying off.",
        "Maintain your current routine and consider progressive overload in your workouts.",
    ],
}

REGION_GUIDANCE: dict[str, str] = {
    "upper": "Focus more on upper body exercises: push-ups, pull-ups, and shoulder workouts.",
    "middle": "Strengthen your core with planks, crunches, and rotational exercises.",
    "lower": "Add more lower body exercises: squats, lunges, and deadlifts.",
}

# ---------------------------------------------------------------------------
# Timeline trends
# ---------------------------------------------------------------------------
MIN_SERIES_PHOTOS: int = 2
TREND_MIN_ENTRIES: int = 3
TREND_WINDOW: int = 3
TREND_STRONG_THRESHOLD: float = 70.0
TREND_STEADY_THRESHOLD: float = 50.0
ACCELERATION_DELTA: float = 20.0
REGRESSION_DELTA: float = 10.0

TREND_MESSAGES: dict[str, str] = {
    "strong": "🚀 Excellent consistent progress - keep up the amazing work!",
    "steady": "📈 Steady progress - you're on the right track!",
    "gradual": "💪 Progress is gradual - consider adjusting your routine for better results",
    "accelerating": "⚡ Your progress is accelerating - excellent momentum!",
    "plateau": "🔄 Consider refreshing your routine to reignite progress",
}

# ---------------------------------------------------------------------------
# Runtime settings
# ---------------------------------------------------------------------------
BACKEND_CHOICES = ("auto", "tensorflow", "tensorflow-gpu", "tensorflow-cpu", "numpy")


class AnalysisSettings(BaseModel):
    """Runtime knobs that may differ between deployments."""
    backend: str = Field(
        default="auto",
        pattern="^(auto|tensorflow|tensorflow-gpu|tensorflow-cpu|numpy)$",
        description="Array backend preference",
    )
    max_workers: int = Field(
        default=4, ge=1,
        description="Thread pool size for timeline comparisons",
    )
    timeline_interval_days: int = Field(
        default=7, ge=1,
        description="Synthetic spacing between timeline photos",
    )


def load_settings(config_path: Optional[str] = None) -> AnalysisSettings:
    """Build settings from an optional YAML file plus environment overrides.

    Args:
        config_path: YAML file with any of the ``AnalysisSettings`` keys.
            Defaults to ``$PROGRESS_ANALYSIS_CONFIG`` when unset.

    Returns:
        Validated ``AnalysisSettings``.

    Raises:
        FileNotFoundError: If an explicit config file does not exist.
        pydantic.ValidationError: On invalid values.
    """
    config_path = config_path or os.environ.get("PROGRESS_ANALYSIS_CONFIG")

    values: dict = {}
    if config_path:
        with open(config_path, "r") as f:
            values.update(yaml.safe_load(f) or {})

    backend = os.environ.get("PROGRESS_ANALYSIS_BACKEND")
    if backend:
        values["backend"] = backend.strip().lower()
    max_workers = os.environ.get("PROGRESS_ANALYSIS_MAX_WORKERS")
    if max_workers:
        values["max_workers"] = max_workers

    return AnalysisSettings(**values)
