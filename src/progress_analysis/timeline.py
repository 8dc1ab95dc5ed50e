"""
Timeline analysis across an ordered photo series.

Each photo is decoded once, consecutive pairs are compared (in a thread pool
when the backend allows it) and the per-pair progress scores are folded into
an overall estimate and a short trend narrative.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence

from .backend import ArrayBackend, ensure_initialized
from .comparison import compare_tensors
from .config import (
    ACCELERATION_DELTA,
    MIN_SERIES_PHOTOS,
    REGRESSION_DELTA,
    TREND_MESSAGES,
    TREND_MIN_ENTRIES,
    TREND_STEADY_THRESHOLD,
    TREND_STRONG_THRESHOLD,
    TREND_WINDOW,
)
from .errors import ImageError, InsufficientDataError
from .models import SeriesAnalysis, TimelineEntry
from .preprocessing import ImageFetcher, to_canonical_tensor

logger = logging.getLogger(__name__)


def analyze_trends(timeline: Sequence[TimelineEntry]) -> list[str]:
    """Trend narrative for three or more timeline entries; empty otherwise."""
    trends: list[str] = []
    if len(timeline) < TREND_MIN_ENTRIES:
        return trends

    recent_scores = [entry.comparison.progress_score for entry in timeline[-TREND_WINDOW:]]
    avg_recent = sum(recent_scores) / len(recent_scores)

    if avg_recent > TREND_STRONG_THRESHOLD:
        trends.append(TREND_MESSAGES["strong"])
    elif avg_recent > TREND_STEADY_THRESHOLD:
        trends.append(TREND_MESSAGES["steady"])
    else:
        trends.append(TREND_MESSAGES["gradual"])

    early_score = timeline[0].comparison.progress_score
    latest_score = timeline[-1].comparison.progress_score
    if latest_score > early_score + ACCELERATION_DELTA:
        trends.append(TREND_MESSAGES["accelerating"])
    elif latest_score < early_score - REGRESSION_DELTA:
        trends.append(TREND_MESSAGES["plateau"])

    return trends


def estimate_timestamps(n_photos: int, now: datetime, interval: timedelta) -> list[datetime]:
    """Synthetic timestamps for entries 1..n-1: ``now - (n - i) * interval``."""
    return [now - (n_photos - i) * interval for i in range(1, n_photos)]


def compare_series(
    photo_refs: Sequence[Any],
    fetcher: Optional[ImageFetcher] = None,
    backend: Optional[ArrayBackend] = None,
    max_workers: int = 1,
    interval: timedelta = timedelta(weeks=1),
    now: Optional[datetime] = None,
) -> SeriesAnalysis:
    """Compare each photo with its predecessor and summarise the series.

    Args:
        photo_refs: Image references, oldest first.
        fetcher: Resolver for opaque references.
        backend: Array backend; defaults to the process-wide one.
        max_workers: Thread pool size for the pairwise comparisons.
        interval: Synthetic spacing between consecutive photos.
        now: Reference time for the synthetic timestamps (default: UTC now).

    Returns:
        ``SeriesAnalysis`` with one ``TimelineEntry`` per consecutive pair,
        in ascending ``photo_index`` order.

    Raises:
        InsufficientDataError: If fewer than two photos are given.
        FetchError, DecodeError: If any photo cannot be read; the whole
            call is aborted and the error carries ``image_index``.
    """
    n_photos = len(photo_refs)
    if n_photos < MIN_SERIES_PHOTOS:
        raise InsufficientDataError(
            f"At least {MIN_SERIES_PHOTOS} photos required for comparison, got {n_photos}."
        )

    backend = backend or ensure_initialized()
    now = now or datetime.now(timezone.utc)

    tensors: list[Any] = []
    try:
        for index, ref in enumerate(photo_refs):
            try:
                tensors.append(to_canonical_tensor(ref, fetcher=fetcher, backend=backend))
            except ImageError as exc:
                logger.warning("Series aborted: photo %d unreadable (%s)", index, exc)
                raise exc.with_index(index) from exc

        pairs = [(tensors[i - 1], tensors[i]) for i in range(1, n_photos)]
        workers = max_workers if backend.supports_concurrency else 1
        if workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=min(workers, len(pairs))) as pool:
                comparisons = list(pool.map(lambda pair: compare_tensors(*pair, backend=backend), pairs))
        else:
            comparisons = [compare_tensors(before, after, backend=backend) for before, after in pairs]
        del pairs
    finally:
        tensors.clear()

    timestamps = estimate_timestamps(n_photos, now, interval)
    timeline = [
        TimelineEntry(photo_index=i, comparison=comparison, estimated_timestamp=timestamps[i - 1])
        for i, comparison in enumerate(comparisons, start=1)
    ]

    overall_progress = sum(entry.comparison.progress_score for entry in timeline) / len(timeline)
    trends = analyze_trends(timeline)

    logger.info(
        "Series analysis complete: %d photos, overall progress %.1f",
        n_photos, overall_progress,
    )
    return SeriesAnalysis(
        overall_progress=overall_progress,
        timeline_analysis=timeline,
        trends=trends,
    )
