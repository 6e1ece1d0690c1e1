"""Summary statistics for dashboard readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Tuple


@dataclass
class LevelSummary:
    """Computed statistics for a window of water level readings."""

    row_count: int = 0
    min_level: float | None = None
    max_level: float | None = None
    mean_level: float | None = None
    latest_level: float | None = None
    latest_timestamp: str | None = None


@dataclass
class TrendSummary:
    """Linear sea level trend fitted to monthly means."""

    month_count: int = 0
    first_month: date | None = None
    last_month: date | None = None
    mm_per_year: float | None = None


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def summarize_levels(self, points: Iterable[Tuple[str, float]]) -> LevelSummary:
        """Summarize ``(timestamp, level)`` pairs; timestamps compare as ISO strings."""
        summary = LevelSummary()
        total = 0.0

        for timestamp, level in points:
            summary.row_count += 1
            total += level

            if summary.min_level is None or level < summary.min_level:
                summary.min_level = level
            if summary.max_level is None or level > summary.max_level:
                summary.max_level = level
            if summary.latest_timestamp is None or timestamp >= summary.latest_timestamp:
                summary.latest_timestamp = timestamp
                summary.latest_level = level

        if summary.row_count:
            summary.mean_level = total / summary.row_count

        return summary

    def sea_level_trend(self, points: Iterable[Tuple[date, float]]) -> TrendSummary:
        """Least-squares slope of monthly mean sea level, in millimeters per year."""
        pairs = sorted(points, key=lambda point: point[0])
        summary = TrendSummary(month_count=len(pairs))
        if not pairs:
            return summary

        summary.first_month = pairs[0][0]
        summary.last_month = pairs[-1][0]
        summary.mm_per_year = _slope_mm_per_year(pairs)
        return summary


def _slope_mm_per_year(pairs: list[Tuple[date, float]]) -> Optional[float]:
    if len(pairs) < 2:
        return None

    xs = [month.year + (month.month - 1) / 12.0 for month, _ in pairs]
    ys = [level for _, level in pairs]
    mean_x = sum(xs) / len(xs)
    mean_y = sum(ys) / len(ys)
    denominator = sum((x - mean_x) ** 2 for x in xs)
    if denominator == 0:
        return None
    numerator = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    return numerator / denominator * 1000.0
