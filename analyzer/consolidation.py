"""Per-candle flatness scoring and time-of-week heatmaps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from core.utils import Candle, pct_of, utc_slot

DAYS = 7
HOURS = 24


@dataclass(frozen=True)
class CandleMetrics:
    """Score breakdown for one candle (index >= 1)."""

    timestamp: int
    day_of_week: int
    hour_of_day: int
    consolidation_score: float
    volatility: float
    price_change: float

    def as_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "dayOfWeek": self.day_of_week,
            "hourOfDay": self.hour_of_day,
            "consolidationScore": self.consolidation_score,
            "volatility": self.volatility,
            "priceChange": self.price_change,
        }


def _grid(value=0) -> List[List]:
    return [[value] * HOURS for _ in range(DAYS)]


@dataclass
class ConsolidationResult:
    """Heatmap averages plus the per-candle records they were built from.

    Slots without observations hold 0 in the averages; ``*_counts`` tell
    those apart from a genuine mean score of 0.
    """

    hourly_heatmap: List[List[float]] = field(default_factory=lambda: _grid(0.0))
    hour_of_day: List[float] = field(default_factory=lambda: [0.0] * HOURS)
    day_of_week: List[float] = field(default_factory=lambda: [0.0] * DAYS)
    raw_data: List[CandleMetrics] = field(default_factory=list)
    heatmap_counts: List[List[int]] = field(default_factory=lambda: _grid(0))
    hour_counts: List[int] = field(default_factory=lambda: [0] * HOURS)
    day_counts: List[int] = field(default_factory=lambda: [0] * DAYS)

    def scores_by_index(self, length: int) -> List[float]:
        """Scores aligned to candle indices; index 0 has no score and maps to 0."""

        scores = [0.0] * length
        for idx, record in enumerate(self.raw_data[: max(0, length - 1)], start=1):
            scores[idx] = record.consolidation_score
        return scores

    def as_dict(self) -> dict:
        return {
            "hourlyHeatmap": [list(row) for row in self.hourly_heatmap],
            "hourOfDay": list(self.hour_of_day),
            "dayOfWeek": list(self.day_of_week),
            "rawData": [record.as_dict() for record in self.raw_data],
            "sampleCounts": {
                "hourlyHeatmap": [list(row) for row in self.heatmap_counts],
                "hourOfDay": list(self.hour_counts),
                "dayOfWeek": list(self.day_counts),
            },
        }


def score_candle(candle: Candle, prev_close: float) -> tuple[float, float, float]:
    """Return ``(score, volatility, price_change)`` for a candle."""

    volatility = pct_of(candle.high - candle.low, candle.low)
    price_change = pct_of(abs(candle.close - prev_close), prev_close)
    return 100 - (volatility + price_change * 2), volatility, price_change


class ConsolidationAnalyzer:
    """Scores how sideways each candle is relative to the previous close."""

    def analyze(self, candles: Sequence[Candle]) -> ConsolidationResult:
        result = ConsolidationResult()

        for i in range(1, len(candles)):
            candle = candles[i]
            score, volatility, price_change = score_candle(candle, candles[i - 1].close)
            day, hour = utc_slot(candle.open_time)

            result.hourly_heatmap[day][hour] += score
            result.heatmap_counts[day][hour] += 1
            result.hour_of_day[hour] += score
            result.hour_counts[hour] += 1
            result.day_of_week[day] += score
            result.day_counts[day] += 1

            result.raw_data.append(
                CandleMetrics(
                    timestamp=candle.open_time,
                    day_of_week=day,
                    hour_of_day=hour,
                    consolidation_score=score,
                    volatility=volatility,
                    price_change=price_change,
                )
            )

        for day in range(DAYS):
            for hour in range(HOURS):
                if result.heatmap_counts[day][hour]:
                    result.hourly_heatmap[day][hour] /= result.heatmap_counts[day][hour]
            if result.day_counts[day]:
                result.day_of_week[day] /= result.day_counts[day]
        for hour in range(HOURS):
            if result.hour_counts[hour]:
                result.hour_of_day[hour] /= result.hour_counts[hour]

        return result


def analyze_consolidation(candles: Sequence[Candle]) -> ConsolidationResult:
    return ConsolidationAnalyzer().analyze(candles)


__all__ = [
    "CandleMetrics",
    "ConsolidationAnalyzer",
    "ConsolidationResult",
    "analyze_consolidation",
    "score_candle",
]
