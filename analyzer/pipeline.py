"""End-to-end analysis of a candle history."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from analyzer.consolidation import ConsolidationAnalyzer, ConsolidationResult
from analyzer.signals import SignalEngine, SignalResult
from config.settings import EngineConfig
from core.logger import get_logger
from core.utils import Candle


system_logger = get_logger("system")


@dataclass(frozen=True)
class AnalysisReport:
    """Container for pipeline outputs."""

    candles: Sequence[Candle]
    consolidation: ConsolidationResult
    signals: SignalResult

    def price_data(self) -> List[dict]:
        return [
            {
                "timestamp": c.open_time,
                "open": c.open,
                "high": c.high,
                "low": c.low,
                "close": c.close,
            }
            for c in self.candles
        ]

    def signals_payload(self, include_trace: bool = False) -> dict:
        payload = {
            "signals": [s.as_dict() for s in self.signals.signals],
            "priceData": self.price_data(),
            "summary": self.signals.summary.as_dict(),
        }
        if include_trace:
            payload["trace"] = [event.as_dict() for event in self.signals.trace]
        return payload


def run_analysis(candles: Sequence[Candle], config: Optional[EngineConfig] = None) -> AnalysisReport:
    """Score consolidation then run the signal engine over the same candles."""

    candles = tuple(candles)
    consolidation = ConsolidationAnalyzer().analyze(candles)
    signals = SignalEngine(config).generate(candles, consolidation)
    system_logger.info(
        "Analysis complete | candles=%d scored=%d signals=%d",
        len(candles),
        len(consolidation.raw_data),
        len(signals.signals),
    )
    return AnalysisReport(candles=candles, consolidation=consolidation, signals=signals)


__all__ = ["AnalysisReport", "run_analysis"]
