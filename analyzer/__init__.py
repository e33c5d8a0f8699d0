"""Consolidation scoring, momentum oscillator and signal generation."""

from __future__ import annotations

from analyzer.consolidation import (
    CandleMetrics,
    ConsolidationAnalyzer,
    ConsolidationResult,
    analyze_consolidation,
)
from analyzer.indicators import RSIIndicator, calculate_rsi
from analyzer.pipeline import AnalysisReport, run_analysis
from analyzer.signals import (
    SignalEngine,
    SignalResult,
    SignalSummary,
    SignalType,
    TraceEvent,
    TradingSignal,
    generate_signals,
)

__all__ = [
    "AnalysisReport",
    "CandleMetrics",
    "ConsolidationAnalyzer",
    "ConsolidationResult",
    "RSIIndicator",
    "SignalEngine",
    "SignalResult",
    "SignalSummary",
    "SignalType",
    "TraceEvent",
    "TradingSignal",
    "analyze_consolidation",
    "calculate_rsi",
    "generate_signals",
    "run_analysis",
]
