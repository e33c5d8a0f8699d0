"""Consolidation breakout signal engine.

A single forward pass over the candles tracks one consolidation run and one
implicit long position. Runs start on a high consolidation score, die when
their close-to-close range widens past ``invalid_range_pct``, and end on a
breakout beyond the range established before the breakout bar. Breakouts are
only traded when the RSI agrees with the direction; inside a mature run the
RSI extremes trade on their own. While long and outside a run, fixed stop-loss
and take-profit multipliers close the position, and an open position is
closed on the last candle.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from analyzer.consolidation import ConsolidationAnalyzer, ConsolidationResult
from analyzer.indicators import RSIIndicator
from config.settings import EngineConfig
from core.logger import get_logger
from core.utils import Candle, mean_volume, pct_of


signal_logger = get_logger("signals")


class SignalType(str, enum.Enum):
    """Direction of a trading signal."""

    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class TradingSignal:
    """Immutable signal emitted by the engine."""

    timestamp: int
    type: SignalType
    confidence: float
    reason: str
    price: float
    in_consolidation: bool

    def as_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "type": self.type.value,
            "confidence": self.confidence,
            "reason": self.reason,
            "price": self.price,
            "inConsolidation": self.in_consolidation,
        }


@dataclass(frozen=True)
class TraceEvent:
    """One state transition recorded when tracing is enabled."""

    index: int
    timestamp: int
    action: str
    price: float
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "action": self.action,
            "price": self.price,
            **self.details,
        }


@dataclass(frozen=True)
class SignalSummary:
    buy_count: int
    sell_count: int
    high_confidence_count: int
    consolidation_signal_count: int

    def as_dict(self) -> dict:
        return {
            "buySignals": self.buy_count,
            "sellSignals": self.sell_count,
            "highConfidenceSignals": self.high_confidence_count,
            "consolidationSignals": self.consolidation_signal_count,
        }


@dataclass(frozen=True)
class SignalResult:
    signals: Tuple[TradingSignal, ...]
    summary: SignalSummary
    trace: Tuple[TraceEvent, ...] = ()


@dataclass
class ScanState:
    """Run and position state carried through one forward pass."""

    in_consolidation: bool = False
    consolidation_start: int = 0
    consolidation_length: int = 0
    highest_price: float = 0.0
    lowest_price: float = math.inf
    avg_volume_at_start: float = 0.0
    in_position: bool = False
    entry_price: float = 0.0
    collect_trace: bool = False
    signals: List[TradingSignal] = field(default_factory=list)
    trace: List[TraceEvent] = field(default_factory=list)

    def start_run(self, index: int, price: float, avg_volume: float) -> None:
        self.in_consolidation = True
        self.consolidation_start = index
        self.consolidation_length = 1
        self.highest_price = price
        self.lowest_price = price
        self.avg_volume_at_start = avg_volume

    def extend_run(self, price: float) -> None:
        self.consolidation_length += 1
        self.highest_price = max(self.highest_price, price)
        self.lowest_price = min(self.lowest_price, price)

    def end_run(self) -> None:
        self.in_consolidation = False

    @property
    def midpoint(self) -> float:
        return (self.highest_price + self.lowest_price) / 2


def summarize(signals: Sequence[TradingSignal], high_confidence: float = 90.0) -> SignalSummary:
    """Count signals by type and confidence."""

    return SignalSummary(
        buy_count=sum(1 for s in signals if s.type is SignalType.BUY),
        sell_count=sum(1 for s in signals if s.type is SignalType.SELL),
        high_confidence_count=sum(1 for s in signals if s.confidence > high_confidence),
        consolidation_signal_count=sum(1 for s in signals if s.in_consolidation),
    )


class SignalEngine:
    """Turns candles and consolidation scores into BUY/SELL signals."""

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = config or EngineConfig()
        self._rsi = RSIIndicator(self.config.rsi_period, self.config.rsi_epsilon)

    def generate(
        self,
        candles: Sequence[Candle],
        consolidation: Optional[ConsolidationResult] = None,
    ) -> SignalResult:
        cfg = self.config
        state = ScanState(collect_trace=cfg.trace)

        if len(candles) > cfg.rsi_period:
            if consolidation is None:
                consolidation = ConsolidationAnalyzer().analyze(candles)
            scores = consolidation.scores_by_index(len(candles))
            rsi_values = self._rsi.calculate([c.close for c in candles])

            for i in range(cfg.rsi_period, len(candles)):
                self._step(state, candles, i, scores[i], rsi_values[i - cfg.rsi_period])

            if state.in_position:
                last = len(candles) - 1
                self._emit(
                    state,
                    last,
                    candles[last],
                    SignalType.SELL,
                    cfg.close_out_confidence,
                    "closed at end of analysis",
                    in_consolidation=False,
                    action="end_close",
                )
                state.in_position = False

        summary = summarize(state.signals, cfg.high_confidence)
        signal_logger.info(
            "Signal pass complete | candles=%d buys=%d sells=%d high_conf=%d",
            len(candles),
            summary.buy_count,
            summary.sell_count,
            summary.high_confidence_count,
        )
        return SignalResult(signals=tuple(state.signals), summary=summary, trace=tuple(state.trace))

    def _step(self, state: ScanState, candles: Sequence[Candle], i: int, score: float, rsi: float) -> None:
        cfg = self.config
        candle = candles[i]
        price = candle.close

        if not state.in_consolidation and score >= cfg.consolidation_threshold:
            state.start_run(i, price, mean_volume(candles, i, cfg.volume_lookback))
            self._trace(state, i, candle, "run_started", score=score, avg_volume=state.avg_volume_at_start)

        if state.in_consolidation:
            range_high, range_low, range_mid = state.highest_price, state.lowest_price, state.midpoint
            state.extend_run(price)
            range_pct = pct_of(state.highest_price - state.lowest_price, state.midpoint)

            if range_pct > cfg.invalid_range_pct and state.consolidation_length > cfg.invalid_min_length:
                state.end_run()
                self._trace(
                    state,
                    i,
                    candle,
                    "run_invalidated",
                    range_pct=range_pct,
                    length=state.consolidation_length,
                )
                return

            self._evaluate_run(state, i, candle, score, rsi, range_high, range_low, range_mid)

        if state.in_position and not state.in_consolidation:
            self._protect(state, i, candle)

    def _evaluate_run(
        self,
        state: ScanState,
        i: int,
        candle: Candle,
        score: float,
        rsi: float,
        range_high: float,
        range_low: float,
        range_mid: float,
    ) -> None:
        cfg = self.config
        price = candle.close
        breakout_threshold = range_mid * cfg.breakout_percentage / 100
        valid_run = state.consolidation_length >= cfg.min_consolidation_length
        volume_confirmed = candle.volume > state.avg_volume_at_start * cfg.volume_breakout_multiplier
        bonus = cfg.volume_bonus if volume_confirmed else 0.0
        volume_note = " + volume surge" if volume_confirmed else ""

        if price > range_high + breakout_threshold:
            if rsi > cfg.rsi_midline and not state.in_position and valid_run:
                self._emit(
                    state,
                    i,
                    candle,
                    SignalType.BUY,
                    min(cfg.max_confidence, score + (rsi - cfg.rsi_midline) + bonus),
                    f"breakout above consolidation range + RSI confirmation ({rsi:.2f}){volume_note}",
                    action="breakout_buy",
                    rsi=rsi,
                    volume_ratio=_ratio(candle.volume, state.avg_volume_at_start),
                )
            state.end_run()
            self._trace(state, i, candle, "run_ended_up", length=state.consolidation_length)
        elif price < range_low - breakout_threshold:
            if rsi < cfg.rsi_midline and state.in_position and valid_run:
                self._emit(
                    state,
                    i,
                    candle,
                    SignalType.SELL,
                    min(cfg.max_confidence, score + (cfg.rsi_midline - rsi) + bonus),
                    f"breakdown below consolidation range + RSI confirmation ({rsi:.2f}){volume_note}",
                    action="breakdown_sell",
                    rsi=rsi,
                    volume_ratio=_ratio(candle.volume, state.avg_volume_at_start),
                )
            state.end_run()
            self._trace(state, i, candle, "run_ended_down", length=state.consolidation_length)
        elif valid_run:
            if rsi <= cfg.rsi_oversold and not state.in_position:
                self._emit(
                    state,
                    i,
                    candle,
                    SignalType.BUY,
                    cfg.rsi_extreme_confidence + (cfg.rsi_oversold - rsi),
                    f"RSI oversold in consolidation ({rsi:.2f})",
                    action="oversold_buy",
                    rsi=rsi,
                    length=state.consolidation_length,
                )
            elif rsi >= cfg.rsi_overbought and state.in_position:
                self._emit(
                    state,
                    i,
                    candle,
                    SignalType.SELL,
                    cfg.rsi_extreme_confidence + (rsi - cfg.rsi_overbought),
                    f"RSI overbought in consolidation ({rsi:.2f})",
                    action="overbought_sell",
                    rsi=rsi,
                    length=state.consolidation_length,
                )

    def _protect(self, state: ScanState, i: int, candle: Candle) -> None:
        cfg = self.config
        price = candle.close
        change_pct = pct_of(price - state.entry_price, state.entry_price)
        if price < state.entry_price * cfg.stop_loss_multiplier:
            self._emit(
                state,
                i,
                candle,
                SignalType.SELL,
                cfg.stop_loss_confidence,
                f"stop loss (down more than {(1 - cfg.stop_loss_multiplier) * 100:g}%)",
                action="stop_loss",
                entry_price=state.entry_price,
                change_pct=change_pct,
            )
        elif price > state.entry_price * cfg.take_profit_multiplier:
            self._emit(
                state,
                i,
                candle,
                SignalType.SELL,
                cfg.take_profit_confidence,
                f"take profit (up more than {(cfg.take_profit_multiplier - 1) * 100:g}%)",
                action="take_profit",
                entry_price=state.entry_price,
                change_pct=change_pct,
            )

    def _emit(
        self,
        state: ScanState,
        i: int,
        candle: Candle,
        signal_type: SignalType,
        confidence: float,
        reason: str,
        *,
        action: str,
        in_consolidation: Optional[bool] = None,
        **details: Any,
    ) -> None:
        if in_consolidation is None:
            in_consolidation = state.in_consolidation
        signal = TradingSignal(
            timestamp=candle.open_time,
            type=signal_type,
            confidence=confidence,
            reason=reason,
            price=candle.close,
            in_consolidation=in_consolidation,
        )
        state.signals.append(signal)
        if signal_type is SignalType.BUY:
            state.in_position = True
            state.entry_price = candle.close
        else:
            state.in_position = False
        signal_logger.info(
            "%s | ts=%d price=%.5f confidence=%.2f | %s",
            signal_type.value,
            candle.open_time,
            candle.close,
            confidence,
            reason,
        )
        self._trace(state, i, candle, action, confidence=confidence, **details)

    @staticmethod
    def _trace(state: ScanState, i: int, candle: Candle, action: str, **details: Any) -> None:
        if not state.collect_trace:
            return
        state.trace.append(
            TraceEvent(index=i, timestamp=candle.open_time, action=action, price=candle.close, details=details)
        )


def _ratio(value: float, base: float) -> float:
    return value / base if base else 0.0


def generate_signals(
    candles: Sequence[Candle],
    consolidation: Optional[ConsolidationResult] = None,
    config: Optional[EngineConfig] = None,
) -> SignalResult:
    return SignalEngine(config).generate(candles, consolidation)


__all__ = [
    "ScanState",
    "SignalEngine",
    "SignalResult",
    "SignalSummary",
    "SignalType",
    "TraceEvent",
    "TradingSignal",
    "generate_signals",
    "summarize",
]
