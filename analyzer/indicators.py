"""Momentum oscillator used to confirm consolidation breakouts."""

from __future__ import annotations

from typing import List, Sequence

DEFAULT_RSI_PERIOD = 14
DEFAULT_RSI_EPSILON = 0.001


class RSIIndicator:
    """Wilder-smoothed relative strength index.

    ``calculate`` returns ``len(prices) - period`` values; value ``k`` belongs
    to price index ``period + k``. A zero average loss is replaced by
    ``epsilon`` before dividing, so a one-way rally approaches 100 without
    reaching it.
    """

    def __init__(self, period: int = DEFAULT_RSI_PERIOD, epsilon: float = DEFAULT_RSI_EPSILON) -> None:
        if period < 1:
            raise ValueError(f"RSI period must be positive, got {period}")
        self.period = period
        self.epsilon = epsilon

    def _value(self, avg_gain: float, avg_loss: float) -> float:
        rs = avg_gain / (self.epsilon if avg_loss == 0 else avg_loss)
        return 100.0 - 100.0 / (1.0 + rs)

    def calculate(self, prices: Sequence[float]) -> List[float]:
        n = self.period
        if len(prices) < n + 1:
            return []

        deltas = [prices[i] - prices[i - 1] for i in range(1, len(prices))]
        avg_gain = sum(d for d in deltas[:n] if d > 0) / n
        avg_loss = sum(-d for d in deltas[:n] if d < 0) / n
        values = [self._value(avg_gain, avg_loss)]

        for delta in deltas[n:]:
            avg_gain = (avg_gain * (n - 1) + max(delta, 0.0)) / n
            avg_loss = (avg_loss * (n - 1) + max(-delta, 0.0)) / n
            values.append(self._value(avg_gain, avg_loss))
        return values


def calculate_rsi(
    prices: Sequence[float],
    period: int = DEFAULT_RSI_PERIOD,
    epsilon: float = DEFAULT_RSI_EPSILON,
) -> List[float]:
    """Functional shortcut for :meth:`RSIIndicator.calculate`."""

    return RSIIndicator(period, epsilon).calculate(prices)


__all__ = ["RSIIndicator", "calculate_rsi", "DEFAULT_RSI_PERIOD", "DEFAULT_RSI_EPSILON"]
