from __future__ import annotations

import pytest

from analyzer.indicators import RSIIndicator, calculate_rsi


def test_short_series_returns_empty():
    assert calculate_rsi([1.0] * 14, period=14) == []
    assert calculate_rsi([], period=14) == []


def test_exactly_period_plus_one_prices_gives_one_value():
    values = calculate_rsi([float(p) for p in range(15)], period=14)
    assert len(values) == 1


def test_output_length_is_prices_minus_period():
    assert len(calculate_rsi([float(p % 7) for p in range(40)], period=14)) == 26


def test_wilder_smoothing_small_example():
    # deltas +1, -1 seed 50; next +1 moves averages to 0.75 / 0.25
    assert calculate_rsi([1.0, 2.0, 1.0, 2.0], period=2) == pytest.approx([50.0, 75.0])


def test_zero_loss_uses_epsilon_floor():
    values = calculate_rsi([1.0, 2.0, 3.0], period=2)
    assert values == pytest.approx([100 - 100 / 1001])
    assert values[0] < 100


def test_rising_prices_approach_but_never_hit_100():
    values = calculate_rsi([100.0 + i for i in range(60)], period=14)
    assert all(v < 100 for v in values)
    assert values[-1] > 99


def test_falling_prices_trend_to_zero():
    values = calculate_rsi([200.0 - i for i in range(60)], period=14)
    assert values[-1] == pytest.approx(0.0)
    assert all(v <= 1 for v in values)


def test_custom_epsilon_changes_ceiling():
    coarse = RSIIndicator(period=2, epsilon=1.0).calculate([1.0, 2.0, 3.0])
    assert coarse == pytest.approx([50.0])


def test_invalid_period_rejected():
    with pytest.raises(ValueError):
        RSIIndicator(period=0)
