"""Shared fixtures for the analysis tests."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ.setdefault("LOGS_DIR", str(Path(tempfile.gettempdir()) / "consolidation-signals-test-logs"))

import pytest  # noqa: E402

from core.utils import Candle  # noqa: E402

HOUR_MS = 3_600_000
# Sunday 2024-01-07 00:00:00 UTC
BASE_TIME_MS = 1_704_585_600_000


def build_candles(closes, volumes=None, start_ms=BASE_TIME_MS, step_ms=HOUR_MS, wick=0.0):
    """Candles whose open is the previous close; ``wick`` widens high/low by a fraction."""

    candles = []
    prev = closes[0]
    for idx, close in enumerate(closes):
        open_ = prev
        high = max(open_, close) * (1 + wick)
        low = min(open_, close) * (1 - wick)
        volume = volumes[idx] if volumes is not None else 10.0
        open_time = start_ms + idx * step_ms
        candles.append(
            Candle(
                open_time=open_time,
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=volume,
                close_time=open_time + step_ms - 1,
            )
        )
        prev = close
    return candles


@pytest.fixture
def make_candles():
    return build_candles


@pytest.fixture
def breakout_closes():
    """Twenty 2% up-steps, a ten-bar flat shelf, then a 1% breakout bar (index 30)."""

    rising = [100 * 1.02 ** k for k in range(20)]
    shelf = [rising[-1]] * 10
    return rising + shelf + [rising[-1] * 1.01]
