"""Candle providers: Binance REST history, CSV files and in-memory lists."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import requests

from config.settings import SETTINGS, DataSettings
from core.logger import get_logger
from core.utils import Candle, CandleValidationError, load_candles, parse_candles


system_logger = get_logger("system")


class DataFeedError(Exception):
    """Raised when the data feed encounters an unrecoverable issue."""


INTERVAL_MS: Dict[str, int] = {
    "1m": 60_000,
    "3m": 3 * 60_000,
    "5m": 5 * 60_000,
    "15m": 15 * 60_000,
    "30m": 30 * 60_000,
    "1h": 3_600_000,
    "2h": 2 * 3_600_000,
    "4h": 4 * 3_600_000,
    "6h": 6 * 3_600_000,
    "8h": 8 * 3_600_000,
    "12h": 12 * 3_600_000,
    "1d": 86_400_000,
    "3d": 3 * 86_400_000,
    "1w": 7 * 86_400_000,
    "1M": 30 * 86_400_000,  # approximation
}

DAY_MS = 86_400_000


def interval_ms(interval: str) -> int:
    """Milliseconds spanned by one kline of ``interval``."""

    if interval not in INTERVAL_MS:
        raise DataFeedError(f"Unsupported interval: {interval}")
    return INTERVAL_MS[interval]


class BaseCandleProvider(ABC):
    """Common contract for all candle providers."""

    @abstractmethod
    def fetch(self, symbol: str, interval: str, days: int) -> List[Candle]:
        """Return an ascending, deduplicated candle history."""


class BinanceCandleProvider(BaseCandleProvider):
    """Pages historical klines from the Binance spot REST API."""

    def __init__(
        self,
        settings: Optional[DataSettings] = None,
        *,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings or SETTINGS.data
        self._session = session or requests.Session()
        self._clock = clock
        self._sleep = sleep

    def fetch(self, symbol: str, interval: str, days: int) -> List[Candle]:
        step = interval_ms(interval)
        end_ms = int(self._clock() * 1000)
        cursor = end_ms - days * DAY_MS

        rows: Dict[int, list] = {}
        while cursor < end_ms:
            page = self._get_page(symbol, interval, cursor, end_ms)
            if not page:
                break
            for row in page:
                rows[int(row[0])] = row
            last_open = int(page[-1][0])
            if len(page) < self.settings.page_limit:
                break
            cursor = last_open + step

        try:
            candles = parse_candles(rows[key] for key in sorted(rows))
        except CandleValidationError:
            system_logger.error("Binance returned malformed klines for %s %s", symbol, interval)
            raise
        system_logger.info("Fetched %d %s candles for %s over %d days", len(candles), interval, symbol, days)
        return candles

    def _get_page(self, symbol: str, interval: str, start_ms: int, end_ms: int) -> list:
        params = {
            "symbol": symbol,
            "interval": interval,
            "startTime": start_ms,
            "endTime": end_ms,
            "limit": self.settings.page_limit,
        }
        url = f"{self.settings.binance_rest}/klines"
        last_error: Optional[Exception] = None
        for attempt in range(1, self.settings.max_retries + 1):
            try:
                response = self._session.get(url, params=params, timeout=self.settings.timeout_s)
                response.raise_for_status()
                payload = response.json()
            except requests.HTTPError as exc:
                status = getattr(exc.response, "status_code", None)
                # client errors other than rate limiting will not succeed on retry
                if status is not None and 400 <= status < 500 and status != 429:
                    raise DataFeedError(f"Kline request rejected for {symbol} ({status}): {exc}") from exc
                last_error = exc
                system_logger.warning(
                    "Kline request failed (attempt %d/%d) for %s: %s",
                    attempt,
                    self.settings.max_retries,
                    symbol,
                    exc,
                )
                if attempt < self.settings.max_retries:
                    self._sleep(self.settings.retry_backoff_s * attempt)
                continue
            except (requests.RequestException, ValueError) as exc:
                last_error = exc
                system_logger.warning(
                    "Kline request failed (attempt %d/%d) for %s: %s",
                    attempt,
                    self.settings.max_retries,
                    symbol,
                    exc,
                )
                if attempt < self.settings.max_retries:
                    self._sleep(self.settings.retry_backoff_s * attempt)
                continue
            if not isinstance(payload, list):
                raise DataFeedError(f"Unexpected kline payload for {symbol}: {payload!r}")
            return payload
        raise DataFeedError(f"Failed to fetch klines for {symbol}: {last_error}") from last_error


class CSVCandleProvider(BaseCandleProvider):
    """Serves the tail of a CSV candle file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if not self.path.exists():
            raise DataFeedError(f"No candle file at {self.path}")

    def fetch(self, symbol: str, interval: str, days: int) -> List[Candle]:
        candles = load_candles(str(self.path))
        return _trailing_window(candles, days)


class MemoryCandleProvider(BaseCandleProvider):
    """Simple provider backed by in-memory candles for testing."""

    def __init__(self, candles: Iterable[Candle]) -> None:
        self._candles = list(candles)

    def fetch(self, symbol: str, interval: str, days: int) -> List[Candle]:
        return _trailing_window(self._candles, days)


def _trailing_window(candles: List[Candle], days: int) -> List[Candle]:
    if not candles:
        return []
    cutoff = candles[-1].open_time - days * DAY_MS
    return [c for c in candles if c.open_time > cutoff]


__all__ = [
    "BaseCandleProvider",
    "BinanceCandleProvider",
    "CSVCandleProvider",
    "DataFeedError",
    "INTERVAL_MS",
    "MemoryCandleProvider",
    "interval_ms",
]
