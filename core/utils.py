"""Candle model, boundary validation and shared helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Sequence, Tuple

import pandas as pd


class CandleValidationError(ValueError):
    """Raised when candle records are malformed or violate OHLC invariants."""


@dataclass(frozen=True)
class Candle:
    """Canonical OHLCV bar. Times are epoch milliseconds."""

    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int

    def as_dict(self) -> dict:
        return {
            "openTime": self.open_time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
            "closeTime": self.close_time,
        }


_FIELD_ALIASES = {
    "open_time": ("open_time", "openTime", "timestamp"),
    "open": ("open", "o"),
    "high": ("high", "h"),
    "low": ("low", "l"),
    "close": ("close", "c"),
    "volume": ("volume", "v"),
    "close_time": ("close_time", "closeTime"),
}


def _lookup(record: Mapping[str, Any], key: str) -> Any:
    for alias in _FIELD_ALIASES[key]:
        if alias in record and record[alias] is not None:
            return record[alias]
    raise KeyError(key)


def _to_float(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise CandleValidationError(f"{name} is not numeric: {value!r}") from exc
    if math.isnan(number) or math.isinf(number):
        raise CandleValidationError(f"{name} is not finite: {value!r}")
    if number < 0:
        raise CandleValidationError(f"{name} is negative: {value!r}")
    return number


def _to_millis(value: Any, name: str) -> int:
    # NaT is a datetime subclass, so check it before the datetime branch
    if value is pd.NaT or (isinstance(value, float) and not math.isfinite(value)):
        raise CandleValidationError(f"{name} is not a finite timestamp: {value!r}")
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise CandleValidationError(f"{name} is not an epoch timestamp: {value!r}") from exc


def make_candle(
    open_time: Any,
    open_: Any,
    high: Any,
    low: Any,
    close: Any,
    volume: Any,
    close_time: Any = None,
) -> Candle:
    """Build a validated candle from raw field values."""

    candle = Candle(
        open_time=_to_millis(open_time, "open_time"),
        open=_to_float(open_, "open"),
        high=_to_float(high, "high"),
        low=_to_float(low, "low"),
        close=_to_float(close, "close"),
        volume=_to_float(volume, "volume"),
        close_time=_to_millis(open_time if close_time is None else close_time, "close_time"),
    )
    if not (candle.low <= candle.open <= candle.high and candle.low <= candle.close <= candle.high):
        raise CandleValidationError(
            f"OHLC invariant violated at {candle.open_time}: "
            f"o={candle.open} h={candle.high} l={candle.low} c={candle.close}"
        )
    return candle


def parse_candle(record: Mapping[str, Any] | Sequence[Any]) -> Candle:
    """Parse a mapping or a Binance kline row into a :class:`Candle`."""

    if isinstance(record, Mapping):
        try:
            values = [_lookup(record, key) for key in ("open_time", "open", "high", "low", "close", "volume")]
        except KeyError as exc:
            raise CandleValidationError(f"candle record missing field {exc.args[0]!r}") from exc
        close_time = None
        for alias in _FIELD_ALIASES["close_time"]:
            if record.get(alias) is not None:
                close_time = record[alias]
                break
        return make_candle(*values, close_time=close_time)

    if isinstance(record, (str, bytes)) or not isinstance(record, Sequence):
        raise CandleValidationError(f"unsupported candle record: {record!r}")
    if len(record) < 6:
        raise CandleValidationError(f"kline row too short: {record!r}")
    close_time = record[6] if len(record) > 6 else None
    return make_candle(*record[:6], close_time=close_time)


def parse_candles(records: Iterable[Mapping[str, Any] | Sequence[Any]]) -> List[Candle]:
    """Parse records and check timestamps never go backwards."""

    candles: List[Candle] = []
    for record in records:
        candle = parse_candle(record)
        if candles and candle.open_time < candles[-1].open_time:
            raise CandleValidationError(
                f"open_time {candle.open_time} precedes previous {candles[-1].open_time}"
            )
        candles.append(candle)
    return candles


def load_candles(path: str) -> List[Candle]:
    """Load candles from CSV into the canonical structure."""

    try:
        frame = pd.read_csv(path)
    except (ValueError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise CandleValidationError(f"{path} is not a readable candle CSV: {exc}") from exc
    time_column = next((c for c in ("open_time", "openTime", "timestamp") if c in frame.columns), None)
    if time_column is None:
        raise CandleValidationError(f"{path} has no open_time/timestamp column")
    if not pd.api.types.is_numeric_dtype(frame[time_column]):
        try:
            frame[time_column] = pd.to_datetime(frame[time_column], utc=True)
        except (ValueError, TypeError, OverflowError) as exc:
            raise CandleValidationError(f"{path} has unparseable {time_column} values: {exc}") from exc
    frame = frame.rename(columns={time_column: "open_time"})
    return parse_candles(frame.to_dict(orient="records"))


def utc_slot(open_time: int) -> Tuple[int, int]:
    """Return (day_of_week, hour_of_day) in UTC with Sunday as day 0."""

    moment = datetime.fromtimestamp(open_time / 1000, tz=timezone.utc)
    return (moment.weekday() + 1) % 7, moment.hour


def pct_of(numerator: float, denominator: float) -> float:
    """Percentage helper that zero-fills a zero denominator."""

    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


def mean_volume(candles: Sequence[Candle], end: int, lookback: int) -> float:
    """Average volume over the trailing ``lookback`` candles ending at ``end``."""

    start = max(0, end - lookback + 1)
    window = candles[start : end + 1]
    if not window:
        return 0.0
    return sum(c.volume for c in window) / len(window)


__all__ = [
    "Candle",
    "CandleValidationError",
    "load_candles",
    "make_candle",
    "mean_volume",
    "parse_candle",
    "parse_candles",
    "pct_of",
    "utc_slot",
]
