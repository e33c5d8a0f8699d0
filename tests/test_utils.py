from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd
import pytest

from core.utils import (
    Candle,
    CandleValidationError,
    load_candles,
    mean_volume,
    parse_candle,
    parse_candles,
    utc_slot,
)

from conftest import BASE_TIME_MS, HOUR_MS


def test_parse_binance_kline_row():
    row = [BASE_TIME_MS, "100.0", "101.5", "99.5", "101.0", "12.5", BASE_TIME_MS + HOUR_MS - 1, "0", 42]
    candle = parse_candle(row)
    assert candle == Candle(
        open_time=BASE_TIME_MS,
        open=100.0,
        high=101.5,
        low=99.5,
        close=101.0,
        volume=12.5,
        close_time=BASE_TIME_MS + HOUR_MS - 1,
    )


def test_parse_camel_case_mapping():
    record = {"openTime": BASE_TIME_MS, "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"}
    candle = parse_candle(record)
    assert candle.close == 2.0
    assert candle.close_time == BASE_TIME_MS


@pytest.mark.parametrize(
    "record",
    [
        {"openTime": BASE_TIME_MS, "open": "x", "high": "2", "low": "1", "close": "2", "volume": "3"},
        {"openTime": BASE_TIME_MS, "open": "1", "high": "2", "low": "1", "close": "2"},
        {"openTime": BASE_TIME_MS, "open": "1", "high": "2", "low": "1.5", "close": "2", "volume": "3"},
        {"openTime": BASE_TIME_MS, "open": "1", "high": "2", "low": "1", "close": "2", "volume": "-3"},
        {"openTime": "soon", "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"},
        {"openTime": float("inf"), "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"},
        {"openTime": float("nan"), "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"},
        {"timestamp": pd.NaT, "open": "1", "high": "2", "low": "1", "close": "2", "volume": "3"},
        [BASE_TIME_MS, "1", "2"],
        "not a candle",
    ],
)
def test_malformed_records_raise_validation_error(record):
    with pytest.raises(CandleValidationError):
        parse_candle(record)


def test_decreasing_timestamps_rejected():
    rows = [
        [BASE_TIME_MS + HOUR_MS, "1", "1", "1", "1", "1"],
        [BASE_TIME_MS, "1", "1", "1", "1", "1"],
    ]
    with pytest.raises(CandleValidationError):
        parse_candles(rows)


def test_equal_timestamps_allowed():
    rows = [[BASE_TIME_MS, "1", "1", "1", "1", "1"]] * 2
    assert len(parse_candles(rows)) == 2


def test_validation_error_is_a_value_error():
    assert issubclass(CandleValidationError, ValueError)


def test_utc_slot_uses_sunday_zero():
    assert utc_slot(BASE_TIME_MS) == (0, 0)
    saturday = int(datetime(2024, 1, 13, 23, tzinfo=timezone.utc).timestamp() * 1000)
    assert utc_slot(saturday) == (6, 23)


def test_mean_volume_trailing_window(make_candles):
    candles = make_candles([1.0] * 15, volumes=[float(v) for v in range(15)])
    assert mean_volume(candles, 14, 10) == pytest.approx(sum(range(5, 15)) / 10)
    assert mean_volume(candles, 2, 10) == pytest.approx(1.0)


def test_load_candles_from_csv(tmp_path):
    path = tmp_path / "candles.csv"
    path.write_text(
        "timestamp,open,high,low,close,volume\n"
        "2024-01-07T00:00:00Z,100,101,99,100.5,10\n"
        "2024-01-07T01:00:00Z,100.5,102,100,101,12\n"
    )
    candles = load_candles(str(path))
    assert [c.open_time for c in candles] == [BASE_TIME_MS, BASE_TIME_MS + HOUR_MS]
    assert candles[1].close == 101.0


def test_load_candles_with_epoch_column(tmp_path):
    path = tmp_path / "candles.csv"
    path.write_text(
        "open_time,open,high,low,close,volume,close_time\n"
        f"{BASE_TIME_MS},1,1,1,1,1,{BASE_TIME_MS + HOUR_MS - 1}\n"
    )
    candles = load_candles(str(path))
    assert candles[0].close_time == BASE_TIME_MS + HOUR_MS - 1


def test_load_candles_missing_column(tmp_path):
    path = tmp_path / "candles.csv"
    path.write_text("timestamp,open,high,low\n2024-01-07T00:00:00Z,1,1,1\n")
    with pytest.raises(CandleValidationError):
        load_candles(str(path))


@pytest.mark.parametrize(
    "content",
    [
        "",
        "timestamp,open,high,low,close,volume\nnot-a-date,1,1,1,1,1\n",
        "open_time,open,high,low,close,volume\ninf,1,1,1,1,1\n",
        "timestamp,open,high,low,close,volume\n,1,1,1,1,1\n",
    ],
    ids=["empty-file", "bad-date", "infinite-epoch", "missing-date"],
)
def test_load_candles_rejects_unreadable_input(tmp_path, content):
    path = tmp_path / "candles.csv"
    path.write_text(content)
    with pytest.raises(CandleValidationError):
        load_candles(str(path))


def test_candle_as_dict_uses_kline_keys(make_candles):
    candle = make_candles([1.0])[0]
    assert candle.as_dict() == {
        "openTime": BASE_TIME_MS,
        "open": 1.0,
        "high": 1.0,
        "low": 1.0,
        "close": 1.0,
        "volume": 10.0,
        "closeTime": BASE_TIME_MS + HOUR_MS - 1,
    }
