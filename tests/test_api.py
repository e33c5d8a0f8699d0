from __future__ import annotations

import pytest

from config.settings import SETTINGS
from core.datafeed import BaseCandleProvider, DataFeedError, MemoryCandleProvider
from core.utils import CandleValidationError
from web.api import create_app


class RecordingProvider(MemoryCandleProvider):
    def __init__(self, candles):
        super().__init__(candles)
        self.calls = []

    def fetch(self, symbol, interval, days):
        self.calls.append((symbol, interval, days))
        return super().fetch(symbol, interval, days)


class FailingProvider(BaseCandleProvider):
    def __init__(self, exc):
        self.exc = exc

    def fetch(self, symbol, interval, days):
        raise self.exc


@pytest.fixture
def provider(make_candles, breakout_closes):
    return RecordingProvider(make_candles(breakout_closes + [breakout_closes[-1] * 0.94]))


@pytest.fixture
def client(provider):
    app = create_app(provider, SETTINGS)
    app.testing = True
    return app.test_client()


def test_consolidation_data(client):
    response = client.get("/api/consolidation-data")
    assert response.status_code == 200
    payload = response.get_json()
    assert len(payload["hourlyHeatmap"]) == 7
    assert len(payload["hourOfDay"]) == 24
    assert len(payload["dayOfWeek"]) == 7
    assert len(payload["rawData"]) == 31


def test_days_parameter_is_clamped(client, provider):
    client.get("/api/kline-data?days=2")
    client.get("/api/kline-data?days=1000")
    client.get("/api/kline-data?days=abc")
    assert [call[2] for call in provider.calls] == [7, 365, 180]
    assert provider.calls[0][:2] == (SETTINGS.data.default_symbol, "1h")


def test_trading_signals(client):
    response = client.get("/api/trading-signals?days=30")
    assert response.status_code == 200
    payload = response.get_json()
    assert [s["type"] for s in payload["signals"]] == ["BUY", "SELL"]
    assert payload["signals"][1]["confidence"] == 60
    assert payload["summary"]["buySignals"] == 1
    assert payload["summary"]["sellSignals"] == 1
    assert len(payload["priceData"]) == 32
    assert "trace" not in payload


def test_trading_signals_with_trace(client):
    payload = client.get("/api/trading-signals?trace=true").get_json()
    assert payload["trace"][0]["action"] == "run_started"


def test_kline_data(client):
    payload = client.get("/api/kline-data").get_json()
    assert len(payload) == 32
    assert set(payload[0]) == {"openTime", "open", "high", "low", "close", "volume", "closeTime"}


def test_health(client):
    payload = client.get("/api/health").get_json()
    assert payload["status"] == "healthy"


@pytest.mark.parametrize(
    "exc,status",
    [
        (DataFeedError("exchange unavailable"), 502),
        (CandleValidationError("bad row"), 400),
    ],
)
def test_errors_map_to_status_codes(exc, status):
    app = create_app(FailingProvider(exc), SETTINGS)
    response = app.test_client().get("/api/trading-signals")
    assert response.status_code == status
    assert "error" in response.get_json()


def test_unexpected_errors_return_json_500():
    app = create_app(FailingProvider(RuntimeError("boom")), SETTINGS)
    response = app.test_client().get("/api/kline-data")
    assert response.status_code == 500
    assert response.get_json() == {"error": "boom"}


def test_unknown_route_stays_404(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
