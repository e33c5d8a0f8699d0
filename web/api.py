"""
Flask API backend for the consolidation dashboard
Serves consolidation heatmaps, trading signals and raw klines
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from flask import Flask, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from analyzer.consolidation import ConsolidationAnalyzer
from analyzer.pipeline import run_analysis
from config.settings import SETTINGS, Settings
from core.datafeed import BaseCandleProvider, BinanceCandleProvider, DataFeedError
from core.logger import get_logger
from core.utils import CandleValidationError


system_logger = get_logger("system")
error_logger = get_logger("errors")


def _requested_days(settings: Settings) -> int:
    """Parse ``days`` from the query string and clamp it to the allowed window."""

    days = request.args.get("days", type=int) or settings.server.default_days
    return min(max(days, settings.server.min_days), settings.server.max_days)


def _load_candles(days: int):
    settings: Settings = current_app.config["SETTINGS"]
    provider: BaseCandleProvider = current_app.config["CANDLE_PROVIDER"]
    symbol = settings.data.default_symbol
    system_logger.info("Fetching %s %s candles for last %d days", symbol, settings.server.interval, days)
    return provider.fetch(symbol, settings.server.interval, days)


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def create_app(
    provider: Optional[BaseCandleProvider] = None,
    settings: Optional[Settings] = None,
) -> Flask:
    """Build the Flask app around a candle provider."""

    settings = settings or SETTINGS
    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend access
    app.config["SETTINGS"] = settings
    app.config["CANDLE_PROVIDER"] = provider or BinanceCandleProvider(settings.data)

    @app.errorhandler(CandleValidationError)
    def handle_validation(exc: CandleValidationError):
        error_logger.error("Invalid candle data: %s", exc)
        return _error(f"invalid candle data: {exc}", 400)

    @app.errorhandler(DataFeedError)
    def handle_feed(exc: DataFeedError):
        error_logger.error("Candle provider failure: %s", exc)
        return _error(str(exc), 502)

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        error_logger.exception("Unhandled API error: %s", exc)
        return _error(str(exc), 500)

    @app.route("/api/consolidation-data", methods=["GET"])
    def get_consolidation_data():
        """Heatmaps and per-candle consolidation scores"""
        candles = _load_candles(_requested_days(settings))
        result = ConsolidationAnalyzer().analyze(candles)
        return jsonify(result.as_dict())

    @app.route("/api/trading-signals", methods=["GET"])
    def get_trading_signals():
        """Signals, chart prices and summary counts"""
        include_trace = request.args.get("trace", "").lower() in {"1", "true", "yes"}
        candles = _load_candles(_requested_days(settings))
        report = run_analysis(candles, replace(settings.api_engine, trace=include_trace))
        return jsonify(report.signals_payload(include_trace=include_trace))

    @app.route("/api/kline-data", methods=["GET"])
    def get_kline_data():
        """Raw candles for the requested window"""
        candles = _load_candles(_requested_days(settings))
        return jsonify([c.as_dict() for c in candles])

    @app.route("/api/health", methods=["GET"])
    def health_check():
        """Health check endpoint"""
        return jsonify({"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()})

    return app


app = create_app()


if __name__ == "__main__":
    system_logger.info("Starting consolidation API server on port %d", SETTINGS.server.port)
    app.run(host="0.0.0.0", port=SETTINGS.server.port)
