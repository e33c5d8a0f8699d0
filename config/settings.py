"""Centralized runtime configuration for the consolidation signal service."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class EngineConfig:
    """Thresholds and heuristic constants for the signal engine."""

    consolidation_threshold: float = 97.0
    breakout_percentage: float = 0.5
    rsi_overbought: float = 70.0
    rsi_oversold: float = 30.0
    rsi_period: int = 14
    min_consolidation_length: int = 5
    volume_breakout_multiplier: float = 1.5

    rsi_epsilon: float = 0.001
    rsi_midline: float = 50.0
    volume_lookback: int = 10
    volume_bonus: float = 15.0
    invalid_range_pct: float = 3.0
    invalid_min_length: int = 3
    rsi_extreme_confidence: float = 80.0
    stop_loss_multiplier: float = 0.95
    stop_loss_confidence: float = 60.0
    take_profit_multiplier: float = 1.10
    take_profit_confidence: float = 75.0
    close_out_confidence: float = 50.0
    high_confidence: float = 90.0
    max_confidence: float = 100.0

    trace: bool = False

    def __post_init__(self) -> None:
        if self.rsi_period < 1:
            raise ValueError(f"rsi_period must be positive, got {self.rsi_period}")
        if self.min_consolidation_length < 1:
            raise ValueError("min_consolidation_length must be positive")
        if self.volume_lookback < 1:
            raise ValueError("volume_lookback must be positive")


@dataclass(frozen=True)
class ServerSettings:
    """HTTP boundary options."""

    port: int
    default_days: int = 180
    min_days: int = 7
    max_days: int = 365
    interval: str = "1h"


@dataclass(frozen=True)
class DataSettings:
    """Market data source locations."""

    default_symbol: str
    binance_rest: str
    page_limit: int = 1000
    timeout_s: float = 10.0
    max_retries: int = 3
    retry_backoff_s: float = 1.0


@dataclass(frozen=True)
class Settings:
    """Bundle of all configuration groups."""

    engine: EngineConfig
    api_engine: EngineConfig
    server: ServerSettings
    data: DataSettings
    logs_dir: Path = field(default=Path("logs"))


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def load_settings() -> Settings:
    """Build settings from defaults plus environment overrides."""

    return Settings(
        engine=EngineConfig(),
        # the HTTP routes run a slightly looser detector than the library default
        api_engine=EngineConfig(consolidation_threshold=96.0, breakout_percentage=0.8),
        server=ServerSettings(port=_env_int("SERVER_PORT", 3000)),
        data=DataSettings(
            default_symbol=os.environ.get("DEFAULT_SYMBOL") or "BTCUSDT",
            binance_rest=os.environ.get("BINANCE_REST") or "https://api.binance.com/api/v3",
        ),
        logs_dir=Path(os.environ.get("LOGS_DIR") or "logs"),
    )


SETTINGS = load_settings()
