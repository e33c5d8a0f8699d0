"""CLI helper for running the consolidation analysis."""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
from typing import List, Optional
import sys

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from analyzer.pipeline import run_analysis  # noqa: E402
from config.settings import SETTINGS  # noqa: E402
from core.datafeed import BinanceCandleProvider, CSVCandleProvider  # noqa: E402
from core.logger import configure_logging, get_logger  # noqa: E402
from reports.export import export_report_json, export_signals_csv, plot_heatmap  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Score consolidation and generate breakout signals")
    parser.add_argument("--csv", help="Read candles from a CSV file instead of Binance")
    parser.add_argument("--symbol", default=SETTINGS.data.default_symbol, help="Trading pair symbol")
    parser.add_argument("--interval", default=SETTINGS.server.interval, help="Kline interval")
    parser.add_argument("--days", type=int, default=SETTINGS.server.default_days, help="Lookback in days")
    parser.add_argument("--threshold", type=float, help="Override consolidation threshold")
    parser.add_argument("--breakout", type=float, help="Override breakout percentage")
    parser.add_argument("--signals-csv", help="Optional CSV export path for signals")
    parser.add_argument("--report-json", help="Optional JSON file for aggregates + signals")
    parser.add_argument("--heatmap", help="Optional PNG path for the consolidation heatmap")
    parser.add_argument("--trace", action="store_true", help="Collect engine transition events")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    configure_logging()
    system_logger = get_logger("system")
    error_logger = get_logger("errors")
    args = build_parser().parse_args(argv)
    try:
        provider = CSVCandleProvider(args.csv) if args.csv else BinanceCandleProvider(SETTINGS.data)
        candles = provider.fetch(args.symbol, args.interval, args.days)

        config = SETTINGS.engine
        overrides = {"trace": args.trace}
        if args.threshold is not None:
            overrides["consolidation_threshold"] = args.threshold
        if args.breakout is not None:
            overrides["breakout_percentage"] = args.breakout
        config = replace(config, **overrides)

        report = run_analysis(candles, config)
        system_logger.info("Analysis CLI finished | symbol=%s candles=%d", args.symbol, len(candles))

        summary = report.signals.summary
        print(f"Candles analysed: {len(candles)}")
        print(f"Signals: buy={summary.buy_count} sell={summary.sell_count} high_confidence={summary.high_confidence_count}")
        for signal in report.signals.signals:
            print(f"  {signal.timestamp} {signal.type.value:<4} {signal.price:.2f} ({signal.confidence:.1f}) {signal.reason}")

        if args.signals_csv:
            export_signals_csv(Path(args.signals_csv), report.signals.signals)
            print(f"Signals exported to {args.signals_csv}")
        if args.report_json:
            export_report_json(Path(args.report_json), report, include_trace=args.trace)
            print(f"Report JSON saved to {args.report_json}")
        if args.heatmap:
            plot_heatmap(Path(args.heatmap), report.consolidation, title=f"{args.symbol} consolidation by UTC hour")
            print(f"Heatmap saved to {args.heatmap}")
    except Exception:
        error_logger.exception("Analysis CLI failed")
        raise


if __name__ == "__main__":  # pragma: no cover
    main()
