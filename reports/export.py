"""Exports and charts for analysis reports."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from analyzer.consolidation import ConsolidationResult
from analyzer.pipeline import AnalysisReport
from analyzer.signals import TradingSignal

DAY_LABELS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]

SIGNAL_COLUMNS = ["timestamp", "time", "type", "price", "confidence", "in_consolidation", "reason"]


def export_signals_csv(path: str | Path, signals: Sequence[TradingSignal]) -> None:
    """Write the signal list to CSV."""

    rows = [
        {
            "timestamp": s.timestamp,
            "time": pd.Timestamp(s.timestamp, unit="ms", tz="UTC").isoformat(),
            "type": s.type.value,
            "price": s.price,
            "confidence": s.confidence,
            "in_consolidation": s.in_consolidation,
            "reason": s.reason,
        }
        for s in signals
    ]
    frame = pd.DataFrame(rows, columns=SIGNAL_COLUMNS)
    frame.to_csv(Path(path), index=False)


def export_report_json(path: str | Path, report: AnalysisReport, include_trace: bool = False) -> None:
    """Persist consolidation aggregates and signals to JSON."""

    payload = {
        "consolidation": report.consolidation.as_dict(),
        **report.signals_payload(include_trace=include_trace),
    }
    Path(path).write_text(json.dumps(payload, indent=2))


def heatmap_frame(result: ConsolidationResult) -> pd.DataFrame:
    """Day-of-week x hour-of-day averages with empty slots as NaN."""

    values = np.array(result.hourly_heatmap, dtype=float)
    counts = np.array(result.heatmap_counts)
    values[counts == 0] = np.nan
    return pd.DataFrame(values, index=DAY_LABELS, columns=list(range(24)))


def plot_heatmap(path: str | Path, result: ConsolidationResult, title: str = "Consolidation by UTC hour") -> None:
    """Render the consolidation heatmap to disk using Matplotlib."""

    frame = heatmap_frame(result)
    fig, ax = plt.subplots(figsize=(12, 4))
    image = ax.imshow(np.ma.masked_invalid(frame.to_numpy()), aspect="auto", cmap="viridis")
    ax.set_title(title)
    ax.set_xlabel("Hour (UTC)")
    ax.set_ylabel("Day")
    ax.set_xticks(range(24))
    ax.set_yticks(range(7))
    ax.set_yticklabels(DAY_LABELS)
    fig.colorbar(image, ax=ax, label="Avg score")
    fig.tight_layout()
    fig.savefig(Path(path), dpi=150)
    plt.close(fig)


__all__ = ["export_report_json", "export_signals_csv", "heatmap_frame", "plot_heatmap"]
