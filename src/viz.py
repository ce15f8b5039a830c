from __future__ import annotations
import os
from typing import Optional, Sequence, Tuple
import pandas as pd
import matplotlib.pyplot as plt

from src.forecast import ForecastPoint, forecast_frame
from src.metrics import NTSResult, NOT_AVAILABLE

def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)

def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = out_path
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved


def plot_forecast(
    points: Sequence[ForecastPoint],
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Actual engagement (solid) followed by the projected trend (dashed).
    The projection is drawn from the last actual point so the lines join.
    """
    if not points:
        raise ValueError("No forecast points to plot (need at least 2 records).")
    df = forecast_frame(points)
    df["date"] = pd.to_datetime(df["date"])
    hist = df[df["actual"].notna()]
    proj = df[df["predicted"].notna()]

    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(hist["date"], hist["actual"].astype(float), linewidth=1.6, label="Actual")
    if not proj.empty:
        bridge = pd.concat([
            hist.tail(1).assign(predicted=hist["actual"].iloc[-1]),
            proj,
        ])
        ax.plot(bridge["date"], bridge["predicted"].astype(float),
                linewidth=1.6, linestyle="--", label="Projected")
    ax.set_title(f"Engagement trajectory and {len(proj)}-day projection")
    ax.set_ylabel("Engagement")
    ax.set_xlabel("Date")
    ax.legend()
    fig.autofmt_xdate()
    fig.tight_layout()
    return fig, ax, _finish(fig, out_path, show)

def plot_sync_heatmap(
    table: pd.DataFrame,
    nts: Optional[NTSResult] = None,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """
    Heatmap for DoW x Hour mean engagement:
      table: metrics.sync_heatmap_table() output (index=weekday, columns=hour)
    The best NTS window, when given, is outlined.
    """
    fig, ax = plt.subplots(figsize=(10, 4))
    im = ax.imshow(table.values, aspect="auto")
    ax.set_title("Mean engagement heatmap (DoW × Hour)")
    ax.set_yticks(range(len(table.index)))
    ax.set_yticklabels([str(d)[:3] for d in table.index])
    ax.set_ylabel("Day")
    ax.set_xlabel("Hour")
    fig.colorbar(im, ax=ax)

    if nts is not None and nts.best_day != NOT_AVAILABLE and nts.best_day in list(table.index):
        row = list(table.index).index(nts.best_day)
        col = int(nts.best_hour.split(":")[0])
        ax.add_patch(plt.Rectangle((col - 0.5, row - 0.5), 1, 1, fill=False, linewidth=2.0))

    fig.tight_layout()
    return fig, ax, _finish(fig, out_path, show)
