from __future__ import annotations
import logging, math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from src.data_prep import CanonicalRecord, records_frame

logger = logging.getLogger(__name__)

WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
NOT_AVAILABLE = "N/A"
UNAVAILABLE_DIGEST = "Engagement data unavailable."


@dataclass(frozen=True)
class NTSResult:
    best_day: str
    best_hour: str
    engagement_score: int
    lift_percentage: int
    secondary_window: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bestDay": self.best_day,
            "bestHour": self.best_hour,
            "engagementScore": self.engagement_score,
            "liftPercentage": self.lift_percentage,
            "secondaryWindow": self.secondary_window,
        }

EMPTY_NTS = NTSResult(NOT_AVAILABLE, NOT_AVAILABLE, 0, 0, NOT_AVAILABLE)


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))

def format_hour(hour: int) -> str:
    return f"{int(hour):02d}:00"


# ----------------------------
# Neural Time Sync
# ----------------------------
def rank_windows(records: Sequence[CanonicalRecord]) -> pd.DataFrame:
    """
    Mean engagement per (weekday, hour) window, best first.
    Groups keep first-seen order and the sort is stable, so equal scores
    rank in the order their window first appeared.
    """
    df = records_frame(records)
    if df.empty:
        return pd.DataFrame(columns=["day", "hour", "score", "posts"])
    ranked = (df.groupby(["day", "hour_of_day"], sort=False)["engagement"]
                .agg(score="mean", posts="size")
                .reset_index()
                .rename(columns={"hour_of_day": "hour"}))
    return ranked.sort_values("score", ascending=False, kind="stable").reset_index(drop=True)

def lift_percentage(score: float, baseline: float) -> int:
    # zero baseline means every engagement is 0; report no lift
    if baseline == 0:
        logger.debug("Zero engagement baseline; lift reported as 0")
        return 0
    return round_half_up((score - baseline) / baseline * 100)

def analyze_sync(records: Sequence[CanonicalRecord]) -> NTSResult:
    """Best and runner-up posting windows by mean engagement, with lift over the global mean."""
    if not records:
        return EMPTY_NTS

    ranked = rank_windows(records)
    baseline = float(np.mean([r.engagement for r in records]))
    best = ranked.iloc[0]
    secondary = ranked.iloc[1] if len(ranked) > 1 else best

    result = NTSResult(
        best_day=str(best["day"]),
        best_hour=format_hour(best["hour"]),
        engagement_score=round_half_up(float(best["score"])),
        lift_percentage=lift_percentage(float(best["score"]), baseline),
        secondary_window=f"{secondary['day']} @ {format_hour(secondary['hour'])}",
    )
    logger.debug("NTS over %d records / %d windows: %s", len(records), len(ranked), result)
    return result

def sync_heatmap_table(records: Sequence[CanonicalRecord]) -> pd.DataFrame:
    """Mean engagement pivot: rows Sunday..Saturday, columns hour 0..23, empty cells 0."""
    df = records_frame(records)
    if df.empty:
        return pd.DataFrame(0.0, index=WEEKDAYS, columns=range(24))
    df["engagement"] = df["engagement"].astype(float)
    tbl = pd.pivot_table(df, index="day", columns="hour_of_day", values="engagement",
                         aggfunc="mean", fill_value=0.0)
    return tbl.reindex(index=WEEKDAYS, columns=range(24), fill_value=0.0).astype(float)


# ----------------------------
# Digest for the assistant
# ----------------------------
def _top_by(df: pd.DataFrame, col: str) -> Optional[Tuple[str, float]]:
    sums = df.groupby(col, sort=False)["engagement"].sum()
    if sums.empty:
        return None
    sums = sums.sort_values(ascending=False, kind="stable")
    return str(sums.index[0]), float(sums.iloc[0])

def _fmt(x: float) -> str:
    return f"{int(x):,}" if float(x).is_integer() else f"{x:,.2f}"

def summarize(records: Sequence[CanonicalRecord], nts: NTSResult) -> str:
    """
    Compact text digest used as context for the assistant:
      totals, mean engagement, top sector/platform by summed engagement,
      and the NTS windows.
    """
    if not records:
        return UNAVAILABLE_DIGEST

    df = records_frame(records)
    total_eng = float(df["engagement"].sum())
    avg_eng = total_eng / len(df)
    total_imp = float(df["impressions"].sum())
    top_sector = _top_by(df, "sector")
    top_platform = _top_by(df, "platform")

    def _top(t: Optional[Tuple[str, float]]) -> str:
        return f"{t[0]} ({_fmt(t[1])} eng)" if t else "None (0 eng)"

    lines = [
        "Status: Active",
        f"Records Analyzed: {len(df)}",
        f"Total Engagement: {_fmt(total_eng)} (Avg: {avg_eng:.1f})",
        f"Total Reach (Impressions): {_fmt(total_imp)}",
        f"Top Sector: {_top(top_sector)}",
        f"Dominant Platform: {_top(top_platform)}",
        f"Optimal Sync Window (NTS): {nts.best_day} at {nts.best_hour}",
        f"NTS Lift Potential: {nts.lift_percentage}% above baseline.",
        f"Secondary Sync: {nts.secondary_window}",
    ]
    return "\n".join(lines)
