from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from src.data_prep import CanonicalRecord

logger = logging.getLogger(__name__)

HORIZON_DAYS = 10
JITTER = 10.0


@dataclass(frozen=True)
class ForecastPoint:
    date: date
    actual: Optional[float] = None
    predicted: Optional[float] = None

    @property
    def is_forecast(self) -> bool:
        return self.predicted is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"date": self.date.isoformat()}
        if self.actual is not None:
            out["actual"] = self.actual
        if self.predicted is not None:
            out["predicted"] = self.predicted
        return out


def forecast(
    records: Sequence[CanonicalRecord],
    *,
    horizon: int = HORIZON_DAYS,
    jitter: float = JITTER,
    rng: Optional[np.random.Generator] = None,
) -> List[ForecastPoint]:
    """
    Historical engagement (one point per record, oldest first) followed by
    `horizon` daily projections from a straight-line trend plus uniform noise
    in [-jitter, +jitter), floored at 0.

    trend = (last - first) / n over the sorted history. Pass a seeded
    numpy Generator for reproducible projections.
    """
    if horizon < 0:
        raise ValueError(f"horizon must be >= 0, got {horizon}")
    if jitter < 0:
        raise ValueError(f"jitter must be >= 0, got {jitter}")
    if len(records) < 2:
        return []

    rng = rng if rng is not None else np.random.default_rng()
    history = sorted(records, key=lambda r: r.timestamp)  # stable

    points = [ForecastPoint(date=r.timestamp.date(), actual=r.engagement) for r in history]
    first_actual = points[0].actual or 0.0
    last_actual = points[-1].actual or 0.0
    trend = (last_actual - first_actual) / len(points)
    last_date = points[-1].date

    for i in range(1, horizon + 1):
        noise = float(rng.uniform(-jitter, jitter)) if jitter else 0.0
        points.append(ForecastPoint(
            date=last_date + timedelta(days=i),
            predicted=max(0.0, last_actual + trend * i + noise),
        ))

    logger.debug("Forecast: %d historical, %d projected, trend=%.3f", len(history), horizon, trend)
    return points

def forecast_frame(points: Sequence[ForecastPoint]) -> pd.DataFrame:
    """Tabular view (date, actual, predicted) for charts and CSV export."""
    return pd.DataFrame(
        [{"date": p.date, "actual": p.actual, "predicted": p.predicted} for p in points],
        columns=["date", "actual", "predicted"],
    )
