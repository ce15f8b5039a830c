# src/data_prep.py
from __future__ import annotations
import logging, math, re
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("engagement", "impressions", "shares", "likes", "comments")
DEFAULT_SECTOR = "General"
DEFAULT_PLATFORM = "Unknown"
MOCK_SECTORS = ("Tech", "Gaming", "Finance", "Lifestyle")
MOCK_PLATFORMS = ("X", "Instagram", "LinkedIn", "Facebook")
SORT_ALIASES = {"date": "timestamp", "hour": "hour_of_day"}

_ZERO_WIDTH = re.compile(r"[\u200b\u200e\ufeff]")


@dataclass(frozen=True)
class CanonicalRecord:
    timestamp: pd.Timestamp
    engagement: float = 0.0
    impressions: float = 0.0
    shares: float = 0.0
    likes: float = 0.0
    comments: float = 0.0
    sector: str = DEFAULT_SECTOR
    platform: str = DEFAULT_PLATFORM
    hour_of_day: int = 0

    @property
    def day(self) -> str:
        return self.timestamp.day_name()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "engagement": self.engagement,
            "impressions": self.impressions,
            "shares": self.shares,
            "likes": self.likes,
            "comments": self.comments,
            "sector": self.sector,
            "platform": self.platform,
            "hourOfDay": self.hour_of_day,
        }


# ----------------------------
# Field resolution
# ----------------------------
def _is_blank(v: Any) -> bool:
    if v is None:
        return True
    if isinstance(v, str):
        return not v.strip()
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False

def _pick(row: Mapping[str, Any], *names: str) -> Any:
    """First non-blank value among Name/name pairs, in the order given."""
    for name in names:
        for key in (name.capitalize(), name.lower()):
            v = row.get(key)
            if not _is_blank(v):
                return v
    return None

def _to_number(v: Any) -> Optional[float]:
    if _is_blank(v):
        return None
    if isinstance(v, str):
        v = v.strip().replace(",", "")
    try:
        x = float(pd.to_numeric(v, errors="coerce"))
    except (TypeError, ValueError, OverflowError):
        return None
    return x if math.isfinite(x) else None

def _to_count(v: Any) -> float:
    x = _to_number(v)
    return max(0.0, x) if x is not None else 0.0

def _to_timestamp(v: Any) -> Optional[pd.Timestamp]:
    if _is_blank(v):
        return None
    if isinstance(v, str):
        v = _ZERO_WIDTH.sub("", v.strip())
    try:
        ts = pd.to_datetime(v, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        return None
    # list-likes come back as an index, not a scalar
    if not isinstance(ts, pd.Timestamp) or pd.isna(ts):
        return None
    return ts

def _to_label(v: Any, default: str) -> str:
    return default if _is_blank(v) else str(v).strip()


# ----------------------------
# Public entrypoints
# ----------------------------
def normalize_row(row: Mapping[str, Any], now: Optional[pd.Timestamp] = None) -> CanonicalRecord:
    """
    Resolve one loosely-typed row into a CanonicalRecord.
    Capitalized key wins over lower-case; absent or malformed values fall back
    to 0 / "General" / "Unknown" / now. hour_of_day comes from an explicit Hour
    column when it is numeric, else from the parsed timestamp, else 0.
    """
    parsed = _to_timestamp(_pick(row, "date", "timestamp"))
    ts = parsed if parsed is not None else (now if now is not None else pd.Timestamp.now(tz="UTC"))

    hour = _to_number(_pick(row, "hour"))
    if hour is not None:
        hour_of_day = int(hour) % 24
    elif parsed is not None:
        hour_of_day = parsed.hour
    else:
        hour_of_day = 0

    counts = {f: _to_count(_pick(row, f)) for f in NUMERIC_FIELDS}
    return CanonicalRecord(
        timestamp=ts,
        sector=_to_label(_pick(row, "sector"), DEFAULT_SECTOR),
        platform=_to_label(_pick(row, "platform"), DEFAULT_PLATFORM),
        hour_of_day=hour_of_day,
        **counts,
    )

def normalize(raw_rows: Iterable[Mapping[str, Any]]) -> List[CanonicalRecord]:
    """Normalize every row (none dropped, order kept). Never raises for bad data."""
    now = pd.Timestamp.now(tz="UTC")
    records = [normalize_row(r, now=now) for r in raw_rows]
    logger.debug("Normalized %d rows", len(records))
    return records

def load_rows(path: str) -> List[Dict[str, Any]]:
    """
    Load a CSV with a header row into plain dict rows.
    Cells stay as strings; empty cells come back as None.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False, skip_blank_lines=True)
    df.columns = [_ZERO_WIDTH.sub("", str(c)).strip() for c in df.columns]
    rows = [{k: (v if v != "" else None) for k, v in rec.items()}
            for rec in df.to_dict(orient="records")]
    logger.info("Loaded %d rows from %s", len(rows), path)
    return rows

def records_frame(records: Sequence[CanonicalRecord]) -> pd.DataFrame:
    """
    DataFrame view of canonical records (input order), with derived
      day (weekday name) and date (UTC calendar date).
    """
    cols = ["timestamp", *NUMERIC_FIELDS, "sector", "platform", "hour_of_day"]
    if not records:
        return pd.DataFrame(columns=cols + ["day", "date"])
    df = pd.DataFrame([{c: getattr(r, c) for c in cols} for r in records], columns=cols)
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
    df["day"] = df["timestamp"].dt.day_name()
    df["date"] = df["timestamp"].dt.date
    return df

def filter_records(
    records: Sequence[CanonicalRecord],
    platform: str = "All",
    sector: str = "All",
    sort_by: Optional[str] = None,
    ascending: bool = False,
) -> List[CanonicalRecord]:
    """
    Platform/sector filter ("All" disables one), optionally sorted on a record
    field ("date" is an alias for timestamp). Sorting is stable; sort_by=None
    keeps input order.
    """
    out = list(records)
    if platform != "All":
        out = [r for r in out if r.platform == platform]
    if sector != "All":
        out = [r for r in out if r.sector == sector]
    if sort_by is not None:
        field = SORT_ALIASES.get(sort_by.lower(), sort_by.lower())
        if field not in CanonicalRecord.__dataclass_fields__:
            raise ValueError(f"Cannot sort by {sort_by!r}. Known: {list(CanonicalRecord.__dataclass_fields__)}")
        out = sorted(out, key=lambda r: getattr(r, field), reverse=not ascending)
    return out


# ----------------------------
# Demo data
# ----------------------------
def mock_record(
    ts: pd.Timestamp,
    base: float = 100,
    multiplier: float = 1.0,
    rng: Optional[np.random.Generator] = None,
) -> CanonicalRecord:
    rng = rng if rng is not None else np.random.default_rng()
    ts = pd.Timestamp(ts)
    ts = ts.tz_localize("UTC") if ts.tz is None else ts.tz_convert("UTC")
    engagement = max(0.0, float(math.floor((math.floor(rng.random() * base) + 100) * multiplier)))
    return CanonicalRecord(
        timestamp=ts,
        engagement=engagement,
        impressions=float(math.floor(engagement * (8 + rng.random() * 4))),
        shares=float(math.floor(engagement * 0.05)),
        likes=float(math.floor(engagement * 0.4)),
        comments=float(math.floor(engagement * 0.1)),
        sector=MOCK_SECTORS[int(rng.integers(len(MOCK_SECTORS)))],
        platform=MOCK_PLATFORMS[int(rng.integers(len(MOCK_PLATFORMS)))],
        hour_of_day=ts.hour,
    )

def generate_mock_records(
    n: int = 50,
    *,
    rng: Optional[np.random.Generator] = None,
    end: Optional[pd.Timestamp] = None,
) -> List[CanonicalRecord]:
    """n daily records ending one day before `end` (default now, UTC)."""
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")
    rng = rng if rng is not None else np.random.default_rng()
    end = pd.Timestamp(end) if end is not None else pd.Timestamp.now(tz="UTC")
    if end.tz is None:
        end = end.tz_localize("UTC")
    return [mock_record(end - timedelta(days=n - i), rng=rng) for i in range(n)]
