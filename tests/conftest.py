import sys
from pathlib import Path

import matplotlib
import pandas as pd
import pytest

matplotlib.use("Agg")

# Ensure project root is on sys.path so `import src` works when tests run from any CWD/import mode.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)
if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)


@pytest.fixture
def nts_rows():
    """Two Monday 09:00 posts (100, 200) and one Tuesday 10:00 post (50)."""
    return [
        {"Date": "2024-01-01T09:00:00Z", "Engagement": "100", "Impressions": "1000", "Platform": "X", "Sector": "Tech"},
        {"Date": "2024-01-01T09:30:00Z", "Engagement": "200", "Impressions": "1500", "Platform": "X", "Sector": "Finance"},
        {"Date": "2024-01-02T10:00:00Z", "Engagement": "50", "Impressions": "400", "Platform": "LinkedIn", "Sector": "Tech"},
    ]


@pytest.fixture
def make_record():
    from src.data_prep import CanonicalRecord

    def _make(ts, engagement=0.0, **kw):
        ts = pd.Timestamp(ts, tz="UTC")
        kw.setdefault("hour_of_day", ts.hour)
        return CanonicalRecord(timestamp=ts, engagement=float(engagement), **kw)

    return _make
