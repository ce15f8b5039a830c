from __future__ import annotations
import logging, re
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from src.data_prep import CanonicalRecord, mock_record

logger = logging.getLogger(__name__)

_NUM = re.compile(r"[-+]?[0-9]*\.?[0-9]+")


@dataclass(frozen=True)
class LiveMetrics:
    score: float = 250.0
    multiplier: float = 1.0
    volatility: float = 10.0
    parsed: bool = False


def parse_live_metrics(text: str) -> LiveMetrics:
    """First three numbers of the live-context reply: score, multiplier, volatility."""
    nums = _NUM.findall(text or "")
    if len(nums) < 3:
        logger.warning("Live context reply had %d numbers, using defaults: %r", len(nums), text)
        return LiveMetrics()
    score, multiplier, volatility = (float(x) for x in nums[:3])
    return LiveMetrics(score=score, multiplier=multiplier, volatility=volatility, parsed=True)

def volatility_status(volatility: float) -> str:
    if volatility > 70:
        return "VOLATILE_SURGE"
    if volatility > 30:
        return "NEURAL_CAUTION"
    return "SIGNAL_NOMINAL"

def packet_status(metrics: LiveMetrics) -> str:
    if metrics.volatility > 50:
        return "VOLATILE"
    if metrics.score > 600:
        return "SURGE"
    return "NOMINAL"

def pulse(
    records: Sequence[CanonicalRecord],
    metrics: LiveMetrics,
    *,
    rng: Optional[np.random.Generator] = None,
) -> List[CanonicalRecord]:
    """
    Slide the window one step: drop the oldest record and append a synthetic one
    an hour after the last, scaled by the live score and multiplier.
    """
    if not records:
        return []
    last = records[-1]
    nxt = mock_record(last.timestamp + timedelta(hours=1), base=metrics.score,
                      multiplier=metrics.multiplier, rng=rng)
    return [*records[1:], nxt]


# ----------------------------
# Stream packet log
# ----------------------------
PACKET_LOG_LIMIT = 10
_ID_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


@dataclass(frozen=True)
class StreamPacket:
    id: str
    timestamp: pd.Timestamp
    topic: str
    engagement: float
    status: str


def make_packet(
    topic: str,
    metrics: LiveMetrics,
    *,
    rng: Optional[np.random.Generator] = None,
    now: Optional[pd.Timestamp] = None,
) -> StreamPacket:
    rng = rng if rng is not None else np.random.default_rng()
    return StreamPacket(
        id="".join(_ID_ALPHABET[int(i)] for i in rng.integers(len(_ID_ALPHABET), size=9)),
        timestamp=now if now is not None else pd.Timestamp.now(tz="UTC"),
        topic=topic,
        engagement=metrics.score,
        status=packet_status(metrics),
    )

def push_packet(
    log: Sequence[StreamPacket],
    packet: StreamPacket,
    limit: int = PACKET_LOG_LIMIT,
) -> List[StreamPacket]:
    """Newest first, capped at `limit` entries."""
    return [packet, *log][:limit]
