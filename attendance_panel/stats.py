from __future__ import annotations

from typing import Dict, List, NamedTuple, Sequence

import pandas as pd


class Bucket(NamedTuple):
    label: str
    lo: float
    hi: float


DURATION_BUCKETS: List[Bucket] = [
    Bucket("< 15 min", 0, 15),
    Bucket("15-30 min", 15, 30),
    Bucket("30-60 min", 30, 60),
    Bucket("1-1.5 h", 60, 90),
    Bucket("1.5-2 h", 90, 120),
    Bucket("> 2 h", 120, 9999),
]

ENGAGEMENT_BUCKETS: List[Bucket] = [
    Bucket("0-20 (Crítico)", 0, 20),
    Bucket("20-40 (Bajo)", 20, 40),
    Bucket("40-60 (Medio)", 40, 60),
    Bucket("60-80 (Alto)", 60, 80),
    Bucket("80-100 (Excelente)", 80, 101),
]


def median(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0
    return float(pd.Series(values, dtype="float64").median())


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    if len(values) == 0:
        return 0
    return float(pd.Series(values, dtype="float64").std(ddof=0))


def histogram(values: Sequence[float], buckets: Sequence[Bucket]) -> Dict[str, int]:
    """Count values per [lo, hi) bucket; values outside every bucket are ignored."""
    series = pd.Series(values, dtype="float64")
    return {b.label: int(((series >= b.lo) & (series < b.hi)).sum()) for b in buckets}
