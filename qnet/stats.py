# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# stats.py
# -----------------------------------------------------------------------------
# Purpose:
#   Output analysis helpers: replication confidence intervals, descriptive
#   statistics of observed samples, histograms, and a CV-based hint for the
#   distribution family that fits a sample.
#
# Usage:
#   mu, half = mean_ci([1.2, 0.9, 1.1], 0.95)
#   recommend_distribution(describe(service_times))
# -----------------------------------------------------------------------------

from __future__ import annotations
import math
from dataclasses import dataclass
from statistics import mean, stdev
from typing import Dict, List, Sequence, Tuple

from scipy.stats import t as student_t

def mean_ci(values: Sequence[float], confidence_level: float) -> Tuple[float, float]:
    """
    Return (mean, half-width) using a t-distribution critical value with
    n - 1 degrees of freedom. Fewer than two values give a zero half-width.
    """
    if not values:
        return 0.0, 0.0
    mu = mean(values)
    n = len(values)
    if n < 2:
        return mu, 0.0
    level = min(max(confidence_level, 0.0), 0.999999)
    alpha = 1.0 - level
    tcrit = student_t.ppf(1 - alpha / 2.0, n - 1)
    half = tcrit * (stdev(values) / math.sqrt(n))
    return mu, float(half)

@dataclass
class DataSummary:
    mean: float
    variance: float      # population variance
    std_dev: float
    cv: float
    min: float
    max: float
    count: int

def describe(data: Sequence[float]) -> DataSummary:
    if not data:
        return DataSummary(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0)
    n = len(data)
    avg = sum(data) / n
    var = sum((x - avg) ** 2 for x in data) / n
    sd = math.sqrt(var)
    return DataSummary(avg, var, sd, sd / avg if avg > 0 else 0.0, min(data), max(data), n)

def histogram(data: Sequence[float], buckets: int = 20) -> List[Dict]:
    """Equal-width buckets between min and max; the max lands in the last bucket."""
    if not data:
        return []
    lo, hi = min(data), max(data)
    width = (hi - lo) / buckets
    bins = []
    for i in range(buckets):
        start, end = lo + i * width, lo + (i + 1) * width
        bins.append({"range_start": start, "range_end": end,
                     "label": f"{start:.1f}-{end:.1f}", "count": 0})
    for x in data:
        idx = int((x - lo) / width) if width > 0 else 0
        bins[min(idx, buckets - 1)]["count"] += 1
    return bins

def recommend_distribution(summary: DataSummary) -> Dict[str, str]:
    cv = summary.cv
    if cv < 0.1:
        return {"type": "Deterministic", "confidence": "High"}
    if 0.9 <= cv <= 1.1:
        return {"type": "Poisson (Exponential)", "confidence": "High"}
    if cv < 0.9:
        return {"type": f"Erlang (k ≈ {1.0 / (cv * cv):.1f})", "confidence": "Medium"}
    return {"type": "General / Hyperexponential", "confidence": "Low"}
