"""Numeric helpers shared by the balance scorers."""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np


def safe_divide(numerator: float, denominator: float, fallback: float = 0.0) -> float:
    """numerator / denominator, or ``fallback`` when the result is not finite."""
    if denominator == 0:
        return fallback
    result = numerator / denominator
    return result if math.isfinite(result) else fallback


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    """Clamp into [lo, hi]; non-finite values collapse to ``lo``."""
    if not math.isfinite(value):
        return lo
    return max(lo, min(hi, value))


def mean(values: Iterable[float]) -> float:
    arr = np.asarray(list(values), dtype=float)
    return float(arr.mean()) if arr.size else 0.0


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    arr = np.asarray(values, dtype=float)
    return float(arr.std()) if arr.size else 0.0


def coefficient_of_variation(values: Sequence[float]) -> float:
    """std / mean, 0 for empty input or zero mean."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    m = float(arr.mean())
    if m == 0:
        return 0.0
    return float(arr.std()) / m


def variance(values: Sequence[float]) -> float:
    arr = np.asarray(values, dtype=float)
    return float(arr.var()) if arr.size else 0.0


def nonlinear_mapping(value: float, exponent: float) -> float:
    """Clamp to [0, 1]; small values are halved, the rest raised to ``exponent``."""
    v = clamp(value, 0.0, 1.0)
    if v < 0.3:
        return v * 0.5
    return v ** exponent


def sigmoid(x: float) -> float:
    return 1.0 / (1.0 + math.exp(-x))


def numbers_equal(a: float, b: float, ratio: float = 0.02, minimum: float = 0.05) -> bool:
    """Equal within an absolute floor or a relative tolerance."""
    diff = abs(a - b)
    if diff <= minimum:
        return True
    return diff / max(abs(a), abs(b)) <= ratio


def distance(p: Tuple[float, float], q: Tuple[float, float]) -> float:
    return math.hypot(p[0] - q[0], p[1] - q[1])
