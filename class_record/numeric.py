from typing import Iterable, Optional, Sequence
import numpy as np
from decimal import Decimal, ROUND_HALF_UP

# ------------------------
# Rounding & averaging
# ------------------------
def round_half_up(x: float, places: int = 0) -> float:
    """
    Round like the report forms do: 89.5 -> 90, 74.5 -> 75.

    Python's round() is banker's rounding (round(74.5) == 74), which would
    move students across the passing line.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(x)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_to_int(x: float) -> int:
    return int(round_half_up(x, 0))


def present(values: Iterable[Optional[float]]) -> list:
    return [float(v) for v in values if v is not None]


def mean_of_present(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-null values, or None when there are none."""
    vals = present(values)
    if not vals:
        return None
    return float(np.mean(vals))


def rounded_mean(values: Iterable[Optional[float]]) -> Optional[int]:
    mean = mean_of_present(values)
    if mean is None:
        return None
    return round_to_int(mean)


def weighted_mean(percents: Sequence[float], weights: Sequence[float]) -> Optional[float]:
    """
    percents, weights: parallel sequences
    returns: sum(p * w) / sum(w), or None if the weights sum to zero
    """
    if len(percents) == 0:
        return None

    p = np.asarray(percents, dtype=float)
    w = np.asarray(weights, dtype=float)
    total_weight = float(w.sum())
    if total_weight == 0:
        return None

    return float(np.dot(p, w) / total_weight)
