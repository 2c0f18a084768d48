"""
Statistical primitives for anomaly detection and maintenance prediction.

All functions are pure and stateless. Sequences come in as any iterable of
numbers and results go out as plain Python lists/floats so callers can keep
them aligned index-for-index with their measurements.
"""

import math
import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from aquawatch.core.exceptions import InvalidInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float
    residual_error: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def _as_array(values: Sequence[float], name: str = "values") -> np.ndarray:
    try:
        arr = np.asarray(list(values), dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"{name} must be numeric: {e}", cause=e)
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional")
    if arr.size and not np.all(np.isfinite(arr)):
        raise InvalidInputError(f"{name} contains non-finite values")
    return arr


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """Trailing moving average, padded to the input length.

    Indices before the first full window take the first computable average.
    With fewer values than the window the input is returned unchanged.
    """
    if window < 1:
        raise InvalidInputError(f"Moving average window must be >= 1, got {window}")
    arr = _as_array(values)
    if arr.size < window:
        return arr.tolist()

    averages = np.lib.stride_tricks.sliding_window_view(arr, window).mean(axis=1)
    padding = np.full(window - 1, averages[0])
    return np.concatenate([padding, averages]).tolist()


def standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation; 0 for fewer than two values."""
    arr = _as_array(values)
    if arr.size <= 1:
        return 0.0
    return float(np.std(arr))


def exponential_smoothing(values: Sequence[float], alpha: float) -> List[float]:
    """Simple exponential smoothing with alpha clamped to [0, 1]."""
    arr = _as_array(values)
    if arr.size == 0:
        return []
    if not math.isfinite(alpha):
        raise InvalidInputError(f"Smoothing factor must be finite, got {alpha}")
    a = min(1.0, max(0.0, float(alpha)))

    result = [float(arr[0])]
    for actual in arr[1:]:
        result.append(a * float(actual) + (1.0 - a) * result[-1])
    return result


def linear_regression(xs: Sequence[float], ys: Sequence[float]) -> RegressionResult:
    """Ordinary least squares fit of ys against xs."""
    x = _as_array(xs, "xs")
    y = _as_array(ys, "ys")
    if x.size != y.size or x.size == 0:
        raise InvalidInputError(
            "Input sequences must be of equal length and non-empty",
            details={"xs": int(x.size), "ys": int(y.size)},
        )

    n = x.size
    sum_x = x.sum()
    sum_y = y.sum()
    denom = n * np.dot(x, x) - sum_x ** 2
    if denom == 0:
        raise InvalidInputError("xs must contain at least two distinct values")

    slope = float((n * np.dot(x, y) - sum_x * sum_y) / denom)
    intercept = float((sum_y - slope * sum_x) / n)
    residuals = y - (slope * x + intercept)
    residual_error = float(np.sqrt(np.mean(residuals ** 2)))
    return RegressionResult(slope=slope, intercept=intercept, residual_error=residual_error)


def confidence_level(prediction_error: float, sample_count: int) -> float:
    """Heuristic reliability score in [0, 100].

    Lower error and more samples both raise the score:
    ``clamp(100 - 10 * error, 0, 100) * min(1, log10(samples) / 2)``.
    This is not a statistical confidence interval.
    """
    if not math.isfinite(prediction_error):
        raise InvalidInputError(f"Prediction error must be finite, got {prediction_error}")
    if sample_count < 1:
        return 0.0
    base = min(100.0, max(0.0, 100.0 - prediction_error * 10.0))
    data_factor = min(1.0, math.log10(sample_count) / 2.0)
    return base * data_factor
