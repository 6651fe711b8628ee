"""Threshold sweep construction and validation."""

import numpy as np
from typing import Sequence


def validate_thresholds(values: Sequence[float]) -> np.ndarray:
    """Check that a threshold sweep is usable.

    A sweep is a non-empty, strictly increasing sequence of reals inside the
    open interval (0, 1).

    Args:
        values: Threshold values

    Returns:
        The sweep as a 1-D float64 array

    Raises:
        ValueError: If the sweep is empty, out of range or not strictly increasing
    """
    sweep = np.asarray(values, dtype=np.float64)

    if sweep.ndim != 1 or sweep.size == 0:
        raise ValueError("Threshold sweep must be a non-empty 1-D sequence")
    if not np.all(np.isfinite(sweep)):
        raise ValueError("Threshold sweep contains non-finite values")
    if np.any(sweep <= 0.0) or np.any(sweep >= 1.0):
        raise ValueError(f"Thresholds must lie strictly between 0 and 1, got {sweep.tolist()}")
    if np.any(np.diff(sweep) <= 0):
        raise ValueError(f"Thresholds must be strictly increasing, got {sweep.tolist()}")

    return sweep


def make_thresholds(low: float, high: float, steps: int) -> np.ndarray:
    """Build an evenly spaced threshold sweep.

    Args:
        low: Smallest threshold (exclusive lower bound 0)
        high: Largest threshold (exclusive upper bound 1)
        steps: Number of thresholds, including both ends

    Returns:
        Validated sweep
    """
    if int(steps) != steps or steps < 1:
        raise ValueError(f"Number of threshold steps must be a positive integer, got {steps}")

    if steps == 1:
        if low != high:
            raise ValueError("A single-step sweep needs low == high")
        return validate_thresholds([low])

    if low >= high:
        raise ValueError(f"Threshold low bound {low} must be below high bound {high}")

    return validate_thresholds(np.linspace(low, high, int(steps)))
