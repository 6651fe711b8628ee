"""
Pixel-level precision and recall over a threshold sweep.

A prediction channel is binarized with a strict ``>`` comparison against each
threshold. Ratios with a zero denominator are undefined and reported as NaN:
no predicted positives leaves precision undefined, no ground-truth positives
leaves recall undefined. NaN is never replaced by 0 or 1.

As the threshold grows the predicted-positive set can only shrink, so recall
is non-increasing along the sweep. Precision has no such guarantee.
"""

import math
from dataclasses import dataclass, astuple
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
import torch

from ..config.sweep import validate_thresholds
from ..data.arrays import ShapeMismatchError, check_shapes
from ..utils.io import to_numpy

UNDEFINED = float('nan')

METRIC_COLUMNS = ['split', 'sample_index', 'class', 'threshold', 'precision', 'recall']

ArrayLike = Union[np.ndarray, torch.Tensor]


@dataclass(frozen=True)
class MetricRecord:
    """Precision and recall of one class of one sample at one threshold."""

    split: Optional[str]
    sample_index: Optional[int]
    class_index: int
    threshold: float
    precision: float
    recall: float


def is_undefined(value: Optional[float]) -> bool:
    """Whether a metric value is the undefined marker."""
    return value is None or (isinstance(value, (float, np.floating)) and math.isnan(value))


def _ratio(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return UNDEFINED
    return float(numerator) / float(denominator)


def precision_recall(pred: ArrayLike, target: ArrayLike) -> Tuple[float, float]:
    """Calculate precision and recall of one binary prediction mask.

    Args:
        pred: Binary predicted mask
        target: Binary ground-truth mask of the same shape

    Returns:
        Tuple of (precision, recall); either may be NaN
    """
    pred = to_numpy(pred).astype(bool)
    target = to_numpy(target).astype(np.float64)
    if pred.shape != target.shape:
        raise ShapeMismatchError(f"mask shapes differ: {pred.shape} vs {target.shape}")

    intersection = target[pred].sum()
    return _ratio(intersection, np.count_nonzero(pred)), _ratio(intersection, target.sum())


def _as_numeric(array: ArrayLike, name: str) -> np.ndarray:
    array = to_numpy(array)
    numeric = np.issubdtype(array.dtype, np.number) and not np.issubdtype(array.dtype, np.complexfloating)
    if not (numeric or array.dtype == np.bool_):
        raise TypeError(f"{name} must be real-valued numeric, got dtype {array.dtype}")
    return array


def evaluate(y: ArrayLike,
             y_hat: ArrayLike,
             thresholds: Sequence[float],
             split: Optional[str] = None,
             sample_index: Optional[int] = None) -> List[MetricRecord]:
    """Compute per-class precision/recall records for one sample.

    Args:
        y: Ground truth, classes x height x width, binary per class
        y_hat: Per-class probabilities, same shape as ``y``
        thresholds: Strictly increasing sweep inside (0, 1)
        split: Split label copied into the records
        sample_index: Sample index copied into the records

    Returns:
        Records ordered by class index, then threshold

    Raises:
        ShapeMismatchError: If ``y`` and ``y_hat`` differ in shape
        TypeError: If either array is not numeric
        ValueError: If the sweep is invalid
    """
    y = _as_numeric(y, 'y')
    y_hat = _as_numeric(y_hat, 'y_hat')
    check_shapes(y.shape, y_hat.shape, split=split, index=sample_index)
    sweep = validate_thresholds(thresholds)

    records = []
    for class_index in range(y.shape[0]):
        target = y[class_index]
        probabilities = y_hat[class_index]

        for threshold in sweep:
            precision, recall = precision_recall(probabilities > threshold, target)
            records.append(MetricRecord(
                split=split,
                sample_index=sample_index,
                class_index=class_index,
                threshold=float(threshold),
                precision=precision,
                recall=recall
            ))

    return records


def records_to_frame(records: Iterable[MetricRecord]) -> pd.DataFrame:
    """Tabulate metric records with the export column names."""
    rows = [astuple(r) for r in records]
    frame = pd.DataFrame(rows, columns=METRIC_COLUMNS)
    return frame.astype({'threshold': float, 'precision': float, 'recall': float})


def frame_to_records(frame: pd.DataFrame) -> List[MetricRecord]:
    """Rebuild metric records from a table such as a saved ``metrics.csv``."""
    missing = [c for c in METRIC_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Metric table is missing columns: {missing}")

    records = []
    for row in frame[METRIC_COLUMNS].itertuples(index=False):
        split, sample_index, class_index, threshold, precision, recall = row
        records.append(MetricRecord(
            split=None if pd.isna(split) else str(split),
            sample_index=None if pd.isna(sample_index) else int(sample_index),
            class_index=int(class_index),
            threshold=float(threshold),
            precision=float(precision),
            recall=float(recall)
        ))
    return records
