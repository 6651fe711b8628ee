# segeval/evaluation/aggregator.py
from dataclasses import dataclass, astuple
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from .metrics import UNDEFINED, MetricRecord, is_undefined

METRIC_KINDS = ('precision', 'recall')

AGGREGATE_COLUMNS = ['sample_index', 'class', 'mean_precision', 'mean_recall', 'split',
                     'precision_count', 'recall_count']
RANKING_COLUMNS = ['class', 'metric', 'value', 'sample_index', 'split', 'rank']

GroupKey = Tuple[Optional[str], Optional[int], int]

T = TypeVar('T')


@dataclass(frozen=True)
class AggregateRecord:
    """Threshold-averaged precision and recall of one class of one sample.

    The counts are the number of defined values behind each mean; a count of
    zero means the mean is undefined.
    """

    sample_index: Optional[int]
    class_index: int
    mean_precision: float
    mean_recall: float
    split: Optional[str]
    precision_count: int = 0
    recall_count: int = 0

    def value(self, metric: str) -> float:
        if metric == 'precision':
            return self.mean_precision
        if metric == 'recall':
            return self.mean_recall
        raise ValueError(f"Unknown metric kind: {metric}")


@dataclass(frozen=True)
class RankedSample:
    """Position of one sample in the ranking of one class and metric."""

    class_index: int
    metric: str
    value: float
    sample_index: Optional[int]
    split: Optional[str]
    rank: int


def _split_key(split: Optional[str]) -> str:
    return '' if split is None else split


def _index_key(index: Optional[int]) -> int:
    return -1 if index is None else index


class MetricAccumulator:
    """Sum-and-count accumulation of metric records.

    Accumulators built from disjoint record sets (for instance by parallel
    workers) can be merged in any order and give the same result as one
    accumulator fed with every record.
    """

    def __init__(self):
        # key -> [precision_sum, precision_count, recall_sum, recall_count]
        self._groups: Dict[GroupKey, List[float]] = {}

    def __len__(self) -> int:
        return len(self._groups)

    def _group(self, key: GroupKey) -> List[float]:
        if key not in self._groups:
            self._groups[key] = [0.0, 0, 0.0, 0]
        return self._groups[key]

    def add(self, record: MetricRecord) -> None:
        group = self._group((record.split, record.sample_index, record.class_index))
        if not is_undefined(record.precision):
            group[0] += record.precision
            group[1] += 1
        if not is_undefined(record.recall):
            group[2] += record.recall
            group[3] += 1

    def update(self, records: Iterable[MetricRecord]) -> 'MetricAccumulator':
        for record in records:
            self.add(record)
        return self

    def merge(self, other: 'MetricAccumulator') -> 'MetricAccumulator':
        """Fold another accumulator into this one."""
        for key, (p_sum, p_count, r_sum, r_count) in other._groups.items():
            group = self._group(key)
            group[0] += p_sum
            group[1] += p_count
            group[2] += r_sum
            group[3] += r_count
        return self

    def finalize(self) -> List[AggregateRecord]:
        """Turn the sums into means, ordered by class, split and sample index."""
        aggregates = []
        for (split, sample_index, class_index), (p_sum, p_count, r_sum, r_count) in self._groups.items():
            aggregates.append(AggregateRecord(
                sample_index=sample_index,
                class_index=class_index,
                mean_precision=p_sum / p_count if p_count else UNDEFINED,
                mean_recall=r_sum / r_count if r_count else UNDEFINED,
                split=split,
                precision_count=int(p_count),
                recall_count=int(r_count)
            ))

        aggregates.sort(key=lambda a: (a.class_index, _split_key(a.split), _index_key(a.sample_index)))
        return aggregates


def filter_split(items: Iterable[T], split: Optional[str]) -> Tuple[T, ...]:
    """Read-only view of records, aggregates or rankings for one split.

    Args:
        items: Objects with a ``split`` attribute
        split: Split to keep, or None to keep everything
    """
    return tuple(item for item in items if split is None or item.split == split)


def aggregate(records: Iterable[MetricRecord], split: Optional[str] = None) -> List[AggregateRecord]:
    """Average metric records over the threshold axis.

    Undefined values are left out of both the sum and the count. A group with
    no defined value at all gets an undefined mean rather than 0.

    Args:
        records: Metric records of any number of samples
        split: Only aggregate records from this split

    Returns:
        One aggregate per (split, sample, class)
    """
    return MetricAccumulator().update(filter_split(records, split)).finalize()


def rank_samples(aggregates: Iterable[AggregateRecord],
                 metric: Optional[str] = None,
                 split: Optional[str] = None) -> List[RankedSample]:
    """Rank samples per class by their mean precision and/or recall.

    Ordering is class ascending, metric kind (precision before recall), value
    descending, then sample index ascending. Undefined values come after all
    defined ones. Ranks restart at 1 for every (class, metric) pair.

    Args:
        aggregates: Aggregate records to rank
        metric: 'precision', 'recall', or None for both
        split: Only rank samples from this split

    Returns:
        Ranked entries
    """
    if metric is not None and metric not in METRIC_KINDS:
        raise ValueError(f"Unknown metric kind: {metric}")
    kinds = METRIC_KINDS if metric is None else (metric,)

    entries = []
    for record in filter_split(aggregates, split):
        for kind in kinds:
            entries.append((kind, record.value(kind), record))

    def sort_key(entry):
        kind, value, record = entry
        undefined = is_undefined(value)
        return (
            record.class_index,
            METRIC_KINDS.index(kind),
            undefined,
            0.0 if undefined else -value,
            _index_key(record.sample_index),
            _split_key(record.split)
        )

    entries.sort(key=sort_key)

    ranked = []
    group, position = None, 0
    for kind, value, record in entries:
        if (record.class_index, kind) != group:
            group, position = (record.class_index, kind), 0
        position += 1
        ranked.append(RankedSample(
            class_index=record.class_index,
            metric=kind,
            value=value,
            sample_index=record.sample_index,
            split=record.split,
            rank=position
        ))

    return ranked


def _with_class_names(frame: pd.DataFrame, class_names: Optional[Sequence[str]]) -> pd.DataFrame:
    if class_names:
        names = list(class_names)
        frame.insert(frame.columns.get_loc('class') + 1, 'class_name',
                     [names[c] if c < len(names) else str(c) for c in frame['class']])
    return frame


def aggregates_to_frame(aggregates: Iterable[AggregateRecord],
                        class_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Tabulate aggregate records for export."""
    frame = pd.DataFrame([astuple(a) for a in aggregates], columns=AGGREGATE_COLUMNS)
    frame = frame.astype({'mean_precision': float, 'mean_recall': float})
    return _with_class_names(frame, class_names)


def rankings_to_frame(rankings: Iterable[RankedSample],
                      class_names: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Tabulate ranked entries for export."""
    frame = pd.DataFrame([astuple(r) for r in rankings], columns=RANKING_COLUMNS)
    frame = frame.astype({'value': float})
    return _with_class_names(frame, class_names)
