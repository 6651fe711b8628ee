from .evaluator import SegmentationEvaluator, EvaluationResult, SampleFailure
from .metrics import (
    UNDEFINED, METRIC_COLUMNS, MetricRecord, evaluate, is_undefined, precision_recall,
    records_to_frame, frame_to_records
)
from .aggregator import (
    AggregateRecord, RankedSample, MetricAccumulator, aggregate, rank_samples, filter_split,
    aggregates_to_frame, rankings_to_frame
)
from ..config.sweep import make_thresholds, validate_thresholds

__all__ = [
    'SegmentationEvaluator', 'EvaluationResult', 'SampleFailure',
    'UNDEFINED', 'METRIC_COLUMNS', 'MetricRecord', 'evaluate', 'is_undefined', 'precision_recall',
    'records_to_frame', 'frame_to_records',
    'AggregateRecord', 'RankedSample', 'MetricAccumulator', 'aggregate', 'rank_samples',
    'filter_split', 'aggregates_to_frame', 'rankings_to_frame',
    'make_thresholds', 'validate_thresholds'
]
