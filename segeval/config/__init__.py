"""Configuration module for segmentation evaluation."""

from .eval_config import EvaluationConfig, ThresholdConfig
from .sweep import make_thresholds, validate_thresholds

__all__ = [
    'EvaluationConfig', 'ThresholdConfig', 'make_thresholds', 'validate_thresholds'
]
