# segeval/config/eval_config.py
from dataclasses import dataclass, field, asdict, fields
from typing import Any, Dict, List, Optional

import numpy as np

from .sweep import make_thresholds, validate_thresholds
from ..utils.io import load_yaml


@dataclass
class ThresholdConfig:
    """Configuration for the threshold sweep."""

    low: float = 0.1
    high: float = 0.9
    steps: int = 9
    values: Optional[List[float]] = None  # Explicit sweep, overrides low/high/steps

    def sweep(self) -> np.ndarray:
        """Return the validated threshold sweep."""
        if self.values is not None:
            return validate_thresholds(self.values)
        return make_thresholds(self.low, self.high, self.steps)

    def set_bounds(self,
                   low: Optional[float] = None,
                   high: Optional[float] = None,
                   steps: Optional[int] = None) -> None:
        """Override the evenly spaced sweep.

        Any explicit ``values`` are dropped so the new bounds take effect.
        Bounds left as None keep their current setting.
        """
        if low is None and high is None and steps is None:
            return
        if low is not None:
            self.low = low
        if high is not None:
            self.high = high
        if steps is not None:
            self.steps = steps
        self.values = None


@dataclass
class EvaluationConfig:
    """Configuration for one evaluation run."""

    base_dir: str = "data/predictions"
    output_dir: str = "experiments/evaluation"
    thresholds: ThresholdConfig = field(default_factory=ThresholdConfig)
    splits: List[str] = field(default_factory=lambda: ["train", "test"])
    extension: str = ".npy"

    # Optional names for the class channels, used in exported tables
    class_names: Optional[List[str]] = None

    # Samples are independent; >1 evaluates them on a thread pool
    num_workers: int = 1

    # Skip incomplete triples with a warning instead of aborting
    skip_incomplete: bool = True

    log_file: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.thresholds, dict):
            self.thresholds = ThresholdConfig(**self.thresholds)
        if not self.splits:
            raise ValueError("At least one split must be configured")
        if self.num_workers < 1:
            raise ValueError(f"num_workers must be >= 1, got {self.num_workers}")
        if not self.extension.startswith('.'):
            self.extension = '.' + self.extension

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvaluationConfig':
        """Create a configuration from a dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    @classmethod
    def from_yaml(cls, file_path: str) -> 'EvaluationConfig':
        """Load a configuration from a YAML file."""
        return cls.from_dict(load_yaml(file_path))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def class_name(self, class_index: int) -> str:
        """Name of a class channel, falling back to its index."""
        if self.class_names and class_index < len(self.class_names):
            return self.class_names[class_index]
        return str(class_index)
