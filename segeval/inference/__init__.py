"""Writing model predictions for offline evaluation."""

from .writer import PredictionWriter, save_triple

__all__ = [
    'PredictionWriter', 'save_triple'
]
