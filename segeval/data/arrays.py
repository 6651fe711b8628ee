# segeval/data/arrays.py
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


class ShapeMismatchError(ValueError):
    """Raised when label and prediction tensors of a sample disagree in shape."""

    def __init__(self, message: str, split: Optional[str] = None, index: Optional[int] = None):
        self.split = split
        self.index = index
        if split is not None and index is not None:
            message = f"{split}/{index}: {message}"
        super().__init__(message)


def check_shapes(y_shape: Tuple[int, ...],
                 y_hat_shape: Tuple[int, ...],
                 x_shape: Optional[Tuple[int, ...]] = None,
                 split: Optional[str] = None,
                 index: Optional[int] = None) -> None:
    """Validate the shapes of one sample's tensors.

    ``y`` and ``y_hat`` must be identical (classes x height x width). ``x`` may
    have any channel count but must share the spatial dimensions.
    """
    if tuple(y_shape) != tuple(y_hat_shape):
        raise ShapeMismatchError(
            f"label shape {tuple(y_shape)} != prediction shape {tuple(y_hat_shape)}", split, index)
    if len(y_shape) != 3:
        raise ShapeMismatchError(
            f"expected classes x height x width, got shape {tuple(y_shape)}", split, index)
    if x_shape is not None and (len(x_shape) != 3 or tuple(x_shape[1:]) != tuple(y_shape[1:])):
        raise ShapeMismatchError(
            f"input shape {tuple(x_shape)} does not match spatial size {tuple(y_shape[1:])}",
            split, index)


@dataclass(frozen=True)
class SampleArrays:
    """Loaded arrays of one sample. Hold only for the duration of one evaluation."""

    x: np.ndarray
    y: np.ndarray
    y_hat: np.ndarray
    split: Optional[str] = None
    index: Optional[int] = None

    def __post_init__(self):
        check_shapes(self.y.shape, self.y_hat.shape, self.x.shape, self.split, self.index)

    @property
    def num_classes(self) -> int:
        return self.y.shape[0]

    @property
    def spatial_size(self) -> Tuple[int, int]:
        return self.y.shape[1], self.y.shape[2]
