# segeval/inference/writer.py
import os
import torch
import numpy as np
from typing import Iterable, List, Sequence, Tuple, Union

from ..data.arrays import check_shapes
from ..data.catalogue import SampleTriple
from ..utils.io import save_array, to_numpy
from ..utils.logger import get_logger

ACTIVATIONS = ('softmax', 'sigmoid', 'none')


def save_triple(output_dir: str,
                split: str,
                index: int,
                x: Union[np.ndarray, torch.Tensor],
                y: Union[np.ndarray, torch.Tensor],
                y_hat: Union[np.ndarray, torch.Tensor],
                extension: str = '.npy') -> SampleTriple:
    """Save the input, label and prediction of one sample side by side.

    The input and label saved here must be the ones the model actually saw
    (after any random transform), not a reload of the source data.

    Args:
        output_dir: Base directory; files go to ``output_dir/split``
        split: Split name
        index: Sample index
        x: Input, channels x height x width
        y: Binary labels, classes x height x width
        y_hat: Probabilities, classes x height x width
        extension: File extension

    Returns:
        Triple describing the written files
    """
    x, y, y_hat = to_numpy(x), to_numpy(y), to_numpy(y_hat)
    check_shapes(y.shape, y_hat.shape, x.shape, split, index)

    split_dir = os.path.join(output_dir, split)
    paths = {tag: os.path.join(split_dir, f"{tag}{index}{extension}") for tag in ('x', 'y', 'y_hat')}

    save_array(x, paths['x'])
    save_array(y, paths['y'])
    save_array(y_hat, paths['y_hat'])

    return SampleTriple(split=split, index=index,
                        x_path=paths['x'], y_path=paths['y'], y_hat_path=paths['y_hat'])


class PredictionWriter:
    """Run a segmentation model and persist sample triples for later evaluation."""

    def __init__(
        self,
        model: torch.nn.Module,
        device: torch.device,
        output_dir: str,
        activation: str = 'softmax',
        extension: str = '.npy'
    ):
        """Initialize the writer.

        Args:
            model: Model mapping (N, C, H, W) inputs to (N, K, H, W) logits
            device: Device to run the model on
            output_dir: Base directory for the saved triples
            activation: 'softmax' over classes, 'sigmoid' per class, or 'none'
                when the model already outputs probabilities
            extension: File extension of the saved arrays
        """
        if activation not in ACTIVATIONS:
            raise ValueError(f"Unknown activation: {activation}. Available: {ACTIVATIONS}")

        self.model = model
        self.device = device
        self.output_dir = output_dir
        self.activation = activation
        self.extension = extension

        # Set model to evaluation mode
        self.model.eval()

        self.logger = get_logger(name="prediction_writer")

    def predict(self, x: torch.Tensor) -> torch.Tensor:
        """Predict per-class probabilities for a batch.

        Args:
            x: Batch of inputs (N, C, H, W)

        Returns:
            Probabilities (N, K, H, W) on the CPU
        """
        with torch.no_grad():
            logits = self.model(x.to(self.device))

            if self.activation == 'softmax':
                probabilities = torch.softmax(logits, dim=1)
            elif self.activation == 'sigmoid':
                probabilities = torch.sigmoid(logits)
            else:
                probabilities = logits

        return probabilities.cpu()

    def write_batch(self,
                    split: str,
                    indices: Sequence[int],
                    x: torch.Tensor,
                    y: torch.Tensor) -> List[SampleTriple]:
        """Predict a batch and save one triple per item.

        Args:
            split: Split name
            indices: Sample index of each batch item
            x: Inputs (N, C, H, W)
            y: Labels (N, K, H, W)
        """
        if len(indices) != x.shape[0] or y.shape[0] != x.shape[0]:
            raise ValueError(f"Batch of {x.shape[0]} inputs, {y.shape[0]} labels and "
                             f"{len(indices)} indices")

        y_hat = self.predict(x)

        triples = []
        for i, index in enumerate(indices):
            triples.append(save_triple(self.output_dir, split, int(index), x[i], y[i], y_hat[i],
                                       extension=self.extension))
        return triples

    def write_loader(self, loader: Iterable[Tuple[torch.Tensor, torch.Tensor]], split: str,
                     start_index: int = 0) -> List[SampleTriple]:
        """Predict every batch of a loader, numbering samples consecutively.

        Args:
            loader: Iterable of (inputs, labels) batches
            split: Split name
            start_index: Index of the first sample
        """
        triples = []
        next_index = start_index
        for x, y in loader:
            indices = range(next_index, next_index + x.shape[0])
            triples.extend(self.write_batch(split, indices, x, y))
            next_index += x.shape[0]

        self.logger.info(f"Wrote {len(triples)} {split} samples to {os.path.join(self.output_dir, split)}")
        return triples
