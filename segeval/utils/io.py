import os
import yaml
import torch
import numpy as np
import pandas as pd
from typing import Dict, Union


class ArtifactLoadError(IOError):
    """Raised when a saved array artifact cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load array {path}: {reason}")


def _ensure_parent(file_path: str) -> None:
    parent = os.path.dirname(file_path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def to_numpy(array: Union[np.ndarray, torch.Tensor]) -> np.ndarray:
    """Convert a tensor or array-like to a numpy array."""
    if isinstance(array, torch.Tensor):
        return array.detach().cpu().numpy()
    return np.asarray(array)


def load_array(file_path: str, mmap: bool = False) -> np.ndarray:
    """Load an array saved in ``.npy`` format.

    Args:
        file_path: Path to the array file
        mmap: Memory-map the file read-only instead of reading it into memory.
            Useful when only the shape is needed.

    Returns:
        Array with the shape and dtype it was saved with

    Raises:
        ArtifactLoadError: If the file is missing, truncated or not a plain
            numeric array
    """
    if not os.path.exists(file_path):
        raise ArtifactLoadError(file_path, "file not found")

    try:
        array = np.load(file_path, mmap_mode='r' if mmap else None, allow_pickle=False)
    except (ValueError, EOFError, OSError) as e:
        raise ArtifactLoadError(file_path, str(e)) from e

    if not isinstance(array, np.ndarray):
        # .npz archives come back as a lazy mapping
        array.close()
        raise ArtifactLoadError(file_path, f"expected a single array, got {type(array).__name__}")

    return array


def save_array(array: Union[np.ndarray, torch.Tensor], file_path: str) -> None:
    """Save an array (or tensor) to ``.npy`` format.

    Args:
        array: Array or tensor to save
        file_path: Destination path
    """
    _ensure_parent(file_path)

    try:
        with open(file_path, 'wb') as f:
            np.save(f, to_numpy(array), allow_pickle=False)
    except Exception as e:
        raise IOError(f"Failed to save array {file_path}: {e}")


def load_yaml(file_path: str) -> Dict:
    """Load a YAML file.

    Args:
        file_path: Path to the YAML file

    Returns:
        Dictionary with loaded data
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"YAML file not found at {file_path}")

    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f)

        return data or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {file_path}: {e}")
    except Exception as e:
        raise IOError(f"Failed to load YAML {file_path}: {e}")


def save_yaml(data: Dict, file_path: str) -> None:
    """Save data to a YAML file.

    Args:
        data: Data to save
        file_path: Path to save the file
    """
    _ensure_parent(file_path)

    try:
        with open(file_path, 'w') as f:
            yaml.safe_dump(data, f, sort_keys=False)
    except Exception as e:
        raise IOError(f"Failed to save YAML {file_path}: {e}")


def save_table(frame: pd.DataFrame, file_path: str, sep: str = ',') -> None:
    """Save a table as a delimited text file.

    Undefined metric values are written as empty fields.

    Args:
        frame: Table to save
        file_path: Destination path
        sep: Field delimiter
    """
    _ensure_parent(file_path)

    try:
        frame.to_csv(file_path, sep=sep, index=False)
    except Exception as e:
        raise IOError(f"Failed to save table {file_path}: {e}")
