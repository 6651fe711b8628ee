"""Utilities package."""

from .logger import get_logger
from .io import ArtifactLoadError, load_array, save_array, load_yaml, save_yaml, save_table

__all__ = [
    'get_logger', 'ArtifactLoadError', 'load_array', 'save_array',
    'load_yaml', 'save_yaml', 'save_table'
]
