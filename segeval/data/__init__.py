# segeval/data/__init__.py
"""Prediction artifact discovery and loading."""

from .arrays import SampleArrays, ShapeMismatchError, check_shapes
from .catalogue import (
    SampleTriple, ArtifactCatalogue, IndexingError, IncompleteTripleError,
    DuplicateArtifactError, index_artifacts, parse_artifact_name
)

__all__ = [
    'SampleArrays',
    'ShapeMismatchError',
    'check_shapes',
    'SampleTriple',
    'ArtifactCatalogue',
    'IndexingError',
    'IncompleteTripleError',
    'DuplicateArtifactError',
    'index_artifacts',
    'parse_artifact_name'
]
