# segeval/data/catalogue.py
import os
import re
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .arrays import SampleArrays
from ..utils.io import load_array
from ..utils.logger import get_logger

TAGS = ('x', 'y', 'y_hat')

# y_hat has to be tried before y
FILENAME_PATTERN = re.compile(r'^(?P<tag>y_hat|x|y)_?(?P<index>\d+)$')

logger = get_logger(name="catalogue")


class IndexingError(Exception):
    """Raised when a prediction directory, or one of its samples, cannot be indexed."""


class IncompleteTripleError(IndexingError):
    """A sample is missing one or more of its x / y / y_hat files."""

    def __init__(self, split: str, index: int, missing: Sequence[str], present: Dict[str, str]):
        self.split = split
        self.index = index
        self.missing = tuple(missing)
        self.present = dict(present)
        super().__init__(
            f"Sample {split}/{index} is missing {', '.join(self.missing)} "
            f"(found: {', '.join(sorted(self.present)) or 'nothing'})"
        )


class DuplicateArtifactError(IndexingError):
    """Several files map to the same tag of one sample, e.g. ``x1.npy`` and ``x_01.npy``."""

    def __init__(self, split: str, index: int, tag: str, paths: Sequence[str]):
        self.split = split
        self.index = index
        self.tag = tag
        self.paths = tuple(paths)
        super().__init__(
            f"Sample {split}/{index} has {len(self.paths)} {tag} files: {', '.join(self.paths)}"
        )


@dataclass(frozen=True)
class SampleTriple:
    """Paths of the input, label and prediction arrays of one sample."""

    split: str
    index: int
    x_path: str
    y_path: str
    y_hat_path: str

    @property
    def key(self) -> Tuple[str, int]:
        return self.split, self.index

    def path(self, tag: str) -> str:
        return {'x': self.x_path, 'y': self.y_path, 'y_hat': self.y_hat_path}[tag]

    def load(self, mmap_input: bool = True) -> SampleArrays:
        """Load the sample arrays.

        Args:
            mmap_input: Memory-map ``x`` instead of reading it. Metrics never
                read the input pixels, only its shape.

        Returns:
            Validated sample arrays

        Raises:
            ArtifactLoadError: If any of the files cannot be read
            ShapeMismatchError: If the shapes are inconsistent
        """
        x = load_array(self.x_path, mmap=mmap_input)
        y = load_array(self.y_path)
        y_hat = load_array(self.y_hat_path)
        return SampleArrays(x=x, y=y, y_hat=y_hat, split=self.split, index=self.index)


class ArtifactCatalogue:
    """Ordered collection of sample triples found under a base directory.

    Samples that could not be paired are kept apart in ``rejected``, one
    error per sample, in the same split and index order as the triples.
    """

    def __init__(self,
                 base_dir: str,
                 triples: Sequence[SampleTriple],
                 rejected: Sequence[IndexingError] = ()):
        self.base_dir = base_dir
        self.triples = tuple(triples)
        self.rejected = tuple(rejected)

    def __len__(self) -> int:
        return len(self.triples)

    def __iter__(self) -> Iterator[SampleTriple]:
        return iter(self.triples)

    def __getitem__(self, item: int) -> SampleTriple:
        return self.triples[item]

    @property
    def splits(self) -> List[str]:
        seen = []
        for triple in self.triples:
            if triple.split not in seen:
                seen.append(triple.split)
        return seen

    def split(self, name: str) -> Tuple[SampleTriple, ...]:
        """Triples belonging to one split, in catalogue order."""
        return tuple(t for t in self.triples if t.split == name)

    @property
    def incomplete(self) -> Tuple[IncompleteTripleError, ...]:
        return tuple(e for e in self.rejected if isinstance(e, IncompleteTripleError))

    @property
    def duplicates(self) -> Tuple[DuplicateArtifactError, ...]:
        return tuple(e for e in self.rejected if isinstance(e, DuplicateArtifactError))

    def raise_for_rejected(self) -> None:
        """Raise the error of the first rejected sample, if any."""
        if self.rejected:
            raise self.rejected[0]

    def __repr__(self) -> str:
        return (f"ArtifactCatalogue(base_dir={self.base_dir!r}, triples={len(self.triples)}, "
                f"rejected={len(self.rejected)})")


def parse_artifact_name(filename: str, extension: str = '.npy') -> Optional[Tuple[str, int]]:
    """Split a file name into its artifact tag and sample index.

    Returns:
        ``(tag, index)`` or None if the name does not follow the convention
    """
    if not filename.endswith(extension):
        return None
    match = FILENAME_PATTERN.match(filename[:-len(extension)])
    if match is None:
        return None
    return match.group('tag'), int(match.group('index'))


def index_artifacts(base_dir: str,
                    splits: Sequence[str] = ('train', 'test'),
                    extension: str = '.npy') -> ArtifactCatalogue:
    """Scan a prediction directory and pair up sample triples.

    Expects ``base_dir/<split>/{x,y,y_hat}<index><extension>``. No array is
    loaded.

    Samples missing a file, or with more than one file for the same tag,
    are reported on ``catalogue.rejected`` and left out of the triples.

    Args:
        base_dir: Directory holding one sub-directory per split
        splits: Split sub-directories to scan, in output order
        extension: File extension of the array files

    Returns:
        Catalogue ordered by split (as given) then by sample index

    Raises:
        IndexingError: If the base directory or every split directory is missing
    """
    if not os.path.isdir(base_dir):
        raise IndexingError(f"Base directory not found: {base_dir}")

    split_dirs = []
    for split in dict.fromkeys(splits):
        split_dir = os.path.join(base_dir, split)
        if os.path.isdir(split_dir):
            split_dirs.append((split, split_dir))
        else:
            logger.warning(f"Split directory not found: {split_dir}")

    if not split_dirs:
        raise IndexingError(f"None of the splits {list(splits)} exist under {base_dir}")

    triples = []
    rejected = []

    for split, split_dir in split_dirs:
        found: Dict[int, Dict[str, List[str]]] = defaultdict(lambda: defaultdict(list))

        for filename in sorted(os.listdir(split_dir)):
            file_path = os.path.join(split_dir, filename)
            if not os.path.isfile(file_path):
                continue

            parsed = parse_artifact_name(filename, extension)
            if parsed is None:
                logger.debug(f"Ignoring {file_path}")
                continue

            tag, index = parsed
            found[index][tag].append(file_path)

        for index in sorted(found):
            candidates = found[index]
            duplicated = [tag for tag in TAGS if len(candidates.get(tag, ())) > 1]
            if duplicated:
                tag = duplicated[0]
                error = DuplicateArtifactError(split, index, tag, candidates[tag])
                logger.warning(str(error))
                rejected.append(error)
                continue

            paths = {tag: files[0] for tag, files in candidates.items()}
            missing = [tag for tag in TAGS if tag not in paths]
            if missing:
                rejected.append(IncompleteTripleError(split, index, missing, paths))
                continue
            triples.append(SampleTriple(
                split=split,
                index=index,
                x_path=paths['x'],
                y_path=paths['y'],
                y_hat_path=paths['y_hat']
            ))

    logger.info(f"Indexed {len(triples)} samples under {base_dir} "
                f"({len(rejected)} rejected)")

    return ArtifactCatalogue(base_dir, triples, rejected)
