# segeval/evaluation/evaluator.py
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd
from tqdm import tqdm

from ..config.eval_config import EvaluationConfig
from ..data.arrays import ShapeMismatchError
from ..data.catalogue import (
    ArtifactCatalogue, DuplicateArtifactError, IncompleteTripleError, SampleTriple, index_artifacts
)
from ..utils.io import ArtifactLoadError, save_table, save_yaml
from ..utils.logger import get_logger
from .aggregator import (
    AggregateRecord, MetricAccumulator, RankedSample, aggregates_to_frame, filter_split,
    rank_samples, rankings_to_frame
)
from .metrics import MetricRecord, evaluate, records_to_frame


@dataclass(frozen=True)
class SampleFailure:
    """A sample that could not be evaluated."""

    split: str
    index: int
    path: str
    error_type: str
    message: str


@dataclass
class EvaluationResult:
    """Output of one evaluation run."""

    records: List[MetricRecord] = field(default_factory=list)
    aggregates: List[AggregateRecord] = field(default_factory=list)
    rankings: List[RankedSample] = field(default_factory=list)
    failures: List[SampleFailure] = field(default_factory=list)
    incomplete: List[IncompleteTripleError] = field(default_factory=list)
    duplicates: List[DuplicateArtifactError] = field(default_factory=list)

    def for_split(self, split: str) -> 'EvaluationResult':
        """View of the result restricted to one split."""
        return EvaluationResult(
            records=list(filter_split(self.records, split)),
            aggregates=list(filter_split(self.aggregates, split)),
            rankings=list(filter_split(self.rankings, split)),
            failures=list(filter_split(self.failures, split)),
            incomplete=[e for e in self.incomplete if e.split == split],
            duplicates=[e for e in self.duplicates if e.split == split]
        )


class SegmentationEvaluator:
    """Evaluate saved probability maps against ground truth over a threshold sweep."""

    def __init__(self, config: EvaluationConfig):
        """Initialize the evaluator.

        Args:
            config: Evaluation configuration
        """
        self.config = config
        self.thresholds = config.thresholds.sweep()
        self.logger = get_logger(name="evaluator", log_file=config.log_file)

    def index(self) -> ArtifactCatalogue:
        """Find the sample triples to evaluate.

        Raises:
            IndexingError: If the base directory cannot be indexed, or if a
                sample is incomplete or has duplicate files and
                ``skip_incomplete`` is disabled
        """
        catalogue = index_artifacts(
            self.config.base_dir,
            splits=self.config.splits,
            extension=self.config.extension
        )

        if not self.config.skip_incomplete:
            catalogue.raise_for_rejected()

        for error in catalogue.rejected:
            self.logger.warning(f"Skipping sample: {error}")

        return catalogue

    def evaluate_triple(self, triple: SampleTriple) -> List[MetricRecord]:
        """Compute the metric records of one sample.

        The arrays only live for the duration of this call.
        """
        arrays = triple.load()
        try:
            return evaluate(arrays.y, arrays.y_hat, self.thresholds,
                            split=triple.split, sample_index=triple.index)
        finally:
            del arrays

    def _evaluate_isolated(self, triple: SampleTriple
                           ) -> Tuple[SampleTriple, Optional[List[MetricRecord]], Optional[SampleFailure]]:
        try:
            return triple, self.evaluate_triple(triple), None
        except ArtifactLoadError as e:
            self.logger.error(f"Could not load sample {triple.split}/{triple.index}: {e}")
            return triple, None, SampleFailure(triple.split, triple.index, e.path,
                                               type(e).__name__, e.reason)
        except ShapeMismatchError as e:
            self.logger.error(f"Shape mismatch in sample {triple.split}/{triple.index} "
                              f"({triple.y_hat_path}): {e}")
            return triple, None, SampleFailure(triple.split, triple.index, triple.y_hat_path,
                                               type(e).__name__, str(e))
        except (TypeError, ValueError) as e:
            self.logger.error(f"Could not evaluate sample {triple.split}/{triple.index} "
                              f"({triple.y_hat_path}): {e}")
            return triple, None, SampleFailure(triple.split, triple.index, triple.y_hat_path,
                                               type(e).__name__, str(e))

    def run(self, catalogue: Optional[ArtifactCatalogue] = None) -> EvaluationResult:
        """Index, evaluate every sample, and aggregate.

        A sample that fails to load, has inconsistent shapes or holds
        non-numeric data is recorded as a failure; the remaining samples are
        still evaluated.

        Args:
            catalogue: Pre-built catalogue; indexed from the config if None

        Returns:
            Records in catalogue order, aggregates, rankings and failures
        """
        if catalogue is None:
            catalogue = self.index()

        self.logger.info(f"Evaluating {len(catalogue)} samples over {len(self.thresholds)} thresholds "
                         f"({self.thresholds[0]:.3f} - {self.thresholds[-1]:.3f})")

        per_sample: Dict[Tuple[str, int], List[MetricRecord]] = {}
        failed: Dict[Tuple[str, int], SampleFailure] = {}
        accumulator = MetricAccumulator()

        def collect(outcome):
            triple, records, failure = outcome
            if failure is not None:
                failed[triple.key] = failure
                return
            per_sample[triple.key] = records
            accumulator.merge(MetricAccumulator().update(records))

        if self.config.num_workers == 1:
            for triple in tqdm(catalogue, desc="Evaluating", unit="sample"):
                collect(self._evaluate_isolated(triple))
        else:
            with ThreadPoolExecutor(max_workers=self.config.num_workers) as executor:
                futures = [executor.submit(self._evaluate_isolated, t) for t in catalogue]
                for future in tqdm(as_completed(futures), total=len(futures),
                                   desc="Evaluating", unit="sample"):
                    collect(future.result())

        records = []
        failures = []
        for triple in catalogue:
            if triple.key in per_sample:
                records.extend(per_sample[triple.key])
            elif triple.key in failed:
                failures.append(failed[triple.key])

        aggregates = accumulator.finalize()
        rankings = rank_samples(aggregates)

        self.logger.info(f"Evaluated {len(per_sample)} samples, {len(failures)} failed, "
                         f"{len(catalogue.rejected)} rejected at indexing")

        return EvaluationResult(
            records=records,
            aggregates=aggregates,
            rankings=rankings,
            failures=failures,
            incomplete=list(catalogue.incomplete),
            duplicates=list(catalogue.duplicates)
        )

    def save(self, result: EvaluationResult, output_dir: Optional[str] = None) -> Dict[str, str]:
        """Write the result tables and a config snapshot.

        Args:
            result: Result of :meth:`run`
            output_dir: Target directory, defaults to ``config.output_dir``

        Returns:
            Mapping of table name to written path
        """
        output_dir = output_dir or self.config.output_dir
        class_names = self.config.class_names

        metrics = records_to_frame(result.records)
        if class_names:
            metrics.insert(3, 'class_name', [self.config.class_name(c) for c in metrics['class']])

        failures = pd.DataFrame(
            [(f.split, f.index, f.path, f.error_type, f.message) for f in result.failures],
            columns=['split', 'sample_index', 'path', 'error_type', 'message']
        )

        tables = {
            'metrics': metrics,
            'aggregates': aggregates_to_frame(result.aggregates, class_names),
            'rankings': rankings_to_frame(result.rankings, class_names),
            'failures': failures
        }

        paths = {}
        for name, frame in tables.items():
            paths[name] = os.path.join(output_dir, f"{name}.csv")
            save_table(frame, paths[name])

        paths['config'] = os.path.join(output_dir, "config.yaml")
        save_yaml(self.config.to_dict(), paths['config'])

        self.logger.info(f"Saved evaluation tables to {output_dir}")
        return paths
