# scripts/evaluate.py
import os
import sys
import argparse
import traceback

# Add the parent directory to sys.path to resolve imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from segeval.config import EvaluationConfig
from segeval.evaluation import SegmentationEvaluator
from segeval.utils.logger import get_logger


def parse_args():
    parser = argparse.ArgumentParser(description='Evaluate saved segmentation predictions over a threshold sweep')

    parser.add_argument('--config', type=str, default=None,
                        help='Path to YAML evaluation config')
    parser.add_argument('--base-dir', type=str, default=None,
                        help='Directory with train/ and test/ prediction folders')
    parser.add_argument('--output-dir', type=str, default=None,
                        help='Path to output directory')
    parser.add_argument('--low', type=float, default=None,
                        help='Lowest threshold of the sweep')
    parser.add_argument('--high', type=float, default=None,
                        help='Highest threshold of the sweep')
    parser.add_argument('--steps', type=int, default=None,
                        help='Number of thresholds in the sweep')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of samples evaluated in parallel')
    parser.add_argument('--class-names', type=str, nargs='+', default=None,
                        help='Names of the class channels')
    parser.add_argument('--strict', action='store_true',
                        help='Abort on incomplete samples instead of skipping them')

    return parser.parse_args()


def build_config(args) -> EvaluationConfig:
    config = EvaluationConfig.from_yaml(args.config) if args.config else EvaluationConfig()

    if args.base_dir is not None:
        config.base_dir = args.base_dir
    if args.output_dir is not None:
        config.output_dir = args.output_dir
    config.thresholds.set_bounds(args.low, args.high, args.steps)
    if args.workers is not None:
        config.num_workers = args.workers
    if args.class_names is not None:
        config.class_names = args.class_names
    if args.strict:
        config.skip_incomplete = False

    return config


def main():
    logger = get_logger(name="evaluate")

    try:
        args = parse_args()
        config = build_config(args)

        evaluator = SegmentationEvaluator(config)
        result = evaluator.run()
        paths = evaluator.save(result)

        for name, path in paths.items():
            logger.info(f"{name}: {path}")

        if result.failures:
            logger.warning(f"{len(result.failures)} samples could not be evaluated, see {paths['failures']}")

    except Exception as e:
        logger.error(f"Error in evaluation: {e}")
        logger.error(traceback.format_exc())
        sys.exit(1)


if __name__ == '__main__':
    main()
