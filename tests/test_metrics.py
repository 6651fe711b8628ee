import os
import sys
import math
import unittest
import numpy as np
import pandas as pd
import torch

# Add the parent directory to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from segeval.data.arrays import ShapeMismatchError
from segeval.evaluation.metrics import (
    METRIC_COLUMNS, MetricRecord, evaluate, is_undefined, precision_recall,
    records_to_frame, frame_to_records
)
from segeval.config.sweep import make_thresholds, validate_thresholds


def two_class_tile(class0_probabilities):
    """Two-class 2x2 sample whose class 0 has a single positive pixel."""
    y = np.zeros((2, 2, 2), dtype=np.float32)
    y[0] = [[1, 0], [0, 0]]
    y[1] = 1 - y[0]
    y_hat = np.zeros((2, 2, 2), dtype=np.float32)
    y_hat[0] = class0_probabilities
    y_hat[1] = 1 - y_hat[0]
    return y, y_hat


class TestEvaluate(unittest.TestCase):
    """Test cases for the per-sample metrics engine."""

    def setUp(self):
        self.thresholds = [0.25, 0.5, 0.75]
        self.rng = np.random.default_rng(0)

    def test_confident_correct_prediction(self):
        """Test a prediction that matches the label at threshold 0.5."""
        y, y_hat = two_class_tile([[0.8, 0.1], [0.2, 0.3]])

        records = evaluate(y, y_hat, [0.5])
        class0 = records[0]

        self.assertEqual(class0.class_index, 0)
        self.assertEqual(class0.threshold, 0.5)
        self.assertEqual(class0.precision, 1.0)
        self.assertEqual(class0.recall, 1.0)

    def test_no_predicted_positives(self):
        """Test that precision is undefined when nothing is predicted."""
        y, y_hat = two_class_tile([[0.1, 0.1], [0.1, 0.1]])

        class0 = evaluate(y, y_hat, [0.5])[0]

        self.assertTrue(is_undefined(class0.precision))
        self.assertEqual(class0.recall, 0.0)

    def test_identical_label_and_prediction(self):
        """Test y_hat == y, with one class never present."""
        y = np.zeros((2, 4, 4), dtype=np.float32)
        y[0, :2, :2] = 1

        records = evaluate(y, y.copy(), self.thresholds)

        for record in records:
            if record.class_index == 0:
                self.assertEqual(record.precision, 1.0)
                self.assertEqual(record.recall, 1.0)
            else:
                self.assertTrue(is_undefined(record.precision))
                self.assertTrue(is_undefined(record.recall))

    def test_all_zero_prediction(self):
        """Test that an empty prediction gives zero recall and undefined precision."""
        y = np.zeros((1, 8, 8))
        y[0, 3, 3] = 1
        y_hat = np.zeros_like(y)

        for record in evaluate(y, y_hat, self.thresholds):
            self.assertEqual(record.recall, 0.0)
            self.assertTrue(is_undefined(record.precision))

    def test_no_ground_truth(self):
        """Test that recall is undefined without positive labels."""
        y = np.zeros((1, 8, 8))
        y_hat = self.rng.random((1, 8, 8))

        records = evaluate(y, y_hat, self.thresholds)

        for record in records:
            self.assertTrue(is_undefined(record.recall))

        # Something is predicted at 0.25 on random probabilities, all of it wrong
        self.assertEqual(records[0].precision, 0.0)

    def test_strict_inequality(self):
        """Test that a probability equal to the threshold is not a positive."""
        y = np.ones((1, 2, 2))
        y_hat = np.full((1, 2, 2), 0.5)

        record = evaluate(y, y_hat, [0.5])[0]

        self.assertTrue(is_undefined(record.precision))
        self.assertEqual(record.recall, 0.0)

    def test_record_order(self):
        """Test that records are ordered by class, then threshold."""
        y = (self.rng.random((3, 6, 6)) > 0.5).astype(np.float32)
        y_hat = self.rng.random((3, 6, 6)).astype(np.float32)

        records = evaluate(y, y_hat, self.thresholds, split='test', sample_index=7)

        self.assertEqual(len(records), 9)
        keys = [(r.class_index, r.threshold) for r in records]
        self.assertEqual(keys, sorted(keys))
        self.assertTrue(all(r.split == 'test' and r.sample_index == 7 for r in records))

    def test_recall_non_increasing(self):
        """Test that recall and predicted positives never grow with the threshold.

        Precision is not monotonic and is not checked.
        """
        y = (self.rng.random((2, 16, 16)) > 0.6).astype(np.float32)
        y_hat = self.rng.random((2, 16, 16))
        thresholds = make_thresholds(0.05, 0.95, 19)

        records = evaluate(y, y_hat, thresholds)

        for class_index in range(2):
            recalls = [r.recall for r in records if r.class_index == class_index]
            self.assertTrue(all(a >= b for a, b in zip(recalls, recalls[1:])))

            counts = [np.count_nonzero(y_hat[class_index] > t) for t in thresholds]
            self.assertTrue(all(a >= b for a, b in zip(counts, counts[1:])))

    def test_torch_inputs(self):
        """Test that torch tensors give the same records as numpy arrays."""
        y = (self.rng.random((2, 5, 5)) > 0.5).astype(np.float32)
        y_hat = self.rng.random((2, 5, 5)).astype(np.float32)

        from_numpy = records_to_frame(evaluate(y, y_hat, self.thresholds))
        from_torch = records_to_frame(evaluate(torch.from_numpy(y), torch.from_numpy(y_hat), self.thresholds))

        pd.testing.assert_frame_equal(from_numpy, from_torch)

    def test_shape_mismatch(self):
        """Test that differing label and prediction shapes are rejected."""
        with self.assertRaises(ShapeMismatchError):
            evaluate(np.zeros((2, 4, 4)), np.zeros((2, 4, 5)), self.thresholds)
        with self.assertRaises(ShapeMismatchError):
            evaluate(np.zeros((2, 4, 4)), np.zeros((3, 4, 4)), self.thresholds)
        with self.assertRaises(ValueError):
            evaluate(np.zeros((4, 4)), np.zeros((4, 4)), self.thresholds)

    def test_non_numeric_input(self):
        """Test that non-numeric arrays are rejected."""
        labels = np.array([[['a', 'b'], ['c', 'd']]])
        with self.assertRaises(TypeError):
            evaluate(labels, np.zeros((1, 2, 2)), self.thresholds)

    def test_complex_input(self):
        """Test that complex arrays are rejected rather than truncated."""
        y = np.zeros((1, 2, 2))
        with self.assertRaises(TypeError):
            evaluate(y, np.full((1, 2, 2), 0.7 + 0.5j), self.thresholds)

    def test_invalid_thresholds(self):
        """Test that invalid sweeps are rejected."""
        y = np.zeros((1, 2, 2))
        for thresholds in ([], [0.5, 0.4], [0.5, 0.5], [0.0, 0.5], [0.5, 1.0], [float('nan')]):
            with self.assertRaises(ValueError):
                evaluate(y, y, thresholds)


class TestHelpers(unittest.TestCase):
    """Test cases for metric helpers."""

    def test_precision_recall(self):
        """Test precision and recall of a single mask."""
        pred = np.array([[1, 1], [0, 0]])
        target = np.array([[1, 0], [1, 0]])

        precision, recall = precision_recall(pred, target)

        self.assertEqual(precision, 0.5)
        self.assertEqual(recall, 0.5)

        precision, recall = precision_recall(np.zeros((2, 2)), np.zeros((2, 2)))
        self.assertTrue(math.isnan(precision))
        self.assertTrue(math.isnan(recall))

    def test_evaluate_agrees_with_masks(self):
        """Test that sweep records equal the mask metrics at each threshold."""
        rng = np.random.default_rng(7)
        y = (rng.random((3, 5, 5)) > 0.5).astype(np.float32)
        y_hat = rng.random((3, 5, 5))
        thresholds = [0.2, 0.5, 0.8]

        for record in evaluate(y, y_hat, thresholds):
            expected = precision_recall(y_hat[record.class_index] > record.threshold,
                                        y[record.class_index])
            np.testing.assert_equal((record.precision, record.recall), expected)

    def test_is_undefined(self):
        """Test the undefined marker predicate."""
        self.assertTrue(is_undefined(float('nan')))
        self.assertTrue(is_undefined(np.float32('nan')))
        self.assertTrue(is_undefined(None))
        self.assertFalse(is_undefined(0.0))
        self.assertFalse(is_undefined(1.0))

    def test_make_thresholds(self):
        """Test evenly spaced sweeps."""
        sweep = make_thresholds(0.1, 0.9, 9)

        np.testing.assert_allclose(sweep, [0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9])
        np.testing.assert_allclose(make_thresholds(0.5, 0.5, 1), [0.5])

        with self.assertRaises(ValueError):
            make_thresholds(0.9, 0.1, 5)
        with self.assertRaises(ValueError):
            make_thresholds(0.1, 0.9, 0)
        with self.assertRaises(ValueError):
            make_thresholds(0.0, 0.9, 5)

    def test_validate_thresholds(self):
        """Test that a valid sweep comes back as a float array."""
        sweep = validate_thresholds([0.2, 0.4])
        self.assertEqual(sweep.dtype, np.float64)
        self.assertEqual(sweep.tolist(), [0.2, 0.4])

    def test_frame_round_trip(self):
        """Test tabulating records and reading them back."""
        records = [
            MetricRecord('train', 0, 0, 0.5, 1.0, float('nan')),
            MetricRecord('train', 0, 1, 0.5, float('nan'), 0.25),
        ]

        frame = records_to_frame(records)

        self.assertEqual(list(frame.columns), METRIC_COLUMNS)
        self.assertEqual(len(frame), 2)
        self.assertTrue(pd.isna(frame.loc[0, 'recall']))

        restored = frame_to_records(frame)
        self.assertEqual(restored[0].split, 'train')
        self.assertEqual(restored[1].class_index, 1)
        self.assertEqual(restored[1].recall, 0.25)
        self.assertTrue(is_undefined(restored[1].precision))

    def test_frame_missing_columns(self):
        """Test that incomplete tables are rejected."""
        with self.assertRaises(ValueError):
            frame_to_records(pd.DataFrame({'split': ['train']}))


if __name__ == '__main__':
    unittest.main()
