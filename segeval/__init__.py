"""Threshold-sweep evaluation of saved segmentation predictions."""

__version__ = "0.1.0"
