"""Metrics computed on batches of model outputs and targets."""
from __future__ import annotations
import numpy as np


def accuracy(ypred, y) -> float:
    """Fraction of positions where the highest score is at the target class.

    Targets may be one-hot (same shape as ``ypred``) or class indices.
    """
    ypred = np.asarray(ypred)
    y = np.asarray(y)
    pred = ypred.argmax(axis=-1)
    target = y.argmax(axis=-1) if y.shape == ypred.shape else y
    return float(np.mean(pred == target))


def accuracy_thresh(ypred, y, thresh: float = 0.5, sigmoid: bool = True) -> float:
    """Elementwise accuracy of multi-label outputs thresholded at ``thresh``."""
    ypred = np.asarray(ypred, dtype=np.float64)
    if sigmoid:
        ypred = 1 / (1 + np.exp(-np.clip(ypred, -500, 500)))
    return float(np.mean((ypred >= thresh) == (np.asarray(y) >= 0.5)))
