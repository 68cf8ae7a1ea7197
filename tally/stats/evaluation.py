"""Prediction-accuracy summaries."""

from __future__ import annotations

import math
from typing import Tuple

import numpy as np

from ..errors import DegenerateInputError, LengthMismatchError


def _paired(truth, predicted) -> Tuple[np.ndarray, np.ndarray]:
    t = np.asarray(truth, dtype=float).ravel()
    p = np.asarray(predicted, dtype=float).ravel()
    if t.size == 0 or p.size == 0:
        raise LengthMismatchError("truth and predicted must be non-empty.")
    if t.size != p.size:
        raise LengthMismatchError(
            f"truth and predicted must have equal lengths; got {t.size} and {p.size}."
        )
    bad = ~(np.isfinite(t) & np.isfinite(p))
    if bad.any():
        raise DegenerateInputError(
            f"truth and predicted must be finite; {int(bad.sum())} of {t.size} pairs are not."
        )
    return t, p


def residuals(truth, predicted) -> np.ndarray:
    """Return ``truth - predicted`` element-wise.

    Raises:
        LengthMismatchError: If the inputs differ in length or are empty.
        DegenerateInputError: If either input holds NaN or infinite values.
    """
    t, p = _paired(truth, predicted)
    return t - p


def rmse(truth, predicted) -> float:
    """Root mean squared error between observed and predicted values.

    Args:
        truth (array-like): Observed values.
        predicted (array-like): Predicted values, same length as ``truth``.

    Returns:
        float: ``sqrt(mean((truth - predicted) ** 2))``.

    Raises:
        LengthMismatchError: If the inputs differ in length or are empty.
        DegenerateInputError: If either input holds NaN or infinite values.
    """
    resid = residuals(truth, predicted)
    return float(math.sqrt(float(np.mean(resid**2))))
