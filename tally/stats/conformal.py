"""Split-conformal prediction intervals from held-out residual quantiles.

A single random split fits the model on ``train_size`` rows and computes
residuals ``truth - prediction`` on the remaining rows. The empirical
``alpha`` and ``1 - alpha`` residual quantiles are then added to any new
point prediction. Coverage is marginal over the population the held-out rows
were drawn from; it does not carry over to query points whose stain mix
differs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from ..data_processing import Dataset
from ..errors import InvalidSplitSizeError
from .evaluation import residuals as compute_residuals
from .regression import FittedModel, ModelSpec, fit_linear_model
from .resampling import empirical_quantile, split_indices

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ConformalResult:
    """Fitted model plus additive interval offsets.

    Attributes:
        model: Model fitted on the ``fit_indices`` rows.
        lower: ``alpha`` quantile of the held-out residuals.
        upper: ``1 - alpha`` quantile of the held-out residuals.
        alpha: Tail probability used for each bound.
        residuals: Held-out residuals, aligned with ``holdout_indices``.
        fit_indices: Row positions used for fitting.
        holdout_indices: Sorted row positions used for residuals.
    """

    model: FittedModel
    lower: float
    upper: float
    alpha: float
    residuals: np.ndarray = field(repr=False)
    fit_indices: np.ndarray = field(repr=False)
    holdout_indices: np.ndarray = field(repr=False)

    @property
    def nominal_coverage(self) -> float:
        return 1.0 - 2.0 * self.alpha

    def interval(self, stain, intensity) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(prediction + lower, prediction + upper)`` per query."""
        pred = self.model.predict(stain, intensity)
        return pred + self.lower, pred + self.upper

    def coverage(self, dataset: Dataset) -> float:
        """Fraction of labeled rows in ``dataset`` whose count lies inside
        their interval (bounds inclusive).

        Raises:
            ValueError: If ``dataset`` has no labeled rows.
        """
        labeled = dataset.labeled()
        if len(labeled) == 0:
            raise ValueError("Coverage needs at least one row with an observed count.")
        lo, hi = self.interval(labeled.stain, labeled.intensity)
        inside = (labeled.count >= lo) & (labeled.count <= hi)
        return float(np.mean(inside))


def conformal_interval(
    dataset: Dataset,
    train_size: int,
    alpha: float = 0.05,
    *,
    spec: Optional[ModelSpec] = None,
    random_state=None,
) -> ConformalResult:
    """Build a split-conformal prediction interval.

    Args:
        dataset (Dataset): Labeled rows.
        train_size (int): Rows drawn without replacement for fitting
            (``k``); the other ``n - k`` rows supply residuals.
        alpha (float): Tail probability for each bound, in ``(0, 0.5)``.
        spec (ModelSpec, optional): Model specification.
        random_state: Seed or generator for the split.

    Returns:
        ConformalResult: Model, interval offsets and split bookkeeping.

    Raises:
        InvalidSplitSizeError: If ``train_size`` is not strictly between 0
            and ``len(dataset)``.
        DegenerateInputError: If any row is missing its count.
        ValueError: If ``alpha`` is outside ``(0, 0.5)``.
    """
    if not 0.0 < alpha < 0.5:
        raise ValueError(f"alpha must lie in (0, 0.5), got {alpha}")
    n = len(dataset)
    if train_size <= 0 or train_size >= n:
        raise InvalidSplitSizeError(
            f"train_size must satisfy 0 < k < n; got k={train_size}, n={n}."
        )
    dataset.require_counts("Conformal calibration")

    rng = np.random.default_rng(random_state)
    fit_idx, holdout_idx = split_indices(n, train_size, rng)
    model = fit_linear_model(dataset.take(fit_idx), spec)

    holdout = dataset.take(holdout_idx)
    resid = compute_residuals(holdout.count, model.predict_dataset(holdout))
    lower, upper = empirical_quantile(resid, [alpha, 1.0 - alpha])

    logger.info(
        "Conformal interval: fit on %d rows, %d held-out residuals, offsets [%.4g, %.4g]",
        len(fit_idx),
        len(holdout_idx),
        lower,
        upper,
    )
    return ConformalResult(
        model=model,
        lower=float(lower),
        upper=float(upper),
        alpha=float(alpha),
        residuals=resid,
        fit_indices=fit_idx,
        holdout_indices=holdout_idx,
    )
