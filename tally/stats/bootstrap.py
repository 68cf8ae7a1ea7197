"""Nonparametric bootstrap for scalar statistics of a fitted count model.

Each replicate resamples ``n`` rows with replacement, recomputes the
statistic and records it. The replicate collection yields variance and bias
estimates and the basic bootstrap confidence interval
``[theta_hat - t_hat, theta_hat + t_hat]``, where ``t_hat`` is the
``level`` quantile of ``|theta_hat - theta*|``. That interval is not
bias-corrected and under-covers in small samples.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

import numpy as np

from ..data_processing import Dataset
from ..errors import EmptyQuantileInputError
from .regression import ModelSpec, fit_linear_model
from .resampling import (
    bootstrap_indices,
    empirical_quantile,
    run_trials,
    trial_generators,
)

logger = logging.getLogger(__name__)

Statistic = Callable[[Dataset], float]


def coefficient_statistic(level: int, spec: Optional[ModelSpec] = None) -> Statistic:
    """Return a statistic that fits the count model and extracts the slope
    for stain ``level``."""

    def statistic(dataset: Dataset) -> float:
        return fit_linear_model(dataset, spec).coefficient(level)

    statistic.__name__ = f"slope[{level}]"
    return statistic


@dataclass(frozen=True, eq=False)
class BootstrapResult:
    """Full-sample estimate and its bootstrap replicates.

    Attributes:
        estimate: ``theta_hat`` computed on the original dataset.
        replicates: ``theta*`` for each successful replicate.
        indices: Resampled row positions for each successful replicate.
    """

    estimate: float
    replicates: np.ndarray
    indices: list = field(default_factory=list, repr=False)

    def _require_replicates(self) -> np.ndarray:
        if len(self.replicates) == 0:
            raise EmptyQuantileInputError("No bootstrap replicates to summarize.")
        return self.replicates

    @property
    def variance(self) -> float:
        """Mean squared deviation of the replicates from their mean."""
        reps = self._require_replicates()
        return float(np.mean((reps - reps.mean()) ** 2))

    @property
    def standard_error(self) -> float:
        return math.sqrt(self.variance)

    @property
    def bias(self) -> float:
        """Mean of ``theta_hat - theta*`` over replicates."""
        reps = self._require_replicates()
        return float(np.mean(self.estimate - reps))

    def confidence_interval(self, level: float = 0.95) -> Tuple[float, float]:
        """Basic bootstrap interval at coverage ``level``.

        Raises:
            ValueError: If ``level`` is outside ``(0, 1)``.
            EmptyQuantileInputError: If there are no replicates.
        """
        if not 0.0 < level < 1.0:
            raise ValueError(f"level must lie in (0, 1), got {level}")
        reps = self._require_replicates()
        t_hat = empirical_quantile(np.abs(self.estimate - reps), level)
        return self.estimate - t_hat, self.estimate + t_hat


def bootstrap(
    dataset: Dataset,
    statistic: Statistic,
    replicates: int = 1000,
    *,
    random_state=None,
    n_jobs: int = 1,
    on_error: str = "raise",
    keep_indices: bool = False,
) -> BootstrapResult:
    """Resample rows with replacement and recompute ``statistic``.

    Args:
        dataset (Dataset): Original rows; ``n = len(dataset)``.
        statistic (callable): Maps a dataset to a scalar, for example
            :func:`coefficient_statistic`.
        replicates (int): Number of bootstrap trials (``B``).
        random_state: Seed or generator; see :func:`trial_generators`.
        n_jobs (int): ``joblib`` workers for the replicate loop.
        on_error (str): ``"raise"`` or ``"skip"`` replicates whose statistic
            fails (for example a resample missing a stain level).
        keep_indices (bool): Keep each replicate's resampled row positions.

    Returns:
        BootstrapResult: Estimate and replicate collection.

    Raises:
        DegenerateInputError: If any row is missing its count.
    """
    n = len(dataset)
    dataset.require_counts("Bootstrap")
    estimate = float(statistic(dataset))

    def trial(rng: np.random.Generator):
        idx = bootstrap_indices(n, rng)
        return idx, float(statistic(dataset.take(idx)))

    outcomes = run_trials(
        trial,
        trial_generators(random_state, replicates),
        n_jobs=n_jobs,
        on_error=on_error,
        label="bootstrap replicate",
    )
    result = BootstrapResult(
        estimate=estimate,
        replicates=np.array([out[1] for _, out in outcomes], dtype=float),
        indices=[out[0] for _, out in outcomes] if keep_indices else [],
    )
    if len(result.replicates):
        logger.info(
            "Bootstrap: %d replicates of %s, estimate %.4g, SE %.4g",
            len(result.replicates),
            getattr(statistic, "__name__", "statistic"),
            estimate,
            result.standard_error,
        )
    return result
