"""Repeated random train/validation splitting.

Each trial draws the validation rows uniformly without replacement and
trains on the rest. No stratification is applied: when the category mix of
future data differs from the training data, the averaged validation error
understates the error on that future data.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

from ..data_processing import Dataset
from ..errors import EmptyQuantileInputError, InvalidSplitSizeError
from .evaluation import rmse
from .regression import FittedModel, ModelSpec, fit_linear_model
from .resampling import run_trials, split_indices, trial_generators

logger = logging.getLogger(__name__)


def _predict_counts(model: FittedModel, dataset: Dataset) -> np.ndarray:
    return model.predict_dataset(dataset)


@dataclass(frozen=True, eq=False)
class CrossValidationResult:
    """Scores from repeated random validation splits.

    Attributes:
        scores: One score per successful trial, in trial order.
        validation_indices: Validation row positions for each successful
            trial; the training rows are their complement.
        trials: Trial number of each successful trial.
    """

    scores: np.ndarray
    validation_indices: List[np.ndarray] = field(repr=False)
    trials: np.ndarray = field(repr=False)

    @property
    def mean(self) -> float:
        if len(self.scores) == 0:
            raise EmptyQuantileInputError("No successful cross-validation trials.")
        return float(np.mean(self.scores))

    @property
    def std(self) -> float:
        if len(self.scores) == 0:
            raise EmptyQuantileInputError("No successful cross-validation trials.")
        return float(np.std(self.scores))


def cross_validate(
    dataset: Dataset,
    validation_size: int,
    repetitions: int = 100,
    *,
    spec: Optional[ModelSpec] = None,
    fit: Callable[[Dataset], object] | None = None,
    predict: Callable[[object, Dataset], np.ndarray] = _predict_counts,
    score: Callable[[np.ndarray, np.ndarray], float] = rmse,
    random_state=None,
    n_jobs: int = 1,
    on_error: str = "raise",
) -> CrossValidationResult:
    """Estimate out-of-sample error by averaging over random splits.

    Args:
        dataset (Dataset): Labeled rows to split.
        validation_size (int): Rows held out per trial (``p``).
        repetitions (int): Number of independent trials (``R``).
        spec (ModelSpec, optional): Used by the default ``fit``.
        fit (callable, optional): ``fit(train) -> model``. Defaults to
            :func:`fit_linear_model` with ``spec``.
        predict (callable): ``predict(model, validation) -> predictions``.
        score (callable): ``score(truth, predicted) -> float``. Defaults to
            :func:`rmse`.
        random_state: Seed or generator; see :func:`trial_generators`.
        n_jobs (int): ``joblib`` workers for the trial loop.
        on_error (str): ``"raise"`` or ``"skip"`` failing trials.

    Returns:
        CrossValidationResult: Per-trial scores and validation indices.

    Raises:
        InvalidSplitSizeError: If ``validation_size`` is not strictly between
            0 and ``len(dataset)``.
        DegenerateInputError: If any row is missing its count.
    """
    if fit is None:

        def fit(train: Dataset) -> FittedModel:
            return fit_linear_model(train, spec)

    n = len(dataset)
    if validation_size <= 0 or validation_size >= n:
        raise InvalidSplitSizeError(
            f"validation_size must satisfy 0 < p < n; got p={validation_size}, n={n}."
        )
    dataset.require_counts("Cross-validation")

    def trial(rng: np.random.Generator):
        val_idx, train_idx = split_indices(n, validation_size, rng)
        model = fit(dataset.take(train_idx))
        validation = dataset.take(val_idx)
        return val_idx, float(score(validation.count, predict(model, validation)))

    outcomes = run_trials(
        trial,
        trial_generators(random_state, repetitions),
        n_jobs=n_jobs,
        on_error=on_error,
        label="cross-validation trial",
    )
    result = CrossValidationResult(
        scores=np.array([out[1] for _, out in outcomes], dtype=float),
        validation_indices=[out[0] for _, out in outcomes],
        trials=np.array([t for t, _ in outcomes], dtype=int),
    )
    if len(result.scores):
        logger.info(
            "Cross-validation: %d trials, %d validation rows, mean score %.4g",
            len(result.scores),
            validation_size,
            result.mean,
        )
    return result
