"""Index-level resampling primitives shared by the trial-based estimators.

Every trial receives its own child :class:`numpy.random.Generator`, spawned
up-front from the caller's random state. Results therefore depend only on
the seed and the number of trials, never on the number of workers.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence, Tuple, TypeVar

import numpy as np
from joblib import Parallel, delayed

from ..errors import EmptyQuantileInputError, InvalidSplitSizeError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ON_ERROR_CHOICES = ("raise", "skip")


def trial_generators(random_state, count: int) -> List[np.random.Generator]:
    """Spawn ``count`` independent generators from ``random_state``.

    Args:
        random_state: ``None``, an ``int`` seed, a
            :class:`numpy.random.SeedSequence` or a
            :class:`numpy.random.Generator`.
        count (int): Number of child generators.

    Returns:
        list[numpy.random.Generator]: One generator per trial.
    """
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    return np.random.default_rng(random_state).spawn(count)


def split_indices(
    n: int, size: int, rng: np.random.Generator
) -> Tuple[np.ndarray, np.ndarray]:
    """Partition ``range(n)`` into a random subset of ``size`` and the rest.

    Args:
        n (int): Number of rows.
        size (int): Rows drawn uniformly without replacement.
        rng (numpy.random.Generator): Random source.

    Returns:
        tuple[numpy.ndarray, numpy.ndarray]: ``(drawn, remainder)``. The two
        arrays are disjoint and together cover ``range(n)``; ``remainder`` is
        sorted.

    Raises:
        InvalidSplitSizeError: If ``size <= 0`` or ``size >= n``.
    """
    if size <= 0 or size >= n:
        raise InvalidSplitSizeError(
            f"Split size must satisfy 0 < size < n; got size={size}, n={n}."
        )
    drawn = rng.choice(n, size=size, replace=False)
    mask = np.ones(n, dtype=bool)
    mask[drawn] = False
    return drawn, np.flatnonzero(mask)


def bootstrap_indices(n: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``n`` row positions uniformly with replacement."""
    if n <= 0:
        raise InvalidSplitSizeError(f"Cannot resample an empty dataset (n={n}).")
    return rng.choice(n, size=n, replace=True)


def empirical_quantile(values: Sequence[float] | np.ndarray, q):
    """Return empirical quantile(s) with linear interpolation between order
    statistics (``numpy.quantile`` default method).

    Raises:
        EmptyQuantileInputError: If ``values`` is empty.
        ValueError: If any ``q`` lies outside ``[0, 1]``.
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size == 0:
        raise EmptyQuantileInputError("Cannot compute a quantile of zero values.")
    q_arr = np.asarray(q, dtype=float)
    if np.any((q_arr < 0) | (q_arr > 1)):
        raise ValueError(f"Quantile levels must lie in [0, 1], got {q!r}")
    out = np.quantile(arr, q_arr)
    return float(out) if np.ndim(out) == 0 else out


def _guarded(func: Callable[..., T], trial: int, on_error: str, *args):
    try:
        return trial, func(*args), None
    except ValueError as exc:
        if on_error == "raise":
            raise
        return trial, None, exc


def run_trials(
    func: Callable[..., T],
    generators: Sequence[np.random.Generator],
    *,
    n_jobs: int = 1,
    on_error: str = "raise",
    label: str = "trial",
) -> List[Tuple[int, T]]:
    """Evaluate ``func(rng)`` once per generator, optionally in parallel.

    Args:
        func (callable): Trial body taking a single generator.
        generators (sequence): One generator per trial, typically from
            :func:`trial_generators`.
        n_jobs (int): Number of ``joblib`` workers. ``1`` runs in-process.
        on_error (str): ``"raise"`` aborts on the first failing trial;
            ``"skip"`` logs a warning and drops the trial.
        label (str): Procedure name used in log messages.

    Returns:
        list[tuple[int, object]]: ``(trial_index, result)`` for every trial
        that succeeded, in trial order.

    Note:
        Only :class:`ValueError` (which includes every library error) is
        eligible for skipping; other exceptions always propagate.
    """
    if on_error not in ON_ERROR_CHOICES:
        raise ValueError(f"on_error must be one of {ON_ERROR_CHOICES}, got {on_error!r}")

    outcomes = Parallel(n_jobs=n_jobs)(
        delayed(_guarded)(func, trial, on_error, rng)
        for trial, rng in enumerate(generators)
    )

    kept = []
    for trial, result, exc in outcomes:
        if exc is not None:
            logger.warning("Skipping %s %d: %s", label, trial, exc)
            continue
        kept.append((trial, result))
    logger.debug("%s: %d of %d trials succeeded", label, len(kept), len(generators))
    return kept
