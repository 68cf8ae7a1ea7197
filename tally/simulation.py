"""Synthetic cell-count data with a known linear ground truth."""

from __future__ import annotations

from typing import Mapping, Sequence, Tuple

import numpy as np

from .data_processing import Dataset
from .schema import STAIN_LEVELS

DEFAULT_SLOPES: Mapping[int, float] = {1: 3.0, 2: 1.5}
DEFAULT_NOISE_SD = 10.0
DEFAULT_INTENSITY_RANGE: Tuple[float, float] = (10.0, 100.0)


def simulate_cell_counts(
    n: int,
    slopes: Mapping[int, float] = DEFAULT_SLOPES,
    noise_sd: float = DEFAULT_NOISE_SD,
    stain_weights: Sequence[float] | None = None,
    intensity_range: Tuple[float, float] = DEFAULT_INTENSITY_RANGE,
    random_state=None,
) -> Dataset:
    """Draw ``n`` observations from ``count = slope[stain] * intensity + noise``.

    Args:
        n (int): Number of rows.
        slopes (mapping): True slope per stain level.
        noise_sd (float): Standard deviation of the zero-mean Gaussian noise.
        stain_weights (sequence, optional): Sampling probability for each
            level in ``sorted(slopes)`` order. Defaults to uniform. Using
            different weights for training and test data reproduces a
            category-mix shift between them.
        intensity_range (tuple[float, float]): Uniform intensity bounds.
        random_state: Seed or generator.

    Returns:
        Dataset: Counts rounded to whole numbers and clipped at zero.
    """
    if n <= 0:
        raise ValueError(f"n must be positive, got {n}")
    if noise_sd < 0:
        raise ValueError(f"noise_sd must be non-negative, got {noise_sd}")
    lo, hi = (float(v) for v in intensity_range)
    if lo < 0 or hi < lo:
        raise ValueError(f"Invalid intensity range {intensity_range}")

    levels = sorted(int(k) for k in slopes)
    if not levels or not set(levels) <= set(STAIN_LEVELS):
        raise ValueError(f"slopes must be keyed by stain levels in {STAIN_LEVELS}, got {levels}")
    if stain_weights is None:
        p = np.full(len(levels), 1.0 / len(levels))
    else:
        p = np.asarray(stain_weights, dtype=float)
        if p.shape != (len(levels),) or np.any(p < 0) or p.sum() <= 0:
            raise ValueError(
                f"stain_weights must be {len(levels)} non-negative values, got {stain_weights}"
            )
        p = p / p.sum()

    rng = np.random.default_rng(random_state)
    stain = rng.choice(levels, size=n, p=p)
    intensity = rng.uniform(lo, hi, size=n)
    slope = np.array([slopes[s] for s in stain], dtype=float)
    count = slope * intensity + rng.normal(0.0, noise_sd, size=n)
    return Dataset(
        stain=stain,
        intensity=intensity,
        count=np.clip(np.round(count), 0.0, None),
    )
