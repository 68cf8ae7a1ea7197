"""Build numeric series for residual histograms and fitted-line views.

Rendering is left to the caller; these helpers only return arrays and
tables in a shape that plots directly.
"""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np
import pandas as pd

from .data_processing import Dataset
from .errors import EmptyQuantileInputError
from .stats.conformal import ConformalResult
from .stats.regression import FittedModel


def build_histogram(values, bins: int | str = "auto") -> Dict[str, np.ndarray]:
    """Histogram counts, bin edges and bin centres for ``values``.

    Raises:
        EmptyQuantileInputError: If ``values`` has no finite entries.
    """
    arr = np.asarray(values, dtype=float).ravel()
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        raise EmptyQuantileInputError("Cannot build a histogram of zero values.")
    counts, edges = np.histogram(arr, bins=bins)
    return {
        "counts": counts,
        "edges": edges,
        "centers": 0.5 * (edges[:-1] + edges[1:]),
    }


def build_residual_histogram(
    result: ConformalResult, bins: int | str = "auto"
) -> Dict[str, object]:
    """Histogram of held-out conformal residuals plus the interval offsets
    to mark as vertical guides."""
    out: Dict[str, object] = dict(build_histogram(result.residuals, bins=bins))
    out["lower"] = result.lower
    out["upper"] = result.upper
    return out


def build_fitted_lines(
    model: FittedModel,
    dataset: Optional[Dataset] = None,
    n_points: int = 100,
    conformal: Optional[ConformalResult] = None,
) -> pd.DataFrame:
    """Evaluate the fitted line of every stain level on an intensity grid.

    Args:
        model: Fitted count model.
        dataset: Grid spans ``[0, max(dataset.intensity)]`` when given,
            else ``[0, 100]``.
        n_points: Grid points per stain level.
        conformal: When given, add ``lower`` and ``upper`` band columns.

    Returns:
        pandas.DataFrame: Columns ``stain``, ``intensity``, ``predicted``
        and optionally ``lower`` and ``upper``.
    """
    x_max = 100.0
    if dataset is not None and len(dataset):
        x_max = float(np.max(dataset.intensity))
    grid = np.linspace(0.0, x_max, int(n_points))

    frames = []
    for level in model.spec.levels:
        stain = np.full(len(grid), level)
        frame = pd.DataFrame(
            {
                "stain": stain,
                "intensity": grid,
                "predicted": model.predict(stain, grid),
            }
        )
        if conformal is not None:
            frame["lower"], frame["upper"] = conformal.interval(stain, grid)
        frames.append(frame)
    return pd.concat(frames, ignore_index=True)
