"""Provide the least-squares count model used by every estimation routine.

This module supports:
- building the stain-by-intensity design matrix,
- ordinary least-squares fits with per-stain slopes and an optional
  intercept, and
- coefficient diagnostics (standard errors, Student-t 95% half-widths).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

import numpy as np
from scipy.stats import t as student_t

from ..data_processing import Dataset
from ..errors import DegenerateInputError
from ..schema import STAIN_LEVELS

INTERCEPT_CHOICES = ("none", "shared", "per_stain")


@dataclass(frozen=True)
class ModelSpec:
    """Describe which columns enter the design matrix.

    Attributes:
        levels: Stain levels that receive their own slope, in column order.
        intercept: ``"none"`` (regression through the origin), ``"shared"``
            (one intercept for all stains) or ``"per_stain"`` (one intercept
            per stain level).
    """

    levels: Tuple[int, ...] = STAIN_LEVELS
    intercept: str = "none"

    def __post_init__(self) -> None:
        levels = tuple(int(level) for level in self.levels)
        if not levels:
            raise ValueError("ModelSpec requires at least one stain level.")
        if len(set(levels)) != len(levels):
            raise ValueError(f"Stain levels must be unique, got {levels}")
        if self.intercept not in INTERCEPT_CHOICES:
            raise ValueError(
                f"intercept must be one of {INTERCEPT_CHOICES}, got {self.intercept!r}"
            )
        object.__setattr__(self, "levels", levels)

    @property
    def column_names(self) -> Tuple[str, ...]:
        names = [f"slope[{level}]" for level in self.levels]
        if self.intercept == "shared":
            names.append("intercept")
        elif self.intercept == "per_stain":
            names.extend(f"intercept[{level}]" for level in self.levels)
        return tuple(names)

    @property
    def n_params(self) -> int:
        return len(self.column_names)


def design_matrix(stain, intensity, spec: ModelSpec) -> np.ndarray:
    """Build the ``(n, p)`` design matrix for ``spec``.

    Each slope column holds ``intensity`` where the row's stain equals the
    column's level and ``0`` elsewhere. Intercept columns are ones (shared)
    or stain indicators (per stain).

    Raises:
        ValueError: If a row's stain level is not one of ``spec.levels``.
    """
    stain_arr = np.asarray(stain).astype(int).ravel()
    x = np.asarray(intensity, dtype=float).ravel()
    if stain_arr.shape != x.shape:
        raise ValueError("stain and intensity must have equal lengths.")

    unknown = np.setdiff1d(np.unique(stain_arr), spec.levels)
    if unknown.size:
        raise ValueError(
            f"Stain levels {unknown.tolist()} are not in the model levels {spec.levels}."
        )

    indicators = np.column_stack(
        [(stain_arr == level).astype(float) for level in spec.levels]
    )
    columns = [indicators * x[:, None]]
    if spec.intercept == "shared":
        columns.append(np.ones((len(x), 1)))
    elif spec.intercept == "per_stain":
        columns.append(indicators)
    return np.hstack(columns)


@dataclass(frozen=True, eq=False)
class FittedModel:
    """Immutable result of :func:`fit_linear_model`.

    Attributes:
        spec: Model specification the coefficients belong to.
        coef: Coefficient vector ordered as ``spec.column_names``.
        rss: Residual sum of squares on the fitting data.
        dof: Residual degrees of freedom (``n - p``).
        n: Number of fitting observations.
        r2: Coefficient of determination against the mean count.
        xtx_inv: ``(X'X)^-1`` of the fitting design, kept for diagnostics.
    """

    spec: ModelSpec
    coef: np.ndarray
    rss: float
    dof: int
    n: int
    r2: float
    xtx_inv: np.ndarray = field(repr=False)

    @property
    def coefficients(self) -> Dict[str, float]:
        return dict(zip(self.spec.column_names, (float(c) for c in self.coef)))

    def coefficient(self, level: int) -> float:
        """Return the fitted slope for stain ``level``."""
        try:
            return float(self.coef[self.spec.levels.index(int(level))])
        except ValueError:
            raise KeyError(
                f"Stain level {level} is not in the model levels {self.spec.levels}."
            ) from None

    def intercept(self, level: Optional[int] = None) -> float:
        """Return the intercept for ``level`` (``0.0`` for ``"none"``)."""
        if self.spec.intercept == "none":
            return 0.0
        if self.spec.intercept == "shared":
            return float(self.coef[-1])
        if level is None:
            raise ValueError("A stain level is required for per-stain intercepts.")
        k = len(self.spec.levels)
        return float(self.coef[k + self.spec.levels.index(int(level))])

    @property
    def mse(self) -> float:
        return self.rss / self.dof if self.dof > 0 else math.nan

    @property
    def standard_errors(self) -> np.ndarray:
        """Coefficient standard errors from ``mse * (X'X)^-1``."""
        if self.dof <= 0:
            return np.full(len(self.coef), np.nan)
        return np.sqrt(self.mse * np.diag(self.xtx_inv))

    @property
    def ci95(self) -> np.ndarray:
        """Student-t 95% half-widths for each coefficient."""
        if self.dof <= 0:
            return np.full(len(self.coef), np.nan)
        t_crit = float(student_t.ppf(0.975, self.dof))
        return t_crit * self.standard_errors

    def predict(self, stain, intensity) -> np.ndarray:
        """Predict counts for new ``(stain, intensity)`` pairs."""
        return design_matrix(stain, intensity, self.spec) @ self.coef

    def predict_dataset(self, dataset: Dataset) -> np.ndarray:
        return self.predict(dataset.stain, dataset.intensity)


def fit_linear_model(dataset: Dataset, spec: Optional[ModelSpec] = None) -> FittedModel:
    """Fit counts on stain-specific intensity slopes by ordinary least squares.

    Args:
        dataset (Dataset): Fitting rows; every row must carry a count.
        spec (ModelSpec, optional): Design specification. Defaults to
            per-stain slopes with no intercept.

    Returns:
        FittedModel: Coefficients and fit diagnostics.

    Raises:
        DegenerateInputError: If any count is missing, if there are fewer
            rows than parameters, or if the design matrix is rank deficient
            (for example when a stain level is absent from ``dataset``).

    Note:
        Solved with :func:`numpy.linalg.lstsq` (SVD based), which is stable
        for the small, possibly ill-conditioned designs produced by
        resampling.

    References:
        Ordinary least squares linear regression.
    """
    spec = spec if spec is not None else ModelSpec()
    y = np.asarray(dataset.count, dtype=float)
    if not np.all(np.isfinite(y)):
        raise DegenerateInputError(
            f"Cannot fit on {int(np.sum(~np.isfinite(y)))} rows with missing counts."
        )

    X = design_matrix(dataset.stain, dataset.intensity, spec)
    n, p = X.shape
    if n < p:
        raise DegenerateInputError(
            f"Need at least {p} observations to fit {p} parameters; got {n}."
        )

    beta, _, rank, _ = np.linalg.lstsq(X, y, rcond=None)
    if rank < p:
        absent = [lvl for lvl in spec.levels if not np.any(dataset.stain == lvl)]
        detail = f" (stain levels absent: {absent})" if absent else ""
        raise DegenerateInputError(
            f"Design matrix is rank deficient: rank {rank} < {p} parameters{detail}."
        )

    resid = y - X @ beta
    rss = float(np.sum(resid**2))
    sst = float(np.sum((y - y.mean()) ** 2))
    r2 = 1.0 - rss / sst if sst > 0 else math.nan

    return FittedModel(
        spec=spec,
        coef=beta,
        rss=rss,
        dof=int(n - p),
        n=int(n),
        r2=float(r2),
        xtx_inv=np.linalg.inv(X.T @ X),
    )
