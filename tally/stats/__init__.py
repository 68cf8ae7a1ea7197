"""
Statistical routines for cell-count uncertainty estimation.

This subpackage provides the least-squares count model and the three
resampling-based uncertainty procedures built on it. All functions take an
explicit random source and return immutable result objects.

Modules:
    regression:
        Stain-by-intensity design matrix and ordinary least-squares fit with
        coefficient standard errors.

    evaluation:
        RMSE and residuals between observed and predicted counts.

    resampling:
        Per-trial generator spawning, split and bootstrap index draws,
        empirical quantiles and the (optionally parallel) trial loop.

    cross_validation:
        Repeated random train/validation splits scored by RMSE.

    conformal:
        Split-conformal prediction intervals from held-out residuals.

    bootstrap:
        Replicate collection, variance, bias and basic confidence intervals.

Design Principle:
    This subpackage has no dependencies on the pipeline, output or plotting
    data modules. Every procedure is independently testable.
"""

from .bootstrap import BootstrapResult, bootstrap, coefficient_statistic
from .conformal import ConformalResult, conformal_interval
from .cross_validation import CrossValidationResult, cross_validate
from .evaluation import residuals, rmse
from .regression import FittedModel, ModelSpec, design_matrix, fit_linear_model
from .resampling import (
    bootstrap_indices,
    empirical_quantile,
    run_trials,
    split_indices,
    trial_generators,
)

__all__ = [
    "BootstrapResult",
    "bootstrap",
    "coefficient_statistic",
    "ConformalResult",
    "conformal_interval",
    "CrossValidationResult",
    "cross_validate",
    "residuals",
    "rmse",
    "FittedModel",
    "ModelSpec",
    "design_matrix",
    "fit_linear_model",
    "bootstrap_indices",
    "empirical_quantile",
    "run_trials",
    "split_indices",
    "trial_generators",
]
