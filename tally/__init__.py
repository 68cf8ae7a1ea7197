"""
A Python package for estimating uncertainty in a cell-counting regression.

Fits counts on stain-specific intensity slopes and quantifies how far to
trust the fit with repeated cross-validation, split-conformal prediction
intervals and the nonparametric bootstrap.

Modules:
    - data_processing: Loads and validates stain/intensity/count CSV files.
    - stats: Least-squares model, RMSE and the three resampling procedures.
    - simulation: Generates synthetic data with a known ground truth.
    - reporting: Builds the rounded summary table.
    - plot_data: Numeric series for residual histograms and fitted lines.
    - pipeline: Runs the whole worked example from the command line.
"""

__version__ = "1.0.0"

from .data_processing import (
    Dataset,
    Observation,
    load_cell_counts,
    load_training_and_test,
)
from .errors import (
    DataFormatError,
    DegenerateInputError,
    EmptyQuantileInputError,
    InvalidSplitSizeError,
    LengthMismatchError,
    TallyError,
)
from .simulation import simulate_cell_counts
from .stats import (
    BootstrapResult,
    ConformalResult,
    CrossValidationResult,
    FittedModel,
    ModelSpec,
    bootstrap,
    coefficient_statistic,
    conformal_interval,
    cross_validate,
    fit_linear_model,
    rmse,
)

__all__ = [
    # Data
    "Dataset",
    "Observation",
    "load_cell_counts",
    "load_training_and_test",
    "simulate_cell_counts",
    # Model and evaluation
    "ModelSpec",
    "FittedModel",
    "fit_linear_model",
    "rmse",
    # Procedures
    "cross_validate",
    "CrossValidationResult",
    "conformal_interval",
    "ConformalResult",
    "bootstrap",
    "coefficient_statistic",
    "BootstrapResult",
    # Errors
    "TallyError",
    "DataFormatError",
    "DegenerateInputError",
    "LengthMismatchError",
    "InvalidSplitSizeError",
    "EmptyQuantileInputError",
]
