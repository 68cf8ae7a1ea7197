"""Default analysis settings for the worked cell-count example."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Tuple

from .schema import STAIN_LEVELS
from .stats.regression import ModelSpec

DEFAULT_SEED = 42
DEFAULT_OUTPUT_DIR = Path("output")

# Cross-validation
DEFAULT_VALIDATION_FRACTION = 0.3
DEFAULT_CV_REPETITIONS = 100

# Conformal prediction (k = 70 of n = 100 in the worked example)
DEFAULT_TRAIN_FRACTION = 0.7
DEFAULT_ALPHA = 0.05

# Bootstrap
DEFAULT_BOOTSTRAP_REPLICATES = 1000
DEFAULT_CONFIDENCE_LEVEL = 0.95


def fraction_to_size(fraction: float, n: int) -> int:
    """Convert a row fraction to a count strictly between 0 and ``n``."""
    if not 0.0 < fraction < 1.0:
        raise ValueError(f"fraction must lie in (0, 1), got {fraction}")
    return int(min(max(round(fraction * n), 1), n - 1))


@dataclass(frozen=True)
class AnalysisSettings:
    """Settings shared by the pipeline and the command line.

    Attributes:
        seed: Seed for every random draw in a run.
        spec: Count-model specification used by all procedures.
        validation_fraction: Share of rows held out per cross-validation
            trial.
        cv_repetitions: Number of cross-validation trials.
        train_fraction: Share of rows used to fit the conformal model.
        alpha: Tail probability of each conformal bound.
        bootstrap_replicates: Number of bootstrap replicates.
        confidence_level: Coverage of the bootstrap confidence interval.
        bootstrap_levels: Stain levels whose slopes are bootstrapped.
        n_jobs: ``joblib`` workers for trial loops.
        on_error: ``"raise"`` or ``"skip"`` failing trials.
        output_dir: Directory for exported CSV files.
    """

    seed: int = DEFAULT_SEED
    spec: ModelSpec = ModelSpec()
    validation_fraction: float = DEFAULT_VALIDATION_FRACTION
    cv_repetitions: int = DEFAULT_CV_REPETITIONS
    train_fraction: float = DEFAULT_TRAIN_FRACTION
    alpha: float = DEFAULT_ALPHA
    bootstrap_replicates: int = DEFAULT_BOOTSTRAP_REPLICATES
    confidence_level: float = DEFAULT_CONFIDENCE_LEVEL
    bootstrap_levels: Tuple[int, ...] = STAIN_LEVELS
    n_jobs: int = 1
    on_error: str = "raise"
    output_dir: Path = DEFAULT_OUTPUT_DIR

    def with_overrides(self, **changes) -> "AnalysisSettings":
        """Return a copy with every non-``None`` keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
