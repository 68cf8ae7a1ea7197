"""Run every estimation procedure on the worked cell-count example."""

from __future__ import annotations

import argparse
import logging
import math
import time
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .config import DEFAULT_OUTPUT_DIR, AnalysisSettings, fraction_to_size
from .data_processing import Dataset, load_cell_counts
from .errors import TallyError
from .output import save_results_to_csv
from .reporting import build_summary_table
from .simulation import simulate_cell_counts
from .stats.bootstrap import bootstrap, coefficient_statistic
from .stats.conformal import conformal_interval
from .stats.cross_validation import cross_validate
from .stats.evaluation import rmse
from .stats.regression import INTERCEPT_CHOICES, ModelSpec, fit_linear_model

logger = logging.getLogger(__name__)

SIMULATED_TRAIN_WEIGHTS = (0.8, 0.2)
SIMULATED_TEST_WEIGHTS = (0.2, 0.8)


def _test_predictions(test: Dataset, model, conformal) -> pd.DataFrame:
    frame = test.to_frame()
    frame["predicted"] = model.predict_dataset(test)
    frame["lower"], frame["upper"] = conformal.interval(test.stain, test.intensity)
    return frame


def run_analysis(
    train: Dataset,
    test: Optional[Dataset] = None,
    settings: AnalysisSettings = AnalysisSettings(),
) -> Dict:
    """Fit the count model and run cross-validation, conformal and bootstrap.

    Args:
        train (Dataset): Training rows. Rows without a count are dropped.
        test (Dataset, optional): Test rows. Counts are optional; when
            present they are used for test RMSE and conformal coverage.
        settings (AnalysisSettings): Procedure settings and seed.

    Returns:
        dict: Keys ``model``, ``cross_validation``, ``conformal``,
        ``bootstrap`` (stain level -> result), ``test_rmse``,
        ``test_coverage``, ``test_predictions`` and ``summary``.

    Note:
        Each procedure draws from its own child of ``SeedSequence(seed)``, so
        changing one procedure's settings leaves the others' draws unchanged.
    """
    labeled = train.labeled()
    if len(labeled) < len(train):
        logger.warning(
            "Dropped %d training rows without counts", len(train) - len(labeled)
        )
    n = len(labeled)
    spec = settings.spec
    cv_seed, conformal_seed, bootstrap_seed = np.random.SeedSequence(
        settings.seed
    ).spawn(3)

    model = fit_linear_model(labeled, spec)
    logger.info("Full-data fit: %s", model.coefficients)

    step_start = time.time()
    cv = cross_validate(
        labeled,
        fraction_to_size(settings.validation_fraction, n),
        settings.cv_repetitions,
        spec=spec,
        random_state=cv_seed,
        n_jobs=settings.n_jobs,
        on_error=settings.on_error,
    )
    logger.info("Cross-validation completed in %.2f seconds", time.time() - step_start)

    conformal = conformal_interval(
        labeled,
        fraction_to_size(settings.train_fraction, n),
        settings.alpha,
        spec=spec,
        random_state=conformal_seed,
    )

    step_start = time.time()
    boot = {
        level: bootstrap(
            labeled,
            coefficient_statistic(level, spec),
            settings.bootstrap_replicates,
            random_state=seed,
            n_jobs=settings.n_jobs,
            on_error=settings.on_error,
        )
        for level, seed in zip(
            settings.bootstrap_levels,
            bootstrap_seed.spawn(len(settings.bootstrap_levels)),
        )
    }
    logger.info("Bootstrap completed in %.2f seconds", time.time() - step_start)

    test_rmse = math.nan
    test_coverage = math.nan
    test_predictions = None
    if test is not None and len(test):
        test_predictions = _test_predictions(test, model, conformal)
        test_labeled = test.labeled()
        if len(test_labeled):
            test_rmse = rmse(test_labeled.count, model.predict_dataset(test_labeled))
            test_coverage = conformal.coverage(test_labeled)
        else:
            logger.info("Test data has no counts; skipping test RMSE and coverage")

    summary = build_summary_table(
        cross_validation=cv,
        conformal=conformal,
        bootstrap=boot,
        confidence_level=settings.confidence_level,
        test_rmse=test_rmse,
        test_coverage=test_coverage,
    )
    return {
        "model": model,
        "cross_validation": cv,
        "conformal": conformal,
        "bootstrap": boot,
        "test_rmse": test_rmse,
        "test_coverage": test_coverage,
        "test_predictions": test_predictions,
        "summary": summary,
        "settings": settings,
    }


def print_summary(results: Dict) -> None:
    print("\nUncertainty summary:")
    summary = results["summary"]
    if summary.empty:
        print("  (no results)")
        return
    for _, row in summary.iterrows():
        print(f" - {row['Procedure']}: {row['Quantity']} = {row['Reported']}")


def _positive_int(text: str) -> int:
    value = int(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {text}")
    return value


def _open_unit_interval(text: str) -> float:
    value = float(text)
    if not 0.0 < value < 1.0:
        raise argparse.ArgumentTypeError(f"must lie strictly between 0 and 1, got {text}")
    return value


def _tail_probability(text: str) -> float:
    value = float(text)
    if not 0.0 < value < 0.5:
        raise argparse.ArgumentTypeError(f"must lie strictly between 0 and 0.5, got {text}")
    return value


def _n_jobs(text: str) -> int:
    value = int(text)
    if value == 0:
        raise argparse.ArgumentTypeError("must be a non-zero integer (-1 uses every core)")
    return value


def _build_arg_parser() -> argparse.ArgumentParser:
    """Build command-line parser for module execution."""
    parser = argparse.ArgumentParser(
        description="Cross-validation, conformal and bootstrap uncertainty for cell counts."
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--train", help="Path to the training CSV file.")
    source.add_argument(
        "--simulate",
        type=_positive_int,
        metavar="N",
        help="Generate N synthetic training rows (and N test rows) instead.",
    )
    parser.add_argument("--test", default=None, help="Optional test CSV file.")
    parser.add_argument(
        "--outdir",
        default=str(DEFAULT_OUTPUT_DIR),
        help=f"Output directory (default: {DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed.")
    parser.add_argument(
        "--intercept",
        choices=INTERCEPT_CHOICES,
        default=None,
        help="Intercept term of the count model (default: none).",
    )
    parser.add_argument(
        "--validation-fraction",
        type=_open_unit_interval,
        default=None,
        help="Share of rows held out in each cross-validation trial.",
    )
    parser.add_argument(
        "--cv-repetitions",
        type=_positive_int,
        default=None,
        help="Cross-validation trials.",
    )
    parser.add_argument(
        "--train-fraction",
        type=_open_unit_interval,
        default=None,
        help="Share of rows used to fit the conformal model.",
    )
    parser.add_argument(
        "--alpha",
        type=_tail_probability,
        default=None,
        help="Tail probability per conformal bound.",
    )
    parser.add_argument(
        "--replicates", type=_positive_int, default=None, help="Bootstrap replicates."
    )
    parser.add_argument(
        "--level",
        type=_open_unit_interval,
        default=None,
        help="Bootstrap confidence level.",
    )
    parser.add_argument(
        "--n-jobs", type=_n_jobs, default=None, help="Parallel workers for trial loops."
    )
    parser.add_argument(
        "--skip-failed-trials",
        action="store_true",
        help="Skip trials that fail to fit instead of aborting.",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> AnalysisSettings:
    base = AnalysisSettings()
    return base.with_overrides(
        seed=args.seed,
        spec=ModelSpec(intercept=args.intercept) if args.intercept else None,
        validation_fraction=args.validation_fraction,
        cv_repetitions=args.cv_repetitions,
        train_fraction=args.train_fraction,
        alpha=args.alpha,
        bootstrap_replicates=args.replicates,
        confidence_level=args.level,
        n_jobs=args.n_jobs,
        on_error="skip" if args.skip_failed_trials else None,
        output_dir=Path(args.outdir),
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for running the full analysis."""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    settings = settings_from_args(args)

    try:
        if args.simulate is not None:
            train = simulate_cell_counts(
                args.simulate,
                stain_weights=SIMULATED_TRAIN_WEIGHTS,
                random_state=settings.seed,
            )
            test = simulate_cell_counts(
                args.simulate,
                stain_weights=SIMULATED_TEST_WEIGHTS,
                random_state=settings.seed + 1,
            )
            logger.info("Simulated %d training and %d test rows", len(train), len(test))
        else:
            train = load_cell_counts(args.train)
            test = load_cell_counts(args.test) if args.test else None
        results = run_analysis(train, test, settings)
    except TallyError as exc:
        logger.error("Analysis failed: %s", exc)
        return 1

    print_summary(results)
    save_results_to_csv(results, str(settings.output_dir))
    return 0


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s"
    )
    raise SystemExit(main())
