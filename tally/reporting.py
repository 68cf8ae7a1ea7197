"""Format estimation results into a tidy, report-ready summary table.

Values that carry an uncertainty are rounded so the uncertainty has one
significant figure (two when its leading digit is 1) and the value is given
to the same decimal place.
"""

from __future__ import annotations

import math
from typing import Dict, Mapping, Optional

import numpy as np
import pandas as pd

from .schema import SummaryColumns
from .stats.bootstrap import BootstrapResult
from .stats.conformal import ConformalResult
from .stats.cross_validation import CrossValidationResult

SUMMARY = SummaryColumns()
REPORTED_COLUMN = "Reported"


def round_uncertainty(uncertainty: float) -> tuple[float, int]:
    """Round an uncertainty to 1 s.f. (2 if the leading digit is 1).

    Returns:
        tuple[float, int]: Rounded uncertainty and the number of decimal
        places used (may be negative for large values).

    Raises:
        ValueError: If uncertainty is non-finite or non-positive.
    """
    u = float(uncertainty)
    if not np.isfinite(u) or u <= 0:
        raise ValueError(f"Uncertainty must be finite and > 0, got {uncertainty!r}")
    exponent = int(math.floor(math.log10(u)))
    leading = u / (10**exponent)
    sig_figs = 2 if 1.0 <= leading < 2.0 else 1
    ndigits = sig_figs - 1 - exponent
    return float(round(u, ndigits)), int(ndigits)


def format_value_with_uncertainty(value: float, uncertainty: float) -> str:
    """Format ``value ± uncertainty`` at uncertainty-matched precision.

    Falls back to 4 significant figures when the uncertainty is missing,
    zero or non-finite.
    """
    u = float(uncertainty) if uncertainty is not None else math.nan
    if not np.isfinite(u) or u <= 0:
        return f"{float(value):.4g}"
    ru, ndigits = round_uncertainty(u)
    dp = max(0, ndigits)
    return f"{round(float(value), ndigits):.{dp}f} ± {ru:.{dp}f}"


def format_interval(lower: float, upper: float, ndigits: int = 2) -> str:
    return f"[{float(lower):.{ndigits}f}, {float(upper):.{ndigits}f}]"


def _row(
    procedure: str,
    quantity: str,
    value: float,
    uncertainty: float = math.nan,
    lower: float = math.nan,
    upper: float = math.nan,
) -> Dict[str, object]:
    return {
        SUMMARY.procedure: procedure,
        SUMMARY.quantity: quantity,
        SUMMARY.value: float(value),
        SUMMARY.uncertainty: float(uncertainty),
        SUMMARY.lower: float(lower),
        SUMMARY.upper: float(upper),
    }


def build_summary_table(
    cross_validation: Optional[CrossValidationResult] = None,
    conformal: Optional[ConformalResult] = None,
    bootstrap: Optional[Mapping[int, BootstrapResult]] = None,
    confidence_level: float = 0.95,
    test_rmse: float = math.nan,
    test_coverage: float = math.nan,
) -> pd.DataFrame:
    """Collect scalar summaries from each procedure into one table.

    Args:
        cross_validation: Result of :func:`tally.stats.cross_validate`.
        conformal: Result of :func:`tally.stats.conformal_interval`.
        bootstrap: Mapping of stain level to bootstrapped slope result.
        confidence_level: Coverage used for bootstrap intervals.
        test_rmse: RMSE of the full-data model on labeled test rows.
        test_coverage: Conformal coverage on labeled test rows.

    Returns:
        pandas.DataFrame: One row per reported quantity, with a formatted
        ``Reported`` text column.
    """
    rows = []
    if cross_validation is not None and len(cross_validation.scores):
        rows.append(
            _row(
                "cross-validation",
                "mean RMSE",
                cross_validation.mean,
                uncertainty=cross_validation.std,
            )
        )
    if conformal is not None:
        rows.append(
            _row(
                "conformal",
                f"residual offsets ({conformal.nominal_coverage:.0%})",
                math.nan,
                lower=conformal.lower,
                upper=conformal.upper,
            )
        )
    for level, result in sorted((bootstrap or {}).items()):
        lo, hi = result.confidence_interval(confidence_level)
        rows.append(
            _row(
                "bootstrap",
                f"slope[{level}]",
                result.estimate,
                uncertainty=result.standard_error,
                lower=lo,
                upper=hi,
            )
        )
        rows.append(_row("bootstrap", f"bias slope[{level}]", result.bias))
    if np.isfinite(test_rmse):
        rows.append(_row("test", "RMSE", test_rmse))
    if np.isfinite(test_coverage):
        rows.append(_row("test", "conformal coverage", test_coverage))

    table = pd.DataFrame(
        rows,
        columns=[
            SUMMARY.procedure,
            SUMMARY.quantity,
            SUMMARY.value,
            SUMMARY.uncertainty,
            SUMMARY.lower,
            SUMMARY.upper,
        ],
    )
    table[REPORTED_COLUMN] = [
        format_interval(r[SUMMARY.lower], r[SUMMARY.upper])
        if not np.isfinite(r[SUMMARY.value])
        else format_value_with_uncertainty(r[SUMMARY.value], r[SUMMARY.uncertainty])
        for _, r in table.iterrows()
    ]
    return table
