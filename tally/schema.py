"""Define standardized column names for observation and result tables."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ObservationColumns:
    """Container for standardized input column labels.

    Attributes:
        stain: Column name for the stain category. Valid levels are ``1`` and
            ``2``; each level gets its own slope in the count model.

        intensity: Column name for the measured stain intensity. Must be a
            finite, non-negative real number.

        count: Column name for the observed cell count. Non-negative integer
            on training rows; may be empty on held-out test rows.
    """

    stain: str = "stain"
    intensity: str = "intensity"
    count: str = "count"


@dataclass(frozen=True)
class SummaryColumns:
    """Column labels used in the exported summary table."""

    procedure: str = "Procedure"
    quantity: str = "Quantity"
    value: str = "Value"
    uncertainty: str = "Uncertainty"
    lower: str = "Lower"
    upper: str = "Upper"


STAIN_LEVELS: tuple[int, ...] = (1, 2)
