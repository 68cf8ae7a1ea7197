"""Exception types raised by the estimation routines.

Every error subclasses :class:`ValueError` so callers that already guard
numerical input with ``except ValueError`` keep working.
"""

from __future__ import annotations


class TallyError(ValueError):
    """Base class for all library errors."""


class DataFormatError(TallyError):
    """Input table is missing columns or holds out-of-domain values."""


class DegenerateInputError(TallyError):
    """Too few or rank-deficient observations for a least-squares fit."""


class LengthMismatchError(TallyError):
    """Truth and prediction sequences differ in length or are empty."""


class InvalidSplitSizeError(TallyError):
    """Requested split size is not strictly between 0 and the dataset size."""


class EmptyQuantileInputError(TallyError):
    """A quantile or moment was requested over zero replicates."""
