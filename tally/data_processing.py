"""
Handles CSV parsing, validation, and row-level access to cell-count data.
"""

# Algorithm summary: read a tidy CSV with stain/intensity/count columns,
# normalise header names, coerce numerics, drop blank rows, validate the
# value domain, and store the result column-wise as read-only numpy arrays so
# resampling routines can index whole rows cheaply.

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import DataFormatError, DegenerateInputError, InvalidSplitSizeError
from .schema import STAIN_LEVELS, ObservationColumns

logger = logging.getLogger(__name__)

COLUMNS = ObservationColumns()


@dataclass(frozen=True)
class Observation:
    """One measured well: stain level, stain intensity and cell count."""

    stain: int
    intensity: float
    count: Optional[int] = None


def _readonly(values: np.ndarray) -> np.ndarray:
    arr = np.array(values, copy=True)
    arr.setflags(write=False)
    return arr


def _check_domain(stain: np.ndarray, intensity: np.ndarray, count: np.ndarray) -> None:
    """Raise :class:`DataFormatError` for values outside the observation domain."""
    bad_stain = ~np.isin(stain, STAIN_LEVELS)
    if bad_stain.any():
        raise DataFormatError(
            f"{int(bad_stain.sum())} rows have stain outside {STAIN_LEVELS}: "
            f"{sorted(set(stain[bad_stain].tolist()))}"
        )
    bad_intensity = ~np.isfinite(intensity) | (intensity < 0)
    if bad_intensity.any():
        raise DataFormatError(
            f"{int(bad_intensity.sum())} rows have missing, non-numeric or "
            "negative intensity."
        )
    observed = count[~np.isnan(count)]
    if (~np.isfinite(observed) | (observed < 0) | (observed != np.round(observed))).any():
        raise DataFormatError("Found counts that are negative or not whole numbers.")


@dataclass(frozen=True, eq=False)
class Dataset:
    """Ordered, immutable collection of observations stored column-wise.

    Attributes:
        stain (numpy.ndarray): Integer stain level per row.
        intensity (numpy.ndarray): Non-negative stain intensity per row.
        count (numpy.ndarray): Cell count per row as ``float``; ``NaN`` marks
            a missing (held-out) count.

    Note:
        Rows are the unit of resampling. Every subset or resample keeps the
        (stain, intensity, count) triple of a row together.

    Raises:
        DataFormatError: If the columns differ in length, a stain is not in
            ``STAIN_LEVELS``, an intensity is negative or missing, or an
            observed count is negative or fractional.
    """

    stain: np.ndarray
    intensity: np.ndarray
    count: np.ndarray

    def __post_init__(self) -> None:
        raw_stain = np.asarray(self.stain, dtype=float).ravel()
        intensity = np.asarray(self.intensity, dtype=float).ravel()
        count = np.asarray(self.count, dtype=float).ravel()
        if not (len(raw_stain) == len(intensity) == len(count)):
            raise DataFormatError(
                "stain, intensity and count must have equal lengths; got "
                f"{len(raw_stain)}, {len(intensity)}, {len(count)}."
            )
        _check_domain(raw_stain, intensity, count)
        stain = raw_stain.astype(int)
        object.__setattr__(self, "stain", _readonly(stain))
        object.__setattr__(self, "intensity", _readonly(intensity))
        object.__setattr__(self, "count", _readonly(count))

    def __len__(self) -> int:
        return int(len(self.stain))

    @classmethod
    def from_observations(cls, observations: Sequence[Observation]) -> "Dataset":
        """Build a dataset from a sequence of :class:`Observation` records."""
        return cls(
            stain=[obs.stain for obs in observations],
            intensity=[obs.intensity for obs in observations],
            count=[np.nan if obs.count is None else obs.count for obs in observations],
        )

    @property
    def has_counts(self) -> bool:
        """Return ``True`` when every row carries an observed count."""
        return bool(len(self) > 0 and np.all(np.isfinite(self.count)))

    def labeled(self) -> "Dataset":
        """Return the subset of rows that carry an observed count."""
        return self.take(np.flatnonzero(np.isfinite(self.count)))

    def require_counts(self, purpose: str) -> None:
        """Raise :class:`DegenerateInputError` unless every row has a count."""
        missing = int(np.sum(np.isnan(self.count)))
        if missing:
            raise DegenerateInputError(
                f"{purpose} needs an observed count on every row; "
                f"{missing} of {len(self)} rows are missing one."
            )

    def take(self, indices: Sequence[int] | np.ndarray) -> "Dataset":
        """Select rows by position; repeated indices repeat rows."""
        idx = np.asarray(indices, dtype=np.intp)
        return Dataset(
            stain=self.stain[idx],
            intensity=self.intensity[idx],
            count=self.count[idx],
        )

    def complement(self, indices: Sequence[int] | np.ndarray) -> np.ndarray:
        """Return sorted row positions that are not in ``indices``."""
        mask = np.ones(len(self), dtype=bool)
        mask[np.asarray(indices, dtype=np.intp)] = False
        return np.flatnonzero(mask)

    def sample(
        self,
        size: int,
        rng: np.random.Generator,
        replace: bool = False,
    ) -> "Dataset":
        """Draw ``size`` rows uniformly, with or without replacement.

        Raises:
            InvalidSplitSizeError: If ``size`` is not positive, or exceeds the
                dataset size when sampling without replacement.
        """
        n = len(self)
        if size <= 0 or (not replace and size > n):
            raise InvalidSplitSizeError(
                f"Cannot draw {size} rows from a dataset of {n} "
                f"({'with' if replace else 'without'} replacement)."
            )
        return self.take(rng.choice(n, size=size, replace=replace))

    def resample(self, rng: np.random.Generator) -> "Dataset":
        """Draw ``len(self)`` rows with replacement (one bootstrap sample)."""
        return self.sample(len(self), rng, replace=True)

    def observations(self) -> Iterator[Observation]:
        for stain, intensity, count in zip(self.stain, self.intensity, self.count):
            yield Observation(
                stain=int(stain),
                intensity=float(intensity),
                count=int(count) if np.isfinite(count) else None,
            )

    def to_frame(self, columns: ObservationColumns = COLUMNS) -> pd.DataFrame:
        """Return the rows as a tidy :class:`pandas.DataFrame`."""
        return pd.DataFrame(
            {
                columns.stain: self.stain,
                columns.intensity: self.intensity,
                columns.count: pd.array(
                    [int(c) if np.isfinite(c) else None for c in self.count],
                    dtype="Int64",
                ),
            }
        )


def _normalise_columns(df: pd.DataFrame) -> pd.DataFrame:
    lookup = {str(col).strip().lower(): col for col in df.columns}
    rename_map = {}
    for name in (COLUMNS.stain, COLUMNS.intensity, COLUMNS.count):
        found = lookup.get(name)
        if found is not None:
            rename_map[found] = name
    return df.rename(columns=rename_map)


def frame_to_dataset(df: pd.DataFrame, source: str = "<frame>") -> Dataset:
    """Validate a raw observation table and convert it to a :class:`Dataset`.

    Args:
        df (pandas.DataFrame): Table with ``stain``, ``intensity`` and
            optionally ``count`` columns (header case and surrounding
            whitespace are ignored).
        source (str): Label used in log and error messages.

    Returns:
        Dataset: Validated, immutable dataset.

    Raises:
        DataFormatError: If required columns are missing, a stain level is
            unknown, an intensity is negative or non-numeric, or a count is
            negative or non-integer.

    Note:
        Rows that are entirely empty are dropped with a warning. A missing
        ``count`` column is treated as all-missing counts (test data).
    """
    working = _normalise_columns(df)
    missing = {COLUMNS.stain, COLUMNS.intensity} - set(working.columns)
    if missing:
        raise DataFormatError(
            f"{source} is missing required columns: {sorted(missing)}. "
            f"Available columns: {list(df.columns)}"
        )
    if COLUMNS.count not in working.columns:
        working = working.assign(**{COLUMNS.count: np.nan})

    working = working[[COLUMNS.stain, COLUMNS.intensity, COLUMNS.count]].copy()
    n_raw = len(working)
    working = working.dropna(how="all")
    if len(working) < n_raw:
        logger.warning(
            "Dropped %d empty rows from %s", n_raw - len(working), source
        )

    stain = pd.to_numeric(working[COLUMNS.stain], errors="coerce")
    intensity = pd.to_numeric(working[COLUMNS.intensity], errors="coerce")
    count = pd.to_numeric(working[COLUMNS.count], errors="coerce")

    bad_stain = ~stain.isin(STAIN_LEVELS)
    if bad_stain.any():
        raise DataFormatError(
            f"{source} has {int(bad_stain.sum())} rows with stain outside "
            f"{STAIN_LEVELS}: {sorted(working.loc[bad_stain, COLUMNS.stain].unique().tolist(), key=str)}"
        )
    bad_intensity = ~np.isfinite(intensity) | (intensity < 0)
    if bad_intensity.any():
        raise DataFormatError(
            f"{source} has {int(bad_intensity.sum())} rows with missing, "
            "non-numeric or negative intensity."
        )
    raw_count = working[COLUMNS.count]
    unparsed = raw_count.notna() & count.isna()
    if unparsed.any():
        raise DataFormatError(
            f"{source} has {int(unparsed.sum())} rows with non-numeric count."
        )
    observed = count.dropna()
    if ((observed < 0) | (observed != np.round(observed))).any():
        raise DataFormatError(
            f"{source} has counts that are negative or not whole numbers."
        )

    dataset = Dataset(
        stain=stain.to_numpy(dtype=int),
        intensity=intensity.to_numpy(dtype=float),
        count=count.to_numpy(dtype=float),
    )
    logger.info(
        "Loaded %d observations from %s (%d with counts)",
        len(dataset),
        source,
        int(np.isfinite(dataset.count).sum()),
    )
    return dataset


def load_cell_counts(filepath) -> Dataset:
    """
    Load cell-count observations from a CSV file.

    Args:
        filepath (str | os.PathLike): Path to the CSV file.

    Returns:
        Dataset: Validated dataset.
    """
    return frame_to_dataset(pd.read_csv(filepath), source=str(filepath))


def load_training_and_test(train_path, test_path) -> Tuple[Dataset, Dataset]:
    """Load the training and test datasets of the worked example.

    The test file may leave ``count`` empty or omit the column entirely.
    """
    return load_cell_counts(train_path), load_cell_counts(test_path)
