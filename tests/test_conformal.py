import math

import numpy as np
import pytest

from tally.data_processing import Dataset
from tally.errors import DegenerateInputError, InvalidSplitSizeError
from tally.simulation import simulate_cell_counts
from tally.stats.conformal import conformal_interval
from tally.stats.regression import fit_linear_model


def _linear_quantile(values, q):
    ordered = sorted(values)
    h = (len(ordered) - 1) * q
    lo = math.floor(h)
    hi = min(lo + 1, len(ordered) - 1)
    return ordered[lo] + (h - lo) * (ordered[hi] - ordered[lo])


def test_linear_quantile_reference_values():
    residuals = [8.0, -1.0, 3.0, -4.0, 10.0, 0.0, 6.0, -2.0, 5.0, 1.0]
    assert math.isclose(_linear_quantile(residuals, 0.05), -3.1)
    assert math.isclose(_linear_quantile(residuals, 0.95), 9.1)


def test_residuals_come_from_the_complementary_rows(cell_counts):
    result = conformal_interval(cell_counts, 70, alpha=0.05, random_state=11)

    assert len(result.fit_indices) == 70
    assert len(result.holdout_indices) == 30
    assert set(result.fit_indices).isdisjoint(result.holdout_indices)
    assert set(result.fit_indices) | set(result.holdout_indices) == set(range(100))

    model = fit_linear_model(cell_counts.take(result.fit_indices))
    holdout = cell_counts.take(result.holdout_indices)
    expected = holdout.count - model.predict_dataset(holdout)
    assert np.allclose(result.residuals, expected)
    assert math.isclose(result.lower, _linear_quantile(expected, 0.05), abs_tol=1e-9)
    assert math.isclose(result.upper, _linear_quantile(expected, 0.95), abs_tol=1e-9)
    assert result.lower < 0 < result.upper


def test_interval_adds_offsets_to_prediction(cell_counts):
    result = conformal_interval(cell_counts, 70, random_state=2)
    lo, hi = result.interval([1, 2], [50.0, 50.0])
    pred = result.model.predict([1, 2], [50.0, 50.0])
    assert np.allclose(lo, pred + result.lower)
    assert np.allclose(hi, pred + result.upper)
    assert np.isclose(result.nominal_coverage, 0.9)


def test_coverage_on_matching_population_is_near_nominal():
    train = simulate_cell_counts(400, random_state=21)
    test = simulate_cell_counts(2000, random_state=22)
    result = conformal_interval(train, 280, alpha=0.05, random_state=23)
    assert 0.82 < result.coverage(test) < 0.97


def test_coverage_ignores_unlabeled_rows_and_needs_labels(cell_counts):
    result = conformal_interval(cell_counts, 70, random_state=4)
    unlabeled = Dataset(stain=[1, 2], intensity=[10.0, 20.0], count=[np.nan, np.nan])
    with pytest.raises(ValueError, match="observed count"):
        result.coverage(unlabeled)
    mixed = Dataset(stain=[1, 2], intensity=[10.0, 20.0], count=[np.nan, 1e6])
    assert result.coverage(mixed) == 0.0


def test_same_seed_same_interval(cell_counts):
    a = conformal_interval(cell_counts, 70, random_state=8)
    b = conformal_interval(cell_counts, 70, random_state=8)
    assert (a.lower, a.upper) == (b.lower, b.upper)


@pytest.mark.parametrize("train_size", [0, 100])
def test_invalid_train_size(cell_counts, train_size):
    with pytest.raises(InvalidSplitSizeError):
        conformal_interval(cell_counts, train_size)


@pytest.mark.parametrize("alpha", [0.0, 0.5, 1.2])
def test_invalid_alpha(cell_counts, alpha):
    with pytest.raises(ValueError, match="alpha"):
        conformal_interval(cell_counts, 70, alpha=alpha)


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_missing_count_raises_for_every_split(cell_counts, seed):
    count = cell_counts.count.copy()
    count[0] = np.nan
    ds = Dataset(stain=cell_counts.stain, intensity=cell_counts.intensity, count=count)
    with pytest.raises(DegenerateInputError, match="missing"):
        conformal_interval(ds, 70, random_state=seed)
