import logging

import numpy as np
import pytest
from joblib import parallel_config

from tally.data_processing import Dataset
from tally.errors import DegenerateInputError, InvalidSplitSizeError
from tally.stats.cross_validation import cross_validate
from tally.stats.evaluation import rmse
from tally.stats.regression import ModelSpec, fit_linear_model


def test_validation_and_training_rows_partition_the_dataset(cell_counts):
    n = len(cell_counts)
    result = cross_validate(cell_counts, 30, repetitions=20, random_state=1)
    assert len(result.scores) == 20
    for val_idx in result.validation_indices:
        train_idx = cell_counts.complement(val_idx)
        assert len(val_idx) == 30
        assert set(val_idx).isdisjoint(train_idx)
        assert set(val_idx) | set(train_idx) == set(range(n))


def test_scores_match_manual_fit_and_rmse(cell_counts):
    result = cross_validate(cell_counts, 25, repetitions=5, random_state=3)
    for val_idx, score in zip(result.validation_indices, result.scores):
        model = fit_linear_model(cell_counts.take(cell_counts.complement(val_idx)))
        validation = cell_counts.take(val_idx)
        assert np.isclose(score, rmse(validation.count, model.predict_dataset(validation)))
    assert np.isclose(result.mean, np.mean(result.scores))
    assert np.isclose(result.std, np.std(result.scores))


def test_same_seed_same_scores(cell_counts):
    a = cross_validate(cell_counts, 30, repetitions=10, random_state=99)
    b = cross_validate(cell_counts, 30, repetitions=10, random_state=99)
    c = cross_validate(cell_counts, 30, repetitions=10, random_state=100)
    assert np.array_equal(a.scores, b.scores)
    assert not np.array_equal(a.scores, c.scores)


def test_parallel_workers_do_not_change_results(cell_counts):
    serial = cross_validate(cell_counts, 30, repetitions=12, random_state=5)
    with parallel_config(backend="threading"):
        parallel = cross_validate(
            cell_counts, 30, repetitions=12, random_state=5, n_jobs=3
        )
    assert np.array_equal(serial.scores, parallel.scores)


def test_intercept_model_and_custom_score(cell_counts):
    def mean_abs_error(truth, predicted):
        return float(np.mean(np.abs(truth - predicted)))

    result = cross_validate(
        cell_counts,
        20,
        repetitions=5,
        spec=ModelSpec(intercept="shared"),
        score=mean_abs_error,
        random_state=0,
    )
    assert np.all(result.scores > 0)


@pytest.mark.parametrize("size", [0, 100, 150])
def test_invalid_validation_size(cell_counts, size):
    with pytest.raises(InvalidSplitSizeError):
        cross_validate(cell_counts, size, repetitions=3)


def test_skip_mode_drops_degenerate_trials(caplog):
    caplog.set_level(logging.WARNING)
    # One stain-2 row: every split that puts it in validation leaves the
    # training rows without stain 2.
    ds = Dataset(
        stain=[1] * 9 + [2],
        intensity=np.arange(1.0, 11.0),
        count=np.arange(1.0, 11.0) * 2,
    )
    with pytest.raises(DegenerateInputError):
        cross_validate(ds, 5, repetitions=30, random_state=0)

    result = cross_validate(ds, 5, repetitions=30, random_state=0, on_error="skip")
    assert 0 < len(result.scores) < 30
    assert all(9 not in idx for idx in result.validation_indices)
    assert any("Skipping cross-validation trial" in r.message for r in caplog.records)


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_missing_count_raises_for_every_seed(cell_counts, seed):
    count = cell_counts.count.copy()
    count[0] = np.nan
    ds = Dataset(stain=cell_counts.stain, intensity=cell_counts.intensity, count=count)
    with pytest.raises(DegenerateInputError, match="missing"):
        cross_validate(ds, 30, repetitions=20, random_state=seed, on_error="skip")
