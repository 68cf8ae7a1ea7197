import numpy as np
import pytest

from tally.data_processing import Dataset
from tally.errors import DegenerateInputError
from tally.simulation import simulate_cell_counts
from tally.stats.regression import ModelSpec, design_matrix, fit_linear_model


def _exact_dataset(intercept=0.0):
    intensity = np.array([10.0, 20.0, 30.0, 16.0, 26.0, 36.0])
    stain = np.array([1, 1, 1, 2, 2, 2])
    slope = np.where(stain == 1, 3.0, 1.5)
    return Dataset(stain=stain, intensity=intensity, count=slope * intensity + intercept)


def test_design_matrix_columns():
    X = design_matrix([1, 2, 1], [2.0, 3.0, 4.0], ModelSpec(intercept="per_stain"))
    expected = np.array(
        [
            [2.0, 0.0, 1.0, 0.0],
            [0.0, 3.0, 0.0, 1.0],
            [4.0, 0.0, 1.0, 0.0],
        ]
    )
    assert np.array_equal(X, expected)
    assert ModelSpec(intercept="shared").column_names == (
        "slope[1]",
        "slope[2]",
        "intercept",
    )


def test_noiseless_fit_recovers_slopes():
    model = fit_linear_model(_exact_dataset())
    assert np.isclose(model.coefficient(1), 3.0)
    assert np.isclose(model.coefficient(2), 1.5)
    assert model.intercept() == 0.0
    assert model.dof == 4
    assert np.isclose(model.rss, 0.0, atol=1e-9)
    assert np.allclose(model.predict([1, 2], [100.0, 100.0]), [300.0, 150.0])


def test_shared_intercept_is_recovered():
    model = fit_linear_model(_exact_dataset(intercept=7.0), ModelSpec(intercept="shared"))
    assert np.isclose(model.intercept(), 7.0)
    assert np.isclose(model.coefficient(1), 3.0)
    assert np.isclose(model.coefficients["intercept"], 7.0)


def test_absent_stain_level_is_rank_deficient():
    ds = Dataset(stain=[1, 1, 1], intensity=[1.0, 2.0, 3.0], count=[3, 6, 9])
    with pytest.raises(DegenerateInputError, match="stain levels absent: \\[2\\]"):
        fit_linear_model(ds)
    model = fit_linear_model(ds, ModelSpec(levels=(1,)))
    assert np.isclose(model.coefficient(1), 3.0)


def test_fewer_rows_than_parameters_raises():
    ds = Dataset(stain=[1, 2], intensity=[1.0, 2.0], count=[3, 6])
    with pytest.raises(DegenerateInputError, match="at least 4 observations"):
        fit_linear_model(ds, ModelSpec(intercept="per_stain"))


def test_missing_counts_raise():
    ds = Dataset(stain=[1, 2, 1], intensity=[1.0, 2.0, 3.0], count=[3, np.nan, 9])
    with pytest.raises(DegenerateInputError, match="missing counts"):
        fit_linear_model(ds)


def test_unknown_stain_in_prediction_raises():
    model = fit_linear_model(_exact_dataset())
    with pytest.raises(ValueError, match="not in the model levels"):
        model.predict([3], [10.0])
    with pytest.raises(KeyError):
        model.coefficient(3)


def test_standard_errors_and_ci():
    ds = simulate_cell_counts(60, random_state=1)
    model = fit_linear_model(ds)
    se = model.standard_errors
    assert se.shape == (2,)
    assert np.all(se > 0)
    assert np.all(model.ci95 > se)

    exact = fit_linear_model(Dataset(stain=[1, 2], intensity=[1.0, 2.0], count=[3, 6]))
    assert np.all(np.isnan(exact.standard_errors))
    assert np.all(np.isnan(exact.ci95))


def test_slope_converges_with_sample_size():
    beta = 2.5
    errors = []
    for n in (20, 2000):
        ds = simulate_cell_counts(
            n, slopes={1: beta}, noise_sd=20.0, random_state=n
        )
        model = fit_linear_model(ds, ModelSpec(levels=(1,)))
        errors.append(abs(model.coefficient(1) - beta))
    assert errors[0] < 0.3
    assert errors[1] < 0.03
