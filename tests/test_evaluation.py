import math

import numpy as np
import pytest

from tally.errors import DegenerateInputError, LengthMismatchError
from tally.stats.evaluation import residuals, rmse


def test_rmse_of_identical_sequences_is_zero():
    x = np.array([1.0, 5.0, 9.0, 2.5])
    assert rmse(x, x) == 0.0


def test_rmse_is_symmetric():
    a = [1.0, 2.0, 3.0, 10.0]
    b = [2.0, 2.0, 1.0, 7.0]
    assert math.isclose(rmse(a, b), rmse(b, a))


def test_rmse_known_value():
    # squared errors 1, 0, 4, 9 -> mean 3.5
    assert math.isclose(rmse([1, 2, 3, 10], [2, 2, 1, 7]), math.sqrt(3.5))


def test_residuals_are_truth_minus_prediction():
    assert residuals([5.0, 1.0], [3.0, 2.0]).tolist() == [2.0, -1.0]


@pytest.mark.parametrize("truth, predicted", [([1, 2], [1]), ([], []), ([1.0], [])])
def test_rmse_rejects_bad_lengths(truth, predicted):
    with pytest.raises(LengthMismatchError):
        rmse(truth, predicted)


@pytest.mark.parametrize(
    "truth, predicted",
    [([1.0, np.nan], [1.0, 2.0]), ([1.0, 2.0], [np.inf, 2.0])],
)
def test_non_finite_values_are_rejected(truth, predicted):
    with pytest.raises(DegenerateInputError, match="must be finite"):
        rmse(truth, predicted)
    with pytest.raises(DegenerateInputError):
        residuals(truth, predicted)
