import numpy as np
import pytest

from tally.simulation import simulate_cell_counts


def test_simulated_counts_are_non_negative_whole_numbers():
    ds = simulate_cell_counts(500, random_state=0)
    assert len(ds) == 500
    assert set(np.unique(ds.stain)) == {1, 2}
    assert np.all(ds.count >= 0)
    assert np.all(ds.count == np.round(ds.count))
    assert np.all((ds.intensity >= 10.0) & (ds.intensity <= 100.0))


def test_stain_weights_shift_the_category_mix():
    ds = simulate_cell_counts(2000, stain_weights=(0.9, 0.1), random_state=1)
    share = float(np.mean(ds.stain == 1))
    assert 0.87 < share < 0.93


def test_same_seed_same_data():
    a = simulate_cell_counts(30, random_state=5)
    b = simulate_cell_counts(30, random_state=5)
    assert np.array_equal(a.count, b.count)
    assert np.array_equal(a.intensity, b.intensity)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n": 0},
        {"n": 10, "noise_sd": -1.0},
        {"n": 10, "stain_weights": (1.0,)},
        {"n": 10, "intensity_range": (5.0, 1.0)},
        {"n": 10, "slopes": {3: 1.0}},
    ],
)
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        simulate_cell_counts(**kwargs)
