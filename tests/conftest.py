"""Pytest configuration for repository-relative imports and shared data."""

import os
import sys

import pandas as pd
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from tally.simulation import simulate_cell_counts  # noqa: E402


@pytest.fixture
def cell_counts():
    """100 synthetic rows with slopes 3.0 (stain 1) and 1.5 (stain 2)."""
    return simulate_cell_counts(100, random_state=2024)


@pytest.fixture
def counts_csv(tmp_path):
    path = tmp_path / "train.csv"
    pd.DataFrame(
        {
            "stain": [1, 2, 1, 2, 1, 2],
            "intensity": [10.0, 20.0, 30.0, 40.0, 50.0, 60.0],
            "count": [31, 29, 92, 61, 148, 90],
        }
    ).to_csv(path, index=False)
    return path
