"""Write analysis outputs to reproducible CSV files.

This module is the boundary between in-memory results and tabular
artifacts on disk.
"""

from __future__ import annotations

import logging
import os
from typing import Dict

import pandas as pd

logger = logging.getLogger(__name__)


def _cross_validation_table(result) -> pd.DataFrame:
    return pd.DataFrame({"Trial": result.trials, "Score": result.scores})


def _bootstrap_table(bootstrap: Dict) -> pd.DataFrame:
    frames = [
        pd.DataFrame(
            {
                "Statistic": f"slope[{level}]",
                "Replicate": range(len(result.replicates)),
                "Value": result.replicates,
            }
        )
        for level, result in sorted(bootstrap.items())
    ]
    if not frames:
        return pd.DataFrame(columns=["Statistic", "Replicate", "Value"])
    return pd.concat(frames, ignore_index=True)


def save_results_to_csv(results: Dict, output_dir: str = "output") -> Dict[str, str]:
    """Save per-trial scores, bootstrap replicates and the summary table.

    Args:
        results (dict): Output of :func:`tally.pipeline.run_analysis`.
        output_dir (str): Directory where CSV outputs are written.

    Returns:
        dict[str, str]: Paths keyed by ``"cross_validation"``,
        ``"bootstrap"``, ``"summary"`` and, when test rows were supplied,
        ``"test_predictions"``.
    """
    os.makedirs(output_dir, exist_ok=True)
    paths = {
        "cross_validation": os.path.join(output_dir, "cross_validation_scores.csv"),
        "bootstrap": os.path.join(output_dir, "bootstrap_replicates.csv"),
        "summary": os.path.join(output_dir, "summary.csv"),
    }

    _cross_validation_table(results["cross_validation"]).to_csv(
        paths["cross_validation"], index=False
    )
    _bootstrap_table(results["bootstrap"]).to_csv(paths["bootstrap"], index=False)
    results["summary"].to_csv(paths["summary"], index=False)

    predictions = results.get("test_predictions")
    if predictions is not None:
        paths["test_predictions"] = os.path.join(output_dir, "test_predictions.csv")
        predictions.to_csv(paths["test_predictions"], index=False)

    for name, path in paths.items():
        logger.info("Saved %s to %s", name.replace("_", " "), path)
    return paths
