#!/usr/bin/env python3
"""
Main script for running the cell-count uncertainty analysis.
"""

# Pipeline overview:
# 1) Load the training CSV (and optional test CSV), or simulate both with
#    different stain mixes.
# 2) Fit counts on per-stain intensity slopes by least squares.
# 3) Repeat random train/validation splits and average the validation RMSE.
# 4) Build a split-conformal interval from held-out residual quantiles.
# 5) Bootstrap each slope for variance, bias and a basic confidence interval.
# 6) Compare against the test data and export CSV summaries.

import logging
import os
import sys
import time

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("tally_analysis.log", mode="w"),
    ],
)

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from tally.pipeline import main as run_pipeline


def main():
    """Main execution function with run timing."""

    start_time = time.time()
    logging.info("Initializing cell-count uncertainty pipeline")
    status = run_pipeline(sys.argv[1:])
    logging.info("Total execution time: %.2f seconds", time.time() - start_time)
    if status == 0:
        logging.info("Analysis pipeline completed successfully")
    return status


if __name__ == "__main__":
    sys.exit(main())
