#!/usr/bin/env python3
"""Generate convergence figures from a results directory.

Reads estimates.json and the <experiment>_convergence.csv files written by
`mcestimate --output <dir>` and draws one running-mean chart per experiment.

Usage:
    python scripts/plot_convergence.py --results results/20260202_161902
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import pandas as pd

from mcestimate.plotting import plot_convergence

# Reference lines only make sense where the running mean is the estimate itself.
MEAN_IS_ESTIMATE = {"stopping-time", "integral", "coverage"}


def main():
    parser = argparse.ArgumentParser(description="Generate convergence plots")
    parser.add_argument(
        "--results", required=True, help="Path to estimation results directory"
    )
    parser.add_argument("--output", default=None, help="Output directory for figures")
    parser.add_argument(
        "--linear", action="store_true", help="Linear x axis instead of log scale"
    )
    args = parser.parse_args()

    results_dir = Path(args.results)
    stats_file = results_dir / "estimates.json"
    if not stats_file.exists():
        print(f"Error: Results file not found: {stats_file}")
        print("Run the estimators first with: mcestimate --output <dir>")
        return 1

    with open(stats_file) as f:
        summary = json.load(f)

    figures_dir = Path(args.output) if args.output else results_dir / "figures"
    figures_dir.mkdir(parents=True, exist_ok=True)

    for name, entry in summary["experiments"].items():
        csv_file = results_dir / f"{name.replace('-', '_')}_convergence.csv"
        if not csv_file.exists():
            print(f"Skipping {name}: no convergence data ({entry['status']})")
            continue
        df = pd.read_csv(csv_file)
        reference = entry.get("reference") if name in MEAN_IS_ESTIMATE else None
        output_path = plot_convergence(
            df["n"].values,
            df["partial_mean"].values,
            figures_dir / f"{name.replace('-', '_')}_convergence.png",
            reference=reference,
            title=f"Convergence: {name} (seed {summary['seed']})",
            log_x=not args.linear,
        )
        print(f"Saved: {output_path}")
    return 0


if __name__ == "__main__":
    exit(main())
