#!/usr/bin/env python3
"""Reshape a wide dataset to long form and chart it.

Each row of the input is one entity with several measurement columns. The
table is stacked into (entity, measurement, value) rows and drawn as a
grouped scatter: one colour per measurement type.

Usage:
    python scripts/plot_long_format.py --data https://example.org/table.csv --id name
    python scripts/plot_long_format.py --data table.csv --id name --columns height weight
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt

from mcestimate.datasets import load_table, wide_to_long


def main():
    parser = argparse.ArgumentParser(description="Wide-to-long reshape and chart")
    parser.add_argument("--data", required=True, help="CSV path or http(s) URL")
    parser.add_argument("--id", required=True, help="Entity identifier column")
    parser.add_argument(
        "--columns", nargs="*", default=None, help="Measurement columns (default: all)"
    )
    parser.add_argument("--output", default="figures/long_format.png", help="Output file path")
    parser.add_argument("--save-csv", default=None, help="Also write the long table here")
    args = parser.parse_args()

    try:
        df = load_table(args.data)
        long_df = wide_to_long(df, args.id, args.columns)
    except (FileNotFoundError, KeyError, ValueError) as e:
        print(f"Error: {e}")
        return 1

    if args.save_csv:
        long_df.to_csv(args.save_csv, index=False)
        print(f"Saved: {args.save_csv}")

    fig, ax = plt.subplots(figsize=(10, 6))
    entities = list(dict.fromkeys(long_df[args.id]))
    positions = {entity: i for i, entity in enumerate(entities)}
    for measurement, group in long_df.groupby("measurement", sort=False):
        ax.scatter(
            group[args.id].map(positions),
            group["value"],
            label=str(measurement),
            alpha=0.8,
        )

    ax.set_xticks(range(len(entities)))
    ax.set_xticklabels([str(e) for e in entities], rotation=45, ha="right")
    ax.set_xlabel(args.id, fontsize=12)
    ax.set_ylabel("Value", fontsize=12)
    ax.set_title("Measurements by Entity", fontsize=14)
    ax.legend(loc="upper right", fontsize=9)
    ax.grid(True, alpha=0.3)

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    print(f"Saved: {output_path}")
    plt.close()
    return 0


if __name__ == "__main__":
    exit(main())
