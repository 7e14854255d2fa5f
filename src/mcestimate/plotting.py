"""Chart helpers for convergence curves and trial distributions."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np


def plot_convergence(
    n: Sequence[float],
    partial_means: Sequence[float],
    output_path: Path | str,
    reference: float | None = None,
    title: str = "Monte Carlo Convergence",
    ylabel: str = "Running Mean",
    log_x: bool = True,
) -> Path:
    """Line chart of (n, running mean) pairs with an optional reference line."""
    n = np.asarray(n, dtype=float)
    partial_means = np.asarray(partial_means, dtype=float)
    if n.shape != partial_means.shape:
        raise ValueError(
            f"n and partial_means must have the same shape, got {n.shape} and {partial_means.shape}"
        )
    if n.size == 0:
        raise ValueError("Nothing to plot: empty series")

    fig, ax = plt.subplots(figsize=(10, 6))
    ax.plot(n, partial_means, "b-", linewidth=1.5, label="Running Mean")

    if reference is not None:
        ax.axhline(
            y=reference,
            color="red",
            linestyle="--",
            linewidth=1.5,
            label=f"Reference ({reference:.5f})",
        )

    if log_x and n.min() > 0:
        ax.set_xscale("log")
    ax.set_xlabel("Number of Trials", fontsize=12)
    ax.set_ylabel(ylabel, fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend(loc="upper right", fontsize=9)
    ax.grid(True, alpha=0.3)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path


def plot_trial_histogram(
    values: Sequence[float],
    output_path: Path | str,
    title: str = "Distribution of Trial Results",
    xlabel: str = "Trial Result",
) -> Path:
    """Histogram of trial results; integer-valued results get one bar per value."""
    values = np.asarray(values, dtype=float)
    if values.size == 0:
        raise ValueError("Nothing to plot: empty series")

    fig, ax = plt.subplots(figsize=(8, 5))
    if np.all(values == np.round(values)):
        lo, hi = int(values.min()), int(values.max())
        bins = np.arange(lo, hi + 2) - 0.5
    else:
        bins = min(50, len(np.unique(values)))
    ax.hist(
        values,
        bins=bins,
        density=True,
        alpha=0.7,
        color="steelblue",
        edgecolor="white",
    )
    mean = float(values.mean())
    ax.axvline(x=mean, color="orange", linewidth=2, label=f"Mean ({mean:.4f})")

    ax.set_xlabel(xlabel, fontsize=12)
    ax.set_ylabel("Relative Frequency", fontsize=12)
    ax.set_title(title, fontsize=14)
    ax.legend(loc="upper right", fontsize=9)
    ax.grid(True, alpha=0.3)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    plt.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
