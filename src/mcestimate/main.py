#!/usr/bin/env python3
"""
Monte Carlo Estimators - Main Pipeline Entry Point.

Usage:
    mcestimate                                  # All experiments, defaults from constants.yaml
    mcestimate --experiment buffon              # Buffon's needle only
    mcestimate --experiment integral --seed 7   # Integral estimate with another seed
    mcestimate --trials 10000 --output results/run1 --plot
    python -m mcestimate.main --tolerance 0.001 # Stop once the std error is small enough
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from .analysis import (
    STATUS_UNDEFINED,
    ExperimentReport,
    build_plan,
    convergence_frame,
    run_analysis,
)
from .config.settings import ExperimentType, RunSettings, experiment_params
from .plotting import plot_convergence, plot_trial_histogram
from .utils import DEFAULT_CONSTANTS_PATH, load_constants_from_file

EXPERIMENT_CHOICES = [e.value for e in ExperimentType] + ["all"]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Seeded Monte Carlo estimation experiments",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  mcestimate --experiment stopping-time --trials 250000
  mcestimate --experiment buffon --needle-length 0.5 --output results/buffon --plot
        """,
    )

    parser.add_argument(
        "--experiment",
        type=str,
        choices=EXPERIMENT_CHOICES,
        default="all",
        help="Experiment to run (default: all)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed (default: run.seed from constants.yaml)",
    )
    parser.add_argument(
        "--trials",
        type=int,
        default=None,
        help="Number of trials for every selected experiment",
    )
    parser.add_argument(
        "--max-draws",
        type=int,
        default=None,
        help="Draw cap per stopping-time trial",
    )
    parser.add_argument(
        "--needle-length",
        type=float,
        default=None,
        help="Buffon needle length (must not exceed the line spacing)",
    )
    parser.add_argument(
        "--line-spacing",
        type=float,
        default=None,
        help="Distance between Buffon gridlines",
    )
    parser.add_argument(
        "--tolerance",
        type=float,
        default=None,
        help="Stop early once the standard error is at most this value",
    )
    parser.add_argument(
        "--replications",
        type=int,
        default=None,
        help="Independent replications per experiment for spread of estimates",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for results (default: results/<timestamp>)",
    )
    parser.add_argument(
        "--no-output",
        action="store_true",
        help="Print estimates only, write no files",
    )
    parser.add_argument(
        "--plot",
        action="store_true",
        help="Write convergence and histogram figures next to the results",
    )
    parser.add_argument(
        "--constants",
        type=str,
        default=None,
        help="Path to constants.yaml file (default: packaged config/constants.yaml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    return parser.parse_args(argv)


def selected_experiments(name: str) -> list[ExperimentType]:
    if name == "all":
        return list(ExperimentType)
    return [ExperimentType(name)]


def create_settings(args: argparse.Namespace, constants: dict) -> RunSettings:
    """Create RunSettings from constants with command line overrides."""
    if args.no_output:
        output_dir = None
    elif args.output:
        output_dir = Path(args.output)
    else:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_dir = Path(f"results/{timestamp}")

    settings = RunSettings.from_config(
        constants,
        seed=args.seed,
        tolerance=args.tolerance,
        replications=args.replications,
    )
    settings.output_dir = output_dir
    return settings


def write_figures(
    reports: dict[str, ExperimentReport],
    output_dir: Path,
    max_points: int,
    verbose: bool = False,
) -> None:
    figures_dir = output_dir / "figures"
    for report in reports.values():
        if report.result is None:
            continue
        key = report.experiment.config_key
        # Buffon's running mean is a crossing rate, not pi.
        reference = None if report.experiment is ExperimentType.BUFFON else report.reference
        series = convergence_frame(report.result, max_points)
        path = plot_convergence(
            series["n"],
            series["partial_mean"],
            figures_dir / f"{key}_convergence.png",
            reference=reference,
            title=f"Convergence: {report.experiment.value}",
        )
        if verbose:
            print(f"[MC] Figure saved to: {path}")
        path = plot_trial_histogram(
            report.result.values,
            figures_dir / f"{key}_histogram.png",
            title=f"Trial Results: {report.experiment.value}",
        )
        if verbose:
            print(f"[MC] Figure saved to: {path}")


def run_pipeline(
    args: argparse.Namespace,
    constants_path: Path | str,
    verbose: bool = False,
) -> dict[str, ExperimentReport]:
    """Load constants, build the selected experiments, run and export them."""
    constants = load_constants_from_file(constants_path)
    settings = create_settings(args, constants)

    overrides = {
        "n_trials": args.trials,
        "max_draws": args.max_draws,
        "needle_length": args.needle_length,
        "line_spacing": args.line_spacing,
    }
    plans = []
    for experiment in selected_experiments(args.experiment):
        params = experiment_params(constants, experiment, **overrides)
        plans.append(build_plan(experiment, params))

    if verbose:
        print("=" * 60)
        print("Monte Carlo Estimation")
        print("=" * 60)
        print(f"Experiments: {', '.join(p.experiment.value for p in plans)}")
        print(f"Seed: {settings.seed}")
        print(f"Constants: {constants_path}")
        print(f"Output: {settings.output_dir}")
        print("=" * 60)

    reports = run_analysis(plans, settings, verbose=verbose)

    if args.plot and settings.output_dir is not None:
        write_figures(reports, settings.output_dir, settings.convergence_points, verbose)

    return reports


def print_summary(reports: dict[str, ExperimentReport]) -> None:
    for name, report in reports.items():
        if report.status == STATUS_UNDEFINED:
            print(f"{name:<14} undefined ({report.extras.get('reason', '')})")
            continue
        line = f"{name:<14} {report.estimate:.6f}"
        if report.reference is not None:
            line += f"  (reference {report.reference:.6f}, error {report.abs_error:.2e})"
        print(line)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    constants_path = Path(args.constants) if args.constants else DEFAULT_CONSTANTS_PATH

    try:
        reports = run_pipeline(args, constants_path, verbose=args.verbose)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (ValueError, KeyError, TypeError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 3

    print_summary(reports)
    if any(r.status == STATUS_UNDEFINED for r in reports.values()):
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
