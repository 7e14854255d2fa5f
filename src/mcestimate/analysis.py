"""Experiment runner: builds trials from settings, estimates, and exports results."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import numpy as np
import pandas as pd

from .config.settings import ExperimentType, RunSettings
from .simulation.engine import EstimateResult, estimate, estimate_until, replicate
from .simulation.errors import InvalidParameter, UndefinedResult
from .simulation.stochastics import SeededSource
from .simulation.trials import (
    INTEGRANDS,
    BuffonNeedleTrial,
    CoverageTrial,
    IntegralTrial,
    StoppingTimeTrial,
    estimate_pi,
)
from .utils import thin_indices

logger = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_UNDEFINED = "undefined"


@dataclass
class ExperimentPlan:
    """A ready-to-run trial plus how to read its mean."""

    experiment: ExperimentType
    trial: Callable[[SeededSource], Any]
    n_trials: int
    reference: float | None
    # Maps the mean of trial results to the reported estimate.
    transform: Callable[[float], float] = float
    extras: Callable[[], dict[str, Any]] = dict


@dataclass
class ExperimentReport:
    """Outcome of one experiment."""

    experiment: ExperimentType
    status: str
    estimate: float
    reference: float | None
    result: EstimateResult | None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def abs_error(self) -> float | None:
        if self.reference is None or self.status != STATUS_OK:
            return None
        return abs(self.estimate - self.reference)


def build_plan(experiment: ExperimentType, params: Any) -> ExperimentPlan:
    """Create the trial for an experiment from its parameter dataclass."""
    if experiment is ExperimentType.STOPPING_TIME:
        trial = StoppingTimeTrial(max_draws=params.max_draws)
        return ExperimentPlan(
            experiment=experiment,
            trial=trial,
            n_trials=params.n_trials,
            reference=math.e,
            extras=lambda: {"capped_trials": trial.capped, "max_draws": trial.max_draws},
        )

    if experiment is ExperimentType.INTEGRAL:
        func = INTEGRANDS.get(params.integrand)
        if func is None:
            raise InvalidParameter(
                f"Unknown integrand '{params.integrand}' (choices: {', '.join(INTEGRANDS)})"
            )
        trial = IntegralTrial(func, params.low, params.high)
        return ExperimentPlan(
            experiment=experiment,
            trial=trial,
            n_trials=params.n_trials,
            reference=trial.reference(),
            extras=lambda: {
                "integrand": params.integrand,
                "interval": [params.low, params.high],
            },
        )

    if experiment is ExperimentType.BUFFON:
        trial = BuffonNeedleTrial(params.needle_length, params.line_spacing)
        return ExperimentPlan(
            experiment=experiment,
            trial=trial,
            n_trials=params.n_trials,
            reference=math.pi,
            transform=lambda rate: estimate_pi(
                rate, params.needle_length, params.line_spacing
            ),
            extras=lambda: {
                "needle_length": params.needle_length,
                "line_spacing": params.line_spacing,
            },
        )

    if experiment is ExperimentType.COVERAGE:
        trial = CoverageTrial(params.mean, params.sd, params.sample_size, params.level)
        return ExperimentPlan(
            experiment=experiment,
            trial=trial,
            n_trials=params.n_trials,
            reference=params.level,
            extras=lambda: {"sample_size": params.sample_size, "level": params.level},
        )

    raise ValueError(f"Unsupported experiment: {experiment}")


def _transform_or_nan(plan: ExperimentPlan, mean: float) -> float:
    try:
        return float(plan.transform(mean))
    except UndefinedResult as e:
        logger.warning("%s replication undefined: %s", plan.experiment.value, e)
        return math.nan


def run_experiment(
    plan: ExperimentPlan, settings: RunSettings, verbose: bool = False
) -> ExperimentReport:
    """Run one experiment from a fresh source seeded with settings.seed.

    UndefinedResult is reported as a NaN estimate with status "undefined".
    """
    name = plan.experiment.value
    source = SeededSource(settings.seed)
    if verbose:
        print(f"[MC] {name}: {plan.n_trials} trials, seed {settings.seed}")

    try:
        # A sequential run needs two trials for a standard error.
        if settings.tolerance is not None and plan.n_trials >= 2:
            result = estimate_until(
                plan.trial,
                source,
                settings.tolerance,
                min_trials=min(settings.min_trials, plan.n_trials),
                max_trials=plan.n_trials,
                check_every=settings.check_every,
            )
        else:
            result = estimate(plan.trial, source, plan.n_trials)
        value = float(plan.transform(result.mean))
        status = STATUS_OK
    except UndefinedResult as e:
        logger.warning("%s estimate undefined: %s", name, e)
        if verbose:
            print(f"[MC] {name}: estimate undefined ({e})")
        return ExperimentReport(
            experiment=plan.experiment,
            status=STATUS_UNDEFINED,
            estimate=math.nan,
            reference=plan.reference,
            result=None,
            extras={"reason": str(e), **plan.extras()},
        )

    extras = plan.extras()
    if result.converged is not None:
        extras["converged"] = result.converged

    if settings.replications > 0:
        reps = replicate(
            plan.trial,
            SeededSource(settings.seed),
            result.n_trials,
            settings.replications,
        )
        extras["replication_estimates"] = [_transform_or_nan(plan, r.mean) for r in reps]

    report = ExperimentReport(
        experiment=plan.experiment,
        status=status,
        estimate=value,
        reference=plan.reference,
        result=result,
        extras=extras,
    )
    if verbose:
        ref = f" (reference {plan.reference:.6f})" if plan.reference is not None else ""
        print(f"[MC] {name}: estimate {value:.6f}{ref}, n={result.n_trials}")
    return report


def compute_statistics(result: EstimateResult) -> dict[str, Any]:
    """Summary statistics of the trial values behind an estimate."""
    values = result.values
    ci_low, ci_high = result.confidence_interval(0.95)
    return {
        "n_trials": result.n_trials,
        "mean": float(np.mean(values)),
        "std": float(np.std(values)),
        "min": float(np.min(values)),
        "max": float(np.max(values)),
        "median": float(np.median(values)),
        "p5": float(np.percentile(values, 5)),
        "p95": float(np.percentile(values, 95)),
        "std_error": result.std_error,
        "ci95": [ci_low, ci_high],
    }


def _json_float(value: float | None) -> float | None:
    if value is None or math.isnan(value):
        return None
    return value


def report_to_dict(report: ExperimentReport) -> dict[str, Any]:
    data: dict[str, Any] = {
        "status": report.status,
        "estimate": _json_float(report.estimate),
        "reference": report.reference,
        "abs_error": report.abs_error,
    }
    if report.result is not None:
        data["trial_statistics"] = {
            k: _json_float(v) if isinstance(v, float) else v
            for k, v in compute_statistics(report.result).items()
        }
    extras = dict(report.extras)
    if "replication_estimates" in extras:
        extras["replication_estimates"] = [
            _json_float(v) for v in extras["replication_estimates"]
        ]
    data.update(extras)
    return data


def convergence_frame(result: EstimateResult, max_points: int) -> pd.DataFrame:
    """(n, partial_mean) pairs, thinned to about max_points rows."""
    if result.partial_means is None:
        raise ValueError("Result has no partial means")
    idx = thin_indices(result.n_trials, max_points)
    return pd.DataFrame({"n": idx + 1, "partial_mean": result.partial_means[idx]})


def run_analysis(
    plans: list[ExperimentPlan],
    settings: RunSettings,
    verbose: bool = True,
) -> dict[str, ExperimentReport]:
    """Run every plan and, if settings.output_dir is set, export results.

    Writes:
      - estimates.json
      - <experiment>_convergence.csv (one per defined estimate)
    """
    reports = {}
    for plan in plans:
        reports[plan.experiment.value] = run_experiment(plan, settings, verbose=verbose)

    if settings.output_dir is not None:
        output_path = Path(settings.output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        summary = {
            "seed": settings.seed,
            "experiments": {name: report_to_dict(r) for name, r in reports.items()},
        }
        stats_file = output_path / "estimates.json"
        with open(stats_file, "w") as f:
            json.dump(summary, f, indent=2)
        if verbose:
            print(f"[MC] Estimates saved to: {stats_file}")

        for report in reports.values():
            if report.result is None:
                continue
            df = convergence_frame(report.result, settings.convergence_points)
            csv_file = output_path / f"{report.experiment.config_key}_convergence.csv"
            df.to_csv(csv_file, index=False)
            if verbose:
                print(f"[MC] Convergence series saved to: {csv_file}")

    return reports
