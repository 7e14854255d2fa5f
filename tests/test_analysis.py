import json
import math

import pandas as pd
import pytest

from mcestimate.analysis import (
    STATUS_OK,
    STATUS_UNDEFINED,
    build_plan,
    compute_statistics,
    convergence_frame,
    run_analysis,
    run_experiment,
)
from mcestimate.config.settings import (
    BuffonParams,
    CoverageParams,
    ExperimentType,
    IntegralParams,
    RunSettings,
    StoppingTimeParams,
)
from mcestimate.simulation.errors import InvalidParameter


def small_plans():
    return [
        build_plan(ExperimentType.STOPPING_TIME, StoppingTimeParams(n_trials=2000)),
        build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=2000)),
        build_plan(ExperimentType.BUFFON, BuffonParams(n_trials=2000)),
        build_plan(ExperimentType.COVERAGE, CoverageParams(n_trials=500)),
    ]


def test_run_analysis_writes_outputs(tmp_path):
    settings = RunSettings(seed=20491720, output_dir=tmp_path, convergence_points=50)
    reports = run_analysis(small_plans(), settings, verbose=False)

    assert set(reports) == {"stopping-time", "integral", "buffon", "coverage"}
    assert all(r.status == STATUS_OK for r in reports.values())

    summary = json.loads((tmp_path / "estimates.json").read_text())
    assert summary["seed"] == 20491720
    buffon = summary["experiments"]["buffon"]
    assert buffon["reference"] == pytest.approx(math.pi)
    assert buffon["estimate"] == pytest.approx(reports["buffon"].estimate)
    assert summary["experiments"]["stopping-time"]["capped_trials"] == 0

    for key in ("stopping_time", "integral", "buffon", "coverage"):
        df = pd.read_csv(tmp_path / f"{key}_convergence.csv")
        assert list(df.columns) == ["n", "partial_mean"]
        assert len(df) <= 51
    df = pd.read_csv(tmp_path / "stopping_time_convergence.csv")
    assert df["n"].iloc[-1] == 2000
    assert df["partial_mean"].iloc[-1] == pytest.approx(reports["stopping-time"].estimate)


def test_run_analysis_is_reproducible():
    settings = RunSettings(seed=99)
    first = run_analysis(small_plans(), settings, verbose=False)
    second = run_analysis(small_plans(), settings, verbose=False)
    for name in first:
        assert first[name].estimate == second[name].estimate


def test_experiments_do_not_share_draws():
    settings = RunSettings(seed=5)
    alone = run_analysis([small_plans()[2]], settings, verbose=False)
    together = run_analysis(small_plans(), settings, verbose=False)
    assert alone["buffon"].estimate == together["buffon"].estimate


def test_undefined_estimate_is_reported(tmp_path):
    plan = build_plan(ExperimentType.BUFFON, BuffonParams(n_trials=10, needle_length=1e-9))
    settings = RunSettings(seed=1, output_dir=tmp_path)
    reports = run_analysis([plan], settings, verbose=False)

    report = reports["buffon"]
    assert report.status == STATUS_UNDEFINED
    assert math.isnan(report.estimate)
    assert report.abs_error is None

    summary = json.loads((tmp_path / "estimates.json").read_text())
    assert summary["experiments"]["buffon"]["status"] == "undefined"
    assert summary["experiments"]["buffon"]["estimate"] is None
    assert not (tmp_path / "buffon_convergence.csv").exists()


def test_tolerance_mode_marks_convergence():
    plan = build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=50_000))
    settings = RunSettings(seed=3, tolerance=0.01, min_trials=100, check_every=100)
    report = run_experiment(plan, settings)
    assert report.extras["converged"] is True
    assert report.result.n_trials < 50_000


def test_tolerance_mode_with_single_trial():
    plan = build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=1))
    report = run_experiment(plan, RunSettings(seed=1, tolerance=0.1))
    assert report.status == STATUS_OK
    assert report.result.n_trials == 1


def test_tolerance_mode_never_exceeds_requested_trials():
    plan = build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=2))
    settings = RunSettings(seed=1, tolerance=1e-9, min_trials=100)
    report = run_experiment(plan, settings)
    assert report.result.n_trials == 2
    assert report.extras["converged"] is False


def test_replications_are_recorded():
    plan = build_plan(ExperimentType.STOPPING_TIME, StoppingTimeParams(n_trials=500))
    report = run_experiment(plan, RunSettings(seed=3, replications=4))
    reps = report.extras["replication_estimates"]
    assert len(reps) == 4
    assert all(2.0 < r < 3.5 for r in reps)


def test_unknown_integrand():
    with pytest.raises(InvalidParameter):
        build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=10, integrand="nope"))


def test_compute_statistics():
    plan = build_plan(ExperimentType.STOPPING_TIME, StoppingTimeParams(n_trials=1000))
    report = run_experiment(plan, RunSettings(seed=1))
    stats = compute_statistics(report.result)
    assert stats["n_trials"] == 1000
    assert stats["min"] >= 2
    assert stats["p5"] <= stats["median"] <= stats["p95"]
    assert stats["ci95"][0] < stats["mean"] < stats["ci95"][1]


def test_convergence_frame_thins():
    plan = build_plan(ExperimentType.INTEGRAL, IntegralParams(n_trials=5000))
    report = run_experiment(plan, RunSettings(seed=1))
    df = convergence_frame(report.result, 100)
    assert df["n"].iloc[0] == 1
    assert df["n"].iloc[-1] == 5000
    assert len(df) <= 101
