from itertools import islice

import numpy as np
import pytest

from mcestimate.simulation.engine import (
    MonteCarloEstimator,
    estimate,
    estimate_until,
    replicate,
    running_means,
)
from mcestimate.simulation.errors import InvalidParameter, UndefinedResult
from mcestimate.simulation.stochastics import SeededSource


def uniform_trial(source):
    return source.uniform()


def test_constant_trial():
    result = estimate(lambda s: 3.0, SeededSource(1), 50)
    assert result.mean == 3.0
    assert result.std_error == 0.0
    assert result.n_trials == 50
    assert np.all(result.partial_means == 3.0)


def test_partial_means_end_at_mean():
    result = estimate(uniform_trial, SeededSource(2), 1000)
    assert len(result.partial_means) == 1000
    assert result.partial_means[-1] == pytest.approx(result.mean)
    assert result.partial_means[0] == result.values[0]


def test_partial_means_can_be_skipped():
    result = estimate(uniform_trial, SeededSource(2), 10, keep_partial_means=False)
    assert result.partial_means is None


def test_uniform_mean_and_standard_error():
    result = estimate(uniform_trial, SeededSource(20491720), 100_000)
    assert abs(result.mean - 0.5) < 0.005
    assert result.std_error == pytest.approx(np.sqrt(1 / 12) / np.sqrt(100_000), rel=0.05)


def test_zero_trials_is_undefined():
    with pytest.raises(UndefinedResult):
        estimate(uniform_trial, SeededSource(1), 0)


def test_zero_trials_is_arithmetic_error():
    with pytest.raises(ArithmeticError):
        estimate(uniform_trial, SeededSource(1), 0)


@pytest.mark.parametrize("n_trials", [-1, 2.5, "10", True])
def test_bad_trial_count(n_trials):
    with pytest.raises(InvalidParameter):
        estimate(uniform_trial, SeededSource(1), n_trials)


def test_single_trial_has_no_standard_error():
    result = estimate(uniform_trial, SeededSource(1), 1)
    assert np.isnan(result.std_error)


def test_bool_results_average_to_rate():
    result = estimate(lambda s: s.uniform() < 0.25, SeededSource(8), 40_000)
    assert abs(result.mean - 0.25) < 0.01


def test_confidence_interval():
    result = estimate(uniform_trial, SeededSource(3), 10_000)
    low, high = result.confidence_interval(0.95)
    assert low < result.mean < high
    assert high - low == pytest.approx(2 * 1.959964 * result.std_error, rel=1e-5)
    with pytest.raises(InvalidParameter):
        result.confidence_interval(1.0)


def test_running_means_match_batch_estimate():
    lazy = [m for _, m in islice(running_means(uniform_trial, SeededSource(3)), 100)]
    batch = estimate(uniform_trial, SeededSource(3), 100).partial_means
    assert np.allclose(lazy, batch)


def test_running_means_counts():
    ns = [n for n, _ in islice(running_means(uniform_trial, SeededSource(3)), 5)]
    assert ns == [1, 2, 3, 4, 5]


def test_estimate_until_converges():
    result = estimate_until(
        uniform_trial, SeededSource(5), 0.01, min_trials=100, check_every=100
    )
    assert result.converged
    assert result.std_error <= 0.01
    assert (result.n_trials - 100) % 100 == 0
    assert result.n_trials < 2000


def test_estimate_until_stops_at_max_trials():
    result = estimate_until(
        uniform_trial, SeededSource(5), 1e-9, min_trials=10, max_trials=500, check_every=10
    )
    assert result.converged is False
    assert result.n_trials == 500


@pytest.mark.parametrize(
    "kwargs",
    [
        {"tolerance": 0.0},
        {"tolerance": -1.0},
        {"tolerance": 0.1, "min_trials": 1},
        {"tolerance": 0.1, "min_trials": 100, "max_trials": 50},
        {"tolerance": 0.1, "check_every": 0},
    ],
)
def test_estimate_until_rejects_bad_settings(kwargs):
    tolerance = kwargs.pop("tolerance")
    with pytest.raises(InvalidParameter):
        estimate_until(uniform_trial, SeededSource(1), tolerance, **kwargs)


def test_replicate_is_reproducible_and_independent():
    a = replicate(uniform_trial, SeededSource(9), 200, 5)
    b = replicate(uniform_trial, SeededSource(9), 200, 5)
    assert [r.mean for r in a] == [r.mean for r in b]
    assert len({r.mean for r in a}) == 5
    assert all(r.partial_means is None for r in a)


def test_estimator_runs_are_bit_identical():
    estimator = MonteCarloEstimator(uniform_trial, 1000, seed=20491720)
    first = estimator.run()
    second = estimator.run()
    assert np.array_equal(first.values, second.values)
    assert first.mean == second.mean


def test_estimator_matches_explicit_source():
    estimator = MonteCarloEstimator(uniform_trial, 100, seed=42)
    explicit = estimate(uniform_trial, SeededSource(42), 100)
    assert np.array_equal(estimator.run().values, explicit.values)
    assert estimator.name == "uniform_trial"


def test_estimator_validates_up_front():
    with pytest.raises(UndefinedResult):
        MonteCarloEstimator(uniform_trial, 0, seed=1)
    with pytest.raises(InvalidParameter):
        MonteCarloEstimator(uniform_trial, 10, seed=-5)
