"""Generic Monte Carlo estimation loop."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterator

import numpy as np
from scipy import stats

from .errors import InvalidParameter, UndefinedResult
from .stochastics import SeededSource

logger = logging.getLogger(__name__)

# A trial consumes draws from the source and returns one scalar result.
Trial = Callable[[SeededSource], Any]


@dataclass
class EstimateResult:
    """Aggregate of N trial results."""

    mean: float
    std_error: float
    n_trials: int
    values: np.ndarray
    partial_means: np.ndarray | None = None
    converged: bool | None = None

    def confidence_interval(self, level: float = 0.95) -> tuple[float, float]:
        """Normal-approximation interval around the mean."""
        if not 0 < level < 1:
            raise InvalidParameter(f"level must be in (0, 1), got {level}")
        z = float(stats.norm.ppf(0.5 + level / 2))
        return self.mean - z * self.std_error, self.mean + z * self.std_error


def _validate_trial_count(n_trials: Any) -> int:
    if isinstance(n_trials, bool) or not isinstance(n_trials, (int, np.integer)):
        raise InvalidParameter(
            f"n_trials must be an integer, got {type(n_trials).__name__}"
        )
    if n_trials < 0:
        raise InvalidParameter(f"n_trials must be non-negative, got {n_trials}")
    if n_trials == 0:
        raise UndefinedResult("Mean over zero trials is undefined")
    return int(n_trials)


def _positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidParameter(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def _start_run(trial: Trial) -> None:
    # Trials with per-run counters expose reset().
    reset = getattr(trial, "reset", None)
    if callable(reset):
        reset()


def _summarize(values: np.ndarray, keep_partial_means: bool) -> EstimateResult:
    n = len(values)
    mean = float(np.mean(values))
    std_error = float(np.std(values, ddof=1) / math.sqrt(n)) if n > 1 else math.nan
    partial = None
    if keep_partial_means:
        partial = np.cumsum(values) / np.arange(1, n + 1)
    return EstimateResult(
        mean=mean,
        std_error=std_error,
        n_trials=n,
        values=values,
        partial_means=partial,
    )


def estimate(
    trial: Trial,
    source: SeededSource,
    n_trials: int,
    *,
    keep_partial_means: bool = True,
) -> EstimateResult:
    """Run n_trials independent trials and average their results.

    Args:
        trial: Callable taking the source and returning a scalar.
        source: Draw source shared by all trials, consumed in call order.
        n_trials: Number of trials (must be > 0).
        keep_partial_means: Also store the running mean after each trial.

    Returns:
        EstimateResult with sample mean and standard error.

    Raises:
        InvalidParameter: n_trials is negative or not an integer.
        UndefinedResult: n_trials is zero.
    """
    n_trials = _validate_trial_count(n_trials)
    _start_run(trial)
    values = np.fromiter(
        (float(trial(source)) for _ in range(n_trials)), dtype=float, count=n_trials
    )
    result = _summarize(values, keep_partial_means)
    logger.debug(
        "Estimated %.6f +/- %.6f over %d trials (%s)",
        result.mean,
        result.std_error,
        n_trials,
        source,
    )
    return result


def running_means(trial: Trial, source: SeededSource) -> Iterator[tuple[int, float]]:
    """Lazily yield (n, mean of first n trial results) forever."""
    _start_run(trial)
    total = 0.0
    n = 0
    while True:
        total += float(trial(source))
        n += 1
        yield n, total / n


def estimate_until(
    trial: Trial,
    source: SeededSource,
    tolerance: float,
    *,
    min_trials: int = 100,
    max_trials: int = 1_000_000,
    check_every: int = 1000,
) -> EstimateResult:
    """Run trials until the standard error drops to ``tolerance``.

    The criterion is checked at min_trials and then every check_every
    trials. Stops at max_trials regardless; ``converged`` tells which.
    """
    if not tolerance > 0:
        raise InvalidParameter(f"tolerance must be positive, got {tolerance}")
    min_trials = _positive_int(min_trials, "min_trials")
    max_trials = _positive_int(max_trials, "max_trials")
    check_every = _positive_int(check_every, "check_every")
    if min_trials < 2:
        raise InvalidParameter(f"min_trials must be at least 2, got {min_trials}")
    if max_trials < min_trials:
        raise InvalidParameter(
            f"max_trials ({max_trials}) must be >= min_trials ({min_trials})"
        )

    _start_run(trial)
    values: list[float] = []
    total = 0.0
    total_sq = 0.0
    converged = False
    while len(values) < max_trials:
        value = float(trial(source))
        values.append(value)
        total += value
        total_sq += value * value
        n = len(values)
        if n >= min_trials and (n - min_trials) % check_every == 0:
            variance = max(total_sq - total * total / n, 0.0) / (n - 1)
            if math.sqrt(variance / n) <= tolerance:
                converged = True
                break

    result = _summarize(np.asarray(values, dtype=float), keep_partial_means=True)
    result.converged = converged
    if not converged:
        logger.warning(
            "Standard error %.6g above tolerance %.6g after max_trials=%d",
            result.std_error,
            tolerance,
            max_trials,
        )
    return result


def replicate(
    trial: Trial,
    source: SeededSource,
    n_trials: int,
    n_replications: int,
) -> list[EstimateResult]:
    """Independent replications of an estimate, one spawned source each."""
    n_replications = _positive_int(n_replications, "n_replications")
    n_trials = _validate_trial_count(n_trials)
    return [
        estimate(trial, child, n_trials, keep_partial_means=False)
        for child in source.spawn(n_replications)
    ]


class MonteCarloEstimator:
    """A trial bound to a trial count and seed.

    Every call to ``run`` builds a fresh source from the seed, so repeated
    runs are bit-for-bit identical.
    """

    def __init__(self, trial: Trial, n_trials: int, seed: int, name: str | None = None):
        self.trial = trial
        self.n_trials = _validate_trial_count(n_trials)
        self.seed = seed
        self.name = name or getattr(trial, "__name__", type(trial).__name__)
        # Fail on a bad seed now rather than at run time.
        SeededSource(seed)

    def source(self) -> SeededSource:
        return SeededSource(self.seed)

    def run(self, keep_partial_means: bool = True) -> EstimateResult:
        return estimate(
            self.trial,
            self.source(),
            self.n_trials,
            keep_partial_means=keep_partial_means,
        )

    def __repr__(self) -> str:
        return (
            f"MonteCarloEstimator(name={self.name!r}, n_trials={self.n_trials}, "
            f"seed={self.seed})"
        )
