"""Concrete per-trial procedures for the estimation loop.

Each trial is a callable taking a SeededSource and returning one scalar:
    - StoppingTimeTrial: draws needed for a uniform running sum to exceed 1
    - IntegralTrial: f(X) for X uniform on [low, high], scaled by the width
    - BuffonNeedleTrial: whether a dropped needle crosses a gridline
    - CoverageTrial: whether a t-interval covers the true normal mean
"""

from __future__ import annotations

import logging
import math
from typing import Callable

import numpy as np
from scipy import integrate, stats

from .errors import InvalidParameter, UndefinedResult
from .stochastics import Distribution, SeededSource

logger = logging.getLogger(__name__)

DEFAULT_MAX_DRAWS = 15


def _check_positive_int(name: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidParameter(f"{name} must be a positive integer, got {value!r}")
    return int(value)


# =============================================================================
# Stopping time
# =============================================================================


class StoppingTimeTrial:
    """Count uniform(0, 1) draws until their running sum exceeds 1.

    The expected count is e. ``max_draws`` bounds the loop: a trial that
    reaches it returns ``max_draws`` and is counted in ``capped``. The
    estimation loops call ``reset`` when a run starts, so ``capped`` counts
    the most recent run only.
    """

    name = "stopping-time"

    def __init__(self, max_draws: int = DEFAULT_MAX_DRAWS):
        self.max_draws = _check_positive_int("max_draws", max_draws)
        self.capped = 0

    def reset(self) -> None:
        self.capped = 0

    def __call__(self, source: SeededSource) -> int:
        total = 0.0
        k = 0
        while total <= 1.0 and k < self.max_draws:
            total += source.uniform()
            k += 1
        if total <= 1.0:
            self.capped += 1
            logger.warning(
                "Stopping-time trial hit max_draws=%d (running sum %.4f)",
                self.max_draws,
                total,
            )
        return k


# =============================================================================
# Definite integrals
# =============================================================================


def x2_sin_inv_x(x):
    """f(x) = x^2 sin(1/x), continuously extended with f(0) = 0."""
    x = np.asarray(x, dtype=float)
    with np.errstate(divide="ignore", invalid="ignore"):
        y = np.where(x == 0.0, 0.0, x * x * np.sin(1.0 / x))
    return float(y) if y.ndim == 0 else y


INTEGRANDS: dict[str, Callable] = {
    "x2_sin_inv_x": x2_sin_inv_x,
}


def reference_integral(func: Callable, low: float = 0.0, high: float = 1.0) -> float:
    """High-precision value of the integral of func over [low, high]."""
    value, _abserr = integrate.quad(func, low, high, limit=500)
    return float(value)


class IntegralTrial:
    """One uniform draw on [low, high], returning (high - low) * f(x).

    The mean over many trials converges to the integral of f over the
    interval, since the uniform density is 1 / (high - low).
    """

    name = "integral"

    def __init__(self, func: Callable, low: float = 0.0, high: float = 1.0):
        self.func = func
        self.low = low
        self.high = high
        self._dist = Distribution.uniform(low, high)

    def __call__(self, source: SeededSource) -> float:
        x = source.draw(self._dist)
        return (self.high - self.low) * float(self.func(x))

    def reference(self) -> float:
        return reference_integral(self.func, self.low, self.high)


# =============================================================================
# Buffon's needle
# =============================================================================


class BuffonNeedleTrial:
    """Drop a needle on a floor ruled with horizontal lines.

    The lower end lands at height y0 ~ U(0, spacing) with angle
    theta ~ U(0, pi); the upper end is at y0 + L sin(theta). The trial
    returns True when a gridline lies between the two ends. For L <= spacing
    the crossing probability is 2L / (pi * spacing).
    """

    name = "buffon"

    def __init__(self, needle_length: float = 1.0, line_spacing: float = 1.0):
        if not line_spacing > 0:
            raise InvalidParameter(f"line_spacing must be positive, got {line_spacing}")
        if not 0 < needle_length <= line_spacing:
            raise InvalidParameter(
                f"needle_length must be in (0, line_spacing={line_spacing}], "
                f"got {needle_length}"
            )
        self.needle_length = needle_length
        self.line_spacing = line_spacing
        self._position = Distribution.uniform(0.0, line_spacing)
        self._angle = Distribution.uniform(0.0, math.pi)

    def endpoints(self, y0: float, theta: float) -> tuple[tuple[float, float], tuple[float, float]]:
        """Segment end points for a needle whose lower end sits at (0, y0)."""
        return (0.0, y0), (
            self.needle_length * math.cos(theta),
            y0 + self.needle_length * math.sin(theta),
        )

    def __call__(self, source: SeededSource) -> bool:
        y0 = source.draw(self._position)
        theta = source.draw(self._angle)
        (_, start), (_, end) = self.endpoints(y0, theta)
        return math.floor(start / self.line_spacing) != math.floor(end / self.line_spacing)


def estimate_pi(
    crossing_rate: float, needle_length: float = 1.0, line_spacing: float = 1.0
) -> float:
    """Invert the crossing probability 2L / (pi * d) for pi."""
    if not 0 <= crossing_rate <= 1:
        raise InvalidParameter(f"crossing_rate must be in [0, 1], got {crossing_rate}")
    if crossing_rate == 0:
        raise UndefinedResult("No needle crossed a line; pi estimate is undefined")
    return 2.0 * needle_length / (crossing_rate * line_spacing)


# =============================================================================
# Confidence interval coverage
# =============================================================================


class CoverageTrial:
    """Whether a t-based confidence interval contains the true normal mean."""

    name = "coverage"

    def __init__(self, mean: float = 0.0, sd: float = 1.0, sample_size: int = 20, level: float = 0.95):
        self._dist = Distribution.normal(mean, sd)
        self.mean = mean
        self.sample_size = _check_positive_int("sample_size", sample_size)
        if self.sample_size < 2:
            raise InvalidParameter(f"sample_size must be at least 2, got {sample_size}")
        if not 0 < level < 1:
            raise InvalidParameter(f"level must be in (0, 1), got {level}")
        self.level = level
        self._t_crit = float(stats.t.ppf(0.5 + level / 2, self.sample_size - 1))

    def interval(self, sample: np.ndarray) -> tuple[float, float]:
        center = float(np.mean(sample))
        half_width = self._t_crit * float(np.std(sample, ddof=1)) / math.sqrt(len(sample))
        return center - half_width, center + half_width

    def __call__(self, source: SeededSource) -> bool:
        lo, hi = self.interval(source.draw(self._dist, self.sample_size))
        return lo <= self.mean <= hi
