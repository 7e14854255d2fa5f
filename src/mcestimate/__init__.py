"""Seeded Monte Carlo estimation: reproducible draw sources, a generic estimator, and concrete trials."""

from .simulation import (
    Distribution,
    EstimateResult,
    InvalidParameter,
    MonteCarloEstimator,
    SeededSource,
    UndefinedResult,
    estimate,
)

__version__ = "0.1.0"

__all__ = [
    "Distribution",
    "EstimateResult",
    "InvalidParameter",
    "MonteCarloEstimator",
    "SeededSource",
    "UndefinedResult",
    "estimate",
]
