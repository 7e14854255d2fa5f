"""Seeded sampling and Monte Carlo estimation."""

from .errors import InvalidParameter, MonteCarloError, UndefinedResult
from .stochastics import Distribution, SeededSource
from .engine import (
    EstimateResult,
    MonteCarloEstimator,
    estimate,
    estimate_until,
    replicate,
    running_means,
)
from .trials import (
    BuffonNeedleTrial,
    CoverageTrial,
    IntegralTrial,
    StoppingTimeTrial,
    estimate_pi,
    reference_integral,
    x2_sin_inv_x,
)

__all__ = [
    "InvalidParameter",
    "MonteCarloError",
    "UndefinedResult",
    "Distribution",
    "SeededSource",
    "EstimateResult",
    "MonteCarloEstimator",
    "estimate",
    "estimate_until",
    "replicate",
    "running_means",
    "BuffonNeedleTrial",
    "CoverageTrial",
    "IntegralTrial",
    "StoppingTimeTrial",
    "estimate_pi",
    "reference_integral",
    "x2_sin_inv_x",
]
