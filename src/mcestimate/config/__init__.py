"""Configuration package for the Monte Carlo estimators."""

from .settings import (
    ExperimentType,
    RunSettings,
    StoppingTimeParams,
    IntegralParams,
    BuffonParams,
    CoverageParams,
    experiment_params,
)

__all__ = [
    "ExperimentType",
    "RunSettings",
    "StoppingTimeParams",
    "IntegralParams",
    "BuffonParams",
    "CoverageParams",
    "experiment_params",
]
