"""
Run settings and experiment parameters for the Monte Carlo estimators.

Default values live in config/constants.yaml; this module turns that
mapping (plus CLI overrides) into validated dataclasses.

STRICT VALIDATION: every field is type- and range-checked in __post_init__.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

# Sentinel for detecting missing required fields
_MISSING = object()


class ExperimentType(Enum):
    """Runnable experiments."""

    STOPPING_TIME = "stopping-time"
    INTEGRAL = "integral"
    BUFFON = "buffon"
    COVERAGE = "coverage"

    @property
    def config_key(self) -> str:
        return self.value.replace("-", "_")


@dataclass
class RunSettings:
    """Settings shared by every experiment in one run."""

    seed: int
    output_dir: Path | None = None
    convergence_points: int = 500
    replications: int = 0
    tolerance: float | None = None
    min_trials: int = 100
    check_every: int = 1000

    def __post_init__(self):
        _validate_required(self, "seed", self.seed, int)
        _validate_non_negative(self, "seed", self.seed)
        _validate_required(self, "convergence_points", self.convergence_points, int)
        _validate_positive(self, "convergence_points", self.convergence_points)
        _validate_required(self, "replications", self.replications, int)
        _validate_non_negative(self, "replications", self.replications)
        if self.tolerance is not None:
            _validate_positive(self, "tolerance", self.tolerance)
        _validate_required(self, "min_trials", self.min_trials, int)
        _validate_range(self, "min_trials", self.min_trials, 2, float("inf"))
        _validate_required(self, "check_every", self.check_every, int)
        _validate_positive(self, "check_every", self.check_every)

        # Coerce output_dir to Path if string
        if isinstance(self.output_dir, str):
            self.output_dir = Path(self.output_dir)

    @classmethod
    def from_config(cls, constants: dict[str, Any], **overrides: Any) -> "RunSettings":
        """Build from the run/convergence sections; non-None overrides win."""
        run = constants.get("run", {})
        conv = constants.get("convergence", {}) or {}
        values = {
            "seed": run.get("seed"),
            "convergence_points": run.get("convergence_points", 500),
            "replications": run.get("replications", 0),
            "tolerance": conv.get("tolerance"),
            "min_trials": conv.get("min_trials", 100),
            "check_every": conv.get("check_every", 1000),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class StoppingTimeParams:
    n_trials: int
    max_draws: int = 15

    def __post_init__(self):
        _validate_trials(self)
        _validate_required(self, "max_draws", self.max_draws, int)
        _validate_positive(self, "max_draws", self.max_draws)


@dataclass
class IntegralParams:
    n_trials: int
    integrand: str = "x2_sin_inv_x"
    low: float = 0.0
    high: float = 1.0

    def __post_init__(self):
        _validate_trials(self)
        _validate_required(self, "integrand", self.integrand, str)
        self.low = _coerce_float(self, "low", self.low)
        self.high = _coerce_float(self, "high", self.high)
        if self.high <= self.low:
            raise ValueError(
                f"{self.__class__.__name__}: low must be < high, got [{self.low}, {self.high}]"
            )


@dataclass
class BuffonParams:
    n_trials: int
    needle_length: float = 1.0
    line_spacing: float = 1.0

    def __post_init__(self):
        _validate_trials(self)
        self.needle_length = _coerce_float(self, "needle_length", self.needle_length)
        self.line_spacing = _coerce_float(self, "line_spacing", self.line_spacing)
        _validate_positive(self, "line_spacing", self.line_spacing)
        _validate_range(self, "needle_length", self.needle_length, 1e-12, self.line_spacing)


@dataclass
class CoverageParams:
    n_trials: int
    mean: float = 0.0
    sd: float = 1.0
    sample_size: int = 20
    level: float = 0.95

    def __post_init__(self):
        _validate_trials(self)
        self.mean = _coerce_float(self, "mean", self.mean)
        self.sd = _coerce_float(self, "sd", self.sd)
        _validate_positive(self, "sd", self.sd)
        _validate_required(self, "sample_size", self.sample_size, int)
        _validate_range(self, "sample_size", self.sample_size, 2, float("inf"))
        self.level = _coerce_float(self, "level", self.level)
        _validate_range(self, "level", self.level, 1e-9, 1 - 1e-9)


PARAMS_BY_EXPERIMENT: dict[ExperimentType, type] = {
    ExperimentType.STOPPING_TIME: StoppingTimeParams,
    ExperimentType.INTEGRAL: IntegralParams,
    ExperimentType.BUFFON: BuffonParams,
    ExperimentType.COVERAGE: CoverageParams,
}


def experiment_params(
    constants: dict[str, Any], experiment: ExperimentType, **overrides: Any
) -> Any:
    """Build the parameter dataclass for one experiment from constants.

    Overrides whose value is None, or that the experiment does not take,
    are ignored.
    """
    section = constants.get("experiments", {}).get(experiment.config_key)
    if section is None:
        raise KeyError(f"experiments.{experiment.config_key} is required")
    params_cls = PARAMS_BY_EXPERIMENT[experiment]
    fields = params_cls.__dataclass_fields__
    values = {k: section[k] for k in section if k in fields}
    unknown = sorted(k for k in section if k not in fields)
    if unknown:
        raise KeyError(
            f"experiments.{experiment.config_key} has unknown keys: {unknown}"
        )
    values.update({k: v for k, v in overrides.items() if v is not None and k in fields})
    return params_cls(**values)


def _validate_trials(obj: Any) -> None:
    _validate_required(obj, "n_trials", obj.n_trials, int)
    _validate_positive(obj, "n_trials", obj.n_trials)


def _coerce_float(obj: Any, field_name: str, value: Any) -> float:
    """Accept ints where floats are expected (YAML writes 1 for 1.0)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(
            f"{obj.__class__.__name__}.{field_name} must be float, "
            f"got {type(value).__name__}"
        )
    return float(value)


def _validate_required(
    obj: Any, field_name: str, value: Any, expected_type: type
) -> None:
    """Validate that a required field is provided and has correct type."""
    if value is _MISSING or value is None:
        raise ValueError(
            f"{obj.__class__.__name__}.{field_name} is REQUIRED and was not provided"
        )
    if isinstance(value, bool) and expected_type is not bool:
        raise TypeError(
            f"{obj.__class__.__name__}.{field_name} must be {expected_type.__name__}, got bool"
        )
    if not isinstance(value, expected_type):
        raise TypeError(
            f"{obj.__class__.__name__}.{field_name} must be {expected_type.__name__}, "
            f"got {type(value).__name__}"
        )


def _validate_positive(obj: Any, field_name: str, value: float | int) -> None:
    """Validate that a numeric field is positive."""
    if value <= 0:
        raise ValueError(
            f"{obj.__class__.__name__}.{field_name} must be positive, got {value}"
        )


def _validate_non_negative(obj: Any, field_name: str, value: float | int) -> None:
    """Validate that a numeric field is non-negative."""
    if value < 0:
        raise ValueError(
            f"{obj.__class__.__name__}.{field_name} must be non-negative, got {value}"
        )


def _validate_range(
    obj: Any, field_name: str, value: float, min_val: float, max_val: float
) -> None:
    """Validate that a numeric field is within range."""
    if not (min_val <= value <= max_val):
        raise ValueError(
            f"{obj.__class__.__name__}.{field_name} must be in [{min_val}, {max_val}], got {value}"
        )
