from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import yaml

# =============================================================================
# Constants
# =============================================================================

DEFAULT_CONSTANTS_PATH = Path(__file__).parent / "config" / "constants.yaml"

REQUIRED_CONSTANT_SECTIONS = [
    "run",
    "experiments",
]
REQUIRED_RUN_KEYS = ["seed"]


# =============================================================================
# Loading
# =============================================================================


def load_constants_from_file(path: Path | str | None = None) -> dict[str, Any]:
    """Load experiment constants from a YAML file and validate them.

    A relative path that does not exist is retried relative to this package.
    """
    path = DEFAULT_CONSTANTS_PATH if path is None else Path(path)
    if not path.exists():
        # Try relative to this file
        path = Path(__file__).parent / path
    if not path.exists():
        raise FileNotFoundError(f"Constants file not found: {path}")
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        raise ValueError(f"Constants file is empty: {path}")
    if not isinstance(data, dict):
        raise ValueError(f"Constants file must hold a mapping: {path}")

    validate_constants(data)
    return data


def validate_constants(constants: dict[str, Any]) -> None:
    """
    Validate that all required keys are present in constants.

    Raises:
        KeyError: If required key is missing
        ValueError: If value has invalid type
    """
    for section in REQUIRED_CONSTANT_SECTIONS:
        if section not in constants:
            raise KeyError(f"Missing required section in constants.yaml: '{section}'")

    for key in REQUIRED_RUN_KEYS:
        if key not in constants["run"]:
            raise KeyError(f"Missing required key in constants.yaml run: '{key}'")

    experiments = constants["experiments"]
    if not isinstance(experiments, dict) or not experiments:
        raise ValueError("constants.yaml experiments must be a non-empty mapping")
    for name, section in experiments.items():
        if not isinstance(section, dict):
            raise ValueError(f"constants.yaml experiments.{name} must be a mapping")
        if "n_trials" not in section:
            raise KeyError(
                f"Missing required key in constants.yaml experiments.{name}: 'n_trials'"
            )


# =============================================================================
# Series helpers
# =============================================================================


def thin_indices(n: int, max_points: int) -> np.ndarray:
    """Indices of roughly max_points samples of a length-n series.

    Log-spaced so the early, fast-moving part of a convergence curve keeps
    its detail; the last index is always included.
    """
    if n <= 0:
        return np.array([], dtype=int)
    if n <= max_points:
        return np.arange(n)
    idx = np.unique(np.geomspace(1, n, num=max_points).astype(int) - 1)
    if idx[-1] != n - 1:
        idx = np.append(idx, n - 1)
    return idx
