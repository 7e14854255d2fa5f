from pathlib import Path

import numpy as np
import pytest

from mcestimate.config.settings import (
    BuffonParams,
    CoverageParams,
    ExperimentType,
    IntegralParams,
    RunSettings,
    StoppingTimeParams,
    experiment_params,
)
from mcestimate.utils import load_constants_from_file, thin_indices


@pytest.fixture
def constants():
    return load_constants_from_file()


def test_default_constants(constants):
    assert constants["run"]["seed"] == 20491720
    assert constants["experiments"]["stopping_time"]["max_draws"] == 15
    for experiment in ExperimentType:
        assert experiment.config_key in constants["experiments"]


def test_missing_constants_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_constants_from_file(tmp_path / "nope.yaml")


def test_empty_constants_file(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    with pytest.raises(ValueError):
        load_constants_from_file(path)


def test_constants_missing_section(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("run:\n  seed: 1\n")
    with pytest.raises(KeyError):
        load_constants_from_file(path)


def test_constants_missing_trial_count(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("run:\n  seed: 1\nexperiments:\n  buffon:\n    needle_length: 1.0\n")
    with pytest.raises(KeyError):
        load_constants_from_file(path)


def test_run_settings_from_config(constants):
    settings = RunSettings.from_config(constants)
    assert settings.seed == 20491720
    assert settings.tolerance is None
    assert settings.output_dir is None


def test_run_settings_overrides(constants):
    settings = RunSettings.from_config(constants, seed=7, tolerance=None, output_dir="out")
    assert settings.seed == 7
    assert settings.output_dir == Path("out")


@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({"seed": -1}, ValueError),
        ({"seed": True}, TypeError),
        ({"seed": 1.5}, TypeError),
        ({"seed": None}, ValueError),
        ({"seed": 1, "tolerance": 0.0}, ValueError),
        ({"seed": 1, "min_trials": 1}, ValueError),
        ({"seed": 1, "replications": -2}, ValueError),
    ],
)
def test_run_settings_validation(kwargs, error):
    with pytest.raises(error):
        RunSettings(**kwargs)


def test_experiment_params_from_constants(constants):
    params = experiment_params(constants, ExperimentType.BUFFON)
    assert isinstance(params, BuffonParams)
    assert params.n_trials == 100_000
    assert params.needle_length == 1.0


def test_experiment_params_overrides(constants):
    params = experiment_params(
        constants,
        ExperimentType.STOPPING_TIME,
        n_trials=10,
        max_draws=20,
        needle_length=0.5,
    )
    assert isinstance(params, StoppingTimeParams)
    assert params.n_trials == 10
    assert params.max_draws == 20


def test_experiment_params_unknown_key():
    constants = {"experiments": {"integral": {"n_trials": 5, "bogus": 1}}}
    with pytest.raises(KeyError):
        experiment_params(constants, ExperimentType.INTEGRAL)


def test_experiment_params_missing_section():
    with pytest.raises(KeyError):
        experiment_params({"experiments": {}}, ExperimentType.COVERAGE)


def test_integer_floats_are_coerced():
    params = IntegralParams(n_trials=10, low=0, high=2)
    assert isinstance(params.high, float)


@pytest.mark.parametrize(
    "factory",
    [
        lambda: StoppingTimeParams(n_trials=0),
        lambda: StoppingTimeParams(n_trials=10, max_draws=0),
        lambda: IntegralParams(n_trials=10, low=1.0, high=1.0),
        lambda: BuffonParams(n_trials=10, needle_length=2.0, line_spacing=1.0),
        lambda: CoverageParams(n_trials=10, sample_size=1),
        lambda: CoverageParams(n_trials=10, level=1.5),
    ],
)
def test_params_validation(factory):
    with pytest.raises(ValueError):
        factory()


def test_thin_indices():
    assert list(thin_indices(5, 10)) == [0, 1, 2, 3, 4]
    idx = thin_indices(100_000, 200)
    assert idx[0] == 0
    assert idx[-1] == 99_999
    assert len(idx) <= 201
    assert np.all(np.diff(idx) > 0)
    assert len(thin_indices(0, 10)) == 0
