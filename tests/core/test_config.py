import json

import pytest

from Epochipy.core.config import AnalysisConfig, load_config
from Epochipy.shared.error_handling import ConfigurationError


def _valid(**overrides):
    params = dict(event_id={"standard": 1, "deviant": 2}, seed=1)
    params.update(overrides)
    return AnalysisConfig(**params)


def test_defaults():
    config = AnalysisConfig()
    assert config.tmin == -0.2
    assert config.tmax == 0.5
    assert config.baseline == (None, 0.0)
    assert config.n_simulations == 1000
    assert config.novel_time_policy == "error"
    assert config.include_residual_variance is False
    assert config.fitter_backend == "statsmodels"


def test_post_init_normalises_types():
    config = AnalysisConfig(event_id={"a": "3"}, baseline=[-0.1, 0.0])
    assert config.event_id == {"a": 3}
    assert config.baseline == (-0.1, 0.0)
    assert config.conditions == ["a"]


def test_validate_returns_self():
    config = _valid()
    assert config.validate() is config


@pytest.mark.parametrize("overrides", [
    dict(event_id={}),
    dict(event_id={"a": 1, "b": 1}),
    dict(tmin=0.5, tmax=0.1),
    dict(baseline=(-0.5, 0.0)),
    dict(baseline=(0.2, 0.1)),
    dict(reference_condition="oddball"),
    dict(novel_time_policy="extrapolate"),
    dict(interval_level=1.0),
    dict(max_simulations=0),
    dict(n_simulations=0),
    dict(n_spaghetti=0),
    dict(singular_tolerance=-1.0),
    dict(figure_format="jpg"),
    dict(fitter_backend="lme4"),
])
def test_validate_rejects_invalid(overrides):
    with pytest.raises(ConfigurationError):
        _valid(**overrides).validate()


def test_baseline_none_is_valid():
    assert _valid(baseline=None).validate().baseline is None


def test_from_dict_rejects_unknown_keys():
    with pytest.raises(ConfigurationError, match="n_bootstraps"):
        AnalysisConfig.from_dict({"event_id": {"a": 1}, "n_bootstraps": 10})


def test_save_and_load(tmp_path):
    config = _valid(picks=["Cz"], reject={"Cz": 150.0}, filter_steps=[{"type": "filter", "method": "lowpass",
                                                                      "cutoff": 30}])
    path = tmp_path / "analysis.json"
    config.save(path)
    loaded = load_config(path)
    assert loaded == config
    assert isinstance(loaded.baseline, tuple)


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_config(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_config(bad)

    not_object = tmp_path / "list.json"
    not_object.write_text(json.dumps([1, 2]))
    with pytest.raises(ConfigurationError):
        load_config(not_object)


def test_load_config_validates(tmp_path):
    path = tmp_path / "analysis.json"
    path.write_text(json.dumps({"event_id": {"a": 1}, "tmin": 1.0, "tmax": 0.0}))
    with pytest.raises(ConfigurationError, match="tmin"):
        load_config(path)
