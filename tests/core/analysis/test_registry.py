import pytest

from conftest import make_config
from Epochipy.core.analysis.mixed_model import MixedModelFitter, StatsmodelsMixedFitter, fit_mixed_model
from Epochipy.core.analysis.registry import FitterRegistry
from Epochipy.shared.error_handling import ConfigurationError


@pytest.fixture
def dummy_backend():
    @FitterRegistry.register("dummy")
    class DummyFitter(MixedModelFitter):
        name = "dummy"

        def fit(self, table, spec, config):
            return ("fitted", len(table), spec.formula)

    yield DummyFitter
    FitterRegistry.unregister("dummy")


def test_builtin_backend_registered():
    assert "statsmodels" in FitterRegistry.list_registered()
    assert FitterRegistry.get("statsmodels") is StatsmodelsMixedFitter
    assert isinstance(FitterRegistry.create("statsmodels"), StatsmodelsMixedFitter)


def test_unknown_backend_raises():
    with pytest.raises(ConfigurationError, match="not found"):
        FitterRegistry.get("lme4")


def test_register_and_dispatch(dummy_backend, fitted_outcome):
    assert "dummy" in FitterRegistry.list_registered()
    config = make_config(fitter_backend="dummy").validate()
    result = fit_mixed_model(fitted_outcome.model_observations, config)
    assert result == ("fitted", 40 * 71, "amplitude ~ 1 + condition + (1 + condition | time)")


def test_unregister(dummy_backend):
    FitterRegistry.unregister("dummy")
    assert "dummy" not in FitterRegistry.list_registered()
    with pytest.raises(ConfigurationError):
        make_config(fitter_backend="dummy").validate()


def test_abstract_fitter_cannot_be_instantiated():
    with pytest.raises(TypeError):
        MixedModelFitter()
