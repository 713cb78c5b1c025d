import numpy as np
import pandas as pd
import pytest

from conftest import make_config
from Epochipy.core.analysis.prediction import grid_design, make_prediction_grid, predict
from Epochipy.shared.error_handling import PredictionError


def test_make_prediction_grid():
    grid = make_prediction_grid(["standard", "deviant"], [0.1, -0.1, 0.0, 0.1])
    assert len(grid) == 6
    assert grid["condition"].astype(str).tolist() == ["standard"] * 3 + ["deviant"] * 3
    np.testing.assert_allclose(grid["time"].to_numpy(), [-0.1, 0.0, 0.1] * 2)
    assert isinstance(grid["condition"].dtype, pd.CategoricalDtype)
    assert list(grid["condition"].cat.categories) == ["standard", "deviant"]


def test_predictions_at_fitted_times(fitted_model, fitted_outcome):
    grid = make_prediction_grid(fitted_model.levels, fitted_outcome.epochs.times)
    result = predict(fitted_model, grid, make_config())

    frame = result.frame
    assert list(frame.columns) == ["condition", "time", "prediction", "novel_time"]
    assert len(frame) == 2 * 71
    assert not frame["novel_time"].any()

    beta = fitted_model.fe_params
    blup = fitted_model.random_effects.loc[0.25]
    standard = frame[(frame["condition"] == "standard") & (frame["time"] == 0.25)]["prediction"].item()
    deviant = frame[(frame["condition"] == "deviant") & (frame["time"] == 0.25)]["prediction"].item()
    assert standard == pytest.approx(beta["Intercept"] + blup["Intercept"])
    assert deviant == pytest.approx(beta.sum() + blup.sum())


def test_predictions_track_condition_means(fitted_model, fitted_outcome):
    """Per-time predictions stay close to the observed per-time condition means."""
    table = fitted_outcome.model_observations.astype({"condition": str})
    observed = table.groupby(["condition", "time"])["amplitude"].mean().reset_index()
    grid = make_prediction_grid(fitted_model.levels, fitted_outcome.epochs.times)
    predicted = predict(fitted_model, grid, make_config()).frame.astype({"condition": str})
    merged = predicted.merge(observed, on=["condition", "time"], how="inner")
    assert len(merged) == len(predicted)
    diff = merged["prediction"] - merged["amplitude"]
    assert diff.abs().max() < 1.0
    assert np.corrcoef(merged["prediction"], merged["amplitude"])[0, 1] > 0.95


def test_prediction_is_deterministic(fitted_model, fitted_outcome):
    grid = make_prediction_grid(fitted_model.levels, fitted_outcome.epochs.times)
    first = predict(fitted_model, grid, make_config()).values
    second = predict(fitted_model, grid, make_config()).values
    np.testing.assert_array_equal(first, second)


def test_novel_time_raises_by_default(fitted_model):
    grid = make_prediction_grid(fitted_model.levels, [0.25, 0.255])
    with pytest.raises(PredictionError, match="novel_time_policy"):
        predict(fitted_model, grid, make_config())


def test_novel_time_population_policy(fitted_model):
    grid = make_prediction_grid(fitted_model.levels, [0.25, 0.255, 1.5])
    result = predict(fitted_model, grid, make_config(novel_time_policy="population"))
    frame = result.frame
    np.testing.assert_array_equal(frame["novel_time"].to_numpy(), [False, True, True] * 2)

    beta = fitted_model.fe_params
    novel_standard = frame[(frame["condition"] == "standard") & frame["novel_time"]]["prediction"]
    novel_deviant = frame[(frame["condition"] == "deviant") & frame["novel_time"]]["prediction"]
    np.testing.assert_allclose(novel_standard, beta["Intercept"])
    np.testing.assert_allclose(novel_deviant, beta.sum())
    assert result.parameters["novel_time_policy"] == "population"


def test_unknown_condition_level(fitted_model):
    grid = pd.DataFrame({"condition": ["oddball"], "time": [0.0]})
    with pytest.raises(PredictionError, match="oddball"):
        grid_design(fitted_model, grid, "error")


def test_empty_grid(fitted_model):
    with pytest.raises(PredictionError):
        grid_design(fitted_model, pd.DataFrame({"condition": [], "time": []}), "error")


def test_grid_design_shapes(fitted_model):
    grid = make_prediction_grid(fitted_model.levels, [0.0, 0.1])
    design = grid_design(fitted_model, grid, "error")
    assert design.X.shape == (4, 2)
    assert design.Z.shape == (4, 2)
    assert design.blups.shape == (4, 2)
    assert design.blups.flags.writeable
    np.testing.assert_array_equal(design.X[:, 1], [0, 0, 1, 1])


def test_grid_design_leaves_model_untouched(fitted_model):
    before = fitted_model.random_effects.copy()
    grid = make_prediction_grid(fitted_model.levels, [0.25, 1.5])
    design = grid_design(fitted_model, grid, "population")
    assert design.blups.flags.writeable
    np.testing.assert_array_equal(design.blups[[1, 3]], 0.0)
    pd.testing.assert_frame_equal(fitted_model.random_effects, before)
