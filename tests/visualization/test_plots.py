import matplotlib.figure
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from Epochipy.core.analysis.bootstrap import replicate_curves, summarize
from Epochipy.shared.constants import PLOT_COLORS
from Epochipy.shared.error_handling import PlottingError
from Epochipy.visualization import (
    plot_bootstrap_spaghetti, plot_prediction_ribbons, plot_traces_with_predictions, save_figure,
)
from Epochipy.visualization.plots import condition_colors


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


@pytest.fixture(scope="module")
def curves(fitted_outcome):
    return replicate_curves(fitted_outcome.bootstrap, fitted_outcome.spaghetti_indices)


def test_condition_colors_cycle():
    levels = [f"c{i}" for i in range(len(PLOT_COLORS) + 1)]
    colors = condition_colors(levels)
    assert colors["c0"] == PLOT_COLORS[0]
    assert colors[levels[-1]] == PLOT_COLORS[0]


def test_traces_with_predictions(fitted_outcome):
    fig = plot_traces_with_predictions(fitted_outcome.epochs, fitted_outcome.prediction, "Cz", units="uV")
    assert isinstance(fig, matplotlib.figure.Figure)
    ax = fig.axes[0]
    # one trace polyline and one prediction line per condition
    assert len(ax.lines) >= 4
    assert ax.get_ylabel() == "Amplitude (uV)"
    labels = [text.get_text() for text in ax.get_legend().get_texts()]
    assert labels == ["standard (model)", "deviant (model)"]


def test_traces_unknown_channel(fitted_outcome):
    with pytest.raises(PlottingError, match="Fz"):
        plot_traces_with_predictions(fitted_outcome.epochs, fitted_outcome.prediction, "Fz")


def test_traces_on_existing_axes(fitted_outcome):
    fig, ax = plt.subplots()
    returned = plot_traces_with_predictions(fitted_outcome.epochs, fitted_outcome.prediction, "Pz", ax=ax)
    assert returned is fig


def test_prediction_ribbons(fitted_outcome):
    fig = plot_prediction_ribbons(fitted_outcome.summary, fitted_outcome.prediction)
    ax = fig.axes[0]
    assert len(ax.collections) == 2
    labels = [text.get_text() for text in ax.get_legend().get_texts()]
    assert "standard 95% interval" in labels


def test_prediction_ribbons_without_prediction(fitted_outcome):
    summary = summarize(fitted_outcome.bootstrap, level=0.8)
    fig = plot_prediction_ribbons(summary, level=0.8)
    labels = [text.get_text() for text in fig.axes[0].get_legend().get_texts()]
    assert "deviant 80% interval" in labels
    assert "deviant" in labels


def test_prediction_ribbons_empty():
    with pytest.raises(PlottingError):
        plot_prediction_ribbons(pd.DataFrame(columns=["condition", "time", "mean", "lower", "upper"]))


def test_bootstrap_spaghetti(fitted_outcome, curves):
    fig = plot_bootstrap_spaghetti(curves, fitted_outcome.prediction)
    ax = fig.axes[0]
    n_replicates = len(fitted_outcome.spaghetti_indices)
    # replicates for both conditions plus prediction and zero lines
    assert len(ax.lines) == 2 * n_replicates + 4
    assert ax.get_title() == f"{n_replicates} bootstrap replicates"


def test_bootstrap_spaghetti_empty():
    with pytest.raises(PlottingError):
        plot_bootstrap_spaghetti(pd.DataFrame(columns=["condition", "time", "replicate", "value"]))


@pytest.mark.parametrize("suffix", ["png", "svg", "pdf"])
def test_save_figure(tmp_path, suffix):
    fig, ax = plt.subplots()
    ax.plot(np.arange(5))
    path = save_figure(fig, tmp_path / "figures" / f"plot.{suffix}", dpi=50)
    assert path.exists()
    assert path.stat().st_size > 0
    assert not plt.fignum_exists(fig.number)


def test_save_figure_unsupported_suffix(tmp_path):
    fig, _ = plt.subplots()
    with pytest.raises(PlottingError, match="bmp"):
        save_figure(fig, tmp_path / "plot.bmp")
    assert not plt.fignum_exists(fig.number)
