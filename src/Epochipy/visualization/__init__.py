# -*- coding: utf-8 -*-
"""
Static matplotlib figures for epoch traces, model predictions and
bootstrap replicates.
"""
from .plots import (
    plot_traces_with_predictions,
    plot_prediction_ribbons,
    plot_bootstrap_spaghetti,
    save_figure,
)

__all__ = [
    "plot_traces_with_predictions",
    "plot_prediction_ribbons",
    "plot_bootstrap_spaghetti",
    "save_figure",
]
