# -*- coding: utf-8 -*-
"""Shared constants for Epochipy."""

# Time offsets are rounded to this many decimals so they act as stable group keys
TIME_DECIMALS = 6

# Bootstrap defaults
DEFAULT_N_SIMULATIONS = 1000
DEFAULT_MAX_SIMULATIONS = 100_000
DEFAULT_INTERVAL_LEVEL = 0.95
DEFAULT_N_SPAGHETTI = 100

# Mixed model defaults
DEFAULT_OPTIMIZER = "lbfgs"
DEFAULT_MAX_ITER = 500
DEFAULT_SINGULAR_TOLERANCE = 1e-4  # on the relative Cholesky factor diagonal
DEFAULT_FITTER_BACKEND = "statsmodels"

NOVEL_TIME_POLICIES = ("error", "population")

# Observation table columns
COL_CONDITION = "condition"
COL_TIME = "time"
COL_EPOCH = "epoch"
COL_CHANNEL = "channel"
COL_AMPLITUDE = "amplitude"
OBSERVATION_COLUMNS = [COL_CONDITION, COL_TIME, COL_EPOCH, COL_CHANNEL, COL_AMPLITUDE]

# Plotting Constants
PLOT_COLORS = [
    "#377eb8",  # Blue
    "#e41a1c",  # Red
    "#4daf4a",  # Green
    "#984ea3",  # Purple
    "#ff7f00",  # Orange
    "#a65628",  # Brown
    "#999999",  # Gray
]
TRIAL_ALPHA = 0.15      # Alpha for overlaid per-epoch traces
RIBBON_ALPHA = 0.3      # Alpha for compatibility interval ribbons
SPAGHETTI_ALPHA = 0.05  # Alpha for individual bootstrap curves
PREDICTION_LINE_WIDTH = 2.0
TRIAL_LINE_WIDTH = 0.5

# matplotlib z-ordering for layering plot elements
Z_ORDER = {
    'grid': 0,
    'spaghetti': 1,
    'trials': 2,
    'ribbon': 3,
    'prediction': 4,
    'annotation': 5,
}

SUPPORTED_FIGURE_FORMATS = ("png", "svg", "pdf")
DEFAULT_DPI = 150
