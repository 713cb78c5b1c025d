# src/Epochipy/visualization/plots.py
# -*- coding: utf-8 -*-
"""
Static figures for an analysis run, drawn with Matplotlib.

The functions here only draw what they are given; every number shown is
computed upstream. Each returns the Figure so callers can save or further
customise it.
"""
import logging
from pathlib import Path
from typing import Dict, Optional, Sequence

import matplotlib
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from Epochipy.core.data_model import EpochSet
from Epochipy.core.results import PredictionResult
from Epochipy.shared.constants import (
    COL_CONDITION, COL_TIME, DEFAULT_DPI, PLOT_COLORS, PREDICTION_LINE_WIDTH, RIBBON_ALPHA,
    SPAGHETTI_ALPHA, SUPPORTED_FIGURE_FORMATS, TRIAL_ALPHA, TRIAL_LINE_WIDTH, Z_ORDER,
)
from Epochipy.shared.error_handling import ExportError, PlottingError

log = logging.getLogger('Epochipy.visualization.plots')


def condition_colors(levels: Sequence[str]) -> Dict[str, str]:
    """Stable colour per condition level, cycling through PLOT_COLORS."""
    return {str(level): PLOT_COLORS[idx % len(PLOT_COLORS)] for idx, level in enumerate(levels)}


def _levels_of(frame: pd.DataFrame) -> list:
    column = frame[COL_CONDITION]
    if isinstance(column.dtype, pd.CategoricalDtype):
        present = set(column.astype(str))
        return [str(c) for c in column.cat.categories if str(c) in present]
    return list(dict.fromkeys(column.astype(str)))


def _new_axes(ax, figsize=(8, 5)):
    if ax is not None:
        return ax.figure, ax
    fig, ax = plt.subplots(figsize=figsize)
    return fig, ax


def _style_axes(ax, title: str, ylabel: str):
    ax.axvline(0.0, color='k', linestyle='--', linewidth=0.8, zorder=Z_ORDER['annotation'])
    ax.axhline(0.0, color='0.5', linewidth=0.5, zorder=Z_ORDER['grid'])
    ax.set_xlabel("Time (s)")
    ax.set_ylabel(ylabel)
    ax.set_title(title)
    ax.spines['right'].set_visible(False)
    ax.spines['top'].set_visible(False)
    ax.grid(True, alpha=0.3, zorder=Z_ORDER['grid'])
    ax.legend(loc='best', frameon=False)


def _plot_prediction_lines(ax, prediction: PredictionResult, colors: Dict[str, str], label_suffix: str = ""):
    frame = prediction.frame
    for level in _levels_of(frame):
        rows = frame[frame[COL_CONDITION].astype(str) == level].sort_values(COL_TIME)
        ax.plot(rows[COL_TIME].to_numpy(), rows['prediction'].to_numpy(),
                color=colors.get(level, 'k'), linewidth=PREDICTION_LINE_WIDTH,
                label=f"{level}{label_suffix}", zorder=Z_ORDER['prediction'])


def plot_traces_with_predictions(
    epochs: EpochSet,
    prediction: PredictionResult,
    channel: str,
    ax: Optional[matplotlib.axes.Axes] = None,
    units: str = "",
) -> matplotlib.figure.Figure:
    """
    Per-epoch traces of ``channel`` coloured by condition, with the model's
    predicted curve for each condition overlaid.
    """
    if channel not in epochs.channel_names:
        raise PlottingError(f"Channel '{channel}' is not part of the epochs: {epochs.channel_names}")
    if len(epochs) == 0:
        raise PlottingError("No epochs to plot.")
    ch_idx = epochs.channel_names.index(channel)
    colors = condition_colors(epochs.condition_levels)

    fig, ax = _new_axes(ax)
    for level in epochs.condition_levels:
        indices = [i for i, c in enumerate(epochs.conditions) if c == level]
        if not indices:
            continue
        traces = epochs.data[indices, ch_idx, :]
        # One polyline per condition; NaN separators break it between epochs
        ax.plot(np.tile(np.append(epochs.times, np.nan), len(indices)),
                np.hstack([traces, np.full((len(indices), 1), np.nan)]).ravel(),
                color=colors[level], alpha=TRIAL_ALPHA, linewidth=TRIAL_LINE_WIDTH,
                zorder=Z_ORDER['trials'])
    _plot_prediction_lines(ax, prediction, colors, label_suffix=" (model)")
    ylabel = f"Amplitude ({units})" if units else "Amplitude"
    _style_axes(ax, f"{channel}: {len(epochs)} epochs with model predictions", ylabel)
    log.debug(f"Drew {len(epochs)} trace(s) for channel '{channel}'.")
    return fig


def plot_prediction_ribbons(
    summary: pd.DataFrame,
    prediction: Optional[PredictionResult] = None,
    level: float = 0.95,
    ax: Optional[matplotlib.axes.Axes] = None,
) -> matplotlib.figure.Figure:
    """
    Prediction lines per condition with the bootstrap compatibility interval
    shaded. The bootstrap mean is drawn when no point prediction is given.
    """
    if summary.empty:
        raise PlottingError("Bootstrap summary is empty.")
    levels = _levels_of(summary)
    colors = condition_colors(levels)

    fig, ax = _new_axes(ax)
    for lvl in levels:
        rows = summary[summary[COL_CONDITION].astype(str) == lvl].sort_values(COL_TIME)
        ax.fill_between(rows[COL_TIME].to_numpy(), rows['lower'].to_numpy(), rows['upper'].to_numpy(),
                        color=colors[lvl], alpha=RIBBON_ALPHA, linewidth=0, zorder=Z_ORDER['ribbon'],
                        label=f"{lvl} {level:.0%} interval")
        if prediction is None:
            ax.plot(rows[COL_TIME].to_numpy(), rows['mean'].to_numpy(), color=colors[lvl],
                    linewidth=PREDICTION_LINE_WIDTH, label=lvl, zorder=Z_ORDER['prediction'])
    if prediction is not None:
        _plot_prediction_lines(ax, prediction, colors)
    _style_axes(ax, "Predicted amplitude with compatibility intervals", "Amplitude")
    return fig


def plot_bootstrap_spaghetti(
    curves: pd.DataFrame,
    prediction: Optional[PredictionResult] = None,
    ax: Optional[matplotlib.axes.Axes] = None,
) -> matplotlib.figure.Figure:
    """
    Individual bootstrap replicate curves (long format: condition, time,
    replicate, value) drawn faintly beneath the prediction lines.
    """
    if curves.empty:
        raise PlottingError("No replicate curves to plot.")
    levels = _levels_of(curves)
    colors = condition_colors(levels)

    fig, ax = _new_axes(ax)
    n_replicates = curves['replicate'].nunique()
    for lvl in levels:
        rows = curves[curves[COL_CONDITION].astype(str) == lvl]
        wide = rows.pivot_table(index=COL_TIME, columns='replicate', values='value').sort_index()
        ax.plot(wide.index.to_numpy(), wide.to_numpy(), color=colors[lvl], alpha=SPAGHETTI_ALPHA,
                linewidth=TRIAL_LINE_WIDTH, zorder=Z_ORDER['spaghetti'])
        if prediction is None:
            ax.plot(wide.index.to_numpy(), wide.mean(axis=1).to_numpy(), color=colors[lvl],
                    linewidth=PREDICTION_LINE_WIDTH, label=lvl, zorder=Z_ORDER['prediction'])
    if prediction is not None:
        _plot_prediction_lines(ax, prediction, colors)
    _style_axes(ax, f"{n_replicates} bootstrap replicates", "Amplitude")
    return fig


def save_figure(fig: matplotlib.figure.Figure, path: Path, dpi: int = DEFAULT_DPI) -> Path:
    """
    Save ``fig`` in the format given by the file suffix (png, svg or pdf) and close it.
    """
    path = Path(path)
    fmt = path.suffix.lower().lstrip('.')
    if fmt not in SUPPORTED_FIGURE_FORMATS:
        plt.close(fig)
        raise PlottingError(f"Unsupported figure format '.{fmt}'. Supported: {SUPPORTED_FIGURE_FORMATS}")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.tight_layout()
        fig.savefig(path, format=fmt, dpi=dpi)
    except OSError as e:
        log.error(f"Failed to save figure to {path}: {e}")
        raise ExportError(f"Failed to save figure to {path}: {e}") from e
    finally:
        plt.close(fig)
    log.info(f"Exported figure to {path}")
    return path
