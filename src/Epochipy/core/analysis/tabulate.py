# src/Epochipy/core/analysis/tabulate.py
# -*- coding: utf-8 -*-
"""
Flattens epoched data into a long observation table, one row per
(epoch, channel, time) sample.
"""
import logging
from typing import Iterator, NamedTuple

import numpy as np
import pandas as pd

from Epochipy.core.data_model import EpochSet
from Epochipy.shared.constants import (
    COL_AMPLITUDE, COL_CHANNEL, COL_CONDITION, COL_EPOCH, COL_TIME, OBSERVATION_COLUMNS, TIME_DECIMALS
)
from Epochipy.shared.error_handling import AnalysisError

log = logging.getLogger('Epochipy.core.analysis.tabulate')


class ObservationRow(NamedTuple):
    """The unit consumed by the model fitter."""

    epoch_id: int
    condition: str
    time_offset: float
    channel: str
    amplitude: float


def rounded_times(times: np.ndarray) -> np.ndarray:
    """Time offsets rounded so they can be compared and grouped exactly."""
    return np.round(np.asarray(times, dtype=float), TIME_DECIMALS)


def iter_observation_rows(epochs: EpochSet) -> Iterator[ObservationRow]:
    """Yields typed observation rows, epoch-major then channel then time."""
    times = rounded_times(epochs.times)
    for epoch in epochs.iter_epochs():
        for t, value in zip(times, epoch.data):
            yield ObservationRow(epoch.epoch_index, epoch.condition, float(t), epoch.channel, float(value))


def to_observation_table(epochs: EpochSet) -> pd.DataFrame:
    """
    Builds the observation table.

    Columns: condition (ordered categorical, event_id order), time (s),
    epoch (int), channel (str), amplitude (float).
    """
    n_epochs, n_channels, n_times = epochs.data.shape
    times = rounded_times(epochs.times)

    # (epochs, channels, times) flattened in C order
    epoch_idx = np.repeat(np.arange(n_epochs), n_channels * n_times)
    channel_idx = np.tile(np.repeat(np.arange(n_channels), n_times), n_epochs)
    time_col = np.tile(times, n_epochs * n_channels)
    conditions = np.asarray(epochs.conditions, dtype=object)[epoch_idx] if n_epochs else np.array([], dtype=object)
    channels = np.asarray(epochs.channel_names, dtype=object)[channel_idx]

    table = pd.DataFrame({
        COL_CONDITION: pd.Categorical(conditions, categories=epochs.condition_levels, ordered=True),
        COL_TIME: time_col,
        COL_EPOCH: epoch_idx,
        COL_CHANNEL: channels,
        COL_AMPLITUDE: epochs.data.reshape(-1),
    }, columns=OBSERVATION_COLUMNS)
    log.info(f"Tabulated {len(table)} observation(s) from {n_epochs} epoch(s), "
             f"{n_channels} channel(s) and {n_times} time point(s).")
    return table


def select_channel(table: pd.DataFrame, channel: str) -> pd.DataFrame:
    """Returns the rows of one channel (index reset)."""
    subset = table[table[COL_CHANNEL] == channel].reset_index(drop=True)
    if subset.empty:
        available = sorted(table[COL_CHANNEL].unique()) if not table.empty else []
        raise AnalysisError(f"No observations for channel '{channel}'. Available: {available}")
    return subset
