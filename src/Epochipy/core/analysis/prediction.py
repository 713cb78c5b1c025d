# src/Epochipy/core/analysis/prediction.py
# -*- coding: utf-8 -*-
"""
Point predictions from a fitted mixed model over a synthetic
(condition, time) grid.
"""
import logging
from typing import NamedTuple, Sequence

import numpy as np
import pandas as pd

from Epochipy.core.analysis.model_spec import design_matrix
from Epochipy.core.analysis.tabulate import rounded_times
from Epochipy.core.config import AnalysisConfig
from Epochipy.core.results import FittedModel, PredictionResult
from Epochipy.shared.constants import COL_CONDITION, COL_TIME
from Epochipy.shared.error_handling import PredictionError

log = logging.getLogger('Epochipy.core.analysis.prediction')


class GridDesign(NamedTuple):
    """Design matrices and random-effect lookup for a prediction grid."""

    X: np.ndarray            # fixed design (rows, k_fe)
    Z: np.ndarray            # random design (rows, k_re)
    times: np.ndarray        # rounded time per row
    novel: np.ndarray        # bool, True where the time was not seen in fitting
    blups: np.ndarray        # (rows, k_re) BLUPs, zero for novel times


def make_prediction_grid(levels: Sequence[str], times: Sequence[float]) -> pd.DataFrame:
    """
    Every (condition, time) combination, condition-major.

    The grid carries no observed data; it only addresses the fitted model.
    """
    levels = list(levels)
    times = rounded_times(np.unique(np.asarray(times, dtype=float)))
    conditions = np.repeat(np.asarray(levels, dtype=object), times.size)
    return pd.DataFrame({
        COL_CONDITION: pd.Categorical(conditions, categories=levels, ordered=True),
        COL_TIME: np.tile(times, len(levels)),
    })


def grid_design(model: FittedModel, grid: pd.DataFrame, novel_time_policy: str) -> GridDesign:
    """
    Builds the design for ``grid`` and resolves random effects per row.

    Raises:
        PredictionError: for unknown condition levels, or for time offsets
            absent from the fitted model when the policy is 'error'.
    """
    if grid.empty:
        raise PredictionError("Prediction grid is empty.")
    conditions = grid[COL_CONDITION].astype(str).to_numpy()
    unknown = sorted(set(conditions) - set(model.levels))
    if unknown:
        raise PredictionError(f"Condition level(s) {unknown} were not part of the fitted model {model.levels}.")

    times = rounded_times(grid[COL_TIME].to_numpy(dtype=float))
    novel = np.array([not model.has_time(t) for t in times], dtype=bool)
    if novel.any():
        examples = np.unique(times[novel])[:5]
        if novel_time_policy == "error":
            raise PredictionError(
                f"{int(novel.sum())} grid row(s) use time offsets absent from the fitted model "
                f"(e.g. {examples.tolist()}); set novel_time_policy='population' to predict them "
                f"from the fixed effects alone."
            )
        log.info(f"{int(novel.sum())} grid row(s) at novel time offsets use population-level predictions.")

    X = design_matrix(model.spec, conditions, model.levels, model.spec.fixed).to_numpy()
    Z = design_matrix(model.spec, conditions, model.levels, model.spec.random).to_numpy()
    blups = np.array(model.random_effects.reindex(times), dtype=float)
    blups[novel] = 0.0
    return GridDesign(X=X, Z=Z, times=times, novel=novel, blups=blups)


def predict(model: FittedModel, grid: pd.DataFrame, config: AnalysisConfig) -> PredictionResult:
    """
    Conditional expectation X·beta + Z·b_t for every grid row.
    """
    design = grid_design(model, grid, config.novel_time_policy)
    beta = model.fe_params.to_numpy(dtype=float)
    prediction = design.X @ beta + np.einsum('ij,ij->i', design.Z, design.blups)

    frame = pd.DataFrame({
        COL_CONDITION: grid[COL_CONDITION].to_numpy(),
        COL_TIME: design.times,
        'prediction': prediction,
        'novel_time': design.novel,
    })
    if isinstance(grid[COL_CONDITION].dtype, pd.CategoricalDtype):
        frame[COL_CONDITION] = pd.Categorical(frame[COL_CONDITION], categories=grid[COL_CONDITION].cat.categories,
                                              ordered=True)
    log.info(f"Predicted {len(frame)} grid row(s).")
    return PredictionResult(frame=frame, parameters={'novel_time_policy': config.novel_time_policy})
