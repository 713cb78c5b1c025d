# src/Epochipy/core/analysis/bootstrap.py
# -*- coding: utf-8 -*-
"""
Parametric bootstrap of model predictions.

Each replicate draws the fixed effects from their sampling distribution and
the per-time random effects from their conditional distribution given the
data ("full" uncertainty), then evaluates the prediction grid. Replicate
sets are summarised by their mean and empirical quantiles (the
compatibility interval).
"""
import logging
from typing import Optional

import numpy as np
import pandas as pd

from Epochipy.core.analysis.prediction import grid_design
from Epochipy.core.config import AnalysisConfig
from Epochipy.core.results import BootstrapResult, FittedModel, PredictionResult
from Epochipy.shared.constants import COL_CONDITION, COL_TIME
from Epochipy.shared.error_handling import SamplingError

log = logging.getLogger('Epochipy.core.analysis.bootstrap')


def _symmetric(cov: np.ndarray) -> np.ndarray:
    cov = np.asarray(cov, dtype=float)
    return 0.5 * (cov + cov.T)


def check_simulation_budget(n_simulations: int, max_simulations: int) -> None:
    """Raises SamplingError when ``n_simulations`` is not in [1, max_simulations]."""
    if n_simulations < 1:
        raise SamplingError(f"Number of simulations must be at least 1, got {n_simulations}.")
    if n_simulations > max_simulations:
        raise SamplingError(
            f"Requested {n_simulations} simulations exceeds the simulation budget of {max_simulations}."
        )


def simulate_predictions(model: FittedModel, grid: pd.DataFrame, config: AnalysisConfig) -> BootstrapResult:
    """
    Simulates ``config.n_simulations`` predictions for every grid row.

    Draw order is fixed (fixed effects first, then random effects per time
    point in ascending time, then residuals), so a given seed reproduces the
    replicate set exactly.

    Raises:
        SamplingError: if the requested count is outside the simulation budget.
        PredictionError: propagated from grid resolution.
    """
    n_sims = int(config.n_simulations)
    check_simulation_budget(n_sims, config.max_simulations)
    design = grid_design(model, grid, config.novel_time_policy)
    rng = np.random.default_rng(config.seed)

    beta = model.fe_params.to_numpy(dtype=float)
    beta_draws = rng.multivariate_normal(beta, _symmetric(model.cov_fe.to_numpy()), size=n_sims)
    fixed_part = design.X @ beta_draws.T  # (rows, sims)

    unique_times = np.unique(design.times)
    k_re = design.Z.shape[1]
    re_draws = np.empty((unique_times.size, n_sims, k_re))
    cov_re = _symmetric(model.cov_re.to_numpy())
    for idx, t in enumerate(unique_times):
        key = float(t)
        if model.has_time(key):
            mean = model.random_effects.loc[key].to_numpy(dtype=float)
            cov = _symmetric(model.random_effects_cov[key])
        else:
            mean = np.zeros(k_re)
            cov = cov_re
        re_draws[idx] = rng.multivariate_normal(mean, cov, size=n_sims)
    row_time_idx = np.searchsorted(unique_times, design.times)
    random_part = np.einsum('ik,isk->is', design.Z, re_draws[row_time_idx])

    replicates = fixed_part + random_part
    if config.include_residual_variance:
        replicates = replicates + rng.normal(0.0, np.sqrt(model.scale), size=replicates.shape)

    result = BootstrapResult(
        grid=grid.reset_index(drop=True).copy(),
        replicates=replicates,
        seed=config.seed,
        include_residual_variance=config.include_residual_variance,
        parameters={'n_simulations': n_sims, 'novel_time_policy': config.novel_time_policy},
    )
    log.info(f"Simulated {n_sims} replicate(s) for {replicates.shape[0]} grid row(s) (seed={config.seed}).")
    return result


def summarize(result: BootstrapResult, level: float = 0.95) -> pd.DataFrame:
    """
    Mean and empirical [(1-level)/2, 1-(1-level)/2] quantiles per grid row.
    """
    if not 0.0 < level < 1.0:
        raise SamplingError(f"Interval level must be in (0, 1), got {level}.")
    alpha = (1.0 - level) / 2.0
    lower, upper = np.quantile(result.replicates, [alpha, 1.0 - alpha], axis=1)
    summary = result.grid[[COL_CONDITION, COL_TIME]].copy()
    summary['mean'] = result.replicates.mean(axis=1)
    summary['lower'] = lower
    summary['upper'] = upper
    return summary


def interval_coverage(summary: pd.DataFrame, prediction: PredictionResult) -> float:
    """Fraction of grid rows whose point prediction lies inside [lower, upper]."""
    values = prediction.values
    if len(values) != len(summary):
        raise SamplingError("Summary and prediction grids differ in length.")
    inside = (summary['lower'].to_numpy() <= values) & (values <= summary['upper'].to_numpy())
    return float(inside.mean())


def subsample_replicates(result: BootstrapResult, n: int, seed: Optional[int] = None) -> np.ndarray:
    """
    Indices of ``n`` replicates chosen uniformly at random without replacement.
    """
    available = result.n_simulations
    if n < 1:
        raise SamplingError(f"Subsample size must be at least 1, got {n}.")
    if n > available:
        raise SamplingError(f"Cannot draw {n} replicate(s) without replacement from {available}.")
    rng = np.random.default_rng(seed)
    return rng.choice(available, size=n, replace=False)


def replicate_curves(result: BootstrapResult, indices: np.ndarray) -> pd.DataFrame:
    """Long table (condition, time, replicate, value) for the selected replicates."""
    indices = np.asarray(indices, dtype=int)
    n_rows = len(result.grid)
    frame = pd.DataFrame({
        COL_CONDITION: np.repeat(result.grid[COL_CONDITION].to_numpy(), indices.size),
        COL_TIME: np.repeat(result.grid[COL_TIME].to_numpy(), indices.size),
        'replicate': np.tile(indices, n_rows),
        'value': result.replicates[:, indices].reshape(-1),
    })
    return frame
