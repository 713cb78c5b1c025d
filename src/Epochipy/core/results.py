# src/Epochipy/core/results.py
# -*- coding: utf-8 -*-
"""
Result containers produced by the model fitting, prediction and bootstrap
stages. All are created once and treated as read-only afterwards.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from Epochipy.core.analysis.model_spec import ModelSpec
from Epochipy.shared.constants import TIME_DECIMALS


@dataclass(frozen=True)
class FittedModel:
    """
    Fixed effects, per-time-point random effects and the covariance
    structure needed for prediction intervals.
    """

    spec: ModelSpec
    levels: List[str]
    fe_params: pd.Series            # fixed-effect estimates
    cov_fe: pd.DataFrame            # covariance of the fixed-effect estimates
    random_effects: pd.DataFrame    # BLUPs, index = time point, columns = random terms
    random_effects_cov: Dict[float, np.ndarray]  # conditional covariance of each BLUP vector
    cov_re: pd.DataFrame            # estimated random-effect covariance
    scale: float                    # residual variance
    llf: float
    reml: bool
    converged: bool
    n_obs: int
    backend: str
    diagnostics: List[str] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def times(self) -> np.ndarray:
        """Time points seen during fitting (sorted)."""
        return np.asarray(self.random_effects.index, dtype=float)

    @property
    def fixed_columns(self) -> List[str]:
        return list(self.fe_params.index)

    @property
    def random_columns(self) -> List[str]:
        return list(self.random_effects.columns)

    def has_time(self, time_offset: float) -> bool:
        return float(np.round(float(time_offset), TIME_DECIMALS)) in self.random_effects_cov

    def condition_effect(self, level: Optional[str] = None) -> float:
        """Fixed-effect difference of ``level`` (default: first non-reference level) vs the reference."""
        columns = self.spec.condition_columns(self.levels)
        if not columns:
            raise KeyError("Model has no condition columns.")
        key = columns[0] if level is None else f"condition[{level}]"
        return float(self.fe_params[key])

    def summary_frame(self) -> pd.DataFrame:
        """Fixed effects with standard errors and Wald 95% intervals."""
        se = np.sqrt(np.diag(self.cov_fe.values))
        frame = pd.DataFrame({
            'estimate': self.fe_params.values,
            'std_error': se,
        }, index=self.fe_params.index.copy())
        frame['z'] = frame['estimate'] / frame['std_error']
        frame['ci_lower'] = frame['estimate'] - 1.959964 * frame['std_error']
        frame['ci_upper'] = frame['estimate'] + 1.959964 * frame['std_error']
        return frame

    def __repr__(self):
        fe = ", ".join(f"{k}={v:.4g}" for k, v in self.fe_params.items())
        return (f"FittedModel({self.spec.formula}; {fe}; scale={self.scale:.4g}; "
                f"groups={len(self.random_effects)}; backend={self.backend})")


@dataclass(frozen=True)
class PredictionResult:
    """Point predictions over a prediction grid."""

    frame: pd.DataFrame  # condition, time, prediction, novel_time
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def values(self) -> np.ndarray:
        return self.frame['prediction'].to_numpy()

    def __repr__(self):
        n_novel = int(self.frame['novel_time'].sum()) if 'novel_time' in self.frame else 0
        return f"PredictionResult(rows={len(self.frame)}, novel_times={n_novel})"


@dataclass(frozen=True)
class BootstrapResult:
    """
    Simulated predictions. ``replicates`` has shape (n_grid_rows, n_simulations);
    column r of every row comes from the same fixed-effect draw.
    """

    grid: pd.DataFrame
    replicates: np.ndarray
    seed: Optional[int]
    include_residual_variance: bool = False
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def n_simulations(self) -> int:
        return int(self.replicates.shape[1])

    def __repr__(self):
        return (f"BootstrapResult(rows={self.replicates.shape[0]}, simulations={self.n_simulations}, "
                f"seed={self.seed})")
