# src/Epochipy/core/analysis/mixed_model.py
# -*- coding: utf-8 -*-
"""
Mixed-effects fitting of amplitude by condition with per-time-point random
intercepts and condition slopes.

The per-time effects are partially pooled: they are treated as draws from
one multivariate normal, so time points with noisy estimates shrink toward
the population (fixed) effect. The optimizer itself lives in an external
library behind the MixedModelFitter interface; failures are surfaced as
ConvergenceError and never retried.
"""
import logging
import warnings
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np
import pandas as pd
from statsmodels.regression.mixed_linear_model import MixedLM
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from Epochipy.core.analysis.model_spec import ModelSpec, design_matrix
from Epochipy.core.analysis.registry import FitterRegistry
from Epochipy.core.config import AnalysisConfig
from Epochipy.core.results import FittedModel
from Epochipy.shared.constants import COL_CONDITION, TIME_DECIMALS
from Epochipy.shared.error_handling import AnalysisError, ConvergenceError

log = logging.getLogger('Epochipy.core.analysis.mixed_model')


class MixedModelFitter(ABC):
    """Interface for mixed-model backends."""

    name = "abstract"

    @abstractmethod
    def fit(self, table: pd.DataFrame, spec: ModelSpec, config: AnalysisConfig) -> FittedModel:
        """
        Fits ``spec`` to the observation table.

        Raises:
            AnalysisError: if the table cannot support the model.
            ConvergenceError: if no stable solution is found.
        """


def condition_levels(table: pd.DataFrame) -> List[str]:
    """Condition levels present in the table, in categorical order when available."""
    column = table[COL_CONDITION]
    present = set(column.astype(str).unique())
    if isinstance(column.dtype, pd.CategoricalDtype):
        ordered = [str(c) for c in column.cat.categories]
    else:
        ordered = sorted(present)
    return [lvl for lvl in ordered if lvl in present]


def check_model_table(table: pd.DataFrame, spec: ModelSpec) -> List[str]:
    """Validates the observation table and returns the condition levels."""
    if table.empty:
        raise AnalysisError("Observation table is empty; nothing to fit.")
    missing = {COL_CONDITION, spec.group, spec.response} - set(table.columns)
    if missing:
        raise AnalysisError(f"Observation table lacks column(s) {sorted(missing)}.")
    if 'channel' in table.columns and table['channel'].nunique() > 1:
        raise AnalysisError("Observation table holds more than one channel; select one before fitting.")
    if not np.all(np.isfinite(table[spec.response].to_numpy(dtype=float))):
        raise AnalysisError(f"Column '{spec.response}' contains non-finite values.")
    levels = condition_levels(table)
    if len(levels) < 2:
        raise AnalysisError(f"At least two condition levels are required, found {levels}.")
    if table[spec.group].nunique() < 2:
        raise AnalysisError(f"At least two '{spec.group}' groups are required for random effects.")
    return levels


def relative_cholesky_diagonal(cov_re: np.ndarray, scale: float) -> Optional[np.ndarray]:
    """
    Diagonal of the Cholesky factor of cov_re / scale, or None when the
    relative covariance is not positive definite.
    """
    try:
        factor = np.linalg.cholesky(np.asarray(cov_re) / scale)
    except np.linalg.LinAlgError:
        return None
    return np.abs(np.diag(factor))


@FitterRegistry.register("statsmodels")
class StatsmodelsMixedFitter(MixedModelFitter):
    """Backend using statsmodels' MixedLM (REML or ML)."""

    name = "statsmodels"

    def fit(self, table: pd.DataFrame, spec: ModelSpec, config: AnalysisConfig) -> FittedModel:  # noqa: C901
        levels = check_model_table(table, spec)
        conditions = table[COL_CONDITION].astype(str).to_numpy()
        groups = np.round(table[spec.group].to_numpy(dtype=float), TIME_DECIMALS)
        endog = table[spec.response].to_numpy(dtype=float)
        exog = design_matrix(spec, conditions, levels, spec.fixed)
        exog_re = design_matrix(spec, conditions, levels, spec.random)

        log.info(f"Fitting {spec.formula} on {len(endog)} observation(s), "
                 f"{len(np.unique(groups))} group(s), levels={levels}, reference='{spec.reference_level(levels)}' "
                 f"(optimizer={config.optimizer}, reml={config.reml}).")

        diagnostics: List[str] = []
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            try:
                model = MixedLM(endog, exog.to_numpy(), groups, exog_re=exog_re.to_numpy())
                result = model.fit(reml=config.reml, method=config.optimizer, maxiter=config.max_iter)
            except (np.linalg.LinAlgError, ValueError, FloatingPointError) as e:
                diagnostics.extend(str(w.message) for w in caught)
                raise ConvergenceError(f"Optimizer '{config.optimizer}' failed: {e}", diagnostics) from e
        for w in caught:
            message = f"{w.category.__name__}: {w.message}"
            diagnostics.append(message)
            if issubclass(w.category, ConvergenceWarning):
                log.warning(message)
            else:
                log.debug(message)

        if not result.converged:
            retvals = getattr(result, 'mle_retvals', None)
            diagnostics.append(f"converged=False, mle_retvals={retvals}")
            raise ConvergenceError(
                f"Optimizer '{config.optimizer}' did not converge within {config.max_iter} iterations.",
                diagnostics,
            )

        k_fe = exog.shape[1]
        k_re = exog_re.shape[1]
        fe_names = list(exog.columns)
        re_names = list(exog_re.columns)
        scale = float(result.scale)
        cov_re = np.asarray(result.cov_re, dtype=float)[:k_re, :k_re]

        theta = relative_cholesky_diagonal(cov_re, scale) if scale > 0 else None
        if theta is None or theta.min() < config.singular_tolerance:
            eigvals = np.linalg.eigvalsh(cov_re)
            diagnostics.append(f"cov_re eigenvalues={np.array2string(eigvals, precision=4)}")
            diagnostics.append(f"relative Cholesky diagonal={theta}")
            raise ConvergenceError(
                "Random-effect covariance is singular; the per-time effects are not identifiable "
                "with this model.",
                diagnostics,
            )

        cov_fe = np.asarray(result.cov_params(), dtype=float)[:k_fe, :k_fe]
        if not np.all(np.isfinite(cov_fe)) or np.any(np.diag(cov_fe) < 0):
            raise ConvergenceError("Fixed-effect covariance is not finite or not positive.", diagnostics)

        blups = {}
        blup_cov = {}
        for group, values in result.random_effects.items():
            key = float(np.round(float(group), TIME_DECIMALS))
            blups[key] = np.asarray(values, dtype=float)[:k_re]
        for group, cov in result.random_effects_cov.items():
            key = float(np.round(float(group), TIME_DECIMALS))
            blup_cov[key] = np.asarray(cov, dtype=float)[:k_re, :k_re]
        times = sorted(blups)
        random_effects = pd.DataFrame([blups[t] for t in times], index=pd.Index(times, name=spec.group),
                                      columns=re_names)

        fitted = FittedModel(
            spec=spec,
            levels=levels,
            fe_params=pd.Series(np.asarray(result.fe_params, dtype=float)[:k_fe], index=fe_names),
            cov_fe=pd.DataFrame(cov_fe, index=fe_names, columns=fe_names),
            random_effects=random_effects,
            random_effects_cov=blup_cov,
            cov_re=pd.DataFrame(cov_re, index=re_names, columns=re_names),
            scale=scale,
            llf=float(result.llf),
            reml=config.reml,
            converged=bool(result.converged),
            n_obs=int(len(endog)),
            backend=self.name,
            diagnostics=diagnostics,
            parameters={'optimizer': config.optimizer, 'max_iter': config.max_iter, 'formula': spec.formula},
        )
        log.info(f"Fit complete: {fitted}")
        return fitted


def model_spec_from_config(config: AnalysisConfig) -> ModelSpec:
    """The default random-slope model with the configured reference level."""
    return ModelSpec(reference=config.reference_condition)


def fit_mixed_model(
    table: pd.DataFrame,
    config: AnalysisConfig,
    spec: Optional[ModelSpec] = None,
    fitter: Optional[MixedModelFitter] = None,
) -> FittedModel:
    """
    Fits the mixed model with the backend named in ``config`` (or the given
    ``fitter`` instance).
    """
    spec = spec if spec is not None else model_spec_from_config(config)
    fitter = fitter if fitter is not None else FitterRegistry.create(config.fitter_backend)
    return fitter.fit(table, spec, config)
