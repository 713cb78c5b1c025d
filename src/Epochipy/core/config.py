# src/Epochipy/core/config.py
# -*- coding: utf-8 -*-
"""
Analysis configuration.

A single AnalysisConfig object is created per run and passed explicitly to
every stage. Nothing in the package reads global state: the random seed,
optimizer choice and prediction policy all live here.
"""
import json
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from Epochipy.shared import constants
from Epochipy.shared.error_handling import ConfigurationError

log = logging.getLogger('Epochipy.core.config')

Threshold = Union[None, float, Dict[str, float]]


@dataclass
class AnalysisConfig:
    """Parameters for one end-to-end analysis run."""

    # --- Loading / events ---
    recording_path: Optional[str] = None
    stim_channel: Optional[str] = None
    event_id: Dict[str, int] = field(default_factory=dict)
    min_event_duration: float = 0.0

    # --- Epoching ---
    tmin: float = -0.2
    tmax: float = 0.5
    baseline: Optional[Tuple[Optional[float], Optional[float]]] = (None, 0.0)
    picks: Optional[List[str]] = None
    reject: Threshold = None
    flat: Threshold = None
    filter_steps: List[Dict[str, Any]] = field(default_factory=list)

    # --- Model ---
    model_channel: Optional[str] = None
    reference_condition: Optional[str] = None
    reml: bool = True
    optimizer: str = constants.DEFAULT_OPTIMIZER
    max_iter: int = constants.DEFAULT_MAX_ITER
    singular_tolerance: float = constants.DEFAULT_SINGULAR_TOLERANCE
    fitter_backend: str = constants.DEFAULT_FITTER_BACKEND

    # --- Prediction / bootstrap ---
    novel_time_policy: str = "error"
    n_simulations: int = constants.DEFAULT_N_SIMULATIONS
    max_simulations: int = constants.DEFAULT_MAX_SIMULATIONS
    include_residual_variance: bool = False
    interval_level: float = constants.DEFAULT_INTERVAL_LEVEL
    n_spaghetti: int = constants.DEFAULT_N_SPAGHETTI
    seed: Optional[int] = None

    # --- Output ---
    figure_format: str = "png"
    dpi: int = constants.DEFAULT_DPI

    def __post_init__(self):
        if self.baseline is not None:
            self.baseline = tuple(self.baseline)
        self.event_id = {str(k): int(v) for k, v in self.event_id.items()}

    def validate(self) -> "AnalysisConfig":
        """Checks parameter consistency. Returns self so calls can be chained."""
        if not self.event_id:
            raise ConfigurationError("event_id must map at least one condition label to an event code.")
        if len(set(self.event_id.values())) != len(self.event_id):
            raise ConfigurationError(f"event_id codes must be unique: {self.event_id}")
        if self.tmin >= self.tmax:
            raise ConfigurationError(f"tmin ({self.tmin}) must be smaller than tmax ({self.tmax}).")
        if self.baseline is not None:
            if len(self.baseline) != 2:
                raise ConfigurationError("baseline must be a (start, end) pair.")
            bmin = self.tmin if self.baseline[0] is None else self.baseline[0]
            bmax = self.tmax if self.baseline[1] is None else self.baseline[1]
            if bmin < self.tmin or bmax > self.tmax or bmin > bmax:
                raise ConfigurationError(
                    f"baseline {self.baseline} must lie inside the epoch window ({self.tmin}, {self.tmax})."
                )
        if self.reference_condition is not None and self.reference_condition not in self.event_id:
            raise ConfigurationError(f"reference_condition '{self.reference_condition}' is not in event_id.")
        if self.novel_time_policy not in constants.NOVEL_TIME_POLICIES:
            raise ConfigurationError(
                f"novel_time_policy must be one of {constants.NOVEL_TIME_POLICIES}, got '{self.novel_time_policy}'."
            )
        if not 0.0 < self.interval_level < 1.0:
            raise ConfigurationError(f"interval_level must be in (0, 1), got {self.interval_level}.")
        if self.max_simulations < 1:
            raise ConfigurationError("max_simulations must be positive.")
        if self.n_simulations < 1:
            raise ConfigurationError(f"n_simulations must be at least 1, got {self.n_simulations}.")
        if self.n_spaghetti < 1:
            raise ConfigurationError(f"n_spaghetti must be at least 1, got {self.n_spaghetti}.")
        if self.singular_tolerance < 0:
            raise ConfigurationError("singular_tolerance must be non-negative.")
        if self.figure_format not in constants.SUPPORTED_FIGURE_FORMATS:
            raise ConfigurationError(
                f"figure_format must be one of {constants.SUPPORTED_FIGURE_FORMATS}, got '{self.figure_format}'."
            )
        # Deferred import: the registry module imports the fitter backends
        from Epochipy.core.analysis.registry import FitterRegistry
        if self.fitter_backend not in FitterRegistry.list_registered():
            raise ConfigurationError(
                f"Unknown fitter backend '{self.fitter_backend}'. Available: {FitterRegistry.list_registered()}"
            )
        return self

    @property
    def conditions(self) -> List[str]:
        """Condition labels in event_id order."""
        return list(self.event_id.keys())

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if data["baseline"] is not None:
            data["baseline"] = list(data["baseline"])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        known = set(cls.__dataclass_fields__)
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**data)

    def save(self, path: Path) -> None:
        path = Path(path)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=4)
        log.info(f"Saved analysis configuration to {path}")


def load_config(path: Path) -> AnalysisConfig:
    """Reads an AnalysisConfig from a JSON file and validates it."""
    path = Path(path)
    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a JSON object.")
    config = AnalysisConfig.from_dict(data)
    log.info(f"Loaded analysis configuration from {path}")
    return config.validate()
