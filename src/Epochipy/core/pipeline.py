# src/Epochipy/core/pipeline.py
# -*- coding: utf-8 -*-
"""
End-to-end analysis run.

Stages run strictly in sequence, each exactly once:
load -> events -> filtering -> epochs -> observation table -> fit ->
predict -> bootstrap -> summary. Every intermediate result is kept on the
returned AnalysisOutcome so reports can be regenerated without refitting.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from Epochipy.core.analysis import bootstrap, epochs as epoching, events as event_extraction
from Epochipy.core.analysis.mixed_model import MixedModelFitter, fit_mixed_model
from Epochipy.core.analysis.prediction import make_prediction_grid, predict
from Epochipy.core.analysis.tabulate import select_channel, to_observation_table
from Epochipy.core.config import AnalysisConfig
from Epochipy.core.data_model import Event, EpochSet, Recording
from Epochipy.core.processing_pipeline import SignalProcessingPipeline
from Epochipy.core.results import BootstrapResult, FittedModel, PredictionResult
from Epochipy.shared.error_handling import ConfigurationError, NoEventsFoundError

log = logging.getLogger('Epochipy.core.pipeline')


@dataclass
class AnalysisOutcome:
    """Everything one run produced, in stage order."""

    config: AnalysisConfig
    recording: Recording
    events: List[Event]
    epochs: EpochSet
    observations: pd.DataFrame       # all picked channels
    model_channel: str
    model: FittedModel
    grid: pd.DataFrame
    prediction: PredictionResult
    bootstrap: BootstrapResult
    summary: pd.DataFrame
    spaghetti_indices: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=int))

    @property
    def model_observations(self) -> pd.DataFrame:
        return select_channel(self.observations, self.model_channel)


def load_recording(config: AnalysisConfig) -> Recording:
    """Reads ``config.recording_path`` through the neo adapter."""
    from Epochipy.infrastructure.file_readers import NeoAdapter

    if not config.recording_path:
        raise ConfigurationError("No recording_path configured and no recording supplied.")
    return NeoAdapter().read_recording(Path(config.recording_path))


def extract_events(recording: Recording, config: AnalysisConfig) -> List[Event]:
    """
    Events from the stim channel, or from file annotations when no stim
    channel is configured. Only codes present in ``event_id`` are returned.
    """
    if config.stim_channel:
        found = event_extraction.find_events(recording, config.stim_channel,
                                             min_duration=config.min_event_duration)
    else:
        found = event_extraction.events_from_annotations(recording, config.event_id)
    matched = event_extraction.pick_events(found, config.event_id.values())
    if not matched:
        raise NoEventsFoundError(
            f"None of the {len(found)} event(s) found carry a code from event_id {config.event_id}; "
            f"codes present: {event_extraction.count_events(found)}"
        )
    return matched


def run_analysis(
    config: AnalysisConfig,
    recording: Optional[Recording] = None,
    fitter: Optional[MixedModelFitter] = None,
) -> AnalysisOutcome:
    """
    Runs the whole analysis for one recording.

    Args:
        config: Validated before use.
        recording: An already loaded Recording; read from
            ``config.recording_path`` when None.
        fitter: Optional fitter instance overriding ``config.fitter_backend``.

    Raises:
        LoadError, NoEventsFoundError: loading or event extraction failed.
        ConvergenceError: the mixed model could not be fitted.
        SamplingError: the bootstrap request exceeds the simulation budget.
    """
    config.validate()
    if recording is None:
        recording = load_recording(config)
    log.info(f"Analysing {recording}")

    events = extract_events(recording, config)

    stim_channels = [config.stim_channel] if config.stim_channel else []
    if config.filter_steps:
        pipeline = SignalProcessingPipeline(config.filter_steps)
        recording = pipeline.apply_to_recording(recording, skip_channels=stim_channels)

    epochs = epoching.segment_epochs(
        recording, events, config.event_id, config.tmin, config.tmax,
        baseline=config.baseline, picks=config.picks, reject=config.reject, flat=config.flat,
        exclude=stim_channels,
    )
    if epochs.drops:
        log.warning(f"Dropped {len(epochs.drops)} of {epochs.n_matched} epoch(s): "
                    f"{len(epochs.out_of_bounds_drops)} out of bounds, {len(epochs.rejected_drops)} rejected.")

    observations = to_observation_table(epochs)
    model_channel = config.model_channel or epochs.channel_names[0]
    model_table = select_channel(observations, model_channel)

    model = fit_mixed_model(model_table, config, fitter=fitter)

    grid = make_prediction_grid(model.levels, epochs.times)
    prediction = predict(model, grid, config)
    simulated = bootstrap.simulate_predictions(model, grid, config)
    summary = bootstrap.summarize(simulated, config.interval_level)
    n_spaghetti = min(config.n_spaghetti, simulated.n_simulations)
    spaghetti_indices = bootstrap.subsample_replicates(simulated, n_spaghetti, seed=config.seed)

    log.info(f"Analysis complete for channel '{model_channel}': {model}")
    return AnalysisOutcome(
        config=config,
        recording=recording,
        events=events,
        epochs=epochs,
        observations=observations,
        model_channel=model_channel,
        model=model,
        grid=grid,
        prediction=prediction,
        bootstrap=simulated,
        summary=summary,
        spaghetti_indices=spaghetti_indices,
    )


def write_report(outcome: AnalysisOutcome, output_dir: Path,
                 config: Optional[AnalysisConfig] = None) -> Dict[str, Path]:
    """
    Writes the three figures, the CSV tables and the configuration used.

    Returns:
        Mapping of artefact name to the path written.
    """
    from Epochipy.infrastructure.exporters import CSVExporter
    from Epochipy.visualization import plots

    config = config if config is not None else outcome.config
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    fmt = config.figure_format
    exporter = CSVExporter()
    written: Dict[str, Path] = {}

    written['observations'] = exporter.export_table(outcome.observations, output_dir / "observations.csv")
    written['predictions'] = exporter.export_table(outcome.prediction.frame, output_dir / "predictions.csv")
    written['bootstrap_summary'] = exporter.export_table(outcome.summary, output_dir / "bootstrap_summary.csv")
    written['fixed_effects'] = exporter.export_fixed_effects(outcome.model, output_dir / "fixed_effects.csv")
    written['random_effects'] = exporter.export_random_effects(outcome.model, output_dir / "random_effects.csv")
    written['variance_components'] = exporter.export_variance_components(
        outcome.model, output_dir / "variance_components.csv")

    units = outcome.recording.get_channel(outcome.model_channel).units
    fig = plots.plot_traces_with_predictions(outcome.epochs, outcome.prediction, outcome.model_channel, units=units)
    written['traces'] = plots.save_figure(fig, output_dir / f"traces.{fmt}", dpi=config.dpi)

    fig = plots.plot_prediction_ribbons(outcome.summary, outcome.prediction, level=config.interval_level)
    written['ribbons'] = plots.save_figure(fig, output_dir / f"ribbons.{fmt}", dpi=config.dpi)

    curves = bootstrap.replicate_curves(outcome.bootstrap, outcome.spaghetti_indices)
    fig = plots.plot_bootstrap_spaghetti(curves, outcome.prediction)
    written['spaghetti'] = plots.save_figure(fig, output_dir / f"spaghetti.{fmt}", dpi=config.dpi)

    config_path = output_dir / "config.json"
    config.save(config_path)
    written['config'] = config_path

    log.info(f"Report written to {output_dir} ({len(written)} file(s)).")
    return written
