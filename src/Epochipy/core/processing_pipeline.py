# src/Epochipy/core/processing_pipeline.py
# -*- coding: utf-8 -*-
"""
Signal Processing Pipeline.

Formalizes the order of filter operations applied to the continuous
recording before epoching. Steps are plain dicts so that they can be stored
in the JSON analysis configuration, e.g.
``{'type': 'filter', 'method': 'bandpass', 'low_cut': 0.1, 'high_cut': 30}``.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from Epochipy.core import signal_processor
from Epochipy.core.data_model import Channel, Recording
from Epochipy.shared.error_handling import ProcessingError

log = logging.getLogger('Epochipy.core.processing_pipeline')


class SignalProcessingPipeline:
    """
    Manages an ordered list of signal processing steps.
    """

    def __init__(self, steps: Optional[List[Dict[str, Any]]] = None):
        self._steps: List[Dict[str, Any]] = [s.copy() for s in (steps or [])]

    def add_step(self, step_config: Dict[str, Any], index: Optional[int] = None):
        """
        Add a processing step to the pipeline.

        Args:
            step_config: Dictionary defining the step (e.g., {'type': 'filter', 'method': 'lowpass', 'cutoff': 40})
            index: Optional index to insert at. If None, appends to end.
        """
        if index is not None:
            self._steps.insert(index, step_config)
        else:
            self._steps.append(step_config)
        log.debug(f"Added pipeline step: {step_config}")

    def clear(self):
        """Clear all steps."""
        self._steps.clear()

    def get_steps(self) -> List[Dict[str, Any]]:
        """Return a copy of the current steps."""
        return [s.copy() for s in self._steps]

    def __len__(self) -> int:
        return len(self._steps)

    def process(self, data: np.ndarray, fs: float) -> np.ndarray:  # noqa: C901
        """
        Apply all steps in order to the data (filters act on the last axis).

        Raises:
            ProcessingError: for unknown steps, invalid parameters, or steps
                that produce NaN/Inf values.
        """
        if data is None or np.size(data) == 0:
            return data

        result = np.array(data, dtype=float)

        for step in self._steps:
            op_type = step.get("type")
            method = step.get("method")
            try:
                if op_type == "filter":
                    order = int(step.get("order", 5))
                    if method == "lowpass":
                        result = signal_processor.lowpass_filter(result, float(step["cutoff"]), fs, order=order)
                    elif method == "highpass":
                        result = signal_processor.highpass_filter(result, float(step["cutoff"]), fs, order=order)
                    elif method == "bandpass":
                        result = signal_processor.bandpass_filter(
                            result, float(step["low_cut"]), float(step["high_cut"]), fs, order=order
                        )
                    elif method == "notch":
                        result = signal_processor.notch_filter(
                            result, float(step["freq"]), float(step.get("q_factor", 30.0)), fs
                        )
                    else:
                        raise ProcessingError(f"Unknown filter method '{method}'.")
                elif op_type == "detrend":
                    result = signal_processor.detrend(result, kind=method or "linear")
                else:
                    raise ProcessingError(f"Unknown processing step type '{op_type}'.")
            except KeyError as e:
                raise ProcessingError(f"Step {step} is missing parameter {e}.") from e

            if not np.all(np.isfinite(result)):
                raise ProcessingError(f"Step {op_type}/{method} produced invalid data (NaN/Inf).")
            log.debug(f"Applied step {op_type}/{method}")

        return result

    def apply_to_recording(self, recording: Recording, skip_channels: Sequence[str] = ()) -> Recording:
        """
        Returns a new Recording with every channel processed, except those in
        ``skip_channels`` (trigger channels must never be filtered).
        """
        if not self._steps:
            return recording
        fs = recording.sampling_rate
        processed = Recording(source_file=recording.source_file)
        n_processed = 0
        for ch_id, ch in recording.channels.items():
            if ch.name in skip_channels:
                data = ch.data
            else:
                data = self.process(ch.data, fs)
                n_processed += 1
            new_ch = Channel(id=ch.id, name=ch.name, units=ch.units, sampling_rate=ch.sampling_rate, data=data)
            new_ch.t_start = ch.t_start
            processed.channels[ch_id] = new_ch
        processed.sampling_rate = recording.sampling_rate
        processed.duration = recording.duration
        processed.t_start = recording.t_start
        processed.session_start_time_dt = recording.session_start_time_dt
        processed.annotations = list(recording.annotations)
        processed.metadata = dict(recording.metadata)
        processed.metadata['processing_steps'] = self.get_steps()
        log.info(f"Applied {len(self)} processing step(s) to {n_processed} channel(s).")
        return processed
