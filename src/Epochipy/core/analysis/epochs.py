# src/Epochipy/core/analysis/epochs.py
# -*- coding: utf-8 -*-
"""
Epoch segmentation: cuts fixed-length, baseline-corrected windows around
events from a continuous Recording.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from Epochipy.core import signal_processor
from Epochipy.core.data_model import Event, EpochSet, Recording
from Epochipy.shared.error_handling import (
    ConfigurationError, EpochDrop, EpochOutOfBoundsDrop, EpochRejectedDrop
)

log = logging.getLogger('Epochipy.core.analysis.epochs')

Threshold = Union[None, float, Dict[str, float]]


def epoch_sample_window(tmin: float, tmax: float, sampling_rate: float) -> Tuple[int, int]:
    """First and last sample offsets (inclusive) of the epoch window relative to the event."""
    start = int(round(tmin * sampling_rate))
    stop = int(round(tmax * sampling_rate))
    if stop <= start:
        raise ConfigurationError(
            f"Epoch window ({tmin}, {tmax}) s spans fewer than two samples at {sampling_rate} Hz."
        )
    return start, stop


def epoch_times(tmin: float, tmax: float, sampling_rate: float) -> np.ndarray:
    """The time-offset grid (seconds) shared by every epoch."""
    start, stop = epoch_sample_window(tmin, tmax, sampling_rate)
    return np.arange(start, stop + 1) / sampling_rate


def _resolve_picks(recording: Recording, picks: Optional[Sequence[str]],
                   exclude: Sequence[str]) -> List[str]:
    if picks is None:
        selected = [name for name in recording.channel_names if name not in exclude]
    else:
        selected = list(picks)
        missing = [name for name in selected if name not in recording.channel_names]
        if missing:
            raise ConfigurationError(f"Picked channel(s) {missing} not in recording: {recording.channel_names}")
    if not selected:
        raise ConfigurationError("No data channels selected for epoching.")
    return selected


def segment_epochs(  # noqa: C901
    recording: Recording,
    events: Sequence[Event],
    event_id: Dict[str, int],
    tmin: float,
    tmax: float,
    baseline: Optional[Tuple[Optional[float], Optional[float]]] = (None, 0.0),
    picks: Optional[Sequence[str]] = None,
    reject: Threshold = None,
    flat: Threshold = None,
    exclude: Sequence[str] = (),
) -> EpochSet:
    """
    Slices the continuous recording into windows around each matched event.

    Args:
        recording: Continuous Recording.
        events: Events sorted by sample.
        event_id: Condition label -> event code. Events with other codes are ignored.
        tmin, tmax: Window start and end relative to the event (seconds, inclusive).
        baseline: (start, end) of the baseline sub-window; None on a side means
            the epoch edge. None disables baseline correction.
        picks: Channel names to keep. None keeps all except ``exclude``.
        reject: Maximum peak-to-peak amplitude (float or per-channel dict).
        flat: Minimum peak-to-peak amplitude (float or per-channel dict).
        exclude: Channels dropped when ``picks`` is None (e.g. the stim channel).

    Returns:
        EpochSet. Windows that fall outside the recording are dropped
        silently and recorded as EpochOutOfBoundsDrop; rejected windows are
        recorded as EpochRejectedDrop.
    """
    if not event_id:
        raise ConfigurationError("event_id is empty; nothing to epoch.")
    sfreq = recording.sampling_rate
    if not sfreq:
        raise ConfigurationError("Recording has no sampling rate.")

    channel_names = _resolve_picks(recording, picks, exclude)
    start, stop = epoch_sample_window(tmin, tmax, sfreq)
    times = np.arange(start, stop + 1) / sfreq
    if baseline is not None:
        # fail before slicing if the baseline window is empty
        signal_processor.baseline_window_mask(times, baseline)

    continuous = recording.get_data(channel_names)
    n_samples = continuous.shape[1]
    code_to_label = {code: label for label, code in event_id.items()}

    kept_data: List[np.ndarray] = []
    conditions: List[str] = []
    samples: List[int] = []
    codes: List[int] = []
    drops: List[EpochDrop] = []
    n_matched = 0

    for ev_idx, ev in enumerate(events):
        label = code_to_label.get(ev.code)
        if label is None:
            continue
        n_matched += 1
        first, last = ev.sample + start, ev.sample + stop
        if first < 0 or last >= n_samples:
            drops.append(EpochOutOfBoundsDrop(ev_idx, ev.sample, ev.code))
            continue
        window = continuous[:, first:last + 1]
        if baseline is not None:
            window = signal_processor.subtract_baseline_region(window, times, baseline)
        reason = signal_processor.check_epoch_amplitude(window, channel_names, reject=reject, flat=flat)
        if reason is not None:
            drops.append(EpochRejectedDrop(ev_idx, ev.sample, ev.code, reason))
            continue
        kept_data.append(window)
        conditions.append(label)
        samples.append(ev.sample)
        codes.append(ev.code)

    data = np.stack(kept_data) if kept_data else np.empty((0, len(channel_names), times.size))
    epochs = EpochSet(
        data=data,
        times=times,
        channel_names=channel_names,
        conditions=conditions,
        event_samples=samples,
        event_codes=codes,
        event_id=event_id,
        sampling_rate=sfreq,
        baseline=baseline,
        drops=drops,
    )

    n_oob = len(epochs.out_of_bounds_drops)
    n_rej = len(epochs.rejected_drops)
    log.info(f"Segmented {len(epochs)} of {n_matched} matched event(s) "
             f"({n_oob} out of bounds, {n_rej} rejected) on {len(channel_names)} channel(s).")
    if n_rej:
        for drop in epochs.rejected_drops:
            log.debug(str(drop))
    if len(epochs) == 0:
        log.warning("No epochs survived segmentation.")
    return epochs
