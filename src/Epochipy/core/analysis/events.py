# src/Epochipy/core/analysis/events.py
# -*- coding: utf-8 -*-
"""
Event extraction: decodes trigger channels and file annotations into
(sample, code) Events.
"""
import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Union

import numpy as np

from Epochipy.core.data_model import Event, Recording
from Epochipy.shared.error_handling import ConfigurationError, NoEventsFoundError

log = logging.getLogger('Epochipy.core.analysis.events')

Consecutive = Union[bool, str]


def find_events(
    recording: Recording,
    stim_channel: str,
    *,
    min_duration: float = 0.0,
    consecutive: Consecutive = 'increasing',
    mask: Optional[int] = None,
) -> List[Event]:
    """
    Finds trigger onsets in a stimulus channel.

    An event fires at each sample where the integer trigger value steps to a
    new non-zero value. ``consecutive``, ``min_duration`` and ``mask`` follow
    the semantics of MNE's ``find_events``.

    Args:
        recording: The loaded Recording.
        stim_channel: Name of the trigger channel.
        min_duration: Pulses shorter than this (seconds) are ignored.
        consecutive: Controls steps between two non-zero values. True reports
            every change, 'increasing' only increases, False only steps up
            from zero.
        mask: Optional bit mask; only these trigger bits are considered.

    Returns:
        Events sorted by sample index. Duplicates are kept.

    Raises:
        ConfigurationError: if the stim channel does not exist or parameters are invalid.
        NoEventsFoundError: if the channel contains no trigger onsets.
    """
    if consecutive not in (True, False, 'increasing'):
        raise ConfigurationError(f"consecutive must be True, False or 'increasing', got {consecutive!r}")
    if min_duration < 0:
        raise ConfigurationError(f"min_duration must be non-negative, got {min_duration}")

    channel = recording.get_channel(stim_channel)
    raw = channel.data
    if not np.all(np.isfinite(raw)):
        log.warning(f"Stim channel '{stim_channel}' contains non-finite values; treating them as 0.")
        raw = np.where(np.isfinite(raw), raw, 0.0)
    trig = np.rint(raw).astype(np.int64)
    if mask is not None:
        trig = trig & int(mask)

    prev = np.concatenate(([0], trig[:-1]))
    changed = (trig != prev) & (trig != 0)
    if consecutive is False:
        onset_mask = changed & (prev == 0)
    elif consecutive == 'increasing':
        onset_mask = changed & (trig > prev)
    else:
        onset_mask = changed
    onsets = np.flatnonzero(onset_mask)

    if min_duration > 0 and onsets.size:
        min_samples = min_duration * channel.sampling_rate
        change_points = np.flatnonzero(np.diff(trig)) + 1
        # pulse end = first change point after the onset, or the end of the recording
        change_points = np.append(change_points, trig.size)
        ends = change_points[np.searchsorted(change_points, onsets, side='right')]
        keep = (ends - onsets) >= min_samples
        n_short = int(np.count_nonzero(~keep))
        if n_short:
            log.info(f"Ignored {n_short} trigger pulse(s) shorter than {min_duration}s.")
        onsets = onsets[keep]

    if onsets.size == 0:
        raise NoEventsFoundError(f"No events found on stim channel '{stim_channel}'.")

    events = [Event(int(s), int(trig[s])) for s in onsets]
    log.info(f"Found {len(events)} event(s) on '{stim_channel}': {count_events(events)}")
    return events


def events_from_annotations(recording: Recording, label_to_code: Dict[str, int]) -> List[Event]:
    """
    Converts the recording's (onset, label) annotations into Events.

    Labels missing from ``label_to_code`` are skipped. Onsets are rounded to
    the nearest sample.

    Raises:
        NoEventsFoundError: if no annotation matches the mapping.
    """
    if not recording.sampling_rate:
        raise ConfigurationError("Recording has no sampling rate; cannot convert annotation onsets.")
    n_samples = recording.n_samples
    events = []
    skipped_labels = set()
    for onset, label in recording.annotations:
        if label not in label_to_code:
            skipped_labels.add(label)
            continue
        sample = int(round(onset * recording.sampling_rate))
        if not 0 <= sample < n_samples:
            log.debug(f"Annotation '{label}' at {onset}s lies outside the recording; skipped.")
            continue
        events.append(Event(sample, int(label_to_code[label])))
    if skipped_labels:
        log.debug(f"Annotation labels without a code: {sorted(skipped_labels)}")
    if not events:
        raise NoEventsFoundError(
            f"No annotations matched {sorted(label_to_code)} in {recording.source_file.name}."
        )
    events.sort(key=lambda ev: ev.sample)
    log.info(f"Converted {len(events)} annotation(s) to events: {count_events(events)}")
    return events


def pick_events(events: Iterable[Event], include: Iterable[int]) -> List[Event]:
    """Keeps events whose code is in ``include``. Order and duplicates are preserved."""
    include = set(int(c) for c in include)
    return [ev for ev in events if ev.code in include]


def count_events(events: Iterable[Event]) -> Dict[int, int]:
    """Number of events per code."""
    return dict(sorted(Counter(ev.code for ev in events).items()))
