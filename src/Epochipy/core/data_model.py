# src/Epochipy/core/data_model.py
# -*- coding: utf-8 -*-
"""
Core Domain Data Models for Epochipy.

Defines the central classes representing a continuous Recording with its
Channels, the discrete trigger Events found in it, and the event-locked
Epochs cut from it.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from Epochipy.shared.error_handling import ConfigurationError, EpochDrop, EpochOutOfBoundsDrop, EpochRejectedDrop

log = logging.getLogger('Epochipy.core.data_model')


def _read_only(values: Any) -> np.ndarray:
    arr = np.array(values, dtype=float)
    arr.setflags(write=False)
    return arr


class Channel:
    """
    Represents a single channel of continuously recorded data.
    """
    def __init__(self, id: str, name: str, units: str, sampling_rate: float, data: np.ndarray):
        """
        Initializes a Channel object.

        Args:
            id: A unique identifier for the channel (e.g., '0', '1').
            name: A descriptive name for the channel (e.g., 'Cz', 'STI 014').
            units: The physical units of the data (e.g., 'uV', 'V').
            sampling_rate: The sampling frequency in Hz.
            data: 1D array with one value per sample. Stored as a read-only copy.
        """
        self.id: str = str(id)
        self.name: str = str(name)
        self.units: str = units if units else "unknown"
        self.sampling_rate: float = float(sampling_rate)
        self.t_start: float = 0.0

        data = np.asarray(data)
        if data.ndim != 1:
            log.warning(f"Channel '{name}' received {data.ndim}D data; flattening.")
            data = data.ravel()
        self.data: np.ndarray = _read_only(data)

    @property
    def num_samples(self) -> int:
        return int(self.data.shape[0])

    def get_time_vector(self) -> np.ndarray:
        """Returns the absolute time vector (seconds) for this channel."""
        return self.t_start + np.arange(self.num_samples) / self.sampling_rate

    def get_data_bounds(self) -> Optional[Tuple[float, float]]:
        """Returns the finite min and max values, or None for an empty/non-finite channel."""
        finite = self.data[np.isfinite(self.data)]
        if finite.size == 0:
            return None
        return float(finite.min()), float(finite.max())

    def __repr__(self):
        return f"Channel(id='{self.id}', name='{self.name}', units='{self.units}', samples={self.num_samples})"


class Recording:
    """
    Represents continuous data and metadata loaded from a single recording file.
    Contains multiple Channel objects sharing one sampling rate.
    """
    def __init__(self, source_file: Path):
        """
        Initializes a Recording object.

        Args:
            source_file: The Path object pointing to the original data file.
        """
        self.source_file: Path = Path(source_file)
        self.channels: Dict[str, Channel] = {}
        self.sampling_rate: Optional[float] = None
        self.duration: Optional[float] = None
        self.t_start: float = 0.0
        self.session_start_time_dt: Optional[datetime] = None
        # (onset in seconds relative to t_start, label) pairs from file markers
        self.annotations: List[Tuple[float, str]] = []
        self.metadata: Dict[str, Any] = {}

    @classmethod
    def from_arrays(
        cls,
        data: np.ndarray,
        channel_names: Sequence[str],
        sampling_rate: float,
        units: str = "uV",
        source_file: Path = Path("in_memory"),
        annotations: Optional[List[Tuple[float, str]]] = None,
    ) -> "Recording":
        """
        Builds a Recording from a (n_channels, n_samples) array.
        """
        data = np.atleast_2d(np.asarray(data, dtype=float))
        if data.shape[0] != len(channel_names):
            raise ConfigurationError(
                f"Got {data.shape[0]} data rows for {len(channel_names)} channel names."
            )
        if sampling_rate <= 0:
            raise ConfigurationError(f"Sampling rate must be positive, got {sampling_rate}.")
        rec = cls(source_file=source_file)
        for idx, (name, row) in enumerate(zip(channel_names, data)):
            ch = Channel(id=str(idx), name=name, units=units, sampling_rate=sampling_rate, data=row)
            rec.channels[ch.id] = ch
        rec.sampling_rate = float(sampling_rate)
        rec.duration = data.shape[1] / float(sampling_rate)
        rec.annotations = list(annotations or [])
        return rec

    @property
    def num_channels(self) -> int:
        """Returns the number of channels in this recording."""
        return len(self.channels)

    @property
    def channel_names(self) -> List[str]:
        """Returns a list of the names of all channels."""
        return [ch.name for ch in self.channels.values()]

    @property
    def n_samples(self) -> int:
        """Number of samples in the shortest channel."""
        if not self.channels:
            return 0
        return min(ch.num_samples for ch in self.channels.values())

    def get_channel(self, name: str) -> Channel:
        """Looks up a channel by name (falling back to id)."""
        for ch in self.channels.values():
            if ch.name == name:
                return ch
        if name in self.channels:
            return self.channels[name]
        raise ConfigurationError(f"Channel '{name}' not found. Available: {self.channel_names}")

    def get_data(self, names: Optional[Sequence[str]] = None) -> np.ndarray:
        """Returns a (n_channels, n_samples) array for the named channels (all if None)."""
        names = list(names) if names is not None else self.channel_names
        n = self.n_samples
        return np.vstack([self.get_channel(name).data[:n] for name in names])

    def __repr__(self):
        return (f"Recording(source='{self.source_file.name}', channels={self.num_channels}, "
                f"sfreq={self.sampling_rate}, duration={self.duration})")


class Event(NamedTuple):
    """A discrete trigger: the sample at which it occurred and its integer code."""

    sample: int
    code: int


@dataclass(frozen=True)
class Epoch:
    """
    One channel's signal window anchored at an event.
    """

    epoch_index: int
    condition: str
    channel: str
    event_sample: int
    times: np.ndarray
    data: np.ndarray


class EpochSet:
    """
    Ordered collection of baseline-corrected epochs sharing one time grid.

    ``data`` has shape (n_epochs, n_channels, n_times). ``drops`` lists the
    matched events that did not produce an epoch.
    """
    def __init__(
        self,
        data: np.ndarray,
        times: np.ndarray,
        channel_names: Sequence[str],
        conditions: Sequence[str],
        event_samples: Sequence[int],
        event_codes: Sequence[int],
        event_id: Dict[str, int],
        sampling_rate: float,
        baseline: Optional[Tuple[float, float]] = None,
        drops: Optional[List[EpochDrop]] = None,
    ):
        data = np.array(data, dtype=float)
        if data.ndim != 3:
            raise ValueError(f"Epoch data must be 3D (epochs, channels, times), got shape {data.shape}")
        if data.shape[0] != len(conditions) or data.shape[0] != len(event_samples):
            raise ValueError("Epoch data, conditions and event samples disagree in length.")
        if data.shape[1] != len(channel_names) or data.shape[2] != len(times):
            raise ValueError("Epoch data shape does not match channel names and time grid.")
        self.data: np.ndarray = data
        self.data.setflags(write=False)
        self.times: np.ndarray = _read_only(times)
        self.channel_names: List[str] = list(channel_names)
        self.conditions: List[str] = list(conditions)
        self.event_samples: np.ndarray = np.asarray(event_samples, dtype=int)
        self.event_codes: np.ndarray = np.asarray(event_codes, dtype=int)
        self.event_id: Dict[str, int] = dict(event_id)
        self.sampling_rate: float = float(sampling_rate)
        self.baseline = baseline
        self.drops: List[EpochDrop] = list(drops or [])

    def __len__(self) -> int:
        return self.data.shape[0]

    @property
    def n_times(self) -> int:
        return self.data.shape[2]

    @property
    def condition_levels(self) -> List[str]:
        """Condition labels in event_id order."""
        return list(self.event_id.keys())

    @property
    def n_matched(self) -> int:
        """Number of events that matched event_id (kept or dropped)."""
        return len(self) + len(self.drops)

    @property
    def out_of_bounds_drops(self) -> List[EpochOutOfBoundsDrop]:
        return [d for d in self.drops if isinstance(d, EpochOutOfBoundsDrop)]

    @property
    def rejected_drops(self) -> List[EpochRejectedDrop]:
        return [d for d in self.drops if isinstance(d, EpochRejectedDrop)]

    def iter_epochs(self) -> Iterator[Epoch]:
        """Yields one Epoch per (epoch, channel) pair, epoch-major."""
        for ep_idx in range(len(self)):
            for ch_idx, ch_name in enumerate(self.channel_names):
                yield Epoch(
                    epoch_index=ep_idx,
                    condition=self.conditions[ep_idx],
                    channel=ch_name,
                    event_sample=int(self.event_samples[ep_idx]),
                    times=self.times,
                    data=self.data[ep_idx, ch_idx],
                )

    def get_condition(self, label: str) -> "EpochSet":
        """Returns a new EpochSet restricted to one condition."""
        if label not in self.event_id:
            raise ConfigurationError(f"Unknown condition '{label}'. Available: {self.condition_levels}")
        mask = np.array([c == label for c in self.conditions], dtype=bool)
        return EpochSet(
            data=self.data[mask],
            times=self.times,
            channel_names=self.channel_names,
            conditions=[c for c in self.conditions if c == label],
            event_samples=self.event_samples[mask],
            event_codes=self.event_codes[mask],
            event_id=self.event_id,
            sampling_rate=self.sampling_rate,
            baseline=self.baseline,
        )

    def average(self, condition: Optional[str] = None) -> Optional[np.ndarray]:
        """Evoked response (n_channels, n_times); None when no epochs are present."""
        subset = self.get_condition(condition) if condition is not None else self
        if len(subset) == 0:
            log.warning(f"No epochs to average for condition '{condition}'.")
            return None
        return subset.data.mean(axis=0)

    def __repr__(self):
        counts = {c: self.conditions.count(c) for c in self.condition_levels}
        return (f"EpochSet(n_epochs={len(self)}, channels={len(self.channel_names)}, "
                f"times={self.n_times}, counts={counts}, dropped={len(self.drops)})")
