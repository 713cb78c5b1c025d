# src/Epochipy/infrastructure/file_readers/neo_adapter.py
# -*- coding: utf-8 -*-
"""
Adapter for reading continuous neurophysiological recordings using the neo
library and translating them into the application's core domain model.
IO class selection uses a predefined dictionary mapping extensions to IO names.

read_recording reads the first segment of the file:
1. Every AnalogSignal is split into one Channel per column, named from the
   signal's array annotations, the file header, or its position.
2. Signals sampled at a different rate from the first one are skipped, so the
   Recording has a single sampling rate.
3. neo Events in the segment become (onset, label) annotations so that
   marker-based formats (e.g. BrainVision) can be epoched without a stim channel.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Type

import neo
import neo.io as nIO
import numpy as np
import quantities as pq
from neo.io.proxyobjects import AnalogSignalProxy

from Epochipy.core.data_model import Recording, Channel
from Epochipy.shared.error_handling import FileReadError, UnsupportedFormatError, RecordingNotFoundError

log = logging.getLogger('Epochipy.infrastructure.file_readers.neo_adapter')

# --- Dictionary mapping IO Class Names to extensions (Source of truth) ---
IODict = {
    'BCI2000IO': ['dat'],
    'BiocamIO': ['brw'],
    'BlackrockIO': ['ns1', 'ns2', 'ns3', 'ns4', 'ns5', 'ns6'],
    'BrainVisionIO': ['vhdr'],
    'EDFIO': ['edf', 'bdf'],
    'ElanIO': ['eeg'],
    'IntanIO': ['rhd', 'rhs'],
    'MicromedIO': ['trc'],
    'NWBIO': ['nwb'],
    'NeoMatlabIO': ['mat'],
    'NeuralynxIO': ['ncs'],
    'NixIO': ['nix', 'h5'],
    'OpenEphysBinaryIO': ['oebin'],
    'OpenEphysIO': ['continuous', 'openephys'],
    'PickleIO': ['pkl', 'pickle'],
    'Plexon2IO': ['pl2'],
    'PlexonIO': ['plx'],
    'RawBinarySignalIO': ['raw', 'bin'],
    'Spike2IO': ['smr', 'smrx'],
    'SpikeGLXIO': ['meta'],
    'TdtIO': ['tbk', 'tdx', 'tev', 'tsq', 'sev'],
}


class NeoAdapter:
    """
    Reads continuous recordings using neo, translating data to the Core Domain Model.
    """

    def _get_neo_io_class(self, filepath: Path) -> Type:
        """Determines appropriate neo IO class using the predefined IODict."""
        if not filepath.is_file():
            raise RecordingNotFoundError(f"File not found: {filepath}")

        extension = filepath.suffix.lower().lstrip('.')
        log.debug(f"Attempting to find IO for extension: '{extension}'")

        available_io_names = [io_name for io_name, exts in IODict.items() if extension in exts]

        if not available_io_names:
            raise UnsupportedFormatError(f"Unsupported file extension '.{extension}'. No suitable IO found in IODict.")

        selected_io_name = available_io_names[0]
        if len(available_io_names) > 1:
            log.warning(f"Multiple neo IOs support '.{extension}': {available_io_names}. Using first match: '{selected_io_name}'.")
        else:
            log.info(f"Selected neo IO: '{selected_io_name}' for file extension '.{extension}'.")

        io_class = getattr(nIO, selected_io_name, None)
        if io_class is None:
            raise UnsupportedFormatError(
                f"IO class '{selected_io_name}' is not available in the installed neo version."
            )
        return io_class

    def get_supported_extensions(self) -> List[str]:
        """Returns a sorted list of all supported file extensions (e.g. ['bdf', 'edf', ...])."""
        return sorted({ext.lower() for exts in IODict.values() for ext in exts})

    @staticmethod
    def _signal_channel_names(anasig, n_columns: int, header_names: List[str], offset: int) -> List[str]:
        names: Optional[List[str]] = None
        array_ann = getattr(anasig, 'array_annotations', None) or {}
        if 'channel_names' in array_ann and len(array_ann['channel_names']) == n_columns:
            names = [str(n).strip() for n in array_ann['channel_names']]
        elif n_columns == 1 and anasig.name:
            names = [str(anasig.name).strip()]
        elif len(header_names) >= offset + n_columns:
            names = header_names[offset:offset + n_columns]
        if not names or any(not n for n in names):
            names = [f"Channel {offset + i}" for i in range(n_columns)]
        return names

    @staticmethod
    def _header_channel_names(reader) -> List[str]:
        header = getattr(reader, 'header', None)
        if not header or 'signal_channels' not in header:
            return []
        names = []
        for ch_info in header['signal_channels']:
            raw_name = ch_info['name']
            names.append(raw_name.decode().strip() if isinstance(raw_name, bytes) else str(raw_name).strip())
        return names

    def read_recording(self, filepath: Path) -> Recording:  # noqa: C901
        """
        Reads a continuous recording into a Recording.

        Raises:
            RecordingNotFoundError: the file does not exist.
            UnsupportedFormatError: no neo IO handles the extension.
            FileReadError: neo failed to parse the file or it holds no signals.
        """
        filepath = Path(filepath)
        log.info(f"Attempting to read file: {filepath}")
        io_class = self._get_neo_io_class(filepath)
        try:
            reader = io_class(filename=str(filepath))
            block = reader.read_block(lazy=False)
        except Exception as e:
            log.error(f"neo {io_class.__name__} failed on {filepath}: {e}")
            raise FileReadError(f"Error reading '{filepath.name}' with {io_class.__name__}: {e}") from e
        log.info(f"Successfully read neo Block using {io_class.__name__}.")

        if not block.segments:
            raise FileReadError(f"'{filepath.name}' contains no segments.")
        if len(block.segments) > 1:
            log.warning(f"'{filepath.name}' has {len(block.segments)} segments; only the first is treated as "
                        f"the continuous recording.")
        segment = block.segments[0]

        header_names = self._header_channel_names(reader)
        recording = Recording(source_file=filepath)
        if getattr(block, 'rec_datetime', None):
            recording.session_start_time_dt = block.rec_datetime

        channels: Dict[str, Channel] = {}
        used_names: Dict[str, int] = {}
        column_offset = 0
        for anasig_idx, anasig in enumerate(segment.analogsignals):
            if isinstance(anasig, AnalogSignalProxy):
                anasig = anasig.load()
            if not isinstance(anasig, neo.AnalogSignal):
                log.debug(f"Skipping non-AnalogSignal object at index {anasig_idx}")
                continue

            sampling_rate = float(anasig.sampling_rate.rescale(pq.Hz).magnitude)
            t_start = float(anasig.t_start.rescale(pq.s).magnitude)
            magnitude = np.asarray(anasig.magnitude, dtype=float)
            if magnitude.ndim == 1:
                magnitude = magnitude[:, np.newaxis]
            n_columns = magnitude.shape[1]

            if recording.sampling_rate is None:
                recording.sampling_rate = sampling_rate
                recording.t_start = t_start
            elif not np.isclose(sampling_rate, recording.sampling_rate):
                log.warning(f"Skipping signal {anasig_idx} sampled at {sampling_rate} Hz "
                            f"(recording rate is {recording.sampling_rate} Hz).")
                column_offset += n_columns
                continue

            names = self._signal_channel_names(anasig, n_columns, header_names, column_offset)
            units = str(anasig.units.dimensionality)
            for col, name in enumerate(names):
                if name in used_names:
                    used_names[name] += 1
                    name = f"{name}-{used_names[name]}"
                else:
                    used_names[name] = 0
                ch_id = str(column_offset + col)
                channel = Channel(id=ch_id, name=name, units=units,
                                  sampling_rate=sampling_rate, data=magnitude[:, col])
                channel.t_start = t_start
                channels[ch_id] = channel
            log.debug(f"Signal {anasig_idx}: {n_columns} channel(s) at {sampling_rate} Hz, units {units}")
            column_offset += n_columns

        if not channels:
            raise FileReadError(f"'{filepath.name}' contains no analog signals.")

        recording.channels = channels
        recording.duration = recording.n_samples / recording.sampling_rate

        for event in segment.events:
            onsets = np.asarray(event.times.rescale(pq.s).magnitude, dtype=float) - recording.t_start
            labels = event.labels if len(event.labels) == len(onsets) else [event.name or "event"] * len(onsets)
            for onset, label in zip(onsets, labels):
                label = label.decode() if isinstance(label, bytes) else str(label)
                recording.annotations.append((float(onset), label))
        recording.annotations.sort(key=lambda item: item[0])
        recording.metadata['neo_reader_class'] = io_class.__name__

        log.info(f"Translation complete. Loaded {recording.num_channels} channel(s), "
                 f"{recording.duration:.3f} s at {recording.sampling_rate} Hz, "
                 f"{len(recording.annotations)} annotation(s).")
        return recording
