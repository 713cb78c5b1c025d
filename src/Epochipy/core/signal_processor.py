# src/Epochipy/core/signal_processor.py
# -*- coding: utf-8 -*-
"""
Signal processing primitives: zero-phase filters, baseline correction and
amplitude-based epoch rejection checks.
"""
import logging
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import signal

from Epochipy.shared.error_handling import ProcessingError

log = logging.getLogger('Epochipy.core.signal_processor')


def _validate_cutoff(cutoff: float, fs: float) -> float:
    nyq = 0.5 * fs
    if not 0 < cutoff < nyq:
        raise ProcessingError(f"Cutoff {cutoff} Hz must be between 0 and Nyquist ({nyq} Hz).")
    return cutoff / nyq


def lowpass_filter(data: np.ndarray, cutoff: float, fs: float, order: int = 5) -> np.ndarray:
    """Zero-phase Butterworth low-pass filter along the last axis."""
    sos = signal.butter(order, _validate_cutoff(cutoff, fs), btype='low', output='sos')
    return signal.sosfiltfilt(sos, data, axis=-1)


def highpass_filter(data: np.ndarray, cutoff: float, fs: float, order: int = 5) -> np.ndarray:
    """Zero-phase Butterworth high-pass filter along the last axis."""
    sos = signal.butter(order, _validate_cutoff(cutoff, fs), btype='high', output='sos')
    return signal.sosfiltfilt(sos, data, axis=-1)


def bandpass_filter(data: np.ndarray, lowcut: float, highcut: float, fs: float, order: int = 5) -> np.ndarray:
    """Zero-phase Butterworth band-pass filter along the last axis."""
    if lowcut >= highcut:
        raise ProcessingError(f"Band-pass low cut ({lowcut}) must be below high cut ({highcut}).")
    band = [_validate_cutoff(lowcut, fs), _validate_cutoff(highcut, fs)]
    sos = signal.butter(order, band, btype='band', output='sos')
    return signal.sosfiltfilt(sos, data, axis=-1)


def notch_filter(data: np.ndarray, freq: float, Q: float, fs: float) -> np.ndarray:
    """Zero-phase IIR notch (e.g. line noise) along the last axis."""
    w0 = _validate_cutoff(freq, fs)
    b, a = signal.iirnotch(w0, Q)
    return signal.filtfilt(b, a, data, axis=-1)


def baseline_window_mask(
    times: np.ndarray, baseline: Tuple[Optional[float], Optional[float]]
) -> np.ndarray:
    """
    Boolean mask of samples inside the baseline window. ``None`` on either
    side means the first or last time point.
    """
    bmin = times[0] if baseline[0] is None else baseline[0]
    bmax = times[-1] if baseline[1] is None else baseline[1]
    # half-sample tolerance so window edges that fall on a sample are included
    tol = 0.5 * (times[1] - times[0]) if times.size > 1 else 0.0
    mask = (times >= bmin - tol) & (times <= bmax + tol)
    if not mask.any():
        raise ProcessingError(f"Baseline window {baseline} contains no samples.")
    return mask


def subtract_baseline_region(
    data: np.ndarray, times: np.ndarray, baseline: Tuple[Optional[float], Optional[float]]
) -> np.ndarray:
    """
    Subtracts the mean over the baseline window from every trace.

    ``data`` may be 1D (times,), 2D (channels, times) or 3D
    (epochs, channels, times); the mean is taken per trace along the last axis.
    """
    data = np.asarray(data, dtype=float)
    if data.shape[-1] != times.shape[0]:
        raise ProcessingError(f"Data ({data.shape[-1]} samples) and time vector ({times.shape[0]}) mismatch.")
    mask = baseline_window_mask(times, baseline)
    offset = data[..., mask].mean(axis=-1, keepdims=True)
    return data - offset


def subtract_baseline_mean(data: np.ndarray) -> np.ndarray:
    """Subtracts the mean of the whole trace."""
    data = np.asarray(data, dtype=float)
    return data - data.mean(axis=-1, keepdims=True)


def detrend(data: np.ndarray, kind: str = "linear") -> np.ndarray:
    """Removes a linear trend (or the mean, for kind='constant') along the last axis."""
    if kind not in ("linear", "constant"):
        raise ProcessingError(f"Unknown detrend kind '{kind}'.")
    return signal.detrend(np.asarray(data, dtype=float), axis=-1, type=kind)


def peak_to_peak(data: np.ndarray) -> np.ndarray:
    """Peak-to-peak amplitude along the last axis."""
    return np.ptp(data, axis=-1)


def _threshold_for(threshold: Union[None, float, Dict[str, float]], channel: str) -> Optional[float]:
    if threshold is None:
        return None
    if isinstance(threshold, dict):
        return threshold.get(channel)
    return float(threshold)


def check_epoch_amplitude(
    epoch: np.ndarray,
    channel_names: Sequence[str],
    reject: Union[None, float, Dict[str, float]] = None,
    flat: Union[None, float, Dict[str, float]] = None,
) -> Optional[str]:
    """
    Checks one epoch (channels, times) against peak-to-peak limits.

    Returns a description of the first violated threshold, or None when the
    epoch is acceptable.
    """
    ptp = peak_to_peak(epoch)
    for ch_name, value in zip(channel_names, ptp):
        upper = _threshold_for(reject, ch_name)
        if upper is not None and value > upper:
            return f"{ch_name} peak-to-peak {value:.4g} > reject {upper:.4g}"
        lower = _threshold_for(flat, ch_name)
        if lower is not None and value < lower:
            return f"{ch_name} peak-to-peak {value:.4g} < flat {lower:.4g}"
    return None
