"""Filtering helpers."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike
from scipy import signal


def butter_bandpass(
    data: ArrayLike,
    low_hz: float,
    high_hz: float,
    sample_rate_hz: float,
    order: int = 2,
    *,
    axis: int = -1,
) -> np.ndarray:
    """
    Apply a zero-phase Butterworth band-pass filter using filtfilt.

    Parameters
    ----------
    data:
        Input data (array-like). Filtering is applied along `axis`.
    low_hz, high_hz:
        Pass band edges in Hz (0 < low_hz < high_hz < sample_rate_hz / 2).
    sample_rate_hz:
        Sampling rate in Hz. Must be > 0.
    order:
        Filter order per edge (default: 2).
    axis:
        Axis along which to filter (default: last axis).

    Returns
    -------
    np.ndarray
        Filtered data with the same shape as the input.
    """
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be > 0, got {sample_rate_hz}")
    if not 0 < low_hz < high_hz:
        raise ValueError(f"need 0 < low_hz < high_hz, got {low_hz}, {high_hz}")

    nyquist = 0.5 * float(sample_rate_hz)
    if high_hz >= nyquist:
        raise ValueError(
            f"high_hz must be < Nyquist ({nyquist:.3f} Hz), got {high_hz}"
        )

    data_arr = np.asarray(data, dtype=float)
    b, a = signal.butter(order, [low_hz / nyquist, high_hz / nyquist], btype="band")
    return signal.filtfilt(b, a, data_arr, axis=axis)


def monitor_filter(
    values: np.ndarray,
    sample_rate_hz: float,
    low_hz: float = 0.5,
    high_hz: float = 40.0,
) -> np.ndarray:
    """
    Monitor-mode display filter for one ECG window.

    Removes baseline wander and high-frequency noise. Windows that are too
    short for filtfilt's edge padding, that contain NaN padding, or whose
    sample rate cannot hold the pass band are returned unchanged.
    """
    arr = np.asarray(values, dtype=float)
    high = min(high_hz, 0.45 * float(sample_rate_hz))
    if high <= low_hz or arr.size <= 30 or not np.all(np.isfinite(arr)):
        return arr.copy()
    return butter_bandpass(arr, low_hz, high, sample_rate_hz)
