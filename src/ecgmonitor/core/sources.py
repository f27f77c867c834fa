"""Playback sources: trailing windows and beats over one SignalRecording.

Decoded files and synthetic recordings both arrive as a
:class:`~ecgmonitor.core.models.SignalRecording`, so a single
:class:`PlaybackSource` serves either; only its ``kind`` tag differs.
"""

from __future__ import annotations

import math
from typing import List, Protocol, Sequence, Tuple

import numpy as np

from .models import BeatEvent, ChannelWindow, SignalRecording, SourceKind


class WindowSource(Protocol):
    """What the playback controller needs from a data source."""

    kind: SourceKind

    @property
    def duration_s(self) -> float:  # pragma: no cover - protocol
        ...

    def windows(self, cursor_s: float, window_s: float, *, wrap: bool) -> Tuple[ChannelWindow, ...]:  # pragma: no cover - protocol
        ...

    def beats_between(self, start_s: float, end_s: float, *, wrap: bool) -> Tuple[BeatEvent, ...]:  # pragma: no cover - protocol
        ...


def window_length(window_s: float, sample_rate_hz: float) -> int:
    """Number of samples in a ``window_s`` trailing slice (at least one)."""
    return max(1, int(round(window_s * sample_rate_hz)))


class PlaybackSource:
    """
    Read-only view over a recording's calibrated samples and beat events.

    Physical values are computed once at construction, so calibration errors
    surface here (at load time) rather than during a tick.
    """

    def __init__(self, recording: SignalRecording, kind: SourceKind) -> None:
        if not recording.channels:
            raise ValueError("recording has no channels")
        self.kind = kind
        self.recording = recording
        self._physical: List[np.ndarray] = [ch.physical_values() for ch in recording.channels]
        self._beats: Tuple[BeatEvent, ...] = tuple(sorted(recording.beats, key=lambda b: b.time_s))
        self._beat_times = np.fromiter(
            (b.time_s for b in self._beats), dtype=np.float64, count=len(self._beats)
        )

    @property
    def duration_s(self) -> float:
        return self.recording.duration_s

    @property
    def channel_labels(self) -> Tuple[str, ...]:
        return tuple(ch.label for ch in self.recording.channels)

    @property
    def beats(self) -> Tuple[BeatEvent, ...]:
        return self._beats

    def _channel_window(self, idx: int, cursor_s: float, window_s: float, wrap: bool) -> ChannelWindow:
        channel = self.recording.channels[idx]
        physical = self._physical[idx]
        rate = channel.spec.sample_rate_hz
        total = physical.size
        n = window_length(window_s, rate)

        end = int(math.floor(cursor_s * rate + 1e-9))
        if not wrap:
            end = min(end, total - 1)
        positions = np.arange(end - n + 1, end + 1)
        timestamps = positions / rate

        if total == 0:
            values = np.full(n, np.nan)
        elif wrap:
            values = physical[positions % total]
        else:
            values = np.full(n, np.nan)
            inside = (positions >= 0) & (positions < total)
            values[inside] = physical[positions[inside]]

        timestamps.flags.writeable = False
        values.flags.writeable = False
        return ChannelWindow(
            label=channel.label,
            unit=channel.spec.unit,
            sample_rate_hz=rate,
            timestamps=timestamps,
            values=values,
        )

    def windows(self, cursor_s: float, window_s: float, *, wrap: bool) -> Tuple[ChannelWindow, ...]:
        """
        Trailing ``window_s`` slice ending at ``cursor_s`` for every channel.

        With ``wrap`` the slice continues from the end of the recording when
        it reaches before zero; otherwise samples outside the recording are
        NaN. Either way the shape only depends on ``window_s``.
        """
        return tuple(
            self._channel_window(idx, cursor_s, window_s, wrap)
            for idx in range(len(self.recording.channels))
        )

    def _beats_in(self, start_s: float, end_s: float) -> Sequence[BeatEvent]:
        lo = int(np.searchsorted(self._beat_times, start_s, side="right"))
        hi = int(np.searchsorted(self._beat_times, end_s, side="right"))
        return self._beats[lo:hi]

    def beats_between(self, start_s: float, end_s: float, *, wrap: bool) -> Tuple[BeatEvent, ...]:
        """
        Beats with ``start_s < time <= end_s``.

        When ``wrap`` is set and ``start_s`` is negative, beats from the tail
        of the recording are included with times shifted back by the
        duration, so intervals across the loop point stay correct.
        """
        if end_s < start_s:
            start_s, end_s = end_s, start_s
        duration = self.duration_s
        if wrap and start_s < 0 and duration > 0:
            tail = [b.shifted(-duration) for b in self._beats_in(start_s + duration, duration)]
            return tuple(tail) + tuple(self._beats_in(-math.inf, end_s))
        return tuple(self._beats_in(start_s, end_s))


__all__ = ["PlaybackSource", "WindowSource", "window_length"]
