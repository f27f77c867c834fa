from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Optional, Sequence

from ..core.models import BeatEvent

DEFAULT_MAX_INTERVALS = 8
DEFAULT_MIN_RR_S = 0.3
DEFAULT_MAX_RR_S = 2.0


@dataclass
class HeartRateReading:
    """Result of one estimator refresh."""

    bpm: Optional[float]
    valid_intervals: int
    rejected_intervals: int


def bpm_from_intervals(
    intervals: Iterable[float],
    *,
    min_rr_s: float = DEFAULT_MIN_RR_S,
    max_rr_s: float = DEFAULT_MAX_RR_S,
) -> Optional[float]:
    """
    Return ``60 / mean(valid RR)`` or ``None`` when no interval is valid.

    Intervals outside ``[min_rr_s, max_rr_s]`` are treated as artifacts.
    """
    valid = [rr for rr in intervals if min_rr_s <= rr <= max_rr_s]
    if not valid:
        return None
    return 60.0 / (sum(valid) / len(valid))


class HeartRateEstimator:
    """
    Estimate heart rate from RR intervals between consecutive beats.

    Notes
    -----
    - Beats are assumed to be ordered by time (non-decreasing).
    - Only the most recent ``max_intervals`` RR intervals are kept.
    - A reading needs at least two beats forming one valid interval; with
      less than that the estimator reports ``None``, never a previous value.
    """

    def __init__(
        self,
        max_intervals: int = DEFAULT_MAX_INTERVALS,
        *,
        min_rr_s: float = DEFAULT_MIN_RR_S,
        max_rr_s: float = DEFAULT_MAX_RR_S,
    ) -> None:
        if max_intervals < 1:
            raise ValueError("max_intervals must be >= 1")
        if not 0 < min_rr_s < max_rr_s:
            raise ValueError(f"invalid RR bounds [{min_rr_s}, {max_rr_s}]")
        self._intervals: Deque[float] = deque(maxlen=max_intervals)
        self.min_rr_s = float(min_rr_s)
        self.max_rr_s = float(max_rr_s)
        self._last = HeartRateReading(bpm=None, valid_intervals=0, rejected_intervals=0)

    def update(self, beats: Sequence[BeatEvent]) -> Optional[float]:
        """
        Refresh the estimate from the beats inside the current window.

        Parameters
        ----------
        beats:
            Beat events in the lookback window, ordered by time. Non-beat
            markers are ignored.

        Returns
        -------
        float or None
            Beats per minute, or ``None`` for "no reading".
        """
        self._intervals.clear()
        times = [b.time_s for b in beats if b.beat_type.is_beat]
        for prev, cur in zip(times, times[1:]):
            self._intervals.append(cur - prev)

        valid = [rr for rr in self._intervals if self.min_rr_s <= rr <= self.max_rr_s]
        bpm = bpm_from_intervals(valid, min_rr_s=self.min_rr_s, max_rr_s=self.max_rr_s)
        self._last = HeartRateReading(
            bpm=bpm,
            valid_intervals=len(valid),
            rejected_intervals=len(self._intervals) - len(valid),
        )
        return bpm

    @property
    def bpm(self) -> Optional[float]:
        """Most recent reading (``None`` when there is no reading)."""
        return self._last.bpm

    @property
    def last_reading(self) -> HeartRateReading:
        return self._last

    @property
    def intervals(self) -> tuple[float, ...]:
        """RR intervals (seconds) currently in the sliding window."""
        return tuple(self._intervals)

    def reset(self) -> None:
        """Forget all intervals and the last reading."""
        self._intervals.clear()
        self._last = HeartRateReading(bpm=None, valid_intervals=0, rejected_intervals=0)
