"""Synthetic ECG recordings with the same shape as decoded datasets.

The generator builds each beat from a Gaussian P-Q-R-S-T template stretched
to that beat's RR interval, quantises the result through a regular
:class:`~ecgmonitor.core.models.ChannelSpec`, and emits one Normal
:class:`~ecgmonitor.core.models.BeatEvent` per R peak. The output is a
:class:`~ecgmonitor.core.models.SignalRecording`, so playback cannot tell it
apart from a decoded file.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence, Tuple

import numpy as np

from ..core.models import (
    BeatEvent,
    BeatType,
    ChannelSpec,
    DecodedChannel,
    SignalHeader,
    SignalRecording,
)

logger = logging.getLogger(__name__)

# (centre, width, amplitude) per wave, centre/width as a fraction of the RR interval
PQRST_TEMPLATE: Tuple[Tuple[float, float, float], ...] = (
    (0.100, 0.0500, 0.15),   # P
    (0.200, 0.0125, -0.10),  # Q
    (0.225, 0.0190, 1.00),   # R
    (0.275, 0.0190, -0.25),  # S
    (0.560, 0.1000, 0.30),   # T
)
R_PEAK_PHASE = 0.225

# Lead gains relative to lead I; unknown labels use 1.0.
LEAD_GAINS = {"I": 1.0, "II": 1.2, "V1": 0.8}


def pqrst_waveform(phase: np.ndarray) -> np.ndarray:
    """Evaluate the morphology template at cycle phases in ``[0, 1)``."""
    phase = np.asarray(phase, dtype=np.float64)
    out = np.zeros_like(phase)
    for centre, width, amplitude in PQRST_TEMPLATE:
        out += amplitude * np.exp(-((phase - centre) ** 2) / (2.0 * width**2))
    return out


@dataclass
class SyntheticParams:
    sample_rate_hz: float = 360.0
    channel_labels: Tuple[str, ...] = ("I", "II", "V1")
    base_heart_rate: float = 75.0
    heart_rate_swing: float = 5.0
    rr_jitter: float = 0.03
    noise_mv: float = 0.01
    baseline_wander_mv: float = 0.03
    baseline_wander_hz: float = 0.25
    physical_range_mv: Tuple[float, float] = (-5.0, 5.0)
    digital_range: Tuple[int, int] = (-2048, 2047)
    rr_limits_s: Tuple[float, float] = field(default=(0.35, 1.5))

    def channel_spec(self, label: str) -> ChannelSpec:
        spr = int(round(self.sample_rate_hz))
        return ChannelSpec(
            label=label,
            transducer="synthetic",
            unit="mV",
            physical_min=float(self.physical_range_mv[0]),
            physical_max=float(self.physical_range_mv[1]),
            digital_min=int(self.digital_range[0]),
            digital_max=int(self.digital_range[1]),
            prefiltering="",
            samples_per_record=spr,
            record_duration_s=spr / float(self.sample_rate_hz),
        )


class SyntheticSignalGenerator:
    """Produce seeded synthetic ECG recordings."""

    def __init__(self, params: Optional[SyntheticParams] = None, *, seed: int | np.random.SeedSequence = 0) -> None:
        self.params = params or SyntheticParams()
        if self.params.sample_rate_hz <= 0:
            raise ValueError("sample_rate_hz must be positive")
        if not self.params.channel_labels:
            raise ValueError("at least one channel label is required")
        self._rng = np.random.default_rng(seed)

    def target_heart_rate(self, t: float, period_s: float) -> float:
        """Slowly varying target rate; one full swing per ``period_s``."""
        p = self.params
        return p.base_heart_rate + p.heart_rate_swing * math.sin(2.0 * math.pi * t / period_s)

    def beat_schedule(self, duration_s: float) -> Tuple[np.ndarray, np.ndarray]:
        """Return ``(cycle_starts, rr_intervals)`` covering ``duration_s``."""
        lo, hi = self.params.rr_limits_s
        starts: list[float] = []
        rrs: list[float] = []
        t = 0.0
        while t < duration_s:
            rr = 60.0 / self.target_heart_rate(t, duration_s)
            rr *= 1.0 + self._rng.normal(0.0, self.params.rr_jitter)
            rr = min(hi, max(lo, rr))
            starts.append(t)
            rrs.append(rr)
            t += rr
        return np.asarray(starts), np.asarray(rrs)

    def beats_for(self, starts: np.ndarray, rrs: np.ndarray, duration_s: float) -> Tuple[BeatEvent, ...]:
        """One Normal beat at each R peak that falls inside the recording."""
        rate = self.params.sample_rate_hz
        peaks = starts + R_PEAK_PHASE * rrs
        return tuple(
            BeatEvent(
                time_s=float(t),
                beat_type=BeatType.NORMAL,
                code=1,
                sample=int(round(t * rate)),
            )
            for t in peaks
            if t < duration_s
        )

    def render(self, starts: np.ndarray, rrs: np.ndarray, n_samples: int) -> np.ndarray:
        """Lead-I waveform in mV (before per-lead gain and noise)."""
        t = np.arange(n_samples) / self.params.sample_rate_hz
        idx = np.searchsorted(starts, t, side="right") - 1
        idx = np.clip(idx, 0, starts.size - 1)
        phase = (t - starts[idx]) / rrs[idx]
        return pqrst_waveform(phase)

    def generate(self, duration_s: float) -> SignalRecording:
        """
        Generate ``duration_s`` seconds (rounded up to whole 1 s records).

        The heart-rate swing period equals the generated duration, so looping
        playback continues without a jump in the rate trend.
        """
        if duration_s <= 0:
            raise ValueError(f"duration_s must be positive, got {duration_s}")
        p = self.params
        records = int(math.ceil(duration_s))
        specs = [p.channel_spec(label) for label in p.channel_labels]
        duration = records * specs[0].record_duration_s
        n_samples = records * specs[0].samples_per_record

        starts, rrs = self.beat_schedule(duration)
        base = self.render(starts, rrs, n_samples)
        t = np.arange(n_samples) / p.sample_rate_hz
        wander = p.baseline_wander_mv * np.sin(2.0 * math.pi * p.baseline_wander_hz * t)

        channels = []
        for spec in specs:
            gain = LEAD_GAINS.get(spec.label, 1.0)
            noise = self._rng.normal(0.0, p.noise_mv, n_samples)
            physical = gain * base + wander + noise
            channels.append(DecodedChannel(spec=spec, digital=spec.to_digital(physical)))

        header = SignalHeader(
            version="0",
            patient_id="X X X SYNTHETIC",
            recording_id="Startdate X X X ecgmonitor-synthetic",
            start=None,
            start_date_raw="",
            start_time_raw="",
            header_bytes=256 * (len(specs) + 1),
            record_count=records,
            record_duration_s=specs[0].record_duration_s,
            channel_count=len(specs),
        )
        beats = self.beats_for(starts, rrs, duration)
        logger.debug(
            "Generated %.0f s synthetic recording: %d channels, %d beats",
            duration,
            len(channels),
            len(beats),
        )
        return SignalRecording(header=header, channels=tuple(channels), beats=beats)


def generate_recording(
    duration_s: float,
    *,
    seed: int | np.random.SeedSequence = 0,
    params: Optional[SyntheticParams] = None,
    channel_labels: Optional[Sequence[str]] = None,
) -> SignalRecording:
    """Convenience wrapper around :class:`SyntheticSignalGenerator`."""
    if channel_labels is not None:
        base = params or SyntheticParams()
        params = replace(base, channel_labels=tuple(channel_labels))
    return SyntheticSignalGenerator(params, seed=seed).generate(duration_s)
