"""Correlated auxiliary vitals and the pleth trace, driven by slow oscillators."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from ..core.models import ChannelWindow, VitalSnapshot, clamp_vital
from ..core.sources import window_length

PLETH_LABEL = "PLETH"

# sin(1.5 * angle) in the notch term repeats every 4 pulse cycles
PULSE_PHASE_WRAP = 4.0


def _step_phase(phase: float, step: float, period: float) -> float:
    if not math.isfinite(step):
        return phase
    return (phase + step) % period


@dataclass
class SimulationState:
    """
    Phase accumulators and the seeded noise stream.

    Owned by the playback controller and handed to
    :meth:`PhysiologicalSimulator.advance` every tick; replaced only on reload.
    """

    rng: np.random.Generator
    breath_phase: float = 0.0
    trend_phase: float = 0.0
    respiration_rate: float = 17.5
    # Pulse phase in cycles, kept modulo PULSE_PHASE_WRAP
    pulse_phase: float = 0.0
    pleth_drift_phase: float = 0.0
    pleth_gain: float = 1.0
    ticks: int = 0

    @classmethod
    def seeded(cls, seed: int | np.random.SeedSequence) -> "SimulationState":
        return cls(rng=np.random.default_rng(seed))


@dataclass
class PhysiologyParams:
    resp_base: float = 17.5
    resp_drift: float = 1.5
    resp_jitter: float = 0.15
    spo2_base: float = 97.5
    spo2_breathing: float = 0.5
    spo2_expiration_dip: float = 0.6
    spo2_noise: float = 0.3
    hr_breathing: float = 2.0
    hr_baseline: float = 76.0
    hr_baseline_swing: float = 6.0
    systolic_base: float = 118.0
    diastolic_base: float = 78.0
    bp_trend: float = 4.0
    systolic_breathing: float = 3.0
    diastolic_breathing: float = 2.0
    systolic_noise: float = 2.5
    diastolic_noise: float = 1.5
    temp_core_base: float = 37.0
    temp_peripheral_base: float = 36.8
    temp_skin_base: float = 36.5
    # (trend amplitude, noise sd) per sensor; core is the most stable.
    temp_core_var: tuple[float, float] = (0.2, 0.01)
    temp_peripheral_var: tuple[float, float] = (0.3, 0.03)
    temp_skin_var: tuple[float, float] = (0.5, 0.06)
    # Trend oscillator angular speed (rad/s): one cycle is ~10 minutes.
    trend_rate: float = 2.0 * math.pi / 600.0
    hr_baseline_limits: tuple[float, float] = field(default=(65.0, 90.0))
    pleth_notch: float = 0.1
    pleth_drift: float = 0.05
    pleth_drift_rate: float = 0.1
    pleth_offset: float = 0.1
    pleth_gain_jitter: float = 0.01
    pleth_gain_limits: tuple[float, float] = field(default=(0.85, 1.0))


class PhysiologicalSimulator:
    """Advance a :class:`SimulationState` and compose one :class:`VitalSnapshot`."""

    def __init__(self, params: Optional[PhysiologyParams] = None) -> None:
        self.params = params or PhysiologyParams()

    def _advance_phases(self, state: SimulationState, dt_s: float) -> None:
        period = 60.0 / state.respiration_rate
        state.breath_phase = _step_phase(state.breath_phase, dt_s / period, 1.0)
        state.trend_phase = _step_phase(state.trend_phase, dt_s * self.params.trend_rate, 2.0 * math.pi)
        state.pleth_drift_phase = _step_phase(
            state.pleth_drift_phase, dt_s * self.params.pleth_drift_rate, 2.0 * math.pi
        )
        state.ticks += 1

    def advance(
        self,
        state: SimulationState,
        dt_s: float,
        heart_rate: Optional[float],
    ) -> VitalSnapshot:
        """
        Step the oscillators by ``dt_s`` seconds and compute the vitals.

        ``heart_rate`` is the estimator's reading (``None`` for no reading);
        it is passed through untouched and also drives the breathing-modulated
        rate, which falls back to a trend baseline when there is no reading.
        """
        p = self.params
        rng = state.rng
        dt = max(0.0, float(dt_s))
        self._advance_phases(state, dt)

        trend = math.sin(state.trend_phase)
        breathing = math.sin(2.0 * math.pi * state.breath_phase)

        resp = clamp_vital(
            "respiration_rate",
            p.resp_base + p.resp_drift * math.sin(0.8 * state.trend_phase)
            + rng.normal(0.0, p.resp_jitter),
        )
        state.respiration_rate = resp

        # Expiration is the second half of the breathing cycle.
        dip = 0.0
        if state.breath_phase >= 0.5:
            dip = p.spo2_expiration_dip * math.sin(2.0 * math.pi * (state.breath_phase - 0.5))
        spo2 = clamp_vital(
            "spo2",
            p.spo2_base + p.spo2_breathing * breathing - dip + rng.normal(0.0, p.spo2_noise),
        )

        rsa = p.hr_breathing * breathing
        if heart_rate is None:
            lo, hi = p.hr_baseline_limits
            baseline = min(hi, max(lo, p.hr_baseline + p.hr_baseline_swing * trend))
            modulated = min(hi, max(lo, baseline + rsa))
            measured = None
        else:
            measured = clamp_vital("heart_rate", heart_rate)
            modulated = clamp_vital("heart_rate_modulated", measured + rsa)
        state.pulse_phase = _step_phase(state.pulse_phase, dt * modulated / 60.0, PULSE_PHASE_WRAP)

        systolic = clamp_vital(
            "systolic",
            p.systolic_base + p.bp_trend * trend + p.systolic_breathing * breathing
            + rng.normal(0.0, p.systolic_noise),
        )
        diastolic = clamp_vital(
            "diastolic",
            p.diastolic_base + 0.5 * p.bp_trend * trend + p.diastolic_breathing * breathing
            + rng.normal(0.0, p.diastolic_noise),
        )
        mean_arterial = clamp_vital("mean_arterial", diastolic + (systolic - diastolic) / 3.0)

        core = clamp_vital("temp_core", self._temperature(rng, p.temp_core_base, p.temp_core_var, 0.3 * state.trend_phase))
        peripheral = clamp_vital(
            "temp_peripheral",
            self._temperature(rng, p.temp_peripheral_base, p.temp_peripheral_var, 0.5 * state.trend_phase),
        )
        skin = clamp_vital("temp_skin", self._temperature(rng, p.temp_skin_base, p.temp_skin_var, 0.8 * state.trend_phase))
        gradient = clamp_vital("temp_gradient", core - peripheral)

        lo, hi = p.pleth_gain_limits
        state.pleth_gain = min(hi, max(lo, state.pleth_gain + rng.normal(0.0, p.pleth_gain_jitter)))

        return VitalSnapshot(
            heart_rate=measured,
            heart_rate_modulated=modulated,
            spo2=spo2,
            systolic=systolic,
            diastolic=diastolic,
            mean_arterial=mean_arterial,
            respiration_rate=resp,
            temp_core=core,
            temp_peripheral=peripheral,
            temp_skin=skin,
            temp_gradient=gradient,
        )

    def pleth_window(
        self,
        state: SimulationState,
        heart_rate_bpm: float,
        window_s: float,
        end_s: float,
        sample_rate_hz: float,
    ) -> ChannelWindow:
        """
        Plethysmograph trace for the trailing ``window_s`` seconds.

        Reads the pulse phase reached by the last :meth:`advance` and traces
        it back in time at ``heart_rate_bpm``, so consecutive frames scroll
        the same waveform. Values are normalised to ``[0, 1]``; timestamps
        end at ``end_s`` like the ECG windows.
        """
        p = self.params
        n = window_length(window_s, sample_rate_hz)
        end = int(math.floor(end_s * sample_rate_hz + 1e-9))
        timestamps = np.arange(end - n + 1, end + 1) / sample_rate_hz

        age = (n - 1 - np.arange(n)) / sample_rate_hz
        angle = 2.0 * math.pi * (state.pulse_phase - age * heart_rate_bpm / 60.0)
        drift = state.pleth_drift_phase - age * p.pleth_drift_rate

        systolic = np.maximum(np.sin(angle), 0.0) ** 2
        notch = p.pleth_notch * np.sin(1.5 * angle)
        baseline = p.pleth_drift * np.sin(drift)
        values = np.clip(state.pleth_gain * systolic + notch + baseline + p.pleth_offset, 0.0, 1.0)

        timestamps.flags.writeable = False
        values.flags.writeable = False
        return ChannelWindow(
            label=PLETH_LABEL,
            unit="",
            sample_rate_hz=float(sample_rate_hz),
            timestamps=timestamps,
            values=values,
        )

    @staticmethod
    def _temperature(
        rng: np.random.Generator, base: float, variation: tuple[float, float], angle: float
    ) -> float:
        amplitude, noise = variation
        return base + amplitude * math.sin(angle) + rng.normal(0.0, noise)
