"""Playback controller: the state machine behind the per-frame ``tick()``.

States run ``UNLOADED -> LOADED -> PLAYING <-> PAUSED``. Loading always ends
in a usable state: when decoding fails the controller switches to a
synthetic recording and reports the failure instead of raising it.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Tuple

import numpy as np

from ..analysis.filters import monitor_filter
from ..analysis.heart_rate import HeartRateEstimator
from ..config.runtime import SPEED_MAX, SPEED_MIN, MonitorConfig
from ..dataio.annotations import DEFAULT_ANNOTATION_RATE_HZ, decode_annotations
from ..dataio.edf import decode_signal_file
from ..errors import LoadFailure, LoadStage, ParseError, ParseErrorKind
from ..simulation.physiology import PhysiologicalSimulator, SimulationState
from ..simulation.synthetic import SyntheticParams, SyntheticSignalGenerator
from ..tools.debug import time_block
from .models import (
    BeatEvent,
    ChannelWindow,
    FrameOutput,
    PlaybackPhase,
    PlaybackState,
    SignalRecording,
    SourceKind,
)
from .sources import PlaybackSource, WindowSource

logger = logging.getLogger(__name__)


class PlaybackController:
    """
    Own the active source, the cursor, and the simulation state.

    ``tick()`` is the only method that advances time; the command methods
    (``play``, ``pause``, ``set_speed``, ``set_looping``, ``seek``) only
    change :class:`PlaybackState`.
    """

    def __init__(self, config: Optional[MonitorConfig] = None) -> None:
        self.config = (config or MonitorConfig()).sanitized()
        self._state = PlaybackState(
            speed=self.config.initial_speed,
            looping=self.config.loop_enabled,
        )
        self._source: Optional[WindowSource] = None
        self._phase = PlaybackPhase.UNLOADED
        self._last_failure: Optional[LoadFailure] = None
        self._estimator = HeartRateEstimator(
            self.config.hr_max_intervals,
            min_rr_s=self.config.rr_min_s,
            max_rr_s=self.config.rr_max_s,
        )
        self._simulator = PhysiologicalSimulator()
        self._sim_seed, self._synthetic_seed = np.random.SeedSequence(self.config.seed).spawn(2)
        self._sim_state = SimulationState.seeded(self._sim_seed)

    # ------------------------------------------------------------------ state
    @property
    def phase(self) -> PlaybackPhase:
        return self._phase

    @property
    def source_kind(self) -> Optional[SourceKind]:
        return None if self._source is None else self._source.kind

    @property
    def cursor_s(self) -> float:
        return self._state.cursor_s

    @property
    def speed(self) -> float:
        return self._state.speed

    @property
    def playing(self) -> bool:
        return self._state.playing

    @property
    def looping(self) -> bool:
        return self._state.looping

    @property
    def duration_s(self) -> float:
        return 0.0 if self._source is None else self._source.duration_s

    @property
    def last_failure(self) -> Optional[LoadFailure]:
        """Why the most recent load fell back to synthetic data, if it did."""
        return self._last_failure

    @property
    def heart_rate_estimator(self) -> HeartRateEstimator:
        return self._estimator

    # ------------------------------------------------------------------- load
    def _decode(
        self, signal_bytes: bytes, annotation_bytes: Optional[bytes]
    ) -> SignalRecording:
        stage: LoadStage = "signal"
        try:
            with time_block("decode signal file", emitter=logger.debug):
                signal = decode_signal_file(signal_bytes)
            if signal.header.record_count == 0:
                raise ParseError(ParseErrorKind.TRUNCATED, "recording holds no data records")
            for spec in signal.specs:
                spec.check_calibration()
            beats: Tuple[BeatEvent, ...] = ()
            if annotation_bytes is not None:
                stage = "annotations"
                rate = self.config.annotation_sample_rate_hz
                if rate is None and signal.channels:
                    rate = signal.channels[0].spec.sample_rate_hz
                with time_block("decode annotations", emitter=logger.debug):
                    beats = decode_annotations(
                        annotation_bytes, rate or DEFAULT_ANNOTATION_RATE_HZ
                    )
        except ParseError as exc:
            raise _StageFailure(LoadFailure(stage=stage, error=exc)) from exc
        return SignalRecording(header=signal.header, channels=signal.channels, beats=beats)

    def _synthetic_recording(self) -> SignalRecording:
        params = SyntheticParams(
            sample_rate_hz=self.config.synthetic_sample_rate_hz,
            channel_labels=self.config.synthetic_channels,
            base_heart_rate=self.config.synthetic_base_hr,
        )
        generator = SyntheticSignalGenerator(params, seed=self._synthetic_seed)
        return generator.generate(self.config.synthetic_duration_s)

    def load(
        self,
        signal_bytes: Optional[bytes],
        annotation_bytes: Optional[bytes] = None,
    ) -> Optional[LoadFailure]:
        """
        Load a dataset, or synthetic data when ``signal_bytes`` is ``None``.

        Returns
        -------
        LoadFailure or None
            ``None`` when the requested source was loaded; otherwise the
            decoding failure that caused the synthetic fallback. The same
            value is kept in :attr:`last_failure`.
        """
        failure: Optional[LoadFailure] = None
        source: Optional[PlaybackSource] = None

        if signal_bytes is not None:
            try:
                recording = self._decode(signal_bytes, annotation_bytes)
                source = PlaybackSource(recording, SourceKind.REAL_DECODED)
            except _StageFailure as exc:
                failure = exc.failure
                logger.warning("%s; falling back to synthetic data", failure.message)
            else:
                logger.info(
                    "Loaded recording: %d channels, %.1f s, %d beats",
                    len(recording.channels),
                    recording.duration_s,
                    len(recording.beats),
                )

        if source is None:
            source = PlaybackSource(self._synthetic_recording(), SourceKind.SYNTHETIC)
            logger.info("Using synthetic recording (%.1f s)", source.duration_s)

        self._source = source
        self._last_failure = failure
        self._state.cursor_s = 0.0
        self._state.playing = False
        self._phase = PlaybackPhase.LOADED
        self._estimator.reset()
        self._sim_state = SimulationState.seeded(self._sim_seed)
        return failure

    # --------------------------------------------------------------- commands
    def _require_loaded(self) -> WindowSource:
        if self._source is None:
            raise RuntimeError("no dataset loaded; call load() first")
        return self._source

    def play(self) -> None:
        self._require_loaded()
        self._state.playing = True
        self._phase = PlaybackPhase.PLAYING

    def pause(self) -> None:
        self._require_loaded()
        self._state.playing = False
        if self._phase is PlaybackPhase.PLAYING:
            self._phase = PlaybackPhase.PAUSED

    def set_speed(self, speed: float) -> float:
        """Clamp ``speed`` into ``[0.1, 5.0]`` and return the applied value."""
        value = float(speed)
        if not math.isfinite(value):
            raise ValueError(f"speed must be finite, got {speed!r}")
        self._state.speed = min(SPEED_MAX, max(SPEED_MIN, value))
        return self._state.speed

    def set_looping(self, enabled: bool) -> None:
        self._state.looping = bool(enabled)

    def seek(self, seconds: float) -> float:
        """Move the cursor, clamped to ``[0, duration]``; returns the new cursor."""
        source = self._require_loaded()
        value = float(seconds)
        if not math.isfinite(value):
            raise ValueError(f"seek position must be finite, got {seconds!r}")
        self._state.cursor_s = min(source.duration_s, max(0.0, value))
        return self._state.cursor_s

    # ------------------------------------------------------------------- tick
    def _advance_cursor(self, duration: float, delta: float) -> None:
        cursor = self._state.cursor_s + delta
        if cursor >= duration:
            if self._state.looping and duration > 0:
                cursor = math.fmod(cursor, duration)
            else:
                cursor = duration
                self._state.playing = False
                self._phase = PlaybackPhase.PAUSED
                logger.info("Reached end of recording at %.2f s; playback stopped", duration)
        self._state.cursor_s = cursor

    def _filtered(self, windows: Tuple[ChannelWindow, ...]) -> Tuple[ChannelWindow, ...]:
        out = []
        for window in windows:
            values = monitor_filter(
                window.values,
                window.sample_rate_hz,
                self.config.display_band_low_hz,
                self.config.display_band_high_hz,
            )
            values.flags.writeable = False
            out.append(
                ChannelWindow(
                    label=window.label,
                    unit=window.unit,
                    sample_rate_hz=window.sample_rate_hz,
                    timestamps=window.timestamps,
                    values=values,
                )
            )
        return tuple(out)

    def tick(self, elapsed_s: float) -> FrameOutput:
        """
        Advance playback by ``elapsed_s`` wall seconds and build one frame.

        While playing the cursor moves by ``elapsed_s * speed``. The window,
        heart-rate refresh, and simulator step happen on every tick, paused
        or not. The pleth trace follows the breathing-modulated heart rate.
        """
        source = self._require_loaded()
        elapsed = float(elapsed_s)
        if not math.isfinite(elapsed) or elapsed < 0:
            elapsed = 0.0

        if self._state.playing:
            delta = elapsed * self._state.speed
            if not math.isfinite(delta):
                delta = 0.0
            self._advance_cursor(source.duration_s, delta)

        cursor = self._state.cursor_s
        wrap = self._state.looping
        windows = source.windows(cursor, self.config.window_seconds, wrap=wrap)
        if self.config.display_filter_enabled:
            windows = self._filtered(windows)

        lookback = source.beats_between(cursor - self.config.hr_lookback_seconds, cursor, wrap=wrap)
        heart_rate = self._estimator.update(lookback)
        vitals = self._simulator.advance(self._sim_state, elapsed, heart_rate)
        pleth = self._simulator.pleth_window(
            self._sim_state,
            vitals.heart_rate_modulated,
            self.config.window_seconds,
            cursor,
            self.config.pleth_sample_rate_hz,
        )

        visible = source.beats_between(cursor - self.config.window_seconds, cursor, wrap=wrap)
        assert all(len(w) > 0 for w in windows), "empty channel window"
        return FrameOutput(
            channels=windows,
            vitals=vitals,
            source=source.kind,
            cursor_s=cursor,
            phase=self._phase,
            pleth=pleth,
            beats=visible,
        )


class _StageFailure(Exception):
    """Carries a :class:`LoadFailure` out of the decode step."""

    def __init__(self, failure: LoadFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure


__all__ = ["PlaybackController"]
