"""Shared dataclasses for recordings, beats, vitals, and playback frames."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from ..errors import CalibrationError


class BeatType(str, Enum):
    """Closed set of beat classifications carried by the annotation stream."""

    NORMAL = "normal"
    PREMATURE_VENTRICULAR = "premature_ventricular"
    ABERRANT = "aberrant"
    UNKNOWN = "unknown"
    NON_BEAT_MARKER = "non_beat_marker"

    @property
    def is_beat(self) -> bool:
        return self is not BeatType.NON_BEAT_MARKER


class SourceKind(str, Enum):
    REAL_DECODED = "real_decoded"
    SYNTHETIC = "synthetic"


class PlaybackPhase(str, Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class SignalHeader:
    version: str
    patient_id: str
    recording_id: str
    start: Optional[datetime]
    start_date_raw: str
    start_time_raw: str
    header_bytes: int
    record_count: int
    record_duration_s: float
    channel_count: int

    @property
    def duration_s(self) -> float:
        return self.record_count * self.record_duration_s


@dataclass(frozen=True)
class ChannelSpec:
    """Descriptor block for one channel of the signal container."""

    label: str
    transducer: str
    unit: str
    physical_min: float
    physical_max: float
    digital_min: int
    digital_max: int
    prefiltering: str
    samples_per_record: int
    record_duration_s: float

    @property
    def sample_rate_hz(self) -> float:
        return self.samples_per_record / self.record_duration_s

    def check_calibration(self) -> None:
        """Raise :class:`CalibrationError` if the linear mapping is undefined."""
        if not (math.isfinite(self.physical_min) and math.isfinite(self.physical_max)):
            raise CalibrationError(
                f"channel {self.label!r}: physical range "
                f"[{self.physical_min}, {self.physical_max}] is not finite"
            )
        if self.digital_max <= self.digital_min:
            raise CalibrationError(
                f"channel {self.label!r}: digital range "
                f"[{self.digital_min}, {self.digital_max}] is empty"
            )
        if self.physical_max == self.physical_min:
            raise CalibrationError(
                f"channel {self.label!r}: physical range collapses to {self.physical_min}"
            )

    def to_physical(self, digital: np.ndarray | int) -> np.ndarray | float:
        """
        Map digital sample value(s) to physical units.

        ``physical_min + (digital - digital_min) * (physical_max - physical_min)
        / (digital_max - digital_min)``
        """
        self.check_calibration()
        scale = (self.physical_max - self.physical_min) / (self.digital_max - self.digital_min)
        if isinstance(digital, np.ndarray):
            return self.physical_min + (digital.astype(np.float64) - self.digital_min) * scale
        return self.physical_min + (float(digital) - self.digital_min) * scale

    def to_digital(self, physical: np.ndarray) -> np.ndarray:
        """Quantise physical values into the digital range (clipped, int16)."""
        self.check_calibration()
        scale = (self.digital_max - self.digital_min) / (self.physical_max - self.physical_min)
        raw = np.rint((np.asarray(physical, dtype=np.float64) - self.physical_min) * scale + self.digital_min)
        return np.clip(raw, self.digital_min, self.digital_max).astype(np.int16)


@dataclass(frozen=True)
class DecodedChannel:
    spec: ChannelSpec
    digital: np.ndarray

    def __post_init__(self) -> None:
        self.digital.flags.writeable = False

    def __len__(self) -> int:
        return int(self.digital.size)

    @property
    def label(self) -> str:
        return self.spec.label

    def physical_values(self) -> np.ndarray:
        """Return calibrated samples as a new read-only ``float64`` array."""
        values = self.spec.to_physical(self.digital)
        values.flags.writeable = False
        return values


@dataclass(frozen=True)
class BeatEvent:
    time_s: float
    beat_type: BeatType
    code: int = 1
    sample: int = 0
    aux: Optional[str] = None

    def shifted(self, offset_s: float) -> "BeatEvent":
        return BeatEvent(
            time_s=self.time_s + offset_s,
            beat_type=self.beat_type,
            code=self.code,
            sample=self.sample,
            aux=self.aux,
        )


@dataclass(frozen=True)
class SignalRecording:
    """Header, channels, and beats: what a data source hands to playback."""

    header: SignalHeader
    channels: Tuple[DecodedChannel, ...]
    beats: Tuple[BeatEvent, ...] = ()

    @property
    def duration_s(self) -> float:
        return self.header.duration_s


@dataclass
class PlaybackState:
    cursor_s: float = 0.0
    speed: float = 1.0
    playing: bool = False
    looping: bool = True


# Clinical display bounds; every VitalSnapshot field is clamped into these.
VITAL_BOUNDS: Dict[str, Tuple[float, float]] = {
    "heart_rate": (30.0, 200.0),
    "heart_rate_modulated": (30.0, 200.0),
    "spo2": (94.0, 100.0),
    "systolic": (100.0, 140.0),
    "diastolic": (60.0, 90.0),
    "mean_arterial": (70.0, 110.0),
    "respiration_rate": (12.0, 22.0),
    "temp_core": (36.5, 37.8),
    "temp_peripheral": (36.2, 37.3),
    "temp_skin": (35.8, 37.2),
    "temp_gradient": (0.0, 0.8),
}


def clamp_vital(name: str, value: float) -> float:
    lo, hi = VITAL_BOUNDS[name]
    return min(hi, max(lo, float(value)))


@dataclass(frozen=True)
class VitalSnapshot:
    """
    One tick's worth of vital signs.

    ``heart_rate`` is the beat-derived reading and is ``None`` when the
    estimator has no reading. ``heart_rate_modulated`` is always present: it
    is the value the simulator couples to breathing (the reading, or a
    baseline when there is none).
    """

    heart_rate: Optional[float]
    heart_rate_modulated: float
    spo2: float
    systolic: float
    diastolic: float
    mean_arterial: float
    respiration_rate: float
    temp_core: float
    temp_peripheral: float
    temp_skin: float
    temp_gradient: float

    @property
    def has_heart_rate(self) -> bool:
        return self.heart_rate is not None

    def as_dict(self) -> Dict[str, Optional[float]]:
        return asdict(self)


@dataclass(frozen=True)
class ChannelWindow:
    label: str
    unit: str
    sample_rate_hz: float
    timestamps: np.ndarray
    values: np.ndarray

    def __len__(self) -> int:
        return int(self.values.size)


@dataclass(frozen=True)
class FrameOutput:
    channels: Tuple[ChannelWindow, ...]
    vitals: VitalSnapshot
    source: SourceKind
    cursor_s: float
    phase: PlaybackPhase
    # Simulated SpO2 pulse waveform, normalised to [0, 1]
    pleth: ChannelWindow
    beats: Tuple[BeatEvent, ...] = field(default=())
