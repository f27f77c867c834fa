"""Playback core for ECG monitor recordings.

Decodes EDF-style signal files and beat annotation streams, estimates heart
rate, simulates auxiliary vitals, and exposes a tick-driven
:class:`PlaybackController` for a presentation layer.
"""

from .core.playback import PlaybackController
from .core.models import BeatType, FrameOutput, SourceKind, VitalSnapshot
from .config.runtime import MonitorConfig, load_config
from .errors import CalibrationError, LoadFailure, ParseError, ParseErrorKind

__all__ = [
    "PlaybackController",
    "BeatType",
    "FrameOutput",
    "SourceKind",
    "VitalSnapshot",
    "MonitorConfig",
    "load_config",
    "CalibrationError",
    "LoadFailure",
    "ParseError",
    "ParseErrorKind",
]
