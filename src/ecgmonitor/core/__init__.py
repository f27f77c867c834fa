"""Core playback: data model, sources, and the tick-driven controller.

This package sits between the decoders/simulators and the presentation layer:
decoded or synthetic recordings become a :class:`PlaybackSource`, and the
:class:`PlaybackController` turns it into one immutable :class:`FrameOutput`
per frame.
"""

# Data model shared by decoders, simulators, and playback
from .models import (
    VITAL_BOUNDS,
    BeatEvent,
    BeatType,
    ChannelSpec,
    ChannelWindow,
    DecodedChannel,
    FrameOutput,
    PlaybackPhase,
    PlaybackState,
    SignalHeader,
    SignalRecording,
    SourceKind,
    VitalSnapshot,
)

# Sources and the controller that drives them
from .sources import PlaybackSource, WindowSource
from .playback import PlaybackController

__all__ = [
    "VITAL_BOUNDS",
    "BeatEvent",
    "BeatType",
    "ChannelSpec",
    "ChannelWindow",
    "DecodedChannel",
    "FrameOutput",
    "PlaybackPhase",
    "PlaybackState",
    "SignalHeader",
    "SignalRecording",
    "SourceKind",
    "VitalSnapshot",
    "PlaybackSource",
    "WindowSource",
    "PlaybackController",
]
