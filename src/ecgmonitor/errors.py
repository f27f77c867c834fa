"""Error taxonomy shared by the decoders and the playback controller."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal


class ParseErrorKind(str, Enum):
    TRUNCATED = "truncated"
    BAD_MAGIC_OR_VERSION = "bad_magic_or_version"
    INVALID_CHANNEL_COUNT = "invalid_channel_count"
    CALIBRATION_ZERO_RANGE = "calibration_zero_range"
    UNKNOWN_ESCAPE_CODE = "unknown_escape_code"


class ParseError(ValueError):
    """Malformed or truncated binary input."""

    def __init__(self, kind: ParseErrorKind, message: str) -> None:
        super().__init__(f"{kind.value}: {message}")
        self.kind = kind
        self.detail = message


class CalibrationError(ParseError):
    """A channel whose digital or physical range is degenerate."""

    def __init__(self, message: str) -> None:
        super().__init__(ParseErrorKind.CALIBRATION_ZERO_RANGE, message)


LoadStage = Literal["signal", "annotations"]


@dataclass(frozen=True)
class LoadFailure:
    """
    Why a dataset load fell back to synthetic data.

    ``stage`` names the decoder that failed; ``error`` is the original
    exception, kept intact for diagnostics.
    """

    stage: LoadStage
    error: ParseError

    @property
    def kind(self) -> ParseErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return f"{self.stage} decoding failed: {self.error}"


__all__ = [
    "CalibrationError",
    "LoadFailure",
    "LoadStage",
    "ParseError",
    "ParseErrorKind",
]
