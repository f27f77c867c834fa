"""
Decoder for MIT/WFDB-style beat annotation streams.

Each record is a little-endian 16-bit word: the high 6 bits are the
annotation code, the low 10 bits a time delta (in ticks) added to a running
absolute counter. Codes above ``ACMAX`` are escapes:

  - ``SKIP`` (59): the next 4 bytes carry a 32-bit delta, stored as two
    16-bit little-endian words with the high word first.
  - ``NUM``/``SUB``/``CHN`` (60-62): the 10-bit field is a value, not a delta.
  - ``AUX`` (63): the 10-bit field is a byte count; the payload follows,
    padded to an even length, and belongs to the preceding annotation.

A zero word ends the stream, and a dangling odd byte at the end is ignored.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from ..core.models import BeatEvent, BeatType
from ..errors import ParseError, ParseErrorKind

logger = logging.getLogger(__name__)

DEFAULT_ANNOTATION_RATE_HZ = 360.0

ACMAX = 49
SKIP = 59
NUM = 60
SUB = 61
CHN = 62
AUX = 63
NOTE = 22

_CODE_SHIFT = 10
_VALUE_MASK = 0x3FF

ANNOTATION_SYMBOLS: Dict[int, str] = {
    0: "",
    1: "N", 2: "L", 3: "R", 4: "a", 5: "V", 6: "F", 7: "J", 8: "A",
    9: "S", 10: "E", 11: "j", 12: "/", 13: "Q", 14: "~", 16: "|",
    18: "s", 19: "T", 20: "*", 21: "D", 22: '"', 23: "=", 24: "p",
    25: "B", 26: "^", 27: "t", 28: "+", 29: "u", 30: "?", 31: "!",
    32: "[", 33: "]", 34: "e", 35: "n", 36: "@", 37: "x", 38: "f",
    39: "(", 40: ")", 41: "r",
}

_BEAT_TYPES: Dict[str, BeatType] = {
    **{sym: BeatType.NORMAL for sym in "NLRBejn"},
    **{sym: BeatType.PREMATURE_VENTRICULAR for sym in "VEr"},
    **{sym: BeatType.ABERRANT for sym in "aAJS"},
    **{sym: BeatType.UNKNOWN for sym in "F/fQ?"},
}

_RESOLUTION_RE = re.compile(r"time resolution:\s*([0-9]*\.?[0-9]+)")


def beat_type_for_code(code: int) -> BeatType:
    """Map an annotation code onto the closed :class:`BeatType` set."""
    return _BEAT_TYPES.get(ANNOTATION_SYMBOLS.get(code, ""), BeatType.NON_BEAT_MARKER)


@dataclass
class _RawAnnotation:
    code: int
    sample: int
    aux: Optional[bytes] = None


def _read_word(data: bytes, pos: int) -> int:
    return data[pos] | (data[pos + 1] << 8)


def _iter_raw(data: bytes) -> Iterator[_RawAnnotation]:
    """Yield terminal annotations with escapes applied and aux attached."""
    pos = 0
    end = len(data) - (len(data) % 2)
    counter = 0
    pending: Optional[_RawAnnotation] = None

    while pos < end:
        word = _read_word(data, pos)
        pos += 2
        code = word >> _CODE_SHIFT
        value = word & _VALUE_MASK

        if code == 0 and value == 0:
            break

        if code <= ACMAX:
            if pending is not None:
                yield pending
            counter += value
            pending = _RawAnnotation(code=code, sample=counter)
        elif code == SKIP:
            if pos + 4 > len(data):
                raise ParseError(
                    ParseErrorKind.TRUNCATED,
                    f"SKIP at byte {pos - 2} needs 4 payload bytes, {len(data) - pos} left",
                )
            high = _read_word(data, pos)
            low = _read_word(data, pos + 2)
            pos += 4
            counter += (high << 16) | low
        elif code in (NUM, SUB, CHN):
            # Field values only; the counter is unaffected.
            continue
        elif code == AUX:
            padded = value + (value % 2)
            if pos + value > len(data):
                raise ParseError(
                    ParseErrorKind.TRUNCATED,
                    f"AUX at byte {pos - 2} declares {value} bytes, {len(data) - pos} left",
                )
            if pending is not None:
                pending.aux = data[pos : pos + value]
            pos += padded
        else:
            raise ParseError(
                ParseErrorKind.UNKNOWN_ESCAPE_CODE,
                f"code {code} at byte {pos - 2}",
            )

    if pending is not None:
        yield pending


def _decode_aux(raw: Optional[bytes]) -> Optional[str]:
    if raw is None:
        return None
    return raw.split(b"\x00", 1)[0].decode("latin-1")


def iter_annotations(
    data: bytes,
    sample_rate_hz: float = DEFAULT_ANNOTATION_RATE_HZ,
    *,
    include_markers: bool = False,
) -> Iterator[BeatEvent]:
    """
    Decode ``data`` lazily into :class:`BeatEvent` objects.

    Non-beat markers still advance the counter but are only yielded when
    ``include_markers`` is true. A leading ``## time resolution: F`` note
    overrides ``sample_rate_hz`` for the tick-to-seconds conversion.
    """
    if sample_rate_hz <= 0:
        raise ValueError(f"sample_rate_hz must be > 0, got {sample_rate_hz}")
    rate = float(sample_rate_hz)
    first = True

    for raw in _iter_raw(bytes(data)):
        aux = _decode_aux(raw.aux)
        if first and raw.code == NOTE and aux:
            match = _RESOLUTION_RE.search(aux)
            if match and float(match.group(1)) > 0:
                rate = float(match.group(1))
                logger.debug("Annotation time resolution set to %.3f Hz", rate)
        first = False

        beat_type = beat_type_for_code(raw.code)
        if not beat_type.is_beat and not include_markers:
            continue
        yield BeatEvent(
            time_s=raw.sample / rate,
            beat_type=beat_type,
            code=raw.code,
            sample=raw.sample,
            aux=aux,
        )


def decode_annotations(
    data: bytes,
    sample_rate_hz: float = DEFAULT_ANNOTATION_RATE_HZ,
    *,
    include_markers: bool = False,
) -> Tuple[BeatEvent, ...]:
    """Decode the whole stream; see :func:`iter_annotations`."""
    return tuple(iter_annotations(data, sample_rate_hz, include_markers=include_markers))


__all__ = [
    "ANNOTATION_SYMBOLS",
    "DEFAULT_ANNOTATION_RATE_HZ",
    "beat_type_for_code",
    "decode_annotations",
    "iter_annotations",
]
