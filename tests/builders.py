"""Byte-level builders for signal containers and annotation streams used in tests."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np


@dataclass
class ChannelDef:
    label: str
    digital: np.ndarray
    samples_per_record: int = 360
    physical_min: str = "-5"
    physical_max: str = "5"
    digital_min: str = "-2048"
    digital_max: str = "2047"
    unit: str = "mV"


def _field(value: str, width: int) -> bytes:
    raw = value.encode("latin-1")[:width]
    return raw.ljust(width, b" ")


def build_edf_bytes(
    channels: Sequence[ChannelDef],
    *,
    record_duration: str = "1",
    record_count: Optional[str] = None,
    version: str = "0",
    header_bytes: Optional[str] = None,
    channel_count: Optional[str] = None,
    start_date: str = "01.02.03",
    start_time: str = "04.05.06",
) -> bytes:
    """Serialise channels into a signal container (field-major descriptors)."""
    n = len(channels)
    spr = [ch.samples_per_record for ch in channels]
    records = len(channels[0].digital) // spr[0] if channels else 0

    top = b"".join(
        [
            _field(version, 8),
            _field("X X X TEST", 80),
            _field("Startdate X X X builder", 80),
            _field(start_date, 8),
            _field(start_time, 8),
            _field(header_bytes if header_bytes is not None else str(256 * (n + 1)), 8),
            _field("", 44),
            _field(record_count if record_count is not None else str(records), 8),
            _field(record_duration, 8),
            _field(channel_count if channel_count is not None else str(n), 4),
        ]
    )
    assert len(top) == 256

    columns: List[Tuple[str, int, Iterable[str]]] = [
        ("label", 16, (ch.label for ch in channels)),
        ("transducer", 80, ("AgAgCl electrode" for _ in channels)),
        ("unit", 8, (ch.unit for ch in channels)),
        ("physical_min", 8, (ch.physical_min for ch in channels)),
        ("physical_max", 8, (ch.physical_max for ch in channels)),
        ("digital_min", 8, (ch.digital_min for ch in channels)),
        ("digital_max", 8, (ch.digital_max for ch in channels)),
        ("prefiltering", 80, ("" for _ in channels)),
        ("samples_per_record", 8, (str(s) for s in spr)),
        ("reserved", 32, ("" for _ in channels)),
    ]
    descriptors = b"".join(_field(value, width) for _, width, values in columns for value in values)

    body = bytearray()
    for rec in range(records):
        for ch, s in zip(channels, spr):
            chunk = np.asarray(ch.digital[rec * s : (rec + 1) * s], dtype="<i2")
            body += chunk.tobytes()
    return top + descriptors + bytes(body)


def simple_edf(
    seconds: int = 10,
    rate: int = 360,
    labels: Sequence[str] = ("I", "II", "V1"),
    *,
    value: int = 0,
) -> bytes:
    """A constant-valued recording with whole one-second records."""
    return build_edf_bytes(
        [
            ChannelDef(label=label, digital=np.full(seconds * rate, value, dtype=np.int16), samples_per_record=rate)
            for label in labels
        ]
    )


def word(code: int, value: int) -> bytes:
    return struct.pack("<H", ((code & 0x3F) << 10) | (value & 0x3FF))


def skip(delta: int) -> bytes:
    return word(59, 0) + struct.pack("<HH", (delta >> 16) & 0xFFFF, delta & 0xFFFF)


def aux(text: bytes) -> bytes:
    payload = text + (b"\x00" if len(text) % 2 else b"")
    return word(63, len(text)) + payload


def build_annotation_bytes(
    events: Sequence[Tuple[int, int]],
    *,
    terminate: bool = True,
) -> bytes:
    """
    Encode ``(absolute_sample, code)`` pairs, inserting SKIP words for
    deltas that do not fit in 10 bits.
    """
    out = bytearray()
    previous = 0
    for sample, code in events:
        delta = sample - previous
        if delta > 0x3FF:
            out += skip(delta)
            delta = 0
        out += word(code, delta)
        previous = sample
    if terminate:
        out += word(0, 0)
    return bytes(out)


def regular_beats(rate: float, rr_s: float, count: int, *, start_s: float = 0.0, code: int = 1) -> List[Tuple[int, int]]:
    return [(int(round((start_s + i * rr_s) * rate)), code) for i in range(count)]
