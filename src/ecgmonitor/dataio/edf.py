"""
Decoder for the EDF-style multi-channel biosignal container.

Layout (all header fields are space-padded ASCII)::

    top header (256 bytes)
        version 8 | patient id 80 | recording id 80 | start date 8
        start time 8 | header bytes 8 | reserved 44 | record count 8
        record duration 8 | channel count 4
    channel descriptors (256 bytes per channel, stored field-major)
        label 16 | transducer 80 | unit 8 | physical min 8 | physical max 8
        digital min 8 | digital max 8 | prefiltering 80 | samples/record 8
        reserved 32
    data records
        for each record, for each channel: samples/record int16 (little endian)

``decode_signal_file()`` works on an in-memory buffer and never touches the
filesystem; see :mod:`ecgmonitor.dataio.loader` for that.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

from ..core.models import ChannelSpec, DecodedChannel, SignalHeader
from ..errors import ParseError, ParseErrorKind

logger = logging.getLogger(__name__)

TOP_HEADER_BYTES = 256
CHANNEL_HEADER_BYTES = 256
SAMPLE_DTYPE = np.dtype("<i2")

# (field name, width) in file order
_TOP_FIELDS: Tuple[Tuple[str, int], ...] = (
    ("version", 8),
    ("patient_id", 80),
    ("recording_id", 80),
    ("start_date", 8),
    ("start_time", 8),
    ("header_bytes", 8),
    ("reserved", 44),
    ("record_count", 8),
    ("record_duration", 8),
    ("channel_count", 4),
)

_CHANNEL_FIELDS: Tuple[Tuple[str, int], ...] = (
    ("label", 16),
    ("transducer", 80),
    ("unit", 8),
    ("physical_min", 8),
    ("physical_max", 8),
    ("digital_min", 8),
    ("digital_max", 8),
    ("prefiltering", 80),
    ("samples_per_record", 8),
    ("reserved", 32),
)

# Sentinels used when a numeric field is empty or unparsable.
DEFAULT_PHYSICAL_MIN = -2048.0
DEFAULT_PHYSICAL_MAX = 2047.0
DEFAULT_DIGITAL_MIN = -2048
DEFAULT_DIGITAL_MAX = 2047
DEFAULT_SAMPLES_PER_RECORD = 360
DEFAULT_RECORD_DURATION_S = 1.0

N = TypeVar("N", int, float)


@dataclass(frozen=True)
class SignalFile:
    header: SignalHeader
    channels: Tuple[DecodedChannel, ...]

    @property
    def specs(self) -> Tuple[ChannelSpec, ...]:
        return tuple(ch.spec for ch in self.channels)


def _ascii(raw: bytes) -> str:
    return raw.decode("latin-1").strip()


def _number(text: str, parse: Callable[[str], N], default: N, *, field_name: str) -> N:
    if text:
        try:
            value = parse(text)
        except ValueError:
            pass
        else:
            if math.isfinite(value):
                return value
    logger.warning("Unparsable %s field %r; using %r", field_name, text, default)
    return default


def _parse_int(text: str) -> int:
    # Some writers emit "360.0" or "+0" in integer fields.
    value = float(text)
    if not value.is_integer():
        raise ValueError(text)
    return int(value)


def _parse_start(date_raw: str, time_raw: str) -> Optional[datetime]:
    """Parse ``dd.mm.yy`` / ``hh.mm.ss`` using the EDF 1985 clipping date."""
    try:
        day, month, year = (int(part) for part in date_raw.split("."))
        hour, minute, second = (int(part) for part in time_raw.split("."))
    except ValueError:
        return None
    year += 1900 if year >= 85 else 2000
    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


def _split_fields(
    data: bytes, offset: int, fields: Sequence[Tuple[str, int]], count: int
) -> Tuple[dict, int]:
    """Read ``fields`` field-major for ``count`` entries starting at ``offset``."""
    out: dict = {}
    for name, width in fields:
        values: List[str] = []
        for _ in range(count):
            values.append(_ascii(data[offset : offset + width]))
            offset += width
        out[name] = values
    return out, offset


def decode_header(data: bytes) -> SignalHeader:
    """Parse and validate the fixed top header."""
    if len(data) < TOP_HEADER_BYTES:
        raise ParseError(
            ParseErrorKind.TRUNCATED,
            f"need {TOP_HEADER_BYTES} header bytes, got {len(data)}",
        )
    raw, _ = _split_fields(data, 0, _TOP_FIELDS, 1)
    top = {name: values[0] for name, values in raw.items()}

    if top["version"] != "0":
        raise ParseError(
            ParseErrorKind.BAD_MAGIC_OR_VERSION,
            f"unsupported version field {top['version']!r}",
        )

    try:
        channel_count = _parse_int(top["channel_count"])
    except ValueError:
        raise ParseError(
            ParseErrorKind.INVALID_CHANNEL_COUNT,
            f"channel count {top['channel_count']!r} is not a number",
        ) from None
    if channel_count <= 0:
        raise ParseError(
            ParseErrorKind.INVALID_CHANNEL_COUNT,
            f"channel count must be positive, got {channel_count}",
        )

    expected_header_bytes = TOP_HEADER_BYTES + CHANNEL_HEADER_BYTES * channel_count
    header_bytes = _number(
        top["header_bytes"], _parse_int, expected_header_bytes, field_name="header_bytes"
    )
    if header_bytes != expected_header_bytes:
        raise ParseError(
            ParseErrorKind.INVALID_CHANNEL_COUNT,
            f"header declares {header_bytes} bytes but {channel_count} channels "
            f"require {expected_header_bytes}",
        )

    record_count = _number(top["record_count"], _parse_int, -1, field_name="record_count")
    record_duration = _number(
        top["record_duration"], float, DEFAULT_RECORD_DURATION_S, field_name="record_duration"
    )
    if record_duration <= 0:
        logger.warning(
            "Non-positive record duration %r; using %r", record_duration, DEFAULT_RECORD_DURATION_S
        )
        record_duration = DEFAULT_RECORD_DURATION_S

    return SignalHeader(
        version=top["version"],
        patient_id=top["patient_id"],
        recording_id=top["recording_id"],
        start=_parse_start(top["start_date"], top["start_time"]),
        start_date_raw=top["start_date"],
        start_time_raw=top["start_time"],
        header_bytes=header_bytes,
        record_count=record_count,
        record_duration_s=record_duration,
        channel_count=channel_count,
    )


def decode_channel_specs(data: bytes, header: SignalHeader) -> Tuple[ChannelSpec, ...]:
    """Parse the N channel descriptor blocks that follow the top header."""
    if len(data) < header.header_bytes:
        raise ParseError(
            ParseErrorKind.TRUNCATED,
            f"need {header.header_bytes} header bytes for {header.channel_count} "
            f"channels, got {len(data)}",
        )
    raw, _ = _split_fields(data, TOP_HEADER_BYTES, _CHANNEL_FIELDS, header.channel_count)

    specs: List[ChannelSpec] = []
    for idx in range(header.channel_count):
        label = raw["label"][idx] or f"ch{idx}"
        samples_per_record = _number(
            raw["samples_per_record"][idx],
            _parse_int,
            DEFAULT_SAMPLES_PER_RECORD,
            field_name=f"{label}.samples_per_record",
        )
        if samples_per_record <= 0:
            raise ParseError(
                ParseErrorKind.INVALID_CHANNEL_COUNT,
                f"channel {label!r} declares {samples_per_record} samples per record",
            )
        specs.append(
            ChannelSpec(
                label=label,
                transducer=raw["transducer"][idx],
                unit=raw["unit"][idx],
                physical_min=_number(
                    raw["physical_min"][idx], float, DEFAULT_PHYSICAL_MIN,
                    field_name=f"{label}.physical_min",
                ),
                physical_max=_number(
                    raw["physical_max"][idx], float, DEFAULT_PHYSICAL_MAX,
                    field_name=f"{label}.physical_max",
                ),
                digital_min=_number(
                    raw["digital_min"][idx], _parse_int, DEFAULT_DIGITAL_MIN,
                    field_name=f"{label}.digital_min",
                ),
                digital_max=_number(
                    raw["digital_max"][idx], _parse_int, DEFAULT_DIGITAL_MAX,
                    field_name=f"{label}.digital_max",
                ),
                prefiltering=raw["prefiltering"][idx],
                samples_per_record=samples_per_record,
                record_duration_s=header.record_duration_s,
            )
        )
    return tuple(specs)


def decode_signal_file(data: bytes) -> SignalFile:
    """
    Decode a complete container buffer into header, specs, and digital samples.

    Raises
    ------
    ParseError
        ``TRUNCATED`` when the header or data section is short,
        ``BAD_MAGIC_OR_VERSION`` for a non-zero version field and
        ``INVALID_CHANNEL_COUNT`` for a bad or inconsistent channel count.
    """
    buf = bytes(data)
    header = decode_header(buf)
    specs = decode_channel_specs(buf, header)

    record_samples = sum(spec.samples_per_record for spec in specs)
    record_bytes = record_samples * SAMPLE_DTYPE.itemsize
    available = len(buf) - header.header_bytes

    record_count = header.record_count
    if record_count < 0:
        record_count = available // record_bytes
        logger.info("Record count unknown; %d complete records present", record_count)
        header = replace(header, record_count=record_count)
    elif available < record_count * record_bytes:
        raise ParseError(
            ParseErrorKind.TRUNCATED,
            f"data section holds {available} bytes, {record_count} records "
            f"need {record_count * record_bytes}",
        )

    if record_count == 0:
        samples = np.empty((0, record_samples), dtype=SAMPLE_DTYPE)
    else:
        samples = np.frombuffer(
            buf,
            dtype=SAMPLE_DTYPE,
            count=record_count * record_samples,
            offset=header.header_bytes,
        ).reshape(record_count, record_samples)

    channels: List[DecodedChannel] = []
    start = 0
    for spec in specs:
        stop = start + spec.samples_per_record
        digital = np.array(samples[:, start:stop], dtype=np.int16).reshape(-1)
        channels.append(DecodedChannel(spec=spec, digital=digital))
        start = stop

    logger.debug(
        "Decoded %d channels x %d records (%.1f s)",
        len(channels),
        record_count,
        header.duration_s,
    )
    return SignalFile(header=header, channels=tuple(channels))


__all__ = [
    "SignalFile",
    "decode_channel_specs",
    "decode_header",
    "decode_signal_file",
]
