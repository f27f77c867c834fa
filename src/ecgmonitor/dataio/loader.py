"""Utilities for reading recording files off disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

# Companion annotation files are looked up by these suffixes, in order.
ANNOTATION_SUFFIXES: Sequence[str] = (".qrs", ".atr", ".ann")


@dataclass(frozen=True)
class DatasetBytes:
    signal: bytes
    annotations: Optional[bytes] = None
    signal_path: Optional[Path] = None
    annotation_path: Optional[Path] = None


def find_annotation_file(signal_path: Path) -> Optional[Path]:
    """
    Return the companion annotation file for ``signal_path`` if one exists.

    Both ``r01.edf.qrs`` and ``r01.qrs`` naming styles are recognised.
    """
    for suffix in ANNOTATION_SUFFIXES:
        for candidate in (
            signal_path.with_name(signal_path.name + suffix),
            signal_path.with_suffix(suffix),
        ):
            if candidate.is_file():
                return candidate
    return None


def read_dataset(
    signal_path: str | Path,
    annotation_path: str | Path | None = None,
    *,
    discover_annotations: bool = True,
) -> DatasetBytes:
    """
    Read a signal file and (optionally) its annotation stream into memory.

    Missing annotation files are not an error: the result simply carries
    ``annotations=None``. A missing signal file raises ``FileNotFoundError``.
    """
    sig_path = Path(signal_path).expanduser()
    signal = sig_path.read_bytes()

    ann_path: Optional[Path] = None
    if annotation_path is not None:
        ann_path = Path(annotation_path).expanduser()
    elif discover_annotations:
        ann_path = find_annotation_file(sig_path)

    annotations: Optional[bytes] = None
    if ann_path is not None:
        if ann_path.is_file():
            annotations = ann_path.read_bytes()
        else:
            logger.warning("Annotation file %s not found; continuing without beats", ann_path)
            ann_path = None

    logger.debug(
        "Read %d signal bytes from %s (annotations: %s)",
        len(signal),
        sig_path,
        ann_path or "none",
    )
    return DatasetBytes(
        signal=signal,
        annotations=annotations,
        signal_path=sig_path,
        annotation_path=ann_path,
    )
