"""Minimal helpers for opt-in debug/instrumentation hooks."""

from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from typing import Callable, Iterator

DEBUG_ECGMONITOR = os.getenv("ECGMONITOR_DEBUG", "").lower() in {"1", "true", "yes", "on"}


def debug_enabled() -> bool:
    """Return True when decode timing should be reported."""
    return DEBUG_ECGMONITOR


@contextmanager
def time_block(label: str, *, emitter: Callable[[str], None] | None = None) -> Iterator[None]:
    """
    Context manager that emits elapsed time when debugging is enabled.

    Used around dataset decoding, which is the only step that can take a
    noticeable amount of time.
    """
    if not debug_enabled():
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        target = emitter or (lambda msg: print(msg, file=sys.stderr, flush=True))
        target(f"[DEBUG] {label} took {elapsed_ms:.3f} ms")
