"""Runtime configuration for playback, heart-rate estimation, and simulation."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Tuple

import yaml

SPEED_MIN = 0.1
SPEED_MAX = 5.0


@dataclass(slots=True)
class MonitorConfig:
    """
    Tuning knobs for the playback core.

    The defaults match a 360 Hz MIT-BIH style recording shown as a 10 s
    trailing window at a 60 Hz frame rate.
    """

    window_seconds: float = 10.0
    tick_rate_hz: float = 60.0
    initial_speed: float = 1.0
    loop_enabled: bool = True

    hr_max_intervals: int = 8
    hr_lookback_seconds: float = 10.0
    rr_min_s: float = 0.3
    rr_max_s: float = 2.0
    # None means "use the first signal channel's sample rate"
    annotation_sample_rate_hz: Optional[float] = None

    seed: int = 1234
    synthetic_duration_s: float = 60.0
    synthetic_sample_rate_hz: float = 360.0
    synthetic_channels: Tuple[str, ...] = ("I", "II", "V1")
    synthetic_base_hr: float = 75.0

    display_filter_enabled: bool = False
    display_band_low_hz: float = 0.5
    display_band_high_hz: float = 40.0

    pleth_sample_rate_hz: float = 125.0

    def sanitized(self) -> MonitorConfig:
        """Return a copy with derived limits applied."""
        rr_min = max(0.05, float(self.rr_min_s))
        rr_max = max(rr_min + 0.05, float(self.rr_max_s))
        ann_rate = self.annotation_sample_rate_hz
        if ann_rate is not None:
            ann_rate = float(ann_rate)
            if ann_rate <= 0:
                ann_rate = None
        low = max(0.01, float(self.display_band_low_hz))
        channels = tuple(str(c) for c in (self.synthetic_channels or ())) or ("I", "II", "V1")
        return MonitorConfig(
            window_seconds=max(0.5, float(self.window_seconds)),
            tick_rate_hz=max(1.0, float(self.tick_rate_hz)),
            initial_speed=min(SPEED_MAX, max(SPEED_MIN, float(self.initial_speed))),
            loop_enabled=bool(self.loop_enabled),
            hr_max_intervals=max(1, int(self.hr_max_intervals)),
            hr_lookback_seconds=max(1.0, float(self.hr_lookback_seconds)),
            rr_min_s=rr_min,
            rr_max_s=rr_max,
            annotation_sample_rate_hz=ann_rate,
            seed=int(self.seed),
            synthetic_duration_s=max(1.0, float(self.synthetic_duration_s)),
            synthetic_sample_rate_hz=max(50.0, float(self.synthetic_sample_rate_hz)),
            synthetic_channels=channels,
            synthetic_base_hr=min(150.0, max(40.0, float(self.synthetic_base_hr))),
            display_filter_enabled=bool(self.display_filter_enabled),
            display_band_low_hz=low,
            display_band_high_hz=max(low + 0.5, float(self.display_band_high_hz)),
            pleth_sample_rate_hz=max(10.0, float(self.pleth_sample_rate_hz)),
        )


def _recognized_fields() -> set[str]:
    """Return the dataclass field names accepted by :class:`MonitorConfig`."""
    return {f.name for f in fields(MonitorConfig)}


def _normalize_mapping(data: Mapping[str, Any]) -> MutableMapping[str, Any]:
    """Flatten a top-level ``monitor`` block into the root mapping."""
    if "monitor" in data and isinstance(data["monitor"], Mapping):
        merged: MutableMapping[str, Any] = {}
        for key, value in data.items():
            if key == "monitor":
                merged.update(value)
            else:
                merged[key] = value
        return merged
    return dict(data)


def config_from_mapping(data: Mapping[str, Any] | None) -> MonitorConfig:
    """Build :class:`MonitorConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return MonitorConfig()
    normalized = _normalize_mapping(data)
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    if "synthetic_channels" in payload and isinstance(payload["synthetic_channels"], str):
        payload["synthetic_channels"] = tuple(
            part.strip() for part in payload["synthetic_channels"].split(",") if part.strip()
        )
    elif "synthetic_channels" in payload:
        payload["synthetic_channels"] = tuple(payload["synthetic_channels"] or ())
    return MonitorConfig(**payload).sanitized()


def load_config(path: str | Path | None) -> MonitorConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to default :class:`MonitorConfig`.
    """
    if path is None:
        return MonitorConfig()
    cfg_path = Path(path)
    if not cfg_path.exists():
        return MonitorConfig()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["MonitorConfig", "SPEED_MAX", "SPEED_MIN", "config_from_mapping", "load_config"]
