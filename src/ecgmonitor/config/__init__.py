"""Configuration objects and helpers for ecgmonitor.

A single YAML document (optionally nested under a ``monitor:`` key) maps onto
:class:`~ecgmonitor.config.runtime.MonitorConfig`, which the playback
controller, heart-rate estimator, and simulators read their tuning from.
"""

from .runtime import MonitorConfig, config_from_mapping, load_config

__all__ = ["MonitorConfig", "config_from_mapping", "load_config"]
