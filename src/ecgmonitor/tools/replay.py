#!/usr/bin/env python3
"""
Headless replay driver for the playback core.

Loads a recording (or synthetic data), then calls ``tick()`` at a fixed
cadence without a real clock and logs the vitals once per simulated second::

    ecgmonitor-replay --edf r01.edf --seconds 30 --speed 2
    ecgmonitor-replay --synthetic --seconds 10 --seed 7
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional, Sequence

from ..config.runtime import load_config
from ..core.models import FrameOutput
from ..core.playback import PlaybackController
from ..dataio.loader import read_dataset

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Replay an ECG recording headlessly")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--edf", help="Path to the EDF signal file")
    source.add_argument(
        "--synthetic",
        action="store_true",
        help="Use the synthetic generator instead of a file",
    )
    parser.add_argument(
        "--annotations",
        help="Beat annotation file (default: look next to the EDF file)",
    )
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument(
        "--seconds",
        type=float,
        default=10.0,
        help="Wall-clock seconds to simulate (default: 10)",
    )
    parser.add_argument("--speed", type=float, default=None, help="Playback speed (0.1-5.0)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for synthetic data and vitals")
    parser.add_argument(
        "--tick-rate",
        type=float,
        default=None,
        help="Frames per second to simulate (default: from config, 60)",
    )
    parser.add_argument("--no-loop", action="store_true", help="Stop at the end of the recording")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO)",
    )
    return parser


def format_frame(frame: FrameOutput) -> str:
    vitals = frame.vitals
    hr = "---" if vitals.heart_rate is None else f"{vitals.heart_rate:5.1f}"
    return (
        f"t={frame.cursor_s:7.2f}s [{frame.source.value}] HR={hr} "
        f"SpO2={vitals.spo2:5.1f}% NIBP={vitals.systolic:.0f}/{vitals.diastolic:.0f}"
        f"({vitals.mean_arterial:.0f}) RR={vitals.respiration_rate:4.1f} "
        f"T1={vitals.temp_core:.1f} T2={vitals.temp_peripheral:.1f} "
        f"T3={vitals.temp_skin:.1f} dT={vitals.temp_gradient:.1f}"
    )


def run(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    if args.tick_rate is not None:
        config = replace(config, tick_rate_hz=args.tick_rate)
    if args.no_loop:
        config = replace(config, loop_enabled=False)

    controller = PlaybackController(config)
    if args.speed is not None:
        controller.set_speed(args.speed)

    if args.edf and not args.synthetic:
        try:
            dataset = read_dataset(args.edf, args.annotations)
        except OSError as exc:
            logger.error("Cannot read %s: %s", args.edf, exc)
            return 2
        failure = controller.load(dataset.signal, dataset.annotations)
    else:
        failure = controller.load(None)
    if failure is not None:
        logger.warning("Running on synthetic data: %s", failure.message)

    controller.play()
    dt = 1.0 / controller.config.tick_rate_hz
    frames = int(round(args.seconds * controller.config.tick_rate_hz))
    per_second = max(1, int(round(controller.config.tick_rate_hz)))
    for index in range(frames):
        frame = controller.tick(dt)
        if (index + 1) % per_second == 0:
            logger.info("%s", format_frame(frame))
        if not controller.playing:
            logger.info("%s", format_frame(frame))
            break
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
