"""Synthetic data: ECG recordings and correlated auxiliary vitals.

:mod:`synthetic` stands in for a decoded dataset when none is available;
:mod:`physiology` produces SpO2, blood pressure, respiration, and
temperatures every tick from an explicit :class:`SimulationState`.
"""

from .physiology import PhysiologicalSimulator, PhysiologyParams, SimulationState
from .synthetic import SyntheticParams, SyntheticSignalGenerator, generate_recording

__all__ = [
    "PhysiologicalSimulator",
    "PhysiologyParams",
    "SimulationState",
    "SyntheticParams",
    "SyntheticSignalGenerator",
    "generate_recording",
]
