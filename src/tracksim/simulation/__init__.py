"""Simulation subsystem — travel state, tick engine, fault injection, scheduler."""

from .engine import TickEngine, run_once
from .faults import OmissionPolicy, jitter_timestamp
from .run import SimulationRun
from .scheduler import PeriodicScheduler
from .telemetry import TelemetrySample, format_timestamp
from .travel_state import Direction, TravelState

__all__ = [
    "Direction",
    "OmissionPolicy",
    "PeriodicScheduler",
    "SimulationRun",
    "TelemetrySample",
    "TickEngine",
    "TravelState",
    "format_timestamp",
    "jitter_timestamp",
    "run_once",
]
