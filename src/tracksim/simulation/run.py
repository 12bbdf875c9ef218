"""SimulationRun — per-run counters and random state passed into every tick."""

from __future__ import annotations

import random
from dataclasses import dataclass, field

from tracksim.simulation.faults import OmissionPolicy


@dataclass
class SimulationRun:
    """Context for one simulation run.

    A fresh instance gives a clean restart; tests build one per case.

    Attributes:
        rng: Random source for jitter and omission draws.
        omission: Omission policy, or None when dropping is disabled.
        tick_count: Ticks completed so far.
        samples_emitted: Samples the sink accepted.
        samples_rejected: Samples the sink refused individually.
        emit_failures: Ticks whose emission raised.
    """

    rng: random.Random = field(default_factory=random.Random)
    omission: OmissionPolicy | None = None
    tick_count: int = 0
    samples_emitted: int = 0
    samples_rejected: int = 0
    emit_failures: int = 0

    @classmethod
    def create(
        cls,
        seed: int | None = None,
        omission: bool = False,
        omission_window_ticks: int = 10,
        omission_recovery_ticks: int = 10,
    ) -> SimulationRun:
        policy = OmissionPolicy(omission_window_ticks, omission_recovery_ticks) if omission else None
        return cls(rng=random.Random(seed), omission=policy)
