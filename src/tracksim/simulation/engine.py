"""TickEngine — advances every entity along its track and builds the batch.

Architecture
------------
The engine is the sole owner of all TravelState records (one per track,
keyed by track id).  It performs no I/O and never sleeps: each call to
``tick(run)`` reads the injected clock once, advances every entity by the
wall-clock time elapsed since its previous tick, and returns the ordered
batch of TelemetrySamples.  Scheduling lives in PeriodicScheduler and
delivery lives in the sink emitters; ``run_once`` glues one tick to one
emission.

Advance rule (per entity, per tick):
  - First tick, or the tick right after a bounce: emit the origin of the
    direction-ordered geometry without moving.
  - Otherwise move ``elapsed_hours * speed`` further along the path.  When
    that reaches the end, emit the endpoint, reset distance to 0 and flip
    the direction, so the entity patrols back and forth instead of
    teleporting to the origin.

Elapsed-time (not fixed-step) advancement keeps distance consistent with
real time even when ticks are late or the process was paused.

Fire and forget:
  State is mutated before the batch reaches the emitter.  An emission
  failure is logged by ``run_once`` and the next tick's batch supersedes
  the lost one; nothing is rolled back or retried.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from loguru import logger

from tracksim.errors import SinkError
from tracksim.geo.geometry import Coordinate, DistanceUnit, PathGeometry, bearing, display_heading
from tracksim.layers.track import Track
from tracksim.simulation.faults import jitter_timestamp
from tracksim.simulation.run import SimulationRun
from tracksim.simulation.telemetry import TelemetrySample, format_timestamp
from tracksim.simulation.travel_state import TravelState

if TYPE_CHECKING:
    from tracksim.sink.emitter import BatchEmitter

_MS_PER_HOUR = 3_600_000.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TickEngine:
    """Moves one entity per track at constant speed and emits samples."""

    def __init__(
        self,
        tracks: Sequence[Track],
        speed: float,
        unit: DistanceUnit | str = DistanceUnit.MILES,
        *,
        jitter_window_ms: float = 0.0,
        heading_display_flip: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if speed <= 0:
            raise ValueError(f"speed must be > 0, got {speed}")
        if jitter_window_ms < 0:
            raise ValueError(f"jitter_window_ms must be >= 0, got {jitter_window_ms}")
        self.speed = float(speed)
        self.unit = DistanceUnit(unit)
        self.jitter_window_ms = float(jitter_window_ms)
        self.heading_display_flip = heading_display_flip
        self._clock = clock or utcnow

        # Declaration order is batch order
        self._tracks: list[Track] = list(tracks)
        self._states: dict[str, TravelState] = {}
        for track in self._tracks:
            if track.track_id in self._states:
                raise ValueError(f"duplicate track id {track.track_id!r}")
            geometry = PathGeometry.build(track.coordinates, self.unit)
            if geometry.length == 0.0:
                logger.warning(f"Track {track.track_id} has zero length; it will bounce in place")
            self._states[track.track_id] = TravelState.for_geometry(track.track_id, geometry)
            logger.debug(
                f"Track {track.track_id}: {len(geometry.coordinates)} points, "
                f"{geometry.length:.3f} {self.unit.value}"
            )

    @property
    def tracks(self) -> list[Track]:
        return list(self._tracks)

    def get_state(self, track_id: str) -> TravelState:
        return self._states[track_id]

    # -- Advance ------------------------------------------------------------

    def advance(self, state: TravelState, now: datetime) -> Coordinate:
        """Move one entity to ``now`` and return its new position."""
        if state.last_update is None or state.at_start:
            position = state.geometry.origin
            state.at_start = False
        else:
            elapsed_ms = (now - state.last_update).total_seconds() * 1000.0
            # A clock stepped backwards must not move the entity in reverse
            elapsed_hours = max(elapsed_ms, 0.0) / _MS_PER_HOUR
            candidate = state.distance_traveled + elapsed_hours * self.speed
            if not state.geometry.reaches_end(candidate):
                state.distance_traveled = candidate
                position = state.geometry.point_at(candidate)
            else:
                position = state.geometry.point_at(state.length)
                state.reset()
                logger.info(
                    f"Reset track {state.track_id} "
                    f"(traversal {state.traversals}, now {state.direction.value})"
                )

        state.heading = bearing(state.last_position, position)
        state.last_position = position
        state.last_update = now
        return position

    # -- Tick ---------------------------------------------------------------

    def tick(self, run: SimulationRun) -> list[TelemetrySample]:
        """Advance every entity once and return this tick's batch.

        All samples share the single ``now`` read at the start of the tick.
        An omitted entity still advances; only its sample is dropped.
        """
        now = self._clock()
        logger.info(f"[tick {run.tick_count}] generate waypoints at {format_timestamp(now)}")

        omitted = None
        if run.omission is not None:
            omitted = run.omission.next_omitted(len(self._tracks), run.rng)

        batch: list[TelemetrySample] = []
        for idx, track in enumerate(self._tracks):
            state = self._states[track.track_id]
            position = self.advance(state, now)
            logger.debug(f"update track {track.track_id} - {position[0]:.6f},{position[1]:.6f}")
            if idx == omitted:
                continue
            batch.append(self._sample(state, position, now, run))

        run.tick_count += 1
        return batch

    def _sample(
        self,
        state: TravelState,
        position: Coordinate,
        now: datetime,
        run: SimulationRun,
    ) -> TelemetrySample:
        flipped = None
        if self.heading_display_flip and state.heading is not None:
            flipped = display_heading(state.heading)
        return TelemetrySample(
            entity_id=state.track_id,
            position=position,
            speed=self.speed,
            timestamp=now,
            heading=state.heading,
            display_heading=flipped,
            jittered_timestamp=jitter_timestamp(now, self.jitter_window_ms, run.rng),
        )


def run_once(engine: TickEngine, emitter: BatchEmitter, run: SimulationRun) -> list[TelemetrySample]:
    """One scheduled tick: advance the simulation, then hand the batch off.

    Emission errors are logged and swallowed so the scheduler keeps going.
    """
    batch = engine.tick(run)
    try:
        accepted = emitter.emit(batch)
    except SinkError as e:
        run.emit_failures += 1
        logger.warning(f"[tick {run.tick_count - 1}] failed to emit {len(batch)} samples: {e}")
    except Exception:
        run.emit_failures += 1
        logger.exception(f"[tick {run.tick_count - 1}] unexpected error emitting {len(batch)} samples")
    else:
        run.samples_emitted += accepted
        run.samples_rejected += len(batch) - accepted
    return batch
