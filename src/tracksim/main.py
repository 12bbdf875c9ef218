"""tracksim — process entry point.

Startup order:
  1. Settings (env/.env, then CLI flags)
  2. Load tracks            — fatal on any problem
  3. Ping + provision index — fatal if unreachable; may prompt
  4. Tick loop until SIGINT/SIGTERM or --max-ticks

Usage:
    tracksim --tracks tracks.json --index tracks --tick-ms 500
    tracksim --tracks tracks.json --dry-run --max-ticks 10
"""

from __future__ import annotations

import argparse
import signal
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from tracksim import __version__
from tracksim.config import Settings
from tracksim.errors import TracksimError
from tracksim.geo.geometry import DistanceUnit
from tracksim.layers.geojson import load_tracks
from tracksim.simulation.engine import TickEngine, run_once
from tracksim.simulation.run import SimulationRun
from tracksim.simulation.scheduler import PeriodicScheduler
from tracksim.sink.elasticsearch import ElasticsearchSink
from tracksim.sink.emitter import BatchEmitter, BulkEmitter, DocumentEmitter, LogEmitter
from tracksim.sink.provision import Confirm, ConsoleConfirm, StaticConfirm, provision_index

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {message}"


def configure_logging(level: str = "INFO") -> None:
    """Replace loguru's default handler with one at ``level``."""
    logger.remove()
    logger.add(sys.stderr, level=level, format=_LOG_FORMAT)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_argparser() -> argparse.ArgumentParser:
    # Only flags the user actually passed end up in the namespace, so
    # everything else falls through to env/.env/defaults.
    p = argparse.ArgumentParser(
        prog="tracksim",
        description="Move simulated vehicles along GeoJSON tracks and write their "
                    "positions to an Elasticsearch index.",
        argument_default=argparse.SUPPRESS,
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--tracks", dest="tracks_file", help="GeoJSON file of LineString tracks.")
    p.add_argument("--index", dest="index_name", help="Target index name.")
    p.add_argument("--es-url", dest="es_url", help="Elasticsearch URL.")
    p.add_argument("--es-username", dest="es_username")
    p.add_argument("--es-password", dest="es_password")
    p.add_argument("--es-api-key", dest="es_api_key", help="API key (overrides basic auth).")
    p.add_argument("--verify-tls", dest="es_verify_tls", action="store_true",
                   help="Verify the cluster's TLS certificate.")
    p.add_argument("--tick-ms", dest="tick_ms", type=int, help="Tick period in milliseconds.")
    p.add_argument("--speed", type=float, help="Travel speed in distance units per hour.")
    p.add_argument("--unit", dest="distance_unit", choices=[u.value for u in DistanceUnit],
                   help="Distance unit for --speed.")
    p.add_argument("--jitter-ms", dest="jitter_window_ms", type=float,
                   help="Add a jittered_timestamp up to this many ms in the past.")
    p.add_argument("--time-series", dest="time_series", action="store_true",
                   help="Create the index in time-series mode.")
    p.add_argument("--omission", action="store_true",
                   help="Periodically drop one entity from the batch.")
    p.add_argument("--omission-window", dest="omission_window_ticks", type=int,
                   help="Ticks an entity stays dropped.")
    p.add_argument("--omission-recovery", dest="omission_recovery_ticks", type=int,
                   help="Full-batch ticks between outages.")
    p.add_argument("--display-heading-flip", dest="heading_display_flip", action="store_true",
                   help="Also emit a counter-clockwise display_heading field.")
    p.add_argument("--per-document", dest="bulk", action="store_const", const=False,
                   help="One index request per sample instead of one bulk per tick.")
    recreate = p.add_mutually_exclusive_group()
    recreate.add_argument("--yes", dest="recreate", action="store_const", const="always",
                          help="Recreate an existing index without asking.")
    recreate.add_argument("--keep-index", dest="recreate", action="store_const", const="never",
                          help="Keep an existing index without asking.")
    p.add_argument("--dry-run", dest="dry_run", action="store_true",
                   help="Log documents instead of sending them.")
    p.add_argument("--max-ticks", dest="max_ticks", type=int, help="Stop after N ticks.")
    p.add_argument("--seed", type=int, help="Random seed for jitter and omission.")
    p.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ...")
    return p


def parse_settings(argv: Optional[list[str]] = None) -> Settings:
    args = build_argparser().parse_args(argv)
    return Settings(**vars(args))


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------

@dataclass
class Simulator:
    """Everything one run needs, built and ready to loop."""

    engine: TickEngine
    emitter: BatchEmitter
    run: SimulationRun
    scheduler: PeriodicScheduler
    sink: ElasticsearchSink | None = None

    def close(self) -> None:
        if self.sink is not None:
            self.sink.close()


def confirm_for(settings: Settings) -> Confirm:
    if settings.recreate == "always":
        return StaticConfirm(True)
    if settings.recreate == "never":
        return StaticConfirm(False)
    return ConsoleConfirm()


def build_simulator(
    settings: Settings,
    confirm: Confirm | None = None,
    sink: ElasticsearchSink | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Simulator:
    """Load tracks, provision the index, and assemble the tick loop.

    Raises TracksimError subclasses for every fatal startup problem.
    """
    tracks = load_tracks(settings.tracks_file)
    engine = TickEngine(
        tracks,
        speed=settings.speed,
        unit=settings.distance_unit,
        jitter_window_ms=settings.jitter_window_ms,
        heading_display_flip=settings.heading_display_flip,
        clock=clock,
    )
    sim_run = SimulationRun.create(
        seed=settings.seed,
        omission=settings.omission,
        omission_window_ticks=settings.omission_window_ticks,
        omission_recovery_ticks=settings.omission_recovery_ticks,
    )

    emitter: BatchEmitter
    if settings.dry_run:
        logger.info("Dry run: documents are logged, not sent")
        sink = None
        emitter = LogEmitter()
    else:
        sink = sink or ElasticsearchSink.from_settings(settings)
        try:
            provision_index(
                sink,
                settings.index_name,
                confirm or confirm_for(settings),
                time_series=settings.time_series,
            )
        except (TracksimError, KeyboardInterrupt):
            sink.close()
            raise
        if settings.bulk:
            emitter = BulkEmitter(sink, settings.index_name)
        else:
            emitter = DocumentEmitter(sink, settings.index_name)

    scheduler = PeriodicScheduler(
        lambda: run_once(engine, emitter, sim_run),
        period_ms=settings.tick_ms,
        max_ticks=settings.max_ticks,
    )
    return Simulator(engine=engine, emitter=emitter, run=sim_run, scheduler=scheduler, sink=sink)


def _install_signal_handlers(scheduler: PeriodicScheduler) -> dict:
    """Route SIGINT/SIGTERM to scheduler.stop().  Returns the previous handlers."""
    def _handler(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping after the current tick")
        scheduler.stop()

    previous = {}
    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, _handler)
    return previous


def main(argv: Optional[list[str]] = None) -> int:
    try:
        settings = parse_settings(argv)
    except ValidationError as e:
        configure_logging()
        logger.error(f"Invalid configuration:\n{e}")
        return 2

    configure_logging(settings.log_level)
    logger.info(
        f"tracksim {__version__}: {settings.tracks_file} -> "
        f"{'(dry run)' if settings.dry_run else f'{settings.es_url}/{settings.index_name}'}, "
        f"tick {settings.tick_ms} ms, speed {settings.speed} {settings.distance_unit.value}/h"
    )

    try:
        sim = build_simulator(settings)
    except TracksimError as e:
        logger.error(f"Startup failed: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted during startup")
        return 130

    previous = _install_signal_handlers(sim.scheduler)
    try:
        sim.scheduler.run()
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
        sim.close()

    logger.info(
        f"Done: {sim.run.tick_count} ticks, {sim.run.samples_emitted} samples emitted, "
        f"{sim.run.samples_rejected} rejected, "
        f"{sim.run.emit_failures} failed emissions"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
