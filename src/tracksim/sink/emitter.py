"""Batch emitters — deliver one tick's samples to the sink.

The engine does not care how a batch is delivered:
  - BulkEmitter: one ``_bulk`` request per tick (default)
  - DocumentEmitter: one index request per sample
  - LogEmitter: no sink at all, documents go to the log (dry runs)

Whole-request failures raise SinkError for run_once to log.  Rejected
individual documents are logged here and do not raise.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Protocol

from loguru import logger

from tracksim.errors import SinkError
from tracksim.simulation.telemetry import TelemetrySample
from tracksim.sink.elasticsearch import ElasticsearchSink


class BatchEmitter(Protocol):
    def emit(self, batch: Sequence[TelemetrySample]) -> int:
        """Deliver the batch and return how many samples the sink accepted."""
        ...


class BulkEmitter:
    """Writes the whole batch with a single bulk request."""

    def __init__(self, sink: ElasticsearchSink, index_name: str) -> None:
        self._sink = sink
        self.index_name = index_name

    def emit(self, batch: Sequence[TelemetrySample]) -> int:
        if not batch:
            return 0
        rejected = self._sink.bulk(self.index_name, [s.to_document() for s in batch])
        if rejected:
            logger.warning(
                f"{len(rejected)}/{len(batch)} documents rejected by {self.index_name}: {rejected[0]}"
            )
        return len(batch) - len(rejected)


class DocumentEmitter:
    """Writes each sample with its own index request."""

    def __init__(self, sink: ElasticsearchSink, index_name: str) -> None:
        self._sink = sink
        self.index_name = index_name

    def emit(self, batch: Sequence[TelemetrySample]) -> int:
        failed = 0
        for sample in batch:
            try:
                self._sink.index(self.index_name, sample.to_document())
            except SinkError as e:
                failed += 1
                logger.warning(f"Failed to index sample for {sample.entity_id}: {e}")
        if batch and failed == len(batch):
            raise SinkError(f"all {failed} index requests to {self.index_name} failed")
        return len(batch) - failed


class LogEmitter:
    """Logs documents instead of sending them."""

    def __init__(self) -> None:
        self.emitted = 0

    def emit(self, batch: Sequence[TelemetrySample]) -> int:
        for sample in batch:
            logger.info(json.dumps(sample.to_document()))
        self.emitted += len(batch)
        return len(batch)
