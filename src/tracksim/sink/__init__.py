"""Telemetry sink — Elasticsearch client, schema, provisioning, emitters."""

from tracksim.sink.elasticsearch import ElasticsearchSink
from tracksim.sink.emitter import BatchEmitter, BulkEmitter, DocumentEmitter, LogEmitter
from tracksim.sink.provision import ConsoleConfirm, StaticConfirm, provision_index
from tracksim.sink.schema import build_schema

__all__ = [
    "BatchEmitter",
    "BulkEmitter",
    "ConsoleConfirm",
    "DocumentEmitter",
    "ElasticsearchSink",
    "LogEmitter",
    "StaticConfirm",
    "build_schema",
    "provision_index",
]
