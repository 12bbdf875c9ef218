"""One-time index provisioning before the tick loop starts.

Steps:
  1. Ping the sink; unreachable is fatal (SinkUnavailableError).
  2. If the index is missing, create it with the schema.
  3. If it exists, ask the Confirm capability whether to delete and
     recreate it.  Declining keeps the existing index and mappings as-is;
     the simulator then writes into whatever schema is there.
"""

from __future__ import annotations

import sys
from typing import Protocol, TextIO

from loguru import logger

from tracksim.errors import SinkUnavailableError
from tracksim.sink.schema import build_schema


class Confirm(Protocol):
    def confirm(self, prompt: str) -> bool: ...


class ProvisionTarget(Protocol):
    def ping(self) -> bool: ...

    def exists(self, name: str) -> bool: ...

    def create(self, name: str, schema: dict) -> None: ...

    def delete(self, name: str) -> None: ...


class ConsoleConfirm:
    """Asks on the terminal; only ``y`` or ``Y`` accepts."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None) -> None:
        self._stdin = stdin or sys.stdin
        self._stdout = stdout or sys.stdout

    def confirm(self, prompt: str) -> bool:
        self._stdout.write(f"{prompt} [y|N] ")
        self._stdout.flush()
        answer = self._stdin.readline()
        return answer.strip() in ("y", "Y")


class StaticConfirm:
    """Always gives the same answer (``--yes`` / ``--keep-index``, tests)."""

    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.prompts: list[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        return self.answer


def provision_index(
    sink: ProvisionTarget,
    index_name: str,
    confirm: Confirm,
    time_series: bool = False,
) -> bool:
    """Make sure ``index_name`` exists.  Returns True if it was (re)created."""
    if not sink.ping():
        raise SinkUnavailableError("Sink did not answer ping")

    schema = build_schema(time_series=time_series)

    if not sink.exists(index_name):
        logger.info(f"Creating index {index_name}" + (" (time series)" if time_series else ""))
        sink.create(index_name, schema)
        return True

    if confirm.confirm(f"Index {index_name} exists. Delete and recreate?"):
        logger.info(f"Deleting index {index_name}")
        sink.delete(index_name)
        logger.info(f"Recreating index {index_name}" + (" (time series)" if time_series else ""))
        sink.create(index_name, schema)
        return True

    logger.info(f"Retaining existing index {index_name}")
    return False
