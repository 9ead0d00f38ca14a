"""Batch processing of package identifiers.

Identifiers are processed one at a time, in order. A failing identifier
is recorded and the batch moves on to the next one.
"""

import shutil
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TypeVar

from acp.errors import PluginToolError

TEMP_DIR_PREFIX = "acp-"

T = TypeVar("T")


@dataclass
class BatchFailure:
    """An identifier whose operation failed."""

    identifier: str
    error: PluginToolError


@dataclass
class BatchResult(Generic[T]):
    """Result of running an operation over several identifiers."""

    succeeded: list[tuple[str, T]] = field(default_factory=list)
    failed: list[BatchFailure] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        """Return True if no identifier failed."""
        return len(self.failed) == 0


@contextmanager
def identifier_workspace(temp_dir: Path, index: int) -> Iterator[Path]:
    """Provide a scratch directory for one identifier, removed afterwards."""
    work_dir = temp_dir / f"work-{index}"
    work_dir.mkdir()
    try:
        yield work_dir
    finally:
        shutil.rmtree(work_dir, ignore_errors=True)


def run_batch(
    identifiers: list[str],
    operation: Callable[[str, Path], T],
    on_start: Callable[[str], None] | None = None,
    on_success: Callable[[str, T], None] | None = None,
    on_failure: Callable[[str, PluginToolError], None] | None = None,
) -> BatchResult[T]:
    """Run operation for each identifier inside one temporary directory.

    The temporary directory is created once for the batch and removed when
    the batch ends, however it ends. Each identifier gets its own work
    directory inside it, removed as soon as its operation finishes.

    Tool errors are caught per identifier. Any other exception aborts the
    batch and propagates.

    Args:
        identifiers: Identifiers to process, in order.
        operation: Called with (identifier, work_dir).
        on_start: Called before each identifier is processed.
        on_success: Called with each identifier and its operation result.
        on_failure: Called with each failed identifier and its error.

    Returns:
        BatchResult listing succeeded and failed identifiers.
    """
    result: BatchResult[T] = BatchResult()

    with tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX) as tmp:
        temp_dir = Path(tmp)
        for index, identifier in enumerate(identifiers):
            if on_start is not None:
                on_start(identifier)
            try:
                with identifier_workspace(temp_dir, index) as work_dir:
                    value = operation(identifier, work_dir)
            except PluginToolError as e:
                result.failed.append(BatchFailure(identifier=identifier, error=e))
                if on_failure is not None:
                    on_failure(identifier, e)
                continue

            result.succeeded.append((identifier, value))
            if on_success is not None:
                on_success(identifier, value)

    return result
