"""Batch hand-off to a bulk-insert sink."""

from collections.abc import Sequence
from typing import Any

from pipeload.errors import BulkLoadFailure
from pipeload.loading.sink import BulkSink, Destination
from pipeload.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_BATCH_SIZE = 10_000
DEFAULT_TIMEOUT_SECONDS = 300


class BulkLoader:
    """
    Writes whole row buffers to a sink.

    There is no retry and no row-by-row fallback: a rejected batch is a
    BulkLoadFailure for the file.

    Args:
        sink: Destination capability.
        batch_size: Rows the orchestrator buffers before each load.
        timeout_seconds: Per-call timeout forwarded to the sink.
    """

    def __init__(
        self,
        sink: BulkSink,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if batch_size < 1:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.sink = sink
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds

    def load(
        self,
        destination: Destination,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
    ) -> int:
        """
        Hand one buffer to the sink.

        Args:
            destination: Target table.
            columns: Column names in row order.
            rows: Typed rows.

        Returns:
            Number of rows the sink accepted.

        Raises:
            BulkLoadFailure: If the sink raises.
        """
        if not rows:
            return 0

        try:
            accepted = self.sink.write(
                destination, columns, rows, timeout=self.timeout_seconds
            )
        except Exception as e:
            log.error(
                "Bulk insert failed",
                destination=destination.qualified_name,
                rows=len(rows),
                error=f"{type(e).__name__}: {e}",
            )
            raise BulkLoadFailure(destination.qualified_name, len(rows), e) from e

        log.info(
            "Bulk insert complete",
            destination=destination.qualified_name,
            rows=accepted,
        )
        return accepted
