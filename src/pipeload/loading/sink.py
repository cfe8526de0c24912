"""
Destination sinks for bulk inserts.

The pipeline only knows the BulkSink protocol. SqlAlchemyBulkSink is the
relational implementation: one executemany INSERT per batch inside a
single transaction.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import Engine, MetaData, Table, create_engine, insert
from sqlalchemy.engine import make_url

from pipeload.config.settings import DatabaseConfig
from pipeload.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class Destination:
    """Schema-qualified destination table."""

    table: str
    schema: str | None = None

    @property
    def qualified_name(self) -> str:
        """Name as shown in messages."""
        return f"{self.schema}.{self.table}" if self.schema else self.table


class BulkSink(Protocol):
    """Anything that can accept a batch of rows for a destination."""

    def write(
        self,
        destination: Destination,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        timeout: int | None = None,
    ) -> int:
        """Insert rows and return the number accepted."""
        ...


def create_destination_engine(config: DatabaseConfig) -> Engine:
    """
    Create the engine for the destination database.

    SQL Server connections through pyodbc get fast_executemany so a
    batch travels as one round trip.
    """
    url = make_url(config.url)
    kwargs: dict[str, Any] = {"future": True}
    if url.drivername == "mssql+pyodbc":
        kwargs["fast_executemany"] = True
    log.info("Creating destination engine", dialect=url.get_backend_name(), database=url.database)
    return create_engine(url, **kwargs)


class SqlAlchemyBulkSink:
    """
    Bulk sink on a SQLAlchemy engine.

    The destination table is reflected for every batch so bind types
    (dates, decimals, booleans) follow the real column definitions.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def _reflect(self, destination: Destination) -> Table:
        return Table(
            destination.table,
            MetaData(),
            schema=destination.schema,
            autoload_with=self.engine,
        )

    def write(
        self,
        destination: Destination,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        *,
        timeout: int | None = None,
    ) -> int:
        """Insert all rows in one transaction."""
        if not rows:
            return 0

        table = self._reflect(destination)
        payload = [dict(zip(columns, row, strict=True)) for row in rows]

        with self.engine.begin() as conn:
            dbapi_conn = conn.connection.dbapi_connection
            # pyodbc exposes a per-connection query timeout in seconds
            if timeout is not None and hasattr(dbapi_conn, "timeout"):
                dbapi_conn.timeout = timeout
            conn.execute(insert(table), payload)

        return len(payload)
