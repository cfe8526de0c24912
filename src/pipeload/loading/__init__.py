"""
Loading layer: bulk inserts, table lifecycle and post-install scripts.
"""

from pipeload.loading.bulk import BulkLoader
from pipeload.loading.post_install import run_post_install_scripts
from pipeload.loading.sink import (
    BulkSink,
    Destination,
    SqlAlchemyBulkSink,
    create_destination_engine,
)
from pipeload.loading.tables import TableManager, destination_columns, storage_type

__all__ = [
    "BulkLoader",
    "BulkSink",
    "Destination",
    "SqlAlchemyBulkSink",
    "TableManager",
    "create_destination_engine",
    "destination_columns",
    "run_post_install_scripts",
    "storage_type",
]
