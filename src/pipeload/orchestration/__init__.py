"""
Orchestration of file imports.
"""

from pipeload.orchestration.orchestrator import (
    FileImportResult,
    FileStatus,
    ImportOrchestrator,
    ImportState,
    ImportSummary,
    RowBuffer,
    SummaryEntry,
    parse_file_name,
)

__all__ = [
    "FileImportResult",
    "FileStatus",
    "ImportOrchestrator",
    "ImportState",
    "ImportSummary",
    "RowBuffer",
    "SummaryEntry",
    "parse_file_name",
]
