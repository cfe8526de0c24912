"""
Console presentation of import results.
"""

from pipeload.reporting.reporter import SummaryReporter

__all__ = ["SummaryReporter"]
