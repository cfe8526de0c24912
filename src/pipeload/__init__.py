"""
Pipeload: bulk import of pipe-delimited text files.

This package reconstructs multi-line records from delimited text,
converts every field to a typed value with locale-invariant rules and
hands the rows to a relational destination in large batches.
"""

from importlib.metadata import version

__version__ = version("pipeload")

__all__ = ["__version__"]
