"""Output formatters for lineage views."""

from .json_formatter import JSONFormatter, build_snapshot, build_table_lineage
from .console_formatter import ConsoleFormatter

__all__ = ["JSONFormatter", "ConsoleFormatter", "build_snapshot", "build_table_lineage"]
