"""Exception types raised by the lineage viewer."""

from typing import Optional


class LineageViewerError(Exception):
    """Base class for lineage viewer errors."""


class LineageLoadError(LineageViewerError):
    """The primary lineage dataset is missing or could not be parsed.

    This error is fatal for the current view; the message names the file and
    product so the user can fix the data and retry.
    """

    def __init__(self, filename: str, reason: str, product: Optional[str] = None):
        self.filename = filename
        self.reason = reason
        self.product = product
        where = f"{filename} ({product})" if product else filename
        super().__init__(f"Error loading {where}: {reason}")


class InvalidRequestError(LineageViewerError):
    """A request was rejected before any side effect (bad filename, missing field)."""


class SchemaSaveError(LineageViewerError):
    """The schema storage API was unreachable or reported a failure."""
