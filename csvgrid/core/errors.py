"""
Exception hierarchy for csvgrid.

Every error raised by the export pipeline derives from CsvGridError, so
callers can catch a single type. Errors carry optional context (the file
path, the batch number, the query offset) which is rendered into the message.
"""

from typing import Any, Dict


class CsvGridError(Exception):
    """Base class for all csvgrid errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigurationError(CsvGridError, ValueError):
    """Invalid columns, formats, options or job configuration."""


class ExportIOError(CsvGridError):
    """An output file could not be created, written or closed."""


class DataSourceError(CsvGridError):
    """Fetching a batch of rows from the data source failed."""


class StateError(CsvGridError):
    """An object was used in a state that does not allow the operation."""


class WriterStateError(StateError):
    """A write was attempted on a writer that is not open."""


class AmbiguousResultError(StateError):
    """A single file was requested from a result holding several files."""
