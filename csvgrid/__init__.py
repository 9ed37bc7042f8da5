"""
csvgrid - streaming CSV export with columns, formatting and file splitting.
"""

from .__version__ import __version__
from .core import (
    CsvGridError, ConfigurationError, ExportIOError, DataSourceError,
    StateError, WriterStateError, AmbiguousResultError,
    CsvFile, ExportOptions, ExportState, Formatter,
    Column, ColumnKind, serial_column, parse_column, parse_columns,
    RowSource, CollectionSource, QuerySource, make_row_source
)
from .export import CsvWriter, ExportResult, ExportEngine, export

__all__ = [
    '__version__',
    'CsvGridError', 'ConfigurationError', 'ExportIOError', 'DataSourceError',
    'StateError', 'WriterStateError', 'AmbiguousResultError',
    'CsvFile', 'ExportOptions', 'ExportState', 'Formatter',
    'Column', 'ColumnKind', 'serial_column', 'parse_column', 'parse_columns',
    'RowSource', 'CollectionSource', 'QuerySource', 'make_row_source',
    'CsvWriter', 'ExportResult', 'ExportEngine', 'export',
]
