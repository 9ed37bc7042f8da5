from .errors import (
    CsvGridError, ConfigurationError, ExportIOError, DataSourceError,
    StateError, WriterStateError, AmbiguousResultError
)
from .models import CsvFile, ExportOptions, ExportState
from .formatter import Formatter
from .columns import Column, ColumnKind, serial_column, parse_column, parse_columns, humanize
from .sources import RowSource, CollectionSource, QuerySource, make_row_source

__all__ = ['CsvGridError', 'ConfigurationError', 'ExportIOError', 'DataSourceError',
           'StateError', 'WriterStateError', 'AmbiguousResultError',
           'CsvFile', 'ExportOptions', 'ExportState', 'Formatter',
           'Column', 'ColumnKind', 'serial_column', 'parse_column', 'parse_columns', 'humanize',
           'RowSource', 'CollectionSource', 'QuerySource', 'make_row_source']
