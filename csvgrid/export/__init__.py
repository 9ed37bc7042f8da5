# CSV export pipeline: writer, engine and result

from .writer import CsvWriter
from .result import ExportResult
from .engine import ExportEngine, export

__all__ = ['CsvWriter', 'ExportResult', 'ExportEngine', 'export']
