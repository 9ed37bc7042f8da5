"""
The export engine: streams rows from a RowSource through a list of columns
into CSV files, starting a new file whenever the per-file row cap is reached.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from ..core.columns import Column, parse_columns
from ..core.errors import CsvGridError, ConfigurationError, DataSourceError, ExportIOError, StateError
from ..core.formatter import Formatter
from ..core.models import CsvFile, ExportOptions, ExportState
from ..core.sources import CollectionSource, RowSource
from .result import ExportResult
from .writer import CsvWriter

logger = logging.getLogger(__name__)


class ExportEngine:
    """
    Runs one export.

    The engine pulls batches from the source, renders each row through the
    columns and appends it to the current CsvWriter. When a file holds
    ``max_entries_per_file`` data rows it is finalized and the next row
    opens a new one. An export always produces at least one file.
    """

    def __init__(self, columns: Sequence[Union[Column, str, dict]], source: RowSource,
                 options: Optional[ExportOptions] = None, formatter: Any = None):
        self.column_declarations = list(columns) if columns is not None else []
        self.source = source
        self.options = options or ExportOptions()
        self.formatter = formatter or Formatter()
        self.state = ExportState.IDLE

        self.columns: List[Column] = []
        self._writer: Optional[CsvWriter] = None
        self._files: List[CsvFile] = []
        self._row_index = 0
        self._output_dir: Optional[Path] = None

    @property
    def files(self) -> List[CsvFile]:
        """Files closed so far, in order."""
        return list(self._files)

    def run(self) -> ExportResult:
        if self.state is not ExportState.IDLE:
            raise StateError(f"Export has already run (state: {self.state.value})")

        try:
            self._prepare()
            logger.info(f"Starting export with {len(self.columns)} columns")

            self.state = ExportState.STREAMING
            self._stream()
            self._finish_streaming()
        except Exception:
            self.state = ExportState.FAILED
            self._abort()
            raise
        finally:
            if isinstance(self.source, RowSource):
                self.source.close()

        self.state = ExportState.FINALIZING
        result_class = self.options.result_class or ExportResult
        result = result_class(
            self._files,
            has_header=self.options.show_header,
            has_footer=self.options.show_footer,
            encoding=self.options.encoding,
        )

        self.state = ExportState.DONE
        logger.info(f"Export finished: {self._row_index} rows in {len(self._files)} file(s)")
        return result

    def _prepare(self) -> None:
        self.options.validate()
        if not callable(getattr(self.formatter, "format", None)):
            raise ConfigurationError("Formatter must provide a format(value, format) method")
        if not isinstance(self.source, RowSource):
            raise ConfigurationError(f"Source must be a RowSource, got {type(self.source).__name__}")
        self.columns = parse_columns(self.column_declarations)

    def _stream(self) -> None:
        cap = self.options.data_rows_per_file
        batch_number = 0

        while True:
            try:
                batch = self.source.next_batch()
            except CsvGridError:
                raise
            except Exception as e:
                raise DataSourceError(f"Failed to fetch rows: {e}", batch=batch_number + 1) from e
            if batch is None:
                break
            batch_number += 1

            for row in batch:
                if self._writer is None:
                    self._open_writer()

                values = [column.render(row, self._row_index, self.formatter) for column in self.columns]
                self._writer.write_row(values)
                self._row_index += 1

                if cap is not None and self._writer.row_count >= cap:
                    logger.debug(f"File {self._writer.path} reached {cap} rows, rotating")
                    self._close_writer()

    def _finish_streaming(self) -> None:
        if self._writer is not None:
            self._close_writer()
        if not self._files:
            # No rows at all: still produce one (possibly empty) file
            self._open_writer()
            self._close_writer()

    def _open_writer(self) -> None:
        path = self._next_path()
        writer = CsvWriter(encoding=self.options.encoding)
        writer.open(path)
        self._writer = writer
        if self.options.show_header:
            writer.write_header([column.header_label() for column in self.columns])

    def _close_writer(self) -> None:
        writer = self._writer
        if self.options.show_footer:
            writer.write_footer([column.footer_label() for column in self.columns])
        self._files.append(writer.close())
        self._writer = None

    def _abort(self) -> None:
        writer, self._writer = self._writer, None
        if writer is None:
            return
        try:
            writer.close()
        except ExportIOError as e:
            logger.warning(f"Could not close {writer.path} after a failed export: {e}")

    def _next_path(self) -> Path:
        index = len(self._files) + 1
        if self.options.file_namer is not None:
            return Path(self.options.file_namer(index))
        return self._resolve_output_dir() / f"{self.options.file_base_name}-{index:03d}.csv"

    def _resolve_output_dir(self) -> Path:
        if self._output_dir is None:
            if self.options.output_dir is not None:
                self._output_dir = Path(self.options.output_dir)
            else:
                self._output_dir = Path(tempfile.mkdtemp(prefix="csvgrid-"))
        return self._output_dir


def export(columns: Sequence[Union[Column, str, dict]],
           source: Union[RowSource, Iterable[Any]],
           options: Optional[ExportOptions] = None,
           formatter: Any = None) -> ExportResult:
    """Export rows to CSV files. ``source`` may be a RowSource or a list of rows."""
    if not isinstance(source, RowSource):
        source = CollectionSource(list(source))
    return ExportEngine(columns, source, options=options, formatter=formatter).run()
