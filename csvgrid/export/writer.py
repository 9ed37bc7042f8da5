import csv
import logging
from pathlib import Path
from typing import IO, Iterable, Optional

from ..core.errors import ExportIOError, WriterStateError
from ..core.models import CsvFile, PathLike

logger = logging.getLogger(__name__)


class CsvWriter:
    """
    Writes one CSV file.

    Every field is wrapped in double quotes, embedded quotes are doubled,
    fields are separated by commas and rows end with a single newline.
    Only data rows count towards ``row_count``; header and footer lines
    are tracked in ``line_count``.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding
        self.path: Optional[Path] = None
        self.row_count = 0
        self.line_count = 0
        self._stream: Optional[IO[str]] = None
        self._writer = None
        self._closed = False

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self, path: PathLike) -> "CsvWriter":
        if self._stream is not None or self._closed:
            raise WriterStateError("Writer has already been used", path=self.path)

        self.path = Path(path)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.path, 'w', newline='', encoding=self.encoding)
        except OSError as e:
            raise ExportIOError(f"Cannot open file for writing: {e}", path=self.path) from e

        self._writer = csv.writer(self._stream, quoting=csv.QUOTE_ALL,
                                  doublequote=True, lineterminator='\n')
        logger.debug(f"Opened {self.path}")
        return self

    def write_header(self, labels: Iterable[str]) -> None:
        self._write(labels)

    def write_row(self, values: Iterable[str]) -> None:
        self._write(values)
        self.row_count += 1

    def write_footer(self, labels: Iterable[str]) -> None:
        self._write(labels)

    def close(self) -> Optional[CsvFile]:
        """Flush and release the file. Calling close() again is a no-op."""
        if self.path is None:
            self._closed = True
            return None
        if self._stream is not None:
            stream, self._stream = self._stream, None
            self._writer = None
            try:
                stream.close()
            except OSError as e:
                raise ExportIOError(f"Cannot close file: {e}", path=self.path) from e
            finally:
                self._closed = True
            logger.debug(f"Closed {self.path} with {self.row_count} rows")
        self._closed = True
        return self.to_csv_file()

    def to_csv_file(self) -> CsvFile:
        if self.path is None:
            raise WriterStateError("Writer was never opened")
        return CsvFile(path=self.path, row_count=self.row_count, closed=self._closed)

    def _write(self, values: Iterable[str]) -> None:
        if self._stream is None:
            state = "closed" if self._closed else "not open"
            raise WriterStateError(f"Cannot write, writer is {state}", path=self.path)
        try:
            self._writer.writerow(["" if value is None else str(value) for value in values])
        except OSError as e:
            raise ExportIOError(f"Cannot write to file: {e}", path=self.path) from e
        self.line_count += 1

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
