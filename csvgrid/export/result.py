"""
Export results.

An ExportResult lists the CSV files written by one export run, in order.
It only describes the files: they stay on disk until the caller moves or
deletes them.
"""

import csv
import logging
import shutil
import zipfile
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from ..core.errors import AmbiguousResultError, ExportIOError, StateError
from ..core.json_utils import safe_json_dumps
from ..core.models import CsvFile, PathLike
from .writer import CsvWriter

logger = logging.getLogger(__name__)


class ExportResult:
    """Ordered list of the files produced by an export."""

    def __init__(self, files: Iterable[CsvFile], has_header: bool = True,
                 has_footer: bool = False, encoding: str = "utf-8"):
        self._files: Tuple[CsvFile, ...] = tuple(files)
        self.has_header = has_header
        self.has_footer = has_footer
        self.encoding = encoding
        self.created_at = datetime.now().isoformat()

    @classmethod
    def from_paths(cls, paths: Iterable[PathLike], has_header: bool = True,
                   has_footer: bool = False, encoding: str = "utf-8") -> "ExportResult":
        """Describe existing CSV files, counting their data rows."""
        result = cls([], has_header=has_header, has_footer=has_footer, encoding=encoding)
        files = []
        for path in paths:
            path = Path(path)
            rows = len(result._read_rows(path))
            rows -= min(rows, int(has_header) + int(has_footer))
            files.append(CsvFile(path=path, row_count=rows, closed=True))
        result._files = tuple(files)
        return result

    @property
    def files(self) -> Tuple[CsvFile, ...]:
        return self._files

    @property
    def paths(self) -> List[Path]:
        return [csv_file.path for csv_file in self._files]

    @property
    def total_rows(self) -> int:
        return sum(csv_file.row_count for csv_file in self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[CsvFile]:
        return iter(self._files)

    def __repr__(self) -> str:
        return f"ExportResult(files={len(self._files)}, rows={self.total_rows})"

    def single_file(self) -> CsvFile:
        """Return the only file of the result."""
        if len(self._files) != 1:
            raise AmbiguousResultError(
                f"Result holds {len(self._files)} files, merge or archive them first"
            )
        return self._files[0]

    def merge_to_single_file(self, output_path: PathLike) -> CsvFile:
        """
        Concatenate all files into one new file at ``output_path``.

        The header is taken once from the first file and the footer once
        from the last file; data rows keep their order. Source files are
        left untouched.
        """
        output_path = Path(output_path)
        if any(output_path.resolve() == path.resolve() for path in self.paths):
            raise StateError("Merge target must not be one of the result files", path=output_path)

        header: Optional[List[str]] = None
        footer: Optional[List[str]] = None
        writer = CsvWriter(encoding=self.encoding)
        writer.open(output_path)
        try:
            for position, csv_file in enumerate(self._files):
                rows = self._read_rows(csv_file.path)
                if self.has_header and rows:
                    file_header = rows.pop(0)
                    if position == 0:
                        header = file_header
                        writer.write_header(header)
                if self.has_footer and rows:
                    footer = rows.pop()
                for row in rows:
                    writer.write_row(row)
            if footer is not None:
                writer.write_footer(footer)
        finally:
            merged = writer.close()

        logger.info(f"Merged {len(self._files)} files into {output_path} ({merged.row_count} rows)")
        return merged

    def archive(self, archive_path: PathLike) -> Path:
        """Pack every file into a zip archive and return its path."""
        archive_path = Path(archive_path)
        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED) as zipf:
                for path in self.paths:
                    zipf.write(path, arcname=path.name)
        except OSError as e:
            raise ExportIOError(f"Cannot create archive: {e}", path=archive_path) from e
        logger.info(f"Archived {len(self._files)} files into {archive_path}")
        return archive_path

    def result_path(self, archive_path: Optional[PathLike] = None) -> Path:
        """
        Path of a file holding the whole result: the file itself for a
        single-file result, otherwise a zip archive of all files.
        """
        if not self._files:
            raise StateError("Result holds no files")
        if len(self._files) == 1:
            return self._files[0].path
        if archive_path is None:
            first = self._files[0].path
            archive_path = first.with_name(f"{first.stem.rsplit('-', 1)[0]}.zip")
        return self.archive(archive_path)

    def save_as(self, destination: PathLike) -> Path:
        """Copy the result file (or its archive) to ``destination``."""
        destination = Path(destination)
        source = self.result_path()
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, destination)
        except OSError as e:
            raise ExportIOError(f"Cannot copy result: {e}", path=destination) from e
        return destination

    def delete(self) -> int:
        """Remove every file of the result from disk. Returns how many were removed."""
        removed = 0
        for path in self.paths:
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                raise ExportIOError(f"Cannot delete file: {e}", path=path) from e
        return removed

    def to_dict(self) -> Dict[str, Any]:
        return {
            'created_at': self.created_at,
            'total_files': len(self._files),
            'total_rows': self.total_rows,
            'has_header': self.has_header,
            'has_footer': self.has_footer,
            'files': [
                {'path': csv_file.path, 'name': csv_file.name, 'row_count': csv_file.row_count}
                for csv_file in self._files
            ],
        }

    def write_manifest(self, manifest_path: PathLike) -> Path:
        """Write a machine-readable description of the result."""
        manifest_path = Path(manifest_path)
        try:
            manifest_path.parent.mkdir(parents=True, exist_ok=True)
            manifest_path.write_text(safe_json_dumps(self.to_dict(), indent=2), encoding='utf-8')
        except OSError as e:
            raise ExportIOError(f"Cannot write manifest: {e}", path=manifest_path) from e
        return manifest_path

    def _read_rows(self, path: Path) -> List[List[str]]:
        try:
            with open(path, 'r', newline='', encoding=self.encoding) as f:
                return list(csv.reader(f))
        except OSError as e:
            raise ExportIOError(f"Cannot read file: {e}", path=path) from e
