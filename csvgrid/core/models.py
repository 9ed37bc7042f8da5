from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .errors import ConfigurationError

PathLike = Union[str, Path]


class ExportState(Enum):
    """Lifecycle of a single export run."""
    IDLE = "idle"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CsvFile:
    """A CSV file produced by an export run."""
    path: Path
    row_count: int = 0
    closed: bool = True

    @property
    def name(self) -> str:
        return self.path.name


@dataclass
class ExportOptions:
    """Options controlling how rows are laid out across output files."""
    max_entries_per_file: Optional[int] = None  # None or <= 0: single file
    show_header: bool = True
    show_footer: bool = False
    output_dir: Optional[PathLike] = None
    file_namer: Optional[Callable[[int], PathLike]] = None
    file_base_name: str = "export"
    encoding: str = "utf-8"
    header_counts_toward_cap: bool = False
    result_class: Optional[type] = None  # ExportResult subclass, None: ExportResult

    def validate(self) -> None:
        cap = self.max_entries_per_file
        if cap is not None and (isinstance(cap, bool) or not isinstance(cap, int)):
            raise ConfigurationError(
                f"max_entries_per_file must be an integer or None, got {type(cap).__name__}"
            )
        if self.file_namer is not None and not callable(self.file_namer):
            raise ConfigurationError("file_namer must be callable")
        if self.result_class is not None:
            from ..export.result import ExportResult
            if not (isinstance(self.result_class, type) and issubclass(self.result_class, ExportResult)):
                raise ConfigurationError(
                    f"result_class must be a subclass of ExportResult, got {self.result_class!r}"
                )
        if not self.file_base_name:
            raise ConfigurationError("file_base_name must not be empty")

    @property
    def data_rows_per_file(self) -> Optional[int]:
        """Number of data rows allowed per file, or None when unbounded."""
        cap = self.max_entries_per_file
        if cap is None or cap <= 0:
            return None
        if self.header_counts_toward_cap and self.show_header:
            return max(1, cap - 1)
        return cap


def describe(value: Any) -> str:
    """Short type description used in error messages."""
    return type(value).__name__
