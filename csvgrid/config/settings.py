"""
Configuration for export jobs.

A job is described by defaults, optionally overridden by a YAML job file and
then by CSVGRID_* environment variables (a .env file is honoured).
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from ..core.errors import ConfigurationError
from ..core.formatter import Formatter
from ..core.models import ExportOptions
from ..core.sources import CollectionSource, QuerySource, RowSource
from .loaders import load_rows

logger = logging.getLogger(__name__)

ENV_PREFIX = "CSVGRID_"


@dataclass
class ExportJobConfig:
    """Everything needed to run one export."""
    columns: List[Any] = field(default_factory=list)
    max_entries_per_file: Optional[int] = None
    show_header: bool = True
    show_footer: bool = False
    output_dir: Optional[str] = None
    file_base_name: str = "export"
    batch_size: int = 100
    encoding: str = "utf-8"
    null_display: str = ""
    source: Dict[str, Any] = field(default_factory=dict)

    def to_options(self) -> ExportOptions:
        options = ExportOptions(
            max_entries_per_file=self.max_entries_per_file,
            show_header=self.show_header,
            show_footer=self.show_footer,
            output_dir=self.output_dir,
            file_base_name=self.file_base_name,
            encoding=self.encoding,
        )
        options.validate()
        return options

    def build_formatter(self) -> Formatter:
        return Formatter(null_display=self.null_display)

    def build_source(self) -> RowSource:
        """Create the row source described by the ``source`` section."""
        source = self.source or {}
        if source.get("path"):
            return CollectionSource(load_rows(source["path"]))

        if source.get("url"):
            from ..db import SqlQuery
            query = SqlQuery.from_url(source["url"], table=source.get("table"), sql=source.get("sql"))
            return QuerySource(query, batch_size=self.batch_size)

        raise ConfigurationError("Job source needs either a 'path' or a database 'url'")


class ExportJobConfigManager:
    """Loads export job configuration from files and the environment."""

    ENV_MAPPINGS = {
        'OUTPUT_DIR': ('output_dir', str),
        'MAX_ENTRIES_PER_FILE': ('max_entries_per_file', int),
        'BATCH_SIZE': ('batch_size', int),
        'ENCODING': ('encoding', str),
        'FILE_BASE_NAME': ('file_base_name', str),
    }

    def __init__(self, env_file: Optional[Path] = None):
        # Values already present in the environment win over the .env file
        load_dotenv(dotenv_path=env_file, override=False)

    def load(self, config_file: Optional[Path] = None, **overrides: Any) -> ExportJobConfig:
        data: Dict[str, Any] = {}
        if config_file is not None:
            data.update(self._load_file(Path(config_file)))
        data.update(self._load_environment())
        data.update({key: value for key, value in overrides.items() if value is not None})

        if data.get("database_url"):
            source = dict(data.get("source") or {})
            if not source.get("path"):
                source.setdefault("url", data["database_url"])
            data["source"] = source
        data.pop("database_url", None)

        return self._build(data)

    def _load_file(self, config_file: Path) -> Dict[str, Any]:
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                content = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Job file not found: {config_file}") from None
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid job file {config_file}: {e}") from e

        if not isinstance(content, dict):
            raise ConfigurationError(f"Job file {config_file} must contain a mapping")

        # Relative data paths are resolved against the job file
        source = content.get("source")
        if isinstance(source, dict) and source.get("path"):
            path = Path(source["path"])
            if not path.is_absolute():
                source["path"] = str(config_file.parent / path)

        logger.debug(f"Loaded job configuration from {config_file}")
        return content

    def _load_environment(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for suffix, (key, converter) in self.ENV_MAPPINGS.items():
            raw = os.getenv(ENV_PREFIX + suffix)
            if raw is None or raw == "":
                continue
            try:
                values[key] = converter(raw)
            except ValueError:
                raise ConfigurationError(f"Invalid value for {ENV_PREFIX}{suffix}: {raw!r}") from None

        database_url = os.getenv(ENV_PREFIX + "DATABASE_URL")
        if database_url:
            values["database_url"] = database_url
        return values

    def _build(self, data: Dict[str, Any]) -> ExportJobConfig:
        known = {item.name for item in fields(ExportJobConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown job settings: {', '.join(unknown)}")

        config = ExportJobConfig(**data)
        if not isinstance(config.columns, list):
            raise ConfigurationError("'columns' must be a list")
        if not isinstance(config.source, dict):
            raise ConfigurationError("'source' must be a mapping")
        if isinstance(config.batch_size, bool) or not isinstance(config.batch_size, int) \
                or config.batch_size <= 0:
            raise ConfigurationError(f"batch_size must be a positive integer, got {config.batch_size!r}")
        return config
