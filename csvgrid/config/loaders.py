"""
Readers for the row files accepted by the command line: JSON, JSON Lines,
CSV and YAML.
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..core.errors import ConfigurationError, DataSourceError


def load_rows(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load a list of row mappings from a data file, chosen by extension."""
    path = Path(path)
    loaders = {
        '.json': _load_json,
        '.jsonl': _load_json_lines,
        '.ndjson': _load_json_lines,
        '.csv': _load_csv,
        '.yaml': _load_yaml,
        '.yml': _load_yaml,
    }
    loader = loaders.get(path.suffix.lower())
    if loader is None:
        raise ConfigurationError(f"Unsupported input file type: {path.suffix or path.name}")

    try:
        rows = loader(path)
    except OSError as e:
        raise DataSourceError(f"Cannot read input file: {e}", path=path) from e
    except (ValueError, yaml.YAMLError, csv.Error) as e:
        raise DataSourceError(f"Cannot parse input file: {e}", path=path) from e

    if not isinstance(rows, list) or not all(isinstance(row, dict) for row in rows):
        raise DataSourceError("Input file must contain a list of objects", path=path)
    return rows


def _load_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    # {"rows": [...]} is accepted as well as a bare list
    if isinstance(data, dict) and isinstance(data.get("rows"), list):
        return data["rows"]
    return data


def _load_json_lines(path: Path) -> List[Any]:
    rows = []
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line:
                rows.append(json.loads(line))
    return rows


def _load_csv(path: Path) -> List[Dict[str, Any]]:
    with open(path, 'r', newline='', encoding='utf-8-sig') as f:
        return [dict(row) for row in csv.DictReader(f)]


def _load_yaml(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    if data is None:
        return []
    if isinstance(data, dict) and isinstance(data.get("rows"), list):
        return data["rows"]
    return data
