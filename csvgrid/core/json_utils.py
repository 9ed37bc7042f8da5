"""
JSON serialization utilities for csvgrid.
Handles row values and export descriptors: enums, dataclasses, paths, dates,
decimals and numpy types.
"""

import datetime
import json
from dataclasses import asdict, is_dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np


class CsvGridJSONEncoder(json.JSONEncoder):
    """JSON encoder that understands the value types found in exported rows."""

    def default(self, obj: Any) -> Any:
        converted = convert_for_json(obj)
        if converted is obj:
            # Arbitrary model objects end up as their string form
            return str(obj)
        return converted


def safe_json_dumps(obj: Any, **kwargs) -> str:
    """Serialize an object to a JSON string using CsvGridJSONEncoder."""
    return json.dumps(obj, cls=CsvGridJSONEncoder, **kwargs)


def convert_for_json(obj: Any) -> Any:
    """
    Recursively convert an object to be JSON-serializable.
    Unknown objects are returned unchanged.
    """
    if isinstance(obj, Enum):
        return obj.value

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, (datetime.datetime, datetime.date, datetime.time)):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return str(obj)

    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.generic):
        return obj.item()

    if isinstance(obj, dict):
        return {str(key): convert_for_json(value) for key, value in obj.items()}

    if isinstance(obj, (list, tuple, set, frozenset)):
        return [convert_for_json(item) for item in obj]

    if is_dataclass(obj) and not isinstance(obj, type):
        return convert_for_json(asdict(obj))

    return obj
