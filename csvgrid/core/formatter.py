"""
Value formatting for CSV cells.

A format is addressed by name ("raw", "text", "decimal", ...) optionally
followed by parameters, e.g. ("decimal", 2) or ("date", "%d.%m.%Y").
Unknown format names behave like "raw" so that a typo never aborts an export.
"""

import datetime
import html
import logging
import math
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import ConfigurationError
from .json_utils import convert_for_json, safe_json_dumps
from .models import describe

logger = logging.getLogger(__name__)

FormatSpec = Union[str, Sequence[Any]]
FormatFunction = Callable[..., str]


def split_format(format_spec: FormatSpec) -> Tuple[str, tuple]:
    """Split a format spec into its name and parameters."""
    if isinstance(format_spec, str):
        return format_spec.strip().lower(), ()
    if isinstance(format_spec, (list, tuple)) and format_spec and isinstance(format_spec[0], str):
        return format_spec[0].strip().lower(), tuple(format_spec[1:])
    raise ConfigurationError(f"Invalid format specification: {format_spec!r} ({describe(format_spec)})")


class Formatter:
    """Converts raw row values into display strings."""

    def __init__(self, null_display: str = "",
                 boolean_format: Tuple[str, str] = ("No", "Yes"),
                 date_format: str = "%Y-%m-%d",
                 datetime_format: str = "%Y-%m-%d %H:%M:%S",
                 time_format: str = "%H:%M:%S",
                 decimal_separator: str = ".",
                 thousand_separator: str = ""):
        self.null_display = null_display
        self.boolean_format = boolean_format
        self.date_format = date_format
        self.datetime_format = datetime_format
        self.time_format = time_format
        self.decimal_separator = decimal_separator
        self.thousand_separator = thousand_separator

        self._formats: Dict[str, FormatFunction] = {
            'raw': self.as_raw,
            'text': self.as_text,
            'ntext': self.as_ntext,
            'boolean': self.as_boolean,
            'integer': self.as_integer,
            'decimal': self.as_decimal,
            'percent': self.as_percent,
            'date': self.as_date,
            'datetime': self.as_datetime,
            'time': self.as_time,
            'json': self.as_json,
            'email': self.as_text,
            'url': self.as_text,
        }

    @property
    def available_formats(self):
        return sorted(self._formats)

    def register(self, name: str, function: FormatFunction) -> None:
        """Register a custom format. The function receives (value, *params)."""
        if not name or not callable(function):
            raise ConfigurationError(f"Cannot register format {name!r}")
        self._formats[name.lower()] = function

    def supports(self, format_spec: FormatSpec) -> bool:
        name, _ = split_format(format_spec)
        return name in self._formats

    def format(self, value: Any, format_spec: FormatSpec = "raw") -> str:
        name, params = split_format(format_spec)
        value = self._unwrap(value)
        if value is None:
            return self.null_display

        function = self._formats.get(name)
        if function is None:
            logger.debug(f"Unknown format '{name}', falling back to raw")
            return self.as_raw(value)
        return function(value, *params)

    # Individual formats

    def as_raw(self, value: Any, *params: Any) -> str:
        if value is None:
            return self.null_display
        return str(value)

    def as_text(self, value: Any, *params: Any) -> str:
        # CSV has no markup: entities are decoded into literal text
        return html.unescape(self.as_raw(value))

    def as_ntext(self, value: Any, *params: Any) -> str:
        text = self.as_text(value)
        return text.replace("\r\n", "\n").replace("\r", "\n")

    def as_boolean(self, value: Any, *params: Any) -> str:
        false_label, true_label = self.boolean_format
        return true_label if value else false_label

    def as_integer(self, value: Any, *params: Any) -> str:
        number = self._to_number(value)
        if number is None:
            return self.as_raw(value)
        return self._group_thousands(str(int(number)))

    def as_decimal(self, value: Any, decimals: int = 2, *params: Any) -> str:
        number = self._to_number(value)
        if number is None:
            return self.as_raw(value)
        text = f"{number:.{int(decimals)}f}"
        integer_part, _, fraction = text.partition(".")
        integer_part = self._group_thousands(integer_part)
        return f"{integer_part}{self.decimal_separator}{fraction}" if fraction else integer_part

    def as_percent(self, value: Any, decimals: int = 0, *params: Any) -> str:
        number = self._to_number(value)
        if number is None:
            return self.as_raw(value)
        return self.as_decimal(number * 100, decimals) + "%"

    def as_date(self, value: Any, pattern: Optional[str] = None, *params: Any) -> str:
        moment = self._to_datetime(value)
        if moment is None:
            return self.as_raw(value)
        return moment.strftime(pattern or self.date_format)

    def as_datetime(self, value: Any, pattern: Optional[str] = None, *params: Any) -> str:
        moment = self._to_datetime(value)
        if moment is None:
            return self.as_raw(value)
        return moment.strftime(pattern or self.datetime_format)

    def as_time(self, value: Any, pattern: Optional[str] = None, *params: Any) -> str:
        if isinstance(value, datetime.time):
            return value.strftime(pattern or self.time_format)
        moment = self._to_datetime(value)
        if moment is None:
            return self.as_raw(value)
        return moment.strftime(pattern or self.time_format)

    def as_json(self, value: Any, *params: Any) -> str:
        return safe_json_dumps(convert_for_json(value), ensure_ascii=False, sort_keys=True)

    # Helpers

    def _unwrap(self, value: Any) -> Any:
        if isinstance(value, np.generic):
            value = value.item()
        if isinstance(value, float) and value != value:
            # NaN is how missing values arrive from numeric arrays
            return None
        return value

    def _to_number(self, value: Any):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float):
            return value if math.isfinite(value) else None
        if isinstance(value, Decimal):
            return value if value.is_finite() else None
        try:
            number = Decimal(str(value).strip())
        except ArithmeticError:
            logger.debug(f"Value {value!r} is not numeric, rendering as raw")
            return None
        return number if number.is_finite() else None

    def _to_datetime(self, value: Any) -> Optional[datetime.datetime]:
        if isinstance(value, datetime.datetime):
            return value
        if isinstance(value, datetime.date):
            return datetime.datetime(value.year, value.month, value.day)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            try:
                return datetime.datetime.fromtimestamp(value, tz=datetime.timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.debug(f"Timestamp {value!r} is out of range, rendering as raw")
                return None
        if isinstance(value, str):
            try:
                return datetime.datetime.fromisoformat(value.strip())
            except ValueError:
                return None
        return None

    def _group_thousands(self, digits: str) -> str:
        if not self.thousand_separator:
            return digits
        sign = "-" if digits.startswith("-") else ""
        digits = digits.lstrip("-")
        groups = []
        while len(digits) > 3:
            groups.insert(0, digits[-3:])
            digits = digits[:-3]
        groups.insert(0, digits)
        return sign + self.thousand_separator.join(groups)
