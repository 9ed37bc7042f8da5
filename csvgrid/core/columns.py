"""
Column definitions for CSV exports.

A column describes how a single CSV field is obtained from a row: by looking
up an attribute, by calling a value function, or (for serial columns) from
the position of the row in the export. Declarations may be written in a
shorthand form ("name:text:Full Name") or as mappings; parse_columns()
normalizes all of them into Column instances before an export starts.
"""

import re
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

from .errors import ConfigurationError
from .formatter import FormatSpec, split_format
from .models import describe

ValueFunction = Callable[[Any], Any]

_SHORTHAND_PATTERN = re.compile(r'^([^:]+)(?::(\w*))?(?::(.*))?$', re.DOTALL)
_SEPARATOR_PATTERN = re.compile(r'[\W_]+')


class ColumnKind(Enum):
    """Kinds of columns."""
    DATA = "data"       # value read from the row
    SERIAL = "serial"   # 1-based position of the row in the export


@dataclass
class Column:
    """One output field of an export."""
    attribute: Optional[str] = None
    header: Optional[str] = None
    format: FormatSpec = "raw"
    value: Optional[Union[ValueFunction, str]] = None
    kind: ColumnKind = ColumnKind.DATA
    footer: Optional[str] = None
    visible: bool = True

    def validate(self) -> None:
        split_format(self.format)
        if self.kind is ColumnKind.SERIAL:
            return
        if self.value is not None and not (callable(self.value) or isinstance(self.value, str)):
            raise ConfigurationError(
                f"Column value must be callable or an attribute path, got {describe(self.value)}"
            )
        if self.attribute is None and self.value is None:
            raise ConfigurationError("A data column needs either an attribute or a value function")

    def resolve_value(self, row: Any, index: int) -> Any:
        """Return the raw value of this column for the row at 0-based ``index``."""
        if self.kind is ColumnKind.SERIAL:
            return index + 1
        if callable(self.value):
            return self.value(row)
        if isinstance(self.value, str):
            return get_value(row, self.value)
        return get_value(row, self.attribute)

    def render(self, row: Any, index: int, formatter) -> str:
        return formatter.format(self.resolve_value(row, index), self.format)

    def header_label(self) -> str:
        if self.header is not None:
            return self.header
        if self.kind is ColumnKind.SERIAL:
            return "#"
        if self.attribute:
            return humanize(self.attribute)
        return ""

    def footer_label(self) -> str:
        return self.footer if self.footer is not None else ""


def serial_column(header: Optional[str] = None) -> Column:
    """Column that outputs the running row number."""
    return Column(header=header, kind=ColumnKind.SERIAL)


def humanize(name: str) -> str:
    """
    Convert an attribute identifier into a capitalized phrase.

    "first_name", "firstName" and "first-name" all become "First Name";
    dotted paths keep only their last segment ("author.name" -> "Name").
    Letters of any script are kept.
    """
    name = name.rsplit(".", 1)[-1]
    words = []
    for part in _SEPARATOR_PATTERN.split(name):
        words.extend(_split_case(part))
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _split_case(part: str) -> List[str]:
    """Split "firstName", "HTTPCode" and "address2" at case and digit changes."""
    words = []
    start = 0
    for position in range(1, len(part)):
        previous, char = part[position - 1], part[position]
        following = part[position + 1] if position + 1 < len(part) else ""
        if (char.isupper() and previous.islower()) \
                or (char.isupper() and previous.isupper() and following.islower()) \
                or char.isdecimal() != previous.isdecimal():
            words.append(part[start:position])
            start = position
    if part[start:]:
        words.append(part[start:])
    return words


def get_value(row: Any, path: Optional[str]) -> Any:
    """
    Look up a possibly dotted attribute path in a row.

    Rows may be mappings or plain objects. A missing key at any level
    yields None.
    """
    if path is None or row is None:
        return None
    if isinstance(row, Mapping) and path in row:
        return row[path]

    current = row
    for key in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(key)
        elif isinstance(current, (list, tuple)) and key.isdecimal():
            position = int(key)
            current = current[position] if position < len(current) else None
        else:
            current = getattr(current, key, None)
    return current


def parse_column(declaration: Union[Column, str, Mapping[str, Any]]) -> Column:
    """Normalize a single column declaration into a Column."""
    if isinstance(declaration, Column):
        column = declaration
    elif isinstance(declaration, str):
        column = _parse_shorthand(declaration)
    elif isinstance(declaration, Mapping):
        column = _parse_mapping(declaration)
    else:
        raise ConfigurationError(f"Unsupported column declaration: {describe(declaration)}")

    column.validate()
    return column


def parse_columns(declarations: Iterable[Union[Column, str, Mapping[str, Any]]]) -> List[Column]:
    """Normalize column declarations, dropping invisible columns."""
    if declarations is None:
        raise ConfigurationError("No columns configured")
    columns = [parse_column(declaration) for declaration in declarations]
    columns = [column for column in columns if column.visible]
    if not columns:
        raise ConfigurationError("At least one visible column is required")
    return columns


def columns_from_rows(rows: Iterable[Any]) -> List[Column]:
    """Guess columns from the keys of the first mapping row."""
    for row in rows:
        if isinstance(row, Mapping):
            return [Column(attribute=str(key)) for key in row.keys()]
        if hasattr(row, "__dict__"):
            return [Column(attribute=key) for key in vars(row) if not key.startswith("_")]
        break
    return []


def _parse_shorthand(text: str) -> Column:
    match = _SHORTHAND_PATTERN.match(text)
    if not match or not match.group(1).strip():
        raise ConfigurationError(
            f'Column must be specified in the format "attribute", "attribute:format" '
            f'or "attribute:format:header", got {text!r}'
        )
    attribute, format_name, header = match.groups()
    return Column(
        attribute=attribute.strip(),
        format=format_name or "raw",
        header=header,
    )


def _parse_mapping(data: Mapping[str, Any]) -> Column:
    options = dict(data)
    if "label" in options and "header" not in options:
        options["header"] = options.pop("label")

    kind = options.pop("kind", ColumnKind.DATA)
    if not isinstance(kind, ColumnKind):
        try:
            kind = ColumnKind(str(kind).lower())
        except ValueError:
            raise ConfigurationError(f"Unknown column kind: {kind!r}") from None

    known = {field.name for field in fields(Column)} - {"kind"}
    unknown = sorted(set(options) - known)
    if unknown:
        raise ConfigurationError(f"Unknown column options: {', '.join(unknown)}")

    if isinstance(options.get("format"), list):
        options["format"] = tuple(options["format"])
    return Column(kind=kind, **options)
