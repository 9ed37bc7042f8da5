"""
Row sources: where exported rows come from.

A RowSource hands out rows one batch at a time and returns None once the
data is exhausted. CollectionSource serves rows that are already in memory;
QuerySource pages through a query so that only one batch is resident at a
time.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterator, List, Optional, Sequence

from .errors import ConfigurationError, CsvGridError, DataSourceError
from .models import describe

logger = logging.getLogger(__name__)

RowBatch = List[Any]


class RowSource(ABC):
    """Base class for all row sources."""

    @abstractmethod
    def next_batch(self) -> Optional[RowBatch]:
        """Return the next batch of rows, or None when no rows are left."""
        pass

    def close(self) -> None:
        """Release any resources held by the source."""
        pass

    def batches(self) -> Iterator[RowBatch]:
        while True:
            batch = self.next_batch()
            if batch is None:
                return
            yield batch

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class CollectionSource(RowSource):
    """Serves a fully materialized collection as a single batch."""

    def __init__(self, rows: Sequence[Any]):
        if rows is None or isinstance(rows, (str, bytes)):
            raise ConfigurationError(f"CollectionSource needs a sequence of rows, got {describe(rows)}")
        self._rows = rows
        self._served = False

    def next_batch(self) -> Optional[RowBatch]:
        if self._served:
            return None
        self._served = True
        rows = list(self._rows)
        return rows or None

    @classmethod
    def from_provider(cls, provider: Any) -> "CollectionSource":
        """
        Adapt a data provider: anything with a ``get_models()`` method or an
        ``all_models`` / ``models`` attribute.
        """
        if callable(getattr(provider, "get_models", None)):
            models = provider.get_models()
        elif getattr(provider, "all_models", None) is not None:
            models = provider.all_models
        elif getattr(provider, "models", None) is not None:
            models = provider.models
        else:
            raise ConfigurationError(f"Object of type {describe(provider)} is not a data provider")
        return cls(list(models))


class QuerySource(RowSource):
    """
    Pages through a query, ``batch_size`` rows per fetch.

    The query either implements ``fetch_page(offset, limit)`` (limit/offset
    paging) or ``batch(size)`` returning an iterable of row batches. The
    cursor only moves forward, and pages already returned are never fetched
    again.
    """

    def __init__(self, query: Any, batch_size: int = 100):
        if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size <= 0:
            raise ConfigurationError(f"batch_size must be a positive integer, got {batch_size!r}")

        self.query = query
        self.batch_size = batch_size
        self.offset = 0
        self.fetch_count = 0
        self._iterator: Optional[Iterator[Sequence[Any]]] = None
        self._exhausted = False

        if callable(getattr(query, "fetch_page", None)):
            self._paged = True
        elif callable(getattr(query, "batch", None)):
            self._paged = False
        else:
            raise ConfigurationError(
                f"Query of type {describe(query)} provides neither fetch_page() nor batch()"
            )

    def next_batch(self) -> Optional[RowBatch]:
        if self._exhausted:
            return None

        rows = self._fetch()
        if not rows:
            self._exhausted = True
            return None

        self.offset += len(rows)
        if self._paged and len(rows) < self.batch_size:
            # A short page is the last one
            self._exhausted = True
        return rows

    def close(self) -> None:
        self._exhausted = True
        iterator, self._iterator = self._iterator, None
        if iterator is not None and hasattr(iterator, "close"):
            iterator.close()

    def _fetch(self) -> RowBatch:
        self.fetch_count += 1
        try:
            if self._paged:
                page = self.query.fetch_page(self.offset, self.batch_size)
            else:
                if self._iterator is None:
                    self._iterator = iter(self.query.batch(self.batch_size))
                page = next(self._iterator, None)
            rows = list(page) if page is not None else []
        except DataSourceError as e:
            e.context.setdefault("batch", self.fetch_count)
            e.context.setdefault("offset", self.offset)
            raise
        except CsvGridError:
            raise
        except Exception as e:
            raise DataSourceError(
                f"Failed to fetch rows: {e}", batch=self.fetch_count, offset=self.offset
            ) from e

        logger.debug(f"Fetched batch {self.fetch_count} with {len(rows)} rows at offset {self.offset}")
        return rows


def make_row_source(data: Optional[Sequence[Any]] = None, provider: Any = None,
                    query: Any = None, batch_size: int = 100) -> RowSource:
    """Build the row source matching whichever input was given."""
    given = [name for name, value in (("data", data), ("provider", provider), ("query", query))
             if value is not None]
    if len(given) != 1:
        raise ConfigurationError(
            f"Exactly one of data, provider or query must be given, got {given or 'none'}"
        )

    if query is not None:
        return QuerySource(query, batch_size=batch_size)
    if provider is not None:
        return CollectionSource.from_provider(provider)
    return CollectionSource(data)
