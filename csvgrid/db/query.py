"""
SQLAlchemy-backed paged queries for QuerySource.
"""

import logging
from contextlib import contextmanager, nullcontext
from typing import Any, Dict, Iterator, List, Optional, Union

from sqlalchemy import MetaData, Table, create_engine, func, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.sql import Select

from ..core.errors import ConfigurationError, DataSourceError

logger = logging.getLogger(__name__)

Bind = Union[Engine, Connection]


class SqlQuery:
    """
    A SELECT statement fetched page by page with LIMIT/OFFSET.

    Either a SQLAlchemy Select or a raw SQL string can be wrapped. Rows are
    returned as plain dicts keyed by column name.
    """

    def __init__(self, bind: Bind, statement: Optional[Select] = None, sql: Optional[str] = None):
        if (statement is None) == (sql is None):
            raise ConfigurationError("SqlQuery needs exactly one of statement or sql")
        self.bind = bind
        self.statement = statement
        self.sql = sql.strip().rstrip(";") if sql is not None else None

    @classmethod
    def from_table(cls, bind: Bind, table_name: str, schema: Optional[str] = None) -> "SqlQuery":
        """Select every row of a table, ordered by its primary key for stable paging."""
        try:
            table = Table(table_name, MetaData(), autoload_with=bind, schema=schema)
        except NoSuchTableError as e:
            raise ConfigurationError(f"Table not found: {table_name}") from e
        statement = select(table)
        primary_key = list(table.primary_key.columns)
        if primary_key:
            statement = statement.order_by(*primary_key)
        return cls(bind, statement=statement)

    @classmethod
    def from_text(cls, bind: Bind, sql: str) -> "SqlQuery":
        return cls(bind, sql=sql)

    @classmethod
    def from_url(cls, url: str, table: Optional[str] = None, sql: Optional[str] = None) -> "SqlQuery":
        if (table is None) == (sql is None):
            raise ConfigurationError("Give either a table name or an SQL query")
        engine = create_engine(url)
        return cls.from_table(engine, table) if table else cls.from_text(engine, sql)

    def fetch_page(self, offset: int, limit: int) -> List[Dict[str, Any]]:
        statement = self._page_statement(offset, limit)
        with self._connection() as connection:
            result = connection.execute(statement)
            rows = [dict(row._mapping) for row in result]
        logger.debug(f"Fetched {len(rows)} rows (offset={offset}, limit={limit})")
        return rows

    def column_names(self) -> List[str]:
        with self._connection() as connection:
            result = connection.execute(self._page_statement(0, 0))
            names = list(result.keys())
            result.close()
        return names

    def count(self) -> int:
        """Total number of rows. Not needed for exporting."""
        if self.sql is not None:
            statement = text(f"SELECT COUNT(*) FROM ({self.sql}) AS csvgrid_count")
        else:
            statement = select(func.count()).select_from(self.statement.order_by(None).subquery())
        with self._connection() as connection:
            return int(connection.execute(statement).scalar_one())

    def _page_statement(self, offset: int, limit: int):
        if self.sql is not None:
            return text(
                f"SELECT * FROM ({self.sql}) AS csvgrid_page LIMIT :limit OFFSET :offset"
            ).bindparams(limit=limit, offset=offset)
        return self.statement.limit(limit).offset(offset)

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        context = self.bind.connect() if isinstance(self.bind, Engine) else nullcontext(self.bind)
        try:
            with context as connection:
                yield connection
        except SQLAlchemyError as e:
            raise DataSourceError(f"Database query failed: {e}") from e
