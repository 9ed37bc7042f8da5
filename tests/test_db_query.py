import pytest
from sqlalchemy import create_engine

from csvgrid.core.errors import ConfigurationError, DataSourceError
from csvgrid.core.models import ExportOptions
from csvgrid.core.sources import QuerySource
from csvgrid.db.query import SqlQuery
from csvgrid.export.engine import ExportEngine


class TestSqlQuery:
    """Test paged SQL queries against SQLite."""

    def test_table_pages(self, item_db):
        query = SqlQuery.from_table(item_db, 'Item')

        assert [row['name'] for row in query.fetch_page(0, 2)] == ['first', 'second']
        assert query.fetch_page(2, 2) == [{'id': 3, 'name': 'third', 'number': 3}]
        assert query.fetch_page(3, 2) == []

    def test_text_query(self, item_db):
        query = SqlQuery.from_text(item_db, "SELECT name FROM Item WHERE number > 1 ORDER BY id;")

        assert query.fetch_page(0, 10) == [{'name': 'second'}, {'name': 'third'}]
        assert query.fetch_page(1, 10) == [{'name': 'third'}]

    def test_column_names(self, item_db):
        assert SqlQuery.from_table(item_db, 'Item').column_names() == ['id', 'name', 'number']
        assert SqlQuery.from_text(item_db, "SELECT name AS title FROM Item").column_names() == ['title']

    def test_count(self, item_db):
        assert SqlQuery.from_table(item_db, 'Item').count() == 3
        assert SqlQuery.from_text(item_db, "SELECT * FROM Item WHERE number < 3").count() == 2

    def test_connection_bind(self, item_db):
        """Test an open connection can be used instead of an engine."""
        with item_db.connect() as connection:
            query = SqlQuery.from_table(connection, 'Item')
            assert len(query.fetch_page(0, 10)) == 3

    def test_from_url(self, item_db):
        url = item_db.url.render_as_string(hide_password=False)
        query = SqlQuery.from_url(url, table='Item')

        assert query.count() == 3

    def test_from_url_needs_table_or_sql(self):
        with pytest.raises(ConfigurationError):
            SqlQuery.from_url("sqlite://")
        with pytest.raises(ConfigurationError):
            SqlQuery.from_url("sqlite://", table='Item', sql="SELECT 1")

    def test_missing_table(self, item_db):
        with pytest.raises(ConfigurationError):
            SqlQuery.from_table(item_db, 'Nope')

    def test_needs_statement_or_sql(self, item_db):
        with pytest.raises(ConfigurationError):
            SqlQuery(item_db)

    def test_query_error(self, item_db):
        """Test database errors are raised as DataSourceError."""
        query = SqlQuery.from_text(item_db, "SELECT missing_column FROM Item")

        with pytest.raises(DataSourceError):
            query.fetch_page(0, 10)


class TestQueryExport:
    """Test exporting straight from a database."""

    def test_paged_export(self, item_db, temp_dir):
        """Test three stored rows with batch size 2 take two fetches and keep their order."""
        source = QuerySource(SqlQuery.from_table(item_db, 'Item'), batch_size=2)
        options = ExportOptions(output_dir=temp_dir)

        result = ExportEngine(['id', 'name', 'number:decimal'], source, options).run()

        assert source.fetch_count == 2
        assert result.single_file().path.read_text(encoding='utf-8').splitlines() == [
            '"Id","Name","Number"',
            '"1","first","1.00"',
            '"2","second","2.00"',
            '"3","third","3.00"',
        ]

    def test_query_error_aborts_export(self, temp_dir):
        engine = create_engine("sqlite://")
        source = QuerySource(SqlQuery.from_text(engine, "SELECT * FROM not_there"), batch_size=2)

        with pytest.raises(DataSourceError) as exc_info:
            ExportEngine(['id'], source, ExportOptions(output_dir=temp_dir)).run()

        assert exc_info.value.context['batch'] == 1
