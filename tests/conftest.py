import pytest
import shutil
import tempfile
from pathlib import Path

from sqlalchemy import Column as SqlColumn, Integer, MetaData, String, Table, create_engine, insert


@pytest.fixture
def temp_dir():
    """Create a temporary directory for export output."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def two_rows():
    """The two-row data set used by the basic export scenarios."""
    return [
        {'id': 1, 'name': 'first'},
        {'id': 2, 'name': 'second'},
    ]


@pytest.fixture
def item_db(temp_dir):
    """SQLite database with an Item table holding three rows."""
    engine = create_engine(f"sqlite:///{temp_dir / 'items.db'}")
    metadata = MetaData()
    items = Table(
        'Item', metadata,
        SqlColumn('id', Integer, primary_key=True),
        SqlColumn('name', String(50)),
        SqlColumn('number', Integer),
    )
    metadata.create_all(engine)
    with engine.begin() as connection:
        connection.execute(insert(items), [
            {'name': 'first', 'number': 1},
            {'name': 'second', 'number': 2},
            {'name': 'third', 'number': 3},
        ])
    yield engine
    engine.dispose()
