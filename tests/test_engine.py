import math
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

from csvgrid.core.columns import Column, serial_column
from csvgrid.core.errors import ConfigurationError, DataSourceError, ExportIOError, StateError
from csvgrid.core.models import ExportOptions, ExportState
from csvgrid.core.sources import CollectionSource, QuerySource, RowSource
from csvgrid.export.engine import ExportEngine, export
from csvgrid.export.result import ExportResult
from csvgrid.export.writer import CsvWriter


class ListQuery:
    """In-memory query implementing limit/offset paging."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = 0

    def fetch_page(self, offset, limit):
        self.calls += 1
        return self.rows[offset:offset + limit]


class CustomExportResult(ExportResult):
    """Result type supplied by the caller."""


class TrackingSource(CollectionSource):
    """Collection source that records whether it was closed."""

    closed = False

    def close(self):
        self.closed = True


class FailingSource(RowSource):
    """Serves one batch, then fails."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = 0
        self.closed = False

    def next_batch(self):
        self.calls += 1
        if self.calls == 1:
            return self.rows
        raise RuntimeError("database went away")

    def close(self):
        self.closed = True


def read_lines(path):
    return Path(path).read_text(encoding='utf-8').splitlines()


class TestExportScenarios:
    """Test the basic export scenarios end to end."""

    def test_two_rows_single_file(self, temp_dir, two_rows):
        """Test 2 rows without a cap give one file with header and both rows."""
        result = export(['id', 'name'], two_rows, ExportOptions(output_dir=temp_dir))

        assert len(result) == 1
        assert read_lines(result.single_file().path) == ['"Id","Name"', '"1","first"', '"2","second"']
        assert result.total_rows == 2

    def test_header_counting_toward_cap_splits_two_rows(self, temp_dir, two_rows):
        """Test a cap of 2 that includes the header gives one data row per file."""
        options = ExportOptions(output_dir=temp_dir, max_entries_per_file=2,
                                header_counts_toward_cap=True)
        result = export(['id', 'name'], two_rows, options)

        assert len(result) == 2
        assert read_lines(result.paths[0]) == ['"Id","Name"', '"1","first"']
        assert read_lines(result.paths[1]) == ['"Id","Name"', '"2","second"']

    def test_cap_counts_data_rows_only(self, temp_dir, two_rows):
        """Test the default cap ignores the header line."""
        result = export(['id', 'name'], two_rows, ExportOptions(output_dir=temp_dir, max_entries_per_file=2))

        assert len(result) == 1
        assert result.files[0].row_count == 2

    def test_empty_source_gives_one_file(self, temp_dir):
        """Test zero rows still produce exactly one file holding only the header."""
        result = export(['id', 'name'], [], ExportOptions(output_dir=temp_dir))

        assert len(result) == 1
        assert read_lines(result.paths[0]) == ['"Id","Name"']
        assert result.total_rows == 0

    def test_empty_source_without_header_gives_empty_file(self, temp_dir):
        result = export(['id'], [], ExportOptions(output_dir=temp_dir, show_header=False))

        assert len(result) == 1
        assert result.paths[0].read_text(encoding='utf-8') == ""

    def test_paged_query_source(self, temp_dir):
        """Test a paged source with batch size 2 over 3 rows is fetched twice, in order."""
        query = ListQuery([{'id': 1, 'name': 'first'}, {'id': 2, 'name': 'second'},
                           {'id': 3, 'name': 'third'}])
        source = QuerySource(query, batch_size=2)

        result = ExportEngine(['id', 'name'], source, ExportOptions(output_dir=temp_dir)).run()

        assert query.calls == 2
        assert read_lines(result.single_file().path) == [
            '"Id","Name"', '"1","first"', '"2","second"', '"3","third"'
        ]


class TestRowCap:
    """Test splitting rows across files."""

    @pytest.mark.parametrize("rows, cap", [(1, 1), (5, 2), (6, 3), (10, 4), (7, 10)])
    def test_file_count_and_order(self, temp_dir, rows, cap):
        """Test R rows with cap N give ceil(R/N) files, all full but the last, in order."""
        data = [{'id': n} for n in range(rows)]
        result = export(['id'], data, ExportOptions(output_dir=temp_dir, max_entries_per_file=cap))

        assert len(result) == math.ceil(rows / cap)
        counts = [csv_file.row_count for csv_file in result]
        assert all(count == cap for count in counts[:-1])
        assert 1 <= counts[-1] <= cap
        assert sum(counts) == rows

        written = []
        for path in result.paths:
            written.extend(read_lines(path)[1:])
        assert written == [f'"{n}"' for n in range(rows)]

    @pytest.mark.parametrize("cap", [None, 0, -3])
    def test_no_cap_means_single_file(self, temp_dir, cap):
        data = [{'id': n} for n in range(25)]
        result = export(['id'], data, ExportOptions(output_dir=temp_dir, max_entries_per_file=cap))

        assert len(result) == 1
        assert result.total_rows == 25

    def test_every_file_gets_header_and_footer(self, temp_dir):
        columns = [Column(attribute='id', footer='Total')]
        options = ExportOptions(output_dir=temp_dir, max_entries_per_file=2, show_footer=True)
        result = export(columns, [{'id': n} for n in range(3)], options)

        assert read_lines(result.paths[0]) == ['"Id"', '"0"', '"1"', '"Total"']
        assert read_lines(result.paths[1]) == ['"Id"', '"2"', '"Total"']

    def test_cap_spans_batches(self, temp_dir):
        """Test files fill up across batch boundaries."""
        query = ListQuery([{'id': n} for n in range(5)])
        source = QuerySource(query, batch_size=2)
        options = ExportOptions(output_dir=temp_dir, max_entries_per_file=3, show_header=False)

        result = ExportEngine(['id'], source, options).run()

        assert [read_lines(path) for path in result.paths] == [['"0"', '"1"', '"2"'], ['"3"', '"4"']]

    @pytest.mark.parametrize("cap", ["10", 2.5, True])
    def test_invalid_cap_type(self, temp_dir, cap):
        with pytest.raises(ConfigurationError):
            export(['id'], [], ExportOptions(output_dir=temp_dir, max_entries_per_file=cap))


class TestEngineOutput:
    """Test headers, column order and file naming."""

    def test_without_header(self, temp_dir, two_rows):
        result = export(['id', 'name'], two_rows, ExportOptions(output_dir=temp_dir, show_header=False))

        assert read_lines(result.paths[0]) == ['"1","first"', '"2","second"']

    def test_column_order_is_declaration_order(self, temp_dir, two_rows):
        result = export(['name', 'id'], two_rows, ExportOptions(output_dir=temp_dir))

        assert read_lines(result.paths[0])[:2] == ['"Name","Id"', '"first","1"']

    def test_text_format_and_custom_header(self, temp_dir):
        rows = [{'name': 'Fish &amp; Chips'}]
        result = export(['name:text:Dish'], rows, ExportOptions(output_dir=temp_dir))

        assert read_lines(result.paths[0]) == ['"Dish"', '"Fish & Chips"']

    def test_serial_numbering_continues_across_files(self, temp_dir):
        """Test serial columns count rows across the whole export."""
        options = ExportOptions(output_dir=temp_dir, max_entries_per_file=2, show_header=False)
        result = export([serial_column(), 'name'], [{'name': c} for c in 'abc'], options)

        assert read_lines(result.paths[1]) == ['"3","c"']

    def test_default_file_names(self, temp_dir, two_rows):
        options = ExportOptions(output_dir=temp_dir, max_entries_per_file=1, file_base_name="items")
        result = export(['id'], two_rows, options)

        assert [path.name for path in result.paths] == ['items-001.csv', 'items-002.csv']

    def test_custom_file_namer(self, temp_dir, two_rows):
        options = ExportOptions(max_entries_per_file=1,
                                file_namer=lambda index: temp_dir / f"part{index}.csv")
        result = export(['id'], two_rows, options)

        assert result.paths == [temp_dir / 'part1.csv', temp_dir / 'part2.csv']

    def test_temporary_directory_without_output_dir(self, two_rows):
        result = export(['id'], two_rows)
        try:
            assert result.single_file().path.parent.name.startswith("csvgrid-")
        finally:
            result.delete()

    def test_custom_formatter(self, temp_dir, two_rows):
        formatter = MagicMock()
        formatter.format.side_effect = lambda value, spec: f"<{value}>"

        result = export(['id'], two_rows, ExportOptions(output_dir=temp_dir, show_header=False),
                        formatter=formatter)

        assert read_lines(result.paths[0]) == ['"<1>"', '"<2>"']

    def test_rejects_formatter_without_format(self, temp_dir):
        with pytest.raises(ConfigurationError):
            export(['id'], [], ExportOptions(output_dir=temp_dir), formatter=object())

    def test_rejects_empty_columns(self, temp_dir):
        with pytest.raises(ConfigurationError):
            export([], [{'id': 1}], ExportOptions(output_dir=temp_dir))


class TestEngineLifecycle:
    """Test engine states and failure handling."""

    def test_states(self, temp_dir, two_rows):
        engine = ExportEngine(['id'], CollectionSource(two_rows), ExportOptions(output_dir=temp_dir))
        assert engine.state is ExportState.IDLE

        engine.run()

        assert engine.state is ExportState.DONE

    def test_engine_runs_once(self, temp_dir, two_rows):
        engine = ExportEngine(['id'], CollectionSource(two_rows), ExportOptions(output_dir=temp_dir))
        engine.run()

        with pytest.raises(StateError):
            engine.run()

    def test_source_failure_closes_writer(self, temp_dir):
        """Test a failing fetch closes the open file and propagates with batch context."""
        source = FailingSource([{'id': 1}])
        engine = ExportEngine(['id'], source, ExportOptions(output_dir=temp_dir))

        with pytest.raises(DataSourceError) as exc_info:
            engine.run()

        assert engine.state is ExportState.FAILED
        assert exc_info.value.context['batch'] == 2
        assert source.closed
        assert engine._writer is None
        # The partial file was closed and is left on disk
        assert read_lines(temp_dir / 'export-001.csv') == ['"Id"', '"1"']

    def test_write_failure_propagates(self, temp_dir, two_rows):
        """Test an I/O error while writing aborts the run after closing the file."""
        real_close = CsvWriter.close
        engine = ExportEngine(['id'], CollectionSource(two_rows), ExportOptions(output_dir=temp_dir))

        with patch.object(CsvWriter, 'write_row', side_effect=ExportIOError("disk full")):
            with patch.object(CsvWriter, 'close', autospec=True, side_effect=real_close) as close:
                with pytest.raises(ExportIOError, match="disk full"):
                    engine.run()

        assert engine.state is ExportState.FAILED
        close.assert_called_once()
        writer = close.call_args[0][0]
        assert writer.closed
        assert engine.files == []

    def test_rejects_non_source(self, temp_dir):
        with pytest.raises(ConfigurationError):
            ExportEngine(['id'], [{'id': 1}], ExportOptions(output_dir=temp_dir)).run()

    def test_configuration_error_closes_source(self, temp_dir):
        """Test a source is closed even when the export fails before streaming."""
        source = TrackingSource([{'id': 1}])
        engine = ExportEngine([], source, ExportOptions(output_dir=temp_dir))

        with pytest.raises(ConfigurationError):
            engine.run()

        assert source.closed
        assert engine.state is ExportState.FAILED
        assert list(temp_dir.iterdir()) == []

    def test_infinite_values_do_not_abort(self, temp_dir):
        """Test values a numeric format cannot handle are written as they are."""
        rows = [{'x': float('inf')}, {'x': 10 ** 20}]
        options = ExportOptions(output_dir=temp_dir, show_header=False)

        result = export([Column(attribute='x', format='integer'), Column(attribute='x', format='date')],
                        rows, options)

        assert read_lines(result.single_file().path) == [
            '"inf","inf"',
            '"100000000000000000000","100000000000000000000"',
        ]


class TestResultClass:
    """Test exports returning a caller-supplied result type."""

    def test_custom_result_class(self, temp_dir, two_rows):
        options = ExportOptions(output_dir=temp_dir, result_class=CustomExportResult)

        result = export(['id', 'name'], two_rows, options)

        assert isinstance(result, CustomExportResult)
        assert result.total_rows == 2

    def test_default_result_class(self, temp_dir, two_rows):
        result = export(['id'], two_rows, ExportOptions(output_dir=temp_dir))
        assert type(result) is ExportResult

    @pytest.mark.parametrize("result_class", [dict, "ExportResult", object()])
    def test_rejects_other_result_classes(self, temp_dir, result_class):
        source = TrackingSource([{'id': 1}])
        with pytest.raises(ConfigurationError, match="result_class"):
            ExportEngine(['id'], source, ExportOptions(output_dir=temp_dir, result_class=result_class)).run()
        assert source.closed
