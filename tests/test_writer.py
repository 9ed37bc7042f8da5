import pytest
from unittest.mock import patch

from csvgrid.core.errors import ExportIOError, StateError, WriterStateError
from csvgrid.export.writer import CsvWriter


class TestCsvWriter:
    """Test the single-file CSV writer."""

    def test_quotes_every_field(self, temp_dir):
        """Test fields are quoted, embedded quotes doubled and rows end with a newline."""
        path = temp_dir / "out.csv"
        writer = CsvWriter().open(path)
        writer.write_header(["Id", "Name"])
        writer.write_row(["1", 'say "hi", please'])
        writer.close()

        assert path.read_text(encoding='utf-8') == '"Id","Name"\n"1","say ""hi"", please"\n'

    def test_empty_and_none_values(self, temp_dir):
        path = temp_dir / "out.csv"
        with CsvWriter().open(path) as writer:
            writer.write_row(["", None, 0])

        assert path.read_text(encoding='utf-8') == '"","","0"\n'

    def test_embedded_newlines_stay_in_field(self, temp_dir):
        path = temp_dir / "out.csv"
        with CsvWriter().open(path) as writer:
            writer.write_row(["line one\nline two"])

        assert path.read_text(encoding='utf-8') == '"line one\nline two"\n'

    def test_only_data_rows_are_counted(self, temp_dir):
        """Test header and footer lines do not count as data rows."""
        writer = CsvWriter().open(temp_dir / "out.csv")
        writer.write_header(["A"])
        writer.write_row(["1"])
        writer.write_row(["2"])
        writer.write_footer(["Total"])
        csv_file = writer.close()

        assert writer.row_count == 2
        assert writer.line_count == 4
        assert csv_file.row_count == 2
        assert csv_file.closed

    def test_creates_parent_directories(self, temp_dir):
        path = temp_dir / "nested" / "deeper" / "out.csv"
        CsvWriter().open(path).close()

        assert path.exists()

    def test_close_is_idempotent(self, temp_dir):
        """Test closing twice returns the same file description."""
        writer = CsvWriter().open(temp_dir / "out.csv")
        writer.write_row(["1"])

        first = writer.close()
        second = writer.close()

        assert first == second
        assert writer.closed
        assert not writer.is_open

    def test_close_without_open(self):
        assert CsvWriter().close() is None

    def test_write_after_close(self, temp_dir):
        """Test writing to a closed writer is a state error."""
        writer = CsvWriter().open(temp_dir / "out.csv")
        writer.close()

        with pytest.raises(WriterStateError, match="closed"):
            writer.write_row(["1"])

    def test_write_before_open(self):
        with pytest.raises(StateError, match="not open"):
            CsvWriter().write_header(["A"])

    def test_writer_cannot_be_reopened(self, temp_dir):
        writer = CsvWriter().open(temp_dir / "a.csv")
        writer.close()

        with pytest.raises(WriterStateError):
            writer.open(temp_dir / "b.csv")

    def test_open_failure(self, temp_dir):
        """Test OS errors while opening become ExportIOError with the path."""
        path = temp_dir / "out.csv"
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(ExportIOError) as exc_info:
                CsvWriter().open(path)

        assert exc_info.value.context['path'] == path
        assert "denied" in str(exc_info.value)

    def test_encoding(self, temp_dir):
        path = temp_dir / "out.csv"
        with CsvWriter(encoding="utf-16").open(path) as writer:
            writer.write_row(["grüße"])

        assert path.read_text(encoding="utf-16") == '"grüße"\n'
