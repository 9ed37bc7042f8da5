"""
csvgrid CLI - export rows from data files or databases into CSV files
"""

import click
import logging
import sys
from pathlib import Path

from ..__version__ import __version__
from ..config.loaders import load_rows
from ..config.settings import ExportJobConfig, ExportJobConfigManager
from ..core.columns import columns_from_rows
from ..core.errors import CsvGridError, ConfigurationError
from ..core.sources import CollectionSource, QuerySource
from ..export.engine import ExportEngine
from ..export.result import ExportResult

logger = logging.getLogger(__name__)


@click.group(context_settings=dict(help_option_names=['-h', '--help']))
@click.version_option(version=__version__, prog_name="csvgrid")
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging.')
def main(verbose):
    """
    csvgrid CLI: export tabular data to CSV files.

    Rows come from a JSON, JSON Lines, CSV or YAML file, or from a database
    table or query, and can be split across several files.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )


@main.command('export')
@click.argument('input_file', required=False, type=click.Path(exists=True, dir_okay=False))
@click.option('--job', '-j', 'job_file', type=click.Path(exists=True, dir_okay=False),
              help='YAML job file describing columns, options and source.')
@click.option('--db-url', help='SQLAlchemy database URL to read rows from.')
@click.option('--table', help='Table to export (with --db-url).')
@click.option('--sql', help='SELECT query to export (with --db-url).')
@click.option('--column', '-c', 'columns', multiple=True,
              help='Column as "attribute[:format[:header]]" (can be used multiple times).')
@click.option('--output-dir', '-o', type=click.Path(file_okay=False), help='Directory for the CSV files.')
@click.option('--max-entries', '-m', type=int, help='Maximum data rows per file (0 = unlimited).')
@click.option('--batch-size', type=int, help='Rows fetched per database round-trip.')
@click.option('--header/--no-header', default=None, help='Write a header row to every file.')
@click.option('--footer/--no-footer', default=None, help='Write a footer row to every file.')
@click.option('--base-name', help='Base name for the output files.')
@click.option('--merge', 'merge_path', type=click.Path(dir_okay=False),
              help='Also merge all files into this single file.')
@click.option('--archive', 'archive_path', type=click.Path(dir_okay=False),
              help='Also pack all files into this zip archive.')
@click.option('--manifest', 'manifest_path', type=click.Path(dir_okay=False),
              help='Write a JSON manifest of the produced files.')
def export_command(input_file, job_file, db_url, table, sql, columns, output_dir, max_entries,
                   batch_size, header, footer, base_name, merge_path, archive_path, manifest_path):
    """Export rows to one or more CSV files."""
    source = None
    if input_file:
        source = {'path': input_file}
    elif db_url:
        source = {'url': db_url, 'table': table, 'sql': sql}

    try:
        config = ExportJobConfigManager().load(
            Path(job_file) if job_file else None,
            columns=list(columns) or None,
            max_entries_per_file=max_entries,
            batch_size=batch_size,
            show_header=header,
            show_footer=footer,
            output_dir=output_dir,
            file_base_name=base_name,
            source=source,
        )
        if config.output_dir is None:
            config.output_dir = str(Path.cwd())

        row_source, column_declarations = _prepare_source(config)
        engine = ExportEngine(column_declarations, row_source,
                              options=config.to_options(), formatter=config.build_formatter())
        result = engine.run()

        for csv_file in result:
            click.echo(f"📄 {csv_file.path} ({csv_file.row_count} rows)")
        click.echo(f"✅ Exported {result.total_rows} rows into {len(result)} file(s)")

        if merge_path:
            merged = result.merge_to_single_file(merge_path)
            click.echo(f"🔗 Merged into {merged.path}")
        if archive_path:
            click.echo(f"📦 Archived into {result.archive(archive_path)}")
        if manifest_path:
            click.echo(f"🔧 Manifest written to {result.write_manifest(manifest_path)}")

    except CsvGridError as e:
        click.echo(f"❌ Export failed: {e}", err=True)
        sys.exit(1)


@main.command('merge')
@click.argument('output', type=click.Path(dir_okay=False))
@click.argument('files', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option('--header/--no-header', default=True, help='Input files start with a header row.')
@click.option('--footer/--no-footer', default=False, help='Input files end with a footer row.')
def merge_command(output, files, header, footer):
    """Merge CSV files written by an export into OUTPUT."""
    try:
        result = ExportResult.from_paths(files, has_header=header, has_footer=footer)
        merged = result.merge_to_single_file(output)
    except CsvGridError as e:
        click.echo(f"❌ Merge failed: {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ Merged {len(result)} files into {merged.path} ({merged.row_count} rows)")


def _prepare_source(config: ExportJobConfig):
    """Build the row source, guessing the columns when none are configured."""
    if config.columns:
        return config.build_source(), config.columns

    source = config.source or {}
    if source.get("path"):
        rows = load_rows(source["path"])
        columns = columns_from_rows(rows)
        if not columns:
            raise ConfigurationError("Cannot guess columns from an empty input file, use --column")
        return CollectionSource(rows), columns

    row_source = config.build_source()
    if isinstance(row_source, QuerySource) and hasattr(row_source.query, "column_names"):
        logger.debug("Using the query's result columns")
        return row_source, list(row_source.query.column_names())
    return row_source, config.columns


if __name__ == '__main__':
    main()
