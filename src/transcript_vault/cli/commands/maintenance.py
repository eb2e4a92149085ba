"""
Maintenance commands: orphan blob sweep and catalog export.
"""

import sys
from pathlib import Path

import click
from rich.table import Table

from transcript_vault.catalogs.export import export_catalog
from transcript_vault.cli import cli, common_options, console, open_storage, resolve_settings
from transcript_vault.storage.cleanup import sweep_orphan_blobs


@cli.command()
@common_options
@click.option(
    '--min-age-days',
    type=click.IntRange(min=0),
    default=None,
    help='Only remove orphans at least this many days old (default: from config, 30)',
)
@click.option('--dry-run', is_flag=True, help='Report orphans without deleting them')
def gc(min_age_days, dry_run, store_path, config_dir, log_level):
    """
    Remove blobs that no transcript version references.

    Uploads whose metadata write failed leave their content behind; this
    command finds and deletes such blobs once they are old enough.
    """
    settings = resolve_settings(store_path, config_dir, log_level)
    if min_age_days is None:
        min_age_days = settings.orphan_min_age_days

    with open_storage(settings) as storage:
        report = sweep_orphan_blobs(
            storage.blob_store,
            storage.index,
            prefix=f"{storage.key_prefix}/",
            min_age_days=min_age_days,
            dry_run=dry_run,
        )

    if report.orphans:
        table = Table(title="Orphan Blobs")
        table.add_column("Key", style="cyan")
        table.add_column("Uploaded", style="white")
        table.add_column("Size", style="magenta", justify="right")
        for blob in report.orphans:
            table.add_row(blob.key, blob.uploaded_at, str(blob.size))
        console.print(table)

    console.print(report.summary())
    if report.failed:
        sys.exit(1)


@cli.command()
@common_options
@click.argument('output_path', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--page-size', type=click.IntRange(min=1), default=100, help='Lineages fetched per page')
@click.option('--overwrite', is_flag=True, help='Replace an existing output file')
def export(output_path, page_size, overwrite, store_path, config_dir, log_level):
    """Export the latest version of every transcript to a Parquet catalog."""
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        try:
            count = export_catalog(storage, output_path, page_size=page_size, overwrite=overwrite)
        except FileExistsError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            sys.exit(1)

    console.print(f"[bold green]✓ Exported {count} transcript(s) to {output_path}[/bold green]")
