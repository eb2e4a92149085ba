"""
Transcript commands: upload, retrieve, list, search, process, update and delete.

Each command opens the configured store, runs one storage operation and
renders the result with rich.
"""

import sys
from pathlib import Path
from typing import Iterable

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from transcript_vault import dates
from transcript_vault.cli import cli, common_options, console, open_storage, resolve_settings
from transcript_vault.ids import generate_source_id
from transcript_vault.models import FORMAT_VALUES, STATUS_VALUES, ListResult, TranscriptListItem
from transcript_vault.storage.processor import TranscriptProcessor


def _listing_table(items: Iterable[TranscriptListItem], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Source ID", style="cyan")
    table.add_column("Version", style="magenta", justify="right")
    table.add_column("Title", style="white")
    table.add_column("Date", style="white")
    table.add_column("Status", style="green")
    table.add_column("Uploaded", style="white")

    for item in items:
        metadata = item.metadata
        table.add_row(
            metadata.source_id,
            str(metadata.version),
            metadata.title,
            dates.database_to_user_input(metadata.date),
            metadata.processing_status.value,
            item.uploaded_at,
        )
    return table


def _print_listing(result: ListResult, title: str, offset: int) -> None:
    if not result.items:
        console.print(f"[yellow]No transcripts on this page ({result.total} total)[/yellow]")
        return
    console.print(_listing_table(result.items, title))
    first = offset + 1
    last = offset + len(result.items)
    console.print(f"Showing {first}-{last} of {result.total}")


@cli.command()
@common_options
def init(store_path, config_dir, log_level):
    """Create the transcript store and its metadata index."""
    settings = resolve_settings(store_path, config_dir, log_level)
    with open_storage(settings):
        pass

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Blob Root", str(settings.blob_root))
    table.add_row("Database", str(settings.database_path))
    table.add_row("Key Prefix", settings.key_prefix)
    console.print(Panel(table, title="Transcript Store", border_style="cyan"))
    console.print("[bold green]✓ Store initialized[/bold green]")


@cli.command()
@common_options
@click.argument('content_file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--source-id', default=None, help='Lineage identifier (default: generated)')
@click.option('--title', required=True, help='Transcript title')
@click.option('--date', 'date_', required=True, help='Recording date (YYYY-MM-DD)')
@click.option('--speaker', 'speakers', multiple=True, help='Speaker name (repeatable)')
@click.option('--format', 'format_', type=click.Choice(FORMAT_VALUES), required=True, help='Content format')
@click.option('--tag', 'tags', multiple=True, help='Tag (repeatable)')
@click.option('--status', type=click.Choice(STATUS_VALUES), default=None, help='Initial processing status (default: pending)')
def upload(content_file, source_id, title, date_, speakers, format_, tags, status, store_path, config_dir, log_level):
    """
    Upload CONTENT_FILE as a new version of a transcript.

    Examples:

        transcript-vault upload ep1.json --source-id s1 --title "Episode 1"
            --date 2023-04-15 --speaker Alice --speaker Bob --format json
    """
    settings = resolve_settings(store_path, config_dir, log_level)
    content = content_file.read_text(encoding="utf-8")

    metadata = {
        "source_id": source_id or generate_source_id(),
        "title": title,
        "date": date_,
        "speakers": list(speakers),
        "format": format_,
        "tags": list(tags),
    }
    if status:
        metadata["processing_status"] = status

    with open_storage(settings) as storage:
        result = storage.upload_transcript(content, metadata)

    console.print(
        f"[bold green]✓ Stored {result.metadata.source_id} "
        f"version {result.metadata.version}[/bold green]"
    )
    console.print(f"[cyan]Key:[/cyan] {result.storage_key}")
    console.print(f"[cyan]Location:[/cyan] {result.location}")


@cli.command()
@common_options
@click.argument('source_id')
@click.option('--version', 'version_', type=click.IntRange(min=1), default=None, help='Version (default: latest)')
@click.option(
    '--output',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Write content to this file instead of stdout',
)
@click.option('--metadata-only', is_flag=True, help='Show metadata without content')
def get(source_id, version_, output, metadata_only, store_path, config_dir, log_level):
    """Retrieve a transcript version (latest by default)."""
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        record = storage.get_transcript(source_id, version_)

    metadata = record.metadata
    if metadata_only:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Field", style="cyan")
        table.add_column("Value", style="white")
        for name, value in metadata.to_dict().items():
            if isinstance(value, list):
                value = ", ".join(value)
            table.add_row(name, "" if value is None else str(value))
        console.print(table)
        return

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(record.content, encoding="utf-8")
        console.print(f"[green]Wrote version {metadata.version} of {source_id} to {output}[/green]")
    else:
        click.echo(record.content)


@cli.command()
@common_options
@click.argument('source_id')
def versions(source_id, store_path, config_dir, log_level):
    """List every version of a transcript, newest first."""
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        items = storage.list_versions(source_id)

    if not items:
        console.print(f"[yellow]No versions found for {source_id}[/yellow]")
        return
    console.print(_listing_table(items, f"Versions of {source_id}"))


@cli.command(name='list')
@common_options
@click.option('--limit', type=int, default=None, help='Page size (default: 10)')
@click.option('--offset', type=int, default=None, help='Number of transcripts to skip (default: 0)')
def list_command(limit, offset, store_path, config_dir, log_level):
    """List the latest version of every transcript, newest upload first."""
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        result = storage.list_transcripts(limit=limit, offset=offset)

    _print_listing(result, "Transcripts", offset or 0)


@cli.command()
@common_options
@click.option('--title', default=None, help='Case-insensitive title substring')
@click.option('--speaker', default=None, help='Exact speaker name')
@click.option('--tag', default=None, help='Exact tag')
@click.option('--date-from', default=None, help='Earliest recording date (YYYY-MM-DD)')
@click.option('--date-to', default=None, help='Latest recording date (YYYY-MM-DD)')
@click.option('--status', default=None, help='Processing status')
@click.option('--limit', type=int, default=None, help='Page size (default: 10)')
@click.option('--offset', type=int, default=None, help='Number of transcripts to skip (default: 0)')
def search(title, speaker, tag, date_from, date_to, status, limit, offset, store_path, config_dir, log_level):
    """
    Search the latest version of every transcript.

    All given criteria must match.

    Examples:

        transcript-vault search --speaker Alice --date-from 2023-01-01
    """
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        result = storage.search_transcripts(
            title=title,
            speaker=speaker,
            tag=tag,
            date_from=date_from,
            date_to=date_to,
            status=status,
            limit=limit,
            offset=offset,
        )

    _print_listing(result, "Search Results", offset or 0)


@cli.command()
@common_options
@click.argument('source_id')
@click.argument('version_', metavar='VERSION', type=int)
@click.argument('status')
def status(source_id, version_, status, store_path, config_dir, log_level):
    """Set the processing status of one transcript version."""
    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        metadata = storage.update_processing_status(source_id, version_, status)

    console.print(
        f"[bold green]✓ {source_id} version {version_} is now "
        f"{metadata.processing_status.value}[/bold green]"
    )
    if metadata.processing_completed_at:
        console.print(f"[cyan]Processing completed:[/cyan] {metadata.processing_completed_at}")


@cli.command()
@common_options
@click.argument('source_id', required=False)
@click.option('--version', 'version_', type=click.IntRange(min=1), default=None, help='Version (default: latest)')
@click.option('--pending', 'all_pending', is_flag=True, help='Process every transcript whose latest version is pending')
def process(source_id, version_, all_pending, store_path, config_dir, log_level):
    """
    Check transcript content against its format and set its processing status.

    Valid content ends up processed, invalid content failed.

    Examples:

        transcript-vault process s1 --version 2

        transcript-vault process --pending
    """
    if (source_id is None) == (not all_pending):
        raise click.UsageError("Specify exactly one of SOURCE_ID or --pending")
    if all_pending and version_ is not None:
        raise click.UsageError("--version cannot be combined with --pending")

    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        processor = TranscriptProcessor(storage)
        if all_pending:
            report = processor.process_pending()
        else:
            result = processor.process_transcript(source_id, version_)

    if all_pending:
        if not report.results:
            console.print("[yellow]No pending transcripts[/yellow]")
            return
        table = Table(title="Processing Results")
        table.add_column("Source ID", style="cyan")
        table.add_column("Version", style="magenta", justify="right")
        table.add_column("Status", style="green")
        table.add_column("Error", style="red")
        for item in report.results:
            table.add_row(
                item.metadata.source_id,
                str(item.metadata.version),
                item.metadata.processing_status.value,
                escape(item.error or ""),
            )
        console.print(table)
        console.print(f"Processed {report.processed}, failed {report.failed}")
        return

    metadata = result.metadata
    if result.success:
        console.print(
            f"[bold green]✓ {metadata.source_id} version {metadata.version} processed[/bold green]"
        )
        return
    console.print(
        f"[bold red]✗ {metadata.source_id} version {metadata.version} failed:[/bold red] {escape(result.error)}"
    )
    sys.exit(1)


@cli.command()
@common_options
@click.argument('source_id')
@click.option('--version', 'version_', type=int, default=None, help='Version to delete')
@click.option('--all', 'all_versions', is_flag=True, help='Delete every version of the transcript')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
def delete(source_id, version_, all_versions, yes, store_path, config_dir, log_level):
    """Delete one version (--version N) or every version (--all) of a transcript."""
    if (version_ is None) == (not all_versions):
        raise click.UsageError("Specify exactly one of --version or --all")

    target = f"all versions of {source_id}" if all_versions else f"{source_id} version {version_}"
    if not yes:
        click.confirm(f"Delete {target}?", abort=True)

    settings = resolve_settings(store_path, config_dir, log_level)

    with open_storage(settings) as storage:
        if all_versions:
            storage.delete_all_versions(source_id)
        else:
            storage.delete_transcript_version(source_id, version_)

    console.print(f"[bold green]✓ Deleted {target}[/bold green]")
