"""
Command-line interface for the transcript_vault package.

Provides commands for uploading, retrieving, listing, searching and deleting
transcript versions, plus maintenance commands.
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

import click
from rich.console import Console

from transcript_vault import __version__
from transcript_vault.config import Config, StorageSettings
from transcript_vault.errors import StorageError
from transcript_vault.logger import configure_logging
from transcript_vault.storage import TranscriptStorage


console = Console(legacy_windows=False)


# Common options that can be reused across commands
def common_options(func):
    """Decorator to add common CLI options."""
    func = click.option(
        '--store-path',
        type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
        default=None,
        help='Path to the transcript store (default: from config, ./transcript_store)',
    )(func)
    func = click.option(
        '--config-dir',
        type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
        default=Path('config'),
        help='Path to configuration directory (default: ./config)',
    )(func)
    func = click.option(
        '--log-level',
        type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
        default=None,
        help='Logging level (default: from config, INFO)',
    )(func)
    return func


def resolve_settings(
    store_path: Optional[Path],
    config_dir: Path,
    log_level: Optional[str],
) -> StorageSettings:
    """Load configuration, configure logging and resolve storage settings."""
    config = Config(config_dir)
    level = log_level or config.get("logging", "level", default="INFO")
    log_file = config.get("logging", "file")
    configure_logging(level=level, log_file=Path(log_file) if log_file else None)
    return config.settings(root=store_path)


@contextmanager
def open_storage(settings: StorageSettings) -> Iterator[TranscriptStorage]:
    """
    Open the storage engine for a command and report storage errors.

    A StorageError raised inside the block prints its kind and message and
    exits with status 1.
    """
    storage = None
    try:
        storage = TranscriptStorage.from_settings(settings)
        storage.initialize_database()
        yield storage
    except StorageError as e:
        console.print(f"[bold red]Error ({e.kind.value}):[/bold red] {e.message}")
        sys.exit(1)
    finally:
        if storage is not None:
            storage.close()


@click.group()
@click.version_option(version=__version__, prog_name='transcript-vault')
@click.pass_context
def cli(ctx):
    """
    Transcript Vault CLI.

    Versioned storage for text transcripts: every upload for the same source
    becomes a new version, and listings show the latest version of each.
    """
    ctx.ensure_object(dict)


@cli.command()
def version():
    """Display version information."""
    click.echo(f"Transcript Vault v{__version__}")


def main():
    """Main entry point for the CLI."""
    # Import commands to register them
    from transcript_vault.cli.commands import maintenance, transcripts

    cli()


if __name__ == '__main__':
    main()
