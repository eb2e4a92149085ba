"""
Tests for the transcript-vault command-line interface.
"""

import pytest
from click.testing import CliRunner

from transcript_vault.cli import cli
from transcript_vault.cli.commands import maintenance, transcripts  # noqa: F401  (registers commands)
from transcript_vault.config import ENV_OVERRIDES
from transcript_vault.logger import configure_logging
from transcript_vault.catalogs.export import read_catalog


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    """Clear environment overrides and restore logging after each command."""
    for variable in ENV_OVERRIDES:
        monkeypatch.delenv(variable, raising=False)
    yield
    configure_logging()


@pytest.fixture
def store_args(tmp_path):
    return [
        '--store-path', str(tmp_path / "store"),
        '--config-dir', str(tmp_path / "config"),
        '--log-level', 'WARNING',
    ]


@pytest.fixture
def transcript_file(tmp_path):
    path = tmp_path / "episode.json"
    path.write_text('{"segments": []}', encoding="utf-8")
    return path


@pytest.fixture
def run(store_args):
    """Invoke a command against the temporary store."""
    runner = CliRunner()

    def invoke(*args, input=None):
        command, rest = args[0], list(args[1:])
        return runner.invoke(cli, [command, *store_args, *rest], input=input, catch_exceptions=False)

    return invoke


def upload(run, transcript_file, source_id="s1", *extra):
    return run(
        'upload', str(transcript_file),
        '--source-id', source_id,
        '--title', 'Episode One',
        '--date', '2023-04-15',
        '--speaker', 'Alice',
        '--format', 'json',
        *extra,
    )


class TestBasicCommands:
    """Test group-level commands."""

    def test_version(self):
        result = CliRunner().invoke(cli, ['version'], catch_exceptions=False)
        assert result.exit_code == 0
        assert "Transcript Vault v0.1.0" in result.output

    def test_init(self, run, tmp_path):
        result = run('init')

        assert result.exit_code == 0
        assert "Store initialized" in result.output
        assert (tmp_path / "store" / "metadata.duckdb").exists()


class TestUploadAndGet:
    """Test upload and retrieval commands."""

    def test_upload_assigns_versions(self, run, transcript_file):
        first = upload(run, transcript_file)
        second = upload(run, transcript_file)

        assert first.exit_code == 0
        assert "version 1" in first.output
        assert "version 2" in second.output

    def test_upload_generates_source_id(self, run, transcript_file):
        result = run(
            'upload', str(transcript_file),
            '--title', 'Untitled', '--date', '2023-04-15', '--format', 'text',
        )
        assert result.exit_code == 0
        assert "transcript_" in result.output

    def test_upload_invalid_date(self, run, transcript_file):
        result = run(
            'upload', str(transcript_file), '--source-id', 's1',
            '--title', 'T', '--date', '2023-02-30', '--format', 'json',
        )
        assert result.exit_code == 1
        assert "validation" in result.output

    def test_get_prints_content(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('get', 's1')

        assert result.exit_code == 0
        assert '{"segments": []}' in result.output

    def test_get_to_file(self, run, transcript_file, tmp_path):
        upload(run, transcript_file)
        output = tmp_path / "out" / "copy.json"

        result = run('get', 's1', '--version', '1', '--output', str(output))

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8") == '{"segments": []}'

    def test_get_metadata_only(self, run, transcript_file):
        upload(run, transcript_file, "s1", '--tag', 'history')
        result = run('get', 's1', '--metadata-only')

        assert result.exit_code == 0
        assert "history" in result.output
        assert "pending" in result.output

    def test_get_missing(self, run):
        result = run('get', 'nope')
        assert result.exit_code == 1
        assert "not_found" in result.output
        assert "nope" in result.output


class TestListingCommands:
    """Test versions, list and search."""

    def test_versions(self, run, transcript_file):
        upload(run, transcript_file)
        upload(run, transcript_file)

        result = run('versions', 's1')

        assert result.exit_code == 0
        assert "Versions of s1" in result.output

    def test_versions_unknown(self, run):
        result = run('versions', 'nope')
        assert result.exit_code == 0
        assert "No versions found" in result.output

    def test_list(self, run, transcript_file):
        upload(run, transcript_file, "s1")
        upload(run, transcript_file, "s1")
        upload(run, transcript_file, "s2")

        result = run('list')

        assert result.exit_code == 0
        assert "Showing 1-2 of 2" in result.output

    def test_list_zero_limit(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('list', '--limit', '0')
        assert "1 total" in result.output

    def test_search(self, run, transcript_file):
        upload(run, transcript_file, "s1")
        result = run('search', '--speaker', 'Alice', '--date-from', '2023-01-01')

        assert result.exit_code == 0
        assert "Showing 1-1 of 1" in result.output

    def test_search_reversed_dates(self, run):
        result = run('search', '--date-from', '2024-02-01', '--date-to', '2024-01-01')

        assert result.exit_code == 1
        assert "validation" in result.output
        assert "2024-02-01" in result.output


class TestStatusAndDelete:
    """Test status updates and deletion."""

    def test_status(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('status', 's1', '1', 'processed')

        assert result.exit_code == 0
        assert "processed" in result.output
        assert "Processing completed" in result.output

    def test_status_invalid(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('status', 's1', '1', 'done')
        assert result.exit_code == 1

    def test_delete_version(self, run, transcript_file):
        upload(run, transcript_file)
        upload(run, transcript_file)

        result = run('delete', 's1', '--version', '1', '--yes')

        assert result.exit_code == 0
        assert run('get', 's1', '--version', '1').exit_code == 1
        assert run('get', 's1', '--version', '2').exit_code == 0

    def test_delete_all_with_confirmation(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('delete', 's1', '--all', input="y\n")

        assert result.exit_code == 0
        assert "No versions found" in run('versions', 's1').output

    def test_delete_requires_target(self, run):
        result = run('delete', 's1', '--yes')
        assert result.exit_code == 2

    def test_delete_missing_version(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('delete', 's1', '--version', '9', '--yes')
        assert result.exit_code == 1
        assert "not_found" in result.output


class TestProcessCommand:
    """Test content processing."""

    def test_process_valid(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('process', 's1')

        assert result.exit_code == 0
        assert "s1 version 1 processed" in result.output
        assert "processed" in run('get', 's1', '--metadata-only').output

    def test_process_invalid_content(self, run, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"words": []}', encoding="utf-8")
        upload(run, bad)

        result = run('process', 's1', '--version', '1')

        assert result.exit_code == 1
        assert "failed" in result.output
        assert "failed" in run('get', 's1', '--metadata-only').output

    def test_process_pending(self, run, transcript_file):
        upload(run, transcript_file, "s1")
        upload(run, transcript_file, "s2")

        result = run('process', '--pending')

        assert result.exit_code == 0
        assert "Processed 2, failed 0" in result.output
        assert "No pending transcripts" in run('process', '--pending').output

    def test_process_requires_target(self, run):
        assert run('process').exit_code == 2
        assert run('process', 's1', '--pending').exit_code == 2


class TestMaintenanceCommands:
    """Test gc and export."""

    def test_gc_dry_run(self, run, transcript_file):
        upload(run, transcript_file)
        result = run('gc', '--dry-run', '--min-age-days', '0')

        assert result.exit_code == 0
        assert "found 0 orphan(s)" in result.output

    def test_export(self, run, transcript_file, tmp_path):
        upload(run, transcript_file, "s1")
        upload(run, transcript_file, "s2")
        output = tmp_path / "catalog.parquet"

        result = run('export', str(output))

        assert result.exit_code == 0
        assert sorted(read_catalog(output)["source_id"]) == ["s1", "s2"]

    def test_export_existing_file(self, run, transcript_file, tmp_path):
        upload(run, transcript_file)
        output = tmp_path / "catalog.parquet"
        run('export', str(output))

        result = run('export', str(output))
        assert result.exit_code == 1
        assert run('export', str(output), '--overwrite').exit_code == 0
