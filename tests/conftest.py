"""
Shared fixtures for transcript_vault tests.
"""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from transcript_vault import dates
from transcript_vault.storage import InMemoryBlobStore, LocalBlobStore, MetadataIndex, TranscriptStorage


@pytest.fixture
def clock(monkeypatch):
    """
    Deterministic clock: every call to dates.now() advances one second.

    Uploads made in sequence therefore get strictly increasing uploaded_at
    values.
    """
    start = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    ticks = itertools.count()

    def fake_now():
        return dates.format_database_date(start + timedelta(seconds=next(ticks)))

    monkeypatch.setattr(dates, "now", fake_now)
    return fake_now


@pytest.fixture
def index():
    """Initialized in-memory metadata index."""
    metadata_index = MetadataIndex(":memory:")
    metadata_index.initialize()
    yield metadata_index
    metadata_index.close()


@pytest.fixture
def memory_storage(index, clock):
    """Storage engine over an in-memory blob store and index."""
    return TranscriptStorage(InMemoryBlobStore(), index)


@pytest.fixture
def local_storage(tmp_path, clock):
    """Storage engine over a local blob directory and a DuckDB file."""
    storage = TranscriptStorage(
        LocalBlobStore(tmp_path / "blobs"),
        MetadataIndex(tmp_path / "metadata.duckdb"),
    )
    storage.initialize_database()
    yield storage
    storage.close()


@pytest.fixture(params=["memory", "local"])
def storage(request):
    """Storage engine, run once per blob store backend."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def sample_metadata():
    """Minimal valid upload metadata."""
    return {
        "source_id": "s1",
        "title": "T",
        "date": "2023-04-15",
        "speakers": ["A"],
        "format": "json",
    }


@pytest.fixture
def make_metadata():
    """Factory for upload metadata for a source id with optional overrides."""
    def factory(source_id: str, **overrides) -> dict:
        metadata = {
            "source_id": source_id,
            "title": f"Episode {source_id}",
            "date": "2023-04-15",
            "speakers": ["Alice"],
            "format": "text",
        }
        metadata.update(overrides)
        return metadata
    return factory
