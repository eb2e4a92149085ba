"""
Tests for transcript retrieval and version history.
"""

import pytest

from transcript_vault.errors import NotFoundError


class TestGetTranscript:
    """Test retrieval by version and latest-version resolution."""

    def test_content_round_trip(self, storage, sample_metadata):
        content = '{"segments": [{"speaker": "A", "text": "Grüß Gott \\u2014 ok"}]}\n\tend'
        storage.upload_transcript(content, sample_metadata)

        assert storage.get_transcript("s1", 1).content == content

    def test_latest_by_default(self, storage, sample_metadata):
        storage.upload_transcript("v1", sample_metadata)
        storage.upload_transcript("v2", sample_metadata)

        record = storage.get_transcript("s1")

        assert record.content == "v2"
        assert record.metadata.version == 2

    def test_specific_version(self, storage, sample_metadata):
        storage.upload_transcript("v1", sample_metadata)
        storage.upload_transcript("v2", sample_metadata)

        assert storage.get_transcript("s1", 1).content == "v1"

    def test_latest_after_deleting_newest(self, storage, sample_metadata):
        storage.upload_transcript("v1", sample_metadata)
        storage.upload_transcript("v2", sample_metadata)
        storage.delete_transcript_version("s1", 2)

        record = storage.get_transcript("s1")
        assert record.metadata.version == 1
        assert record.content == "v1"

    def test_metadata_round_trip(self, storage, sample_metadata):
        sample_metadata.update(tags=["a", "b"], speakers=["X", "Y"], format="srt")
        uploaded = storage.upload_transcript("x", sample_metadata).metadata

        fetched = storage.get_transcript("s1").metadata
        assert fetched == uploaded

    def test_missing_lineage(self, storage):
        with pytest.raises(NotFoundError, match="nope") as exc_info:
            storage.get_transcript("nope")
        assert exc_info.value.source_id == "nope"

    def test_missing_version_names_both(self, storage, sample_metadata):
        storage.upload_transcript("v1", sample_metadata)

        with pytest.raises(NotFoundError) as exc_info:
            storage.get_transcript("s1", 9)

        assert "s1" in exc_info.value.message
        assert "9" in exc_info.value.message
        assert exc_info.value.version == 9

    def test_missing_blob_is_not_found(self, storage, sample_metadata):
        result = storage.upload_transcript("v1", sample_metadata)
        storage.blob_store.delete(result.storage_key)

        with pytest.raises(NotFoundError, match=result.storage_key):
            storage.get_transcript("s1")


class TestListVersions:
    """Test version history listing."""

    def test_newest_first(self, storage, sample_metadata):
        for n in range(3):
            storage.upload_transcript(f"v{n + 1}", sample_metadata)

        items = storage.list_versions("s1")

        assert [item.metadata.version for item in items] == [3, 2, 1]
        assert items[0].uploaded_at > items[-1].uploaded_at

    def test_items_carry_key_location_and_size(self, storage, sample_metadata):
        result = storage.upload_transcript("12345", sample_metadata)
        item = storage.list_versions("s1")[0]

        assert item.storage_key == result.storage_key
        assert item.location == result.location
        assert item.size == 5
        assert item.uploaded_at == result.metadata.uploaded_at

    def test_unknown_lineage_is_empty(self, storage):
        assert storage.list_versions("nope") == []

    def test_excludes_deleted_version(self, storage, sample_metadata):
        for n in range(3):
            storage.upload_transcript(f"v{n + 1}", sample_metadata)
        storage.delete_transcript_version("s1", 2)

        assert [item.metadata.version for item in storage.list_versions("s1")] == [3, 1]


class TestConcreteScenario:
    """The end-to-end s1 walkthrough."""

    def test_s1_walkthrough(self, storage):
        metadata = {"source_id": "s1", "title": "T", "date": "2023-04-15", "speakers": ["A"], "format": "json"}

        assert storage.upload_transcript("v1", metadata).metadata.version == 1
        assert storage.upload_transcript("v2", metadata).metadata.version == 2

        latest = storage.get_transcript("s1")
        assert latest.content == "v2"
        assert latest.metadata.version == 2

        listing = storage.list_transcripts()
        assert len(listing.items) == 1
        assert listing.items[0].metadata.source_id == "s1"
        assert listing.items[0].metadata.version == 2

        storage.delete_transcript_version("s1", 1)
        with pytest.raises(NotFoundError) as exc_info:
            storage.get_transcript("s1", 1)
        assert "s1" in str(exc_info.value)
        assert "1" in str(exc_info.value)
