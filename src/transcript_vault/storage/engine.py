"""
Versioned transcript storage engine.

Orchestrates the blob store and the metadata index: assigns version numbers,
writes content and metadata together, resolves latest versions, lists and
searches the latest version of every lineage, and deletes versions while
keeping blobs and metadata rows in step.
"""

from dataclasses import asdict
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from transcript_vault import dates
from transcript_vault.errors import NotFoundError, StorageError, UnavailableError, ValidationError
from transcript_vault.ids import DEFAULT_KEY_PREFIX, generate_blob_key
from transcript_vault.logger import get_default_logger
from transcript_vault.models import (
    STATUS_VALUES,
    ListResult,
    ProcessingStatus,
    TranscriptListItem,
    TranscriptMetadata,
    TranscriptRecord,
    UploadResult,
)
from transcript_vault.pagination import calculate_bounds, normalize_defaults
from transcript_vault.storage.blob import DEFAULT_CONTENT_TYPE, BlobStore, LocalBlobStore
from transcript_vault.storage.index import MetadataIndex
from transcript_vault.validation.metadata import validate_transcript_metadata
from transcript_vault.validation.search import SearchQuery, build_filters, validate_search_params


logger = get_default_logger()


# Assigned by the engine, never taken from the caller
ENGINE_ASSIGNED_FIELDS = ("version", "uploaded_at")


def _describe(source_id: str, version: Optional[int] = None) -> str:
    if version is None:
        return f"sourceId '{source_id}'"
    return f"sourceId '{source_id}' and version {version}"


class TranscriptStorage:
    """
    Storage engine for versioned transcripts.

    The engine holds no state of its own besides its injected collaborators;
    all shared state lives in the blob store and the metadata index.

    Example:
        >>> from transcript_vault.storage import InMemoryBlobStore, MetadataIndex
        >>> storage = TranscriptStorage(InMemoryBlobStore(), MetadataIndex())
        >>> storage.initialize_database()
        >>> result = storage.upload_transcript("hello", {
        ...     "source_id": "s1", "title": "T", "date": "2023-04-15",
        ...     "speakers": ["A"], "format": "text",
        ... })
        >>> result.metadata.version
        1
    """

    def __init__(
        self,
        blob_store: BlobStore,
        index: MetadataIndex,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        content_type: str = DEFAULT_CONTENT_TYPE,
    ):
        """
        Initialize the storage engine.

        Args:
            blob_store: Store for transcript content
            index: Metadata index
            key_prefix: Prefix for all generated blob keys
            content_type: Content type recorded for uploaded blobs
        """
        self.blob_store = blob_store
        self.index = index
        self.key_prefix = key_prefix.strip("/") or DEFAULT_KEY_PREFIX
        self.content_type = content_type

    @classmethod
    def from_settings(cls, settings) -> "TranscriptStorage":
        """
        Build an engine from resolved StorageSettings.

        Args:
            settings: transcript_vault.config.StorageSettings
        """
        blob_store = LocalBlobStore(Path(settings.blob_root))
        index = MetadataIndex(settings.database_path)
        return cls(
            blob_store,
            index,
            key_prefix=settings.key_prefix,
            content_type=settings.content_type,
        )

    def close(self) -> None:
        self.index.close()

    def initialize_database(self) -> None:
        """Ensure the metadata index schema exists. Safe to call repeatedly."""
        self.index.initialize()

    def get_latest_version(self, source_id: str) -> int:
        """Highest version assigned in a lineage, 0 if the lineage does not exist."""
        return self.index.max_version(source_id)

    def upload_transcript(
        self,
        content: Union[str, bytes],
        metadata: Mapping[str, Any],
    ) -> UploadResult:
        """
        Store a new version of a transcript.

        The version is the lineage's current maximum plus one. Content is
        written to the blob store first, then the metadata row is inserted.
        If the insert fails (e.g. a concurrent upload took the same version)
        the blob is left behind for the orphan sweep and the error is raised.

        Args:
            content: Transcript text (or UTF-8 bytes)
            metadata: Metadata mapping; must include source_id, title, date,
                speakers and format. version and uploaded_at are ignored.

        Returns:
            UploadResult with location, storage key and normalized metadata

        Raises:
            ValidationError: If content or metadata is invalid
            ConflictError: If the version was taken concurrently
            UnavailableError: If a backend fails
        """
        operation = "upload_transcript"

        if not isinstance(content, (str, bytes, bytearray)):
            raise ValidationError(
                f"Transcript content must be str or bytes, got {type(content).__name__}",
                fields=["content"],
                operation=operation,
            )

        # Content must survive the decode in get_transcript
        try:
            if isinstance(content, str):
                data = content.encode("utf-8")
            else:
                data = bytes(content)
                data.decode("utf-8")
        except UnicodeError as e:
            raise ValidationError(
                f"Transcript content must be valid UTF-8 text: {e}",
                fields=["content"],
                operation=operation,
            ) from e

        if isinstance(metadata, Mapping):
            ignored = [name for name in ENGINE_ASSIGNED_FIELDS if metadata.get(name) is not None]
            if ignored:
                logger.warning(f"Ignoring caller-supplied {', '.join(ignored)} on upload")
            candidate = {k: v for k, v in metadata.items() if k not in ENGINE_ASSIGNED_FIELDS}
        else:
            candidate = metadata

        validation = validate_transcript_metadata(candidate)
        if not validation.is_valid:
            source_id = candidate.get("source_id") if isinstance(candidate, Mapping) else None
            raise ValidationError(
                f"Invalid metadata: {validation.summary()}",
                fields=validation.fields,
                source_id=source_id,
                operation=operation,
                details={"errors": [error.to_dict() for error in validation.errors]},
            )

        normalized = validation.normalized_metadata
        source_id = normalized.source_id

        current_version = self.index.max_version(source_id)
        version = current_version + 1
        logger.info(f"Assigning version {version} to {_describe(source_id)}")

        full_metadata = normalized.with_version(version, dates.now())
        blob_key = generate_blob_key(source_id, version, prefix=self.key_prefix)

        put_result = self.blob_store.put(blob_key, data, content_type=self.content_type)

        try:
            self.index.insert(full_metadata, blob_key, put_result.location, len(data))
        except StorageError as e:
            logger.warning(
                f"Metadata insert failed for {_describe(source_id, version)}; "
                f"blob {blob_key} left as orphan: {e.message}"
            )
            raise

        return UploadResult(
            location=put_result.location,
            storage_key=blob_key,
            metadata=full_metadata,
        )

    def get_transcript(self, source_id: str, version: Optional[int] = None) -> TranscriptRecord:
        """
        Retrieve content and metadata of one version (latest if not given).

        Raises:
            NotFoundError: If the lineage or the version does not exist
        """
        if version is None:
            record = self.index.get_latest(source_id)
        else:
            record = self.index.get(source_id, version)

        if record is None:
            raise NotFoundError(
                f"Transcript with {_describe(source_id, version)} not found",
                source_id=source_id,
                version=version,
                operation="get_transcript",
            )

        blob_key = record["blob_key"]
        try:
            data = self.blob_store.get(blob_key)
        except NotFoundError as e:
            raise NotFoundError(
                f"Transcript blob {blob_key} for "
                f"{_describe(source_id, record['version'])} not found",
                source_id=source_id,
                version=record["version"],
                operation="get_transcript",
                details={"blob_key": blob_key},
            ) from e

        return TranscriptRecord(
            content=data.decode("utf-8"),
            metadata=TranscriptMetadata.from_record(record),
        )

    def list_versions(self, source_id: str) -> List[TranscriptListItem]:
        """All versions of a lineage, newest first. Empty if it does not exist."""
        return [TranscriptListItem.from_record(record) for record in self.index.list_versions(source_id)]

    def list_transcripts(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ListResult:
        """
        List the latest version of every lineage.

        Args:
            limit: Page size (default 10; 0 returns no items but a correct total)
            offset: Number of lineages to skip (default 0)

        Returns:
            ListResult with items newest upload first and the total lineage count
        """
        return self._query_latest(SearchQuery(limit=limit, offset=offset), "list_transcripts")

    def search_transcripts(
        self,
        query: Union[SearchQuery, Mapping[str, Any], None] = None,
        **criteria: Any,
    ) -> ListResult:
        """
        Search the latest version of every lineage.

        Criteria (title, speaker, tag, date_from, date_to, status, limit,
        offset) may be given as a SearchQuery, a mapping, or keyword
        arguments; all combine with logical AND.

        Raises:
            ValidationError: If a criterion is malformed or date_from > date_to
        """
        if query is None:
            query = SearchQuery.from_dict(criteria)
        elif not isinstance(query, SearchQuery):
            query = SearchQuery.from_dict({**query, **criteria})
        elif criteria:
            query = SearchQuery.from_dict({**asdict(query), **criteria})

        return self._query_latest(query, "search_transcripts")

    def _query_latest(self, query: SearchQuery, operation: str) -> ListResult:
        validation = validate_search_params(query)
        if not validation.is_valid:
            raise ValidationError(
                f"Invalid parameters for {operation}: {'; '.join(validation.errors)}",
                fields=validation.fields,
                operation=operation,
            )

        pagination = normalize_defaults(query.limit, query.offset)
        bounds = calculate_bounds(pagination.limit, pagination.offset)
        filters = list(build_filters(query).values())

        records, total = self.index.query_latest(filters, bounds)
        return ListResult(
            items=[TranscriptListItem.from_record(record) for record in records],
            total=total,
        )

    def update_processing_status(
        self,
        source_id: str,
        version: int,
        status: Union[str, ProcessingStatus],
    ) -> TranscriptMetadata:
        """
        Change the processing status of one version.

        The first transition to "processed" records processing_completed_at;
        later transitions leave it untouched.

        Raises:
            ValidationError: If status is not pending, processed or failed
            NotFoundError: If the version does not exist
        """
        try:
            new_status = ProcessingStatus(str(status))
        except ValueError as e:
            raise ValidationError(
                f"Invalid processing status '{status}': must be one of {', '.join(STATUS_VALUES)}",
                fields=["processing_status"],
                source_id=source_id,
                version=version,
                operation="update_processing_status",
            ) from e

        completed_at = dates.now() if new_status is ProcessingStatus.PROCESSED else None
        record = self.index.update_status(source_id, version, new_status.value, completed_at)

        if record is None:
            raise NotFoundError(
                f"Transcript with {_describe(source_id, version)} not found",
                source_id=source_id,
                version=version,
                operation="update_processing_status",
            )

        logger.info(f"Set status of {_describe(source_id, version)} to {new_status.value}")
        return TranscriptMetadata.from_record(record)

    def delete_transcript_version(self, source_id: str, version: int) -> None:
        """
        Delete one version: its metadata row first, then its blob.

        Once the row is gone the version can no longer be retrieved. If the
        blob delete then fails, the row stays deleted and UnavailableError
        is raised.

        Raises:
            NotFoundError: If the version does not exist
        """
        record = self.index.delete(source_id, version)
        if record is None:
            raise NotFoundError(
                f"Transcript with {_describe(source_id, version)} not found",
                source_id=source_id,
                version=version,
                operation="delete_transcript_version",
            )

        blob_key = record["blob_key"]
        try:
            self.blob_store.delete(blob_key)
        except StorageError as e:
            logger.error(
                f"Deleted metadata for {_describe(source_id, version)} "
                f"but blob {blob_key} could not be removed: {e.message}"
            )
            raise UnavailableError(
                f"Metadata for {_describe(source_id, version)} was deleted "
                f"but blob {blob_key} could not be removed: {e.message}",
                source_id=source_id,
                version=version,
                operation="delete_transcript_version",
                details={"blob_key": blob_key},
            ) from e

        logger.info(f"Deleted {_describe(source_id, version)}")

    def delete_all_versions(self, source_id: str) -> None:
        """
        Delete every version of a lineage. A missing lineage is a no-op.

        Raises:
            UnavailableError: If some blobs could not be removed (metadata
                rows stay deleted)
        """
        records = self.index.delete_lineage(source_id)
        if not records:
            logger.debug(f"No versions to delete for {_describe(source_id)}")
            return

        failed = []
        for record in records:
            try:
                self.blob_store.delete(record["blob_key"])
            except StorageError as e:
                logger.error(f"Failed to remove blob {record['blob_key']}: {e.message}")
                failed.append(record["blob_key"])

        if failed:
            raise UnavailableError(
                f"Metadata for {_describe(source_id)} was deleted but "
                f"{len(failed)} blob(s) could not be removed: {', '.join(failed)}",
                source_id=source_id,
                operation="delete_all_versions",
                details={"blob_keys": failed},
            )

        logger.info(f"Deleted {len(records)} version(s) of {_describe(source_id)}")
