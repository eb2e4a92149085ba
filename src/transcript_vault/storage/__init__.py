"""
Transcript storage: blob stores, the metadata index, the storage engine and
the orphan blob sweep and the processing workflow.
"""

from transcript_vault.storage.blob import (
    BlobObject,
    BlobStore,
    InMemoryBlobStore,
    LocalBlobStore,
    PutResult,
    get_blob_store,
)
from transcript_vault.storage.index import MetadataIndex
from transcript_vault.storage.engine import TranscriptStorage
from transcript_vault.storage.cleanup import SweepReport, find_orphan_blobs, sweep_orphan_blobs
from transcript_vault.storage.processor import ProcessingResult, TranscriptProcessor, validate_content


__all__ = [
    "BlobObject",
    "BlobStore",
    "InMemoryBlobStore",
    "LocalBlobStore",
    "PutResult",
    "get_blob_store",
    "MetadataIndex",
    "TranscriptStorage",
    "SweepReport",
    "find_orphan_blobs",
    "sweep_orphan_blobs",
    "ProcessingResult",
    "TranscriptProcessor",
    "validate_content",
]
