"""
Data model for versioned transcripts.

Defines the closed enumerations for transcript format and processing status,
the per-version metadata record, and the result objects returned by the
storage engine.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional

from transcript_vault import dates


class TranscriptFormat(str, Enum):
    """Serialization format of the transcript content."""
    JSON = "json"
    TEXT = "text"
    SRT = "srt"
    VTT = "vtt"

    def __str__(self) -> str:
        return self.value


class ProcessingStatus(str, Enum):
    """Downstream processing state of a transcript version."""
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


FORMAT_VALUES = tuple(item.value for item in TranscriptFormat)
STATUS_VALUES = tuple(item.value for item in ProcessingStatus)


@dataclass(frozen=True)
class TranscriptMetadata:
    """
    Metadata for one version of a transcript lineage.

    Dates (`date`, `uploaded_at`, `processing_completed_at`) are database
    date strings in canonical UTC form.
    """
    source_id: str
    title: str
    date: str
    speakers: List[str]
    version: int
    format: TranscriptFormat
    processing_status: ProcessingStatus
    uploaded_at: str
    processing_completed_at: Optional[str] = None
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (enums as their string values)."""
        return {
            "source_id": self.source_id,
            "title": self.title,
            "date": self.date,
            "speakers": list(self.speakers),
            "version": self.version,
            "format": self.format.value,
            "processing_status": self.processing_status.value,
            "uploaded_at": self.uploaded_at,
            "processing_completed_at": self.processing_completed_at,
            "tags": list(self.tags),
        }

    def with_version(self, version: int, uploaded_at: str) -> "TranscriptMetadata":
        """
        Copy of this metadata bound to a new version and upload time.

        A version created already processed is complete as of its upload.
        """
        completed_at = self.processing_completed_at
        # A completion time derived from a provisional upload time moves with it
        derived = completed_at in (None, self.uploaded_at)
        if self.processing_status is ProcessingStatus.PROCESSED and derived:
            completed_at = uploaded_at
        return replace(
            self, version=version, uploaded_at=uploaded_at, processing_completed_at=completed_at
        )

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TranscriptMetadata":
        """
        Build metadata from a metadata index row.

        Args:
            record: Row dictionary keyed by column name

        Returns:
            TranscriptMetadata with dates normalized to database form
        """
        completed_at = record.get("processing_completed_at")
        return cls(
            source_id=record["source_id"],
            title=record["title"],
            date=dates.to_database(record["date"]),
            speakers=list(record.get("speakers") or []),
            version=int(record["version"]),
            format=TranscriptFormat(record["format"]),
            processing_status=ProcessingStatus(record["processing_status"]),
            uploaded_at=dates.to_database(record["uploaded_at"]),
            processing_completed_at=dates.to_database(completed_at) if completed_at else None,
            tags=list(record.get("tags") or []),
        )


@dataclass(frozen=True)
class UploadResult:
    """Result of uploading a transcript version."""
    location: str
    storage_key: str
    metadata: TranscriptMetadata


@dataclass(frozen=True)
class TranscriptRecord:
    """Content and metadata of a single transcript version."""
    content: str
    metadata: TranscriptMetadata


@dataclass(frozen=True)
class TranscriptListItem:
    """Listing entry for one transcript version (content not loaded)."""
    location: str
    storage_key: str
    metadata: TranscriptMetadata
    uploaded_at: str
    size: int

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "TranscriptListItem":
        metadata = TranscriptMetadata.from_record(record)
        return cls(
            location=record.get("location") or "",
            storage_key=record["blob_key"],
            metadata=metadata,
            uploaded_at=metadata.uploaded_at,
            size=int(record.get("size") or 0),
        )


@dataclass(frozen=True)
class ListResult:
    """A page of listing results plus the total number of matching lineages."""
    items: List[TranscriptListItem]
    total: int

    def __len__(self) -> int:
        return len(self.items)
