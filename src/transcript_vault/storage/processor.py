"""
Transcript processing workflow.

Moves a stored version through its processing lifecycle: the version is
marked pending, its content is checked against its declared format, and it
ends up processed or failed. Processing only reads content; it never
creates a new version.
"""

import json
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from transcript_vault.errors import StorageError, UnavailableError
from transcript_vault.logger import get_default_logger
from transcript_vault.models import ProcessingStatus, TranscriptFormat, TranscriptMetadata


logger = get_default_logger()


# Keys a JSON transcript object may carry its content under
JSON_CONTENT_KEYS = ("segments", "transcript")

SRT_TIME_MARKER = "-->"
VTT_HEADER = "WEBVTT"


def validate_content(content: str, transcript_format: Union[str, TranscriptFormat]) -> Optional[str]:
    """
    Check transcript content against its declared format.

    Rules:
        json: parses, and is a list or an object with "segments" or "transcript"
        text: not blank
        srt: contains a "-->" time marker
        vtt: starts with "WEBVTT" and contains a "-->" time marker

    Args:
        content: Transcript text
        transcript_format: Declared format

    Returns:
        None if the content is acceptable, else an error message

    Example:
        >>> validate_content("WEBVTT\\n\\n00:00.000 --> 00:01.000\\nHi", "vtt") is None
        True
        >>> validate_content("   ", "text")
        'Empty transcript content'
    """
    try:
        transcript_format = TranscriptFormat(str(transcript_format))
    except ValueError:
        return f"Unsupported format: {transcript_format}"

    if transcript_format is TranscriptFormat.JSON:
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as e:
            return f"Invalid JSON transcript: {e}"
        if isinstance(parsed, list):
            return None
        if isinstance(parsed, dict) and any(parsed.get(key) is not None for key in JSON_CONTENT_KEYS):
            return None
        return "Invalid JSON transcript format: missing segments or transcript array"

    if transcript_format is TranscriptFormat.TEXT:
        if not content.strip():
            return "Empty transcript content"
        return None

    if transcript_format is TranscriptFormat.SRT:
        if SRT_TIME_MARKER not in content:
            return "Invalid SRT format: missing time markers"
        return None

    # vtt
    if not content.startswith(VTT_HEADER) or SRT_TIME_MARKER not in content:
        return "Invalid WebVTT format: missing header or time markers"
    return None


@dataclass
class ProcessingResult:
    """Outcome of processing one transcript version."""
    success: bool
    metadata: TranscriptMetadata
    error: Optional[str] = None


@dataclass
class BatchReport:
    """Outcome of processing every pending transcript."""
    results: List[ProcessingResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if not result.success)


class TranscriptProcessor:
    """
    Drives transcript versions from pending to processed or failed.

    Example:
        >>> processor = TranscriptProcessor(storage)
        >>> processor.process_transcript("s1").metadata.processing_status
        <ProcessingStatus.PROCESSED: 'processed'>
    """

    def __init__(self, storage):
        """
        Args:
            storage: TranscriptStorage holding the transcripts
        """
        self.storage = storage

    def process_transcript(self, source_id: str, version: Optional[int] = None) -> ProcessingResult:
        """
        Process one version (latest if not given).

        Content that fails its format check marks the version failed and is
        reported in the result, not raised. If the metadata index becomes
        unavailable mid-way, the version is marked failed where possible and
        the error is raised.

        Raises:
            NotFoundError: If the version does not exist
            UnavailableError: If a backend fails
        """
        record = self.storage.get_transcript(source_id, version)
        version = record.metadata.version

        try:
            self.storage.update_processing_status(source_id, version, ProcessingStatus.PENDING)

            error = validate_content(record.content, record.metadata.format)
            if error is not None:
                logger.warning(f"Transcript {source_id} version {version} failed validation: {error}")
                metadata = self.storage.update_processing_status(
                    source_id, version, ProcessingStatus.FAILED
                )
                return ProcessingResult(success=False, metadata=metadata, error=error)

            metadata = self.storage.update_processing_status(
                source_id, version, ProcessingStatus.PROCESSED
            )
        except UnavailableError as e:
            logger.error(f"Error processing transcript {source_id} version {version}: {e.message}")
            self._mark_failed(source_id, version)
            raise

        logger.info(f"Processed transcript {source_id} version {version}")
        return ProcessingResult(success=True, metadata=metadata)

    def queue_for_processing(self, source_id: str, version: Optional[int] = None) -> ProcessingResult:
        """Queue a version for processing. There is no background queue; it runs inline."""
        return self.process_transcript(source_id, version)

    def process_pending(self, page_size: int = 100) -> BatchReport:
        """
        Process the latest version of every lineage whose status is pending.

        Args:
            page_size: Number of pending transcripts fetched per query
        """
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")

        report = BatchReport()
        attempted = set()

        while True:
            # Processed items leave the pending set, so always read the first page
            page = self.storage.search_transcripts(status="pending", limit=page_size, offset=0)
            todo: List[Tuple[str, int]] = [
                (item.metadata.source_id, item.metadata.version)
                for item in page.items
                if (item.metadata.source_id, item.metadata.version) not in attempted
            ]
            if not todo:
                break

            for source_id, version in todo:
                attempted.add((source_id, version))
                report.results.append(self.process_transcript(source_id, version))

        logger.info(f"Processed {report.processed} pending transcript(s), {report.failed} failed")
        return report

    def _mark_failed(self, source_id: str, version: int) -> None:
        try:
            self.storage.update_processing_status(source_id, version, ProcessingStatus.FAILED)
        except StorageError as e:
            logger.error(
                f"Failed to update processing status for {source_id} version {version}: {e.message}"
            )
