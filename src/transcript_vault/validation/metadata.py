"""
Validation and normalization of transcript metadata.

Validates that caller-supplied metadata contains the required fields and
meets type and enumeration rules, and produces a fully normalized
TranscriptMetadata with defaults applied. Inputs are never mutated.
"""

from typing import Any, Dict, List, Mapping, Optional

from transcript_vault import dates
from transcript_vault.logger import get_default_logger
from transcript_vault.models import (
    FORMAT_VALUES,
    STATUS_VALUES,
    ProcessingStatus,
    TranscriptFormat,
    TranscriptMetadata,
)


logger = get_default_logger()


REQUIRED_METADATA_FIELDS = ("source_id", "title", "date", "speakers", "format")


class FieldError:
    """A single problem with one metadata field."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value

    def __repr__(self) -> str:
        return f"FieldError(field={self.field}, message={self.message})"

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"field": self.field, "message": self.message, "value": self.value}


class RequiredFieldsResult:
    """Result of the required-field check."""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = missing_fields

    @property
    def is_valid(self) -> bool:
        return len(self.missing_fields) == 0


class MetadataValidationResult:
    """Result of full metadata validation."""

    def __init__(
        self,
        errors: List[FieldError],
        normalized_metadata: Optional[TranscriptMetadata] = None,
    ):
        self.errors = errors
        self.normalized_metadata = normalized_metadata

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def messages(self) -> List[str]:
        return [error.message for error in self.errors]

    @property
    def fields(self) -> List[str]:
        """Offending field names, in order, without duplicates."""
        seen: List[str] = []
        for error in self.errors:
            if error.field not in seen:
                seen.append(error.field)
        return seen

    def summary(self) -> str:
        return "; ".join(self.messages)


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def validate_required_fields(metadata: Any) -> RequiredFieldsResult:
    """
    Check that all required metadata fields are present.

    Non-mapping input reports every required field as missing.

    Example:
        >>> validate_required_fields(None).missing_fields
        ['source_id', 'title', 'date', 'speakers', 'format']
    """
    if not isinstance(metadata, Mapping):
        return RequiredFieldsResult(list(REQUIRED_METADATA_FIELDS))

    missing = []
    if not _is_non_empty_string(metadata.get("source_id")):
        missing.append("source_id")
    if not _is_non_empty_string(metadata.get("title")):
        missing.append("title")
    if not isinstance(metadata.get("date"), str) or not metadata.get("date"):
        missing.append("date")
    # speakers must be present; an empty list is accepted
    if metadata.get("speakers") is None:
        missing.append("speakers")
    if not _is_non_empty_string(metadata.get("format")):
        missing.append("format")

    return RequiredFieldsResult(missing)


def _check_string_list(metadata: Mapping, field: str, errors: List[FieldError]) -> None:
    value = metadata.get(field)
    if value is None:
        return
    if not isinstance(value, (list, tuple)):
        errors.append(FieldError(field, f"Invalid {field}: must be a list of strings", value))
    elif any(not isinstance(item, str) for item in value):
        errors.append(FieldError(field, f"Invalid {field}: all {field} must be strings", value))


def _check_database_date(metadata: Mapping, field: str, errors: List[FieldError]) -> None:
    value = metadata.get(field)
    if value is None:
        return
    if not isinstance(value, str) or not dates.is_valid_database_date(value):
        errors.append(FieldError(
            field,
            f"Invalid {field}: must be an ISO 8601 timestamp with timezone "
            f"({dates.DATABASE_FORMAT})",
            value,
        ))


def validate_transcript_metadata(metadata: Any) -> MetadataValidationResult:
    """
    Validate metadata against all field rules.

    Checks required fields, date format, speaker and tag lists, format and
    status enumerations, and the version number if present. The normalized
    metadata is only produced when validation passes.

    Args:
        metadata: Raw metadata mapping

    Returns:
        MetadataValidationResult with errors and, when valid, normalized metadata

    Example:
        >>> result = validate_transcript_metadata({
        ...     "source_id": "s1", "title": "T", "date": "2023-04-15",
        ...     "speakers": ["A"], "format": "json",
        ... })
        >>> result.is_valid
        True
        >>> result.normalized_metadata.processing_status
        <ProcessingStatus.PENDING: 'pending'>
    """
    required = validate_required_fields(metadata)
    errors = [
        FieldError(field, f"Required field missing: {field}")
        for field in required.missing_fields
    ]

    if not isinstance(metadata, Mapping):
        return MetadataValidationResult(errors)

    raw_date = metadata.get("date")
    if isinstance(raw_date, str) and raw_date:
        if not (dates.is_valid_user_input(raw_date) or dates.is_valid_database_date(raw_date)):
            errors.append(FieldError(
                "date",
                f"Invalid date format: must be {dates.USER_INPUT_FORMAT} "
                f"or an ISO 8601 timestamp with timezone",
                raw_date,
            ))

    _check_string_list(metadata, "speakers", errors)
    _check_string_list(metadata, "tags", errors)

    raw_format = metadata.get("format")
    if isinstance(raw_format, str) and raw_format and raw_format not in FORMAT_VALUES:
        errors.append(FieldError(
            "format",
            f"Invalid format: must be one of {', '.join(FORMAT_VALUES)}",
            raw_format,
        ))

    raw_status = metadata.get("processing_status")
    if raw_status is not None and str(raw_status) not in STATUS_VALUES:
        errors.append(FieldError(
            "processing_status",
            f"Invalid processing status: must be one of {', '.join(STATUS_VALUES)}",
            raw_status,
        ))

    raw_version = metadata.get("version")
    if raw_version is not None:
        if isinstance(raw_version, bool) or not isinstance(raw_version, int) or raw_version < 1:
            errors.append(FieldError(
                "version", "Invalid version: must be a positive integer", raw_version
            ))

    _check_database_date(metadata, "uploaded_at", errors)
    _check_database_date(metadata, "processing_completed_at", errors)

    if errors:
        logger.debug(f"Metadata validation failed with {len(errors)} error(s)")
        return MetadataValidationResult(errors)

    return MetadataValidationResult(errors, normalize_metadata(metadata))


def normalize_metadata(metadata: Mapping) -> TranscriptMetadata:
    """
    Build a complete TranscriptMetadata from validated input.

    Defaults: version 1, processing_status "pending", tags [], uploaded_at now.
    Lists are copied so the caller's objects are never shared or mutated.
    """
    status = ProcessingStatus(str(metadata.get("processing_status") or "pending"))
    uploaded_at = dates.to_database(metadata.get("uploaded_at") or dates.now())
    completed_at = metadata.get("processing_completed_at")
    if completed_at:
        completed_at = dates.to_database(completed_at)
    elif status is ProcessingStatus.PROCESSED:
        completed_at = uploaded_at
    return TranscriptMetadata(
        source_id=metadata["source_id"],
        title=metadata["title"],
        date=dates.to_database(metadata["date"]),
        speakers=list(metadata.get("speakers") or []),
        version=metadata.get("version") or 1,
        format=TranscriptFormat(str(metadata["format"])),
        processing_status=status,
        uploaded_at=uploaded_at,
        processing_completed_at=completed_at or None,
        tags=list(metadata.get("tags") or []),
    )
