"""
Validation of transcript metadata and search queries.
"""

from transcript_vault.validation.metadata import (
    REQUIRED_METADATA_FIELDS,
    MetadataValidationResult,
    normalize_metadata,
    validate_required_fields,
    validate_transcript_metadata,
)
from transcript_vault.validation.search import (
    FilterOperation,
    SearchFilter,
    SearchQuery,
    build_filters,
    validate_date_range,
    validate_search_params,
)

__all__ = [
    "REQUIRED_METADATA_FIELDS",
    "MetadataValidationResult",
    "normalize_metadata",
    "validate_required_fields",
    "validate_transcript_metadata",
    "FilterOperation",
    "SearchFilter",
    "SearchQuery",
    "build_filters",
    "validate_date_range",
    "validate_search_params",
]
