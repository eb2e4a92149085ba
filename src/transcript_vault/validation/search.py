"""
Search query validation and filter building.

Translates a SearchQuery into backend-agnostic filter descriptions. Each
criterion present in the query maps to exactly one filter; absent criteria
produce no filter at all, so omitting a field never broadens a query.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from transcript_vault import dates
from transcript_vault.models import STATUS_VALUES
from transcript_vault.pagination import validate_params


class FilterOperation(str, Enum):
    """Filter operations understood by the metadata index."""
    EQUALS = "equals"
    CONTAINS_CI = "case-insensitive-contains"
    ARRAY_CONTAINS = "array-contains"
    RANGE_LOWER = "range-lower"
    RANGE_UPPER = "range-upper"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SearchFilter:
    """One filter: apply `operation` with `value` to metadata `column`."""
    column: str
    operation: FilterOperation
    value: Any


@dataclass
class SearchQuery:
    """Search criteria; all given criteria combine with logical AND."""
    title: Optional[str] = None
    speaker: Optional[str] = None
    tag: Optional[str] = None
    date_from: Optional[str] = None
    date_to: Optional[str] = None
    status: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SearchQuery":
        """
        Build a query from a mapping, ignoring unknown keys.

        Example:
            >>> SearchQuery.from_dict({"title": "ep", "extra": 1}).title
            'ep'
        """
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


@dataclass
class SearchValidationResult:
    """Result of search parameter validation."""
    errors: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(message)
        if field_name not in self.fields:
            self.fields.append(field_name)


def _is_valid_query_date(value: Any) -> bool:
    return isinstance(value, str) and (
        dates.is_valid_user_input(value) or dates.is_valid_database_date(value)
    )


def date_upper_bound(date_to: str) -> str:
    """Database-form upper bound; a calendar day covers the whole day."""
    if dates.is_valid_user_input(date_to):
        return dates.end_of_day(date_to)
    return dates.to_database(date_to)


def validate_date_range(
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> SearchValidationResult:
    """
    Validate date range bounds.

    Each bound must be a YYYY-MM-DD date (or a database date). When both are
    valid, date_from must not be after date_to.

    Example:
        >>> validate_date_range("2024-02-01", "2024-01-01").fields
        ['date_from', 'date_to']
    """
    result = SearchValidationResult()

    if date_from is not None and not _is_valid_query_date(date_from):
        result.add(
            "date_from",
            f"date_from '{date_from}' must be a valid date ({dates.USER_INPUT_FORMAT}). "
            f"Example: 2023-01-15",
        )
    if date_to is not None and not _is_valid_query_date(date_to):
        result.add(
            "date_to",
            f"date_to '{date_to}' must be a valid date ({dates.USER_INPUT_FORMAT}). "
            f"Example: 2023-12-31",
        )

    if result.is_valid and date_from is not None and date_to is not None:
        if dates.is_after(dates.to_database(date_from), date_upper_bound(date_to)):
            result.add(
                "date_from",
                f"Invalid date range: date_from '{date_from}' must be before or equal to "
                f"date_to '{date_to}'",
            )
            result.fields.append("date_to")

    return result


def validate_search_params(query: SearchQuery) -> SearchValidationResult:
    """Validate status, date range and pagination of a search query."""
    result = SearchValidationResult()

    if query.status is not None and str(query.status) not in STATUS_VALUES:
        result.add(
            "status",
            f"Invalid status value '{query.status}'. "
            f"Status must be one of: {', '.join(STATUS_VALUES)}",
        )

    for text_field in ("title", "speaker", "tag"):
        value = getattr(query, text_field)
        if value is not None and not isinstance(value, str):
            result.add(text_field, f"{text_field} must be a string, got {value!r}")

    date_result = validate_date_range(query.date_from, query.date_to)
    for message in date_result.errors:
        result.errors.append(message)
    for name in date_result.fields:
        if name not in result.fields:
            result.fields.append(name)

    pagination = validate_params(query.limit, query.offset)
    for message, name in zip(pagination.errors, pagination.fields):
        result.add(name, message)

    return result


def build_filters(query: Union[SearchQuery, Mapping[str, Any]]) -> Dict[str, SearchFilter]:
    """
    Build filter descriptions from a search query.

    Empty strings are treated as absent. Date bounds are converted to
    database form; a calendar-day upper bound covers the whole day.

    Args:
        query: SearchQuery or mapping with the same keys

    Returns:
        Dict keyed by query field name; only present criteria appear

    Example:
        >>> build_filters(SearchQuery(title="Ep"))
        {'title': SearchFilter(column='title', operation=<FilterOperation.CONTAINS_CI: 'case-insensitive-contains'>, value='Ep')}
    """
    if not isinstance(query, SearchQuery):
        query = SearchQuery.from_dict(query)

    filters: Dict[str, SearchFilter] = {}

    if query.title:
        filters["title"] = SearchFilter("title", FilterOperation.CONTAINS_CI, query.title)

    if query.speaker:
        filters["speaker"] = SearchFilter("speakers", FilterOperation.ARRAY_CONTAINS, query.speaker)

    if query.tag:
        filters["tag"] = SearchFilter("tags", FilterOperation.ARRAY_CONTAINS, query.tag)

    if query.date_from:
        filters["date_from"] = SearchFilter(
            "date", FilterOperation.RANGE_LOWER, dates.to_database(query.date_from)
        )

    if query.date_to:
        filters["date_to"] = SearchFilter(
            "date", FilterOperation.RANGE_UPPER, date_upper_bound(query.date_to)
        )

    if query.status:
        filters["status"] = SearchFilter(
            "processing_status", FilterOperation.EQUALS, str(query.status)
        )

    return filters
