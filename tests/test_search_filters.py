"""
Tests for search query validation, filter building and SQL translation.
"""

import pytest

from transcript_vault.storage.index import build_where_clause
from transcript_vault.validation.search import (
    FilterOperation,
    SearchFilter,
    SearchQuery,
    build_filters,
    date_upper_bound,
    validate_date_range,
    validate_search_params,
)


class TestBuildFilters:
    """Test query to filter translation."""

    def test_empty_query_has_no_filters(self):
        """Absent criteria never produce match-everything entries."""
        assert build_filters(SearchQuery()) == {}

    def test_empty_strings_treated_as_absent(self):
        assert build_filters(SearchQuery(title="", speaker="", status="")) == {}

    def test_each_criterion_maps_to_one_operation(self):
        filters = build_filters(SearchQuery(
            title="Ep",
            speaker="Alice",
            tag="history",
            date_from="2023-01-01",
            date_to="2023-12-31",
            status="processed",
        ))

        assert filters["title"] == SearchFilter("title", FilterOperation.CONTAINS_CI, "Ep")
        assert filters["speaker"] == SearchFilter("speakers", FilterOperation.ARRAY_CONTAINS, "Alice")
        assert filters["tag"] == SearchFilter("tags", FilterOperation.ARRAY_CONTAINS, "history")
        assert filters["date_from"] == SearchFilter(
            "date", FilterOperation.RANGE_LOWER, "2023-01-01T00:00:00.000Z"
        )
        assert filters["date_to"] == SearchFilter(
            "date", FilterOperation.RANGE_UPPER, "2023-12-31T23:59:59.999Z"
        )
        assert filters["status"] == SearchFilter("processing_status", FilterOperation.EQUALS, "processed")

    def test_database_form_upper_bound_kept_exact(self):
        filters = build_filters({"date_to": "2023-12-31T12:00:00Z"})
        assert filters["date_to"].value == "2023-12-31T12:00:00.000Z"

    def test_pagination_does_not_produce_filters(self):
        assert build_filters(SearchQuery(limit=5, offset=10)) == {}

    def test_mapping_input_ignores_unknown_keys(self):
        filters = build_filters({"speaker": "Bob", "unknown": "x"})
        assert list(filters) == ["speaker"]


class TestDateRangeValidation:
    """Test date range checks."""

    def test_valid_range(self):
        assert validate_date_range("2023-01-01", "2023-12-31").is_valid

    def test_same_day_is_valid(self):
        assert validate_date_range("2023-06-01", "2023-06-01").is_valid

    def test_open_ranges_valid(self):
        assert validate_date_range("2023-01-01", None).is_valid
        assert validate_date_range(None, "2023-01-01").is_valid

    def test_reversed_range_names_both_dates(self):
        result = validate_date_range("2024-02-01", "2024-01-01")

        assert not result.is_valid
        assert result.fields == ["date_from", "date_to"]
        assert "2024-02-01" in result.errors[0]
        assert "2024-01-01" in result.errors[0]

    def test_instant_within_calendar_day_upper_bound(self):
        assert validate_date_range("2024-01-01T10:00:00Z", "2024-01-01").is_valid

    def test_instant_upper_bound_is_exact(self):
        assert not validate_date_range("2024-01-01T10:00:00Z", "2024-01-01T09:00:00Z").is_valid

    def test_upper_bound_matches_filter(self):
        assert date_upper_bound("2024-01-01") == "2024-01-01T23:59:59.999Z"
        assert build_filters(SearchQuery(date_to="2024-01-01"))["date_to"].value == date_upper_bound("2024-01-01")

    def test_malformed_dates(self):
        result = validate_date_range("2024-13-01", "yesterday")
        assert result.fields == ["date_from", "date_to"]
        assert all("YYYY-MM-DD" in message for message in result.errors)


class TestValidateSearchParams:
    """Test full query validation."""

    def test_valid_query(self):
        query = SearchQuery(title="x", status="pending", limit=5, offset=0)
        assert validate_search_params(query).is_valid

    def test_invalid_status(self):
        result = validate_search_params(SearchQuery(status="done"))
        assert result.fields == ["status"]
        assert "pending, processed, failed" in result.errors[0]

    def test_non_string_criteria(self):
        result = validate_search_params(SearchQuery(title=5))
        assert result.fields == ["title"]

    def test_negative_pagination(self):
        result = validate_search_params(SearchQuery(limit=-1, offset=-2))
        assert result.fields == ["limit", "offset"]


class TestWhereClause:
    """Test SQL translation of filters."""

    def test_no_filters(self):
        assert build_where_clause([]) == ("", [])

    def test_filters_joined_with_and(self):
        filters = build_filters(SearchQuery(title="ep", speaker="Alice", status="failed"))
        clause, params = build_where_clause(list(filters.values()))

        assert clause == (
            "WHERE instr(lower(title), lower(?)) > 0 "
            "AND list_contains(speakers, ?) "
            "AND processing_status = ?"
        )
        assert params == ["ep", "Alice", "failed"]

    def test_unknown_column_rejected(self):
        with pytest.raises(ValueError, match="Cannot filter on column"):
            build_where_clause([SearchFilter("blob_key", FilterOperation.EQUALS, "x")])
