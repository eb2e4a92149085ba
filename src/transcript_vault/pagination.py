"""
Pagination calculations for range-based queries.

The metadata index is queried with inclusive (from, to) row bounds. These
helpers turn user-facing (limit, offset) pairs into such bounds and apply the
package-wide defaults.
"""

from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional


# Unparameterized listing must return a page of results, never an empty range
DEFAULT_LIMIT = 10
DEFAULT_OFFSET = 0


class PaginationBounds(NamedTuple):
    """Inclusive row bounds. An empty window has to == from_ - 1."""
    from_: int
    to: int

    @property
    def size(self) -> int:
        """Number of rows covered by the bounds."""
        return max(self.to - self.from_ + 1, 0)


class NormalizedPagination(NamedTuple):
    limit: int
    offset: int


@dataclass
class PaginationValidation:
    """Result of pagination parameter validation."""
    errors: List[str] = field(default_factory=list)
    fields: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


def calculate_bounds(limit: int, offset: int) -> PaginationBounds:
    """
    Calculate inclusive range bounds from limit and offset.

    A zero limit produces the empty range (offset, offset - 1).

    Args:
        limit: Maximum number of items to return (non-negative)
        offset: Number of items to skip (non-negative)

    Returns:
        PaginationBounds with from_ and to

    Example:
        >>> calculate_bounds(10, 0)
        PaginationBounds(from_=0, to=9)
        >>> calculate_bounds(0, 5)
        PaginationBounds(from_=5, to=4)
    """
    from_ = offset

    if limit == 0:
        return PaginationBounds(from_, from_ - 1)

    return PaginationBounds(from_, offset + limit - 1)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_params(
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> PaginationValidation:
    """
    Validate pagination parameters.

    None is always valid (defaults are applied by normalize_defaults).

    Example:
        >>> validate_params(-1, 0).errors
        ['limit must be a non-negative integer, got -1']
    """
    result = PaginationValidation()

    for name, value in (("limit", limit), ("offset", offset)):
        if value is None:
            continue
        if not _is_int(value) or value < 0:
            result.errors.append(f"{name} must be a non-negative integer, got {value!r}")
            result.fields.append(name)

    return result


def normalize_defaults(
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> NormalizedPagination:
    """
    Apply default limit (10) and offset (0) to missing parameters.

    Example:
        >>> normalize_defaults()
        NormalizedPagination(limit=10, offset=0)
    """
    return NormalizedPagination(
        limit=DEFAULT_LIMIT if limit is None else limit,
        offset=DEFAULT_OFFSET if offset is None else offset,
    )
