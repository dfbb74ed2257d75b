"""Value objects passed into and out of the pagination planner."""

from dataclasses import dataclass
from enum import Enum


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationStrategy(str, Enum):
    """Query shape chosen for a page request."""

    CURSOR = "CURSOR"
    OFFSET_FIRST_PAGE = "OFFSET_FIRST_PAGE"
    OFFSET_FALLBACK = "OFFSET_FALLBACK"
    OFFSET_SORTED = "OFFSET_SORTED"


@dataclass(frozen=True)
class PaginationRequest:
    page: int = 1
    limit: int = 100
    cursor: str | None = None
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC


@dataclass(frozen=True)
class PaginationPlan:
    """Concrete query shape for one page.

    ``key_columns`` is the primary key, in key order. It bounds the cursor
    strategy (``cursor_values`` is the exclusive lower bound, one value per
    key column) and its values in the last returned row become the next
    cursor. It is empty when no cursor may be produced.
    """

    strategy: PaginationStrategy
    limit: int
    order_by: tuple[tuple[str, SortDirection], ...] = ()
    offset: int | None = None
    key_columns: tuple[str, ...] = ()
    cursor_values: tuple[str, ...] = ()
