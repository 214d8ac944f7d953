"""Cursor pagination shared by document listing and audit queries.

Callers fetch `limit + 1` rows ordered newest-first with id as tiebreak,
starting strictly after the cursor row. If the extra row comes back there
is another page and the cursor is the id of the last row kept.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from app.exceptions import ValidationError

T = TypeVar("T")

DEFAULT_LIMIT = 20
MAX_LIMIT = 100


@dataclass(frozen=True)
class PageRequest:
    cursor: str | None = None
    limit: int = DEFAULT_LIMIT

    def __post_init__(self) -> None:
        if not 1 <= self.limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")

    @property
    def fetch_size(self) -> int:
        return self.limit + 1


@dataclass(frozen=True)
class Page(Generic[T]):
    data: list[T]
    cursor: str | None
    has_more: bool
    limit: int


def build_page(rows: Sequence[T], request: PageRequest, id_of: Callable[[T], str]) -> Page[T]:
    """Trim the look-ahead row and derive the next cursor."""
    has_more = len(rows) > request.limit
    data = list(rows[: request.limit])
    return Page(
        data=data,
        cursor=id_of(data[-1]) if has_more else None,
        has_more=has_more,
        limit=request.limit,
    )
