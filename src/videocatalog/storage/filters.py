"""Search filter builder combining optional criteria into one AND-ed filter."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from videocatalog.models import VideoMetadata

# SQL function a backend must provide: Python str.lower over a text column.
# SQLite's built-in lower() only folds ASCII.
SQL_LOWER_FUNCTION = "unicode_lower"


class Operator(str, Enum):
    CONTAINS = "contains"  # case-insensitive substring
    EQUALS = "equals"


@dataclass(frozen=True)
class FieldFilter:
    """A single predicate on one record field.

    Evaluable in memory via matches() or rendered as a parameterised
    SQL clause via to_sql(), so both forms stay in step.
    """

    field: str
    operator: Operator
    value: Any

    def matches(self, video: VideoMetadata) -> bool:
        actual = getattr(video, self.field)
        if self.operator is Operator.CONTAINS:
            return actual is not None and str(self.value).lower() in str(actual).lower()
        return actual == self.value

    def to_sql(self) -> tuple[str, list[Any]]:
        if self.operator is Operator.CONTAINS:
            return f"instr({SQL_LOWER_FUNCTION}({self.field}), ?) > 0", [str(self.value).lower()]
        return f"{self.field} = ?", [self.value]


@dataclass(frozen=True)
class SearchFilter:
    """Logical AND of field filters. An empty filter matches every record."""

    filters: tuple[FieldFilter, ...] = field(default_factory=tuple)

    def matches(self, video: VideoMetadata) -> bool:
        return all(f.matches(video) for f in self.filters)

    def to_sql(self) -> tuple[str, list[Any]]:
        """Render as a WHERE-clause body and its parameters."""
        if not self.filters:
            return "1 = 1", []
        clauses, params = [], []
        for f in self.filters:
            clause, values = f.to_sql()
            clauses.append(clause)
            params.extend(values)
        return " AND ".join(clauses), params


def build_search_filter(
    title: str | None = None,
    director: str | None = None,
    year_of_release: int | None = None,
) -> SearchFilter:
    """Combine the provided criteria; an omitted criterion places no constraint.

    Args:
        title: Case-insensitive substring of the title.
        director: Case-insensitive substring of the director.
        year_of_release: Exact release year.
    """
    filters = []
    if title is not None:
        filters.append(FieldFilter("title", Operator.CONTAINS, title))
    if director is not None:
        filters.append(FieldFilter("director", Operator.CONTAINS, director))
    if year_of_release is not None:
        filters.append(FieldFilter("year_of_release", Operator.EQUALS, year_of_release))
    return SearchFilter(tuple(filters))
