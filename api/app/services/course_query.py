"""Statement construction for the course listing.

Client input reaches SQL text only through the sort column and direction, and
only after both pass the allow-list checks below. Every literal value is bound
as a numbered asyncpg parameter.
"""

from __future__ import annotations

from collections.abc import Collection
from typing import Any

from app.schemas.courses import CourseQueryParameters
from app.services.errors import InvalidPageError, InvalidSortColumnError, InvalidSortOrderError

COURSE_COLUMNS = (
    "id",
    "user_id",
    "title",
    "content",
    "created_at",
    "created_by",
    "updated_at",
    "updated_by",
    "deleted_at",
    "deleted_by",
)
# content is free text and role is an internal filter column; neither is sortable.
SORTABLE_COURSE_COLUMNS = frozenset(
    {
        "id",
        "user_id",
        "title",
        "created_at",
        "created_by",
        "updated_at",
        "updated_by",
        "deleted_at",
        "deleted_by",
    }
)
SORT_ORDERS = frozenset({"asc", "desc"})
DEFAULT_SORT_ORDER = "asc"
# limit and offset bind as postgres bigint.
BIGINT_MAX = 2**63 - 1


def is_existing_column(column: str, schema_columns: Collection[str]) -> bool:
    return column in schema_columns


def is_sortable_column(column: str) -> bool:
    return column in SORTABLE_COURSE_COLUMNS


def normalize_order(order: str | None) -> str:
    normalized = (order or "").strip().lower()
    if not normalized:
        return DEFAULT_SORT_ORDER
    if normalized not in SORT_ORDERS:
        raise InvalidSortOrderError("invalid order parameter")
    return normalized


def validate_sort_column(column: str, schema_columns: Collection[str]) -> str:
    if not is_existing_column(column, schema_columns) or not is_sortable_column(column):
        raise InvalidSortColumnError("invalid sort parameter")
    return column


def build_course_list_query(
    params: CourseQueryParameters,
    *,
    schema_columns: Collection[str] | None = None,
) -> tuple[str, list[Any]]:
    direction = normalize_order(params.order)
    if params.limit > BIGINT_MAX or params.offset > BIGINT_MAX:
        raise InvalidPageError("page out of range")
    args: list[Any] = []

    def bind(value: Any) -> str:
        args.append(value)
        return f"${len(args)}"

    sql = f"select {', '.join(COURSE_COLUMNS)} from courses"

    if params.role:
        sql += f" where role = {bind(params.role)}"

    if params.sort:
        column = validate_sort_column(params.sort, schema_columns or ())
        sql += f" order by {column} {direction}"

    sql += f" limit {bind(params.limit)} offset {bind(params.offset)}"
    return sql, args
