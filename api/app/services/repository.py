from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from app.core.config import get_settings
from app.core.oauth import AccessTokenRecord
from app.schemas.courses import Course, CourseQueryParameters
from app.services.course_query import build_course_list_query, normalize_order
from app.services.errors import (
    InvalidPageError,
    InvalidSortColumnError,
    InvalidSortOrderError,
    RepositoryConflictError,
    RepositoryError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

__all__ = [
    "InvalidPageError",
    "InvalidSortColumnError",
    "InvalidSortOrderError",
    "PostgresRepository",
    "RepositoryConflictError",
    "RepositoryError",
    "RepositoryUnavailableError",
    "RepositoryValidationError",
    "get_repository",
]

logger = logging.getLogger(__name__)

COURSES_TABLE = "courses"


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        command_timeout_seconds: float = 15.0,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.command_timeout_seconds = command_timeout_seconds
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def list_course_columns(self) -> set[str]:
        pool = await self._get_pool()
        try:
            rows = await pool.fetch(
                """
                select column_name
                from information_schema.columns
                where table_schema = current_schema()
                  and table_name = $1
                """,
                COURSES_TABLE,
            )
        except pg_exc.PostgresError as exc:
            logger.error("course schema lookup failed: %s", exc)
            raise RepositoryError("course storage failure") from exc
        return {row["column_name"] for row in rows}

    async def create_course(self, course: Course) -> Course:
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    if await self._course_exists(conn=conn, course_id=course.id):
                        raise RepositoryConflictError("course already exists")
                    await conn.execute(
                        """
                        insert into courses (
                          id,
                          user_id,
                          role,
                          title,
                          content,
                          created_at,
                          created_by,
                          updated_at,
                          updated_by,
                          deleted_at,
                          deleted_by
                        )
                        values ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
                        """,
                        course.id,
                        course.user_id,
                        course.role,
                        course.title,
                        course.content,
                        course.created_at,
                        course.created_by,
                        course.updated_at,
                        course.updated_by,
                        course.deleted_at,
                        course.deleted_by,
                    )
        except RepositoryConflictError:
            logger.warning("course create rejected: duplicate id=%s", course.id)
            raise
        except pg_exc.UniqueViolationError as exc:
            logger.warning("course create rejected by unique constraint: id=%s", course.id)
            raise RepositoryConflictError("course already exists") from exc
        except pg_exc.PostgresError as exc:
            logger.error("course create failed: id=%s error=%s", course.id, exc)
            raise RepositoryError("course storage failure") from exc
        return course

    async def resolve_courses(self, params: CourseQueryParameters) -> list[Course]:
        # Direction is checked before any database round trip.
        normalize_order(params.order)
        schema_columns = await self.list_course_columns() if params.sort else None
        sql, args = build_course_list_query(params, schema_columns=schema_columns)

        pool = await self._get_pool()
        try:
            rows = await pool.fetch(sql, *args)
        except pg_exc.PostgresError as exc:
            logger.error("course listing failed: %s", exc)
            raise RepositoryError("course storage failure") from exc
        return [Course(**self._course_row_to_dict(row)) for row in rows]

    async def get_access_token(self, access_token: str) -> AccessTokenRecord | None:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                select
                  access_token,
                  token_type,
                  client_id,
                  user_id::text as user_id,
                  expires_at,
                  revoked_at
                from oauth_access_tokens
                where access_token = $1
                """,
                access_token,
            )
        except pg_exc.PostgresError as exc:
            logger.error("access token lookup failed: %s", exc)
            raise RepositoryError("token storage failure") from exc
        if row is None:
            return None
        return AccessTokenRecord(
            access_token=row["access_token"],
            token_type=row["token_type"],
            client_id=row["client_id"],
            user_id=row["user_id"],
            expires_at=row["expires_at"],
            revoked_at=row["revoked_at"],
        )

    @staticmethod
    async def _course_exists(*, conn: asyncpg.Connection, course_id: Any) -> bool:
        exists = await conn.fetchval("select exists(select 1 from courses where id = $1)", course_id)
        return bool(exists)

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("CH_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=self.command_timeout_seconds,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _course_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        return {
            "id": row["id"],
            "user_id": row["user_id"],
            "title": row["title"],
            "content": row["content"],
            "created_at": row["created_at"],
            "created_by": row["created_by"],
            "updated_at": row["updated_at"],
            "updated_by": row["updated_by"],
            "deleted_at": row["deleted_at"],
            "deleted_by": row["deleted_by"],
        }


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        command_timeout_seconds=settings.database_command_timeout_seconds,
    )
