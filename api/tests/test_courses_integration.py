from __future__ import annotations

import asyncio
import os
from collections.abc import Coroutine
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

import asyncpg  # type: ignore[import-untyped]
import pytest
from fastapi.testclient import TestClient

import app.core.security as security
from app.core.config import get_settings
from app.main import app
from app.schemas.courses import Course
from app.services.repository import RepositoryConflictError, get_repository

TEACHER_HEADERS = {"Authorization": "Bearer teacher-token"}
STUDENT_HEADERS = {"Authorization": "Bearer student-token"}
CLAIMS_BY_HEADER = {
    "Bearer teacher-token": {
        "user_id": "11111111-1111-1111-1111-111111111111",
        "username": "teacher",
        "role": "teacher",
    },
    "Bearer student-token": {
        "user_id": "22222222-2222-2222-2222-222222222222",
        "username": "student",
        "role": "student",
    },
}

T = TypeVar("T")


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("CH_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("integration tests require CH_DATABASE_URL or DATABASE_URL")
    return url


@pytest.fixture(autouse=True)
def reset_tables(database_url: str) -> None:
    _run(_reset_integration_tables(database_url))


@pytest.fixture
def api_client(database_url: str, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    os.environ["CH_DATABASE_URL"] = database_url
    get_settings.cache_clear()
    get_repository.cache_clear()

    async def _fake_fetch(*, authorization: str, **_: Any) -> dict[str, Any]:
        return {"data": CLAIMS_BY_HEADER[authorization]}

    monkeypatch.setattr(security, "_fetch_identity_claims", _fake_fetch)

    with TestClient(app) as client:
        yield client

    get_repository.cache_clear()
    get_settings.cache_clear()


def test_create_then_list_round_trip(api_client: TestClient) -> None:
    created = api_client.post(
        "/courses",
        json={"title": "Discrete Mathematics", "content": "Sets, relations and graphs."},
        headers=TEACHER_HEADERS,
    )
    assert created.status_code == 201

    listed = api_client.get("/courses", headers=TEACHER_HEADERS)
    assert listed.status_code == 200
    body = listed.json()
    assert len(body) == 1
    assert body[0]["id"] == created.json()["id"]
    assert body[0]["title"] == "Discrete Mathematics"
    assert body[0]["content"] == "Sets, relations and graphs."
    assert body[0]["userID"] == CLAIMS_BY_HEADER["Bearer teacher-token"]["user_id"]
    assert "deletedAt" not in body[0]


def test_listing_is_scoped_to_caller_role(api_client: TestClient) -> None:
    api_client.post("/courses", json={"title": "Teacher notes", "content": "Draft"}, headers=TEACHER_HEADERS)

    assert api_client.get("/courses", headers=STUDENT_HEADERS).json() == []
    assert len(api_client.get("/courses", headers=TEACHER_HEADERS).json()) == 1


def test_listing_sorts_and_pages(api_client: TestClient) -> None:
    for title in ("Biology", "Algebra", "Chemistry"):
        response = api_client.post("/courses", json={"title": title, "content": "..."}, headers=TEACHER_HEADERS)
        assert response.status_code == 201

    descending = api_client.get("/courses", params={"sort": "title", "order": "DESC"}, headers=TEACHER_HEADERS)
    assert [course["title"] for course in descending.json()] == ["Chemistry", "Biology", "Algebra"]

    second_page = api_client.get(
        "/courses",
        params={"sort": "title", "page": "1", "limit": "2"},
        headers=TEACHER_HEADERS,
    )
    assert [course["title"] for course in second_page.json()] == ["Chemistry"]


def test_listing_rejects_unsortable_and_unknown_columns(api_client: TestClient) -> None:
    assert api_client.get("/courses", params={"sort": "content"}, headers=TEACHER_HEADERS).status_code == 400
    assert api_client.get("/courses", params={"sort": "secret"}, headers=TEACHER_HEADERS).status_code == 400


def test_duplicate_course_id_is_rejected(api_client: TestClient, database_url: str) -> None:
    owner = "11111111-1111-1111-1111-111111111111"
    course = Course(
        id="44444444-4444-4444-4444-444444444444",
        user_id=owner,
        role="teacher",
        title="Once",
        content="Only once",
        created_at=datetime.now(timezone.utc),
        created_by=owner,
    )

    async def _create_twice() -> None:
        repository = get_repository()
        try:
            await repository.create_course(course)
            await repository.create_course(course)
        finally:
            await repository.close()

    with pytest.raises(RepositoryConflictError):
        _run(_create_twice())
    assert _run(_fetchval(database_url, "select count(*) from courses")) == 1


def test_local_token_store_round_trip(api_client: TestClient, database_url: str) -> None:
    _run(
        _execute(
            database_url,
            """
            insert into oauth_access_tokens (access_token, client_id, expires_at)
            values ('live-token', 'reporting-app', $1), ('stale-token', 'reporting-app', $2)
            """,
            datetime.now(timezone.utc) + timedelta(hours=1),
            datetime.now(timezone.utc) - timedelta(hours=1),
        )
    )

    async def _lookup() -> tuple[Any, Any, Any]:
        repository = get_repository()
        try:
            return (
                await repository.get_access_token("live-token"),
                await repository.get_access_token("stale-token"),
                await repository.get_access_token("missing-token"),
            )
        finally:
            await repository.close()

    live, stale, missing = _run(_lookup())
    assert live.verify_expire_in()
    assert not stale.verify_expire_in()
    assert missing is None


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


async def _reset_integration_tables(database_url: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(
            """
            create table if not exists courses (
              id uuid primary key,
              user_id uuid not null,
              role text,
              title text not null check (title <> ''),
              content text not null check (content <> ''),
              created_at timestamptz not null,
              created_by uuid not null,
              updated_at timestamptz,
              updated_by uuid,
              deleted_at timestamptz,
              deleted_by uuid
            );
            create table if not exists oauth_access_tokens (
              access_token text primary key,
              token_type text not null default 'Bearer',
              client_id text not null,
              user_id uuid,
              expires_at timestamptz not null,
              revoked_at timestamptz,
              created_at timestamptz not null default now()
            );
            truncate table courses, oauth_access_tokens;
            """
        )
    finally:
        await conn.close()


async def _fetchval(database_url: str, query: str, *args: Any) -> Any:
    conn = await asyncpg.connect(database_url)
    try:
        return await conn.fetchval(query, *args)
    finally:
        await conn.close()


async def _execute(database_url: str, query: str, *args: Any) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(query, *args)
    finally:
        await conn.close()
