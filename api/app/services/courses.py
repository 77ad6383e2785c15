from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import Depends

from app.core.auth import Claims
from app.schemas.courses import Course, CourseCreateRequest, CourseQueryParameters
from app.services.repository import get_repository

logger = logging.getLogger(__name__)


class CourseService:
    def __init__(self, repository: Any) -> None:
        self.repository = repository

    async def create_course(self, payload: CourseCreateRequest, claims: Claims) -> Course:
        course = Course(
            id=uuid4(),
            user_id=claims.user_id,
            role=claims.role or None,
            title=payload.title,
            content=payload.content,
            created_at=datetime.now(timezone.utc),
            created_by=claims.user_id,
        )
        created = await self.repository.create_course(course)
        logger.info("course created id=%s user_id=%s", created.id, created.user_id)
        return created

    async def resolve_courses(self, params: CourseQueryParameters) -> list[Course]:
        return await self.repository.resolve_courses(params)


def get_course_service(repository=Depends(get_repository)) -> CourseService:
    return CourseService(repository)
