from fastapi import APIRouter, Depends, HTTPException, Query, status as http_status

from app.core.auth import Claims
from app.core.config import Settings, get_settings
from app.core.security import validate_auth
from app.schemas.courses import CourseCreateRequest, CourseOut, CourseQueryParameters
from app.services.courses import CourseService, get_course_service
from app.services.repository import (
    RepositoryConflictError,
    RepositoryError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post("", response_model=CourseOut, status_code=http_status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreateRequest,
    claims: Claims = Depends(validate_auth),
    service: CourseService = Depends(get_course_service),
) -> CourseOut:
    try:
        course = await service.create_course(payload, claims)
    except RepositoryConflictError as exc:
        raise HTTPException(status_code=http_status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise HTTPException(status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return course.to_response()


@router.get("", response_model=list[CourseOut])
async def resolve_courses(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    sort: str = Query(default=""),
    order: str = Query(default=""),
    claims: Claims = Depends(validate_auth),
    service: CourseService = Depends(get_course_service),
    settings: Settings = Depends(get_settings),
) -> list[CourseOut]:
    params = CourseQueryParameters(
        page=_coerce_page(page),
        limit=_coerce_limit(limit, default=settings.courses_default_limit),
        sort=sort.strip(),
        order=order,
        role=claims.role,
    )
    try:
        courses = await service.resolve_courses(params)
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=http_status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=http_status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryError as exc:
        raise HTTPException(status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
    return [course.to_response() for course in courses]


def _coerce_page(value: str | None) -> int:
    try:
        page = int(value) if value is not None else 0
    except ValueError:
        return 0
    return page if page >= 0 else 0


def _coerce_limit(value: str | None, *, default: int) -> int:
    try:
        limit = int(value) if value is not None else default
    except ValueError:
        return default
    return limit if limit > 0 else default
