import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from fastapi import Depends, Header, HTTPException, Query, status

from app.core.auth import (
    STUDENT_ROLE,
    TEACHER_ROLE,
    Claims,
    ClaimsDecodeError,
    decode_claims_envelope,
    parse_bearer_header,
)
from app.core.config import Settings, get_settings
from app.core.oauth import (
    AccessTokenError,
    AccessTokenRecord,
    join_query_token,
    parse_access_token,
    verify_access_token,
)
from app.services.repository import RepositoryError, RepositoryUnavailableError, get_repository

logger = logging.getLogger(__name__)

INVALID_TOKEN_DETAIL = "invalid bearer token"
IDENTITY_UNAVAILABLE_DETAIL = "identity verification unavailable"
ROLE_DENIED_DETAIL = "user not authorized"


async def validate_auth(
    settings: Settings = Depends(get_settings),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> Claims:
    if parse_bearer_header(authorization) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="bearer token required")

    payload = await _fetch_identity_claims(
        validate_url=settings.identity_validate_url,
        authorization=authorization,
        timeout_seconds=settings.auth_timeout_seconds,
    )
    try:
        claims = decode_claims_envelope(payload)
    except ClaimsDecodeError as exc:
        logger.warning("identity envelope rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_DETAIL) from exc

    if claims.is_expired():
        logger.info("identity claims expired user_id=%s", claims.user_id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_DETAIL)
    return claims


def require_role(required_role: str) -> Callable[..., Awaitable[Claims]]:
    async def role_gate(claims: Claims = Depends(validate_auth)) -> Claims:
        if claims.role != required_role:
            logger.info(
                "role check failed user_id=%s role=%s required=%s",
                claims.user_id,
                claims.role,
                required_role,
            )
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=ROLE_DENIED_DETAIL)
        return claims

    role_gate.__name__ = f"require_{required_role}_role"
    return role_gate


role_check = require_role(TEACHER_ROLE)
user_role_check = require_role(STUDENT_ROLE)


async def client_credential(
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> AccessTokenRecord:
    return await _verify_local_token(repository, authorization, require_user_session=False)


async def client_credential_from_query(
    repository=Depends(get_repository),
    token: str | None = Query(default=None),
    token_type: str | None = Query(default=None),
) -> AccessTokenRecord:
    return await _verify_local_token(repository, join_query_token(token, token_type), require_user_session=False)


async def password_credential(
    repository=Depends(get_repository),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> AccessTokenRecord:
    return await _verify_local_token(repository, authorization, require_user_session=True)


async def _verify_local_token(
    repository: Any,
    raw_token: str | None,
    *,
    require_user_session: bool,
) -> AccessTokenRecord:
    try:
        parsed = parse_access_token(raw_token)
        record = await repository.get_access_token(parsed.token)
        return verify_access_token(parsed, record, require_user_session=require_user_session)
    except AccessTokenError as exc:
        logger.info("local access token rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_DETAIL) from exc
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="token store unavailable") from exc
    except RepositoryError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="token verification failed",
        ) from exc


async def _fetch_identity_claims(
    *,
    validate_url: str,
    authorization: str,
    timeout_seconds: float,
) -> Any:
    headers = {
        "Authorization": authorization,
        "Content-Type": "application/json",
    }

    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(validate_url, headers=headers)
    except httpx.HTTPError as exc:
        logger.error("identity service call failed url=%s error=%s", validate_url, exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=IDENTITY_UNAVAILABLE_DETAIL,
        ) from exc

    if response.status_code in {401, 403}:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_DETAIL)
    if response.status_code != 200:
        logger.error("identity service returned status=%s", response.status_code)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=IDENTITY_UNAVAILABLE_DETAIL,
        )

    try:
        return response.json()
    except ValueError as exc:
        logger.warning("identity service returned a non-json body")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_TOKEN_DETAIL) from exc
