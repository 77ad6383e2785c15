from __future__ import annotations

import time
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError

TEACHER_ROLE = "teacher"
STUDENT_ROLE = "student"


class Claims(BaseModel):
    """Identity attributes returned by the identity service for one request."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    user_id: UUID
    username: str = ""
    role: str = ""
    exp: int | None = None
    iat: int | None = None
    nbf: int | None = None
    iss: str | None = None
    sub: str | None = None
    aud: str | None = None
    jti: str | None = None

    def is_expired(self, now: float | None = None) -> bool:
        if self.exp is None:
            return False
        current = time.time() if now is None else now
        return self.exp < current


class ClaimsDecodeError(ValueError):
    """Raised when an identity envelope does not carry usable claims."""


def decode_claims_envelope(payload: object) -> Claims:
    if not isinstance(payload, dict):
        raise ClaimsDecodeError("identity envelope must be an object")
    data = payload.get("data")
    if not isinstance(data, dict):
        raise ClaimsDecodeError("identity envelope is missing data")
    try:
        return Claims.model_validate(data)
    except ValidationError as exc:
        raise ClaimsDecodeError("identity claims are invalid") from exc


def parse_bearer_header(authorization: str | None) -> str | None:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", maxsplit=1)[1].strip()
    return token or None
