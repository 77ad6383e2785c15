"""Locally-held OAuth access tokens.

Tokens are opaque strings stored in ``oauth_access_tokens``. A token is usable
while it has not expired; password-grant tokens additionally carry a user whose
session must still be live (``revoked_at`` is set on logout).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

BEARER_TOKEN_TYPE = "bearer"


class AccessTokenError(Exception):
    """Raised when an access token cannot be parsed or fails verification."""


@dataclass(slots=True, frozen=True)
class ParsedAccessToken:
    token_type: str
    token: str


@dataclass(slots=True)
class AccessTokenRecord:
    access_token: str
    token_type: str
    client_id: str
    user_id: str | None
    expires_at: datetime
    revoked_at: datetime | None = None

    def verify_expire_in(self, now: datetime | None = None) -> bool:
        current = now or datetime.now(timezone.utc)
        return self.expires_at > current

    def verify_user_logged_in(self) -> bool:
        return self.user_id is not None and self.revoked_at is None


def parse_access_token(raw: str | None) -> ParsedAccessToken:
    if not raw:
        raise AccessTokenError("missing access token")

    token_type, separator, token = raw.strip().partition(" ")
    token = token.strip()
    if not separator or not token:
        raise AccessTokenError("malformed access token")
    if token_type.lower() != BEARER_TOKEN_TYPE:
        raise AccessTokenError("unsupported token type")
    return ParsedAccessToken(token_type=token_type.lower(), token=token)


def join_query_token(token: str | None, token_type: str | None) -> str:
    return f"{token_type or ''} {token or ''}".strip()


def verify_access_token(
    parsed: ParsedAccessToken,
    record: AccessTokenRecord | None,
    *,
    require_user_session: bool = False,
    now: datetime | None = None,
) -> AccessTokenRecord:
    if record is None:
        raise AccessTokenError("unknown access token")
    if record.token_type.lower() != parsed.token_type:
        raise AccessTokenError("token type mismatch")
    if not record.verify_expire_in(now):
        raise AccessTokenError("access token expired")
    if require_user_session and not record.verify_user_logged_in():
        raise AccessTokenError("user session is not active")
    return record
