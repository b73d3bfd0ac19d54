"""
Security utilities.

Identity token verification. Tokens are issued by the external identity
provider; this service only verifies them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from statuspage.core.config import settings


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Verified claims of an identity token."""

    subject_id: str
    email: str
    display_name: str

    @property
    def first_name(self) -> str:
        """First word of the display name, or the email local part."""
        name = self.display_name.strip()
        if name:
            return name.split()[0]
        return self.email.split("@", 1)[0]


# ---------------------------------------------------------------------------
# Identity tokens
# ---------------------------------------------------------------------------

def decode_identity_token(token: str) -> AuthenticatedIdentity:
    """
    Decode and validate an identity token.

    Raises:
        JWTError: If the token is invalid, expired, tampered, or has no subject.
    """
    options = {"verify_aud": settings.IDENTITY_TOKEN_AUDIENCE is not None}
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.IDENTITY_TOKEN_SECRET,
        algorithms=[settings.IDENTITY_TOKEN_ALGORITHM],
        audience=settings.IDENTITY_TOKEN_AUDIENCE,
        issuer=settings.IDENTITY_TOKEN_ISSUER,
        options=options,
    )
    subject = payload.get("sub")
    if not subject or not isinstance(subject, str):
        raise JWTError("Token has no subject")
    return AuthenticatedIdentity(
        subject_id=subject,
        email=str(payload.get("email") or ""),
        display_name=str(payload.get("name") or ""),
    )


def create_identity_token(
    subject_id: str,
    email: str,
    display_name: str = "",
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    """
    Sign an identity token with the configured key.

    The identity provider does this in production; used by local tooling
    and tests.
    """
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "sub": subject_id,
        "email": email,
        "name": display_name,
        "iat": now,
        "exp": now + expires_in,
    }
    if settings.IDENTITY_TOKEN_AUDIENCE is not None:
        payload["aud"] = settings.IDENTITY_TOKEN_AUDIENCE
    if settings.IDENTITY_TOKEN_ISSUER is not None:
        payload["iss"] = settings.IDENTITY_TOKEN_ISSUER
    return jwt.encode(
        payload,
        settings.IDENTITY_TOKEN_SECRET,
        algorithm=settings.IDENTITY_TOKEN_ALGORITHM,
    )
