"""
Error taxonomy.

Every error carries the {"code", "message"} detail body used across the API,
so services can raise them directly and FastAPI renders them unchanged.
"""

from __future__ import annotations

from fastapi import HTTPException, status


class StatusPageError(HTTPException):
    """Base class for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            status_code=status_code or self.status_code,
            detail={"code": code, "message": message},
            headers=headers,
        )
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class NotFoundError(StatusPageError):
    """Organization, incident, service or user absent."""

    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(StatusPageError):
    """Caller is authenticated but outside the organization."""

    status_code = status.HTTP_403_FORBIDDEN


class AuthenticationError(StatusPageError):
    """Missing, invalid or expired identity token."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, headers={"WWW-Authenticate": "Bearer"})


class ValidationError(StatusPageError):
    """Rejected input: blank field, duplicate invite, missing confirmation."""

    status_code = status.HTTP_400_BAD_REQUEST


class PartialWriteError(StatusPageError):
    """
    A multi-step write did not complete.

    Raised when account bootstrap fails, or when a commit succeeded but the
    change notification for it could not be published.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
