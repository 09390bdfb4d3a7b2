"""Typed errors raised by services and mapped to the JSON error envelope.

They subclass ``HTTPException`` so the handler registered in ``app.main``
renders them; ``error_code`` travels to the client alongside the message.
"""

from typing import Any, Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    status_code_default = status.HTTP_400_BAD_REQUEST
    error_code_default = "APP_ERROR"

    def __init__(
        self,
        msg: str,
        error_code: Optional[str] = None,
        data: Any = None,
    ):
        super().__init__(status_code=self.status_code_default, detail=msg)
        self.error_code = error_code or self.error_code_default
        self.data = data


class NotFoundError(AppError):
    """Record missing, or owned by a different user."""

    status_code_default = status.HTTP_404_NOT_FOUND
    error_code_default = "NOT_FOUND"


class ForbiddenError(AppError):
    """Access window, attempt limit, closed assignment or role mismatch."""

    status_code_default = status.HTTP_403_FORBIDDEN
    error_code_default = "FORBIDDEN"


class InvalidInputError(AppError):
    """Malformed configuration or a missing required field."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    error_code_default = "INVALID_INPUT"
