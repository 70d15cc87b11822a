"""Typed exception hierarchy for the job tracker.

Raise these instead of bare HTTPException so that:
- Service code is testable without a FastAPI request context
- Error codes are declared in one place
- main.py's AppError handler converts them to consistent JSON responses
"""

from __future__ import annotations


class AppError(Exception):
    """Base application error — caught by FastAPI exception handler in main.py."""

    status_code: int = 500
    detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.__class__.detail
        super().__init__(self.detail)


class NotFoundError(AppError):
    """Resource does not exist."""

    status_code = 404
    detail = "Not found"


class ValidationFailedError(AppError):
    """Request references unknown ids, repeats ids or names a bad status.

    Raised before any write, so nothing has been applied.
    """

    status_code = 400
    detail = "Invalid request"


class InvalidStatusError(ValidationFailedError):
    """Value is not one of the four pipeline statuses."""

    detail = "Invalid status"


class StoreError(AppError):
    """A write transaction failed and was rolled back; nothing was applied."""

    status_code = 503
    detail = "Store write failed"


class GenerationError(AppError):
    """Text generation service failed or returned nothing usable."""

    status_code = 502
    detail = "Text generation failed"
