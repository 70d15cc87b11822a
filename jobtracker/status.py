"""Pipeline statuses and lifecycle event types shared across the app."""

from __future__ import annotations

from enum import Enum

from jobtracker.exceptions import InvalidStatusError


class ApplicationStatus(str, Enum):
    APPLIED = "APPLIED"
    INTERVIEW = "INTERVIEW"
    OFFER = "OFFER"
    REJECTED = "REJECTED"


class EventType(str, Enum):
    CREATED = "CREATED"
    STATUS_CHANGE = "STATUS_CHANGE"


# Board column order
STATUSES: tuple[ApplicationStatus, ...] = tuple(ApplicationStatus)

_STATUS_VALUES = frozenset(s.value for s in ApplicationStatus)


def is_status(value: object) -> bool:
    """True if *value* is a status member or its exact string value."""
    if isinstance(value, ApplicationStatus):
        return True
    return isinstance(value, str) and value in _STATUS_VALUES


def parse_status(value: object) -> ApplicationStatus:
    """Coerce *value* to an ApplicationStatus or raise InvalidStatusError."""
    if not is_status(value):
        raise InvalidStatusError(
            f"Invalid status {value!r}. Must be one of: {', '.join(sorted(_STATUS_VALUES))}"
        )
    return ApplicationStatus(value)
