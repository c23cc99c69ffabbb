"""
Error taxonomy for the trip planner.

Every error carries a stable, user-facing ``message`` and the HTTP status the
transport layer answers with. ``PersistenceError`` deliberately keeps the
generic message so driver details never reach the client.
"""

from typing import Optional


class TripPlannerError(Exception):
    """Base exception for all trip planner errors."""

    status_code: int = 500
    default_message: str = "something went wrong, try again later"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(TripPlannerError):
    """Malformed identifier or payload."""

    status_code = 400
    default_message = "invalid input"


class NotFoundError(TripPlannerError):
    """Referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str = "resource"):
        self.entity = entity
        super().__init__(f"{entity} not found")


class DuplicateParticipantError(TripPlannerError):
    """The (trip, email) pair is already present."""

    status_code = 409
    default_message = "participant already invited"


class AlreadyConfirmedError(TripPlannerError):
    """Confirmation requested for something already confirmed."""

    status_code = 409

    def __init__(self, entity: str = "resource"):
        self.entity = entity
        super().__init__(f"{entity} already confirmed")


class PersistenceError(TripPlannerError):
    """Unclassified store failure."""

    status_code = 500


class NotificationError(TripPlannerError):
    """Mail dispatch failed. Logged, never surfaced to the caller."""

    default_message = "failed to send email"
