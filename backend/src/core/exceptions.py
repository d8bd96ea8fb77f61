"""
Planner exception types.

Server-side services raise FastAPI's HTTPException for business rule
violations. The client-side planner layers (backends, store, board, editor)
translate those into the exceptions below so callers can always tell a
failed check from a negative answer.
"""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class FriendlyError:
    """User-facing error message: a short title and a human readable description."""
    title: str
    description: str

    def __str__(self) -> str:
        return f"{self.title}: {self.description}"


class PlannerError(Exception):
    """Base class for planner client errors."""


class PlannerBackendError(PlannerError):
    """
    A planner backend request failed.

    Raised by both the in-process and the HTTP backend so the store handles
    them identically.

    Attributes:
        status_code: HTTP status code (or the HTTPException status for the local backend)
        detail: Server supplied detail, usually already human readable
    """

    def __init__(self, status_code: int, detail: Any = None):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Planner backend error {status_code}: {detail}")


class AppointmentBusyError(PlannerError):
    """A mutation for this appointment is already in flight."""

    def __init__(self, appointment_id: str):
        self.appointment_id = appointment_id
        super().__init__(f"Appointment {appointment_id} has a mutation in flight")


class PlannerMutationError(PlannerError):
    """
    A store operation failed and its optimistic state was rolled back.

    The message is always the friendly description; the original exception
    is available as ``__cause__``.
    """

    def __init__(self, friendly: FriendlyError, appointment_id: Optional[str] = None):
        self.friendly = friendly
        self.appointment_id = appointment_id
        super().__init__(friendly.description)
