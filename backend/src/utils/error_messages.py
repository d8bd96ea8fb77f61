"""
User-facing error messages for planner failures.

Every failure surfaced to a person goes through
map_error_to_friendly_message so raw exception text (SQL, stack details,
transport errors) is never shown.
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from core.exceptions import AppointmentBusyError, FriendlyError, PlannerBackendError

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE codes we translate
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_CHECK_VIOLATION = "23514"
_INSUFFICIENT_PRIVILEGE = "42501"


def _try_again(context: str) -> str:
    return f"An error occurred while {context}. Please try again."


def _from_sqlstate(code: Optional[str], context: str) -> FriendlyError:
    if code == _UNIQUE_VIOLATION:
        return FriendlyError("Duplicate Entry", "This item already exists. Please use a different identifier.")
    if code == _FOREIGN_KEY_VIOLATION:
        return FriendlyError(
            "Related Data Missing",
            "Cannot complete this action because required related data is missing.",
        )
    if code == _CHECK_VIOLATION:
        return FriendlyError(
            "Invalid Data",
            "The data you entered does not meet the requirements. Please check your input.",
        )
    if code == _INSUFFICIENT_PRIVILEGE:
        return FriendlyError(
            "Permission Denied",
            "You do not have permission to perform this action. Please contact your administrator.",
        )
    return FriendlyError("Database Error", _try_again(context))


def _from_status(error: PlannerBackendError, context: str) -> FriendlyError:
    status = error.status_code
    # Server details are written for people (HTTPException detail strings)
    detail = error.detail if isinstance(error.detail, str) and error.detail.strip() else None

    if status == 400 or status == 422:
        return FriendlyError("Invalid Data", detail or "The data you entered is invalid. Please check your input.")
    if status in (401, 403):
        return FriendlyError(
            "Permission Denied",
            "You do not have permission to perform this action. Please contact your administrator.",
        )
    if status == 404:
        return FriendlyError("Not Found", "The requested item could not be found. It may have been deleted.")
    if status == 409:
        return FriendlyError("Scheduling Conflict", detail or "This time slot is no longer available.")
    if status >= 500:
        return FriendlyError("Server Error", _try_again(context))
    return FriendlyError("Error", detail or _try_again(context))


def map_error_to_friendly_message(error: Optional[BaseException], context: str) -> FriendlyError:
    """
    Convert a planner failure into an actionable, human readable message.

    Args:
        error: The exception raised by a backend, the store or the database layer
        context: Short description of the attempted action, e.g. "moving the appointment"

    Returns:
        FriendlyError with a title and description safe to show to users
    """
    if error is None:
        return FriendlyError("Unknown Error", f"An unexpected error occurred while {context}. Please try again.")

    if isinstance(error, AppointmentBusyError):
        return FriendlyError(
            "Update In Progress",
            "This appointment is still being saved. Please wait a moment and try again.",
        )

    if isinstance(error, PlannerBackendError):
        return _from_status(error, context)

    if isinstance(error, IntegrityError):
        code = getattr(error.orig, "pgcode", None) or getattr(error.orig, "sqlstate", None)
        return _from_sqlstate(code, context)

    if isinstance(error, OperationalError):
        return FriendlyError("Connection Problem", f"Could not reach the database while {context}. Please try again.")

    if isinstance(error, SQLAlchemyError):
        return FriendlyError("Database Error", _try_again(context))

    if isinstance(error, httpx.TimeoutException):
        return FriendlyError("Request Timed Out", f"The server took too long while {context}. Please try again.")

    if isinstance(error, httpx.TransportError):
        return FriendlyError("Connection Problem", f"Could not reach the server while {context}. Please try again.")

    logger.debug(f"No specific message for {type(error).__name__} while {context}")
    return FriendlyError("Error", _try_again(context))
