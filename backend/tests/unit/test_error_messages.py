"""
Unit tests for user-facing error messages.
"""

import pytest
from unittest.mock import Mock

import httpx
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError

from core.exceptions import AppointmentBusyError, PlannerBackendError
from utils.error_messages import map_error_to_friendly_message


def integrity_error(code):
    orig = Mock()
    orig.pgcode = code
    return IntegrityError("INSERT ...", {}, orig)


class TestBackendErrors:
    """Test mapping of PlannerBackendError status codes."""

    def test_validation_detail_is_kept(self):
        friendly = map_error_to_friendly_message(PlannerBackendError(400, "Title is required"), "saving")
        assert friendly.title == "Invalid Data"
        assert friendly.description == "Title is required"

    def test_validation_without_detail(self):
        friendly = map_error_to_friendly_message(PlannerBackendError(422, None), "saving")
        assert friendly.description == "The data you entered is invalid. Please check your input."

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_permission(self, status_code):
        assert map_error_to_friendly_message(PlannerBackendError(status_code), "saving").title == "Permission Denied"

    def test_not_found(self):
        assert map_error_to_friendly_message(PlannerBackendError(404, "x"), "saving").title == "Not Found"

    def test_conflict(self):
        friendly = map_error_to_friendly_message(PlannerBackendError(409), "moving the appointment")
        assert friendly.title == "Scheduling Conflict"

    def test_server_error_hides_detail(self):
        friendly = map_error_to_friendly_message(
            PlannerBackendError(500, "psycopg2.errors.UndefinedTable"), "moving the appointment"
        )
        assert friendly.title == "Server Error"
        assert friendly.description == "An error occurred while moving the appointment. Please try again."
        assert "psycopg2" not in friendly.description


class TestDatabaseErrors:
    """Test mapping of SQLAlchemy errors."""

    @pytest.mark.parametrize("code,title", [
        ("23505", "Duplicate Entry"),
        ("23503", "Related Data Missing"),
        ("23514", "Invalid Data"),
        ("42501", "Permission Denied"),
        ("99999", "Database Error"),
    ])
    def test_integrity_codes(self, code, title):
        assert map_error_to_friendly_message(integrity_error(code), "saving").title == title

    def test_operational_error(self):
        error = OperationalError("SELECT 1", {}, Exception("connection refused"))
        friendly = map_error_to_friendly_message(error, "loading appointments")
        assert friendly.title == "Connection Problem"
        assert "connection refused" not in friendly.description

    def test_generic_sqlalchemy_error(self):
        assert map_error_to_friendly_message(SQLAlchemyError("boom"), "saving").title == "Database Error"


class TestOtherErrors:
    def test_busy(self):
        friendly = map_error_to_friendly_message(AppointmentBusyError("apt-1"), "moving the appointment")
        assert friendly.title == "Update In Progress"

    def test_timeout(self):
        friendly = map_error_to_friendly_message(httpx.ReadTimeout("slow"), "saving")
        assert friendly.title == "Request Timed Out"

    def test_transport_error(self):
        friendly = map_error_to_friendly_message(httpx.ConnectError("refused"), "saving")
        assert friendly.title == "Connection Problem"

    def test_unknown_exception(self):
        friendly = map_error_to_friendly_message(RuntimeError("KeyError: 'x'"), "saving the notes")
        assert friendly.title == "Error"
        assert friendly.description == "An error occurred while saving the notes. Please try again."

    def test_none(self):
        friendly = map_error_to_friendly_message(None, "saving")
        assert friendly.title == "Unknown Error"
        assert str(friendly) == "Unknown Error: An unexpected error occurred while saving. Please try again."
