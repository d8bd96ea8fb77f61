"""
Unit tests for AppointmentService.
"""

import pytest
from datetime import timezone

from fastapi import HTTPException

from services.appointment_service import AppointmentService
from shared_types.planner import PlannerStatus
from tests.conftest import OTHER_ORG_ID, TEST_ORG_ID
from tests.helpers import (
    create_appointment,
    create_bay,
    create_customer,
    create_technician,
    create_vehicle,
    local,
)
from utils.datetime_utils import get_org_date_range


class TestListAppointments:
    """Test day queries."""

    def test_lists_appointments_of_local_day(self, db_session):
        create_appointment(db_session, TEST_ORG_ID, local(10), local(11), title="Second")
        create_appointment(db_session, TEST_ORG_ID, local(9), local(10), title="First")
        # 01:00 local on the 16th is still the 15th in UTC
        create_appointment(db_session, TEST_ORG_ID, local(1, day=16), local(2, day=16), title="Next day")

        start, end = get_org_date_range(local(12))
        result = AppointmentService.list_appointments(db_session, TEST_ORG_ID, start, end)

        assert [a.title for a in result] == ["First", "Second"]
        assert result[0].starts_at.tzinfo == timezone.utc
        assert result[0].starts_at == local(9)

    def test_bay_filter(self, db_session):
        bay = create_bay(db_session, TEST_ORG_ID)
        create_appointment(db_session, TEST_ORG_ID, local(9), local(10), title="In bay", bay_id=bay.id)
        create_appointment(db_session, TEST_ORG_ID, local(9), local(10), title="Elsewhere")

        start, end = get_org_date_range(local(12))
        result = AppointmentService.list_appointments(db_session, TEST_ORG_ID, start, end, bay.id)

        assert [a.title for a in result] == ["In bay"]

    def test_other_organization_hidden(self, db_session):
        create_appointment(db_session, OTHER_ORG_ID, local(9), local(10))
        start, end = get_org_date_range(local(12))
        assert AppointmentService.list_appointments(db_session, TEST_ORG_ID, start, end) == []

    def test_customer_and_vehicle_labels(self, db_session):
        customer = create_customer(db_session, TEST_ORG_ID, first_name="Ona", last_name="K")
        vehicle = create_vehicle(db_session, TEST_ORG_ID, customer_id=customer.id)
        create_appointment(
            db_session, TEST_ORG_ID, local(9), local(10), customer_id=customer.id, vehicle_id=vehicle.id
        )

        start, end = get_org_date_range(local(12))
        result = AppointmentService.list_appointments(db_session, TEST_ORG_ID, start, end)

        assert result[0].customer_name == "Ona K"
        assert result[0].vehicle_label == "Volvo V70 ABC 123"


class TestCreateAppointment:
    """Test appointment creation and its validation."""

    def test_create(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        appointment = AppointmentService.create_appointment(
            db_session,
            TEST_ORG_ID,
            title="  Tyre swap ",
            starts_at=local(9),
            ends_at=local(10),
            technician_id=technician.id,
            notes="   ",
        )

        assert appointment.id
        assert appointment.title == "Tyre swap"
        assert appointment.status == PlannerStatus.SCHEDULED
        assert appointment.technician_id == technician.id
        assert appointment.notes is None

    @pytest.mark.parametrize("title", ["", "   "])
    def test_title_required(self, db_session, title):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(db_session, TEST_ORG_ID, title, local(9), local(10))
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Title is required"

    def test_end_must_follow_start(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(db_session, TEST_ORG_ID, "Job", local(10), local(9))
        assert exc_info.value.status_code == 400

    def test_notes_limit(self, db_session):
        with pytest.raises(HTTPException):
            AppointmentService.create_appointment(
                db_session, TEST_ORG_ID, "Job", local(9), local(10), notes="x" * 2001
            )

    def test_invalid_status(self, db_session):
        with pytest.raises(HTTPException):
            AppointmentService.create_appointment(
                db_session, TEST_ORG_ID, "Job", local(9), local(10), status="cancelled"
            )

    def test_technician_of_other_organization(self, db_session):
        technician = create_technician(db_session, OTHER_ORG_ID)
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(
                db_session, TEST_ORG_ID, "Job", local(9), local(10), technician_id=technician.id
            )
        assert exc_info.value.detail == "Technician not found"

    def test_vehicle_must_belong_to_customer(self, db_session):
        owner = create_customer(db_session, TEST_ORG_ID)
        other = create_customer(db_session, TEST_ORG_ID, first_name="Other")
        vehicle = create_vehicle(db_session, TEST_ORG_ID, customer_id=owner.id)

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.create_appointment(
                db_session, TEST_ORG_ID, "Job", local(9), local(10),
                customer_id=other.id, vehicle_id=vehicle.id,
            )
        assert exc_info.value.detail == "Vehicle does not belong to the selected customer"


class TestUpdateAppointment:
    """Test partial updates."""

    def test_move_to_other_technician(self, db_session):
        first = create_technician(db_session, TEST_ORG_ID, first_name="First")
        second = create_technician(db_session, TEST_ORG_ID, first_name="Second")
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10), technician_id=first.id)

        updated = AppointmentService.update_appointment(
            db_session, TEST_ORG_ID, appointment.id,
            technician_id=second.id, starts_at=local(11), ends_at=local(12),
        )

        assert updated.technician_id == second.id
        assert updated.starts_at == local(11)
        assert updated.title == "Oil change"

    def test_none_clears_technician(self, db_session):
        technician = create_technician(db_session, TEST_ORG_ID)
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10), technician_id=technician.id)

        updated = AppointmentService.update_appointment(db_session, TEST_ORG_ID, appointment.id, technician_id=None)

        assert updated.technician_id is None

    def test_omitted_fields_are_kept(self, db_session):
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10), notes="Keep me")

        updated = AppointmentService.update_appointment(db_session, TEST_ORG_ID, appointment.id, ends_at=local(11))

        assert updated.notes == "Keep me"
        assert updated.starts_at == local(9)
        assert updated.ends_at == local(11)

    def test_partial_time_change_is_validated(self, db_session):
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10))

        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(db_session, TEST_ORG_ID, appointment.id, starts_at=local(10))
        assert exc_info.value.status_code == 400

    def test_update_status(self, db_session):
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10))
        updated = AppointmentService.update_appointment(db_session, TEST_ORG_ID, appointment.id, status="in_progress")
        assert updated.status == PlannerStatus.IN_PROGRESS

    def test_update_unknown_appointment(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(db_session, TEST_ORG_ID, "missing", title="x")
        assert exc_info.value.status_code == 404

    def test_update_other_organization(self, db_session):
        appointment = create_appointment(db_session, OTHER_ORG_ID, local(9), local(10))
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.update_appointment(db_session, TEST_ORG_ID, appointment.id, title="x")
        assert exc_info.value.status_code == 404


class TestDeleteAppointment:
    def test_delete(self, db_session):
        appointment = create_appointment(db_session, TEST_ORG_ID, local(9), local(10))
        AppointmentService.delete_appointment(db_session, TEST_ORG_ID, appointment.id)

        with pytest.raises(HTTPException):
            AppointmentService.get_appointment(db_session, TEST_ORG_ID, appointment.id)

    def test_delete_unknown(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            AppointmentService.delete_appointment(db_session, TEST_ORG_ID, "missing")
        assert exc_info.value.status_code == 404
