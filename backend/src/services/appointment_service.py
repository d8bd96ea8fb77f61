"""
Appointment service for shared appointment business logic.

This module contains all appointment-related business logic used by the
planner API and the in-process planner backend: day queries, creation,
partial updates, status changes and deletion.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.constants import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH
from core.sentinels import MISSING, is_missing
from models import Appointment, Bay, Customer, Technician, Vehicle
from models.appointment import APPOINTMENT_STATUSES
from shared_types.planner import PlannerAppointment, PlannerStatus
from utils.appointment_queries import base_appointment_query, list_appointments_in_range
from utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service class for appointment operations.

    Contains business logic for appointment management that is shared
    across the HTTP API and the in-process planner backend.
    """

    @staticmethod
    def to_planner_appointment(appointment: Appointment) -> PlannerAppointment:
        """
        Map an appointment row (with customer and vehicle loaded) to the planner record.

        Args:
            appointment: Appointment ORM object

        Returns:
            PlannerAppointment with UTC instants, customer name and vehicle label
        """
        starts_at = ensure_utc(appointment.starts_at)
        ends_at = ensure_utc(appointment.ends_at)
        assert starts_at is not None and ends_at is not None
        return PlannerAppointment(
            id=appointment.id,
            title=appointment.title,
            technician_id=appointment.technician_id,
            bay_id=appointment.bay_id,
            status=PlannerStatus(appointment.status),
            starts_at=starts_at,
            ends_at=ends_at,
            notes=appointment.notes,
            customer_id=appointment.customer_id,
            customer_name=appointment.customer.display_name if appointment.customer else None,
            vehicle_id=appointment.vehicle_id,
            vehicle_label=appointment.vehicle.label if appointment.vehicle else None,
            priority=appointment.priority or 0,
        )

    @staticmethod
    def list_appointments(
        db: Session,
        org_id: str,
        range_start: datetime,
        range_end: datetime,
        bay_id: Optional[str] = None
    ) -> List[PlannerAppointment]:
        """
        List appointments starting within a UTC range, ordered by start.

        Args:
            db: Database session
            org_id: Organization ID
            range_start: Inclusive UTC start
            range_end: Exclusive UTC end
            bay_id: Optional bay filter

        Returns:
            List of PlannerAppointment
        """
        start = ensure_utc(range_start)
        end = ensure_utc(range_end)
        assert start is not None and end is not None
        rows = list_appointments_in_range(db, org_id, start, end, bay_id)
        return [AppointmentService.to_planner_appointment(row) for row in rows]

    @staticmethod
    def get_appointment(db: Session, org_id: str, appointment_id: str) -> Appointment:
        """
        Get an appointment by ID within an organization.

        Raises:
            HTTPException: If the appointment does not exist
        """
        appointment = base_appointment_query(db, org_id).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    @staticmethod
    def _validate_title(title: str) -> str:
        cleaned = (title or "").strip()
        if not cleaned:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Title is required"
            )
        if len(cleaned) > MAX_TITLE_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Title must be at most {MAX_TITLE_LENGTH} characters"
            )
        return cleaned

    @staticmethod
    def _validate_notes(notes: Optional[str]) -> Optional[str]:
        if notes is None or not notes.strip():
            return None
        if len(notes) > MAX_NOTES_LENGTH:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Notes must be at most {MAX_NOTES_LENGTH} characters"
            )
        return notes

    @staticmethod
    def _validate_status(value: str) -> str:
        if value not in APPOINTMENT_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status: {value}"
            )
        return value

    @staticmethod
    def _validate_time_range(starts_at: datetime, ends_at: datetime) -> tuple[datetime, datetime]:
        start = ensure_utc(starts_at)
        end = ensure_utc(ends_at)
        assert start is not None and end is not None
        if start >= end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Appointment must end after it starts"
            )
        return start, end

    @staticmethod
    def _validate_reference(db: Session, org_id: str, model: Any, value: Optional[str], label: str) -> None:
        """Referenced technician/bay/customer/vehicle must exist in the same organization."""
        if value is None:
            return
        exists = db.query(model.id).filter(model.id == value, model.org_id == org_id).first()
        if not exists:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label} not found"
            )

    @staticmethod
    def _validate_vehicle_owner(db: Session, vehicle_id: Optional[str], customer_id: Optional[str]) -> None:
        if vehicle_id is None or customer_id is None:
            return
        vehicle = db.query(Vehicle).filter(Vehicle.id == vehicle_id).first()
        if vehicle and vehicle.customer_id and vehicle.customer_id != customer_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Vehicle does not belong to the selected customer"
            )

    @staticmethod
    def create_appointment(
        db: Session,
        org_id: str,
        title: str,
        starts_at: datetime,
        ends_at: datetime,
        technician_id: Optional[str] = None,
        bay_id: Optional[str] = None,
        status: str = PlannerStatus.SCHEDULED.value,
        notes: Optional[str] = None,
        customer_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
        priority: int = 0
    ) -> PlannerAppointment:
        """
        Create an appointment.

        Availability is not checked here; the planner asks can_schedule
        before writing.

        Args:
            db: Database session
            org_id: Organization ID
            title: Non-empty title
            starts_at: Start instant
            ends_at: End instant (after starts_at)
            technician_id: Optional technician
            bay_id: Optional bay
            status: Workflow status
            notes: Optional notes (at most 2000 characters)
            customer_id: Optional customer
            vehicle_id: Optional vehicle (must belong to the customer when both are set)
            priority: Ordering hint

        Returns:
            The created PlannerAppointment

        Raises:
            HTTPException: If validation fails
        """
        cleaned_title = AppointmentService._validate_title(title)
        start, end = AppointmentService._validate_time_range(starts_at, ends_at)
        cleaned_notes = AppointmentService._validate_notes(notes)
        AppointmentService._validate_status(status)
        AppointmentService._validate_reference(db, org_id, Technician, technician_id, "Technician")
        AppointmentService._validate_reference(db, org_id, Bay, bay_id, "Bay")
        AppointmentService._validate_reference(db, org_id, Customer, customer_id, "Customer")
        AppointmentService._validate_reference(db, org_id, Vehicle, vehicle_id, "Vehicle")
        AppointmentService._validate_vehicle_owner(db, vehicle_id, customer_id)

        appointment = Appointment(
            org_id=org_id,
            title=cleaned_title,
            status=status,
            technician_id=technician_id,
            bay_id=bay_id,
            customer_id=customer_id,
            vehicle_id=vehicle_id,
            starts_at=start,
            ends_at=end,
            notes=cleaned_notes,
            priority=priority,
        )
        db.add(appointment)
        db.commit()

        logger.info(f"Created appointment {appointment.id} for org {org_id} at {start.isoformat()}")
        return AppointmentService.to_planner_appointment(
            AppointmentService.get_appointment(db, org_id, appointment.id)
        )

    @staticmethod
    def update_appointment(
        db: Session,
        org_id: str,
        appointment_id: str,
        title: Any = MISSING,
        starts_at: Any = MISSING,
        ends_at: Any = MISSING,
        technician_id: Any = MISSING,
        bay_id: Any = MISSING,
        status: Any = MISSING,
        notes: Any = MISSING,
        customer_id: Any = MISSING,
        vehicle_id: Any = MISSING,
        priority: Any = MISSING
    ) -> PlannerAppointment:
        """
        Update an appointment.

        Only fields that are passed are changed; pass None to clear a nullable
        field (e.g. technician_id=None moves the appointment to the unassigned
        lane). Used for moves, resizes and full field edits alike.

        Args:
            db: Database session
            org_id: Organization ID
            appointment_id: Appointment to update
            title, starts_at, ends_at, technician_id, bay_id, status, notes,
            customer_id, vehicle_id, priority: New values, or MISSING to keep

        Returns:
            The updated PlannerAppointment

        Raises:
            HTTPException: If the appointment does not exist or validation fails
        """
        appointment = AppointmentService.get_appointment(db, org_id, appointment_id)

        if not is_missing(title):
            appointment.title = AppointmentService._validate_title(title)
        if not is_missing(status):
            appointment.status = AppointmentService._validate_status(status)
        if not is_missing(notes):
            appointment.notes = AppointmentService._validate_notes(notes)
        if not is_missing(priority):
            appointment.priority = int(priority or 0)

        new_start = appointment.starts_at if is_missing(starts_at) else starts_at
        new_end = appointment.ends_at if is_missing(ends_at) else ends_at
        if not is_missing(starts_at) or not is_missing(ends_at):
            appointment.starts_at, appointment.ends_at = AppointmentService._validate_time_range(new_start, new_end)

        if not is_missing(technician_id):
            AppointmentService._validate_reference(db, org_id, Technician, technician_id, "Technician")
            appointment.technician_id = technician_id
        if not is_missing(bay_id):
            AppointmentService._validate_reference(db, org_id, Bay, bay_id, "Bay")
            appointment.bay_id = bay_id
        if not is_missing(customer_id):
            AppointmentService._validate_reference(db, org_id, Customer, customer_id, "Customer")
            appointment.customer_id = customer_id
        if not is_missing(vehicle_id):
            AppointmentService._validate_reference(db, org_id, Vehicle, vehicle_id, "Vehicle")
            appointment.vehicle_id = vehicle_id
        AppointmentService._validate_vehicle_owner(db, appointment.vehicle_id, appointment.customer_id)

        db.commit()
        logger.info(f"Updated appointment {appointment_id}")

        # Relationships may point at a changed customer/vehicle
        db.refresh(appointment)
        return AppointmentService.to_planner_appointment(appointment)

    @staticmethod
    def delete_appointment(db: Session, org_id: str, appointment_id: str) -> None:
        """
        Delete an appointment.

        Raises:
            HTTPException: If the appointment does not exist
        """
        appointment = AppointmentService.get_appointment(db, org_id, appointment_id)
        db.delete(appointment)
        db.commit()
        logger.info(f"Deleted appointment {appointment_id}")
