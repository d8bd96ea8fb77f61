"""
Availability service: the authoritative scheduling check.

This module answers "can this appointment be placed here?" for the planner
and builds the read-only conflict report shown in the edit drawer. Client
side conflict detection is advisory; this check is the final gate before a
move, resize or create is written.
"""

import logging
from datetime import datetime, time
from typing import List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from models import Appointment, Bay, Resource, ResourceAvailability, ResourceTimeOff, Technician
from services.resource_service import ResourceService
from shared_types.planner import CanScheduleInput, ConflictReport
from utils.appointment_queries import find_overlapping_appointments
from utils.datetime_utils import ensure_utc, to_org_local_time

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability operations.

    Combines three rules: no overlapping booking of the same technician or
    bay, no overlap with resource time off, and (for resources that define
    weekly windows) the appointment must lie inside one window.
    """

    @staticmethod
    def _check_time_overlap(
        start1: datetime,
        end1: datetime,
        start2: datetime,
        end2: datetime
    ) -> bool:
        """Check if two half-open intervals overlap."""
        return start1 < end2 and start2 < end1

    @staticmethod
    def _normalize_range(starts_at: datetime, ends_at: datetime) -> tuple[datetime, datetime]:
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
    def fits_availability_windows(
        windows: Sequence[ResourceAvailability],
        starts_at: datetime,
        ends_at: datetime
    ) -> bool:
        """
        Check that an appointment lies entirely inside one weekly window.

        Windows are organization-local wall-clock times. An appointment that
        crosses local midnight never fits. An empty window list means the
        resource is always available.

        Args:
            windows: Availability windows of one resource
            starts_at: Appointment start instant
            ends_at: Appointment end instant

        Returns:
            True if some window on the appointment's local weekday contains it
        """
        if not windows:
            return True

        local_start = to_org_local_time(starts_at)
        local_end = to_org_local_time(ends_at)
        if local_start.date() != local_end.date():
            return False

        weekday = local_start.weekday()
        start_of_day: time = local_start.time()
        end_of_day: time = local_end.time()
        return any(
            window.weekday == weekday
            and window.start_time <= start_of_day
            and end_of_day <= window.end_time
            for window in windows
        )

    @staticmethod
    def _resource_is_free(db: Session, resource: Resource, starts_at: datetime, ends_at: datetime) -> bool:
        time_off = db.query(ResourceTimeOff).filter(
            ResourceTimeOff.resource_id == resource.id,
            ResourceTimeOff.starts_at < ends_at,
            ResourceTimeOff.ends_at > starts_at
        ).first()
        if time_off:
            logger.debug(f"Resource {resource.id} has time off {time_off.id} overlapping the request")
            return False

        windows = db.query(ResourceAvailability).filter(
            ResourceAvailability.resource_id == resource.id
        ).all()
        if not AvailabilityService.fits_availability_windows(windows, starts_at, ends_at):
            logger.debug(f"Request falls outside the availability windows of resource {resource.id}")
            return False
        return True

    @staticmethod
    def can_schedule(db: Session, org_id: str, request: CanScheduleInput) -> bool:
        """
        Decide whether an appointment can be placed at the requested slot.

        A scheduling conflict is a normal negative answer, not an error.

        Args:
            db: Database session
            org_id: Organization ID
            request: Technician, bay, time range and the appointment to exclude
                (the one being moved or resized)

        Returns:
            True when the slot is free for every involved resource

        Raises:
            HTTPException: If the time range is invalid
        """
        starts_at, ends_at = AvailabilityService._normalize_range(request.starts_at, request.ends_at)

        overlapping = find_overlapping_appointments(
            db,
            org_id,
            starts_at,
            ends_at,
            technician_id=request.technician_id,
            bay_id=request.bay_id,
            exclude_appointment_id=request.appointment_id,
        )
        if overlapping:
            logger.debug(
                f"Slot {starts_at.isoformat()}-{ends_at.isoformat()} overlaps appointment {overlapping[0].id}"
            )
            return False

        resources = ResourceService.get_linked_resources(db, org_id, request.technician_id, request.bay_id)
        return all(
            AvailabilityService._resource_is_free(db, resource, starts_at, ends_at)
            for resource in resources
        )

    @staticmethod
    def _technician_resource_name(db: Session, org_id: str, technician_id: str) -> str:
        resource = db.query(Resource).filter(
            Resource.org_id == org_id,
            Resource.technician_id == technician_id
        ).first()
        if resource:
            return resource.name
        technician = db.query(Technician).filter(Technician.id == technician_id).first()
        if technician and technician.full_name:
            return technician.full_name
        return "Technician"

    @staticmethod
    def _bay_resource_name(db: Session, bay_id: str) -> str:
        bay = db.query(Bay).filter(Bay.id == bay_id).first()
        return bay.name if bay else "Bay"

    @staticmethod
    def check_appointment_conflicts(
        db: Session,
        org_id: str,
        appointment_id: str,
        starts_at: Optional[datetime] = None,
        ends_at: Optional[datetime] = None
    ) -> List[ConflictReport]:
        """
        List bookings that overlap an appointment on a shared resource.

        An overlapping appointment that shares both the technician and the bay
        is reported once per shared resource.

        Args:
            db: Database session
            org_id: Organization ID
            appointment_id: Appointment to inspect
            starts_at: Optional override of the appointment start (unsaved edit)
            ends_at: Optional override of the appointment end (unsaved edit)

        Returns:
            Conflicts ordered by overlap start, then resource name

        Raises:
            HTTPException: If the appointment does not exist
        """
        appointment = db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.org_id == org_id
        ).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )

        start, end = AvailabilityService._normalize_range(
            starts_at or appointment.starts_at,
            ends_at or appointment.ends_at,
        )
        others = find_overlapping_appointments(
            db,
            org_id,
            start,
            end,
            technician_id=appointment.technician_id,
            bay_id=appointment.bay_id,
            exclude_appointment_id=appointment.id,
        )

        conflicts: List[ConflictReport] = []
        for other in others:
            other_start = ensure_utc(other.starts_at)
            other_end = ensure_utc(other.ends_at)
            assert other_start is not None and other_end is not None
            overlap_start = max(start, other_start)
            overlap_end = min(end, other_end)

            if appointment.technician_id and other.technician_id == appointment.technician_id:
                conflicts.append(ConflictReport(
                    conflict_appointment_id=other.id,
                    conflict_title=other.title,
                    resource_name=AvailabilityService._technician_resource_name(
                        db, org_id, appointment.technician_id
                    ),
                    overlap_start=overlap_start,
                    overlap_end=overlap_end,
                ))
            if appointment.bay_id and other.bay_id == appointment.bay_id:
                conflicts.append(ConflictReport(
                    conflict_appointment_id=other.id,
                    conflict_title=other.title,
                    resource_name=AvailabilityService._bay_resource_name(db, appointment.bay_id),
                    overlap_start=overlap_start,
                    overlap_end=overlap_end,
                ))

        conflicts.sort(key=lambda conflict: (conflict.overlap_start, conflict.resource_name))
        return conflicts
