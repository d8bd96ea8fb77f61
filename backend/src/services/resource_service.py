"""
Resource service for the planner directories and scheduling rules.

This service handles:
- Technician and bay directories shown as board lanes and filters
- Resource lookup for technicians and bays
- Weekly availability windows and time off for resources
"""

import logging
from datetime import datetime, time
from typing import List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from core.constants import TECHNICIAN_COLORS
from models import Bay, Resource, ResourceAvailability, ResourceTimeOff, Technician
from models.resource import RESOURCE_TYPE_BAY, RESOURCE_TYPE_TECHNICIAN
from shared_types.planner import (
    PlannerBay,
    PlannerTechnician,
    ResourceAvailabilityEntry,
    ResourceTimeOffEntry,
)
from utils.datetime_utils import ensure_utc

logger = logging.getLogger(__name__)


def _technician_fallback_name(skills: List[str], index: int) -> str:
    if skills and skills[0]:
        skill = skills[0]
        return f"{skill[0].upper()}{skill[1:]} specialist"
    return f"Technician {index + 1}"


class ResourceService:
    """Service for technician/bay directories and resource scheduling rules."""

    @staticmethod
    def list_technicians(db: Session, org_id: str) -> List[PlannerTechnician]:
        """
        List the technicians of an organization as board lanes.

        Lanes are ordered by creation time. The lane color and resource id come
        from the linked technician resource when there is one; otherwise the
        color is picked from the palette by position and the technician id
        doubles as resource id.

        Args:
            db: Database session
            org_id: Organization ID

        Returns:
            List of PlannerTechnician
        """
        technicians = db.query(Technician).filter(
            Technician.org_id == org_id,
            Technician.is_active == True  # noqa: E712
        ).order_by(Technician.created_at, Technician.id).all()

        resources = db.query(Resource).filter(
            Resource.org_id == org_id,
            Resource.resource_type == RESOURCE_TYPE_TECHNICIAN,
            Resource.is_active == True  # noqa: E712
        ).all()
        resource_by_technician = {
            resource.technician_id: resource for resource in resources if resource.technician_id
        }

        result: List[PlannerTechnician] = []
        for index, technician in enumerate(technicians):
            skills = list(technician.skills or [])
            resource = resource_by_technician.get(technician.id)
            result.append(PlannerTechnician(
                id=technician.id,
                name=technician.full_name or _technician_fallback_name(skills, index),
                color=(resource.color if resource and resource.color else None)
                or TECHNICIAN_COLORS[index % len(TECHNICIAN_COLORS)],
                user_id=technician.user_id,
                skills=skills,
                resource_id=resource.id if resource else technician.id,
            ))
        return result

    @staticmethod
    def list_bays(db: Session, org_id: str) -> List[PlannerBay]:
        """List the bays of an organization ordered by name."""
        bays = db.query(Bay).filter(Bay.org_id == org_id).order_by(Bay.name, Bay.id).all()
        return [PlannerBay(id=bay.id, name=bay.name) for bay in bays]

    @staticmethod
    def get_resource(db: Session, org_id: str, resource_id: str) -> Resource:
        """
        Get a resource by ID within an organization.

        Raises:
            HTTPException: If the resource does not exist
        """
        resource = db.query(Resource).filter(
            Resource.id == resource_id,
            Resource.org_id == org_id
        ).first()
        if not resource:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Resource not found"
            )
        return resource

    @staticmethod
    def get_linked_resources(
        db: Session,
        org_id: str,
        technician_id: Optional[str],
        bay_id: Optional[str]
    ) -> List[Resource]:
        """
        Active resources linked to a technician and/or a bay.

        A technician whose lane uses its own id as resource id has no resource
        row and contributes nothing here.
        """
        resources: List[Resource] = []
        if technician_id:
            resources.extend(db.query(Resource).filter(
                Resource.org_id == org_id,
                Resource.resource_type == RESOURCE_TYPE_TECHNICIAN,
                Resource.technician_id == technician_id,
                Resource.is_active == True  # noqa: E712
            ).all())
        if bay_id:
            resources.extend(db.query(Resource).filter(
                Resource.org_id == org_id,
                Resource.resource_type == RESOURCE_TYPE_BAY,
                Resource.bay_id == bay_id,
                Resource.is_active == True  # noqa: E712
            ).all())
        return resources

    @staticmethod
    def _to_availability_entry(row: ResourceAvailability) -> ResourceAvailabilityEntry:
        return ResourceAvailabilityEntry(
            id=row.id,
            resource_id=row.resource_id,
            weekday=row.weekday,
            start_time=row.start_time,
            end_time=row.end_time,
        )

    @staticmethod
    def _to_time_off_entry(row: ResourceTimeOff) -> ResourceTimeOffEntry:
        starts_at = ensure_utc(row.starts_at)
        ends_at = ensure_utc(row.ends_at)
        assert starts_at is not None and ends_at is not None
        return ResourceTimeOffEntry(
            id=row.id,
            resource_id=row.resource_id,
            starts_at=starts_at,
            ends_at=ends_at,
            reason=row.reason,
        )

    @staticmethod
    def list_availability(
        db: Session,
        org_id: str,
        resource_id: Optional[str] = None
    ) -> List[ResourceAvailabilityEntry]:
        """
        List weekly availability windows, optionally for one resource.

        Returns:
            Entries ordered by weekday, then start time
        """
        query = db.query(ResourceAvailability).filter(ResourceAvailability.org_id == org_id)
        if resource_id:
            query = query.filter(ResourceAvailability.resource_id == resource_id)
        rows = query.order_by(
            ResourceAvailability.weekday,
            ResourceAvailability.start_time,
            ResourceAvailability.id
        ).all()
        return [ResourceService._to_availability_entry(row) for row in rows]

    @staticmethod
    def create_availability(
        db: Session,
        org_id: str,
        resource_id: str,
        weekday: int,
        start_time: time,
        end_time: time
    ) -> ResourceAvailabilityEntry:
        """
        Add a weekly availability window to a resource.

        Args:
            db: Database session
            org_id: Organization ID
            resource_id: Resource the window belongs to
            weekday: 0=Monday ... 6=Sunday
            start_time: Local start of the window
            end_time: Local end of the window

        Returns:
            The created entry

        Raises:
            HTTPException: If the resource does not exist or the window is invalid
        """
        if weekday < 0 or weekday > 6:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Weekday must be between 0 (Monday) and 6 (Sunday)"
            )
        if start_time >= end_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Availability window must end after it starts"
            )
        ResourceService.get_resource(db, org_id, resource_id)

        row = ResourceAvailability(
            org_id=org_id,
            resource_id=resource_id,
            weekday=weekday,
            start_time=start_time,
            end_time=end_time,
        )
        db.add(row)
        db.commit()
        logger.info(f"Created availability window {row.id} for resource {resource_id} (weekday {weekday})")
        return ResourceService._to_availability_entry(row)

    @staticmethod
    def delete_availability(db: Session, org_id: str, availability_id: str) -> None:
        """
        Delete an availability window.

        Raises:
            HTTPException: If the window does not exist
        """
        row = db.query(ResourceAvailability).filter(
            ResourceAvailability.id == availability_id,
            ResourceAvailability.org_id == org_id
        ).first()
        if not row:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Availability window not found"
            )
        db.delete(row)
        db.commit()
        logger.info(f"Deleted availability window {availability_id}")

    @staticmethod
    def list_time_off(
        db: Session,
        org_id: str,
        resource_id: Optional[str] = None,
        range_start: Optional[datetime] = None,
        range_end: Optional[datetime] = None
    ) -> List[ResourceTimeOffEntry]:
        """
        List time off entries, optionally for one resource and/or overlapping a range.

        Returns:
            Entries ordered by start
        """
        query = db.query(ResourceTimeOff).filter(ResourceTimeOff.org_id == org_id)
        if resource_id:
            query = query.filter(ResourceTimeOff.resource_id == resource_id)
        if range_start is not None:
            query = query.filter(ResourceTimeOff.ends_at > ensure_utc(range_start))
        if range_end is not None:
            query = query.filter(ResourceTimeOff.starts_at < ensure_utc(range_end))
        rows = query.order_by(ResourceTimeOff.starts_at, ResourceTimeOff.id).all()
        return [ResourceService._to_time_off_entry(row) for row in rows]

    @staticmethod
    def create_time_off(
        db: Session,
        org_id: str,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None
    ) -> ResourceTimeOffEntry:
        """
        Block a resource for a period.

        Raises:
            HTTPException: If the resource does not exist or the period is invalid
        """
        starts_utc = ensure_utc(starts_at)
        ends_utc = ensure_utc(ends_at)
        assert starts_utc is not None and ends_utc is not None
        if starts_utc >= ends_utc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Time off must end after it starts"
            )
        ResourceService.get_resource(db, org_id, resource_id)

        row = ResourceTimeOff(
            org_id=org_id,
            resource_id=resource_id,
            starts_at=starts_utc,
            ends_at=ends_utc,
            reason=(reason or "").strip() or None,
        )
        db.add(row)
        db.commit()
        logger.info(f"Created time off {row.id} for resource {resource_id}")
        return ResourceService._to_time_off_entry(row)

    @staticmethod
    def delete_time_off(db: Session, org_id: str, time_off_id: str) -> None:
        """
        Delete a time off entry.

        Raises:
            HTTPException: If the entry does not exist
        """
        row = db.query(ResourceTimeOff).filter(
            ResourceTimeOff.id == time_off_id,
            ResourceTimeOff.org_id == org_id
        ).first()
        if not row:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Time off not found"
            )
        db.delete(row)
        db.commit()
        logger.info(f"Deleted time off {time_off_id}")
