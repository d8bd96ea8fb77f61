"""
Utility functions for consistent appointment queries.

This module contains reusable query functions that ensure common appointment
query patterns (organization scoping, day ranges, overlap filters) are
applied consistently across all services and APIs.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session, joinedload

from models import Appointment


def base_appointment_query(db: Session, org_id: str) -> Query[Appointment]:
    """
    Appointments of one organization with customer and vehicle eagerly loaded.

    The planner always shows customer name and vehicle label, so both
    relationships are joined up front.
    """
    return db.query(Appointment).options(
        joinedload(Appointment.customer),
        joinedload(Appointment.vehicle),
    ).filter(Appointment.org_id == org_id)


def list_appointments_in_range(
    db: Session,
    org_id: str,
    range_start: datetime,
    range_end: datetime,
    bay_id: Optional[str] = None,
) -> List[Appointment]:
    """
    List appointments starting within [range_start, range_end).

    Args:
        db: Database session
        org_id: Organization ID
        range_start: Inclusive UTC start
        range_end: Exclusive UTC end
        bay_id: Optional bay filter

    Returns:
        Appointments ordered by start time
    """
    query = base_appointment_query(db, org_id).filter(
        Appointment.starts_at >= range_start,
        Appointment.starts_at < range_end,
    )
    if bay_id:
        query = query.filter(Appointment.bay_id == bay_id)
    return query.order_by(Appointment.starts_at, Appointment.id).all()


def filter_overlapping(query: Query[Appointment], starts_at: datetime, ends_at: datetime) -> Query[Appointment]:
    """
    Restrict a query to appointments overlapping [starts_at, ends_at).

    Touching ranges (one ends exactly when the other starts) do not overlap.
    """
    return query.filter(
        and_(Appointment.starts_at < ends_at, Appointment.ends_at > starts_at)
    )


def find_overlapping_appointments(
    db: Session,
    org_id: str,
    starts_at: datetime,
    ends_at: datetime,
    technician_id: Optional[str] = None,
    bay_id: Optional[str] = None,
    exclude_appointment_id: Optional[str] = None,
) -> List[Appointment]:
    """
    Find appointments that overlap a time range and share the technician or the bay.

    Args:
        db: Database session
        org_id: Organization ID
        starts_at: UTC start of the range
        ends_at: UTC end of the range
        technician_id: Technician to check (None skips the technician dimension)
        bay_id: Bay to check (None skips the bay dimension)
        exclude_appointment_id: Appointment to ignore, typically the one being moved

    Returns:
        Overlapping appointments ordered by start time (empty when neither
        dimension is given)
    """
    shared: list = []
    if technician_id:
        shared.append(Appointment.technician_id == technician_id)
    if bay_id:
        shared.append(Appointment.bay_id == bay_id)
    if not shared:
        return []

    query = filter_overlapping(db.query(Appointment).filter(Appointment.org_id == org_id), starts_at, ends_at)
    query = query.filter(or_(*shared))
    if exclude_appointment_id:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.starts_at, Appointment.id).all()
