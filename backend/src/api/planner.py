"""
Planner API endpoints.

Provides the scheduling board backend:
- Day queries and create/update/delete of appointments
- The authoritative availability check and per-appointment conflict report
- Technician and bay directories
- Resource availability windows and time off

Every endpoint is scoped to the organization in the X-Organization-Id header.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from api.responses import (
    AppointmentListResponse,
    AppointmentResponse,
    BayListResponse,
    BayResponse,
    CanScheduleResponse,
    ConflictListResponse,
    ConflictResponse,
    ResourceAvailabilityListResponse,
    ResourceAvailabilityResponse,
    ResourceTimeOffListResponse,
    ResourceTimeOffResponse,
    TechnicianListResponse,
    TechnicianResponse,
)
from auth.dependencies import OrganizationContext, require_organization
from core.database import get_db
from services import AppointmentService, AvailabilityService, ResourceService
from shared_types.planner import CanScheduleInput, PlannerAppointment, PlannerStatus
from utils.datetime_utils import get_org_date_range, parse_date_string, parse_datetime_to_utc, parse_time_string

logger = logging.getLogger(__name__)

router = APIRouter()


# Request Models

def _parse_optional_datetime(v: Any) -> Optional[datetime]:
    if v is None:
        return None
    return parse_datetime_to_utc(v)


class AppointmentCreateRequest(BaseModel):
    """Request model for creating an appointment (also the full-replace body of PUT)."""
    title: str
    starts_at: datetime
    ends_at: datetime
    technician_id: Optional[str] = None
    bay_id: Optional[str] = None
    status: PlannerStatus = PlannerStatus.SCHEDULED
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    priority: int = 0

    @field_validator('starts_at', 'ends_at', mode='before')
    @classmethod
    def parse_instant(cls, v: Any) -> datetime:
        """Parse ISO strings; naive values are taken as UTC."""
        return parse_datetime_to_utc(v)


class AppointmentPatchRequest(BaseModel):
    """
    Request model for a partial update.

    Only fields present in the body are changed; an explicit null clears a
    nullable field (technician_id=null moves to the unassigned lane).
    """
    title: Optional[str] = None
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    technician_id: Optional[str] = None
    bay_id: Optional[str] = None
    status: Optional[PlannerStatus] = None
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    priority: Optional[int] = None

    @field_validator('starts_at', 'ends_at', mode='before')
    @classmethod
    def parse_instant(cls, v: Any) -> Optional[datetime]:
        return _parse_optional_datetime(v)


class CanScheduleRequest(BaseModel):
    """Request model for the availability check."""
    technician_id: Optional[str] = None
    bay_id: Optional[str] = None
    starts_at: datetime
    ends_at: datetime
    appointment_id: Optional[str] = None  # Excluded from the overlap check

    @field_validator('starts_at', 'ends_at', mode='before')
    @classmethod
    def parse_instant(cls, v: Any) -> datetime:
        return parse_datetime_to_utc(v)


class ResourceAvailabilityCreateRequest(BaseModel):
    """Request model for a weekly availability window."""
    resource_id: str
    weekday: int  # 0=Monday ... 6=Sunday
    start_time: str  # Format: "HH:MM", organization-local
    end_time: str    # Format: "HH:MM", organization-local

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_time(cls, v: str) -> str:
        parse_time_string(v)
        return v.strip()


class ResourceTimeOffCreateRequest(BaseModel):
    """Request model for blocking a resource."""
    resource_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None

    @field_validator('starts_at', 'ends_at', mode='before')
    @classmethod
    def parse_instant(cls, v: Any) -> datetime:
        return parse_datetime_to_utc(v)


def _appointment_response(appointment: PlannerAppointment) -> AppointmentResponse:
    return AppointmentResponse.model_validate(appointment)


# Appointments

@router.get("/appointments", summary="List appointments of a day", response_model=AppointmentListResponse)
async def list_appointments(
    date: Optional[str] = Query(None, description="Organization-local day, YYYY-MM-DD"),
    start: Optional[str] = Query(None, description="Inclusive UTC start (ISO 8601)"),
    end: Optional[str] = Query(None, description="Exclusive UTC end (ISO 8601)"),
    bay_id: Optional[str] = Query(None, description="Only appointments in this bay"),
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> AppointmentListResponse:
    """
    List appointments whose start falls in the requested range.

    Either a local day (date) or an explicit start/end range is required.
    """
    if date:
        range_start, range_end = get_org_date_range(parse_date_string(date))
    elif start and end:
        range_start, range_end = parse_datetime_to_utc(start), parse_datetime_to_utc(end)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either date or both start and end"
        )

    appointments = AppointmentService.list_appointments(db, org.org_id, range_start, range_end, bay_id)
    return AppointmentListResponse(appointments=[_appointment_response(a) for a in appointments])


@router.post(
    "/appointments",
    summary="Create appointment",
    status_code=status.HTTP_201_CREATED,
    response_model=AppointmentResponse,
)
async def create_appointment(
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> AppointmentResponse:
    """
    Create an appointment.

    Availability is not enforced here; clients call /can-schedule first.
    """
    try:
        appointment = AppointmentService.create_appointment(
            db,
            org.org_id,
            title=request.title,
            starts_at=request.starts_at,
            ends_at=request.ends_at,
            technician_id=request.technician_id,
            bay_id=request.bay_id,
            status=request.status.value,
            notes=request.notes,
            customer_id=request.customer_id,
            vehicle_id=request.vehicle_id,
            priority=request.priority,
        )
        return _appointment_response(appointment)
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        logger.exception(f"Failed to create appointment for org {org.org_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not create appointment"
        )


@router.put("/appointments/{appointment_id}", summary="Replace appointment fields", response_model=AppointmentResponse)
async def replace_appointment(
    appointment_id: str,
    request: AppointmentCreateRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> AppointmentResponse:
    """Full edit from the appointment drawer: every editable field is written."""
    appointment = AppointmentService.update_appointment(
        db,
        org.org_id,
        appointment_id,
        title=request.title,
        starts_at=request.starts_at,
        ends_at=request.ends_at,
        technician_id=request.technician_id,
        bay_id=request.bay_id,
        status=request.status.value,
        notes=request.notes,
        customer_id=request.customer_id,
        vehicle_id=request.vehicle_id,
        priority=request.priority,
    )
    return _appointment_response(appointment)


@router.patch("/appointments/{appointment_id}", summary="Update appointment", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: str,
    request: AppointmentPatchRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> AppointmentResponse:
    """Partial update used for moves, resizes, status and notes changes."""
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )
    for required in ("title", "starts_at", "ends_at", "status"):
        if required in changes and changes[required] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{required} cannot be null"
            )
    if "status" in changes:
        changes["status"] = changes["status"].value

    appointment = AppointmentService.update_appointment(db, org.org_id, appointment_id, **changes)
    return _appointment_response(appointment)


@router.delete(
    "/appointments/{appointment_id}",
    summary="Delete appointment",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_appointment(
    appointment_id: str,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> Response:
    AppointmentService.delete_appointment(db, org.org_id, appointment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/appointments/{appointment_id}/conflicts",
    summary="Conflict report of an appointment",
    response_model=ConflictListResponse,
)
async def get_appointment_conflicts(
    appointment_id: str,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> ConflictListResponse:
    conflicts = AvailabilityService.check_appointment_conflicts(db, org.org_id, appointment_id)
    return ConflictListResponse(conflicts=[ConflictResponse.model_validate(c) for c in conflicts])


@router.post("/can-schedule", summary="Check whether a slot is free", response_model=CanScheduleResponse)
async def can_schedule(
    request: CanScheduleRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> CanScheduleResponse:
    """
    Authoritative availability check.

    A busy slot is a normal answer (can_schedule=false), not an error.
    """
    allowed = AvailabilityService.can_schedule(db, org.org_id, CanScheduleInput(
        technician_id=request.technician_id,
        bay_id=request.bay_id,
        starts_at=request.starts_at,
        ends_at=request.ends_at,
        appointment_id=request.appointment_id,
    ))
    return CanScheduleResponse(can_schedule=allowed)


# Directories

@router.get("/technicians", summary="List technician lanes", response_model=TechnicianListResponse)
async def list_technicians(
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> TechnicianListResponse:
    technicians = ResourceService.list_technicians(db, org.org_id)
    return TechnicianListResponse(technicians=[TechnicianResponse.model_validate(t) for t in technicians])


@router.get("/bays", summary="List bays", response_model=BayListResponse)
async def list_bays(
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> BayListResponse:
    bays = ResourceService.list_bays(db, org.org_id)
    return BayListResponse(bays=[BayResponse.model_validate(b) for b in bays])


# Resource availability and time off

@router.get(
    "/resource-availability",
    summary="List availability windows",
    response_model=ResourceAvailabilityListResponse,
)
async def list_resource_availability(
    resource_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> ResourceAvailabilityListResponse:
    entries = ResourceService.list_availability(db, org.org_id, resource_id)
    return ResourceAvailabilityListResponse(
        availability=[ResourceAvailabilityResponse.from_entry(entry) for entry in entries]
    )


@router.post(
    "/resource-availability",
    summary="Add availability window",
    status_code=status.HTTP_201_CREATED,
    response_model=ResourceAvailabilityResponse,
)
async def create_resource_availability(
    request: ResourceAvailabilityCreateRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> ResourceAvailabilityResponse:
    entry = ResourceService.create_availability(
        db,
        org.org_id,
        request.resource_id,
        request.weekday,
        parse_time_string(request.start_time),
        parse_time_string(request.end_time),
    )
    return ResourceAvailabilityResponse.from_entry(entry)


@router.delete(
    "/resource-availability/{availability_id}",
    summary="Delete availability window",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_resource_availability(
    availability_id: str,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> Response:
    ResourceService.delete_availability(db, org.org_id, availability_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/resource-time-off", summary="List time off", response_model=ResourceTimeOffListResponse)
async def list_resource_time_off(
    resource_id: Optional[str] = Query(None),
    start: Optional[str] = Query(None, description="Only entries ending after this instant"),
    end: Optional[str] = Query(None, description="Only entries starting before this instant"),
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> ResourceTimeOffListResponse:
    entries = ResourceService.list_time_off(
        db,
        org.org_id,
        resource_id,
        _parse_optional_datetime(start),
        _parse_optional_datetime(end),
    )
    return ResourceTimeOffListResponse(time_off=[ResourceTimeOffResponse.model_validate(e) for e in entries])


@router.post(
    "/resource-time-off",
    summary="Add time off",
    status_code=status.HTTP_201_CREATED,
    response_model=ResourceTimeOffResponse,
)
async def create_resource_time_off(
    request: ResourceTimeOffCreateRequest,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> ResourceTimeOffResponse:
    entry = ResourceService.create_time_off(
        db,
        org.org_id,
        request.resource_id,
        request.starts_at,
        request.ends_at,
        request.reason,
    )
    return ResourceTimeOffResponse.model_validate(entry)


@router.delete(
    "/resource-time-off/{time_off_id}",
    summary="Delete time off",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_resource_time_off(
    time_off_id: str,
    db: Session = Depends(get_db),
    org: OrganizationContext = Depends(require_organization)
) -> Response:
    ResourceService.delete_time_off(db, org.org_id, time_off_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
