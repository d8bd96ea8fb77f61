"""
Shared response models for API endpoints.

This module contains Pydantic response models for the planner API. They
mirror the wire shape the HTTP planner backend decodes.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from shared_types.planner import PlannerStatus, ResourceAvailabilityEntry


class AppointmentResponse(BaseModel):
    """Response model for a planner appointment."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    technician_id: Optional[str] = None
    bay_id: Optional[str] = None
    status: PlannerStatus
    starts_at: datetime  # UTC
    ends_at: datetime  # UTC
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None  # Display label, read-only
    vehicle_id: Optional[str] = None
    vehicle_label: Optional[str] = None  # Display label, read-only
    priority: int = 0


class AppointmentListResponse(BaseModel):
    """Response model for listing appointments of a day."""
    appointments: List[AppointmentResponse]


class CanScheduleResponse(BaseModel):
    """Response model for the availability check."""
    can_schedule: bool


class ConflictResponse(BaseModel):
    """One overlapping booking on a shared resource."""
    model_config = ConfigDict(from_attributes=True)

    conflict_appointment_id: str
    conflict_title: str
    resource_name: str
    overlap_start: datetime
    overlap_end: datetime


class ConflictListResponse(BaseModel):
    """Response model for an appointment's conflict report."""
    conflicts: List[ConflictResponse]


class TechnicianResponse(BaseModel):
    """Response model for a technician lane."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    color: str
    user_id: Optional[str] = None
    skills: List[str] = []
    resource_id: Optional[str] = None


class TechnicianListResponse(BaseModel):
    technicians: List[TechnicianResponse]


class BayResponse(BaseModel):
    """Response model for a bay."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str


class BayListResponse(BaseModel):
    bays: List[BayResponse]


class ResourceAvailabilityResponse(BaseModel):
    """Weekly availability window; times are organization-local HH:MM."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    resource_id: str
    weekday: int  # 0=Monday ... 6=Sunday
    start_time: str
    end_time: str

    @classmethod
    def from_entry(cls, entry: ResourceAvailabilityEntry) -> "ResourceAvailabilityResponse":
        return cls(**entry.to_dict())


class ResourceAvailabilityListResponse(BaseModel):
    availability: List[ResourceAvailabilityResponse]


class ResourceTimeOffResponse(BaseModel):
    """A period during which a resource cannot be booked."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    resource_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None


class ResourceTimeOffListResponse(BaseModel):
    time_off: List[ResourceTimeOffResponse]

