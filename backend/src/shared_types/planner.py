"""
Shared types for the appointment planner.

These dataclasses are the typed contract between the planner layers: the
reducer, the mutation store, the board controller, the editors and the
backend adapters. Datetimes are timezone-aware; appointment instants are UTC.
"""

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional

from core.constants import TEMPORARY_ID_PREFIX
from utils.datetime_utils import minutes_between, parse_datetime_to_utc, parse_time_string


class PlannerStatus(str, Enum):
    """Workflow status of an appointment."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    WAITING_PARTS = "waiting_parts"
    COMPLETED = "completed"

    @property
    def label(self) -> str:
        """Human readable label, e.g. "Waiting Parts"."""
        return " ".join(token.capitalize() for token in self.value.split("_"))


def _iso(value: datetime) -> str:
    return value.isoformat().replace("+00:00", "Z")


def _optional_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    return str(value) if value is not None else None


@dataclass
class PlannerAppointment:
    """
    A scheduled unit of work as the planner renders it.

    Instances are treated as values: the reducer never mutates them and always
    hands out fresh copies.
    """
    id: str
    title: str
    technician_id: Optional[str]
    bay_id: Optional[str]
    status: PlannerStatus
    starts_at: datetime
    ends_at: datetime
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    vehicle_id: Optional[str] = None
    vehicle_label: Optional[str] = None
    priority: int = 0

    @property
    def is_temporary(self) -> bool:
        """True for optimistic records that have no server id yet."""
        return self.id.startswith(TEMPORARY_ID_PREFIX)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON wire shape."""
        return {
            "id": self.id,
            "title": self.title,
            "technician_id": self.technician_id,
            "bay_id": self.bay_id,
            "status": self.status.value,
            "starts_at": _iso(self.starts_at),
            "ends_at": _iso(self.ends_at),
            "notes": self.notes,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "vehicle_id": self.vehicle_id,
            "vehicle_label": self.vehicle_label,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannerAppointment":
        """
        Create a PlannerAppointment from the JSON wire shape.

        Raises:
            ValueError: If required fields are missing or malformed
        """
        for key in ("id", "title", "status", "starts_at", "ends_at"):
            if data.get(key) is None:
                raise ValueError(f"Appointment payload is missing '{key}'")
        return cls(
            id=str(data["id"]),
            title=str(data["title"]),
            technician_id=_optional_str(data, "technician_id"),
            bay_id=_optional_str(data, "bay_id"),
            status=PlannerStatus(data["status"]),
            starts_at=parse_datetime_to_utc(data["starts_at"]),
            ends_at=parse_datetime_to_utc(data["ends_at"]),
            notes=data.get("notes"),
            customer_id=_optional_str(data, "customer_id"),
            customer_name=data.get("customer_name"),
            vehicle_id=_optional_str(data, "vehicle_id"),
            vehicle_label=data.get("vehicle_label"),
            priority=int(data.get("priority") or 0),
        )


@dataclass
class PlannerTechnician:
    """A schedulable technician lane."""
    id: str
    name: str
    color: str
    user_id: Optional[str] = None
    skills: List[str] = field(default_factory=list)
    resource_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "color": self.color,
            "user_id": self.user_id,
            "skills": list(self.skills),
            "resource_id": self.resource_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannerTechnician":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            color=str(data["color"]),
            user_id=_optional_str(data, "user_id"),
            skills=list(data.get("skills") or []),
            resource_id=_optional_str(data, "resource_id"),
        )


@dataclass
class PlannerBay:
    """A schedulable location (lift, bay)."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlannerBay":
        return cls(id=str(data["id"]), name=str(data["name"]))


@dataclass(frozen=True)
class BoardWindow:
    """Visible organization-local time range of the day grid."""
    start: datetime
    end: datetime

    @property
    def total_minutes(self) -> float:
        return minutes_between(self.start, self.end)


@dataclass(frozen=True)
class OptimisticOverride:
    """Candidate position of an appointment during an active drag or resize."""
    start: datetime
    end: datetime
    technician_id: Optional[str]


@dataclass(frozen=True)
class MovePayload:
    """New assignment and time of an appointment (drag-move)."""
    id: str
    technician_id: Optional[str]
    bay_id: Optional[str]
    starts_at: datetime
    ends_at: datetime


@dataclass(frozen=True)
class ResizePayload:
    """New time range of an appointment (drag-resize)."""
    id: str
    starts_at: datetime
    ends_at: datetime


@dataclass(frozen=True)
class CanScheduleInput:
    """Question put to the availability oracle."""
    technician_id: Optional[str]
    bay_id: Optional[str]
    starts_at: datetime
    ends_at: datetime
    appointment_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "technician_id": self.technician_id,
            "bay_id": self.bay_id,
            "starts_at": _iso(self.starts_at),
            "ends_at": _iso(self.ends_at),
            "appointment_id": self.appointment_id,
        }


@dataclass(frozen=True)
class AppointmentFields:
    """Editable appointment fields, as produced by the create/edit editor."""
    title: str
    technician_id: Optional[str]
    bay_id: Optional[str]
    status: PlannerStatus
    starts_at: datetime
    ends_at: datetime
    notes: Optional[str] = None
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    vehicle_id: Optional[str] = None
    vehicle_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape for create/update requests (display-only labels are not sent)."""
        return {
            "title": self.title,
            "technician_id": self.technician_id,
            "bay_id": self.bay_id,
            "status": self.status.value,
            "starts_at": _iso(self.starts_at),
            "ends_at": _iso(self.ends_at),
            "notes": self.notes,
            "customer_id": self.customer_id,
            "vehicle_id": self.vehicle_id,
        }


@dataclass(frozen=True)
class AppointmentUpdate:
    """A full field edit of an existing appointment."""
    id: str
    fields: AppointmentFields


@dataclass(frozen=True)
class ConflictReport:
    """One overlapping booking, as returned by the conflict report."""
    conflict_appointment_id: str
    conflict_title: str
    resource_name: str
    overlap_start: datetime
    overlap_end: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conflict_appointment_id": self.conflict_appointment_id,
            "conflict_title": self.conflict_title,
            "resource_name": self.resource_name,
            "overlap_start": _iso(self.overlap_start),
            "overlap_end": _iso(self.overlap_end),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConflictReport":
        return cls(
            conflict_appointment_id=str(data["conflict_appointment_id"]),
            conflict_title=str(data["conflict_title"]),
            resource_name=str(data["resource_name"]),
            overlap_start=parse_datetime_to_utc(data["overlap_start"]),
            overlap_end=parse_datetime_to_utc(data["overlap_end"]),
        )


@dataclass(frozen=True)
class ResourceAvailabilityEntry:
    """Weekly availability window of a resource (0=Monday ... 6=Sunday, local time)."""
    id: str
    resource_id: str
    weekday: int
    start_time: time
    end_time: time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "weekday": self.weekday,
            "start_time": self.start_time.strftime("%H:%M"),
            "end_time": self.end_time.strftime("%H:%M"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceAvailabilityEntry":
        return cls(
            id=str(data["id"]),
            resource_id=str(data["resource_id"]),
            weekday=int(data["weekday"]),
            start_time=parse_time_string(str(data["start_time"])),
            end_time=parse_time_string(str(data["end_time"])),
        )


@dataclass(frozen=True)
class ResourceTimeOffEntry:
    """A period during which a resource cannot be booked."""
    id: str
    resource_id: str
    starts_at: datetime
    ends_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "resource_id": self.resource_id,
            "starts_at": _iso(self.starts_at),
            "ends_at": _iso(self.ends_at),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResourceTimeOffEntry":
        return cls(
            id=str(data["id"]),
            resource_id=str(data["resource_id"]),
            starts_at=parse_datetime_to_utc(data["starts_at"]),
            ends_at=parse_datetime_to_utc(data["ends_at"]),
            reason=data.get("reason"),
        )
