"""
Test utilities for shop planner tests.

Database factories for the planner tables, datetime helpers for the test day
(Monday 2026-06-15, Europe/Vilnius, UTC+3) and an in-memory PlannerBackend
used by the store, board and editor tests.
"""

import asyncio
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from core.exceptions import PlannerBackendError
from models import (
    Appointment,
    Bay,
    Customer,
    Resource,
    ResourceAvailability,
    ResourceTimeOff,
    Technician,
    Vehicle,
)
from models.resource import RESOURCE_TYPE_BAY, RESOURCE_TYPE_TECHNICIAN
from shared_types.planner import (
    AppointmentFields,
    CanScheduleInput,
    ConflictReport,
    PlannerAppointment,
    PlannerBay,
    PlannerStatus,
    PlannerTechnician,
    ResourceAvailabilityEntry,
    ResourceTimeOffEntry,
)
from utils.datetime_utils import to_utc_instant

TEST_DAY = (2026, 6, 15)  # A Monday


def utc(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """UTC instant on the test month."""
    return datetime(2026, 6, day, hour, minute, tzinfo=timezone.utc)


def local(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """UTC instant of an organization-local wall-clock time on the test month."""
    return to_utc_instant(datetime(2026, 6, day, hour, minute))


def new_id() -> str:
    return str(uuid.uuid4())


# Database factories

def create_technician(
    db: Session,
    org_id: str,
    first_name: Optional[str] = "Jonas",
    last_name: Optional[str] = "Petraitis",
    skills: Optional[List[str]] = None,
    color: Optional[str] = None,
    with_resource: bool = True,
    created_at: Optional[datetime] = None,
) -> Technician:
    """Create a technician, by default with its linked scheduling resource."""
    technician = Technician(
        org_id=org_id,
        first_name=first_name,
        last_name=last_name,
        skills=skills or [],
        created_at=created_at,
    )
    db.add(technician)
    db.flush()
    if with_resource:
        db.add(Resource(
            org_id=org_id,
            resource_type=RESOURCE_TYPE_TECHNICIAN,
            name=technician.full_name or "Technician",
            technician_id=technician.id,
            color=color,
        ))
    db.commit()
    return technician


def create_bay(db: Session, org_id: str, name: str = "Bay 1", with_resource: bool = True) -> Bay:
    """Create a bay, by default with its linked scheduling resource."""
    bay = Bay(org_id=org_id, name=name)
    db.add(bay)
    db.flush()
    if with_resource:
        db.add(Resource(
            org_id=org_id,
            resource_type=RESOURCE_TYPE_BAY,
            name=name,
            bay_id=bay.id,
        ))
    db.commit()
    return bay


def resource_of(db: Session, technician_id: Optional[str] = None, bay_id: Optional[str] = None) -> Resource:
    query = db.query(Resource)
    if technician_id:
        query = query.filter(Resource.technician_id == technician_id)
    if bay_id:
        query = query.filter(Resource.bay_id == bay_id)
    resource = query.first()
    assert resource is not None
    return resource


def create_customer(db: Session, org_id: str, first_name: str = "Ona", last_name: str = "Kazlauskienė") -> Customer:
    customer = Customer(org_id=org_id, first_name=first_name, last_name=last_name)
    db.add(customer)
    db.commit()
    return customer


def create_vehicle(
    db: Session,
    org_id: str,
    customer_id: Optional[str] = None,
    make: str = "Volvo",
    model: str = "V70",
    license_plate: str = "ABC 123",
) -> Vehicle:
    vehicle = Vehicle(
        org_id=org_id,
        customer_id=customer_id,
        make=make,
        model=model,
        license_plate=license_plate,
    )
    db.add(vehicle)
    db.commit()
    return vehicle


def create_appointment(
    db: Session,
    org_id: str,
    starts_at: datetime,
    ends_at: datetime,
    title: str = "Oil change",
    technician_id: Optional[str] = None,
    bay_id: Optional[str] = None,
    status: str = PlannerStatus.SCHEDULED.value,
    customer_id: Optional[str] = None,
    vehicle_id: Optional[str] = None,
    notes: Optional[str] = None,
) -> Appointment:
    appointment = Appointment(
        org_id=org_id,
        title=title,
        status=status,
        technician_id=technician_id,
        bay_id=bay_id,
        customer_id=customer_id,
        vehicle_id=vehicle_id,
        starts_at=starts_at,
        ends_at=ends_at,
        notes=notes,
    )
    db.add(appointment)
    db.commit()
    return appointment


def add_availability(
    db: Session,
    org_id: str,
    resource_id: str,
    weekday: int,
    start_time: time,
    end_time: time,
) -> ResourceAvailability:
    row = ResourceAvailability(
        org_id=org_id,
        resource_id=resource_id,
        weekday=weekday,
        start_time=start_time,
        end_time=end_time,
    )
    db.add(row)
    db.commit()
    return row


def add_time_off(
    db: Session,
    org_id: str,
    resource_id: str,
    starts_at: datetime,
    ends_at: datetime,
    reason: Optional[str] = None,
) -> ResourceTimeOff:
    row = ResourceTimeOff(
        org_id=org_id,
        resource_id=resource_id,
        starts_at=starts_at,
        ends_at=ends_at,
        reason=reason,
    )
    db.add(row)
    db.commit()
    return row


# Planner records

def make_appointment(
    appointment_id: str = "apt-1",
    start: Tuple[int, int] = (9, 0),
    minutes: int = 60,
    technician_id: Optional[str] = None,
    bay_id: Optional[str] = None,
    status: PlannerStatus = PlannerStatus.SCHEDULED,
    title: Optional[str] = None,
    day: int = 15,
) -> PlannerAppointment:
    """PlannerAppointment starting at an organization-local (hour, minute) of the test day."""
    starts_at = local(start[0], start[1], day=day)
    return PlannerAppointment(
        id=appointment_id,
        title=title or f"Job {appointment_id}",
        technician_id=technician_id,
        bay_id=bay_id,
        status=status,
        starts_at=starts_at,
        ends_at=starts_at + timedelta(minutes=minutes),
    )


def make_technician(technician_id: str, name: str, color: str = "#7c3aed") -> PlannerTechnician:
    return PlannerTechnician(id=technician_id, name=name, color=color, resource_id=technician_id)


def _overlaps(first: PlannerAppointment, request: CanScheduleInput) -> bool:
    if first.id == request.appointment_id:
        return False
    if not (first.starts_at < request.ends_at and request.starts_at < first.ends_at):
        return False
    same_technician = request.technician_id is not None and first.technician_id == request.technician_id
    same_bay = request.bay_id is not None and first.bay_id == request.bay_id
    return same_technician or same_bay


class FakePlannerBackend:
    """
    In-memory PlannerBackend.

    - gates: method name -> asyncio.Event; the call waits until the event is set
    - failures: method name -> exception raised by the next call of that method
    - can_schedule_result: fixed answer of can_schedule; None checks overlaps
    - calls: (method name, args) of every call, in order
    """

    def __init__(
        self,
        appointments: Optional[List[PlannerAppointment]] = None,
        technicians: Optional[List[PlannerTechnician]] = None,
        bays: Optional[List[PlannerBay]] = None,
    ):
        self.appointments: Dict[str, PlannerAppointment] = {
            appointment.id: appointment for appointment in (appointments or [])
        }
        self.technicians = list(technicians or [])
        self.bays = list(bays or [])
        self.availability: Dict[str, ResourceAvailabilityEntry] = {}
        self.time_off: Dict[str, ResourceTimeOffEntry] = {}
        self.conflicts: List[ConflictReport] = []
        self.can_schedule_result: Optional[bool] = None
        self.gates: Dict[str, asyncio.Event] = {}
        self.failures: Dict[str, BaseException] = {}
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def gate(self, method: str) -> asyncio.Event:
        """Hold calls of a method until the returned event is set."""
        event = asyncio.Event()
        self.gates[method] = event
        return event

    def fail(self, method: str, error: Optional[BaseException] = None) -> None:
        self.failures[method] = error or PlannerBackendError(500, "boom")

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    async def _enter(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        gate = self.gates.get(method)
        if gate is not None:
            await gate.wait()
        error = self.failures.pop(method, None)
        if error is not None:
            raise error

    def _get(self, appointment_id: str) -> PlannerAppointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise PlannerBackendError(404, "Appointment not found")
        return appointment

    async def fetch_appointments(
        self,
        org_id: str,
        range_start: datetime,
        range_end: datetime,
        bay_id: Optional[str] = None,
    ) -> List[PlannerAppointment]:
        await self._enter("fetch_appointments", org_id, range_start, range_end, bay_id)
        return [
            appointment for appointment in self.appointments.values()
            if range_start <= appointment.starts_at < range_end
        ]

    async def insert_appointment(self, org_id: str, fields: AppointmentFields) -> PlannerAppointment:
        await self._enter("insert_appointment", org_id, fields)
        appointment = PlannerAppointment(
            id=new_id(),
            title=fields.title,
            technician_id=fields.technician_id,
            bay_id=fields.bay_id,
            status=fields.status,
            starts_at=fields.starts_at,
            ends_at=fields.ends_at,
            notes=fields.notes,
            customer_id=fields.customer_id,
            customer_name=fields.customer_name,
            vehicle_id=fields.vehicle_id,
            vehicle_label=fields.vehicle_label,
        )
        self.appointments[appointment.id] = appointment
        return appointment

    async def update_appointment(
        self, org_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> PlannerAppointment:
        await self._enter("update_appointment", org_id, appointment_id, dict(changes))
        existing = self._get(appointment_id)
        values = existing.to_dict()
        values.update({
            key: value.value if isinstance(value, PlannerStatus) else value
            for key, value in changes.items()
        })
        updated = PlannerAppointment.from_dict(values)
        self.appointments[appointment_id] = updated
        return updated

    async def delete_appointment(self, org_id: str, appointment_id: str) -> None:
        await self._enter("delete_appointment", org_id, appointment_id)
        self._get(appointment_id)
        del self.appointments[appointment_id]

    async def can_schedule(self, org_id: str, request: CanScheduleInput) -> bool:
        await self._enter("can_schedule", org_id, request)
        if self.can_schedule_result is not None:
            return self.can_schedule_result
        return not any(_overlaps(appointment, request) for appointment in self.appointments.values())

    async def check_appointment_conflicts(self, org_id: str, appointment_id: str) -> List[ConflictReport]:
        await self._enter("check_appointment_conflicts", org_id, appointment_id)
        return list(self.conflicts)

    async def fetch_technicians(self, org_id: str) -> List[PlannerTechnician]:
        await self._enter("fetch_technicians", org_id)
        return list(self.technicians)

    async def fetch_bays(self, org_id: str) -> List[PlannerBay]:
        await self._enter("fetch_bays", org_id)
        return list(self.bays)

    async def list_resource_availability(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceAvailabilityEntry]:
        await self._enter("list_resource_availability", org_id, resource_id)
        return [
            entry for entry in self.availability.values()
            if resource_id is None or entry.resource_id == resource_id
        ]

    async def create_resource_availability(
        self, org_id: str, resource_id: str, weekday: int, start_time: time, end_time: time
    ) -> ResourceAvailabilityEntry:
        await self._enter("create_resource_availability", org_id, resource_id, weekday, start_time, end_time)
        entry = ResourceAvailabilityEntry(
            id=new_id(),
            resource_id=resource_id,
            weekday=weekday,
            start_time=start_time,
            end_time=end_time,
        )
        self.availability[entry.id] = entry
        return entry

    async def delete_resource_availability(self, org_id: str, availability_id: str) -> None:
        await self._enter("delete_resource_availability", org_id, availability_id)
        if self.availability.pop(availability_id, None) is None:
            raise PlannerBackendError(404, "Availability window not found")

    async def list_resource_time_off(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceTimeOffEntry]:
        await self._enter("list_resource_time_off", org_id, resource_id)
        return [
            entry for entry in self.time_off.values()
            if resource_id is None or entry.resource_id == resource_id
        ]

    async def create_resource_time_off(
        self,
        org_id: str,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ResourceTimeOffEntry:
        await self._enter("create_resource_time_off", org_id, resource_id, starts_at, ends_at, reason)
        entry = ResourceTimeOffEntry(
            id=new_id(),
            resource_id=resource_id,
            starts_at=starts_at,
            ends_at=ends_at,
            reason=reason,
        )
        self.time_off[entry.id] = entry
        return entry

    async def delete_resource_time_off(self, org_id: str, time_off_id: str) -> None:
        await self._enter("delete_resource_time_off", org_id, time_off_id)
        if self.time_off.pop(time_off_id, None) is None:
            raise PlannerBackendError(404, "Time off not found")
