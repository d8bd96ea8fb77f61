"""
Planner backends: the persistence collaborator seen by the planner store.

Two implementations share the PlannerBackend protocol:

- LocalPlannerBackend runs the SQLAlchemy services in-process. Blocking
  database work runs in a worker thread with a fresh session per call so the
  event loop is never blocked.
- HttpPlannerBackend talks to the planner HTTP API with httpx.

Both raise PlannerBackendError for rejected requests so the store treats
them the same way.
"""

import asyncio
import logging
from datetime import datetime, time
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session, sessionmaker

from core.config import PLANNER_API_URL, PLANNER_HTTP_TIMEOUT_SECONDS
from core.constants import ORGANIZATION_HEADER
from core.database import get_db_context
from core.exceptions import PlannerBackendError
from services.appointment_service import AppointmentService
from services.availability_service import AvailabilityService
from services.resource_service import ResourceService
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

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Appointment attributes a partial update may change
UPDATABLE_FIELDS = (
    "title",
    "technician_id",
    "bay_id",
    "status",
    "starts_at",
    "ends_at",
    "notes",
    "customer_id",
    "vehicle_id",
    "priority",
)


class PlannerBackend(Protocol):
    """Async contract between the planner store and persistence."""

    async def fetch_appointments(
        self,
        org_id: str,
        range_start: datetime,
        range_end: datetime,
        bay_id: Optional[str] = None,
    ) -> List[PlannerAppointment]: ...

    async def insert_appointment(self, org_id: str, fields: AppointmentFields) -> PlannerAppointment: ...

    async def update_appointment(
        self, org_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> PlannerAppointment: ...

    async def delete_appointment(self, org_id: str, appointment_id: str) -> None: ...

    async def can_schedule(self, org_id: str, request: CanScheduleInput) -> bool: ...

    async def check_appointment_conflicts(self, org_id: str, appointment_id: str) -> List[ConflictReport]: ...

    async def fetch_technicians(self, org_id: str) -> List[PlannerTechnician]: ...

    async def fetch_bays(self, org_id: str) -> List[PlannerBay]: ...

    async def list_resource_availability(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceAvailabilityEntry]: ...

    async def create_resource_availability(
        self, org_id: str, resource_id: str, weekday: int, start_time: time, end_time: time
    ) -> ResourceAvailabilityEntry: ...

    async def delete_resource_availability(self, org_id: str, availability_id: str) -> None: ...

    async def list_resource_time_off(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceTimeOffEntry]: ...

    async def create_resource_time_off(
        self,
        org_id: str,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ResourceTimeOffEntry: ...

    async def delete_resource_time_off(self, org_id: str, time_off_id: str) -> None: ...


def _plain_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Reject unknown keys and unwrap enums."""
    plain: Dict[str, Any] = {}
    for key, value in changes.items():
        if key not in UPDATABLE_FIELDS:
            raise ValueError(f"Unsupported appointment field: {key}")
        plain[key] = value.value if isinstance(value, PlannerStatus) else value
    return plain


class LocalPlannerBackend:
    """
    In-process backend over the SQLAlchemy services.

    Args:
        session_factory: Optional sessionmaker; defaults to the application SessionLocal
    """

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None):
        self._session_factory = session_factory

    def _run_sync(self, operation: Callable[[Session], T]) -> T:
        with get_db_context(self._session_factory) as db:
            return operation(db)

    async def _run(self, operation: Callable[[Session], T]) -> T:
        try:
            return await asyncio.to_thread(self._run_sync, operation)
        except HTTPException as e:
            raise PlannerBackendError(e.status_code, e.detail) from e

    async def fetch_appointments(
        self,
        org_id: str,
        range_start: datetime,
        range_end: datetime,
        bay_id: Optional[str] = None,
    ) -> List[PlannerAppointment]:
        return await self._run(
            lambda db: AppointmentService.list_appointments(db, org_id, range_start, range_end, bay_id)
        )

    async def insert_appointment(self, org_id: str, fields: AppointmentFields) -> PlannerAppointment:
        return await self._run(lambda db: AppointmentService.create_appointment(
            db,
            org_id,
            title=fields.title,
            starts_at=fields.starts_at,
            ends_at=fields.ends_at,
            technician_id=fields.technician_id,
            bay_id=fields.bay_id,
            status=fields.status.value,
            notes=fields.notes,
            customer_id=fields.customer_id,
            vehicle_id=fields.vehicle_id,
        ))

    async def update_appointment(
        self, org_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> PlannerAppointment:
        plain = _plain_changes(changes)
        return await self._run(
            lambda db: AppointmentService.update_appointment(db, org_id, appointment_id, **plain)
        )

    async def delete_appointment(self, org_id: str, appointment_id: str) -> None:
        await self._run(lambda db: AppointmentService.delete_appointment(db, org_id, appointment_id))

    async def can_schedule(self, org_id: str, request: CanScheduleInput) -> bool:
        return await self._run(lambda db: AvailabilityService.can_schedule(db, org_id, request))

    async def check_appointment_conflicts(self, org_id: str, appointment_id: str) -> List[ConflictReport]:
        return await self._run(
            lambda db: AvailabilityService.check_appointment_conflicts(db, org_id, appointment_id)
        )

    async def fetch_technicians(self, org_id: str) -> List[PlannerTechnician]:
        return await self._run(lambda db: ResourceService.list_technicians(db, org_id))

    async def fetch_bays(self, org_id: str) -> List[PlannerBay]:
        return await self._run(lambda db: ResourceService.list_bays(db, org_id))

    async def list_resource_availability(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceAvailabilityEntry]:
        return await self._run(lambda db: ResourceService.list_availability(db, org_id, resource_id))

    async def create_resource_availability(
        self, org_id: str, resource_id: str, weekday: int, start_time: time, end_time: time
    ) -> ResourceAvailabilityEntry:
        return await self._run(lambda db: ResourceService.create_availability(
            db, org_id, resource_id, weekday, start_time, end_time
        ))

    async def delete_resource_availability(self, org_id: str, availability_id: str) -> None:
        await self._run(lambda db: ResourceService.delete_availability(db, org_id, availability_id))

    async def list_resource_time_off(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceTimeOffEntry]:
        return await self._run(lambda db: ResourceService.list_time_off(db, org_id, resource_id))

    async def create_resource_time_off(
        self,
        org_id: str,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ResourceTimeOffEntry:
        return await self._run(lambda db: ResourceService.create_time_off(
            db, org_id, resource_id, starts_at, ends_at, reason
        ))

    async def delete_resource_time_off(self, org_id: str, time_off_id: str) -> None:
        await self._run(lambda db: ResourceService.delete_time_off(db, org_id, time_off_id))


def _to_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, PlannerStatus):
        return value.value
    return value


class HttpPlannerBackend:
    """
    Backend that calls the planner HTTP API.

    Args:
        base_url: API root, e.g. "http://localhost:8000/api/planner"
        client: Optional preconfigured httpx.AsyncClient (tests pass one bound
            to the ASGI app); when omitted one is created and owned by this backend
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        base_url: str = PLANNER_API_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = PLANNER_HTTP_TIMEOUT_SECONDS,
    ):
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpPlannerBackend":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        org_id: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Raises:
            PlannerBackendError: If the API answers with an error status
            httpx.TransportError: If the API cannot be reached
        """
        response = await self._client.request(
            method,
            f"{self._base_url}{path}",
            params={key: value for key, value in (params or {}).items() if value is not None} or None,
            json=json,
            headers={ORGANIZATION_HEADER: org_id},
        )
        if response.is_error:
            try:
                detail = response.json().get("detail")
            except ValueError:
                detail = response.text
            logger.debug(f"{method} {path} failed with {response.status_code}: {detail}")
            raise PlannerBackendError(response.status_code, detail)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def fetch_appointments(
        self,
        org_id: str,
        range_start: datetime,
        range_end: datetime,
        bay_id: Optional[str] = None,
    ) -> List[PlannerAppointment]:
        data = await self._request("GET", "/appointments", org_id, params={
            "start": range_start.isoformat(),
            "end": range_end.isoformat(),
            "bay_id": bay_id,
        })
        return [PlannerAppointment.from_dict(item) for item in data["appointments"]]

    async def insert_appointment(self, org_id: str, fields: AppointmentFields) -> PlannerAppointment:
        data = await self._request("POST", "/appointments", org_id, json=fields.to_dict())
        return PlannerAppointment.from_dict(data)

    async def update_appointment(
        self, org_id: str, appointment_id: str, changes: Dict[str, Any]
    ) -> PlannerAppointment:
        body = {key: _to_json(value) for key, value in _plain_changes(changes).items()}
        data = await self._request("PATCH", f"/appointments/{appointment_id}", org_id, json=body)
        return PlannerAppointment.from_dict(data)

    async def delete_appointment(self, org_id: str, appointment_id: str) -> None:
        await self._request("DELETE", f"/appointments/{appointment_id}", org_id)

    async def can_schedule(self, org_id: str, request: CanScheduleInput) -> bool:
        data = await self._request("POST", "/can-schedule", org_id, json=request.to_dict())
        return bool(data["can_schedule"])

    async def check_appointment_conflicts(self, org_id: str, appointment_id: str) -> List[ConflictReport]:
        data = await self._request("GET", f"/appointments/{appointment_id}/conflicts", org_id)
        return [ConflictReport.from_dict(item) for item in data["conflicts"]]

    async def fetch_technicians(self, org_id: str) -> List[PlannerTechnician]:
        data = await self._request("GET", "/technicians", org_id)
        return [PlannerTechnician.from_dict(item) for item in data["technicians"]]

    async def fetch_bays(self, org_id: str) -> List[PlannerBay]:
        data = await self._request("GET", "/bays", org_id)
        return [PlannerBay.from_dict(item) for item in data["bays"]]

    async def list_resource_availability(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceAvailabilityEntry]:
        data = await self._request("GET", "/resource-availability", org_id, params={"resource_id": resource_id})
        return [ResourceAvailabilityEntry.from_dict(item) for item in data["availability"]]

    async def create_resource_availability(
        self, org_id: str, resource_id: str, weekday: int, start_time: time, end_time: time
    ) -> ResourceAvailabilityEntry:
        data = await self._request("POST", "/resource-availability", org_id, json={
            "resource_id": resource_id,
            "weekday": weekday,
            "start_time": _to_json(start_time),
            "end_time": _to_json(end_time),
        })
        return ResourceAvailabilityEntry.from_dict(data)

    async def delete_resource_availability(self, org_id: str, availability_id: str) -> None:
        await self._request("DELETE", f"/resource-availability/{availability_id}", org_id)

    async def list_resource_time_off(
        self, org_id: str, resource_id: Optional[str] = None
    ) -> List[ResourceTimeOffEntry]:
        data = await self._request("GET", "/resource-time-off", org_id, params={"resource_id": resource_id})
        return [ResourceTimeOffEntry.from_dict(item) for item in data["time_off"]]

    async def create_resource_time_off(
        self,
        org_id: str,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ResourceTimeOffEntry:
        data = await self._request("POST", "/resource-time-off", org_id, json={
            "resource_id": resource_id,
            "starts_at": _to_json(starts_at),
            "ends_at": _to_json(ends_at),
            "reason": reason,
        })
        return ResourceTimeOffEntry.from_dict(data)

    async def delete_resource_time_off(self, org_id: str, time_off_id: str) -> None:
        await self._request("DELETE", f"/resource-time-off/{time_off_id}", org_id)
