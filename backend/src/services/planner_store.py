"""
Planner data-access and mutation layer.

PlannerAppointmentStore bridges the appointment reducer and a PlannerBackend
with an optimistic-update discipline:

1. capture a snapshot of the view's collection
2. apply the reducer change synchronously, before the request is issued
3. on success reconcile the server record into the *current* collection
4. on failure roll back using the snapshot captured in step 1
5. on settlement mark the view stale

Collections live in an AppointmentCache shared by every store of the
application. The cache is an arena keyed by view (organization, local day,
bay filter); appointment ids index into each collection.

A second mutation for an appointment whose previous mutation is still in
flight is rejected rather than queued.
"""

import asyncio
import logging
import time as time_module
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from core.constants import DIRECTORY_CACHE_SECONDS, TEMPORARY_ID_PREFIX
from core.exceptions import AppointmentBusyError, FriendlyError, PlannerMutationError
from services.planner_backend import PlannerBackend
from services.planner_reducer import (
    apply_create_success,
    apply_optimistic_create,
    apply_optimistic_update,
    apply_removal,
    apply_status_update,
    apply_update_success,
    restore_appointment,
    revert_appointments,
    sort_appointments,
)
from shared_types.planner import (
    AppointmentFields,
    AppointmentUpdate,
    CanScheduleInput,
    ConflictReport,
    MovePayload,
    PlannerAppointment,
    PlannerBay,
    PlannerStatus,
    PlannerTechnician,
    ResizePayload,
    ResourceAvailabilityEntry,
    ResourceTimeOffEntry,
)
from utils.datetime_utils import get_org_date_key, get_org_date_range
from utils.error_messages import map_error_to_friendly_message

logger = logging.getLogger(__name__)

T = TypeVar("T")

Collection = List[PlannerAppointment]
CacheListener = Callable[["ViewKey", Collection], None]


@dataclass(frozen=True)
class ViewKey:
    """Identity of one cached board view."""
    org_id: str
    date_key: str
    bay_filter: Optional[str] = None


@dataclass
class _CacheEntry:
    appointments: Collection
    version: int = 0
    stale: bool = False


@dataclass
class _DirectoryEntry:
    items: List[Any]
    fetched_at: float


@dataclass
class AppointmentCache:
    """
    Shared store of appointment collections, one per view.

    Collections are only ever replaced wholesale with the output of a reducer
    function; readers always receive copies.
    """
    clock: Callable[[], float] = time_module.monotonic
    directory_ttl_seconds: float = DIRECTORY_CACHE_SECONDS
    _entries: Dict[ViewKey, _CacheEntry] = field(default_factory=dict)
    _directories: Dict[Tuple[str, str], _DirectoryEntry] = field(default_factory=dict)
    _in_flight: Dict[Tuple[str, str], ViewKey] = field(default_factory=dict)
    _listeners: List[CacheListener] = field(default_factory=list)

    def get(self, key: ViewKey) -> Optional[Collection]:
        entry = self._entries.get(key)
        return revert_appointments(entry.appointments) if entry else None

    def is_fresh(self, key: ViewKey) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.stale

    def version(self, key: ViewKey) -> int:
        entry = self._entries.get(key)
        return entry.version if entry else 0

    def set(self, key: ViewKey, appointments: Collection) -> None:
        """Replace a view's collection and mark it fresh."""
        previous = self._entries.get(key)
        self._entries[key] = _CacheEntry(
            appointments=revert_appointments(appointments),
            version=(previous.version if previous else 0) + 1,
        )
        self._notify(key)

    def update(self, key: ViewKey, transform: Callable[[Collection], Collection]) -> Collection:
        """
        Apply a reducer function to a view's current collection.

        Views that were never loaded start from an empty collection. The
        stale flag is left as is.
        """
        entry = self._entries.get(key)
        current = entry.appointments if entry else []
        result = transform(current)
        self._entries[key] = _CacheEntry(
            appointments=result,
            version=(entry.version if entry else 0) + 1,
            stale=entry.stale if entry else True,
        )
        self._notify(key)
        return revert_appointments(result)

    def invalidate(self, key: ViewKey) -> None:
        entry = self._entries.get(key)
        if entry:
            entry.stale = True

    def invalidate_org(self, org_id: str) -> None:
        """Mark every view of an organization stale."""
        for key, entry in self._entries.items():
            if key.org_id == org_id:
                entry.stale = True

    def subscribe(self, listener: CacheListener) -> Callable[[], None]:
        """
        Register a change listener. Returns a function that unsubscribes it.

        Listeners receive the view key and a copy of the new collection.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: ViewKey) -> None:
        entry = self._entries[key]
        for listener in list(self._listeners):
            try:
                listener(key, revert_appointments(entry.appointments))
            except Exception:
                logger.exception(f"Planner cache listener failed for view {key}")

    def claim(self, key: ViewKey, appointment_id: str) -> None:
        """
        Mark an appointment as having a mutation in flight.

        Raises:
            AppointmentBusyError: If a mutation for the appointment is already in flight
        """
        slot = (key.org_id, appointment_id)
        if slot in self._in_flight:
            raise AppointmentBusyError(appointment_id)
        self._in_flight[slot] = key

    def release(self, key: ViewKey, appointment_id: str) -> None:
        self._in_flight.pop((key.org_id, appointment_id), None)

    def is_in_flight(self, org_id: str, appointment_id: str) -> bool:
        return (org_id, appointment_id) in self._in_flight

    def get_directory(self, org_id: str, name: str) -> Optional[List[Any]]:
        entry = self._directories.get((org_id, name))
        if entry is None or self.clock() - entry.fetched_at >= self.directory_ttl_seconds:
            return None
        return list(entry.items)

    def set_directory(self, org_id: str, name: str, items: List[Any]) -> None:
        self._directories[(org_id, name)] = _DirectoryEntry(items=list(items), fetched_at=self.clock())


class PlannerAppointmentStore:
    """
    Appointment collection of one board view plus the mutations on it.

    Args:
        backend: Persistence collaborator
        org_id: Organization of the view
        day: Organization-local calendar day shown by the view
        bay_filter: Optional bay id; only appointments in this bay are shown
        cache: Shared cache; a private one is created when omitted

    Mutation methods raise PlannerMutationError (carrying a FriendlyError and
    chaining the original exception) after rolling back their optimistic
    change.
    """

    def __init__(
        self,
        backend: PlannerBackend,
        org_id: str,
        day: date | datetime,
        bay_filter: Optional[str] = None,
        cache: Optional[AppointmentCache] = None,
    ):
        self.backend = backend
        self.org_id = org_id
        self.day = day
        self.bay_filter = bay_filter or None
        self.cache = cache if cache is not None else AppointmentCache()
        self.key = ViewKey(org_id=org_id, date_key=get_org_date_key(day), bay_filter=self.bay_filter)

    @property
    def appointments(self) -> Collection:
        """Current collection of the view (empty until loaded)."""
        return self.cache.get(self.key) or []

    def find(self, appointment_id: str) -> Optional[PlannerAppointment]:
        for appointment in self.appointments:
            if appointment.id == appointment_id:
                return appointment
        return None

    def is_in_flight(self, appointment_id: str) -> bool:
        return self.cache.is_in_flight(self.org_id, appointment_id)

    def subscribe(self, listener: Callable[[Collection], None]) -> Callable[[], None]:
        """Listen for changes of this view only."""
        def on_change(key: ViewKey, appointments: Collection) -> None:
            if key == self.key:
                listener(appointments)

        return self.cache.subscribe(on_change)

    async def list_appointments(self, force: bool = False) -> Collection:
        """
        Load the view's appointments.

        A fresh cached collection is returned without I/O unless force is set.
        Otherwise the UTC range of the local day is fetched and the bay filter
        applied client-side.

        Raises:
            PlannerBackendError, httpx.TransportError: If the fetch fails
        """
        if not force and self.cache.is_fresh(self.key):
            return self.appointments

        range_start, range_end = get_org_date_range(self.day)
        fetched = await self.backend.fetch_appointments(self.org_id, range_start, range_end, self.bay_filter)
        if self.bay_filter:
            fetched = [item for item in fetched if item.bay_id == self.bay_filter]
        appointments = sort_appointments(fetched)
        self.cache.set(self.key, appointments)
        logger.info(f"Loaded {len(appointments)} appointments for view {self.key}")
        return revert_appointments(appointments)

    def _rollback(self, snapshot: Collection, appointment_id: str, applied_version: int) -> None:
        """
        Undo an optimistic change with the snapshot taken when it was issued.

        When nothing else touched the view since the change was applied the
        whole snapshot is restored; otherwise only the mutated appointment is,
        so other edits are kept.
        """
        if self.cache.version(self.key) == applied_version:
            self.cache.set(self.key, revert_appointments(snapshot))
        else:
            self.cache.update(self.key, lambda current: restore_appointment(current, snapshot, appointment_id))

    async def _mutate(
        self,
        appointment_id: str,
        context: str,
        optimistic: Callable[[Collection], Collection],
        call: Callable[[], Awaitable[T]],
        reconcile: Callable[[Collection, T], Collection],
    ) -> T:
        try:
            self.cache.claim(self.key, appointment_id)
        except AppointmentBusyError as e:
            logger.warning(f"Rejected {context} for {appointment_id}: previous change still in flight")
            raise PlannerMutationError(map_error_to_friendly_message(e, context), appointment_id) from e

        try:
            snapshot = self.appointments
            self.cache.update(self.key, optimistic)
            applied_version = self.cache.version(self.key)
            try:
                result = await call()
            except asyncio.CancelledError:
                self._rollback(snapshot, appointment_id, applied_version)
                raise
            except Exception as e:
                self._rollback(snapshot, appointment_id, applied_version)
                friendly = map_error_to_friendly_message(e, context)
                logger.warning(f"Rolled back {context} for {appointment_id}: {type(e).__name__}: {e}")
                raise PlannerMutationError(friendly, appointment_id) from e

            self.cache.update(self.key, lambda current: reconcile(current, result))
            logger.info(f"Committed {context} for {appointment_id}")
            return result
        finally:
            self.cache.release(self.key, appointment_id)
            self.cache.invalidate(self.key)

    def _optimistic_change(self, appointment_id: str, **changes: Any) -> Callable[[Collection], Collection]:
        def transform(current: Collection) -> Collection:
            existing = next((item for item in current if item.id == appointment_id), None)
            if existing is None:
                return revert_appointments(current)
            return apply_optimistic_update(current, replace(existing, **changes), self.bay_filter)

        return transform

    def _confirm_update(self, current: Collection, confirmed: PlannerAppointment) -> Collection:
        return apply_update_success(current, confirmed, self.bay_filter)

    async def move_appointment(self, payload: MovePayload) -> PlannerAppointment:
        """Persist a new technician/bay assignment and time range."""
        changes = {
            "technician_id": payload.technician_id,
            "bay_id": payload.bay_id,
            "starts_at": payload.starts_at,
            "ends_at": payload.ends_at,
        }
        return await self._mutate(
            payload.id,
            "moving the appointment",
            self._optimistic_change(payload.id, **changes),
            lambda: self.backend.update_appointment(self.org_id, payload.id, changes),
            self._confirm_update,
        )

    async def resize_appointment(self, payload: ResizePayload) -> PlannerAppointment:
        """Persist a new time range (assignment unchanged)."""
        changes = {"starts_at": payload.starts_at, "ends_at": payload.ends_at}
        return await self._mutate(
            payload.id,
            "resizing the appointment",
            self._optimistic_change(payload.id, **changes),
            lambda: self.backend.update_appointment(self.org_id, payload.id, changes),
            self._confirm_update,
        )

    async def create_appointment(self, fields: AppointmentFields) -> PlannerAppointment:
        """
        Create an appointment.

        A temporary record (id prefixed "temp-") is shown right away and
        replaced by the server record on success, or removed on failure.
        """
        temporary = PlannerAppointment(
            id=f"{TEMPORARY_ID_PREFIX}{uuid.uuid4()}",
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
        return await self._mutate(
            temporary.id,
            "creating the appointment",
            lambda current: apply_optimistic_create(current, temporary, self.bay_filter),
            lambda: self.backend.insert_appointment(self.org_id, fields),
            lambda current, confirmed: apply_create_success(current, temporary.id, confirmed, self.bay_filter),
        )

    async def update_appointment(self, update: AppointmentUpdate) -> PlannerAppointment:
        """Persist a full field edit from the edit drawer."""
        fields = update.fields
        changes = {
            "title": fields.title,
            "technician_id": fields.technician_id,
            "bay_id": fields.bay_id,
            "status": fields.status,
            "starts_at": fields.starts_at,
            "ends_at": fields.ends_at,
            "notes": fields.notes,
            "customer_id": fields.customer_id,
            "vehicle_id": fields.vehicle_id,
        }
        return await self._mutate(
            update.id,
            "updating the appointment",
            self._optimistic_change(
                update.id,
                customer_name=fields.customer_name,
                vehicle_label=fields.vehicle_label,
                **changes,
            ),
            lambda: self.backend.update_appointment(self.org_id, update.id, changes),
            self._confirm_update,
        )

    async def update_status(self, appointment_id: str, status: PlannerStatus) -> PlannerAppointment:
        return await self._mutate(
            appointment_id,
            "updating the status",
            lambda current: apply_status_update(current, appointment_id, status),
            lambda: self.backend.update_appointment(self.org_id, appointment_id, {"status": status}),
            self._confirm_update,
        )

    async def update_notes(self, appointment_id: str, notes: Optional[str]) -> PlannerAppointment:
        cleaned = notes if notes and notes.strip() else None
        return await self._mutate(
            appointment_id,
            "saving the notes",
            self._optimistic_change(appointment_id, notes=cleaned),
            lambda: self.backend.update_appointment(self.org_id, appointment_id, {"notes": cleaned}),
            self._confirm_update,
        )

    async def delete_appointment(self, appointment_id: str) -> None:
        """Remove an appointment; it reappears if the delete fails."""
        await self._mutate(
            appointment_id,
            "deleting the appointment",
            lambda current: apply_removal(current, appointment_id),
            lambda: self.backend.delete_appointment(self.org_id, appointment_id),
            lambda current, _: apply_removal(current, appointment_id),
        )

    async def can_schedule(self, request: CanScheduleInput) -> bool:
        """
        Ask the authoritative availability check.

        False is a normal answer (the slot is taken); a failed check raises.
        """
        return await self.backend.can_schedule(self.org_id, request)

    async def check_conflicts(self, appointment_id: str) -> List[ConflictReport]:
        return await self.backend.check_appointment_conflicts(self.org_id, appointment_id)

    async def list_technicians(self, force: bool = False) -> List[PlannerTechnician]:
        """Technician directory, cached for a few minutes."""
        cached = None if force else self.cache.get_directory(self.org_id, "technicians")
        if cached is not None:
            return cached
        technicians = await self.backend.fetch_technicians(self.org_id)
        self.cache.set_directory(self.org_id, "technicians", technicians)
        return list(technicians)

    async def list_bays(self, force: bool = False) -> List[PlannerBay]:
        """Bay directory, cached for a few minutes."""
        cached = None if force else self.cache.get_directory(self.org_id, "bays")
        if cached is not None:
            return cached
        bays = await self.backend.fetch_bays(self.org_id)
        self.cache.set_directory(self.org_id, "bays", bays)
        return list(bays)

    async def _resource_write(self, context: str, call: Callable[[], Awaitable[T]]) -> T:
        try:
            return await call()
        except Exception as e:
            logger.warning(f"Failed {context}: {type(e).__name__}: {e}")
            raise PlannerMutationError(map_error_to_friendly_message(e, context)) from e

    async def list_resource_availability(self, resource_id: Optional[str] = None) -> List[ResourceAvailabilityEntry]:
        return await self.backend.list_resource_availability(self.org_id, resource_id)

    async def create_resource_availability(
        self, resource_id: str, weekday: int, start_time: time, end_time: time
    ) -> ResourceAvailabilityEntry:
        if start_time >= end_time:
            raise PlannerMutationError(FriendlyError("Invalid Data", "Availability must end after it starts."))
        entry = await self._resource_write(
            "saving the availability window",
            lambda: self.backend.create_resource_availability(self.org_id, resource_id, weekday, start_time, end_time),
        )
        self.cache.invalidate_org(self.org_id)
        return entry

    async def delete_resource_availability(self, availability_id: str) -> None:
        await self._resource_write(
            "removing the availability window",
            lambda: self.backend.delete_resource_availability(self.org_id, availability_id),
        )
        self.cache.invalidate_org(self.org_id)

    async def list_resource_time_off(self, resource_id: Optional[str] = None) -> List[ResourceTimeOffEntry]:
        return await self.backend.list_resource_time_off(self.org_id, resource_id)

    async def create_resource_time_off(
        self,
        resource_id: str,
        starts_at: datetime,
        ends_at: datetime,
        reason: Optional[str] = None,
    ) -> ResourceTimeOffEntry:
        if starts_at >= ends_at:
            raise PlannerMutationError(FriendlyError("Invalid Data", "Time off must end after it starts."))
        entry = await self._resource_write(
            "saving the time off",
            lambda: self.backend.create_resource_time_off(self.org_id, resource_id, starts_at, ends_at, reason),
        )
        self.cache.invalidate_org(self.org_id)
        return entry

    async def delete_resource_time_off(self, time_off_id: str) -> None:
        await self._resource_write(
            "removing the time off",
            lambda: self.backend.delete_resource_time_off(self.org_id, time_off_id),
        )
        self.cache.invalidate_org(self.org_id)
