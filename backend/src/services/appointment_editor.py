"""
Create/edit flow for a single appointment.

AppointmentEditor holds the form state of the appointment drawer. Form
values are organization-local strings as they appear in the inputs; they are
validated with the AppointmentForm pydantic model before anything is sent.
Submitting asks the availability check first and then writes through the
appointment store, so the board updates optimistically.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ValidationError, ValidationInfo, field_validator

from core.constants import DEFAULT_APPOINTMENT_MINUTES, MAX_NOTES_LENGTH, MAX_TITLE_LENGTH
from core.exceptions import FriendlyError, PlannerMutationError
from services.planner_board import CreateDefaults
from services.planner_store import PlannerAppointmentStore
from shared_types.planner import (
    AppointmentFields,
    AppointmentUpdate,
    CanScheduleInput,
    ConflictReport,
    PlannerAppointment,
    PlannerStatus,
)
from utils.datetime_utils import format_org_time, from_org_local_input, to_org_local_input, utc_now
from utils.error_messages import map_error_to_friendly_message

logger = logging.getLogger(__name__)

CONFLICT_FIELD_MESSAGE = "This time conflicts with another appointment."


class EditorMode(str, Enum):
    CREATE = "create"
    EDIT = "edit"


@dataclass(frozen=True)
class CustomerOption:
    id: str
    label: str


@dataclass(frozen=True)
class VehicleOption:
    id: str
    customer_id: Optional[str]
    label: str


class AppointmentForm(BaseModel):
    """Validated appointment form. Times are organization-local YYYY-MM-DDTHH:MM."""
    title: str
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    technician_id: Optional[str] = None
    bay_id: Optional[str] = None
    status: PlannerStatus = PlannerStatus.SCHEDULED
    starts_at: str
    ends_at: str
    notes: Optional[str] = None

    @field_validator('title')
    @classmethod
    def validate_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Title is required')
        if len(v) > MAX_TITLE_LENGTH:
            raise ValueError(f'Title must be {MAX_TITLE_LENGTH} characters or fewer')
        return v

    @field_validator('customer_id', 'vehicle_id', 'technician_id', 'bay_id', mode='before')
    @classmethod
    def validate_nullable_uuid(cls, v: Any) -> Optional[str]:
        """Empty selections mean "none"; anything else must be a UUID."""
        if v is None or v == "":
            return None
        try:
            return str(uuid.UUID(str(v)))
        except ValueError as e:
            raise ValueError('Invalid selection') from e

    @field_validator('starts_at')
    @classmethod
    def validate_start(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('Start time is required')
        from_org_local_input(v)
        return v.strip()

    @field_validator('ends_at')
    @classmethod
    def validate_end(cls, v: str, info: ValidationInfo) -> str:
        if not v or not v.strip():
            raise ValueError('End time is required')
        ends_at = from_org_local_input(v)
        starts_at = info.data.get('starts_at')
        if starts_at and ends_at <= from_org_local_input(starts_at):
            raise ValueError('End time must be after start time')
        return v.strip()

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        if len(v) > MAX_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_NOTES_LENGTH} characters or fewer')
        return v.strip() or None


def field_errors(error: ValidationError) -> Dict[str, str]:
    """First message per field, without pydantic's "Value error, " prefix."""
    messages: Dict[str, str] = {}
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "__root__"
        message = item["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.setdefault(field, message)
    return messages


def format_conflict(conflict: ConflictReport) -> str:
    return (
        f"{conflict.resource_name}: {format_org_time(conflict.overlap_start)} – "
        f"{format_org_time(conflict.overlap_end)} with {conflict.conflict_title}"
    )


class AppointmentEditor:
    """
    Drawer state for creating or editing one appointment.

    Args:
        store: Appointment store of the board view
        mode: EditorMode.CREATE or EditorMode.EDIT
        appointment: Appointment being edited (edit mode)
        defaults: Prefilled technician, bay and times (create mode)
        customers: Customer choices
        vehicles: Vehicle choices, filtered by the selected customer
    """

    def __init__(
        self,
        store: PlannerAppointmentStore,
        mode: EditorMode,
        appointment: Optional[PlannerAppointment] = None,
        defaults: Optional[CreateDefaults] = None,
        customers: Sequence[CustomerOption] = (),
        vehicles: Sequence[VehicleOption] = (),
    ):
        if mode == EditorMode.EDIT and appointment is None:
            raise ValueError("Edit mode requires an appointment")
        self.store = store
        self.mode = mode
        self.appointment = appointment
        self.customers = list(customers)
        self.vehicles = list(vehicles)
        self.values: Dict[str, Any] = self._initial_values(appointment, defaults)
        self.errors: Dict[str, str] = {}
        self.submit_error: Optional[FriendlyError] = None
        self.conflicts: List[ConflictReport] = []
        self.conflict_error: Optional[FriendlyError] = None
        self.is_open = True
        self.is_submitting = False

    @staticmethod
    def _initial_values(
        appointment: Optional[PlannerAppointment],
        defaults: Optional[CreateDefaults],
    ) -> Dict[str, Any]:
        if appointment is not None:
            return {
                "title": appointment.title,
                "customer_id": appointment.customer_id,
                "vehicle_id": appointment.vehicle_id,
                "technician_id": appointment.technician_id,
                "bay_id": appointment.bay_id,
                "status": appointment.status.value,
                "starts_at": to_org_local_input(appointment.starts_at),
                "ends_at": to_org_local_input(appointment.ends_at),
                "notes": appointment.notes or "",
            }
        if defaults is not None:
            starts_at, ends_at = defaults.starts_at, defaults.ends_at
        else:
            starts_at = utc_now()
            ends_at = starts_at + timedelta(minutes=DEFAULT_APPOINTMENT_MINUTES)
        return {
            "title": "",
            "customer_id": None,
            "vehicle_id": None,
            "technician_id": defaults.technician_id if defaults else None,
            "bay_id": defaults.bay_id if defaults else None,
            "status": PlannerStatus.SCHEDULED.value,
            "starts_at": to_org_local_input(starts_at),
            "ends_at": to_org_local_input(ends_at),
            "notes": "",
        }

    # Field state

    def set_value(self, name: str, value: Any) -> None:
        if name not in self.values:
            raise ValueError(f"Unknown field: {name}")
        self.values[name] = value
        self.errors.pop(name, None)
        if name == "customer_id":
            self._clear_foreign_vehicle()

    def vehicle_options(self) -> List[VehicleOption]:
        customer_id = self.values.get("customer_id")
        if not customer_id:
            return list(self.vehicles)
        return [vehicle for vehicle in self.vehicles if vehicle.customer_id == customer_id]

    def _clear_foreign_vehicle(self) -> None:
        vehicle_id = self.values.get("vehicle_id")
        if not self.values.get("customer_id") or not vehicle_id:
            return
        if not any(vehicle.id == vehicle_id for vehicle in self.vehicle_options()):
            logger.debug(f"Clearing vehicle {vehicle_id}: not owned by the selected customer")
            self.values["vehicle_id"] = None

    @staticmethod
    def status_options() -> List[Tuple[str, str]]:
        return [(status.value, status.label) for status in PlannerStatus]

    def validate(self) -> Optional[AppointmentForm]:
        """Validate the current values; field messages land in self.errors."""
        try:
            form = AppointmentForm(**self.values)
        except ValidationError as e:
            self.errors = field_errors(e)
            return None
        self.errors = {}
        return form

    def to_fields(self, form: AppointmentForm) -> AppointmentFields:
        customer = next((option for option in self.customers if option.id == form.customer_id), None)
        vehicle = next((option for option in self.vehicles if option.id == form.vehicle_id), None)
        return AppointmentFields(
            title=form.title,
            technician_id=form.technician_id,
            bay_id=form.bay_id,
            status=form.status,
            starts_at=from_org_local_input(form.starts_at),
            ends_at=from_org_local_input(form.ends_at),
            notes=form.notes,
            customer_id=form.customer_id,
            customer_name=customer.label if customer else None,
            vehicle_id=form.vehicle_id,
            vehicle_label=vehicle.label if vehicle else None,
        )

    # Conflicts

    async def load_conflicts(self) -> List[ConflictReport]:
        """Fetch the server conflict report for display (edit mode only)."""
        if self.mode != EditorMode.EDIT or self.appointment is None:
            return []
        try:
            self.conflicts = await self.store.check_conflicts(self.appointment.id)
            self.conflict_error = None
        except Exception as e:
            logger.warning(f"Could not load conflicts for {self.appointment.id}: {type(e).__name__}: {e}")
            self.conflict_error = map_error_to_friendly_message(e, "loading conflicts")
            self.conflicts = []
        return self.conflicts

    def conflict_summary(self) -> List[str]:
        return [format_conflict(conflict) for conflict in self.conflicts]

    # Submit

    async def submit(self) -> Optional[PlannerAppointment]:
        """
        Validate, check availability, then create or update.

        Returns:
            The saved appointment, or None when validation, the availability
            check or the write failed (the editor stays open)
        """
        if self.is_submitting:
            return None
        self.submit_error = None
        form = self.validate()
        if form is None:
            return None

        fields = self.to_fields(form)
        appointment_id = self.appointment.id if self.appointment else None
        self.is_submitting = True
        try:
            try:
                allowed = await self.store.can_schedule(CanScheduleInput(
                    technician_id=fields.technician_id,
                    bay_id=fields.bay_id,
                    starts_at=fields.starts_at,
                    ends_at=fields.ends_at,
                    appointment_id=appointment_id,
                ))
            except Exception as e:
                logger.warning(f"Availability check failed: {type(e).__name__}: {e}")
                self.submit_error = map_error_to_friendly_message(e, "checking availability")
                return None
            if not allowed:
                self.errors = {"starts_at": CONFLICT_FIELD_MESSAGE}
                return None

            try:
                if self.mode == EditorMode.CREATE:
                    saved = await self.store.create_appointment(fields)
                else:
                    assert appointment_id is not None
                    saved = await self.store.update_appointment(AppointmentUpdate(id=appointment_id, fields=fields))
            except PlannerMutationError as e:
                self.submit_error = e.friendly
                return None
        finally:
            self.is_submitting = False

        self.is_open = False
        return saved

    def close(self) -> bool:
        """Close unless a submit is in progress."""
        if self.is_submitting:
            return False
        self.is_open = False
        return True
