"""
Pure transformations of the planner's appointment collection.

Every function returns a new list of new PlannerAppointment objects. Inputs
are never mutated and no output element is the same object as an input
element, so a snapshot taken before an optimistic change can always be
restored. None of these functions raise; unknown ids are a no-op.
"""

from dataclasses import replace
from typing import Iterable, List, Optional, Sequence

from shared_types.planner import PlannerAppointment, PlannerStatus


def _clone(items: Iterable[PlannerAppointment]) -> List[PlannerAppointment]:
    return [replace(item) for item in items]


def _hidden_by_filter(appointment: PlannerAppointment, bay_filter: Optional[str]) -> bool:
    return bool(bay_filter) and appointment.bay_id != bay_filter


def _contains(items: Sequence[PlannerAppointment], appointment_id: str) -> bool:
    return any(item.id == appointment_id for item in items)


def sort_appointments(items: Iterable[PlannerAppointment]) -> List[PlannerAppointment]:
    """Stable chronological sort by starts_at; equal starts keep input order."""
    return sorted(_clone(items), key=lambda item: item.starts_at)


def apply_optimistic_create(
    current: Sequence[PlannerAppointment],
    appointment: PlannerAppointment,
    bay_filter: Optional[str],
) -> List[PlannerAppointment]:
    """Insert a pending appointment unless the active bay filter hides it."""
    if _hidden_by_filter(appointment, bay_filter):
        return _clone(current)
    return sort_appointments([*current, appointment])


def apply_create_success(
    current: Sequence[PlannerAppointment],
    temporary_id: Optional[str],
    confirmed: PlannerAppointment,
    bay_filter: Optional[str],
) -> List[PlannerAppointment]:
    """Swap the temporary record for the server-confirmed one."""
    remaining = [item for item in current if item.id != temporary_id and item.id != confirmed.id]
    if _hidden_by_filter(confirmed, bay_filter):
        return _clone(remaining)
    return sort_appointments([*remaining, confirmed])


def _replace_record(
    current: Sequence[PlannerAppointment],
    appointment: PlannerAppointment,
    bay_filter: Optional[str],
) -> List[PlannerAppointment]:
    if not _contains(current, appointment.id):
        return _clone(current)
    remaining = [item for item in current if item.id != appointment.id]
    if _hidden_by_filter(appointment, bay_filter):
        return _clone(remaining)
    return sort_appointments([*remaining, appointment])


def apply_optimistic_update(
    current: Sequence[PlannerAppointment],
    updated: PlannerAppointment,
    bay_filter: Optional[str],
) -> List[PlannerAppointment]:
    """
    Replace an appointment with its pending version.

    The record is dropped from the view when it moves out of the active bay
    filter.
    """
    return _replace_record(current, updated, bay_filter)


def apply_update_success(
    current: Sequence[PlannerAppointment],
    confirmed: PlannerAppointment,
    bay_filter: Optional[str],
) -> List[PlannerAppointment]:
    """Reconcile an appointment with the server-confirmed version."""
    return _replace_record(current, confirmed, bay_filter)


def apply_status_update(
    current: Sequence[PlannerAppointment],
    appointment_id: str,
    status: PlannerStatus,
) -> List[PlannerAppointment]:
    return [
        replace(item, status=status) if item.id == appointment_id else replace(item)
        for item in current
    ]


def apply_removal(current: Sequence[PlannerAppointment], appointment_id: str) -> List[PlannerAppointment]:
    """Drop an appointment from the view (optimistic delete)."""
    return _clone(item for item in current if item.id != appointment_id)


def restore_appointment(
    current: Sequence[PlannerAppointment],
    previous: Sequence[PlannerAppointment],
    appointment_id: str,
) -> List[PlannerAppointment]:
    """
    Roll back a single appointment to its value in an earlier snapshot.

    Other appointments keep their current value, so edits that happened after
    the snapshot was taken survive. If the appointment did not exist in the
    snapshot it is removed.
    """
    remaining = [item for item in current if item.id != appointment_id]
    snapshot = [item for item in previous if item.id == appointment_id]
    return sort_appointments([*remaining, *snapshot])


def revert_appointments(previous: Sequence[PlannerAppointment]) -> List[PlannerAppointment]:
    """Fresh copy of an earlier snapshot, element by element."""
    return _clone(previous)
