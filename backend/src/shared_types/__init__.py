"""
Shared type definitions for the shop planner backend.

This module contains dataclasses and types that are used across multiple services.
"""

from shared_types.planner import (
    AppointmentFields,
    AppointmentUpdate,
    BoardWindow,
    CanScheduleInput,
    ConflictReport,
    MovePayload,
    OptimisticOverride,
    PlannerAppointment,
    PlannerBay,
    PlannerStatus,
    PlannerTechnician,
    ResizePayload,
    ResourceAvailabilityEntry,
    ResourceTimeOffEntry,
)

__all__ = [
    "AppointmentFields",
    "AppointmentUpdate",
    "BoardWindow",
    "CanScheduleInput",
    "ConflictReport",
    "MovePayload",
    "OptimisticOverride",
    "PlannerAppointment",
    "PlannerBay",
    "PlannerStatus",
    "PlannerTechnician",
    "ResizePayload",
    "ResourceAvailabilityEntry",
    "ResourceTimeOffEntry",
]
