"""
Services package for shared business logic.

This package contains service classes that encapsulate business logic
shared across the planner API and the in-process planner backend.
"""

from .appointment_service import AppointmentService
from .availability_service import AvailabilityService
from .resource_service import ResourceService

__all__ = [
    "AppointmentService",
    "AvailabilityService",
    "ResourceService",
]
