# Package initialization
# Import all models to ensure relationships are properly established
from .customer import Customer
from .vehicle import Vehicle
from .technician import Technician
from .bay import Bay
from .resource import Resource
from .resource_availability import ResourceAvailability
from .resource_time_off import ResourceTimeOff
from .appointment import Appointment

__all__ = [
    "Customer",
    "Vehicle",
    "Technician",
    "Bay",
    "Resource",
    "ResourceAvailability",
    "ResourceTimeOff",
    "Appointment",
]
