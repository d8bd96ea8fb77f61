"""
Sentinel for keyword arguments that were not passed at all.

AppointmentService.update_appointment defaults every field to MISSING so a
PATCH can leave a field untouched (MISSING) or clear it (None, e.g. moving a
job to the unassigned lane).
"""

from typing import Any


class MissingType:
    """Singleton type of MISSING; falsy and equal only to itself."""

    _instance: "MissingType | None" = None

    def __new__(cls) -> "MissingType":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        # Copies and pickles resolve to the module-level singleton
        return "MISSING"


MISSING = MissingType()


def is_missing(value: Any) -> bool:
    return value is MISSING
