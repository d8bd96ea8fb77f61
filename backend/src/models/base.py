"""
Database base models and utilities.

This module provides the base SQLAlchemy model class and common database
utilities used throughout the application.
"""

import uuid

# Re-export Base from core.database so models can import it alongside helpers
from core.database import Base  # type: ignore[reportUnusedImport]


def new_uuid() -> str:
    """Primary key default for every planner table."""
    return str(uuid.uuid4())
