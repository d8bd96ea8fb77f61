"""
Technician model representing a schedulable technician lane.
"""

from datetime import datetime
from typing import List, Optional
from sqlalchemy import Boolean, JSON, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class Technician(Base):
    """
    Technician entity. Each active technician gets one lane on the board.

    The display name comes from first/last name; when both are empty the
    planner derives one from the first skill tag.
    """

    __tablename__ = "technicians"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the technician."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization the technician works for."""

    user_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """Linked login account, if any."""

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Given name."""

    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Family name."""

    skills: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    """Skill tags, e.g. ["diagnostics", "brakes"]."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive technicians are hidden from the board."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the technician was created. Lanes are ordered by it."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the technician was last updated."""

    # Relationships
    appointments = relationship("Appointment", back_populates="technician")
    """Appointments assigned to this technician."""

    @property
    def full_name(self) -> str:
        """First and last name joined, empty when neither is set."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
