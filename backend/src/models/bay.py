"""
Bay model representing a physical work location (lift, bay).
"""

from datetime import datetime
from sqlalchemy import String, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class Bay(Base):
    """Bay entity. Used as a filter and as a second conflict dimension next to technicians."""

    __tablename__ = "bays"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the bay."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization that owns the bay."""

    name: Mapped[str] = mapped_column(String(255))
    """Display name (e.g., "Lift 1"). Unique within the organization."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the bay was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the bay was last updated."""

    # Relationships
    appointments = relationship("Appointment", back_populates="bay")
    """Appointments booked into this bay."""

    __table_args__ = (
        UniqueConstraint('org_id', 'name', name='uq_bay_org_name'),
    )
