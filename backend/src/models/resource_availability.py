"""
Resource availability model for weekly working windows.

A resource may have several windows per weekday (e.g., 08:00-12:00 and
13:00-17:00). A resource without any window is always available.
"""

from datetime import datetime, time
from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Time, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class ResourceAvailability(Base):
    """One weekly working window of a resource, in organization-local time."""

    __tablename__ = "resource_availability"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the availability window."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization that owns the window."""

    resource_id: Mapped[str] = mapped_column(ForeignKey("resources.id", ondelete="CASCADE"))
    """Resource the window belongs to."""

    weekday: Mapped[int] = mapped_column()
    """Day of the week (0=Monday, 1=Tuesday, ..., 6=Sunday)."""

    start_time: Mapped[time] = mapped_column(Time)
    """Local start of the window."""

    end_time: Mapped[time] = mapped_column(Time)
    """Local end of the window."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the window was created."""

    # Relationships
    resource = relationship("Resource", back_populates="availability")
    """Relationship to the Resource."""

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_resource_availability_weekday"),
        CheckConstraint("start_time < end_time", name="ck_resource_availability_time_order"),
        Index('idx_resource_availability_resource_day', 'resource_id', 'weekday'),
    )
