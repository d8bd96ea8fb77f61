"""
Resource time off model: periods during which a resource cannot be booked.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import CheckConstraint, ForeignKey, Index, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class ResourceTimeOff(Base):
    """A blocked period (vacation, maintenance) for a resource."""

    __tablename__ = "resource_time_off"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the time off entry."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization that owns the entry."""

    resource_id: Mapped[str] = mapped_column(ForeignKey("resources.id", ondelete="CASCADE"))
    """Resource that is unavailable."""

    starts_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    """Start instant (UTC)."""

    ends_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    """End instant (UTC)."""

    reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    """Optional reason shown to schedulers."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the entry was created."""

    # Relationships
    resource = relationship("Resource", back_populates="time_off")
    """Relationship to the Resource."""

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_resource_time_off_time_order"),
        Index('idx_resource_time_off_resource_time', 'resource_id', 'starts_at', 'ends_at'),
    )
