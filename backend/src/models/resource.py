"""
Resource model linking technicians and bays to scheduling rules.

Availability windows and time off are attached to resources rather than to
technicians or bays directly, so both kinds share the same rules.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid

RESOURCE_TYPE_TECHNICIAN = "technician"
RESOURCE_TYPE_BAY = "bay"


class Resource(Base):
    """
    Resource entity: the schedulable identity of a technician or a bay.

    Exactly one of technician_id / bay_id is set, matching resource_type.
    """

    __tablename__ = "resources"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the resource."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization that owns the resource."""

    resource_type: Mapped[str] = mapped_column(String(20))
    """Kind of resource. Valid values: 'technician', 'bay'."""

    name: Mapped[str] = mapped_column(String(255))
    """Display name used in conflict reports."""

    technician_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("technicians.id", ondelete="CASCADE"), nullable=True, index=True
    )
    """Linked technician for technician resources."""

    bay_id: Mapped[Optional[str]] = mapped_column(ForeignKey("bays.id", ondelete="CASCADE"), nullable=True, index=True)
    """Linked bay for bay resources."""

    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Lane color override (e.g., "#1d4ed8")."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive resources are ignored by the planner."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the resource was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the resource was last updated."""

    # Relationships
    technician = relationship("Technician")
    """Relationship to the linked Technician."""

    bay = relationship("Bay")
    """Relationship to the linked Bay."""

    availability = relationship("ResourceAvailability", back_populates="resource", cascade="all, delete-orphan")
    """Weekly availability windows."""

    time_off = relationship("ResourceTimeOff", back_populates="resource", cascade="all, delete-orphan")
    """Time off periods."""

    __table_args__ = (
        CheckConstraint("resource_type IN ('technician', 'bay')", name="ck_resources_type"),
    )
