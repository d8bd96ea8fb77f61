"""
Appointment model representing scheduled work on the planner board.

Each appointment occupies a time range and is optionally assigned to a
technician lane and a bay. Times are stored as UTC instants.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_NOTES_LENGTH, MAX_TITLE_LENGTH
from core.database import Base
from models.base import new_uuid

APPOINTMENT_STATUSES = ("scheduled", "in_progress", "waiting_parts", "completed")


class Appointment(Base):
    """
    Appointment entity: a scheduled unit of shop work.

    Conflicts are defined per technician and per bay; the availability
    service checks both before a booking is written.
    """

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Server-assigned UUID."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization that owns the appointment."""

    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH))
    """Short description shown on the board card."""

    status: Mapped[str] = mapped_column(String(32), default="scheduled")
    """Workflow status. Valid values: 'scheduled', 'in_progress', 'waiting_parts', 'completed'."""

    technician_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("technicians.id", ondelete="SET NULL"), nullable=True
    )
    """Assigned technician. NULL means the appointment sits in the unassigned lane."""

    bay_id: Mapped[Optional[str]] = mapped_column(ForeignKey("bays.id", ondelete="SET NULL"), nullable=True)
    """Assigned bay, if any."""

    customer_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True
    )
    """Customer the work is for."""

    vehicle_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("vehicles.id", ondelete="SET NULL"), nullable=True
    )
    """Vehicle being serviced."""

    starts_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    """Start instant (UTC)."""

    ends_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True))
    """End instant (UTC). Always after starts_at."""

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    """Free-form notes, at most 2000 characters."""

    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    """Ordering hint; higher is more urgent."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the appointment was created."""

    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the appointment was last updated."""

    # Relationships
    technician = relationship("Technician", back_populates="appointments")
    """Relationship to the assigned Technician."""

    bay = relationship("Bay", back_populates="appointments")
    """Relationship to the assigned Bay."""

    customer = relationship("Customer")
    """Relationship to the Customer."""

    vehicle = relationship("Vehicle")
    """Relationship to the Vehicle."""

    __table_args__ = (
        CheckConstraint("starts_at < ends_at", name="ck_appointments_time_order"),
        CheckConstraint(
            "status IN ('scheduled', 'in_progress', 'waiting_parts', 'completed')",
            name="ck_appointments_status",
        ),
        CheckConstraint(f"notes IS NULL OR length(notes) <= {MAX_NOTES_LENGTH}", name="ck_appointments_notes_length"),
        Index("idx_appointments_org_starts", "org_id", "starts_at"),
        Index("idx_appointments_technician_time", "technician_id", "starts_at", "ends_at"),
        Index("idx_appointments_bay_time", "bay_id", "starts_at", "ends_at"),
    )
