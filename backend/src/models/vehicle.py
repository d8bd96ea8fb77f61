"""
Vehicle model. Only the fields the planner displays are mapped.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import ForeignKey, String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class Vehicle(Base):
    """Vehicle entity."""

    __tablename__ = "vehicles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the vehicle."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization the vehicle record belongs to."""

    customer_id: Mapped[Optional[str]] = mapped_column(
        ForeignKey("customers.id", ondelete="SET NULL"), nullable=True, index=True
    )
    """Owner of the vehicle."""

    make: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Manufacturer (e.g., "Toyota")."""

    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Model (e.g., "Corolla")."""

    license_plate: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Registration plate."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the vehicle was created."""

    # Relationships
    customer = relationship("Customer", back_populates="vehicles")
    """Relationship to the owning Customer."""

    @property
    def label(self) -> Optional[str]:
        """Make, model and plate joined by spaces, or None when all are empty."""
        parts = [part.strip() for part in (self.make, self.model, self.license_plate) if part and part.strip()]
        return " ".join(parts) or None
