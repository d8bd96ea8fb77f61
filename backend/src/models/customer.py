"""
Customer model. Only the fields the planner displays are mapped.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, TIMESTAMP
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from models.base import new_uuid


class Customer(Base):
    """Customer entity."""

    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    """Unique identifier for the customer."""

    org_id: Mapped[str] = mapped_column(String(64), index=True)
    """Organization the customer belongs to."""

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Given name."""

    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    """Family name."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    """Timestamp when the customer was created."""

    # Relationships
    vehicles = relationship("Vehicle", back_populates="customer")
    """Vehicles owned by the customer."""

    @property
    def display_name(self) -> Optional[str]:
        """Full name, or None when no name is recorded."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None
