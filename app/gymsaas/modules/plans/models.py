from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.gymsaas.models import Base


class Plan(Base):
    """A platform tier: price per billing model and per-resource limits."""

    __tablename__ = "plans"
    __table_args__ = (
        Index("idx_plans_name", "name"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Whole currency units
    monthly_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    yearly_price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Gyms and locations are owner totals; members and equipment are per location
    max_gyms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_locations: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_members: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_equipment: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
