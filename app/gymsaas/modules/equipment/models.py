from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.gymsaas.models import Base

if TYPE_CHECKING:
    from app.gymsaas.modules.gyms.models import Gym, Location


class Equipment(Base):
    __tablename__ = "equipment"
    __table_args__ = (
        Index("idx_equipment_location", "location_id"),
        Index("idx_equipment_gym", "gym_id"),
        Index("idx_equipment_status", "status"),
        Index("idx_equipment_next_maintenance", "next_maintenance_due"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    gym_id: Mapped[int] = mapped_column(ForeignKey("gyms.id", ondelete="CASCADE"), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)

    # Required
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(128), nullable=False)  # e.g. "Cardio", "Strength"
    quantity: Mapped[str] = mapped_column(String(32), nullable=False, default="1")

    # Optional metadata
    category: Mapped[str | None] = mapped_column(String(128), nullable=True)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    model_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    serial_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    min_stock_level: Mapped[str | None] = mapped_column(String(32), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(64), nullable=True)  # New, Good, Fair, Poor
    status: Mapped[str | None] = mapped_column(String(64), nullable=True)  # In Use, Under Maintenance, Retired
    weight: Mapped[str | None] = mapped_column(String(64), nullable=True)
    usage_frequency: Mapped[str | None] = mapped_column(String(64), nullable=True)
    equipment_location: Mapped[str | None] = mapped_column(String(255), nullable=True)  # spot inside the branch

    # Purchase
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    purchase_cost: Mapped[str | None] = mapped_column(String(64), nullable=True)
    supplier_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Maintenance tracking
    last_maintenance_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    next_maintenance_due: Mapped[date | None] = mapped_column(Date, nullable=True)
    maintenance_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Links to uploaded files
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    invoice_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    created_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    gym: Mapped["Gym"] = relationship("Gym", lazy="selectin")
    location: Mapped["Location"] = relationship("Location", lazy="selectin")
