from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.gymsaas.models import Base, User

if TYPE_CHECKING:
    from app.gymsaas.modules.gyms.models import Gym, Location
    from app.gymsaas.modules.subscriptions.models import MemberSubscription


class Member(Base):
    """Links a MEMBER user to the gym location they train at."""

    __tablename__ = "members"
    __table_args__ = (
        Index("idx_members_gym", "gym_id"),
        Index("idx_members_location", "location_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    gym_id: Mapped[int] = mapped_column(ForeignKey("gyms.id", ondelete="CASCADE"), nullable=False)
    location_id: Mapped[int] = mapped_column(ForeignKey("locations.id", ondelete="CASCADE"), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    user: Mapped[User] = relationship(User, lazy="selectin")
    gym: Mapped["Gym"] = relationship("Gym", lazy="selectin")
    location: Mapped["Location"] = relationship("Location", lazy="selectin")
    subscriptions: Mapped[list["MemberSubscription"]] = relationship(
        "MemberSubscription",
        back_populates="member",
    )
