from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.gymsaas.constants import BILLING_MONTHLY
from app.gymsaas.models import Base, User

if TYPE_CHECKING:
    from app.gymsaas.modules.members.models import Member
    from app.gymsaas.modules.payments.models import Payment
    from app.gymsaas.modules.plans.models import Plan


class OwnerSubscription(Base):
    """A gym owner's term on a platform plan. At most one is active per owner."""

    __tablename__ = "owner_subscriptions"
    __table_args__ = (
        Index("idx_owner_subs_owner", "owner_id"),
        Index("idx_owner_subs_end_date", "end_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_id: Mapped[int] = mapped_column(ForeignKey("plans.id", ondelete="RESTRICT"), nullable=False)

    billing_model: Mapped[str] = mapped_column(String(16), nullable=False, default=BILLING_MONTHLY)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    second_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    owner: Mapped[User] = relationship(User, lazy="selectin")
    plan: Mapped["Plan"] = relationship("Plan", lazy="selectin")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="owner_subscription",
        order_by="Payment.payment_date.desc()",
    )


class MemberSubscription(Base):
    """A member's term at their gym, priced by the owner."""

    __tablename__ = "member_subscriptions"
    __table_args__ = (
        Index("idx_member_subs_member", "member_id"),
        Index("idx_member_subs_end_date", "end_date"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id", ondelete="CASCADE"), nullable=False)

    price: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    billing_model: Mapped[str] = mapped_column(String(16), nullable=False, default=BILLING_MONTHLY)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    first_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    second_reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    member: Mapped["Member"] = relationship("Member", back_populates="subscriptions", lazy="selectin")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="member_subscription",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date.desc()",
    )
