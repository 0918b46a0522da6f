from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.gymsaas.models import Base

if TYPE_CHECKING:
    from app.gymsaas.modules.subscriptions.models import MemberSubscription, OwnerSubscription


class Payment(Base):
    """
    A payment against exactly one subscription.
    subscription_type says which of the two foreign keys is populated.
    """

    __tablename__ = "payments"
    __table_args__ = (
        Index("idx_payments_type_date", "subscription_type", "payment_date"),
        Index("idx_payments_owner_sub", "owner_subscription_id"),
        Index("idx_payments_member_sub", "member_subscription_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_subscription_id: Mapped[int | None] = mapped_column(
        ForeignKey("owner_subscriptions.id", ondelete="CASCADE"), nullable=True
    )
    member_subscription_id: Mapped[int | None] = mapped_column(
        ForeignKey("member_subscriptions.id", ondelete="CASCADE"), nullable=True
    )
    subscription_type: Mapped[str] = mapped_column(String(16), nullable=False)  # OWNER or MEMBER

    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)  # CASH or BANK_TRANSFER
    transaction_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    payment_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    owner_subscription: Mapped["OwnerSubscription | None"] = relationship(
        "OwnerSubscription", back_populates="payments", lazy="selectin"
    )
    member_subscription: Mapped["MemberSubscription | None"] = relationship(
        "MemberSubscription", back_populates="payments", lazy="selectin"
    )
