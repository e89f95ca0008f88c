"""
Settlement models for meeting cost splitting.
"""
from sqlalchemy import (
    Column, Text, Boolean, DateTime, ForeignKey, Integer,
    Enum as SQLEnum, UniqueConstraint
)
from sqlalchemy.orm import relationship
from clubfee.db.base import BaseModel
import enum


class SettlementStatus(str, enum.Enum):
    """Settlement status enumeration. Only PENDING -> COMPLETED is allowed."""
    PENDING = "pending"
    COMPLETED = "completed"


class Settlement(BaseModel):
    """Settlement aggregate root for a single meeting."""
    __tablename__ = "settlements"

    meeting_id = Column(Integer, ForeignKey("meetings.id"), nullable=False, index=True)
    game_fee = Column(Integer, nullable=False, default=0)
    food_fee = Column(Integer, nullable=False, default=0)
    other_fee = Column(Integer, nullable=False, default=0)
    penalty_fee = Column(Integer, nullable=False, default=0)  # Informational, not part of total_amount
    total_amount = Column(Integer, nullable=False)  # game_fee + food_fee + other_fee at creation
    per_person = Column(Integer, nullable=False)  # Baseline reference amount
    memo = Column(Text, nullable=False, default="")
    status = Column(
        SQLEnum(SettlementStatus, values_callable=lambda e: [s.value for s in e]),
        default=SettlementStatus.PENDING,
        nullable=False,
        index=True
    )

    # Relationships
    meeting = relationship("Meeting", back_populates="settlements")
    members = relationship(
        "SettlementMember",
        back_populates="settlement",
        cascade="all, delete-orphan",
        order_by="SettlementMember.id"
    )


class SettlementMember(BaseModel):
    """A member's resolved share of a settlement."""
    __tablename__ = "settlement_members"
    __table_args__ = (
        UniqueConstraint("settlement_id", "member_id", name="uq_settlement_member"),
    )

    settlement_id = Column(
        Integer, ForeignKey("settlements.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id = Column(Integer, ForeignKey("members.id"), nullable=False, index=True)
    amount = Column(Integer, nullable=False, default=0)
    exclude_food = Column(Boolean, default=False, nullable=False)  # Plays only, skips the meal
    exclude_game = Column(Boolean, default=False, nullable=False)  # Joins the meal only
    has_penalty = Column(Boolean, default=False, nullable=False)
    is_discounted = Column(Boolean, default=False, nullable=False)  # Pays half the per-game rate
    is_paid = Column(Boolean, default=False, nullable=False)
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    settlement = relationship("Settlement", back_populates="members")
    member = relationship("Member")
