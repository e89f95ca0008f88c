"""Models package - Import all models for SQLAlchemy registration."""
from clubfee.models.member import Member
from clubfee.models.meeting import Meeting
from clubfee.models.settlement import Settlement, SettlementMember, SettlementStatus

__all__ = [
    "Member",
    "Meeting",
    "Settlement",
    "SettlementMember",
    "SettlementStatus",
]
