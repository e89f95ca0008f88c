"""
Member model (club member directory).
"""
from sqlalchemy import Column, String, Boolean
from clubfee.db.base import BaseModel


class Member(BaseModel):
    """Club member. Only the fields settlements need are modelled here."""
    __tablename__ = "members"

    name = Column(String(50), nullable=False, index=True)
    is_discounted = Column(Boolean, default=False, nullable=False)  # Default discount eligibility
