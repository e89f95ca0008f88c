"""
Meeting model (club meeting directory).
"""
from sqlalchemy import Column, String, Text, Date, Boolean, Integer
from sqlalchemy.orm import relationship
from typing import Iterable, Set
from clubfee.db.base import BaseModel


def _parse_ids(value: str) -> Set[int]:
    return {int(part) for part in (value or "").split(",") if part.strip().isdigit()}


def _join_ids(ids: Iterable[int]) -> str:
    return ",".join(str(i) for i in sorted(set(ids)))


class Meeting(BaseModel):
    """A club meeting that settlements are attached to."""
    __tablename__ = "meetings"

    date = Column(Date, nullable=False, index=True)
    location = Column(String(200), nullable=False, default="")

    # Team match setup, member ids stored comma-separated
    is_team_match = Column(Boolean, nullable=False, default=False)
    winner_team_member_ids = Column(Text, nullable=False, default="")
    loser_team_member_ids = Column(Text, nullable=False, default="")
    winner_team_amount = Column(Integer, nullable=False, default=0)
    loser_team_amount = Column(Integer, nullable=False, default=0)

    # Relationships
    settlements = relationship("Settlement", back_populates="meeting", cascade="all, delete-orphan")

    @property
    def winner_team_ids(self) -> Set[int]:
        return _parse_ids(self.winner_team_member_ids)

    @property
    def loser_team_ids(self) -> Set[int]:
        return _parse_ids(self.loser_team_member_ids)

    def set_team_match(
        self,
        winner_ids: Iterable[int],
        loser_ids: Iterable[int],
        winner_amount: int,
        loser_amount: int
    ) -> None:
        """Record the team match played at this meeting."""
        self.is_team_match = True
        self.winner_team_member_ids = _join_ids(winner_ids)
        self.loser_team_member_ids = _join_ids(loser_ids)
        self.winner_team_amount = winner_amount
        self.loser_team_amount = loser_amount
