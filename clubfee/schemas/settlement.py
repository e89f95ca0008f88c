"""
Pydantic schemas for Settlement entity.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Dict, List, Optional
from datetime import datetime
from clubfee.core.config import settings
from clubfee.models.settlement import SettlementStatus
from clubfee.services.fee_allocation import AllocationStrategy


class TeamMatch(BaseModel):
    """Team-match amounts added to winner / loser team members."""
    winner_team_member_ids: List[int] = []
    loser_team_member_ids: List[int] = []
    winner_team_amount: int = 0  # e.g. 5000
    loser_team_amount: int = 0  # e.g. 10000


class SettlementCreate(BaseModel):
    """Schema for settlement creation."""
    meeting_id: int
    member_ids: List[int]
    game_fee: int = Field(0, ge=0)  # Total game fee (display)
    food_fee: int = Field(0, ge=0)
    other_fee: int = Field(0, ge=0)
    memo: str = ""
    strategy: AllocationStrategy = AllocationStrategy.PER_MEMBER

    # Per-member rates; derived from the totals when omitted
    game_fee_per_game: int = Field(default_factory=lambda: settings.GAME_FEE_PER_GAME, ge=0)
    other_per_person: Optional[int] = Field(None, ge=0)
    food_per_person: Optional[int] = Field(None, ge=0)
    penalty_amount: int = Field(default_factory=lambda: settings.PENALTY_AMOUNT, ge=0)

    # Per-member flags
    exclude_food_member_ids: List[int] = []
    exclude_game_member_ids: List[int] = []
    penalty_member_ids: List[int] = []
    discounted_member_ids: Optional[List[int]] = None  # None: use the member directory flag
    member_game_counts: Dict[int, int] = {}

    team_match: Optional[TeamMatch] = None

    @model_validator(mode="after")
    def check_flag_members(self):
        """Every flagged id must be an attendee."""
        attendees = set(self.member_ids)
        for name in (
            "exclude_food_member_ids",
            "exclude_game_member_ids",
            "penalty_member_ids",
            "discounted_member_ids",
        ):
            strangers = set(getattr(self, name) or []) - attendees
            if strangers:
                raise ValueError(f"{name} contains non-attendees: {sorted(strangers)}")
        return self


class AmountUpdate(BaseModel):
    """Schema for a manual member amount override."""
    amount: int = Field(..., ge=0)


class SettlementMemberResponse(BaseModel):
    """Schema for a settlement member row."""
    member_id: int
    name: str
    amount: int
    exclude_food: bool
    exclude_game: bool
    has_penalty: bool
    is_discounted: bool
    is_paid: bool

    class Config:
        from_attributes = True


class SettlementResponse(BaseModel):
    """Schema for settlement response."""
    id: int
    meeting_id: int
    game_fee: int
    food_fee: int
    other_fee: int
    penalty_fee: int
    total_amount: int
    per_person: int
    memo: str
    status: SettlementStatus
    created_at: datetime

    class Config:
        from_attributes = True


class SettlementDetailResponse(SettlementResponse):
    """Schema for settlement response with members and payment progress."""
    members: List[SettlementMemberResponse] = []
    paid_count: int
    total_count: int


class BillingMessageResponse(BaseModel):
    """Schema for the rendered billing message."""
    settlement_id: int
    message: str
