"""
Settlement management routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from clubfee.core.result import ServiceResult, ErrorKind
from clubfee.db.session import get_db
from clubfee.models.settlement import SettlementStatus
from clubfee.schemas.settlement import (
    SettlementCreate, SettlementResponse, SettlementDetailResponse,
    SettlementMemberResponse, AmountUpdate, BillingMessageResponse, TeamMatch
)
from clubfee.services import settlement_service
from clubfee.services.billing_message import generate_billing_message
from clubfee.services.fee_allocation import (
    CostConfig, build_member_flags, derive_per_person_rates
)

router = APIRouter(prefix="/settlements", tags=["settlements"])

ERROR_STATUS = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PERSISTENCE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def raise_for_result(result: ServiceResult) -> ServiceResult:
    """Translate a failed service result into an HTTP error."""
    if not result.ok:
        raise HTTPException(
            status_code=ERROR_STATUS.get(result.error_kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
            detail=result.message
        )
    return result


def get_details_or_404(settlement_id: int, db: Session) -> settlement_service.SettlementDetails:
    """Load a settlement snapshot or raise 404."""
    details = settlement_service.build_settlement_details(db, settlement_id)
    if not details:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Settlement not found"
        )
    return details


def to_detail_response(details: settlement_service.SettlementDetails) -> SettlementDetailResponse:
    base = SettlementResponse.model_validate(details.settlement)
    return SettlementDetailResponse(
        **base.model_dump(),
        members=[SettlementMemberResponse.model_validate(m) for m in details.members],
        paid_count=details.paid_count,
        total_count=details.total_count
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_settlement(
    data: SettlementCreate,
    db: Session = Depends(get_db)
):
    """Create a settlement and allocate fees to its attendees."""
    other_per_person, food_per_person = derive_per_person_rates(
        data.food_fee,
        data.other_fee,
        len(data.member_ids),
        len(set(data.exclude_food_member_ids))
    )
    if data.other_per_person is not None:
        other_per_person = data.other_per_person
    if data.food_per_person is not None:
        food_per_person = data.food_per_person

    discounted_ids = data.discounted_member_ids
    if discounted_ids is None:
        discounted_ids = settlement_service.get_discounted_member_ids(db, data.member_ids)

    team = data.team_match
    if team is None:
        # Fall back to the team match recorded on the meeting
        meeting = settlement_service.get_meeting(db, data.meeting_id)
        if meeting is not None and meeting.is_team_match:
            team = TeamMatch(
                winner_team_member_ids=sorted(meeting.winner_team_ids),
                loser_team_member_ids=sorted(meeting.loser_team_ids),
                winner_team_amount=meeting.winner_team_amount,
                loser_team_amount=meeting.loser_team_amount
            )

    config = CostConfig(
        game_fee_per_game=data.game_fee_per_game,
        other_per_person=other_per_person,
        food_per_person=food_per_person,
        penalty_amount=data.penalty_amount,
        is_team_match=team is not None,
        winner_team_member_ids=frozenset(team.winner_team_member_ids) if team else frozenset(),
        loser_team_member_ids=frozenset(team.loser_team_member_ids) if team else frozenset(),
        winner_team_amount=team.winner_team_amount if team else 0,
        loser_team_amount=team.loser_team_amount if team else 0
    )
    flags = build_member_flags(
        data.member_ids,
        exclude_food_ids=data.exclude_food_member_ids,
        exclude_game_ids=data.exclude_game_member_ids,
        penalty_ids=data.penalty_member_ids,
        discounted_ids=discounted_ids,
        game_counts=data.member_game_counts
    )

    result = raise_for_result(settlement_service.create_settlement(
        db,
        meeting_id=data.meeting_id,
        member_ids=data.member_ids,
        fees=settlement_service.SettlementFees(
            game_fee=data.game_fee, food_fee=data.food_fee, other_fee=data.other_fee
        ),
        config=config,
        flags=flags,
        strategy=data.strategy,
        memo=data.memo
    ))

    return {"message": "Settlement created successfully", "settlement_id": result.data}


@router.get("", response_model=List[SettlementResponse])
async def list_settlements(
    status_filter: Optional[SettlementStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db)
):
    """List settlements, newest first."""
    return settlement_service.list_settlements(db, status_filter)


@router.get("/meeting/{meeting_id}", response_model=SettlementDetailResponse)
async def get_meeting_settlement(
    meeting_id: int,
    db: Session = Depends(get_db)
):
    """Get the latest settlement for a meeting."""
    settlement = settlement_service.get_settlement_by_meeting(db, meeting_id)
    if not settlement:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Settlement not found"
        )
    return to_detail_response(get_details_or_404(settlement.id, db))


@router.get("/{settlement_id}", response_model=SettlementDetailResponse)
async def get_settlement(
    settlement_id: int,
    db: Session = Depends(get_db)
):
    """Get settlement details with members."""
    return to_detail_response(get_details_or_404(settlement_id, db))


@router.post("/{settlement_id}/members/{member_id}/paid")
async def mark_paid(
    settlement_id: int,
    member_id: int,
    db: Session = Depends(get_db)
):
    """Mark a member as paid."""
    raise_for_result(settlement_service.mark_member_paid(db, settlement_id, member_id))
    return {"message": "Member marked as paid"}


@router.post("/{settlement_id}/members/{member_id}/unpaid")
async def mark_unpaid(
    settlement_id: int,
    member_id: int,
    db: Session = Depends(get_db)
):
    """Mark a member as unpaid."""
    raise_for_result(settlement_service.mark_member_unpaid(db, settlement_id, member_id))
    return {"message": "Member marked as unpaid"}


@router.post("/{settlement_id}/members/{member_id}/toggle")
async def toggle_paid(
    settlement_id: int,
    member_id: int,
    db: Session = Depends(get_db)
):
    """Flip a member's paid status."""
    result = raise_for_result(settlement_service.toggle_member_paid(db, settlement_id, member_id))
    return {"message": "Payment status updated", "is_paid": result.data}


@router.put("/{settlement_id}/members/{member_id}/amount")
async def update_member_amount(
    settlement_id: int,
    member_id: int,
    update: AmountUpdate,
    db: Session = Depends(get_db)
):
    """Manually override a member's amount."""
    raise_for_result(
        settlement_service.update_member_amount(db, settlement_id, member_id, update.amount)
    )
    return {"message": "Amount updated successfully"}


@router.post("/{settlement_id}/complete")
async def complete_settlement(
    settlement_id: int,
    db: Session = Depends(get_db)
):
    """Complete a settlement, whether or not everyone has paid."""
    raise_for_result(settlement_service.complete_settlement(db, settlement_id))
    return {"message": "Settlement completed", "status": SettlementStatus.COMPLETED.value}


@router.delete("/{settlement_id}")
async def delete_settlement(
    settlement_id: int,
    db: Session = Depends(get_db)
):
    """Delete a settlement and its member rows."""
    raise_for_result(settlement_service.delete_settlement(db, settlement_id))
    return {"message": "Settlement deleted successfully"}


@router.get("/{settlement_id}/message", response_model=BillingMessageResponse)
async def get_billing_message(
    settlement_id: int,
    db: Session = Depends(get_db)
):
    """Render the billing message for sharing."""
    details = get_details_or_404(settlement_id, db)
    return BillingMessageResponse(
        settlement_id=settlement_id,
        message=generate_billing_message(details)
    )
