"""
Settlement service: creates settlements from allocation drafts and manages
their payment state.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from clubfee.core.result import ServiceResult, ErrorKind
from clubfee.models.meeting import Meeting
from clubfee.models.member import Member
from clubfee.models.settlement import Settlement, SettlementMember, SettlementStatus
from clubfee.services.fee_allocation import (
    AllocationError,
    AllocationStrategy,
    CostConfig,
    MemberFlags,
    allocate,
    allocate_equal_split,
    baseline_per_person,
    validate_allocation_input,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementFees:
    """Cost component totals as entered."""
    game_fee: int = 0
    food_fee: int = 0
    other_fee: int = 0

    @property
    def total_amount(self) -> int:
        return self.game_fee + self.food_fee + self.other_fee


@dataclass
class SettlementMemberDetail:
    """A settlement member row joined with the member's display name."""
    member_id: int
    name: str
    amount: int
    exclude_food: bool
    exclude_game: bool
    has_penalty: bool
    is_discounted: bool
    is_paid: bool


@dataclass
class SettlementDetails:
    """Snapshot of a settlement, its meeting and its members."""
    settlement: Settlement
    meeting: Optional[Meeting]
    members: List[SettlementMemberDetail] = field(default_factory=list)

    @property
    def paid_count(self) -> int:
        return sum(1 for m in self.members if m.is_paid)

    @property
    def total_count(self) -> int:
        return len(self.members)

    @property
    def unpaid_members(self) -> List[SettlementMemberDetail]:
        return [m for m in self.members if not m.is_paid]


def create_settlement(
    db: Session,
    meeting_id: int,
    member_ids: List[int],
    fees: SettlementFees,
    config: CostConfig,
    flags: Dict[int, MemberFlags],
    strategy: AllocationStrategy = AllocationStrategy.PER_MEMBER,
    memo: str = ""
) -> ServiceResult:
    """
    Allocate fees and persist the settlement with all its member rows.

    The settlement and its members are committed together or not at all.
    A meeting may hold more than one settlement; none is replaced. A team
    match in the config is recorded on the meeting in the same commit.

    Returns:
        ServiceResult carrying the new settlement id
    """
    meeting = get_meeting(db, meeting_id)
    if not meeting:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Meeting not found")

    try:
        validate_allocation_input(
            member_ids,
            {"game_fee": fees.game_fee, "food_fee": fees.food_fee, "other_fee": fees.other_fee},
            {"flags": flags.keys()}
        )
        if strategy == AllocationStrategy.EQUAL_SPLIT:
            exclude_food_ids = [mid for mid, f in flags.items() if f.exclude_food]
            drafts = allocate_equal_split(
                member_ids, fees.game_fee, fees.food_fee, fees.other_fee, exclude_food_ids
            )
            food_included = [d for d in drafts if not d.exclude_food]
            per_person = (food_included or drafts)[0].amount
        else:
            drafts = allocate(member_ids, config, flags)
            per_person = baseline_per_person(config)
    except AllocationError as e:
        logger.warning(f"Rejected settlement for meeting {meeting_id}: {e}")
        return ServiceResult.failure(ErrorKind.INVALID_INPUT, str(e))

    unknown_ids = _find_unknown_member_ids(db, member_ids)
    if unknown_ids:
        logger.warning(f"Rejected settlement for meeting {meeting_id}: unknown members {unknown_ids}")
        return ServiceResult.failure(ErrorKind.NOT_FOUND, f"Members not found: {unknown_ids}")

    if config.is_team_match:
        meeting.set_team_match(
            config.winner_team_member_ids,
            config.loser_team_member_ids,
            config.winner_team_amount,
            config.loser_team_amount
        )

    penalty_count = sum(1 for d in drafts if d.has_penalty)
    settlement = Settlement(
        meeting_id=meeting_id,
        game_fee=fees.game_fee,
        food_fee=fees.food_fee,
        other_fee=fees.other_fee,
        penalty_fee=penalty_count * config.penalty_amount,
        total_amount=fees.total_amount,
        per_person=per_person,
        memo=memo or "",
        status=SettlementStatus.PENDING
    )

    try:
        db.add(settlement)
        db.flush()
        for draft in drafts:
            db.add(SettlementMember(
                settlement_id=settlement.id,
                member_id=draft.member_id,
                amount=draft.amount,
                exclude_food=draft.exclude_food,
                exclude_game=draft.exclude_game,
                has_penalty=draft.has_penalty,
                is_discounted=draft.is_discounted,
                is_paid=draft.is_paid
            ))
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create settlement for meeting {meeting_id}: {e}", exc_info=True)
        return ServiceResult.failure(ErrorKind.PERSISTENCE, "Failed to create settlement")

    db.refresh(settlement)
    logger.info(
        f"Created settlement {settlement.id} for meeting {meeting_id} "
        f"({len(drafts)} members, strategy={strategy.value})"
    )
    return ServiceResult.success(settlement.id)


def _find_unknown_member_ids(db: Session, member_ids: List[int]) -> List[int]:
    known = {row.id for row in db.query(Member.id).filter(Member.id.in_(member_ids)).all()}
    return sorted(set(member_ids) - known)


def get_meeting(db: Session, meeting_id: int) -> Optional[Meeting]:
    """Get a meeting by id, or None."""
    return db.query(Meeting).filter(Meeting.id == meeting_id).first()


def get_discounted_member_ids(db: Session, member_ids: List[int]) -> List[int]:
    """Attendees flagged as discount-eligible in the member directory."""
    if not member_ids:
        return []
    rows = db.query(Member.id).filter(
        Member.id.in_(member_ids),
        Member.is_discounted.is_(True)
    ).all()
    return [row.id for row in rows]


def _get_member_row(db: Session, settlement_id: int, member_id: int) -> Optional[SettlementMember]:
    return db.query(SettlementMember).filter(
        SettlementMember.settlement_id == settlement_id,
        SettlementMember.member_id == member_id
    ).first()


def _commit(db: Session, action: str) -> ServiceResult:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to {action}: {e}", exc_info=True)
        return ServiceResult.failure(ErrorKind.PERSISTENCE, f"Failed to {action}")
    return ServiceResult.success()


def _set_paid(db: Session, settlement_id: int, member_id: int, paid: bool) -> ServiceResult:
    row = _get_member_row(db, settlement_id, member_id)
    if not row:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Settlement member not found")

    # Completed settlements still accept payment changes
    row.is_paid = paid
    row.paid_at = datetime.utcnow() if paid else None
    result = _commit(db, f"update payment of member {member_id} in settlement {settlement_id}")
    if result.ok:
        logger.info(f"Member {member_id} in settlement {settlement_id} marked {'paid' if paid else 'unpaid'}")
    return result


def mark_member_paid(db: Session, settlement_id: int, member_id: int) -> ServiceResult:
    """Mark a member's share as paid."""
    return _set_paid(db, settlement_id, member_id, True)


def mark_member_unpaid(db: Session, settlement_id: int, member_id: int) -> ServiceResult:
    """Mark a member's share as unpaid."""
    return _set_paid(db, settlement_id, member_id, False)


def toggle_member_paid(db: Session, settlement_id: int, member_id: int) -> ServiceResult:
    """Flip a member's paid flag. The result carries the new value."""
    row = _get_member_row(db, settlement_id, member_id)
    if not row:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Settlement member not found")
    new_value = not row.is_paid
    result = _set_paid(db, settlement_id, member_id, new_value)
    return ServiceResult.success(new_value) if result.ok else result


def complete_settlement(db: Session, settlement_id: int) -> ServiceResult:
    """
    Mark a settlement as completed.

    Completion does not require every member to have paid. Completing an
    already completed settlement succeeds and changes nothing.
    """
    settlement = db.query(Settlement).filter(Settlement.id == settlement_id).first()
    if not settlement:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Settlement not found")

    if settlement.status == SettlementStatus.COMPLETED:
        return ServiceResult.success()

    unpaid_count = db.query(SettlementMember).filter(
        SettlementMember.settlement_id == settlement_id,
        SettlementMember.is_paid.is_(False)
    ).count()

    settlement.status = SettlementStatus.COMPLETED
    result = _commit(db, f"complete settlement {settlement_id}")
    if result.ok:
        logger.info(f"Completed settlement {settlement_id} ({unpaid_count} unpaid)")
    return result


def delete_settlement(db: Session, settlement_id: int) -> ServiceResult:
    """Delete a settlement together with its member rows."""
    settlement = db.query(Settlement).filter(Settlement.id == settlement_id).first()
    if not settlement:
        return ServiceResult.failure(ErrorKind.NOT_FOUND, "Settlement not found")

    db.delete(settlement)
    result = _commit(db, f"delete settlement {settlement_id}")
    if result.ok:
        logger.info(f"Deleted settlement {settlement_id}")
    return result


def update_member_amount(db: Session, settlement_id: int, member_id: int, amount: int) -> ServiceResult:
    """Manually override one member's amount. Totals are not re-validated."""
    if amount < 0:
        return ServiceResult.failure(ErrorKind.INVALID_INPUT, "Amount must not be negative")

    row = _get_member_row(db, settlement_id, member_id)
    if not row:
        settlement_exists = db.query(Settlement.id).filter(Settlement.id == settlement_id).first()
        message = "Settlement member not found" if settlement_exists else "Settlement not found"
        return ServiceResult.failure(ErrorKind.NOT_FOUND, message)

    row.amount = amount
    result = _commit(db, f"update amount of member {member_id} in settlement {settlement_id}")
    if result.ok:
        logger.info(f"Member {member_id} in settlement {settlement_id} amount set to {amount}")
    return result


def get_settlement(db: Session, settlement_id: int) -> Optional[Settlement]:
    """Get a settlement by id, or None."""
    return db.query(Settlement).filter(Settlement.id == settlement_id).first()


def get_settlement_by_meeting(db: Session, meeting_id: int) -> Optional[Settlement]:
    """Get the latest settlement for a meeting, or None."""
    return db.query(Settlement).filter(
        Settlement.meeting_id == meeting_id
    ).order_by(Settlement.id.desc()).first()


def list_settlements(db: Session, status: Optional[SettlementStatus] = None) -> List[Settlement]:
    """List settlements, newest first, optionally filtered by status."""
    query = db.query(Settlement)
    if status is not None:
        query = query.filter(Settlement.status == status)
    return query.order_by(Settlement.created_at.desc(), Settlement.id.desc()).all()


def get_unpaid_members(db: Session, settlement_id: int) -> List[SettlementMember]:
    """Get the member rows of a settlement that are not paid yet."""
    return db.query(SettlementMember).filter(
        SettlementMember.settlement_id == settlement_id,
        SettlementMember.is_paid.is_(False)
    ).order_by(SettlementMember.id).all()


def build_settlement_details(db: Session, settlement_id: int) -> Optional[SettlementDetails]:
    """Build a snapshot of a settlement with member names and its meeting."""
    settlement = db.query(Settlement).options(
        joinedload(Settlement.meeting),
        joinedload(Settlement.members).joinedload(SettlementMember.member)
    ).filter(Settlement.id == settlement_id).first()
    if not settlement:
        return None

    members = []
    for row in settlement.members:
        member: Member = row.member
        members.append(SettlementMemberDetail(
            member_id=row.member_id,
            name=member.name if member else f"#{row.member_id}",
            amount=row.amount,
            exclude_food=row.exclude_food,
            exclude_game=row.exclude_game,
            has_penalty=row.has_penalty,
            is_discounted=row.is_discounted,
            is_paid=row.is_paid
        ))

    return SettlementDetails(settlement=settlement, meeting=settlement.meeting, members=members)
