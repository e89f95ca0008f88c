"""
Billing message generation for sharing a settlement with members.
"""
from typing import List, Optional

from clubfee.core.config import settings
from clubfee.core.utils import format_amount
from clubfee.models.meeting import Meeting
from clubfee.models.settlement import Settlement
from clubfee.services.settlement_service import SettlementDetails, SettlementMemberDetail


def _tier_amount(members: List[SettlementMemberDetail], fallback: int) -> int:
    """Amount of the first member in a tier that owes something, else the baseline."""
    for member in members:
        if member.amount > 0:
            return member.amount
    return fallback


def _signed_amount(amount: int) -> str:
    return f"+{format_amount(amount)}" if amount > 0 else format_amount(amount)


def _team_section(meeting: Meeting, members: List[SettlementMemberDetail]) -> List[str]:
    winner_ids = meeting.winner_team_ids
    loser_ids = meeting.loser_team_ids
    winners = ", ".join(m.name for m in members if m.member_id in winner_ids)
    losers = ", ".join(m.name for m in members if m.member_id in loser_ids)

    lines = ["🎯 팀전"]
    if winners:
        suffix = f" ({_signed_amount(meeting.winner_team_amount)})" if meeting.winner_team_amount else ""
        lines.append(f"  🏆 이긴팀: {winners}{suffix}")
    if losers:
        suffix = f" ({_signed_amount(meeting.loser_team_amount)})" if meeting.loser_team_amount else ""
        lines.append(f"  💸 진팀: {losers}{suffix}")
    return lines


def _member_breakdown(member: SettlementMemberDetail, settlement: Settlement) -> str:
    parts = []
    if not member.exclude_game and settlement.game_fee > 0:
        parts.append("게임비(50%)" if member.is_discounted else "게임비")
    if settlement.other_fee > 0:
        parts.append("기타")
    if not member.exclude_food and settlement.food_fee > 0:
        parts.append("식비")
    if member.has_penalty:
        parts.append("벌금")
    return f" ({'+'.join(parts)})" if parts else ""


def _member_lines(details: SettlementDetails, team_match: Optional[Meeting]) -> List[str]:
    winner_ids = team_match.winner_team_ids if team_match else set()
    loser_ids = team_match.loser_team_ids if team_match else set()

    lines = ["👥 회원별 납부 금액"]
    for member in details.members:
        tag = ""
        if member.member_id in winner_ids:
            tag = " 🏆"
        elif member.member_id in loser_ids:
            tag = " 💸"
        breakdown = _member_breakdown(member, details.settlement)
        lines.append(f"  {member.name}{tag}: {format_amount(member.amount)}{breakdown}")
    return lines


def generate_billing_message(details: SettlementDetails, header: Optional[str] = None) -> str:
    """
    Render a settlement snapshot as shareable text.

    Sections: header, meeting date/location (when known), cost breakdown,
    team match result (when the meeting had one), per-person amount (split
    into food-included / food-excluded tiers when someone skipped a paid
    meal), each member's amount with its breakdown, and the names of members
    who have not paid.
    """
    settlement = details.settlement
    meeting = details.meeting
    team_match = meeting if meeting is not None and meeting.is_team_match else None

    lines = [header or settings.BILLING_HEADER, ""]

    if meeting is not None:
        lines.append(f"📅 모임일: {meeting.date}")
        if meeting.location:
            lines.append(f"📍 장소: {meeting.location}")
        lines.append("")

    lines.append("💰 비용 내역")
    lines.append(f"  - 게임비: {format_amount(settlement.game_fee)}")
    if settlement.food_fee > 0:
        lines.append(f"  - 식비: {format_amount(settlement.food_fee)}")
    if settlement.other_fee > 0:
        lines.append(f"  - 기타: {format_amount(settlement.other_fee)}")
    if settlement.penalty_fee and settlement.penalty_fee > 0:
        lines.append(f"  - ⚠️ 벌금: {format_amount(settlement.penalty_fee)}")
    if team_match is not None:
        if team_match.winner_team_amount:
            lines.append(f"  - 🏆 이긴팀: {format_amount(team_match.winner_team_amount)}")
        if team_match.loser_team_amount:
            lines.append(f"  - 💸 진팀: {format_amount(team_match.loser_team_amount)}")
    lines.append(f"  - 총액: {format_amount(settlement.total_amount)}")
    lines.append("")

    if team_match is not None:
        lines.extend(_team_section(team_match, details.members))
        lines.append("")

    food_excluded = [m for m in details.members if m.exclude_food]
    if food_excluded and settlement.food_fee > 0:
        food_included = [m for m in details.members if not m.exclude_food]
        with_food = _tier_amount(food_included, settlement.per_person)
        without_food = _tier_amount(food_excluded, settlement.per_person)
        lines.append("👤 1인당 금액")
        lines.append(f"  - 식사 참여: {format_amount(with_food)}")
        lines.append(f"  - 식사 불참: {format_amount(without_food)}")
        lines.append(f"  - 식사 불참자: {', '.join(m.name for m in food_excluded)}")
    else:
        lines.append(f"👤 1인당 금액: {format_amount(settlement.per_person)}")

    if details.members:
        lines.append("")
        lines.extend(_member_lines(details, team_match))

    unpaid = details.unpaid_members
    if unpaid:
        lines.append("")
        lines.append(f"⏳ 미납: {', '.join(m.name for m in unpaid)}")

    return "\n".join(lines) + "\n"
