"""
Fee allocation engine for meeting settlements.

Two independent strategies share the same inputs and output drafts:
- PER_MEMBER: per-member game counts, discounts, exclusions, penalty and
  team-match amounts, rounded up to the settlement unit per member.
- EQUAL_SPLIT: aggregate totals divided evenly by headcount with integer
  division. Remainders are dropped.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple
import enum
import logging

from clubfee.core.config import settings
from clubfee.core.utils import round_up_to_unit

logger = logging.getLogger(__name__)


class AllocationError(ValueError):
    """Raised when allocation input is invalid."""


class AllocationStrategy(str, enum.Enum):
    """Allocation strategy selected explicitly by the caller."""
    PER_MEMBER = "per_member"
    EQUAL_SPLIT = "equal_split"


@dataclass(frozen=True)
class CostConfig:
    """Rates and team-match data applied to every attendee."""
    game_fee_per_game: int = 0
    other_per_person: int = 0
    food_per_person: int = 0
    penalty_amount: int = 0
    is_team_match: bool = False
    winner_team_member_ids: Set[int] = field(default_factory=frozenset)
    loser_team_member_ids: Set[int] = field(default_factory=frozenset)
    winner_team_amount: int = 0
    loser_team_amount: int = 0


@dataclass(frozen=True)
class MemberFlags:
    """Per-member exception flags, resolved once before allocation."""
    exclude_food: bool = False
    exclude_game: bool = False
    has_penalty: bool = False
    is_discounted: bool = False
    game_count: int = 0


@dataclass
class SettlementMemberDraft:
    """Allocation output for one member, ready to be persisted."""
    member_id: int
    amount: int
    exclude_food: bool = False
    exclude_game: bool = False
    has_penalty: bool = False
    is_discounted: bool = False
    is_paid: bool = False


def build_member_flags(
    member_ids: Iterable[int],
    exclude_food_ids: Iterable[int] = (),
    exclude_game_ids: Iterable[int] = (),
    penalty_ids: Iterable[int] = (),
    discounted_ids: Iterable[int] = (),
    game_counts: Optional[Dict[int, int]] = None
) -> Dict[int, MemberFlags]:
    """Turn flag id lists into one MemberFlags record per attendee."""
    exclude_food_ids = set(exclude_food_ids)
    exclude_game_ids = set(exclude_game_ids)
    penalty_ids = set(penalty_ids)
    discounted_ids = set(discounted_ids)
    game_counts = game_counts or {}

    return {
        member_id: MemberFlags(
            exclude_food=member_id in exclude_food_ids,
            exclude_game=member_id in exclude_game_ids,
            has_penalty=member_id in penalty_ids,
            is_discounted=member_id in discounted_ids,
            game_count=game_counts.get(member_id, 0),
        )
        for member_id in member_ids
    }


def validate_allocation_input(
    member_ids: List[int],
    amounts: Dict[str, int],
    flag_id_lists: Optional[Dict[str, Iterable[int]]] = None
) -> None:
    """
    Fail fast on input that would otherwise produce a silently wrong allocation.

    Args:
        member_ids: Attendee ids
        amounts: Named cost components / rates that must not be negative
        flag_id_lists: Named flag id lists whose ids must all be attendees

    Raises:
        AllocationError: On empty or duplicate attendees, negative amounts,
            or flag ids that are not attendees
    """
    if not member_ids:
        raise AllocationError("No attendees selected")

    if len(set(member_ids)) != len(member_ids):
        raise AllocationError("Duplicate attendee ids")

    negatives = [name for name, value in amounts.items() if value < 0]
    if negatives:
        raise AllocationError(f"Amounts must not be negative: {', '.join(negatives)}")

    attendees = set(member_ids)
    for name, ids in (flag_id_lists or {}).items():
        strangers = set(ids) - attendees
        if strangers:
            raise AllocationError(f"{name} contains non-attendees: {sorted(strangers)}")


def _game_fee_component(flags: MemberFlags, game_fee_per_game: int) -> int:
    if flags.exclude_game:
        return 0
    if flags.is_discounted:
        # Halve the per-game rate first, then multiply
        return flags.game_count * (game_fee_per_game // 2)
    return flags.game_count * game_fee_per_game


def _team_amount(member_id: int, config: CostConfig) -> int:
    if not config.is_team_match:
        return 0
    if member_id in config.winner_team_member_ids:
        return config.winner_team_amount
    if member_id in config.loser_team_member_ids:
        return config.loser_team_amount
    return 0


def calculate_member_amount(member_id: int, config: CostConfig, flags: MemberFlags) -> int:
    """
    Calculate what one member owes.

    Order: game fee, other fee, food fee, penalty, team amount, clamp at 0,
    then round up to the settlement unit.
    """
    amount = _game_fee_component(flags, config.game_fee_per_game)
    amount += config.other_per_person
    amount += 0 if flags.exclude_food else config.food_per_person

    if flags.has_penalty:
        amount += config.penalty_amount

    amount += _team_amount(member_id, config)

    amount = max(amount, 0)
    return round_up_to_unit(amount)


def allocate(
    member_ids: List[int],
    config: CostConfig,
    flags: Dict[int, MemberFlags]
) -> List[SettlementMemberDraft]:
    """
    Allocate owed amounts per member (PER_MEMBER strategy).

    Members missing from `flags` are treated as having no flags and 0 games.
    The sum of the drafts is not reconciled with the settlement total.
    """
    validate_allocation_input(
        member_ids,
        {
            "game_fee_per_game": config.game_fee_per_game,
            "other_per_person": config.other_per_person,
            "food_per_person": config.food_per_person,
            "penalty_amount": config.penalty_amount,
        }
    )
    negative_counts = [mid for mid, f in flags.items() if f.game_count < 0]
    if negative_counts:
        raise AllocationError(f"Game counts must not be negative: {sorted(negative_counts)}")

    default_flags = MemberFlags()
    drafts = []
    for member_id in member_ids:
        member_flags = flags.get(member_id, default_flags)
        amount = calculate_member_amount(member_id, config, member_flags)
        logger.debug(f"Allocated {amount} to member {member_id} ({member_flags})")
        drafts.append(SettlementMemberDraft(
            member_id=member_id,
            amount=amount,
            exclude_food=member_flags.exclude_food,
            exclude_game=member_flags.exclude_game,
            has_penalty=member_flags.has_penalty,
            is_discounted=member_flags.is_discounted,
        ))
    return drafts


def allocate_equal_split(
    member_ids: List[int],
    game_fee: int,
    food_fee: int,
    other_fee: int,
    exclude_food_ids: Iterable[int] = ()
) -> List[SettlementMemberDraft]:
    """
    Split aggregate totals evenly (EQUAL_SPLIT strategy).

    Game and other fees are shared by every attendee, the food fee only by
    attendees who are not excluded from food. Both divisions truncate and the
    remainders are not assigned to anyone. A zero food participant count
    yields a food share of 0.
    """
    exclude_food_ids = set(exclude_food_ids)
    validate_allocation_input(
        member_ids,
        {"game_fee": game_fee, "food_fee": food_fee, "other_fee": other_fee},
        {"exclude_food_ids": exclude_food_ids}
    )

    member_count = len(member_ids)
    food_participant_count = member_count - len(exclude_food_ids)

    base_per_person = (game_fee + other_fee) // member_count
    food_per_person = food_fee // food_participant_count if food_participant_count > 0 else 0

    dropped = (game_fee + other_fee) % member_count
    if food_participant_count > 0:
        dropped += food_fee % food_participant_count
    if dropped:
        logger.debug(f"Equal split leaves {dropped} unassigned")

    drafts = []
    for member_id in member_ids:
        excluded = member_id in exclude_food_ids
        drafts.append(SettlementMemberDraft(
            member_id=member_id,
            amount=base_per_person if excluded else base_per_person + food_per_person,
            exclude_food=excluded,
        ))
    return drafts


def derive_per_person_rates(
    food_fee: int,
    other_fee: int,
    member_count: int,
    exclude_food_count: int = 0
) -> Tuple[int, int]:
    """
    Derive flat per-person add-ons from entered totals.

    The other fee is shared by everyone and the food fee only by food
    participants. Each share is rounded up to the settlement unit.

    Returns:
        (other_per_person, food_per_person)
    """
    if member_count <= 0:
        return 0, 0
    food_participant_count = member_count - exclude_food_count
    other_raw = other_fee // member_count
    food_raw = food_fee // food_participant_count if food_participant_count > 0 else 0
    return round_up_to_unit(other_raw), round_up_to_unit(food_raw)


def baseline_per_person(config: CostConfig) -> int:
    """Reference amount for a member playing the representative game count."""
    representative_game_fee = settings.REPRESENTATIVE_GAME_COUNT * config.game_fee_per_game
    return representative_game_fee + config.other_per_person + config.food_per_person
