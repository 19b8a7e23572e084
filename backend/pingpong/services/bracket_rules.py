"""
Bracket Rules: Round Enumeration, Seeding Schedule, Points (Single Source of Truth)

This module defines the fixed round order, the declarative round-size schedule
used by the generator and the standings calculator, and the points schedule.
All other modules must import from here. Do NOT duplicate these rules elsewhere.
"""

import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Literal, Mapping, Optional, Tuple

from pingpong.services.errors import ValidationError

# =============================================================================
# Rounds
# =============================================================================

Round = Literal[
    "play_in",
    "round_2",
    "round_3",
    "round_4",
    "sweet_16",
    "elite_8",
    "final_four",
    "championship",
]

ROUND_PLAY_IN = "play_in"
ROUND_2 = "round_2"
ROUND_3 = "round_3"
ROUND_4 = "round_4"
ROUND_SWEET_16 = "sweet_16"
ROUND_ELITE_8 = "elite_8"
ROUND_FINAL_FOUR = "final_four"
ROUND_CHAMPIONSHIP = "championship"

ROUND_ORDER: List[str] = [
    ROUND_PLAY_IN,
    ROUND_2,
    ROUND_3,
    ROUND_4,
    ROUND_SWEET_16,
    ROUND_ELITE_8,
    ROUND_FINAL_FOUR,
    ROUND_CHAMPIONSHIP,
]

ROUND_NAMES: Dict[str, str] = {
    ROUND_PLAY_IN: "Play-In",
    ROUND_2: "Round 2",
    ROUND_3: "Round 3",
    ROUND_4: "Round 4",
    ROUND_SWEET_16: "Sweet 16",
    ROUND_ELITE_8: "Elite 8",
    ROUND_FINAL_FOUR: "Final Four",
    ROUND_CHAMPIONSHIP: "Championship",
}


def round_index(round_code: str) -> int:
    """0-based position of a round in ROUND_ORDER. Raises ValidationError for unknown codes."""
    try:
        return ROUND_ORDER.index(round_code)
    except ValueError:
        raise ValidationError(f"Unknown round: {round_code!r}") from None


# =============================================================================
# Match state
# =============================================================================

STATUS_PENDING = "PENDING"
STATUS_READY = "READY"
STATUS_COMPLETED = "COMPLETED"

MatchStatus = Literal["PENDING", "READY", "COMPLETED"]

FEED_COUNTER = "COUNTER"
FEED_STRUCTURAL = "STRUCTURAL"

SLOT_FIELDS: Dict[int, str] = {1: "player1_id", 2: "player2_id"}


def slot_field(slot: int) -> str:
    if slot not in SLOT_FIELDS:
        raise ValidationError(f"Invalid slot: {slot!r} (expected 1 or 2)")
    return SLOT_FIELDS[slot]


def status_for_slots(player1_id: Optional[int], player2_id: Optional[int]) -> str:
    """READY when both slots are observed filled, else PENDING. Never returns COMPLETED."""
    if player1_id is not None and player2_id is not None:
        return STATUS_READY
    return STATUS_PENDING


# =============================================================================
# Tournament defaults
# =============================================================================

DEFAULT_GROUP_SIZE = 4
DEFAULT_BEST_OF = 3
PORTFOLIO_SELECTION_COUNT = 5

# Elite-8 match q defines quadrant q; earlier rounds inherit through their feeds.
QUADRANT_ROUND = ROUND_ELITE_8


def display_seed(rank: int, group_size: int = DEFAULT_GROUP_SIZE) -> int:
    """Coarse human-facing seed: ranks 1-4 -> 1, 5-8 -> 2, ... for group_size 4."""
    if group_size < 1:
        raise ValidationError(f"group_size must be positive, got {group_size}")
    return math.ceil(rank / group_size)


def games_to_win(best_of: int) -> int:
    """Games needed to take a best-of-N match (best of 3 -> 2)."""
    if best_of < 1 or best_of % 2 == 0:
        raise ValidationError(f"best_of must be a positive odd number, got {best_of}")
    return best_of // 2 + 1


# =============================================================================
# Round-size schedule
# =============================================================================


@dataclass(frozen=True)
class EntryTier:
    """A round where directly seeded ranks enter the draw.

    Ranks first_rank..last_rank enter in this round. The best W of them face the
    W winners of the previous round; the rest are paired highest-vs-lowest.
    """

    round: str
    first_rank: int
    last_rank: int
    match_count: int

    @property
    def band_size(self) -> int:
        return self.last_rank - self.first_rank + 1

    @property
    def ranks(self) -> range:
        return range(self.first_rank, self.last_rank + 1)


@dataclass(frozen=True)
class BracketSchedule:
    """
    Declarative round-size schedule.

    tiers: entry rounds in play order (the first tier holds the weakest ranks).
    halving_rounds: rounds after the last tier, each with half the matches of the
    round before it, ending in the championship.
    """

    tiers: Tuple[EntryTier, ...]
    halving_rounds: Tuple[str, ...]

    def __post_init__(self) -> None:
        if not self.tiers:
            raise ValidationError("Schedule needs at least one entry tier")

        rounds = self.rounds
        start = round_index(rounds[0])
        if rounds != ROUND_ORDER[start:]:
            raise ValidationError(
                f"Schedule rounds must be a contiguous run ending in the championship, got {rounds}"
            )

        if self.tiers[-1].first_rank != 1:
            raise ValidationError("Last entry tier must start at rank 1")
        for earlier, later in zip(self.tiers, self.tiers[1:]):
            if earlier.first_rank != later.last_rank + 1:
                raise ValidationError(
                    f"Rank bands of {later.round} and {earlier.round} must be adjacent"
                )

        upstream = 0
        for tier in self.tiers:
            if tier.first_rank > tier.last_rank:
                raise ValidationError(f"{tier.round}: empty rank band")
            if upstream > tier.band_size:
                raise ValidationError(
                    f"{tier.round}: {upstream} upstream winners but only {tier.band_size} direct ranks"
                )
            if tier.band_size + upstream != 2 * tier.match_count:
                raise ValidationError(
                    f"{tier.round}: {tier.band_size} direct ranks + {upstream} winners "
                    f"cannot fill {tier.match_count} matches"
                )
            upstream = tier.match_count

        count = self.tiers[-1].match_count
        for round_code in self.halving_rounds:
            if count % 2:
                raise ValidationError(f"{round_code}: cannot halve {count} matches")
            count //= 2
        if count != 1:
            raise ValidationError(f"Final round must have one match, got {count}")

    @property
    def rounds(self) -> List[str]:
        return [t.round for t in self.tiers] + list(self.halving_rounds)

    @property
    def entrant_count(self) -> int:
        return self.tiers[0].last_rank

    def tier_for(self, round_code: str) -> Optional[EntryTier]:
        for tier in self.tiers:
            if tier.round == round_code:
                return tier
        return None

    def match_count(self, round_code: str) -> int:
        counts = self.match_counts()
        if round_code not in counts:
            raise ValidationError(f"Round {round_code!r} is not part of this schedule")
        return counts[round_code]

    def match_counts(self) -> Dict[str, int]:
        counts = {t.round: t.match_count for t in self.tiers}
        count = self.tiers[-1].match_count
        for round_code in self.halving_rounds:
            count //= 2
            counts[round_code] = count
        return counts

    @property
    def total_matches(self) -> int:
        return sum(self.match_counts().values())

    def starting_round(self, rank: int) -> str:
        """Round in which a rank enters the draw."""
        for tier in self.tiers:
            if tier.first_rank <= rank <= tier.last_rank:
                return tier.round
        raise ValidationError(f"Rank {rank} outside 1..{self.entrant_count}")

    def rounds_to_play(self, rank: int) -> int:
        """Wins needed from the starting round to take the championship."""
        rounds = self.rounds
        return len(rounds) - rounds.index(self.starting_round(rank))


REFERENCE_SCHEDULE = BracketSchedule(
    tiers=(
        EntryTier(ROUND_PLAY_IN, first_rank=53, last_rank=76, match_count=12),
        EntryTier(ROUND_2, first_rank=33, last_rank=52, match_count=16),
        EntryTier(ROUND_3, first_rank=17, last_rank=32, match_count=16),
        EntryTier(ROUND_4, first_rank=1, last_rank=16, match_count=16),
    ),
    halving_rounds=(ROUND_SWEET_16, ROUND_ELITE_8, ROUND_FINAL_FOUR, ROUND_CHAMPIONSHIP),
)


# =============================================================================
# Points
# =============================================================================


def _linear_win_value(k: int) -> int:
    return k


@dataclass(frozen=True)
class PointsSchedule:
    """
    Points for the portfolio side competition.

    Reference schedule: the k-th win is worth k points (w wins -> w(w+1)/2),
    reaching the final four +1, reaching the championship +2, champion +3.
    """

    round_bonuses: Mapping[str, int] = field(
        default_factory=lambda: {ROUND_FINAL_FOUR: 1, ROUND_CHAMPIONSHIP: 2}
    )
    champion_bonus: int = 3
    win_value: Callable[[int], int] = _linear_win_value

    def win_points(self, wins: int) -> int:
        return self.win_points_between(1, wins)

    def win_points_between(self, first_win: int, last_win: int) -> int:
        """Sum of win values for wins first_win..last_win inclusive (0 if empty)."""
        return sum(self.win_value(k) for k in range(first_win, last_win + 1))


REFERENCE_POINTS = PointsSchedule()
