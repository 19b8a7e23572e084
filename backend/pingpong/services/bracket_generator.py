"""
Bracket Generator: seed table -> complete match graph.

Pure and deterministic: identical seed input always yields an identical match
graph. Nothing here touches the database; persistence lives in seeding_service.

Feed wiring uses exactly one of two policies per match, decided once here and
carried on the match as a feed descriptor:

- CounterFeed: the downstream round has half as many matches and both of its
  slots start open. Target = ceil(n / 2), slot 1 for odd n, slot 2 for even n.
- StructuralFeed: the downstream match already holds a direct seed in one slot.
  Exactly one upstream match feeds it, always into the open slot, which is read
  off the downstream match as built from the schedule (never from parity).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List, Optional, Sequence, Tuple, Union

from pingpong.services.bracket_rules import (
    DEFAULT_GROUP_SIZE,
    FEED_COUNTER,
    FEED_STRUCTURAL,
    QUADRANT_ROUND,
    REFERENCE_SCHEDULE,
    STATUS_PENDING,
    STATUS_READY,
    BracketSchedule,
    EntryTier,
    display_seed,
)
from pingpong.services.errors import ValidationError

logger = logging.getLogger(__name__)

MatchKey = Tuple[str, int]  # (round, match_number)


# ---------------------------------------------------------------------------
# Feed descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CounterFeed:
    round: str
    match_number: int
    slot: int
    policy: ClassVar[str] = FEED_COUNTER

    @property
    def target(self) -> MatchKey:
        return (self.round, self.match_number)


@dataclass(frozen=True)
class StructuralFeed:
    round: str
    match_number: int
    slot: int
    policy: ClassVar[str] = FEED_STRUCTURAL

    @property
    def target(self) -> MatchKey:
        return (self.round, self.match_number)


FeedDescriptor = Union[CounterFeed, StructuralFeed]


# ---------------------------------------------------------------------------
# Generated structures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SeedEntry:
    rank: int
    name: str


@dataclass(frozen=True)
class GeneratedPlayer:
    rank: int
    name: str
    display_seed: int
    quadrant: Optional[int] = None


@dataclass
class GeneratedMatch:
    round: str
    match_number: int
    player1_rank: Optional[int] = None
    player2_rank: Optional[int] = None
    feed: Optional[FeedDescriptor] = None
    quadrant: Optional[int] = None
    quadrant_match_number: Optional[int] = None

    @property
    def key(self) -> MatchKey:
        return (self.round, self.match_number)

    @property
    def status(self) -> str:
        if self.player1_rank is not None and self.player2_rank is not None:
            return STATUS_READY
        return STATUS_PENDING

    @property
    def open_slot(self) -> Optional[int]:
        """The single open slot of a half-seeded match, else None."""
        if self.player1_rank is None and self.player2_rank is not None:
            return 1
        if self.player2_rank is None and self.player1_rank is not None:
            return 2
        return None


@dataclass
class GeneratedBracket:
    players: List[GeneratedPlayer]
    matches: List[GeneratedMatch]
    schedule: BracketSchedule = field(repr=False, default=REFERENCE_SCHEDULE)

    def match(self, round_code: str, match_number: int) -> GeneratedMatch:
        for m in self.matches:
            if m.key == (round_code, match_number):
                return m
        raise KeyError((round_code, match_number))

    def feeders(self, round_code: str, match_number: int) -> List[GeneratedMatch]:
        """Matches whose winners feed the given match, ordered by target slot."""
        found = [m for m in self.matches if m.feed and m.feed.target == (round_code, match_number)]
        return sorted(found, key=lambda m: m.feed.slot)


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


def _expected_favourite(match: GeneratedMatch, favourites: Dict[MatchKey, int], feeders: List[GeneratedMatch]) -> int:
    """Best (lowest) rank that can reach this match if favourites always win."""
    candidates = [r for r in (match.player1_rank, match.player2_rank) if r is not None]
    candidates.extend(favourites[f.key] for f in feeders)
    return min(candidates)


def _build_entry_round(
    tier: EntryTier,
    previous: List[GeneratedMatch],
    favourites: Dict[MatchKey, int],
) -> List[GeneratedMatch]:
    """
    Build one entry round and wire the previous round into it.

    The best len(previous) direct ranks each get a winner-fed match (direct seed in
    slot 1, slot 2 open); the remaining direct ranks pair highest-vs-lowest.
    The best direct rank meets the upstream match with the weakest expected
    favourite, the second best the next weakest, and so on.
    """
    direct = list(tier.ranks)
    winner_fed = direct[: len(previous)]
    paired = direct[len(previous):]

    matches: List[GeneratedMatch] = []
    for rank in winner_fed:
        matches.append(GeneratedMatch(tier.round, len(matches) + 1, player1_rank=rank))
    for i in range(len(paired) // 2):
        matches.append(
            GeneratedMatch(
                tier.round,
                len(matches) + 1,
                player1_rank=paired[i],
                player2_rank=paired[-1 - i],
            )
        )

    upstream_order = sorted(previous, key=lambda m: (-favourites[m.key], m.match_number))
    fed_by: Dict[MatchKey, List[GeneratedMatch]] = {m.key: [] for m in matches}
    for downstream, upstream in zip(matches, upstream_order):
        slot = downstream.open_slot
        if slot is None:
            raise ValidationError(
                f"{downstream.round} #{downstream.match_number} has no open slot for a feeder"
            )
        upstream.feed = StructuralFeed(downstream.round, downstream.match_number, slot)
        fed_by[downstream.key].append(upstream)

    for m in matches:
        favourites[m.key] = _expected_favourite(m, favourites, fed_by[m.key])
    return matches


def _build_halving_round(round_code: str, previous: List[GeneratedMatch]) -> List[GeneratedMatch]:
    matches = [GeneratedMatch(round_code, n) for n in range(1, len(previous) // 2 + 1)]
    for upstream in previous:
        n = upstream.match_number
        upstream.feed = CounterFeed(round_code, math.ceil(n / 2), 1 if n % 2 else 2)
    return matches


def _assign_quadrants(matches: List[GeneratedMatch], schedule: BracketSchedule) -> None:
    rounds = schedule.rounds
    if QUADRANT_ROUND not in rounds:
        return

    by_key = {m.key: m for m in matches}
    for m in matches:
        if m.round == QUADRANT_ROUND:
            m.quadrant = m.match_number

    # Walk backwards so every feed target already carries its quadrant.
    for round_code in reversed(rounds[: rounds.index(QUADRANT_ROUND)]):
        for m in matches:
            if m.round == round_code and m.feed is not None:
                m.quadrant = by_key[m.feed.target].quadrant

    counters: Dict[Tuple[str, int], int] = {}
    for m in sorted(matches, key=lambda x: (rounds.index(x.round), x.match_number)):
        if m.quadrant is None:
            continue
        counter_key = (m.round, m.quadrant)
        counters[counter_key] = counters.get(counter_key, 0) + 1
        m.quadrant_match_number = counters[counter_key]


def generate_bracket_structure(schedule: BracketSchedule = REFERENCE_SCHEDULE) -> List[GeneratedMatch]:
    """
    Generate every match slot of the schedule, round by round in round order.

    Direct seeds are placed by rank; open slots are left None for winners.
    Every match except the championship carries a feed descriptor.
    """
    matches: List[GeneratedMatch] = []
    favourites: Dict[MatchKey, int] = {}
    previous: List[GeneratedMatch] = []

    for tier in schedule.tiers:
        current = _build_entry_round(tier, previous, favourites)
        matches.extend(current)
        previous = current

    for round_code in schedule.halving_rounds:
        current = _build_halving_round(round_code, previous)
        matches.extend(current)
        previous = current

    _assign_quadrants(matches, schedule)
    return matches


# ---------------------------------------------------------------------------
# Seed table
# ---------------------------------------------------------------------------


def validate_seed_table(seeds: Sequence[SeedEntry], schedule: BracketSchedule = REFERENCE_SCHEDULE) -> None:
    """Ranks must be dense 1..N (N = schedule size), unique; names non-empty and unique."""
    expected = schedule.entrant_count
    if len(seeds) != expected:
        raise ValidationError(f"Expected {expected} players, got {len(seeds)}")

    ranks = sorted(s.rank for s in seeds)
    if ranks != list(range(1, expected + 1)):
        missing = sorted(set(range(1, expected + 1)) - set(ranks))
        raise ValidationError(f"Ranks must be unique and cover 1..{expected}; missing {missing}")

    seen_names = set()
    for s in seeds:
        name = (s.name or "").strip()
        if not name:
            raise ValidationError(f"Rank {s.rank}: player name is empty")
        if name in seen_names:
            raise ValidationError(f"Duplicate player name: {name!r}")
        seen_names.add(name)


def generate_bracket(
    seeds: Sequence[SeedEntry],
    schedule: BracketSchedule = REFERENCE_SCHEDULE,
    group_size: int = DEFAULT_GROUP_SIZE,
) -> GeneratedBracket:
    """Seed table -> players and the full match set, ready for persistence."""
    validate_seed_table(seeds, schedule)
    matches = generate_bracket_structure(schedule)

    entry_quadrant: Dict[int, Optional[int]] = {}
    for m in matches:
        for rank in (m.player1_rank, m.player2_rank):
            if rank is not None:
                entry_quadrant[rank] = m.quadrant

    players = [
        GeneratedPlayer(
            rank=s.rank,
            name=s.name.strip(),
            display_seed=display_seed(s.rank, group_size),
            quadrant=entry_quadrant.get(s.rank),
        )
        for s in sorted(seeds, key=lambda s: s.rank)
    ]

    logger.debug(
        "Generated bracket: %d players, %d matches over %d rounds",
        len(players),
        len(matches),
        len(schedule.rounds),
    )
    return GeneratedBracket(players=players, matches=matches, schedule=schedule)
