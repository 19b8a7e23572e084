"""
Persist a generated bracket: players, matches, then the next-match links.

Runs as one unit of work on the store, so a tournament is either fully seeded
or untouched.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

from pingpong.models.match import Match
from pingpong.models.player import Player
from pingpong.services.bracket_generator import SeedEntry, generate_bracket
from pingpong.services.bracket_rules import (
    DEFAULT_GROUP_SIZE,
    REFERENCE_SCHEDULE,
    BracketSchedule,
    round_index,
)
from pingpong.services.errors import InconsistentStateError
from pingpong.services.match_store import MatchStore

logger = logging.getLogger(__name__)


@dataclass
class SeedingResult:
    players: List[Player]
    matches: List[Match]


def seed_tournament(
    store: MatchStore,
    seeds: Sequence[SeedEntry],
    schedule: BracketSchedule = REFERENCE_SCHEDULE,
    group_size: int = DEFAULT_GROUP_SIZE,
) -> SeedingResult:
    """
    Generate the bracket for `seeds` and write it through `store`.

    Raises:
        ValidationError: seed table does not fit the schedule
        InconsistentStateError: the tournament already has matches
    """
    if store.get_all_matches():
        raise InconsistentStateError("Tournament already has a bracket")

    bracket = generate_bracket(seeds, schedule, group_size)

    with store.atomic():
        players = store.insert_players(
            [
                Player(
                    rank=p.rank,
                    name=p.name,
                    display_seed=p.display_seed,
                    quadrant=p.quadrant,
                )
                for p in bracket.players
            ]
        )
        id_by_rank: Dict[int, int] = {p.rank: p.id for p in players}

        inserted = store.insert_matches(
            [
                Match(
                    round=gm.round,
                    round_index=round_index(gm.round),
                    match_number=gm.match_number,
                    quadrant=gm.quadrant,
                    quadrant_match_number=gm.quadrant_match_number,
                    player1_id=id_by_rank.get(gm.player1_rank),
                    player2_id=id_by_rank.get(gm.player2_rank),
                    status=gm.status,
                    feed_policy=gm.feed.policy if gm.feed else None,
                )
                for gm in bracket.matches
            ]
        )
        id_by_key = {(m.round, m.match_number): m.id for m in inserted}

        linked: List[Match] = []
        for gm, m in zip(bracket.matches, inserted):
            if gm.feed is None:
                linked.append(m)
                continue
            linked.append(
                store.update_match(
                    m.id,
                    {"next_match_id": id_by_key[gm.feed.target], "next_match_slot": gm.feed.slot},
                )
            )

    per_round = Counter(m.round for m in linked)
    logger.info(
        "Seeded tournament: %d players, %d matches (%s)",
        len(players),
        len(linked),
        ", ".join(f"{r}: {per_round[r]}" for r in schedule.rounds),
    )
    return SeedingResult(players=players, matches=linked)
