"""
Standings Calculator: per-player points for the portfolio competition.

Pure projection over a snapshot of matches and players; safe to recompute on
every read. Points come from the PointsSchedule:
  - win points: sum of win_value(k) for k = 1..wins (reference: 1 + 2 + ... + wins)
  - milestone bonuses: for appearing in a slot of a bonus round (final four, championship)
  - champion bonus: winner of the completed championship match
max_remaining_points is what a player still alive could add by winning out.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from pingpong.services.bracket_rules import (
    REFERENCE_POINTS,
    REFERENCE_SCHEDULE,
    ROUND_CHAMPIONSHIP,
    ROUND_FINAL_FOUR,
    STATUS_COMPLETED,
    BracketSchedule,
    PointsSchedule,
)


@dataclass(frozen=True)
class PlayerStanding:
    player_id: int
    rank: int
    name: str
    display_seed: int
    starting_round: str
    wins: int
    win_points: int
    bonus_points: int
    max_remaining_points: int
    eliminated: bool
    reached_rounds: FrozenSet[str]
    is_champion: bool

    @property
    def points(self) -> int:
        return self.win_points + self.bonus_points

    @property
    def max_points(self) -> int:
        return self.points + self.max_remaining_points

    @property
    def reached_final_four(self) -> bool:
        return ROUND_FINAL_FOUR in self.reached_rounds

    @property
    def reached_championship(self) -> bool:
        return ROUND_CHAMPIONSHIP in self.reached_rounds


def _is_completed(match) -> bool:
    return match.status == STATUS_COMPLETED and match.winner_id is not None


def standings_sort_key(s: PlayerStanding):
    """points desc, max remaining desc, rank asc, name asc."""
    return (-s.points, -s.max_remaining_points, s.rank, s.name)


def calculate_standings(
    matches: Iterable,
    players: Iterable,
    schedule: BracketSchedule = REFERENCE_SCHEDULE,
    points: PointsSchedule = REFERENCE_POINTS,
) -> List[PlayerStanding]:
    """
    Standings for every player, in display order.

    matches/players: Match and Player rows (or anything with the same attributes).
    """
    matches = list(matches)
    players = list(players)

    wins: Dict[int, int] = {}
    eliminated: Set[int] = set()
    reached: Dict[int, Set[str]] = {}
    champion_id: Optional[int] = None

    for m in matches:
        for pid in (m.player1_id, m.player2_id):
            if pid is not None:
                reached.setdefault(pid, set()).add(m.round)

        if not _is_completed(m):
            continue
        wins[m.winner_id] = wins.get(m.winner_id, 0) + 1
        for pid in (m.player1_id, m.player2_id):
            if pid is not None and pid != m.winner_id:
                eliminated.add(pid)
        if m.round == ROUND_CHAMPIONSHIP:
            champion_id = m.winner_id

    standings: List[PlayerStanding] = []
    for p in players:
        player_wins = wins.get(p.id, 0)
        player_rounds = frozenset(reached.get(p.id, set()))
        is_champion = champion_id == p.id
        is_eliminated = p.id in eliminated

        bonus = sum(v for r, v in points.round_bonuses.items() if r in player_rounds)
        if is_champion:
            bonus += points.champion_bonus

        max_remaining = 0
        if not is_eliminated and not is_champion:
            max_remaining += points.win_points_between(player_wins + 1, schedule.rounds_to_play(p.rank))
            max_remaining += sum(v for r, v in points.round_bonuses.items() if r not in player_rounds)
            max_remaining += points.champion_bonus

        standings.append(
            PlayerStanding(
                player_id=p.id,
                rank=p.rank,
                name=p.name,
                display_seed=p.display_seed,
                starting_round=schedule.starting_round(p.rank),
                wins=player_wins,
                win_points=points.win_points(player_wins),
                bonus_points=bonus,
                max_remaining_points=max_remaining,
                eliminated=is_eliminated,
                reached_rounds=player_rounds,
                is_champion=is_champion,
            )
        )

    standings.sort(key=standings_sort_key)
    return standings
