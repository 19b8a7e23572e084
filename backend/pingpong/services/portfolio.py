"""Portfolio Aggregator: rank analysts by the summed standings of their selections."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from pingpong.services.standings import PlayerStanding


@dataclass(frozen=True)
class PortfolioPicks:
    analyst_name: str
    selections: Sequence[str]
    tiebreaker: Optional[str] = None
    predicted_winner: Optional[str] = None


@dataclass
class PortfolioStanding:
    picks: PortfolioPicks
    points: int = 0
    max_points: int = 0  # sum of points + max_remaining_points
    players_remaining: int = 0
    unmatched_selections: List[str] = field(default_factory=list)
    predicted_winner_alive: bool = False

    @property
    def analyst_name(self) -> str:
        return self.picks.analyst_name


def portfolio_sort_key(s: PortfolioStanding):
    """points desc, max points desc, analyst name asc."""
    return (-s.points, -s.max_points, s.analyst_name)


def calculate_portfolio_standings(
    portfolios: Iterable[PortfolioPicks],
    standings: Iterable[PlayerStanding],
) -> List[PortfolioStanding]:
    """
    Sum each portfolio's selected players, looked up by name.

    Names with no matching player contribute nothing and are listed in
    unmatched_selections.
    """
    by_name: Dict[str, PlayerStanding] = {s.name: s for s in standings}

    results: List[PortfolioStanding] = []
    for picks in portfolios:
        result = PortfolioStanding(picks=picks)
        for name in picks.selections:
            standing = by_name.get(name)
            if standing is None:
                result.unmatched_selections.append(name)
                continue
            result.points += standing.points
            result.max_points += standing.max_points
            if not standing.eliminated:
                result.players_remaining += 1

        winner = by_name.get(picks.predicted_winner) if picks.predicted_winner else None
        result.predicted_winner_alive = winner is not None and not winner.eliminated
        results.append(result)

    results.sort(key=portfolio_sort_key)
    return results
