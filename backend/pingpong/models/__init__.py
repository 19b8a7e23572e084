from pingpong.models.match import Match
from pingpong.models.player import Player
from pingpong.models.portfolio_entry import PortfolioEntry
from pingpong.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Player",
    "Match",
    "PortfolioEntry",
]
