from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

from pingpong.services.bracket_rules import DEFAULT_BEST_OF, DEFAULT_GROUP_SIZE

if TYPE_CHECKING:
    from pingpong.models.match import Match
    from pingpong.models.player import Player
    from pingpong.models.portfolio_entry import PortfolioEntry


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    group_size: int = Field(default=DEFAULT_GROUP_SIZE)  # ranks per display seed
    best_of: int = Field(default=DEFAULT_BEST_OF)  # games per match
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    players: List["Player"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
    portfolio_entries: List["PortfolioEntry"] = Relationship(back_populates="tournament")
