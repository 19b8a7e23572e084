from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pingpong.models.tournament import Tournament


class PortfolioEntry(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "analyst_name", name="uq_tournament_analyst"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    analyst_name: str
    selections: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))  # player names
    tiebreaker: Optional[str] = Field(default=None)  # player name
    predicted_winner: Optional[str] = Field(default=None)  # player name
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="portfolio_entries")
