from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from pingpong.models.tournament import Tournament


class Player(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "rank", name="uq_tournament_player_rank"),
        # Portfolios reference players by name
        SAUniqueConstraint("tournament_id", "name", name="uq_tournament_player_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    rank: int  # 1..N, dense (1=best)
    name: str
    display_seed: int  # ceil(rank / group_size)
    quadrant: Optional[int] = Field(default=None)  # 1-4, quadrant of the match the rank enters
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="players")
