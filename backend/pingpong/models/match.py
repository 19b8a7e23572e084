from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON, UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

from pingpong.services.bracket_rules import STATUS_PENDING

if TYPE_CHECKING:
    from pingpong.models.tournament import Tournament


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint("tournament_id", "round", "match_number", name="uq_match_round_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    round: str  # "play_in" | "round_2" | ... | "championship"
    round_index: int  # position of round in ROUND_ORDER, for ordering
    match_number: int  # 1-based within round
    quadrant: Optional[int] = Field(default=None)  # None for final four / championship
    quadrant_match_number: Optional[int] = Field(default=None)

    # Slots (null until a direct seed or an upstream winner fills them)
    player1_id: Optional[int] = Field(default=None, foreign_key="player.id")
    player2_id: Optional[int] = Field(default=None, foreign_key="player.id")

    # Result
    player1_score: Optional[int] = Field(default=None)
    player2_score: Optional[int] = Field(default=None)
    game_scores: Optional[List[Dict[str, Any]]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    winner_id: Optional[int] = Field(default=None, foreign_key="player.id")

    # Downstream feed
    next_match_id: Optional[int] = Field(default=None, foreign_key="match.id")
    next_match_slot: Optional[int] = Field(default=None)  # 1 | 2
    feed_policy: Optional[str] = Field(default=None)  # "COUNTER" | "STRUCTURAL"

    status: str = Field(default=STATUS_PENDING)  # "PENDING" | "READY" | "COMPLETED"
    completed_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")
