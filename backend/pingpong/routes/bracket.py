"""
Bracket API Routes
Seeds a tournament from a pasted seed table and lists its players and matches.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from pingpong.database import get_session
from pingpong.models.match import Match
from pingpong.routes.common import get_tournament_or_404, match_store_for, raise_http
from pingpong.services.bracket_rules import ROUND_NAMES
from pingpong.services.errors import BracketError
from pingpong.services.seeding_service import seed_tournament
from pingpong.utils.csv_import import parse_seed_csv

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class SeedBracketRequest(BaseModel):
    raw_text: str  # seed table CSV: rank,name


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    rank: int
    name: str
    display_seed: int
    quadrant: Optional[int] = None


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    round: str
    round_name: str = ""
    match_number: int
    quadrant: Optional[int] = None
    quadrant_match_number: Optional[int] = None
    player1_id: Optional[int] = None
    player2_id: Optional[int] = None
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    game_scores: Optional[List[Dict[str, Any]]] = None
    winner_id: Optional[int] = None
    next_match_id: Optional[int] = None
    next_match_slot: Optional[int] = None
    feed_policy: Optional[str] = None
    status: str
    completed_at: Optional[datetime] = None


class SeedBracketResponse(BaseModel):
    tournament_id: int
    players_created: int
    matches_created: int
    matches_per_round: Dict[str, int]


def match_to_response(m: Match) -> MatchResponse:
    response = MatchResponse.model_validate(m)
    response.round_name = ROUND_NAMES.get(m.round, m.round)
    return response


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/tournaments/{tournament_id}/bracket/seed",
    response_model=SeedBracketResponse,
    status_code=201,
)
def seed_bracket(
    tournament_id: int,
    payload: SeedBracketRequest,
    session: Session = Depends(get_session),
) -> SeedBracketResponse:
    """Generate players and every match slot from a seed table. 409 if already seeded."""
    tournament = get_tournament_or_404(session, tournament_id)
    store = match_store_for(session, tournament_id)
    try:
        seeds = parse_seed_csv(payload.raw_text)
        result = seed_tournament(store, seeds, group_size=tournament.group_size)
    except BracketError as exc:
        raise_http(exc)

    per_round: Dict[str, int] = {}
    for m in result.matches:
        per_round[m.round] = per_round.get(m.round, 0) + 1

    return SeedBracketResponse(
        tournament_id=tournament_id,
        players_created=len(result.players),
        matches_created=len(result.matches),
        matches_per_round=per_round,
    )


@router.get("/tournaments/{tournament_id}/players", response_model=List[PlayerResponse])
def get_players(tournament_id: int, session: Session = Depends(get_session)):
    """Players ordered by rank."""
    get_tournament_or_404(session, tournament_id)
    return match_store_for(session, tournament_id).get_all_players()


@router.get("/tournaments/{tournament_id}/matches", response_model=List[MatchResponse])
def get_matches(
    tournament_id: int,
    status: Optional[str] = Query(None, description="PENDING | READY | COMPLETED"),
    round: Optional[str] = Query(None),
    session: Session = Depends(get_session),
):
    """Matches ordered by round then match number, optionally filtered."""
    get_tournament_or_404(session, tournament_id)
    matches = match_store_for(session, tournament_id).get_all_matches()
    if status:
        matches = [m for m in matches if m.status == status.upper()]
    if round:
        matches = [m for m in matches if m.round == round]
    return [match_to_response(m) for m in matches]


@router.get("/tournaments/{tournament_id}/matches/{match_id}", response_model=MatchResponse)
def get_match(tournament_id: int, match_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    try:
        match = match_store_for(session, tournament_id).get_match(match_id)
    except BracketError as exc:
        raise_http(exc)
    return match_to_response(match)
