"""
Runtime: report, undo and re-advance match results.
Every write goes through the progression engine, which moves winners downstream.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session

from pingpong.database import get_session
from pingpong.routes.bracket import MatchResponse, match_to_response
from pingpong.routes.common import get_tournament_or_404, match_store_for, raise_http
from pingpong.services.errors import BracketError
from pingpong.services.progression_engine import (
    advance_match,
    report_result,
    simulate_higher_seed_wins,
    undo_result,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class ResultSubmission(BaseModel):
    player1_score: Optional[int] = None
    player2_score: Optional[int] = None
    game_scores: Optional[List[Dict[str, Any]]] = None  # [{"p1": 11, "p2": 7}, ...]

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ResultResponse(BaseModel):
    success: bool = True
    winner_id: int
    changed: bool
    advanced: bool
    reverted_match_ids: List[int] = []
    match: MatchResponse


class UndoResponse(BaseModel):
    success: bool = True
    reverted_match_ids: List[int] = []
    match: MatchResponse


class AdvanceResponse(BaseModel):
    success: bool = True
    advanced: bool
    match: MatchResponse


class SimulateResponse(BaseModel):
    matches_completed: int


@router.patch(
    "/tournaments/{tournament_id}/matches/{match_id}/result",
    response_model=ResultResponse,
)
def submit_result(
    tournament_id: int,
    match_id: int,
    payload: ResultSubmission,
    session: Session = Depends(get_session),
) -> ResultResponse:
    """Record a result (aggregate or per-game) and advance the winner.
    Re-submitting the same result is a no-op; a different winner reverts downstream first."""
    tournament = get_tournament_or_404(session, tournament_id)
    store = match_store_for(session, tournament_id)
    try:
        outcome = report_result(store, match_id, payload.to_payload(), tournament.best_of)
    except BracketError as exc:
        raise_http(exc)

    return ResultResponse(
        winner_id=outcome.winner_id,
        changed=outcome.changed,
        advanced=outcome.advanced,
        reverted_match_ids=outcome.reverted_match_ids,
        match=match_to_response(store.get_match(match_id)),
    )


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/undo",
    response_model=UndoResponse,
)
def undo_match_result(
    tournament_id: int,
    match_id: int,
    session: Session = Depends(get_session),
) -> UndoResponse:
    get_tournament_or_404(session, tournament_id)
    store = match_store_for(session, tournament_id)
    try:
        outcome = undo_result(store, match_id)
    except BracketError as exc:
        raise_http(exc)
    return UndoResponse(
        reverted_match_ids=outcome.reverted_match_ids,
        match=match_to_response(store.get_match(match_id)),
    )


@router.post(
    "/tournaments/{tournament_id}/matches/{match_id}/advance",
    response_model=AdvanceResponse,
)
def advance_match_winner(
    tournament_id: int,
    match_id: int,
    session: Session = Depends(get_session),
) -> AdvanceResponse:
    """Repair: re-run propagation of a completed match's winner."""
    get_tournament_or_404(session, tournament_id)
    store = match_store_for(session, tournament_id)
    try:
        advanced = advance_match(store, match_id)
    except BracketError as exc:
        raise_http(exc)
    return AdvanceResponse(advanced=advanced, match=match_to_response(store.get_match(match_id)))


@router.post(
    "/tournaments/{tournament_id}/dev/simulate",
    response_model=SimulateResponse,
)
def simulate_tournament(tournament_id: int, session: Session = Depends(get_session)) -> SimulateResponse:
    """DEV-ONLY: play out every remaining match with the better-ranked player winning."""
    tournament = get_tournament_or_404(session, tournament_id)
    store = match_store_for(session, tournament_id)
    try:
        completed = simulate_higher_seed_wins(store, tournament.best_of)
    except BracketError as exc:
        raise_http(exc)
    logger.warning("Simulated %d matches in tournament %d", completed, tournament_id)
    return SimulateResponse(matches_completed=completed)
