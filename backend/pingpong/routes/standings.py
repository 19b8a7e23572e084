"""Standings and portfolio routes: player points table, portfolio import and ranking."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlmodel import Session, select

from pingpong.database import get_session
from pingpong.models.portfolio_entry import PortfolioEntry
from pingpong.routes.common import get_tournament_or_404, match_store_for
from pingpong.services.portfolio import PortfolioPicks, calculate_portfolio_standings
from pingpong.services.standings import PlayerStanding, calculate_standings
from pingpong.utils.csv_import import parse_portfolio_csv

logger = logging.getLogger(__name__)

router = APIRouter(tags=["standings"])


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------


class PlayerStandingResponse(BaseModel):
    player_id: int
    rank: int
    name: str
    display_seed: int
    starting_round: str
    wins: int
    points: int
    max_remaining_points: int
    max_points: int
    eliminated: bool
    reached_final_four: bool
    reached_championship: bool
    is_champion: bool


class PortfolioImportRequest(BaseModel):
    raw_text: str  # CSV export of the picks form
    clear_existing: bool = True  # Remove existing portfolios before import


class ImportedPortfolioResult(BaseModel):
    line_number: int
    analyst_name: str
    status: str = "created"  # created | skipped | error
    error: Optional[str] = None


class PortfolioImportResponse(BaseModel):
    tournament_id: int
    total_parsed: int
    created: int
    skipped: int
    errors: int
    portfolios: List[ImportedPortfolioResult]


class PortfolioStandingResponse(BaseModel):
    analyst_name: str
    points: int
    max_points: int
    players_remaining: int
    selections: List[str]
    unmatched_selections: List[str]
    tiebreaker: Optional[str] = None
    predicted_winner: Optional[str] = None
    predicted_winner_alive: bool


def _standing_to_response(s: PlayerStanding) -> PlayerStandingResponse:
    return PlayerStandingResponse(
        player_id=s.player_id,
        rank=s.rank,
        name=s.name,
        display_seed=s.display_seed,
        starting_round=s.starting_round,
        wins=s.wins,
        points=s.points,
        max_remaining_points=s.max_remaining_points,
        max_points=s.max_points,
        eliminated=s.eliminated,
        reached_final_four=s.reached_final_four,
        reached_championship=s.reached_championship,
        is_champion=s.is_champion,
    )


def _current_standings(session: Session, tournament_id: int) -> List[PlayerStanding]:
    store = match_store_for(session, tournament_id)
    return calculate_standings(store.get_all_matches(), store.get_all_players())


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/tournaments/{tournament_id}/standings", response_model=List[PlayerStandingResponse])
def get_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Every player's points and max remaining, best first."""
    get_tournament_or_404(session, tournament_id)
    return [_standing_to_response(s) for s in _current_standings(session, tournament_id)]


@router.post(
    "/tournaments/{tournament_id}/portfolios/import",
    response_model=PortfolioImportResponse,
)
def import_portfolios(
    tournament_id: int,
    request: PortfolioImportRequest,
    session: Session = Depends(get_session),
) -> PortfolioImportResponse:
    """Import analyst portfolios. Malformed rows are reported and skipped; the rest are stored."""
    get_tournament_or_404(session, tournament_id)

    existing = session.exec(
        select(PortfolioEntry).where(PortfolioEntry.tournament_id == tournament_id)
    ).all()
    if request.clear_existing:
        for entry in existing:
            session.delete(entry)
        session.flush()
        existing_names = set()
        logger.info("Cleared %d existing portfolios for tournament %d", len(existing), tournament_id)
    else:
        existing_names = {e.analyst_name for e in existing}

    results: List[ImportedPortfolioResult] = []
    for row in parse_portfolio_csv(request.raw_text):
        result = ImportedPortfolioResult(line_number=row.line_number, analyst_name=row.analyst_name)
        results.append(result)
        if not row.ok:
            result.status = "error"
            result.error = row.error
            continue
        if row.analyst_name in existing_names:
            result.status = "skipped"
            result.error = "Analyst already has a portfolio"
            continue
        session.add(
            PortfolioEntry(
                tournament_id=tournament_id,
                analyst_name=row.analyst_name,
                selections=row.selections,
                tiebreaker=row.tiebreaker,
                predicted_winner=row.predicted_winner,
            )
        )
        existing_names.add(row.analyst_name)

    session.commit()

    created = sum(1 for r in results if r.status == "created")
    skipped = sum(1 for r in results if r.status == "skipped")
    errors = sum(1 for r in results if r.status == "error")
    logger.info(
        "Portfolio import for tournament %d: %d created, %d skipped, %d errors",
        tournament_id,
        created,
        skipped,
        errors,
    )
    return PortfolioImportResponse(
        tournament_id=tournament_id,
        total_parsed=len(results),
        created=created,
        skipped=skipped,
        errors=errors,
        portfolios=results,
    )


@router.get(
    "/tournaments/{tournament_id}/portfolios/standings",
    response_model=List[PortfolioStandingResponse],
)
def get_portfolio_standings(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    entries = session.exec(
        select(PortfolioEntry).where(PortfolioEntry.tournament_id == tournament_id)
    ).all()
    picks = [
        PortfolioPicks(
            analyst_name=e.analyst_name,
            selections=list(e.selections or []),
            tiebreaker=e.tiebreaker,
            predicted_winner=e.predicted_winner,
        )
        for e in entries
    ]
    ranked = calculate_portfolio_standings(picks, _current_standings(session, tournament_id))
    return [
        PortfolioStandingResponse(
            analyst_name=s.analyst_name,
            points=s.points,
            max_points=s.max_points,
            players_remaining=s.players_remaining,
            selections=list(s.picks.selections),
            unmatched_selections=s.unmatched_selections,
            tiebreaker=s.picks.tiebreaker,
            predicted_winner=s.picks.predicted_winner,
            predicted_winner_alive=s.predicted_winner_alive,
        )
        for s in ranked
    ]
