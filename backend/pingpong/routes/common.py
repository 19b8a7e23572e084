"""Shared route helpers: tournament lookup, store construction, domain error mapping."""

from typing import NoReturn

from fastapi import HTTPException
from sqlmodel import Session

from pingpong.models.tournament import Tournament
from pingpong.services.change_feed import ChangeFeed
from pingpong.services.errors import (
    BracketError,
    ConcurrentUpdateError,
    InconsistentStateError,
    NotFoundError,
    ValidationError,
)
from pingpong.services.match_store import SqlMatchStore

# App-wide feed of committed match changes
match_feed = ChangeFeed()

_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ValidationError, 422),
    (ConcurrentUpdateError, 409),
    (InconsistentStateError, 409),
)


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def match_store_for(session: Session, tournament_id: int) -> SqlMatchStore:
    return SqlMatchStore(session, tournament_id, feed=match_feed)


def raise_http(exc: BracketError) -> NoReturn:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail=str(exc)) from exc
    raise HTTPException(status_code=500, detail=str(exc)) from exc
