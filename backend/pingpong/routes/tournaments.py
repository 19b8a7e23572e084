from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from pingpong.database import get_session
from pingpong.models.tournament import Tournament
from pingpong.routes.common import get_tournament_or_404
from pingpong.services.bracket_rules import DEFAULT_BEST_OF, DEFAULT_GROUP_SIZE

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    group_size: int = DEFAULT_GROUP_SIZE
    best_of: int = DEFAULT_BEST_OF
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("group_size")
    @classmethod
    def validate_group_size(cls, v):
        if v < 1:
            raise ValueError("group_size must be positive")
        return v

    @field_validator("best_of")
    @classmethod
    def validate_best_of(cls, v):
        if v < 1 or v % 2 == 0:
            raise ValueError("best_of must be a positive odd number")
        return v


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    group_size: int
    best_of: int
    notes: Optional[str] = None
    created_at: datetime


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(payload: TournamentCreate, session: Session = Depends(get_session)):
    tournament = Tournament(**payload.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    return get_tournament_or_404(session, tournament_id)
