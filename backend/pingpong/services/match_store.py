"""
Match storage: the read/write-by-id contract the engine works against.

Contract (both implementations):
- get_all_matches() ordered by round then match number; get_all_players() by rank.
- update_match(id, fields, expected) is atomic per call. `expected` is a
  compare-and-swap guard: every listed field must still hold the given value or
  ConcurrentUpdateError is raised and nothing is written.
- atomic() groups several calls into one unit of work where the backend can.
- Committed match changes are published to the ChangeFeed, if one is attached.
"""

from __future__ import annotations

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence

from sqlmodel import Session, select

from pingpong.models.match import Match
from pingpong.models.player import Player
from pingpong.services.change_feed import EVENT_INSERT, EVENT_UPDATE, ChangeEvent, ChangeFeed
from pingpong.services.errors import ConcurrentUpdateError, NotFoundError

logger = logging.getLogger(__name__)

MATCH_TABLE = "match"

# Fields the engine and the seeding linker may write after insert
UPDATABLE_MATCH_FIELDS = frozenset(
    {
        "player1_id",
        "player2_id",
        "player1_score",
        "player2_score",
        "game_scores",
        "winner_id",
        "status",
        "completed_at",
        "next_match_id",
        "next_match_slot",
        "feed_policy",
    }
)


def match_row(match: Match) -> Dict[str, Any]:
    """Plain dict of a match's columns (the change-feed row payload)."""
    return match.model_dump()


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_MATCH_FIELDS
    if unknown:
        raise ValueError(f"Fields not updatable: {sorted(unknown)}")


def _check_expected(match_id: int, current: Mapping[str, Any], expected: Optional[Mapping[str, Any]]) -> None:
    for name, value in (expected or {}).items():
        if current.get(name) != value:
            raise ConcurrentUpdateError(match_id, name, value, current.get(name))


class MatchStore(Protocol):
    def get_all_matches(self) -> List[Match]: ...

    def get_all_players(self) -> List[Player]: ...

    def get_match(self, match_id: int) -> Match: ...

    def update_match(
        self,
        match_id: int,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Match: ...

    def insert_players(self, players: Sequence[Player]) -> List[Player]: ...

    def insert_matches(self, matches: Sequence[Match]) -> List[Match]: ...

    def atomic(self): ...


# ============================================================================
# SQL (SQLModel session)
# ============================================================================


class SqlMatchStore:
    """MatchStore over a SQLModel session, scoped to one tournament."""

    def __init__(self, session: Session, tournament_id: int, feed: Optional[ChangeFeed] = None):
        self.session = session
        self.tournament_id = tournament_id
        self.feed = feed
        self._depth = 0
        self._pending: List[ChangeEvent] = []

    # -- unit of work -------------------------------------------------------

    @contextmanager
    def atomic(self) -> Iterator["SqlMatchStore"]:
        """Defer commits until the outermost block exits; roll back on error."""
        self._depth += 1
        try:
            yield self
        except Exception:
            self._depth -= 1
            if self._depth == 0:
                self.session.rollback()
                self._pending.clear()
            raise
        self._depth -= 1
        if self._depth == 0:
            self._commit_and_publish()

    def _commit(self) -> None:
        if self._depth:
            self.session.flush()
        else:
            self._commit_and_publish()

    def _commit_and_publish(self) -> None:
        # Events of a failed commit describe rows that were never written.
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            self._pending.clear()
            raise
        self._flush_events()

    def _emit(self, event_type: str, match: Match) -> None:
        if self.feed is not None:
            self._pending.append(ChangeEvent(event_type, MATCH_TABLE, match_row(match)))

    def _flush_events(self) -> None:
        events, self._pending = self._pending, []
        for event in events:
            self.feed.publish(event)

    # -- reads --------------------------------------------------------------

    def get_all_matches(self) -> List[Match]:
        return list(
            self.session.exec(
                select(Match)
                .where(Match.tournament_id == self.tournament_id)
                .order_by(Match.round_index, Match.match_number)
            ).all()
        )

    def get_all_players(self) -> List[Player]:
        return list(
            self.session.exec(
                select(Player).where(Player.tournament_id == self.tournament_id).order_by(Player.rank)
            ).all()
        )

    def get_match(self, match_id: int) -> Match:
        # Always re-read: the engine decides slot writes from what the row holds now.
        match = self.session.get(Match, match_id, populate_existing=True)
        if not match or match.tournament_id != self.tournament_id:
            raise NotFoundError(f"Match {match_id} not found")
        return match

    # -- writes -------------------------------------------------------------

    def update_match(
        self,
        match_id: int,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Match:
        _check_fields(fields)
        # Row lock where supported (PostgreSQL); SQLite serializes writers itself.
        match = self.session.exec(
            select(Match)
            .where(Match.id == match_id, Match.tournament_id == self.tournament_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).first()
        if not match:
            raise NotFoundError(f"Match {match_id} not found")

        current = {name: getattr(match, name) for name in (expected or {})}
        try:
            _check_expected(match_id, current, expected)
        except ConcurrentUpdateError:
            if not self._depth:
                self.session.rollback()
            raise

        for name, value in fields.items():
            setattr(match, name, value)
        match.updated_at = datetime.now(timezone.utc)
        self.session.add(match)
        self._emit(EVENT_UPDATE, match)
        self._commit()
        self.session.refresh(match)
        return match

    def insert_players(self, players: Sequence[Player]) -> List[Player]:
        for p in players:
            p.tournament_id = self.tournament_id
            self.session.add(p)
        self.session.flush()
        inserted = list(players)
        self._commit()
        for p in inserted:
            self.session.refresh(p)
        return inserted

    def insert_matches(self, matches: Sequence[Match]) -> List[Match]:
        for m in matches:
            m.tournament_id = self.tournament_id
            self.session.add(m)
        self.session.flush()
        inserted = list(matches)
        for m in inserted:
            self._emit(EVENT_INSERT, m)
        self._commit()
        for m in inserted:
            self.session.refresh(m)
        return inserted


# ============================================================================
# In-memory
# ============================================================================


class InMemoryMatchStore:
    """
    MatchStore held in dicts. Reads hand out fresh Match/Player objects, so
    callers cannot change stored state except through update_match.
    """

    def __init__(self, tournament_id: int = 1, feed: Optional[ChangeFeed] = None):
        self.tournament_id = tournament_id
        self.feed = feed
        self._matches: Dict[int, Dict[str, Any]] = {}
        self._players: Dict[int, Dict[str, Any]] = {}
        self._next_match_id = 1
        self._next_player_id = 1
        self._lock = threading.RLock()
        self._depth = 0
        self._pending: List[ChangeEvent] = []
        self.update_count = 0

    @contextmanager
    def atomic(self) -> Iterator["InMemoryMatchStore"]:
        with self._lock:
            saved = None
            if self._depth == 0:
                saved = (
                    copy.deepcopy(self._matches),
                    copy.deepcopy(self._players),
                    self._next_match_id,
                    self._next_player_id,
                )
            self._depth += 1
            try:
                yield self
            except Exception:
                self._depth -= 1
                if saved is not None:
                    self._matches, self._players, self._next_match_id, self._next_player_id = saved
                    self._pending.clear()
                raise
            self._depth -= 1
            if self._depth == 0:
                self._flush_events()

    def _emit(self, event_type: str, row: Dict[str, Any]) -> None:
        if self.feed is not None:
            self._pending.append(ChangeEvent(event_type, MATCH_TABLE, dict(row)))
            if not self._depth:
                self._flush_events()

    def _flush_events(self) -> None:
        events, self._pending = self._pending, []
        for event in events:
            self.feed.publish(event)

    def get_all_matches(self) -> List[Match]:
        with self._lock:
            rows = sorted(self._matches.values(), key=lambda r: (r["round_index"], r["match_number"]))
            return [Match(**copy.deepcopy(r)) for r in rows]

    def get_all_players(self) -> List[Player]:
        with self._lock:
            rows = sorted(self._players.values(), key=lambda r: r["rank"])
            return [Player(**dict(r)) for r in rows]

    def get_match(self, match_id: int) -> Match:
        with self._lock:
            row = self._matches.get(match_id)
            if row is None:
                raise NotFoundError(f"Match {match_id} not found")
            return Match(**copy.deepcopy(row))

    def update_match(
        self,
        match_id: int,
        fields: Mapping[str, Any],
        expected: Optional[Mapping[str, Any]] = None,
    ) -> Match:
        _check_fields(fields)
        with self._lock:
            row = self._matches.get(match_id)
            if row is None:
                raise NotFoundError(f"Match {match_id} not found")
            _check_expected(match_id, row, expected)
            row.update(copy.deepcopy(dict(fields)))
            row["updated_at"] = datetime.now(timezone.utc)
            self.update_count += 1
            self._emit(EVENT_UPDATE, row)
            return Match(**copy.deepcopy(row))

    def insert_players(self, players: Sequence[Player]) -> List[Player]:
        inserted = []
        with self._lock:
            for p in players:
                row = p.model_dump()
                row["id"] = self._next_player_id
                row["tournament_id"] = self.tournament_id
                self._next_player_id += 1
                self._players[row["id"]] = row
                inserted.append(Player(**dict(row)))
        return inserted

    def insert_matches(self, matches: Sequence[Match]) -> List[Match]:
        inserted = []
        with self._lock:
            for m in matches:
                row = m.model_dump()
                row["id"] = self._next_match_id
                row["tournament_id"] = self.tournament_id
                self._next_match_id += 1
                self._matches[row["id"]] = row
                self._emit(EVENT_INSERT, row)
                inserted.append(Match(**copy.deepcopy(row)))
        return inserted
