"""
Progression Engine: apply a reported result to one match and move its winner on.

All match mutation after seeding goes through report_result and undo_result
(advance_match is a repair that re-runs the winner propagation on its own).

Downstream writes are compare-and-swap guarded on the target's slots and status,
and re-derive READY/PENDING from the slots actually observed. A lost race is
retried; a slot already holding a different player is a data-integrity error.
Propagation is idempotent, so a result whose downstream write failed can be
reported again (or advanced) to finish the job.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pingpong.models.match import Match
from pingpong.services.bracket_rules import (
    DEFAULT_BEST_OF,
    STATUS_COMPLETED,
    STATUS_PENDING,
    games_to_win,
    slot_field,
    status_for_slots,
)
from pingpong.services.errors import (
    ConcurrentUpdateError,
    InconsistentStateError,
    NotFoundError,
    ValidationError,
)
from pingpong.services.match_store import MatchStore
from pingpong.services.score_parser import ParsedResult, parse_result

logger = logging.getLogger(__name__)

MAX_CAS_ATTEMPTS = 3

_CLEARED_RESULT: Dict[str, Any] = {
    "player1_score": None,
    "player2_score": None,
    "game_scores": None,
    "winner_id": None,
    "completed_at": None,
}


@dataclass
class ProgressionOutcome:
    match: Match
    winner_id: int
    changed: bool  # False when the identical result was already recorded
    advanced: bool  # a downstream slot was written
    reverted_match_ids: List[int] = field(default_factory=list)


@dataclass
class UndoOutcome:
    match: Match
    reverted_match_ids: List[int] = field(default_factory=list)


def _same_result(match: Match, winner_id: int, parsed: ParsedResult) -> bool:
    return (
        match.status == STATUS_COMPLETED
        and match.winner_id == winner_id
        and match.player1_score == parsed.player1_score
        and match.player2_score == parsed.player2_score
        and (match.game_scores or None) == (parsed.game_scores or None)
    )


def _get_target(store: MatchStore, source: Match) -> Match:
    try:
        return store.get_match(source.next_match_id)
    except NotFoundError:
        raise InconsistentStateError(
            f"Match {source.id} feeds missing match {source.next_match_id}"
        ) from None


def _propagate(store: MatchStore, match: Match) -> bool:
    """
    Write match.winner_id into its downstream slot. Returns True if the slot was written.

    Already-propagated winners are left alone (only a stale READY/PENDING status is
    repaired). The target's status is derived from the slots as read in the same
    compare-and-swap round, never assumed.
    """
    if match.next_match_id is None or match.winner_id is None:
        return False
    slot_name = slot_field(match.next_match_slot)

    for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
        target = _get_target(store, match)
        occupant = getattr(target, slot_name)
        slots = {"player1_id": target.player1_id, "player2_id": target.player2_id}
        guard = dict(slots, status=target.status)

        if occupant is not None and occupant != match.winner_id:
            raise InconsistentStateError(
                f"Match {target.id} slot {match.next_match_slot} holds player {occupant}; "
                f"cannot place winner {match.winner_id} of match {match.id}"
            )

        if occupant == match.winner_id:
            derived = status_for_slots(**slots)
            if target.status == STATUS_COMPLETED or target.status == derived:
                return False
            try:
                store.update_match(target.id, {"status": derived}, expected=guard)
                logger.info("Repaired status of match %d to %s", target.id, derived)
            except ConcurrentUpdateError as exc:
                logger.warning("Status repair on match %d lost a race (attempt %d): %s", target.id, attempt, exc)
                continue
            return False

        if target.status == STATUS_COMPLETED:
            raise InconsistentStateError(
                f"Match {target.id} is completed but slot {match.next_match_slot} is empty"
            )

        slots[slot_name] = match.winner_id
        try:
            store.update_match(
                target.id,
                {slot_name: match.winner_id, "status": status_for_slots(**slots)},
                expected=guard,
            )
        except ConcurrentUpdateError as exc:
            logger.warning("Propagation into match %d lost a race (attempt %d): %s", target.id, attempt, exc)
            continue
        logger.info(
            "Advanced player %d from match %d into match %d slot %d",
            match.winner_id,
            match.id,
            target.id,
            match.next_match_slot,
        )
        return True

    raise InconsistentStateError(
        f"Could not propagate match {match.id} into match {match.next_match_id} "
        f"after {MAX_CAS_ATTEMPTS} attempts"
    )


def _downstream_chain(store: MatchStore, match: Match) -> List[Tuple[Match, str]]:
    """
    Matches holding a result derived from `match`, nearest first, as (match, slot field).

    Walks next_match_id while each step holds the previous winner; stops at the
    first match that never received it or that has no result of its own.
    """
    chain: List[Tuple[Match, str]] = []
    seen = {match.id}
    current = match
    while current.next_match_id is not None and current.winner_id is not None:
        target = _get_target(store, current)
        if target.id in seen:
            raise InconsistentStateError(f"Feed cycle through match {target.id}")
        seen.add(target.id)

        slot_name = slot_field(current.next_match_slot)
        occupant = getattr(target, slot_name)
        if occupant is None:
            break
        if occupant != current.winner_id:
            raise InconsistentStateError(
                f"Match {target.id} slot {current.next_match_slot} holds player {occupant}, "
                f"expected winner {current.winner_id} of match {current.id}"
            )
        chain.append((target, slot_name))
        if target.status != STATUS_COMPLETED:
            break
        current = target
    return chain


def _revert_downstream(store: MatchStore, match: Match) -> List[int]:
    """Clear everything `match`'s winner produced downstream, furthest match first."""
    chain = _downstream_chain(store, match)
    for target, slot_name in reversed(chain):
        fields: Dict[str, Any] = {slot_name: None, "status": STATUS_PENDING}
        if target.status == STATUS_COMPLETED:
            fields.update(_CLEARED_RESULT)
        store.update_match(
            target.id,
            fields,
            expected={slot_name: getattr(target, slot_name), "status": target.status},
        )
        logger.info("Reverted match %d (cleared %s)", target.id, slot_name)
    return [target.id for target, _ in chain]


def report_result(
    store: MatchStore,
    match_id: int,
    payload: Mapping[str, Any],
    best_of: int = DEFAULT_BEST_OF,
) -> ProgressionOutcome:
    """
    Record a result and propagate the winner.

    payload: {"player1_score", "player2_score"} or {"game_scores": [{"p1", "p2"}, ...]}.
    Re-reporting the identical result is a no-op apart from finishing any
    propagation that did not land. A different result on a completed match
    overwrites it; if the winner changes, everything the old winner produced
    downstream is reverted first.
    """
    parsed = parse_result(payload, best_of)
    match = store.get_match(match_id)

    if match.player1_id is None or match.player2_id is None:
        raise ValidationError(f"Match {match_id} is not ready: both players must be set")
    winner_id = match.player1_id if parsed.winner_slot == 1 else match.player2_id

    with store.atomic():
        if _same_result(match, winner_id, parsed):
            advanced = _propagate(store, match)
            logger.info("Match %d: identical result re-reported (advanced=%s)", match_id, advanced)
            return ProgressionOutcome(match=match, winner_id=winner_id, changed=False, advanced=advanced)

        reverted: List[int] = []
        completed_at: Optional[datetime] = match.completed_at
        if match.status == STATUS_COMPLETED and match.winner_id != winner_id:
            reverted = _revert_downstream(store, match)
            completed_at = None

        updated = store.update_match(
            match_id,
            {
                "player1_score": parsed.player1_score,
                "player2_score": parsed.player2_score,
                "game_scores": parsed.game_scores,
                "winner_id": winner_id,
                "status": STATUS_COMPLETED,
                "completed_at": completed_at or datetime.now(timezone.utc),
            },
            expected={
                "player1_id": match.player1_id,
                "player2_id": match.player2_id,
                "status": match.status,
                "winner_id": match.winner_id,
            },
        )
        advanced = _propagate(store, updated)

    logger.info(
        "Match %d completed %d-%d, winner %d (advanced=%s, reverted=%s)",
        match_id,
        parsed.player1_score,
        parsed.player2_score,
        winner_id,
        advanced,
        reverted,
    )
    return ProgressionOutcome(
        match=updated,
        winner_id=winner_id,
        changed=True,
        advanced=advanced,
        reverted_match_ids=reverted,
    )


def undo_result(store: MatchStore, match_id: int) -> UndoOutcome:
    """
    Reverse a completed match back to READY and revert everything its winner
    produced downstream (slot cleared, any result there cleared, onward).
    """
    match = store.get_match(match_id)
    if match.status != STATUS_COMPLETED:
        raise ValidationError(f"Match {match_id} has no result to undo")

    with store.atomic():
        reverted = _revert_downstream(store, match)
        fields = dict(_CLEARED_RESULT)
        fields["status"] = status_for_slots(match.player1_id, match.player2_id)
        restored = store.update_match(
            match_id,
            fields,
            expected={"status": STATUS_COMPLETED, "winner_id": match.winner_id},
        )

    logger.info("Undid match %d (reverted downstream: %s)", match_id, reverted)
    return UndoOutcome(match=restored, reverted_match_ids=reverted)


def advance_match(store: MatchStore, match_id: int) -> bool:
    """Re-run propagation for a completed match. Idempotent; True if a slot was written."""
    match = store.get_match(match_id)
    if match.status != STATUS_COMPLETED or match.winner_id is None:
        raise ValidationError(f"Match {match_id} must be completed with a winner to advance")
    with store.atomic():
        return _propagate(store, match)


def simulate_higher_seed_wins(store: MatchStore, best_of: int = DEFAULT_BEST_OF) -> int:
    """
    DEV-ONLY: complete every playable match, better rank winning in straight games.

    Plays round by round until nothing is READY. Returns the number of matches completed.
    """
    rank_by_id: Dict[int, int] = {p.id: p.rank for p in store.get_all_players()}
    need = games_to_win(best_of)
    completed = 0

    while True:
        ready = [
            m
            for m in store.get_all_matches()
            if m.status != STATUS_COMPLETED and m.player1_id is not None and m.player2_id is not None
        ]
        if not ready:
            return completed
        for m in ready:
            p1_wins = rank_by_id[m.player1_id] < rank_by_id[m.player2_id]
            payload = {"player1_score": need if p1_wins else 0, "player2_score": 0 if p1_wins else need}
            report_result(store, m.id, payload, best_of)
            completed += 1
