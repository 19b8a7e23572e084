"""
Result parser for best-of-N matches.

Accepts either form reported by the result submission surface:
  {"player1_score": 2, "player2_score": 1}                    aggregate games won
  {"game_scores": [{"p1": 15, "p2": 10}, {"p1": 8, "p2": 15}, ...]}

Game rules:
  - a game counts only if at least one side scored > 0 (0-0 rows are unplayed)
  - a counted game cannot be tied
  - the winner is the first side to take best_of // 2 + 1 counted games;
    no counted game may follow the deciding one

Raises ValidationError on anything malformed; the input is never partially applied.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pingpong.services.bracket_rules import DEFAULT_BEST_OF, games_to_win
from pingpong.services.errors import ValidationError


@dataclass(frozen=True)
class ParsedResult:
    player1_score: int  # games won by slot 1
    player2_score: int  # games won by slot 2
    game_scores: Optional[List[Dict[str, int]]]  # counted games only, None for aggregate reports
    winner_slot: int  # 1 | 2


def _to_score(value: Any, label: str) -> int:
    """Non-negative integer score. bool, float and non-numeric strings are rejected."""
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if isinstance(value, int):
        score = value
    elif isinstance(value, str) and value.strip().isdigit():
        score = int(value.strip())
    else:
        raise ValidationError(f"{label} must be an integer, got {value!r}")
    if score < 0:
        raise ValidationError(f"{label} cannot be negative")
    return score


def parse_aggregate(player1_score: Any, player2_score: Any, best_of: int = DEFAULT_BEST_OF) -> ParsedResult:
    need = games_to_win(best_of)
    s1 = _to_score(player1_score, "player1_score")
    s2 = _to_score(player2_score, "player2_score")
    if s1 == s2:
        raise ValidationError("Scores cannot be tied - there must be a winner")
    if max(s1, s2) != need:
        raise ValidationError(f"Winner must have exactly {need} games (best of {best_of})")
    return ParsedResult(
        player1_score=s1,
        player2_score=s2,
        game_scores=None,
        winner_slot=1 if s1 > s2 else 2,
    )


def parse_game_scores(games: Sequence[Any], best_of: int = DEFAULT_BEST_OF) -> ParsedResult:
    if isinstance(games, (str, bytes)) or not isinstance(games, Sequence):
        raise ValidationError("game_scores must be a list of {p1, p2} objects")

    need = games_to_win(best_of)
    counted: List[Dict[str, int]] = []
    wins = {1: 0, 2: 0}
    winner_slot: Optional[int] = None

    for number, game in enumerate(games, start=1):
        if not isinstance(game, Mapping) or "p1" not in game or "p2" not in game:
            raise ValidationError(f"Game {number}: expected an object with p1 and p2")
        p1 = _to_score(game["p1"], f"Game {number} p1")
        p2 = _to_score(game["p2"], f"Game {number} p2")
        if p1 == 0 and p2 == 0:
            continue
        if p1 == p2:
            raise ValidationError(f"Game {number}: tied score {p1}-{p2}")
        if winner_slot is not None:
            raise ValidationError(f"Game {number}: played after the match was already decided")

        counted.append({"p1": p1, "p2": p2})
        side = 1 if p1 > p2 else 2
        wins[side] += 1
        if wins[side] == need:
            winner_slot = side

    if winner_slot is None:
        raise ValidationError(
            f"No winner: a player must win {need} games (best of {best_of}), "
            f"got {wins[1]}-{wins[2]}"
        )

    return ParsedResult(
        player1_score=wins[1],
        player2_score=wins[2],
        game_scores=counted,
        winner_slot=winner_slot,
    )


def parse_result(payload: Mapping[str, Any], best_of: int = DEFAULT_BEST_OF) -> ParsedResult:
    """Parse a result submission. game_scores wins over aggregates; both must agree if both are sent."""
    if not isinstance(payload, Mapping):
        raise ValidationError("Result must be an object")

    games = payload.get("game_scores")
    p1 = payload.get("player1_score")
    p2 = payload.get("player2_score")

    if games is not None:
        parsed = parse_game_scores(games, best_of)
        if p1 is not None or p2 is not None:
            reported = (
                _to_score(p1, "player1_score") if p1 is not None else None,
                _to_score(p2, "player2_score") if p2 is not None else None,
            )
            if reported != (parsed.player1_score, parsed.player2_score):
                raise ValidationError(
                    f"Aggregate {p1}-{p2} disagrees with game scores "
                    f"{parsed.player1_score}-{parsed.player2_score}"
                )
        return parsed

    if p1 is None or p2 is None:
        raise ValidationError("Provide player1_score and player2_score, or game_scores")
    return parse_aggregate(p1, p2, best_of)
