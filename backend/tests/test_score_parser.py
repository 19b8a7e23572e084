"""Tests for best-of-N result parsing (aggregate and per-game)."""

import pytest

from pingpong.services.errors import ValidationError
from pingpong.services.score_parser import parse_aggregate, parse_game_scores, parse_result


class TestGameScores:
    def test_three_game_match(self):
        parsed = parse_result(
            {"game_scores": [{"p1": 15, "p2": 10}, {"p1": 8, "p2": 15}, {"p1": 15, "p2": 12}]}
        )
        assert parsed.winner_slot == 1
        assert (parsed.player1_score, parsed.player2_score) == (2, 1)
        assert len(parsed.game_scores) == 3

    def test_single_game_has_no_winner(self):
        with pytest.raises(ValidationError):
            parse_result({"game_scores": [{"p1": 15, "p2": 10}]})

    def test_straight_games(self):
        parsed = parse_game_scores([{"p1": 3, "p2": 11}, {"p1": 9, "p2": 11}])
        assert parsed.winner_slot == 2
        assert (parsed.player1_score, parsed.player2_score) == (0, 2)

    def test_unplayed_games_skipped(self):
        parsed = parse_game_scores(
            [{"p1": 11, "p2": 4}, {"p1": 0, "p2": 0}, {"p1": 11, "p2": 9}, {"p1": 0, "p2": 0}]
        )
        assert parsed.winner_slot == 1
        assert parsed.game_scores == [{"p1": 11, "p2": 4}, {"p1": 11, "p2": 9}]

    def test_tied_game_rejected(self):
        with pytest.raises(ValidationError):
            parse_game_scores([{"p1": 11, "p2": 11}, {"p1": 11, "p2": 3}])

    def test_game_after_decision_rejected(self):
        with pytest.raises(ValidationError):
            parse_game_scores([{"p1": 11, "p2": 3}, {"p1": 11, "p2": 5}, {"p1": 4, "p2": 11}])

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            parse_game_scores([{"p1": -1, "p2": 11}, {"p1": 3, "p2": 11}])

    def test_non_numeric_rejected(self):
        with pytest.raises(ValidationError):
            parse_game_scores([{"p1": "eleven", "p2": 3}, {"p1": 11, "p2": 3}])

    def test_numeric_strings_accepted(self):
        parsed = parse_game_scores([{"p1": "11", "p2": "3"}, {"p1": "11", "p2": "5"}])
        assert parsed.winner_slot == 1

    def test_missing_keys_rejected(self):
        with pytest.raises(ValidationError):
            parse_game_scores([{"p1": 11}])

    def test_best_of_five(self):
        games = [{"p1": 11, "p2": 3}, {"p1": 3, "p2": 11}, {"p1": 11, "p2": 3}, {"p1": 11, "p2": 8}]
        parsed = parse_game_scores(games, best_of=5)
        assert (parsed.player1_score, parsed.player2_score) == (3, 1)


class TestAggregate:
    def test_aggregate_winner(self):
        parsed = parse_aggregate(1, 2)
        assert parsed.winner_slot == 2
        assert parsed.game_scores is None

    def test_tied_aggregate_rejected(self):
        with pytest.raises(ValidationError):
            parse_aggregate(1, 1)

    def test_winner_must_meet_threshold(self):
        with pytest.raises(ValidationError):
            parse_aggregate(1, 0)
        with pytest.raises(ValidationError):
            parse_aggregate(3, 0)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError):
            parse_aggregate(True, 2)

    def test_float_rejected(self):
        with pytest.raises(ValidationError):
            parse_aggregate(2.0, 1)


class TestParseResult:
    def test_aggregate_must_agree_with_games(self):
        games = [{"p1": 11, "p2": 3}, {"p1": 11, "p2": 5}]
        assert parse_result({"game_scores": games, "player1_score": 2, "player2_score": 0}).winner_slot == 1
        with pytest.raises(ValidationError):
            parse_result({"game_scores": games, "player1_score": 2, "player2_score": 1})

    def test_empty_payload_rejected(self):
        with pytest.raises(ValidationError):
            parse_result({})

    def test_half_aggregate_rejected(self):
        with pytest.raises(ValidationError):
            parse_result({"player1_score": 2})

    def test_non_mapping_rejected(self):
        with pytest.raises(ValidationError):
            parse_result([2, 1])
