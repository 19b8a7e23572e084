"""Tests for bracket_rules: round order, schedule validation, seeds and points."""

import pytest

from pingpong.services.bracket_rules import (
    REFERENCE_POINTS,
    REFERENCE_SCHEDULE,
    ROUND_ORDER,
    BracketSchedule,
    EntryTier,
    PointsSchedule,
    display_seed,
    games_to_win,
    round_index,
    slot_field,
    status_for_slots,
)
from pingpong.services.errors import ValidationError


class TestRounds:
    def test_round_index_follows_order(self):
        assert round_index("play_in") == 0
        assert round_index("championship") == len(ROUND_ORDER) - 1

    def test_unknown_round_rejected(self):
        with pytest.raises(ValidationError):
            round_index("round_of_64")

    def test_slot_field(self):
        assert slot_field(1) == "player1_id"
        assert slot_field(2) == "player2_id"
        with pytest.raises(ValidationError):
            slot_field(3)

    def test_status_for_slots(self):
        assert status_for_slots(1, 2) == "READY"
        assert status_for_slots(1, None) == "PENDING"
        assert status_for_slots(None, None) == "PENDING"


class TestReferenceSchedule:
    def test_match_counts(self):
        assert REFERENCE_SCHEDULE.match_counts() == {
            "play_in": 12,
            "round_2": 16,
            "round_3": 16,
            "round_4": 16,
            "sweet_16": 8,
            "elite_8": 4,
            "final_four": 2,
            "championship": 1,
        }
        assert REFERENCE_SCHEDULE.total_matches == 75
        assert REFERENCE_SCHEDULE.entrant_count == 76

    @pytest.mark.parametrize(
        "rank,expected",
        [(1, "round_4"), (16, "round_4"), (17, "round_3"), (32, "round_3"),
         (33, "round_2"), (52, "round_2"), (53, "play_in"), (76, "play_in")],
    )
    def test_starting_round(self, rank, expected):
        assert REFERENCE_SCHEDULE.starting_round(rank) == expected

    def test_rounds_to_play(self):
        assert REFERENCE_SCHEDULE.rounds_to_play(1) == 5
        assert REFERENCE_SCHEDULE.rounds_to_play(20) == 6
        assert REFERENCE_SCHEDULE.rounds_to_play(40) == 7
        assert REFERENCE_SCHEDULE.rounds_to_play(60) == 8

    def test_rank_outside_schedule(self):
        with pytest.raises(ValidationError):
            REFERENCE_SCHEDULE.starting_round(77)


class TestScheduleValidation:
    def test_irregular_schedule(self):
        # 6 players: ranks 3-6 play in, ranks 1-2 wait for a winner each
        schedule = BracketSchedule(
            tiers=(
                EntryTier("elite_8", 3, 6, 2),
                EntryTier("final_four", 1, 2, 2),
            ),
            halving_rounds=("championship",),
        )
        assert schedule.entrant_count == 6
        assert schedule.total_matches == 5
        assert schedule.rounds_to_play(1) == 2
        assert schedule.rounds_to_play(6) == 3

    def test_halving_only_schedule(self):
        schedule = BracketSchedule(
            tiers=(EntryTier("elite_8", 1, 8, 4),),
            halving_rounds=("final_four", "championship"),
        )
        assert schedule.total_matches == 7
        assert schedule.rounds == ["elite_8", "final_four", "championship"]

    def test_bands_must_tile(self):
        with pytest.raises(ValidationError):
            BracketSchedule(
                tiers=(
                    EntryTier("sweet_16", 10, 17, 4),
                    EntryTier("elite_8", 1, 8, 8),
                ),
                halving_rounds=("final_four", "championship"),
            )

    def test_slots_must_fill(self):
        with pytest.raises(ValidationError):
            BracketSchedule(
                tiers=(EntryTier("elite_8", 1, 7, 4),),
                halving_rounds=("final_four", "championship"),
            )

    def test_must_end_in_championship(self):
        with pytest.raises(ValidationError):
            BracketSchedule(
                tiers=(EntryTier("sweet_16", 1, 16, 8),),
                halving_rounds=("elite_8", "final_four"),
            )

    def test_must_halve_to_one_match(self):
        with pytest.raises(ValidationError):
            BracketSchedule(
                tiers=(EntryTier("final_four", 1, 6, 3),),
                halving_rounds=("championship",),
            )


class TestSeedsAndGames:
    @pytest.mark.parametrize("rank,seed", [(1, 1), (4, 1), (5, 2), (76, 19)])
    def test_display_seed(self, rank, seed):
        assert display_seed(rank, 4) == seed

    def test_games_to_win(self):
        assert games_to_win(3) == 2
        assert games_to_win(5) == 3
        assert games_to_win(1) == 1

    def test_even_best_of_rejected(self):
        with pytest.raises(ValidationError):
            games_to_win(4)


class TestPoints:
    def test_triangular_win_points(self):
        assert REFERENCE_POINTS.win_points(0) == 0
        assert REFERENCE_POINTS.win_points(6) == 21
        assert REFERENCE_POINTS.win_points_between(7, 8) == 15
        assert REFERENCE_POINTS.win_points_between(9, 8) == 0

    def test_custom_win_value(self):
        flat = PointsSchedule(win_value=lambda k: 2)
        assert flat.win_points(4) == 8
