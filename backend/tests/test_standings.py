"""Standings calculator: win points, milestone bonuses, max remaining, ordering."""

import random
from types import SimpleNamespace

import pytest

from pingpong.services.bracket_rules import REFERENCE_SCHEDULE
from pingpong.services.match_store import InMemoryMatchStore
from pingpong.services.progression_engine import report_result, simulate_higher_seed_wins
from pingpong.services.seeding_service import seed_tournament
from pingpong.services.standings import calculate_standings


def player(rank, name=None):
    return SimpleNamespace(id=rank, rank=rank, name=name or f"Player {rank}", display_seed=(rank + 3) // 4)


def match(round_code, p1, p2, winner=None):
    return SimpleNamespace(
        round=round_code,
        player1_id=p1,
        player2_id=p2,
        winner_id=winner,
        status="COMPLETED" if winner else ("READY" if p1 and p2 else "PENDING"),
    )


@pytest.fixture
def players():
    return [player(r) for r in range(1, 77)]


def standing_for(standings, rank):
    return next(s for s in standings if s.rank == rank)


def test_untouched_bracket(players):
    standings = calculate_standings([], players)
    top = standing_for(standings, 1)
    assert top.points == 0
    assert top.starting_round == "round_4"
    # 5 wins (15) + final four (1) + championship (2) + champion (3)
    assert top.max_remaining_points == 21

    bottom = standing_for(standings, 76)
    assert bottom.starting_round == "play_in"
    # 8 wins (36) + 6 in bonuses
    assert bottom.max_remaining_points == 42
    # equal points: more upside first
    assert standings[0].rank == 53


def test_deep_run_from_play_in(players):
    """Rank 60 wins six times and loses in the final four."""
    path = [
        match("play_in", 60, 69, 60),
        match("round_2", 37, 60, 60),
        match("round_3", 21, 60, 60),
        match("round_4", 12, 60, 60),
        match("sweet_16", 60, 11, 60),
        match("elite_8", 60, 3, 60),
        match("final_four", 60, 1, 1),
        match("championship", 1, None),
    ]
    standings = calculate_standings(path, players)
    s = standing_for(standings, 60)
    assert s.wins == 6
    assert s.win_points == 21
    assert s.bonus_points == 1
    assert s.points == 22
    assert s.eliminated
    assert s.max_remaining_points == 0
    assert s.reached_final_four and not s.reached_championship


def test_alive_player_counts_unearned_bonuses(players):
    path = [
        match("final_four", 1, 9, 1),
        match("championship", 1, None),
    ]
    s = standing_for(calculate_standings(path, players), 1)
    assert s.wins == 1
    # reached both milestone rounds
    assert s.bonus_points == 3
    assert s.points == 4
    # wins 2..5 (14) + champion (3)
    assert s.max_remaining_points == 17
    assert not s.eliminated


def test_champion(players):
    path = [
        match("championship", 1, 9, 9),
    ]
    standings = calculate_standings(path, players)
    champ = standing_for(standings, 9)
    assert champ.is_champion
    assert champ.bonus_points == 2 + 3
    assert champ.max_remaining_points == 0
    runner_up = standing_for(standings, 1)
    assert runner_up.eliminated and not runner_up.is_champion
    assert runner_up.max_remaining_points == 0


def test_sort_order_breaks_ties_by_rank_then_name():
    tied = [player(5, "Zed"), player(4, "Amy"), SimpleNamespace(id=99, rank=5, name="Abe", display_seed=2)]
    standings = calculate_standings([], tied)
    assert [(s.rank, s.name) for s in standings] == [(4, "Amy"), (5, "Abe"), (5, "Zed")]


def test_full_simulation(store):
    simulate_higher_seed_wins(store)
    standings = calculate_standings(store.get_all_matches(), store.get_all_players())

    champions = [s for s in standings if s.is_champion]
    assert len(champions) == 1
    champ = champions[0]
    assert champ.rank == 1
    assert champ.points == 15 + 1 + 2 + 3
    assert standings[0] is champ
    assert all(s.max_remaining_points == 0 for s in standings)
    assert sum(1 for s in standings if not s.eliminated) == 1


def test_partial_tournament_from_store(store):
    play_in = next(m for m in store.get_all_matches() if m.round == "play_in" and m.match_number == 1)
    report_result(store, play_in.id, {"player1_score": 2, "player2_score": 1})
    standings = calculate_standings(store.get_all_matches(), store.get_all_players())

    winner = standing_for(standings, 53)
    assert (winner.wins, winner.points) == (1, 1)
    loser = standing_for(standings, 76)
    assert loser.eliminated and loser.max_remaining_points == 0


@pytest.mark.parametrize("rng_seed", range(8))
def test_random_tournament_keeps_standings_bounded(seeds, rng_seed):
    """Play a bracket out with random winners and check standings after every result."""
    rng = random.Random(rng_seed)
    tournament = InMemoryMatchStore()
    seed_tournament(tournament, seeds)

    initial = calculate_standings(tournament.get_all_matches(), tournament.get_all_players())
    max_remaining = {s.player_id: s.max_remaining_points for s in initial}
    ceiling = {s.player_id: s.points + s.max_remaining_points for s in initial}

    reported = 0
    while True:
        ready = [m for m in tournament.get_all_matches() if m.status == "READY"]
        if not ready:
            break
        m = rng.choice(ready)
        score = {"player1_score": 2, "player2_score": rng.randint(0, 1)}
        if rng.random() < 0.5:
            score = {"player1_score": score["player2_score"], "player2_score": 2}
        report_result(tournament, m.id, score)
        reported += 1

        for s in calculate_standings(tournament.get_all_matches(), tournament.get_all_players()):
            assert s.max_remaining_points <= max_remaining[s.player_id]
            assert s.points <= ceiling[s.player_id]
            max_remaining[s.player_id] = s.max_remaining_points
            ceiling[s.player_id] = min(ceiling[s.player_id], s.points + s.max_remaining_points)

    assert reported == REFERENCE_SCHEDULE.total_matches
    standings = calculate_standings(tournament.get_all_matches(), tournament.get_all_players())
    champions = [s for s in standings if s.is_champion]
    assert len(champions) == 1
    champ = champions[0]

    played = [
        m.round
        for m in tournament.get_all_matches()
        if champ.player_id in (m.player1_id, m.player2_id) and m.status == "COMPLETED"
    ]
    rounds = REFERENCE_SCHEDULE.rounds
    assert played == rounds[rounds.index(champ.starting_round):]
    assert champ.wins == len(played)
    assert champ.max_remaining_points == 0
