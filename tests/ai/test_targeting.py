"""Tests for the computer targeting engine."""

from __future__ import annotations

import random

import pytest
from gridbattle.ai.targeting import (
    Difficulty,
    HuntMode,
    TargetingEngine,
    neighbour_candidates,
    parity_pattern,
    run_end_candidates,
)
from gridbattle.engine.attack import AttackOutcome, Tally, resolve_attack
from gridbattle.engine.board import Board
from gridbattle.engine.errors import PreconditionViolation
from gridbattle.engine.fleet import FleetTracker
from gridbattle.engine.ship import PLAYER_ROSTER, Coordinate, Orientation, ShipSpec


def _sweep(engine: TargetingEngine, board: Board, fleet: FleetTracker) -> list[Coordinate]:
    """Let the engine attack `board` until every ship cell is hit."""
    tally = Tally()
    shots: list[Coordinate] = []
    while tally.hits < sum(board.placements[s].ship.cell_count for s in fleet.placed):
        target = engine.next_target()
        shots.append(target)
        report = resolve_attack(board, fleet, target, tally)
        assert report.outcome is not AttackOutcome.ALREADY_ATTACKED
        engine.register_outcome(report, board)
    return shots


def _full_fleet(seed: int) -> tuple[Board, FleetTracker]:
    board = Board(owner="human")
    fleet = FleetTracker(PLAYER_ROSTER, owner="human")
    for placement in board.random_placement(PLAYER_ROSTER, random.Random(seed)):
        fleet.mark_placed(placement.ship.ship_id)
    return board, fleet


def test_neighbour_candidates_are_bounds_filtered() -> None:
    assert neighbour_candidates(Coordinate(0, 0), 10) == [Coordinate(1, 0), Coordinate(0, 1)]
    assert len(neighbour_candidates(Coordinate(5, 5), 10)) == 4


def test_run_end_candidates_follow_axis() -> None:
    hits = [Coordinate(3, 3), Coordinate(3, 2), Coordinate(3, 4), Coordinate(7, 7)]
    assert run_end_candidates(hits, Coordinate(3, 4), Orientation.HORIZONTAL) == [
        Coordinate(3, 1),
        Coordinate(3, 5),
    ]
    vertical = [Coordinate(4, 6), Coordinate(5, 6)]
    assert run_end_candidates(vertical, Coordinate(5, 6), Orientation.VERTICAL) == [
        Coordinate(3, 6),
        Coordinate(6, 6),
    ]


def test_parity_pattern_is_a_checkerboard() -> None:
    pattern = parity_pattern(10)
    assert len(pattern) == 50
    assert all((c.row + c.col) % 2 == 0 for c in pattern)


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_engine_never_repeats_a_coordinate(difficulty: Difficulty) -> None:
    engine = TargetingEngine(difficulty, rng=random.Random(11))
    seen = {engine.next_target() for _ in range(100)}
    assert len(seen) == 100
    with pytest.raises(PreconditionViolation):
        engine.next_target()


@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_full_sweep_sinks_every_ship_without_repeats(difficulty: Difficulty) -> None:
    board, fleet = _full_fleet(seed=5)
    engine = TargetingEngine(difficulty, rng=random.Random(3))
    shots = _sweep(engine, board, fleet)
    assert len(shots) == len(set(shots))
    assert fleet.sunk == fleet.placed
    assert engine.state.hit_buffer == []
    assert engine.mode is HuntMode.SEARCHING


def test_hard_tier_searches_parity_cells_first() -> None:
    engine = TargetingEngine(Difficulty.HARD, rng=random.Random(2))
    drawn = [engine.next_target() for _ in range(50)]
    assert all((c.row + c.col) % 2 == 0 for c in drawn)
    assert engine.state.search_pattern == []
    follow_up = engine.next_target()
    assert (follow_up.row + follow_up.col) % 2 == 1


def test_easy_tier_ignores_hits() -> None:
    engine = TargetingEngine(Difficulty.EASY, rng=random.Random(4))
    engine.process_hit(Coordinate(4, 4))
    assert engine.mode is HuntMode.SEARCHING
    assert engine.state.hunt_queue == []
    assert engine.state.hit_buffer == []


def test_medium_tier_queues_valid_neighbours_of_corner_hit() -> None:
    board = Board(owner="human")
    fleet = FleetTracker((ShipSpec("p_sub_1", "Submarine", 2, 1),), owner="human")
    board.place(fleet.roster[0], Coordinate(0, 0))
    fleet.mark_placed("p_sub_1")
    tally = Tally()

    engine = TargetingEngine(Difficulty.MEDIUM, rng=random.Random(0))
    first = resolve_attack(board, fleet, Coordinate(0, 0), tally)
    assert first.outcome is AttackOutcome.HIT
    engine.register_outcome(first, board)

    assert engine.mode is HuntMode.HUNTING_GENERIC
    assert engine.state.hunt_queue == [Coordinate(1, 0), Coordinate(0, 1)]

    follow_up = engine.next_target()
    assert follow_up == Coordinate(0, 1)
    second = resolve_attack(board, fleet, follow_up, tally)
    assert second.outcome is AttackOutcome.HIT_AND_SUNK
    engine.register_outcome(second, board)
    assert engine.mode is HuntMode.SEARCHING
    assert engine.state.hunt_queue == []


def test_hard_tier_locks_direction_and_targets_run_ends() -> None:
    engine = TargetingEngine(Difficulty.HARD, rng=random.Random(9))
    engine.process_hit(Coordinate(3, 3))
    assert engine.mode is HuntMode.HUNTING_GENERIC
    engine.process_hit(Coordinate(3, 2))
    engine.process_hit(Coordinate(3, 4))

    assert engine.state.direction is Orientation.HORIZONTAL
    assert engine.mode is HuntMode.HUNTING_DIRECTIONAL
    assert engine.state.hunt_queue == [Coordinate(3, 1), Coordinate(3, 5)]
    assert engine.next_target() == Coordinate(3, 5)
    assert engine.next_target() == Coordinate(3, 1)


def test_hard_tier_vertical_lock_skips_guessed_ends() -> None:
    engine = TargetingEngine(Difficulty.HARD, rng=random.Random(9))
    engine.state.guessed.add(Coordinate(0, 4))
    engine.process_hit(Coordinate(1, 4))
    engine.process_hit(Coordinate(2, 4))
    assert engine.state.direction is Orientation.VERTICAL
    assert engine.state.hunt_queue == [Coordinate(3, 4)]


def test_hard_tier_falls_back_to_neighbours_when_hits_do_not_align() -> None:
    engine = TargetingEngine(Difficulty.HARD, rng=random.Random(9))
    engine.process_hit(Coordinate(5, 5))
    engine.process_hit(Coordinate(7, 8))
    assert engine.state.direction is None
    assert engine.mode is HuntMode.HUNTING_GENERIC
    assert engine.state.hunt_queue[-1] == Coordinate(7, 7)


def test_sunk_keeps_hits_of_other_ships_as_seed() -> None:
    board = Board(owner="human")
    fleet = FleetTracker(PLAYER_ROSTER, owner="human")
    sub, destroyer = PLAYER_ROSTER[0].rotated(), PLAYER_ROSTER[1].rotated()
    board.place(sub, Coordinate(4, 4))
    board.place(destroyer, Coordinate(5, 4))
    fleet.mark_placed(sub.ship_id)
    fleet.mark_placed(destroyer.ship_id)
    tally = Tally()

    engine = TargetingEngine(Difficulty.HARD, rng=random.Random(1))
    for coord in (Coordinate(5, 4), Coordinate(4, 4), Coordinate(4, 5)):
        engine.state.guessed.add(coord)
        engine.register_outcome(resolve_attack(board, fleet, coord, tally), board)

    assert fleet.sunk == {"p_sub_1"}
    assert engine.state.hit_buffer == [Coordinate(5, 4)]
    assert engine.mode is HuntMode.HUNTING_GENERIC
    assert engine.state.hunt_queue == []
    assert engine.state.direction is None
    assert engine.state.last_hit is None

    seeded = engine.next_target()
    assert seeded in neighbour_candidates(Coordinate(5, 4), 10)

    engine.process_sunk("p_sub_1", board)
    assert engine.state.hit_buffer == [Coordinate(5, 4)]


def test_reset_clears_memory_and_switches_difficulty() -> None:
    engine = TargetingEngine(Difficulty.MEDIUM, rng=random.Random(0))
    engine.process_hit(Coordinate(2, 2))
    engine.next_target()
    engine.reset(Difficulty.HARD)
    assert engine.difficulty is Difficulty.HARD
    assert engine.state.guessed == set()
    assert engine.state.hit_buffer == []
    assert len(engine.state.search_pattern) == 50
