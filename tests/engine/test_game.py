"""High-level match tests."""

import pytest
from gridbattle.ai.targeting import Difficulty
from gridbattle.config import MatchConfig
from gridbattle.engine.attack import AttackOutcome
from gridbattle.engine.board import PlacementRejection
from gridbattle.engine.errors import PreconditionViolation
from gridbattle.engine.events import (
    AllShipsPlaced,
    AttackResult,
    MatchWon,
    PhaseChanged,
    PlacementRejected,
    ShipSunk,
    Side,
)
from gridbattle.engine.game import Match, MatchPhase
from gridbattle.engine.ship import PLAYER_ROSTER, Coordinate


def _new_match(seed: int = 42, difficulty: str = "easy") -> Match:
    return Match(MatchConfig(difficulty=difficulty, rng_seed=seed))


def _place_in_columns(match: Match) -> None:
    for col, ship in enumerate(PLAYER_ROSTER):
        result = match.place_ship(ship.ship_id, Coordinate(0, col))
        assert result.accepted


def _computer_ship_cells(match: Match) -> list[Coordinate]:
    board = match.board(Side.COMPUTER)
    return [coord for placement in board.placements.values() for coord in placement.footprint()]


def _ready_for_human(match: Match) -> None:
    _place_in_columns(match)
    match.confirm_placement()
    match.run_computer_turn()
    match.start_human_turn()


def _play(match: Match, targets) -> None:
    """Alternate turns until the match ends, the human firing at `targets` in order."""
    queue = iter(targets)
    while match.phase is not MatchPhase.GAME_OVER:
        match.run_computer_turn()
        if match.phase is MatchPhase.AWAITING_HUMAN_TURN_START:
            match.start_human_turn()
            match.human_attack(next(queue))


def test_placement_rejections_are_reported() -> None:
    match = _new_match()
    assert match.place_ship("p_sub_1", Coordinate(0, 0)).accepted

    overlap = match.place_ship("p_des_1", Coordinate(0, 0), width=3, height=1)
    assert not overlap.accepted
    assert overlap.reason is PlacementRejection.OVERLAP

    out_of_bounds = match.place_ship("p_bat_1", Coordinate(7, 9))
    assert out_of_bounds.reason is PlacementRejection.OUT_OF_BOUNDS

    again = match.place_ship("p_sub_1", Coordinate(5, 5))
    assert again.reason is PlacementRejection.ALREADY_PLACED

    rejected = match.events.of_type(PlacementRejected)
    assert [event.reason for event in rejected] == [
        PlacementRejection.OVERLAP,
        PlacementRejection.OUT_OF_BOUNDS,
        PlacementRejection.ALREADY_PLACED,
    ]
    assert [ship.ship_id for ship in match.remaining_ships()][0] == "p_des_1"


def test_place_ship_rejects_unknown_ids_and_wrong_dimensions() -> None:
    match = _new_match()
    with pytest.raises(PreconditionViolation):
        match.place_ship("ai_sub_1", Coordinate(0, 0))
    with pytest.raises(PreconditionViolation):
        match.place_ship("p_sub_1", Coordinate(0, 0), width=2, height=2)


def test_rotated_placement_is_accepted() -> None:
    match = _new_match()
    assert match.place_ship("p_bat_1", Coordinate(9, 5), width=5, height=1).accepted
    assert match.board(Side.HUMAN).cells_of("p_bat_1")[-1] == Coordinate(9, 9)


def test_confirm_requires_every_ship() -> None:
    match = _new_match()
    match.place_ship("p_sub_1", Coordinate(0, 0))
    with pytest.raises(PreconditionViolation):
        match.confirm_placement()
    assert match.phase is MatchPhase.PLACEMENT


def test_all_ships_placed_published_once_by_auto_place() -> None:
    match = _new_match()
    match.place_ship("p_sub_1", Coordinate(0, 0))
    match.auto_place_fleet()
    match.auto_place_fleet()
    assert match.remaining_ships() == []
    assert len(match.events.of_type(AllShipsPlaced)) == 1


def test_actions_outside_their_phase_raise() -> None:
    match = _new_match()
    with pytest.raises(PreconditionViolation):
        match.human_attack(Coordinate(0, 0))
    with pytest.raises(PreconditionViolation):
        match.start_human_turn()

    _place_in_columns(match)
    match.confirm_placement()
    with pytest.raises(PreconditionViolation):
        match.place_ship("p_sub_1", Coordinate(5, 5))
    with pytest.raises(PreconditionViolation):
        match.human_attack(Coordinate(0, 0))
    assert match.valid_targets() == []


def test_computer_attacks_follow_the_schedule() -> None:
    match = _new_match()
    _place_in_columns(match)
    match.confirm_placement()
    assert match.phase is MatchPhase.COMPUTER_ATTACKING
    assert match.scheduler.next_due() == pytest.approx(1.0)
    assert match.events.of_type(AttackResult) == []

    assert match.scheduler.run_next()
    assert len(match.events.of_type(AttackResult)) == 1
    assert match.phase is MatchPhase.AWAITING_HUMAN_TURN_START
    assert match.scheduler.queued_task_count == 0

    match.start_human_turn()
    assert len(match.valid_targets()) == 100
    miss = next(c for c in match.valid_targets() if c not in set(_computer_ship_cells(match)))
    assert match.human_attack(miss).outcome is AttackOutcome.MISS
    assert match.phase is MatchPhase.COMPUTER_ATTACKING
    assert match.scheduler.next_due() == pytest.approx(1.4)


def test_human_wins_when_their_hits_reach_the_fleet_total() -> None:
    match = _new_match()
    _place_in_columns(match)
    match.confirm_placement()
    _play(match, _computer_ship_cells(match))

    assert match.phase is MatchPhase.GAME_OVER
    assert match.winner is Side.HUMAN
    won = match.events.of_type(MatchWon)
    assert len(won) == 1
    assert won[0].side is Side.HUMAN
    assert won[0].turn_counts == {Side.HUMAN: 17, Side.COMPUTER: 17}
    assert match.snapshot().sunk[Side.COMPUTER] == frozenset(
        ship_id for ship_id in match.sides[Side.COMPUTER].fleet.placed
    )
    assert match.scheduler.queued_task_count == 0
    with pytest.raises(PreconditionViolation):
        match.human_attack(Coordinate(0, 0))


def test_computer_wins_when_it_sinks_the_fleet_first() -> None:
    match = _new_match(seed=7, difficulty="hard")
    _place_in_columns(match)
    match.confirm_placement()
    ship_cells = set(_computer_ship_cells(match))
    misses = [c for c in match.board(Side.COMPUTER).unattacked_coordinates() if c not in ship_cells]
    _play(match, [*misses, *ship_cells])

    snapshot = match.snapshot()
    assert snapshot.phase is MatchPhase.GAME_OVER
    assert snapshot.winner is Side.COMPUTER
    assert snapshot.hits[Side.COMPUTER] == 17
    assert snapshot.hits[Side.HUMAN] == 0
    assert snapshot.turns[Side.COMPUTER] == snapshot.turns[Side.HUMAN] + 1
    assert snapshot.sunk[Side.HUMAN] == frozenset(ship.ship_id for ship in PLAYER_ROSTER)
    assert match.scheduler.queued_task_count == 0

    computer_attacks = [e for e in match.events.of_type(AttackResult) if e.side is Side.COMPUTER]
    coords = [(e.row, e.col) for e in computer_attacks]
    assert len(coords) == len(set(coords)) == snapshot.turns[Side.COMPUTER]
    assert all(event.side is Side.HUMAN for event in match.events.of_type(ShipSunk))
    assert [event.side for event in match.events.of_type(MatchWon)] == [Side.COMPUTER]

    with pytest.raises(PreconditionViolation):
        match.start_human_turn()
    with pytest.raises(PreconditionViolation):
        match.human_attack(Coordinate(0, 0))


def test_no_winner_before_either_fleet_is_covered() -> None:
    match = _new_match()
    _ready_for_human(match)
    assert match.snapshot().winner is None
    assert match.events.of_type(MatchWon) == []


def test_duplicate_human_attack_keeps_the_turn() -> None:
    match = _new_match()
    _ready_for_human(match)
    target = _computer_ship_cells(match)[0]
    assert match.human_attack(target).outcome is AttackOutcome.HIT
    match.run_computer_turn()
    match.start_human_turn()

    repeat = match.human_attack(target)
    assert repeat.outcome is AttackOutcome.ALREADY_ATTACKED
    assert match.phase is MatchPhase.HUMAN_ATTACKING
    assert match.scheduler.queued_task_count == 0
    assert match.turn_counts()[Side.HUMAN] == 1
    assert target not in match.valid_targets()
    assert match.events.of_type(AttackResult)[-1].outcome is AttackOutcome.ALREADY_ATTACKED


def test_reset_cancels_pending_attack_and_rebuilds_state() -> None:
    match = _new_match()
    _place_in_columns(match)
    match.confirm_placement()
    assert match.scheduler.queued_task_count == 1

    match.reset(Difficulty.MEDIUM)
    assert match.phase is MatchPhase.PLACEMENT
    assert match.difficulty is Difficulty.MEDIUM
    assert match.scheduler.run_next() is False
    assert match.turn_counts() == {Side.HUMAN: 0, Side.COMPUTER: 0}
    assert match.board(Side.HUMAN).placements == {}
    assert match.targeting.state.guessed == set()

    # A stale tick delivered after reset must not touch the fresh match.
    match._computer_step()
    assert match.turn_counts()[Side.COMPUTER] == 0
    phases = [event.current for event in match.events.of_type(PhaseChanged)]
    assert phases[-1] == MatchPhase.PLACEMENT.value


def test_same_seed_replays_the_same_match() -> None:
    def computer_shots(seed: int) -> list[tuple[int, int]]:
        match = _new_match(seed=seed, difficulty="medium")
        _place_in_columns(match)
        match.confirm_placement()
        _play(match, _computer_ship_cells(match))
        return [(e.row, e.col) for e in match.events.of_type(AttackResult) if e.side is Side.COMPUTER]

    assert computer_shots(3) == computer_shots(3)


@pytest.mark.parametrize("seed", range(30))
def test_smallest_board_deploys_both_fleets(seed: int) -> None:
    match = Match(MatchConfig(board_size=5, rng_seed=seed))
    match.auto_place_fleet()
    match.confirm_placement()
    assert match.phase is MatchPhase.COMPUTER_ATTACKING
    assert len(_computer_ship_cells(match)) == 17
