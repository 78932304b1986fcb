"""Command-line driver for playing against the computer."""

from __future__ import annotations

import argparse
import time
from typing import Sequence

from opentelemetry.instrumentation.logging import LoggingInstrumentor

from gridbattle.ai.targeting import Difficulty
from gridbattle.config import MatchConfig
from gridbattle.engine.attack import AttackOutcome
from gridbattle.engine.board import Board, CellState
from gridbattle.engine.events import AttackResult, MatchWon, ShipSunk, Side
from gridbattle.engine.game import Match, MatchPhase
from gridbattle.engine.instrumented_game import InstrumentedMatch
from gridbattle.engine.ship import Coordinate, Orientation, ShipSpec
from gridbattle.telemetry import (
    configure_console_logging,
    init_telemetry,
    load_telemetry_config,
    shutdown_tracing,
)

ROW_LABELS = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

_SYMBOLS = {
    CellState.EMPTY: ".",
    CellState.OCCUPIED: "S",
    CellState.HIT: "X",
    CellState.MISS: "o",
}


def _coordinate_from_input(text: str, size: int = 10) -> Coordinate:
    cleaned = text.strip().upper()
    if not cleaned:
        raise ValueError("Empty coordinate.")
    if cleaned[0].isalpha():
        if cleaned[0] not in ROW_LABELS[:size]:
            raise ValueError(f"Row must be between A and {ROW_LABELS[size - 1]}.")
        row = ROW_LABELS.index(cleaned[0])
        try:
            col = int(cleaned[1:]) - 1
        except ValueError as exc:
            raise ValueError(f"Column must be a number between 1 and {size}.") from exc
    else:
        parts = cleaned.split()
        if len(parts) != 2:
            raise ValueError("Use formats like A5 or '3 7'.")
        row, col = map(int, parts)
    if row not in range(size) or col not in range(size):
        raise ValueError(f"Coordinates must be within the {size}x{size} board.")
    return Coordinate(row, col)


def _label(coord: Coordinate) -> str:
    return f"{ROW_LABELS[coord.row]}{coord.col + 1}"


def _format_board(board: Board, show_ships: bool) -> str:
    header = "    " + " ".join(f"{col + 1:>2}" for col in range(board.size))
    rows = [header]
    for index, row in enumerate(board.rows()):
        symbols = []
        for cell in row:
            state = cell.state
            if state is CellState.OCCUPIED and not show_ships:
                state = CellState.EMPTY
            symbols.append(f"{_SYMBOLS[state]:>2}")
        rows.append(f"{ROW_LABELS[index]} |" + " ".join(symbols))
    return "\n".join(rows)


def _describe_attack(event: AttackResult, match: Match) -> str:
    who = "You" if event.side is Side.HUMAN else "The computer"
    label = _label(Coordinate(event.row, event.col))
    if event.outcome is AttackOutcome.ALREADY_ATTACKED:
        return f"{label} has already been attacked."
    turns = match.turn_counts()[event.side]
    outcome = "hit" if event.outcome.is_hit else "miss"
    return f"{who} fired at {label}: {outcome} (attack {turns})"


def _ship_name(match: Match, side: Side, ship_id: str) -> str:
    ship = match.sides[side].fleet.ship(ship_id)
    return ship.name if ship else ship_id


def _prompt_for_coordinate(valid: Sequence[Coordinate], size: int) -> Coordinate:
    valid_set = set(valid)
    while True:
        raw = input("Enter target coordinate (e.g., A5) or 'q' to quit: ").strip()
        if raw.lower() == "q":
            raise SystemExit("Goodbye!")
        try:
            coord = _coordinate_from_input(raw, size)
        except ValueError as exc:
            print(f"Invalid input: {exc}")
            continue
        if coord not in valid_set:
            print("That cell has already been targeted. Choose another.")
            continue
        return coord


def _prompt_orientation(ship: ShipSpec) -> Orientation:
    while True:
        raw = (
            input(f"Place your {ship.name} (length {ship.cell_count}). Orientation [H/V]: ")
            .strip()
            .upper()
        )
        if raw in {"H", "HOR", "HORIZONTAL"}:
            return Orientation.HORIZONTAL
        if raw in {"V", "VER", "VERTICAL"}:
            return Orientation.VERTICAL
        print("Please enter H for horizontal or V for vertical.")


def _manual_ship_placement(match: Match) -> None:
    board = match.board(Side.HUMAN)
    while match.remaining_ships():
        ship = match.remaining_ships()[0]
        print("\nCurrent layout:")
        print(_format_board(board, show_ships=True))
        oriented = ship.oriented(_prompt_orientation(ship))
        start_raw = input("Enter starting coordinate (e.g., A1): ")
        try:
            start = _coordinate_from_input(start_raw, board.size)
        except ValueError as exc:
            print(f"Invalid coordinate: {exc}")
            continue
        result = match.place_ship(ship.ship_id, start, oriented.width, oriented.height)
        if not result.accepted:
            reason = result.reason.value.replace("_", " ") if result.reason else "invalid"
            print(f"Ship cannot be placed there ({reason}). Try again.")


def _prompt_manual_setup() -> bool:
    while True:
        raw = input("Would you like to place your ships manually? [Y/n]: ").strip().lower()
        if raw in {"", "y", "yes"}:
            return True
        if raw in {"n", "no"}:
            return False
        print("Please answer with 'y' or 'n'.")


def _run_pending_computer_attack(match: Match, fast: bool) -> None:
    scheduler = match.scheduler
    while match.phase is MatchPhase.COMPUTER_ATTACKING:
        due = scheduler.next_due()
        if due is None:
            break
        if not fast:
            time.sleep(max(0.0, due - scheduler.now_seconds))
        scheduler.run_due(max(due, scheduler.now_seconds))


def play_game(config: MatchConfig, manual: bool | None = None, fast: bool = False) -> Match:
    print(f"Welcome to gridbattle! Difficulty: {config.difficulty.value}\n")
    match = InstrumentedMatch(config)
    human_board = match.board(Side.HUMAN)
    computer_board = match.board(Side.COMPUTER)

    match.events.subscribe(AttackResult, lambda event: print(_describe_attack(event, match)))
    match.events.subscribe(
        ShipSunk,
        lambda event: print(
            f"  -> {'Your' if event.side is Side.HUMAN else 'Enemy'} "
            f"{_ship_name(match, event.side, event.ship_id)} was sunk!"
        ),
    )

    if manual is None:
        manual = _prompt_manual_setup()
    if manual:
        _manual_ship_placement(match)
    else:
        match.auto_place_fleet()
        print("\nYour ships have been positioned automatically.")
    print(_format_board(human_board, show_ships=True))

    match.confirm_placement()
    print("\nThe computer fires first...")
    first_turn = True
    while match.phase is not MatchPhase.GAME_OVER:
        _run_pending_computer_attack(match, fast)
        if match.phase is not MatchPhase.AWAITING_HUMAN_TURN_START:
            continue
        if first_turn:
            input("\nPress Enter to start your turn...")
            first_turn = False
        match.start_human_turn()
        while match.phase is MatchPhase.HUMAN_ATTACKING:
            print("\nYour Fleet:")
            print(_format_board(human_board, show_ships=True))
            print("\nEnemy Waters:")
            print(_format_board(computer_board, show_ships=False))
            coord = _prompt_for_coordinate(match.valid_targets(), computer_board.size)
            match.human_attack(coord)

    won = match.events.of_type(MatchWon)[-1]
    counts = won.turn_counts
    print(
        f"\nGame over! You used {counts[Side.HUMAN]} attacks, "
        f"the computer ({config.difficulty.value}) used {counts[Side.COMPUTER]}."
    )
    if won.side is Side.HUMAN:
        print("Congratulations, you sank the whole enemy fleet!")
    else:
        print("The computer sank your fleet first. Better luck next battle!")
    return match


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Play gridbattle against the computer.")
    parser.add_argument(
        "--difficulty",
        choices=[difficulty.value for difficulty in Difficulty],
        default=None,
        help="Computer difficulty (defaults to GRIDBATTLE_DIFFICULTY or easy).",
    )
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for reproducibility."
    )
    placement = parser.add_mutually_exclusive_group()
    placement.add_argument("--auto-place", action="store_true", help="Place your fleet randomly.")
    placement.add_argument("--manual", action="store_true", help="Place your fleet by hand.")
    parser.add_argument(
        "--fast", action="store_true", help="Skip the pauses between computer attacks."
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    telemetry_config = load_telemetry_config()
    configure_console_logging(telemetry_config.log_level_number)
    telemetry = init_telemetry(telemetry_config)
    if telemetry.enable_logging:
        LoggingInstrumentor().instrument()

    config = MatchConfig.from_env(difficulty=args.difficulty, rng_seed=args.seed)
    manual: bool | None = None
    if args.auto_place:
        manual = False
    elif args.manual:
        manual = True
    try:
        play_game(config, manual=manual, fast=args.fast)
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
