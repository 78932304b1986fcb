"""Human-vs-computer match controller."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from gridbattle.ai.targeting import Difficulty, TargetingEngine
from gridbattle.config import MatchConfig
from gridbattle.telemetry import get_meter, get_tracer

from .attack import AttackOutcome, AttackReport, Tally, resolve_attack
from .board import Board, PlacementRejection
from .errors import PreconditionViolation
from .events import (
    AllShipsPlaced,
    AttackResult,
    EventBus,
    MatchWon,
    PhaseChanged,
    PlacementAccepted,
    PlacementRejected,
    ShipSunk,
    Side,
)
from .fleet import FleetTracker
from .scheduler import Scheduler
from .ship import COMPUTER_ROSTER, PLAYER_ROSTER, Coordinate, ShipSpec

logger = logging.getLogger(__name__)
tracer = get_tracer("gridbattle.engine.game")
meter = get_meter("gridbattle.engine.game")

MOVE_COUNTER = meter.create_counter(
    "gridbattle_engine_moves",
    unit="1",
    description="Number of attacks made in a Match",
)


class MatchPhase(Enum):
    """Lifecycle of a match. Transitions only move forward until reset."""

    PLACEMENT = "placement"
    COMPUTER_ATTACKING = "computer-attacking"
    AWAITING_HUMAN_TURN_START = "awaiting-human-turn-start"
    HUMAN_ATTACKING = "human-attacking"
    GAME_OVER = "game-over"


@dataclass(frozen=True)
class PlacementResult:
    accepted: bool
    reason: PlacementRejection | None = None


@dataclass
class SideState:
    """A side's own board and fleet, plus the tally of its attacks."""

    board: Board
    fleet: FleetTracker
    tally: Tally = field(default_factory=Tally)


@dataclass(frozen=True)
class MatchSnapshot:
    """Immutable view of the current match."""

    phase: MatchPhase
    difficulty: Difficulty
    winner: Side | None
    hits: dict[Side, int]
    turns: dict[Side, int]
    sunk: dict[Side, frozenset[str]]


class Match:
    """Owns both boards, both fleets and the computer's memory for one match.

    Turns alternate, computer first. Each computer attack runs from a
    scheduled tick and then hands over to the human (AWAITING_HUMAN_TURN_START);
    each resolved human attack schedules the next computer tick. The win
    check runs after every resolved attack: the first side whose hits cover
    the whole opposing fleet wins and the match is over.
    """

    def __init__(
        self,
        config: MatchConfig | None = None,
        scheduler: Scheduler | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.config = config or MatchConfig()
        self.scheduler = scheduler or Scheduler()
        self.events = events or EventBus()
        self._rng = random.Random(self.config.rng_seed)
        self.targeting = TargetingEngine(
            self.config.difficulty, board_size=self.config.board_size, rng=self._rng
        )
        self.sides: dict[Side, SideState] = self._fresh_sides()
        self.phase = MatchPhase.PLACEMENT
        self.winner: Side | None = None
        self._won_published = False
        self._pending_task: int | None = None

    def _fresh_sides(self) -> dict[Side, SideState]:
        size = self.config.board_size
        return {
            Side.HUMAN: SideState(
                board=Board(size=size, owner=Side.HUMAN.value),
                fleet=FleetTracker(PLAYER_ROSTER, owner=Side.HUMAN.value),
            ),
            Side.COMPUTER: SideState(
                board=Board(size=size, owner=Side.COMPUTER.value),
                fleet=FleetTracker(COMPUTER_ROSTER, owner=Side.COMPUTER.value),
            ),
        }

    @property
    def difficulty(self) -> Difficulty:
        return self.targeting.difficulty

    def board(self, side: Side) -> Board:
        return self.sides[side].board

    def _set_phase(self, phase: MatchPhase) -> None:
        previous = self.phase
        self.phase = phase
        logger.info(
            "match_phase_changed",
            extra={"previous": previous.value, "current": phase.value},
        )
        self.events.publish(PhaseChanged(previous=previous.value, current=phase.value))

    def _require_phase(self, expected: MatchPhase, action: str) -> None:
        if self.phase is not expected:
            logger.error(
                "action_rejected_wrong_phase",
                extra={"action": action, "phase": self.phase.value, "expected": expected.value},
            )
            raise PreconditionViolation(
                f"{action} is only allowed during {expected.value}, not {self.phase.value}."
            )

    # -- placement -----------------------------------------------------

    def remaining_ships(self) -> list[ShipSpec]:
        """Human ships still waiting to be placed."""
        return self.sides[Side.HUMAN].fleet.remaining()

    def place_ship(
        self,
        ship_id: str,
        origin: Coordinate,
        width: int | None = None,
        height: int | None = None,
    ) -> PlacementResult:
        """Try to put a human ship on the board; a rotated ship swaps width/height."""
        self._require_phase(MatchPhase.PLACEMENT, "place_ship")
        human = self.sides[Side.HUMAN]
        ship = human.fleet.ship(ship_id)
        if ship is None:
            logger.error("placement_unknown_ship", extra={"ship_id": ship_id})
            raise PreconditionViolation(f"{ship_id!r} is not in the human roster.")
        dims = (ship.width if width is None else width, ship.height if height is None else height)
        if sorted(dims) != sorted((ship.width, ship.height)):
            logger.error(
                "placement_wrong_dimensions",
                extra={"ship_id": ship_id, "width": dims[0], "height": dims[1]},
            )
            raise PreconditionViolation(
                f"{ship_id!r} is {ship.width}x{ship.height}; got {dims[0]}x{dims[1]}."
            )

        if ship_id in human.fleet.placed:
            reason: PlacementRejection | None = PlacementRejection.ALREADY_PLACED
        else:
            reason = human.board.check_placement(ship, origin, width, height)
        if reason is not None:
            logger.info("placement_rejected", extra={"ship_id": ship_id, "reason": reason.value})
            self.events.publish(PlacementRejected(ship_id=ship_id, reason=reason))
            return PlacementResult(accepted=False, reason=reason)

        placement = human.board.place(ship, origin, width, height)
        human.fleet.mark_placed(ship_id)
        self.events.publish(
            PlacementAccepted(
                ship_id=ship_id,
                origin=placement.origin,
                width=placement.width,
                height=placement.height,
            )
        )
        if human.fleet.all_placed():
            self.events.publish(AllShipsPlaced(side=Side.HUMAN))
        return PlacementResult(accepted=True)

    def auto_place_fleet(self) -> None:
        """Randomly place every human ship that is still in the dock."""
        self._require_phase(MatchPhase.PLACEMENT, "auto_place_fleet")
        human = self.sides[Side.HUMAN]
        if human.fleet.all_placed():
            return
        for placement in human.board.random_placement(
            human.fleet.remaining(), self._rng, self.config.placement_attempts
        ):
            human.fleet.mark_placed(placement.ship.ship_id)
            self.events.publish(
                PlacementAccepted(
                    ship_id=placement.ship.ship_id,
                    origin=placement.origin,
                    width=placement.width,
                    height=placement.height,
                )
            )
        self.events.publish(AllShipsPlaced(side=Side.HUMAN))

    def confirm_placement(self) -> None:
        """Lock in the human fleet, deploy the computer fleet, schedule its first attack."""
        self._require_phase(MatchPhase.PLACEMENT, "confirm_placement")
        human = self.sides[Side.HUMAN]
        if not human.fleet.all_placed():
            logger.error(
                "confirm_with_ships_remaining",
                extra={"remaining": [ship.ship_id for ship in human.fleet.remaining()]},
            )
            raise PreconditionViolation("All ships must be placed before confirming.")

        with tracer.start_as_current_span("match.confirm_placement"):
            computer = self.sides[Side.COMPUTER]
            for placement in computer.board.random_placement(
                computer.fleet.roster, self._rng, self.config.placement_attempts
            ):
                computer.fleet.mark_placed(placement.ship.ship_id)
            self._set_phase(MatchPhase.COMPUTER_ATTACKING)
            self._schedule_computer_step(self.config.initial_attack_delay)
            logger.info(
                "placement_confirmed",
                extra={"difficulty": self.difficulty.value, "board_size": self.config.board_size},
            )

    # -- attacks -------------------------------------------------------

    def _attack(self, attacker: Side, coord: Coordinate) -> AttackReport:
        defender = self.sides[attacker.opponent()]
        report = resolve_attack(defender.board, defender.fleet, coord, self.sides[attacker].tally)
        MOVE_COUNTER.add(1, attributes={"result": report.outcome.value, "side": attacker.value})
        self.events.publish(
            AttackResult(
                side=attacker,
                row=coord.row,
                col=coord.col,
                outcome=report.outcome,
                ship_id=report.ship_id,
            )
        )
        if report.outcome is AttackOutcome.HIT_AND_SUNK and report.ship_id is not None:
            self.events.publish(ShipSunk(side=attacker.opponent(), ship_id=report.ship_id))
        return report

    def _has_won(self, attacker: Side) -> bool:
        total = self.sides[attacker.opponent()].fleet.total_cells
        return self.sides[attacker].tally.hits >= total

    def _schedule_computer_step(self, delay: float) -> None:
        self._pending_task = self.scheduler.call_later(delay, self._computer_step)

    def _computer_step(self) -> None:
        self._pending_task = None
        if self.phase is not MatchPhase.COMPUTER_ATTACKING:
            logger.debug("computer_step_skipped", extra={"phase": self.phase.value})
            return
        with tracer.start_as_current_span("match.computer_step") as span:
            target = self.targeting.next_target()
            report = self._attack(Side.COMPUTER, target)
            self.targeting.register_outcome(report, self.sides[Side.HUMAN].board)
            span.set_attribute("target.row", target.row)
            span.set_attribute("target.col", target.col)
            span.set_attribute("outcome", report.outcome.value)

            if self._has_won(Side.COMPUTER):
                self._finish(Side.COMPUTER)
            else:
                self._set_phase(MatchPhase.AWAITING_HUMAN_TURN_START)

    def run_computer_turn(self) -> int:
        """Fire the pending computer attack now instead of waiting for the clock."""
        steps = 0
        while self.phase is MatchPhase.COMPUTER_ATTACKING and self.scheduler.run_next():
            steps += 1
        return steps

    def start_human_turn(self) -> None:
        self._require_phase(MatchPhase.AWAITING_HUMAN_TURN_START, "start_human_turn")
        self._set_phase(MatchPhase.HUMAN_ATTACKING)

    def human_attack(self, coord: Coordinate) -> AttackReport:
        """Resolve one human attack.

        A repeated cell comes back ALREADY_ATTACKED and the human keeps the
        turn. Any other outcome either wins the match or passes the turn to
        the computer.
        """
        self._require_phase(MatchPhase.HUMAN_ATTACKING, "human_attack")
        report = self._attack(Side.HUMAN, coord)
        if report.outcome is AttackOutcome.ALREADY_ATTACKED:
            return report
        if self._has_won(Side.HUMAN):
            self._finish(Side.HUMAN)
        else:
            self._set_phase(MatchPhase.COMPUTER_ATTACKING)
            self._schedule_computer_step(self.config.attack_interval)
        return report

    def valid_targets(self) -> list[Coordinate]:
        """Cells of the computer board the human has not attacked yet."""
        if self.phase is not MatchPhase.HUMAN_ATTACKING:
            return []
        return self.sides[Side.COMPUTER].board.unattacked_coordinates()

    def _finish(self, winner: Side) -> None:
        turns = self.turn_counts()
        self.winner = winner
        self._set_phase(MatchPhase.GAME_OVER)
        if not self._won_published:
            self._won_published = True
            self.events.publish(MatchWon(side=winner, turn_counts=turns))
        logger.info(
            "match_finished",
            extra={
                "winner": winner.value,
                "human_turns": turns[Side.HUMAN],
                "computer_turns": turns[Side.COMPUTER],
            },
        )

    def turn_counts(self) -> dict[Side, int]:
        return {side: state.tally.shots for side, state in self.sides.items()}

    # -- lifecycle -----------------------------------------------------

    def reset(self, difficulty: Difficulty | None = None) -> None:
        """Start over in PLACEMENT with every per-match structure rebuilt."""
        if self._pending_task is not None:
            self.scheduler.cancel(self._pending_task)
            self._pending_task = None
        if difficulty is not None:
            self.config = self.config.model_copy(update={"difficulty": Difficulty(difficulty)})
        self.targeting.reset(self.config.difficulty)
        self.sides = self._fresh_sides()
        self.winner = None
        self._won_published = False
        self._set_phase(MatchPhase.PLACEMENT)
        logger.info("match_reset", extra={"difficulty": self.difficulty.value})

    def snapshot(self) -> MatchSnapshot:
        return MatchSnapshot(
            phase=self.phase,
            difficulty=self.difficulty,
            winner=self.winner,
            hits={side: state.tally.hits for side, state in self.sides.items()},
            turns=self.turn_counts(),
            sunk={side: frozenset(state.fleet.sunk) for side, state in self.sides.items()},
        )
