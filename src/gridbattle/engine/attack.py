"""Attack resolution against a single board."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from gridbattle.telemetry import get_meter, get_tracer

from .board import Board
from .errors import PreconditionViolation
from .fleet import FleetTracker
from .ship import Coordinate

logger = logging.getLogger(__name__)
tracer = get_tracer("gridbattle.engine.attack")
meter = get_meter("gridbattle.engine.attack")

ATTACK_COUNTER = meter.create_counter(
    "gridbattle_engine_attacks",
    unit="1",
    description="Attacks resolved against a board",
)


class AttackOutcome(Enum):
    ALREADY_ATTACKED = "already_attacked"
    MISS = "miss"
    HIT = "hit"
    HIT_AND_SUNK = "hit_and_sunk"

    @property
    def is_hit(self) -> bool:
        return self in (AttackOutcome.HIT, AttackOutcome.HIT_AND_SUNK)


@dataclass(frozen=True)
class AttackReport:
    """What happened when `coord` was attacked."""

    coord: Coordinate
    outcome: AttackOutcome
    ship_id: str | None = None


@dataclass
class Tally:
    """Running score of one attacker."""

    hits: int = 0
    shots: int = 0


def resolve_attack(
    board: Board, fleet: FleetTracker, coord: Coordinate, tally: Tally
) -> AttackReport:
    """Apply one attack and report its outcome.

    Repeated cells come back as ALREADY_ATTACKED and touch nothing. Every
    other call updates the board, the defender's sunk set and the attacker's
    tally before returning.
    """
    with tracer.start_as_current_span("attack.resolve") as span:
        span.set_attribute("attack.row", coord.row)
        span.set_attribute("attack.col", coord.col)
        span.set_attribute("board.owner", board.owner)
        if not board.is_valid_coordinate(coord):
            logger.error(
                "attack_out_of_bounds",
                extra={"row": coord.row, "col": coord.col, "owner": board.owner},
            )
            raise PreconditionViolation(f"Attack at {coord} is outside the board.")

        if board.cell(coord).attacked:
            logger.warning(
                "attack_duplicate",
                extra={"row": coord.row, "col": coord.col, "owner": board.owner},
            )
            span.set_attribute("attack.outcome", AttackOutcome.ALREADY_ATTACKED.value)
            return AttackReport(coord, AttackOutcome.ALREADY_ATTACKED)

        cell = board.mark_attacked(coord)
        tally.shots += 1
        if cell.ship_id is None:
            report = AttackReport(coord, AttackOutcome.MISS)
        else:
            tally.hits += 1
            sunk = fleet.record_sunk(board, cell.ship_id)
            outcome = AttackOutcome.HIT_AND_SUNK if sunk else AttackOutcome.HIT
            report = AttackReport(coord, outcome, cell.ship_id)

        span.set_attribute("attack.outcome", report.outcome.value)
        ATTACK_COUNTER.add(1, attributes={"outcome": report.outcome.value, "owner": board.owner})
        logger.info(
            "attack_resolved",
            extra={
                "row": coord.row,
                "col": coord.col,
                "outcome": report.outcome.value,
                "ship_id": report.ship_id,
                "owner": board.owner,
            },
        )
        return report
