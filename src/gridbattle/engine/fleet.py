"""Fleet bookkeeping: which ships are placed and which are sunk."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .board import Board, CellState
from .errors import PreconditionViolation
from .ship import ShipSpec, find_ship, roster_cell_count

logger = logging.getLogger(__name__)


@dataclass
class FleetTracker:
    """Tracks one side's roster against its board."""

    roster: tuple[ShipSpec, ...]
    owner: str = "unknown"
    placed: set[str] = field(default_factory=set)
    sunk: set[str] = field(default_factory=set)

    @property
    def total_cells(self) -> int:
        return roster_cell_count(self.roster)

    def ship(self, ship_id: str) -> ShipSpec | None:
        return find_ship(self.roster, ship_id)

    def mark_placed(self, ship_id: str) -> None:
        if self.ship(ship_id) is None:
            logger.error("unknown_ship", extra={"ship_id": ship_id, "owner": self.owner})
            raise PreconditionViolation(f"{ship_id!r} is not part of the {self.owner} roster.")
        self.placed.add(ship_id)

    def remaining(self) -> list[ShipSpec]:
        """Roster ships that still have to be placed, in roster order."""
        return [ship for ship in self.roster if ship.ship_id not in self.placed]

    def all_placed(self) -> bool:
        return not self.remaining()

    def is_sunk(self, board: Board, ship_id: str) -> bool:
        """True when no OCCUPIED cell of `ship_id` is left on `board`."""
        if ship_id not in self.placed:
            logger.error("sunk_check_unplaced_ship", extra={"ship_id": ship_id, "owner": self.owner})
            raise PreconditionViolation(f"{ship_id!r} has not been placed.")
        for coord in board.coordinates():
            cell = board.cell(coord)
            if cell.state is CellState.OCCUPIED and cell.ship_id == ship_id:
                return False
        return True

    def record_sunk(self, board: Board, ship_id: str) -> bool:
        """Return True only the first time `ship_id` is found sunk."""
        if ship_id in self.sunk:
            return False
        if not self.is_sunk(board, ship_id):
            return False
        self.sunk.add(ship_id)
        logger.info("ship_sunk", extra={"ship_id": ship_id, "owner": self.owner})
        return True

    def is_defeated(self) -> bool:
        return bool(self.placed) and self.sunk == self.placed
