"""Board model and placement validation for a single side."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from gridbattle.telemetry import get_meter, get_tracer

from .errors import PreconditionViolation
from .ship import Coordinate, Orientation, ShipSpec, footprint

logger = logging.getLogger(__name__)
tracer = get_tracer("gridbattle.engine.board")
meter = get_meter("gridbattle.engine.board")

PLACEMENT_COUNTER = meter.create_counter(
    "gridbattle_engine_ship_placements",
    unit="1",
    description="Number of attempted ship placements",
)

DEFAULT_BOARD_SIZE = 10
DEFAULT_PLACEMENT_ATTEMPTS = 1000
DEFAULT_PLACEMENT_RESTARTS = 50


class CellState(Enum):
    """Tag of a board cell."""

    EMPTY = "empty"
    OCCUPIED = "occupied"
    HIT = "hit"
    MISS = "miss"


@dataclass(frozen=True)
class Cell:
    """Tagged cell value; `ship_id` is set for OCCUPIED and HIT only."""

    state: CellState
    ship_id: str | None = None

    @property
    def attacked(self) -> bool:
        return self.state in (CellState.HIT, CellState.MISS)

    @classmethod
    def occupied(cls, ship_id: str) -> Cell:
        return cls(CellState.OCCUPIED, ship_id)

    @classmethod
    def hit(cls, ship_id: str) -> Cell:
        return cls(CellState.HIT, ship_id)


EMPTY_CELL = Cell(CellState.EMPTY)
MISS_CELL = Cell(CellState.MISS)


class PlacementRejection(Enum):
    """Why a placement request was refused."""

    OUT_OF_BOUNDS = "out_of_bounds"
    OVERLAP = "overlap"
    ALREADY_PLACED = "already_placed"


@dataclass(frozen=True)
class Placement:
    """Where a ship ended up on a board."""

    ship: ShipSpec
    origin: Coordinate
    width: int
    height: int

    def footprint(self) -> list[Coordinate]:
        return footprint(self.origin, self.width, self.height)


@dataclass
class Board:
    """A square grid of tagged cells plus the placements that produced them."""

    size: int = DEFAULT_BOARD_SIZE
    owner: str = "unknown"
    placements: dict[str, Placement] = field(default_factory=dict)
    locked: bool = False
    _grid: list[list[Cell]] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("Board size must be positive.")
        self._grid = [[EMPTY_CELL] * self.size for _ in range(self.size)]

    def is_valid_coordinate(self, coord: Coordinate) -> bool:
        """Check whether a coordinate lies inside the board boundaries."""
        return 0 <= coord.row < self.size and 0 <= coord.col < self.size

    def cell(self, coord: Coordinate) -> Cell:
        if not self.is_valid_coordinate(coord):
            logger.error(
                "cell_out_of_bounds",
                extra={"row": coord.row, "col": coord.col, "owner": self.owner},
            )
            raise PreconditionViolation(f"{coord} is outside the {self.size}x{self.size} board.")
        return self._grid[coord.row][coord.col]

    def check_placement(
        self,
        ship: ShipSpec,
        origin: Coordinate,
        width: int | None = None,
        height: int | None = None,
    ) -> PlacementRejection | None:
        """Return why the footprint cannot go at `origin`, or None if it fits."""
        width = ship.width if width is None else width
        height = ship.height if height is None else height
        cells = footprint(origin, width, height)
        if not all(self.is_valid_coordinate(coord) for coord in cells):
            return PlacementRejection.OUT_OF_BOUNDS
        if any(self._grid[c.row][c.col].state is not CellState.EMPTY for c in cells):
            return PlacementRejection.OVERLAP
        return None

    def can_place(
        self,
        ship: ShipSpec,
        origin: Coordinate,
        width: int | None = None,
        height: int | None = None,
    ) -> bool:
        return self.check_placement(ship, origin, width, height) is None

    def place(
        self,
        ship: ShipSpec,
        origin: Coordinate,
        width: int | None = None,
        height: int | None = None,
    ) -> Placement:
        """Write OCCUPIED cells for `ship`; callers must have validated the spot."""
        width = ship.width if width is None else width
        height = ship.height if height is None else height
        with tracer.start_as_current_span("board.place") as span:
            span.set_attribute("ship.id", ship.ship_id)
            span.set_attribute("ship.cells", width * height)
            span.set_attribute("ship.origin.row", origin.row)
            span.set_attribute("ship.origin.col", origin.col)
            span.set_attribute("board.owner", self.owner)
            if self.locked:
                logger.error(
                    "placement_on_locked_board",
                    extra={"owner": self.owner, "ship_id": ship.ship_id},
                )
                raise PreconditionViolation("Ships cannot be placed once attacks have begun.")
            if ship.ship_id in self.placements:
                logger.error(
                    "placement_duplicate_ship",
                    extra={"owner": self.owner, "ship_id": ship.ship_id},
                )
                raise PreconditionViolation(f"Ship {ship.ship_id!r} is already on the board.")
            rejection = self.check_placement(ship, origin, width, height)
            if rejection is not None:
                PLACEMENT_COUNTER.add(1, attributes={"result": rejection.value, "owner": self.owner})
                logger.error(
                    "placement_invalid",
                    extra={
                        "owner": self.owner,
                        "ship_id": ship.ship_id,
                        "row": origin.row,
                        "col": origin.col,
                        "reason": rejection.value,
                    },
                )
                raise PreconditionViolation(
                    f"Ship {ship.ship_id!r} cannot be placed at {origin}: {rejection.value}."
                )

            placement = Placement(ship=ship, origin=origin, width=width, height=height)
            for coord in placement.footprint():
                self._grid[coord.row][coord.col] = Cell.occupied(ship.ship_id)
            self.placements[ship.ship_id] = placement
            PLACEMENT_COUNTER.add(1, attributes={"result": "success", "owner": self.owner})
            logger.info(
                "ship_placed",
                extra={
                    "owner": self.owner,
                    "ship_id": ship.ship_id,
                    "width": width,
                    "height": height,
                    "row": origin.row,
                    "col": origin.col,
                },
            )
            return placement

    def mark_attacked(self, coord: Coordinate) -> Cell:
        """Flip an unattacked cell to HIT or MISS and lock the board."""
        current = self.cell(coord)
        if current.attacked:
            logger.error(
                "cell_already_attacked",
                extra={"row": coord.row, "col": coord.col, "owner": self.owner},
            )
            raise PreconditionViolation(f"{coord} has already been attacked.")
        updated = MISS_CELL if current.ship_id is None else Cell.hit(current.ship_id)
        self._grid[coord.row][coord.col] = updated
        self.locked = True
        return updated

    def random_placement(
        self,
        roster: Iterable[ShipSpec],
        rng: random.Random,
        max_attempts: int = DEFAULT_PLACEMENT_ATTEMPTS,
        max_restarts: int = DEFAULT_PLACEMENT_RESTARTS,
    ) -> list[Placement]:
        """Place every ship of `roster` that is not on the board yet.

        Each ship gets up to `max_attempts` uniformly random tries, then a
        systematic scan of every origin and orientation. If a ship is boxed in
        anyway, the ships this call placed are lifted off again and the batch
        starts over, at most `max_restarts` times. Ships that were already on
        the board stay where they are.
        """
        pending = [ship for ship in roster if ship.ship_id not in self.placements]
        with tracer.start_as_current_span("board.random_placement") as span:
            span.set_attribute("board.owner", self.owner)
            for restart in range(max_restarts + 1):
                placed, stuck = self._place_batch(pending, rng, max_attempts)
                if stuck is None:
                    span.set_attribute("ships.placed", len(placed))
                    span.set_attribute("placement.restarts", restart)
                    return placed
                for placement in placed:
                    self._lift(placement)
                logger.info(
                    "random_placement_stuck",
                    extra={"owner": self.owner, "ship_id": stuck.ship_id, "restart": restart},
                )
            logger.error(
                "random_placement_exhausted",
                extra={"owner": self.owner, "ship_id": stuck.ship_id, "restarts": max_restarts},
            )
            raise PreconditionViolation(f"No room left on the board for {stuck.ship_id!r}.")

    def _place_batch(
        self, ships: list[ShipSpec], rng: random.Random, max_attempts: int
    ) -> tuple[list[Placement], ShipSpec | None]:
        placed: list[Placement] = []
        for ship in ships:
            candidate, attempts = self._sample_slot(ship, rng, max_attempts)
            if candidate is None:
                candidate = self._scan_slot(ship)
            if candidate is None:
                return placed, ship
            oriented, origin = candidate
            placed.append(self.place(oriented, origin))
            logger.debug(
                "random_ship_placed",
                extra={"ship_id": ship.ship_id, "attempts": attempts, "owner": self.owner},
            )
        return placed, None

    def _lift(self, placement: Placement) -> None:
        for coord in placement.footprint():
            self._grid[coord.row][coord.col] = EMPTY_CELL
        del self.placements[placement.ship.ship_id]

    def _sample_slot(
        self, ship: ShipSpec, rng: random.Random, max_attempts: int
    ) -> tuple[tuple[ShipSpec, Coordinate] | None, int]:
        for attempt in range(1, max_attempts + 1):
            oriented = ship.rotated() if rng.random() < 0.5 else ship
            origin = Coordinate(rng.randrange(self.size), rng.randrange(self.size))
            if self.can_place(oriented, origin):
                return (oriented, origin), attempt
        return None, max_attempts

    def _scan_slot(self, ship: ShipSpec) -> tuple[ShipSpec, Coordinate] | None:
        for orientation in Orientation:
            oriented = ship.oriented(orientation)
            for row in range(self.size):
                for col in range(self.size):
                    origin = Coordinate(row, col)
                    if self.can_place(oriented, origin):
                        return oriented, origin
        return None

    def coordinates(self) -> Iterator[Coordinate]:
        for row in range(self.size):
            for col in range(self.size):
                yield Coordinate(row, col)

    def cells_of(self, ship_id: str) -> list[Coordinate]:
        """Coordinates holding `ship_id`, hit or not."""
        return [coord for coord in self.coordinates() if self._cell_at(coord).ship_id == ship_id]

    def unattacked_coordinates(self) -> list[Coordinate]:
        return [coord for coord in self.coordinates() if not self._cell_at(coord).attacked]

    def _cell_at(self, coord: Coordinate) -> Cell:
        return self._grid[coord.row][coord.col]

    def rows(self) -> list[tuple[Cell, ...]]:
        """Read-only copy of the grid, row by row."""
        return [tuple(row) for row in self._grid]
