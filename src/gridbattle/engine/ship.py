"""Ship roster and coordinate primitives."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


@dataclass(frozen=True)
class Coordinate:
    """Immutable board coordinate."""

    row: int
    col: int

    def neighbours(self) -> tuple[Coordinate, ...]:
        """Orthogonal neighbours in down, up, right, left order (unbounded)."""
        return (
            Coordinate(self.row + 1, self.col),
            Coordinate(self.row - 1, self.col),
            Coordinate(self.row, self.col + 1),
            Coordinate(self.row, self.col - 1),
        )


class Orientation(Enum):
    """Axis a ship (or a run of hits) lies along."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


@dataclass(frozen=True)
class ShipSpec:
    """Immutable roster entry describing one ship's footprint."""

    ship_id: str
    name: str
    width: int
    height: int

    @property
    def cell_count(self) -> int:
        """Return the number of cells the ship covers."""
        return self.width * self.height

    @property
    def orientation(self) -> Orientation:
        return Orientation.HORIZONTAL if self.width > self.height else Orientation.VERTICAL

    def rotated(self) -> ShipSpec:
        """Return the same ship with width and height swapped."""
        return replace(self, width=self.height, height=self.width)

    def oriented(self, orientation: Orientation) -> ShipSpec:
        """Return the ship laid along `orientation`."""
        if self.orientation is orientation or self.width == self.height:
            return self
        return self.rotated()


def footprint(origin: Coordinate, width: int, height: int) -> list[Coordinate]:
    """Cells covered by a `width` x `height` rectangle anchored at `origin`."""
    return [
        Coordinate(origin.row + dr, origin.col + dc)
        for dr in range(height)
        for dc in range(width)
    ]


PLAYER_ROSTER: tuple[ShipSpec, ...] = (
    ShipSpec("p_sub_1", "Submarine (Archerfish)", 1, 2),
    ShipSpec("p_des_1", "Destroyer (Gearing)", 1, 3),
    ShipSpec("p_des_2", "Destroyer (Sumner)", 1, 3),
    ShipSpec("p_cru_1", "Cruiser (Des Moines)", 1, 4),
    ShipSpec("p_bat_1", "Battleship (Montana)", 1, 5),
)

COMPUTER_ROSTER: tuple[ShipSpec, ...] = (
    ShipSpec("ai_sub_1", "Submarine (I-56)", 1, 2),
    ShipSpec("ai_des_1", "Destroyer (Shimakaze)", 1, 3),
    ShipSpec("ai_des_2", "Destroyer (Hayate)", 1, 3),
    ShipSpec("ai_cru_1", "Cruiser (Zao)", 1, 4),
    ShipSpec("ai_bat_1", "Battleship (Yamato)", 1, 5),
)


def roster_cell_count(roster: tuple[ShipSpec, ...]) -> int:
    """Total number of cells a roster occupies once fully placed."""
    return sum(ship.cell_count for ship in roster)


TOTAL_SHIP_CELLS = roster_cell_count(PLAYER_ROSTER)


def find_ship(roster: tuple[ShipSpec, ...], ship_id: str) -> ShipSpec | None:
    for ship in roster:
        if ship.ship_id == ship_id:
            return ship
    return None
