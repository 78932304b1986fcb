"""Tests for the ship roster and coordinate helpers."""

from gridbattle.engine.ship import (
    COMPUTER_ROSTER,
    PLAYER_ROSTER,
    TOTAL_SHIP_CELLS,
    Coordinate,
    Orientation,
    ShipSpec,
    find_ship,
    footprint,
)


def test_roster_sizes_and_total_cells() -> None:
    assert sorted(ship.cell_count for ship in PLAYER_ROSTER) == [2, 3, 3, 4, 5]
    assert sorted(ship.cell_count for ship in COMPUTER_ROSTER) == [2, 3, 3, 4, 5]
    assert TOTAL_SHIP_CELLS == 17
    assert len({ship.ship_id for ship in PLAYER_ROSTER + COMPUTER_ROSTER}) == 10


def test_rotation_swaps_dimensions_without_mutating() -> None:
    ship = ShipSpec("p_cru_1", "Cruiser", 1, 4)
    rotated = ship.rotated()
    assert (rotated.width, rotated.height) == (4, 1)
    assert (ship.width, ship.height) == (1, 4)
    assert rotated.orientation is Orientation.HORIZONTAL
    assert ship.oriented(Orientation.VERTICAL) is ship
    assert ship.oriented(Orientation.HORIZONTAL) == rotated


def test_footprint_covers_rectangle() -> None:
    assert footprint(Coordinate(2, 3), 3, 1) == [
        Coordinate(2, 3),
        Coordinate(2, 4),
        Coordinate(2, 5),
    ]
    assert footprint(Coordinate(0, 0), 1, 2) == [Coordinate(0, 0), Coordinate(1, 0)]


def test_neighbours_order_and_lookup() -> None:
    assert Coordinate(0, 0).neighbours() == (
        Coordinate(1, 0),
        Coordinate(-1, 0),
        Coordinate(0, 1),
        Coordinate(0, -1),
    )
    assert find_ship(PLAYER_ROSTER, "p_sub_1") is PLAYER_ROSTER[0]
    assert find_ship(PLAYER_ROSTER, "ai_sub_1") is None
