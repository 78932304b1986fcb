"""Computer targeting: random search, neighbour hunt and directional hunt.

The engine only ever sees what an honest opponent would: the coordinates it
fired at, whether they hit, and which ship a confirmed sinking belonged to.

Three tiers share one state machine:

* easy   - uniform random search, hits are ignored;
* medium - a hit pushes its four neighbours onto a LIFO hunt queue;
* hard   - parity (checkerboard) search, and once two aligned hits are
  known the queue is narrowed to the two open ends of the hit run.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Sequence

from gridbattle.engine.attack import AttackOutcome, AttackReport
from gridbattle.engine.board import DEFAULT_BOARD_SIZE, Board, CellState
from gridbattle.engine.errors import PreconditionViolation
from gridbattle.engine.ship import Coordinate, Orientation
from gridbattle.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("gridbattle.ai.targeting")
meter = get_meter("gridbattle.ai.targeting")

TARGET_COUNTER = meter.create_counter(
    "gridbattle_ai_targets",
    unit="1",
    description="Targets chosen by the computer, by source",
)


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class HuntMode(Enum):
    """Where the next target comes from."""

    SEARCHING = "searching"
    HUNTING_GENERIC = "hunting_generic"
    HUNTING_DIRECTIONAL = "hunting_directional"

    @property
    def hunting(self) -> bool:
        return self is not HuntMode.SEARCHING


def parity_pattern(size: int) -> list[Coordinate]:
    """Checkerboard cells; every ship of length >= 2 covers at least one."""
    return [
        Coordinate(row, col) for row in range(size) for col in range(size) if (row + col) % 2 == 0
    ]


def neighbour_candidates(coord: Coordinate, size: int) -> list[Coordinate]:
    """In-bounds orthogonal neighbours, in push order."""
    return [n for n in coord.neighbours() if 0 <= n.row < size and 0 <= n.col < size]


def infer_orientation(current: Coordinate, previous: Coordinate) -> Orientation | None:
    if current.row == previous.row:
        return Orientation.HORIZONTAL
    if current.col == previous.col:
        return Orientation.VERTICAL
    return None


def run_end_candidates(
    hits: Iterable[Coordinate], anchor: Coordinate, axis: Orientation
) -> list[Coordinate]:
    """The cells just beyond both ends of the hit run through `anchor`.

    The run is every hit sharing `anchor`'s row (horizontal) or column
    (vertical); the low end comes first. Bounds are not checked here.
    """
    if axis is Orientation.HORIZONTAL:
        cols = [hit.col for hit in hits if hit.row == anchor.row]
        return [Coordinate(anchor.row, min(cols) - 1), Coordinate(anchor.row, max(cols) + 1)]
    rows = [hit.row for hit in hits if hit.col == anchor.col]
    return [Coordinate(min(rows) - 1, anchor.col), Coordinate(max(rows) + 1, anchor.col)]


@dataclass
class AdversaryState:
    """Everything the computer remembers during one match."""

    guessed: set[Coordinate] = field(default_factory=set)
    mode: HuntMode = HuntMode.SEARCHING
    hunt_queue: list[Coordinate] = field(default_factory=list)
    hit_buffer: list[Coordinate] = field(default_factory=list)
    direction: Orientation | None = None
    last_hit: Coordinate | None = None
    search_pattern: list[Coordinate] = field(default_factory=list)
    sunk_ids: set[str] = field(default_factory=set)

    def reset_hunt(self, mode: HuntMode) -> None:
        self.mode = mode
        self.hunt_queue.clear()
        self.direction = None
        self.last_hit = None


class TargetingEngine:
    """Chooses the computer's next attack and learns from the outcome."""

    def __init__(
        self,
        difficulty: Difficulty = Difficulty.EASY,
        board_size: int = DEFAULT_BOARD_SIZE,
        rng: random.Random | None = None,
    ) -> None:
        self.difficulty = Difficulty(difficulty)
        self.board_size = board_size
        self._rng = rng or random.Random()
        self.state = self._fresh_state()

    def reset(self, difficulty: Difficulty | None = None) -> None:
        """Forget everything and start a new match."""
        if difficulty is not None:
            self.difficulty = Difficulty(difficulty)
        self.state = self._fresh_state()

    def _fresh_state(self) -> AdversaryState:
        state = AdversaryState()
        if self.difficulty is Difficulty.HARD:
            state.search_pattern = parity_pattern(self.board_size)
            self._rng.shuffle(state.search_pattern)
        return state

    @property
    def mode(self) -> HuntMode:
        return self.state.mode

    def next_target(self) -> Coordinate:
        """Pick an unguessed coordinate and remember it as guessed."""
        with tracer.start_as_current_span("targeting.next_target") as span:
            span.set_attribute("difficulty", self.difficulty.value)
            target, source = self._choose()
            self.state.guessed.add(target)
            span.set_attribute("target.row", target.row)
            span.set_attribute("target.col", target.col)
            span.set_attribute("target.source", source)
            TARGET_COUNTER.add(1, attributes={"source": source, "difficulty": self.difficulty.value})
            logger.debug(
                "target_chosen",
                extra={
                    "row": target.row,
                    "col": target.col,
                    "source": source,
                    "mode": self.state.mode.value,
                },
            )
            return target

    def _choose(self) -> tuple[Coordinate, str]:
        state = self.state
        if len(state.guessed) >= self.board_size * self.board_size:
            logger.error("targeting_board_exhausted", extra={"guessed": len(state.guessed)})
            raise PreconditionViolation("Every cell has already been targeted.")

        if state.mode.hunting and state.hunt_queue:
            target = self._pop_unguessed()
            if target is not None:
                return target, "hunt_queue"
            state.mode = HuntMode.SEARCHING

        if self.difficulty is Difficulty.HARD and state.hit_buffer:
            # Context of the previous ship is gone; rebuild from the oldest open hit.
            state.mode = HuntMode.HUNTING_GENERIC
            state.direction = None
            self._push_all(neighbour_candidates(state.hit_buffer[0], self.board_size))
            target = self._pop_unguessed()
            if target is not None:
                return target, "hit_buffer"
            state.mode = HuntMode.SEARCHING

        if self.difficulty is Difficulty.HARD:
            while state.search_pattern:
                candidate = state.search_pattern.pop()
                if candidate not in state.guessed:
                    return candidate, "parity"
        return self._random_unguessed(), "random"

    def _pop_unguessed(self) -> Coordinate | None:
        queue = self.state.hunt_queue
        while queue:
            candidate = queue.pop()
            if candidate not in self.state.guessed:
                return candidate
        return None

    def _random_unguessed(self) -> Coordinate:
        while True:
            candidate = Coordinate(
                self._rng.randrange(self.board_size), self._rng.randrange(self.board_size)
            )
            if candidate not in self.state.guessed:
                return candidate

    def _push(self, coord: Coordinate) -> None:
        state = self.state
        if not (0 <= coord.row < self.board_size and 0 <= coord.col < self.board_size):
            return
        if coord in state.guessed or coord in state.hunt_queue:
            return
        state.hunt_queue.append(coord)

    def _push_all(self, coords: Sequence[Coordinate]) -> None:
        for coord in coords:
            self._push(coord)

    def process_hit(self, coord: Coordinate) -> None:
        """Update hunt bookkeeping after `coord` turned out to be a hit."""
        if self.difficulty is Difficulty.EASY:
            return
        state = self.state
        state.guessed.add(coord)
        state.hit_buffer.append(coord)

        if self.difficulty is Difficulty.MEDIUM:
            state.mode = HuntMode.HUNTING_GENERIC
            self._push_all(neighbour_candidates(coord, self.board_size))
        elif len(state.hit_buffer) == 1:
            state.mode = HuntMode.HUNTING_GENERIC
            self._push_all(neighbour_candidates(coord, self.board_size))
        else:
            previous = state.last_hit
            if previous is None or previous not in state.hit_buffer:
                previous = state.hit_buffer[-2]
            state.direction = infer_orientation(coord, previous) or state.direction
            if state.direction is not None:
                state.mode = HuntMode.HUNTING_DIRECTIONAL
                state.hunt_queue.clear()
                self._push_all(run_end_candidates(state.hit_buffer, coord, state.direction))
            else:
                state.mode = HuntMode.HUNTING_GENERIC
                self._push_all(neighbour_candidates(coord, self.board_size))

        state.last_hit = coord
        logger.debug(
            "hit_processed",
            extra={
                "row": coord.row,
                "col": coord.col,
                "mode": state.mode.value,
                "direction": state.direction.value if state.direction else None,
                "queue": len(state.hunt_queue),
            },
        )

    def process_sunk(self, ship_id: str, board: Board) -> None:
        """Drop the buffered hits that belonged to the ship just sunk.

        Only cells already in the hit buffer are read, and those are HIT
        cells the computer has seen. Repeated calls for a ship are ignored.
        """
        state = self.state
        if ship_id in state.sunk_ids:
            return
        state.sunk_ids.add(ship_id)

        state.hit_buffer = [
            hit
            for hit in state.hit_buffer
            if not (board.cell(hit).state is CellState.HIT and board.cell(hit).ship_id == ship_id)
        ]
        if state.hit_buffer:
            state.reset_hunt(HuntMode.HUNTING_GENERIC)
        else:
            state.reset_hunt(HuntMode.SEARCHING)
        logger.debug(
            "sunk_processed",
            extra={"ship_id": ship_id, "open_hits": len(state.hit_buffer), "mode": state.mode.value},
        )

    def register_outcome(self, report: AttackReport, board: Board) -> None:
        """Feed a resolved attack back into the engine."""
        self.state.guessed.add(report.coord)
        if report.outcome is AttackOutcome.ALREADY_ATTACKED:
            return
        if report.outcome.is_hit:
            self.process_hit(report.coord)
        if report.outcome is AttackOutcome.HIT_AND_SUNK and report.ship_id is not None:
            self.process_sunk(report.ship_id, board)
