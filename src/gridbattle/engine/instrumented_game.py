"""Match subclass with telemetry hooks."""

from __future__ import annotations

import time

from gridbattle.engine.attack import AttackReport
from gridbattle.engine.events import Side
from gridbattle.engine.game import Match
from gridbattle.engine.ship import Coordinate
from gridbattle.telemetry import (
    get_logger,
    get_tracer,
    record_game_distribution,
    record_game_metric,
)


class InstrumentedMatch(Match):
    """Wraps Match with tracing, metrics, and logging."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._logger = get_logger("gridbattle.engine")
        self._tracer = get_tracer("gridbattle.engine")
        self._match_span_cm = None
        self._match_span = None
        self._match_start_time: float | None = None
        self._match_id_counter = 0

    def confirm_placement(self) -> None:
        self._start_match_span()
        with self._tracer.start_as_current_span("gridbattle.engine.confirm_placement") as span:
            self._logger.info("Placement confirmed, deploying computer fleet")
            super().confirm_placement()
            span.set_attribute("difficulty", self.difficulty.value)
            span.set_attribute("computer_ships", len(self.sides[Side.COMPUTER].fleet.placed))
            record_game_metric(
                "gridbattle_match_started_total",
                1,
                {"difficulty": self.difficulty.value},
            )

    def _attack(self, attacker: Side, coord: Coordinate) -> AttackReport:
        with self._tracer.start_as_current_span("gridbattle.engine.attack") as span:
            span.set_attribute("match.id", self._match_id_counter)
            span.set_attribute("side", attacker.value)
            span.set_attribute("coord.row", coord.row)
            span.set_attribute("coord.col", coord.col)

            report = super()._attack(attacker, coord)

            span.set_attribute("outcome", report.outcome.value)
            record_game_metric("gridbattle_attacks_total", 1, {"side": attacker.value})
            record_game_metric(
                "gridbattle_attacks_by_outcome_total",
                1,
                {"side": attacker.value, "outcome": report.outcome.value},
            )
            self._logger.info(
                "attack side=%s coord=(%d,%d) outcome=%s",
                attacker.value,
                coord.row,
                coord.col,
                report.outcome.value,
            )
            return report

    def _finish(self, winner_side: Side) -> None:
        super()._finish(winner_side)
        duration = (time.perf_counter() - self._match_start_time) if self._match_start_time else 0.0
        winner = winner_side.value
        turns = self.turn_counts()

        record_game_metric(
            "gridbattle_match_completed_total",
            1,
            {"winner": winner, "difficulty": self.difficulty.value},
        )
        record_game_distribution(
            "gridbattle_winning_turns",
            turns[winner_side],
            {"winner": winner, "difficulty": self.difficulty.value},
        )

        with self._tracer.start_as_current_span("gridbattle.engine.match_complete") as span:
            span.set_attribute("match.id", self._match_id_counter)
            span.set_attribute("winner", winner)
            span.set_attribute("human_turns", turns[Side.HUMAN])
            span.set_attribute("computer_turns", turns[Side.COMPUTER])
            span.set_attribute("duration_ms", duration * 1000)

        if self._match_span is not None:
            self._match_span.set_attribute("winner", winner)
            self._match_span.set_attribute("duration_ms", duration * 1000)

        self._logger.info(
            "Match finished. Winner=%s human_turns=%d computer_turns=%d duration_s=%.3f",
            winner,
            turns[Side.HUMAN],
            turns[Side.COMPUTER],
            duration,
        )
        self._close_match_span()

    def reset(self, difficulty=None) -> None:
        self._close_match_span()
        super().reset(difficulty)

    def _start_match_span(self) -> None:
        self._close_match_span()
        self._match_start_time = time.perf_counter()
        self._match_id_counter += 1
        self._match_span_cm = self._tracer.start_as_current_span("gridbattle.engine.match")
        self._match_span = self._match_span_cm.__enter__()
        self._match_span.set_attribute("match.id", self._match_id_counter)

    def _close_match_span(self) -> None:
        if self._match_span_cm is not None:
            self._match_span_cm.__exit__(None, None, None)
            self._match_span_cm = None
            self._match_span = None
