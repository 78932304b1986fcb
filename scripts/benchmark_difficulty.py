#!/usr/bin/env python3
"""
Compare computer difficulty tiers by simulated sweep length.

Run from repo root:

    PYTHONPATH=src python3 scripts/benchmark_difficulty.py --matches 200

For every tier the script lets the targeting engine fire at `--matches`
randomly placed fleets, with no human turns in between, and reports how
many attacks it needed to hit every ship cell.
"""

from __future__ import annotations

import argparse
import logging
import random
import statistics
from dataclasses import dataclass

from opentelemetry.instrumentation.logging import LoggingInstrumentor

from gridbattle.ai.targeting import Difficulty, TargetingEngine
from gridbattle.config import MatchConfig
from gridbattle.engine.attack import Tally, resolve_attack
from gridbattle.engine.board import Board
from gridbattle.engine.events import Side
from gridbattle.engine.fleet import FleetTracker
from gridbattle.engine.ship import PLAYER_ROSTER
from gridbattle.telemetry import get_tracer, init_telemetry, record_game_distribution

logger = logging.getLogger(__name__)
_TRACER_NAME = "gridbattle.scripts.benchmark"


@dataclass
class TierResult:
    difficulty: Difficulty
    turns: list[int]

    @property
    def mean(self) -> float:
        return statistics.fmean(self.turns)

    @property
    def best(self) -> int:
        return min(self.turns)

    @property
    def worst(self) -> int:
        return max(self.turns)


def simulate_sweep(difficulty: Difficulty, seed: int) -> int:
    """Let one targeting engine fire until a random fleet is covered; return its attacks."""
    config = MatchConfig(difficulty=difficulty, rng_seed=seed)
    rng = random.Random(seed)
    board = Board(size=config.board_size, owner=Side.HUMAN.value)
    fleet = FleetTracker(PLAYER_ROSTER, owner=Side.HUMAN.value)
    for placement in board.random_placement(fleet.roster, rng, config.placement_attempts):
        fleet.mark_placed(placement.ship.ship_id)

    engine = TargetingEngine(difficulty, board_size=config.board_size, rng=rng)
    tally = Tally()
    while tally.hits < fleet.total_cells:
        report = resolve_attack(board, fleet, engine.next_target(), tally)
        engine.register_outcome(report, board)
    return tally.shots


def benchmark(matches: int, base_seed: int) -> list[TierResult]:
    tracer = get_tracer(_TRACER_NAME)
    results: list[TierResult] = []
    for difficulty in Difficulty:
        with tracer.start_as_current_span("benchmark.tier") as span:
            span.set_attribute("difficulty", difficulty.value)
            span.set_attribute("matches", matches)
            turns = []
            for index in range(matches):
                count = simulate_sweep(difficulty, base_seed + index)
                record_game_distribution(
                    "gridbattle_benchmark_sweep_turns", count, {"difficulty": difficulty.value}
                )
                turns.append(count)
            result = TierResult(difficulty, turns)
            span.set_attribute("mean_turns", result.mean)
            logger.info(
                "benchmark_tier_complete",
                extra={"difficulty": difficulty.value, "mean_turns": result.mean},
            )
            results.append(result)
    return results


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--matches", type=int, default=100, help="Sweeps per difficulty.")
    parser.add_argument("--seed", type=int, default=0, help="Seed of the first sweep.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    telemetry = init_telemetry()
    if telemetry.enable_logging:
        LoggingInstrumentor().instrument()

    print(f"{'difficulty':<10} {'mean':>7} {'best':>5} {'worst':>6}")
    for result in benchmark(args.matches, args.seed):
        print(
            f"{result.difficulty.value:<10} {result.mean:>7.1f} "
            f"{result.best:>5} {result.worst:>6}"
        )


if __name__ == "__main__":
    main()
