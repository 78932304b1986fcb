"""Match configuration."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator

from gridbattle.ai.targeting import Difficulty
from gridbattle.engine.board import DEFAULT_BOARD_SIZE, DEFAULT_PLACEMENT_ATTEMPTS
from gridbattle.engine.ship import PLAYER_ROSTER

LONGEST_SHIP = max(max(ship.width, ship.height) for ship in PLAYER_ROSTER)
# Rows are labelled with a single letter.
MAX_BOARD_SIZE = 26


class MatchConfig(BaseModel):
    """Settings for one human-vs-computer match."""

    difficulty: Difficulty = Difficulty.EASY
    board_size: int = Field(default=DEFAULT_BOARD_SIZE, ge=LONGEST_SHIP, le=MAX_BOARD_SIZE)
    initial_attack_delay: float = Field(default=1.0, ge=0.0)
    attack_interval: float = Field(default=0.4, ge=0.0)
    rng_seed: int | None = None
    placement_attempts: int = Field(default=DEFAULT_PLACEMENT_ATTEMPTS, ge=0)

    @field_validator("difficulty", mode="before")
    @classmethod
    def _normalise_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> "MatchConfig":
        """Construct config from `GRIDBATTLE_*` env vars; overrides win."""

        data: Dict[str, Any] = {}
        env_fields = {
            "difficulty": "GRIDBATTLE_DIFFICULTY",
            "board_size": "GRIDBATTLE_BOARD_SIZE",
            "initial_attack_delay": "GRIDBATTLE_INITIAL_DELAY",
            "attack_interval": "GRIDBATTLE_ATTACK_INTERVAL",
            "rng_seed": "GRIDBATTLE_SEED",
        }
        for field, env_name in env_fields.items():
            value = os.getenv(env_name)
            if value is not None and value.strip():
                data[field] = value.strip()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)


@lru_cache(maxsize=1)
def load_match_config() -> MatchConfig:
    """Load and cache match config from the environment."""

    return MatchConfig.from_env()
