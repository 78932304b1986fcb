"""Exceptions raised by the game engine.

User-facing problems (a bad placement, a repeated attack) are reported as
return values. Exceptions are reserved for callers that misuse the engine.
"""

from __future__ import annotations


class GridBattleError(Exception):
    """Base class for engine errors."""


class PreconditionViolation(GridBattleError, RuntimeError):
    """Raised when an operation is invoked in a state that forbids it."""
