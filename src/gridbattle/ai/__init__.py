"""Computer opponent package exports."""

from .targeting import AdversaryState, Difficulty, HuntMode, TargetingEngine

__all__ = ["AdversaryState", "Difficulty", "HuntMode", "TargetingEngine"]
