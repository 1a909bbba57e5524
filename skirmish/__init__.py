"""Skirmish - AI turn orchestration for NPCs in a turn-based tactical game."""

__version__ = "0.1.0"
