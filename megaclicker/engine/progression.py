"""Progression — level derived from coins, level-up detection, progress bar."""

from __future__ import annotations

import logging

from megaclicker.data.balance import BALANCE
from megaclicker.engine.events import Event, EventKind
from megaclicker.engine.game_state import GameState

logger = logging.getLogger(__name__)


def level_for_coins(coins: int) -> int:
    """Number of thresholds reached (1-indexed level, capped at the table size)."""
    thresholds = BALANCE.progression.level_thresholds
    reached = sum(1 for t in thresholds if t <= coins)
    return max(1, min(reached, len(thresholds)))


def max_level() -> int:
    return len(BALANCE.progression.level_thresholds)


def is_max_level(state: GameState) -> bool:
    return state.level >= max_level()


def apply_level(state: GameState) -> list[Event]:
    """Raise ``state.level`` if coins crossed a threshold. Never lowers it.

    Mutates the (already copied) state; call after every change to coins.
    """
    new_level = level_for_coins(state.coins)
    if new_level <= state.level:
        return []
    state.level = new_level
    logger.info("Level up: %d", new_level)
    return [Event(EventKind.LEVEL_UP, {"level": new_level})]


def next_level_threshold(state: GameState) -> int | str:
    """Coins needed for the next level, or the MAX sentinel."""
    if is_max_level(state):
        return BALANCE.progression.max_label
    return BALANCE.progression.level_thresholds[state.level]


def level_progress(state: GameState) -> float:
    """Percent progress through the current level, clamped to [0, 100]."""
    if is_max_level(state):
        return 100.0
    thresholds = BALANCE.progression.level_thresholds
    lower = thresholds[state.level - 1]
    upper = thresholds[state.level]
    pct = (state.coins - lower) / (upper - lower) * 100
    return max(0.0, min(100.0, pct))
