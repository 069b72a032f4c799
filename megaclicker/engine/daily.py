"""Daily reward — once-per-calendar-day bonus that grows with the streak."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from megaclicker.data.balance import BALANCE
from megaclicker.engine.events import EventKind, Rejection, Transition, reject
from megaclicker.engine.game_state import GameState
from megaclicker.engine.progression import apply_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyOffer:
    """A reward owed today, waiting for the player to claim it."""

    amount: int
    streak: int
    day: str


def reward_for_streak(streak: int) -> int:
    bal = BALANCE.daily
    return bal.base_reward + (streak - 1) * bal.streak_bonus_per_day


def _parse_day(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring unreadable daily reward date %r", value)
        return None


def pending_daily_reward(state: GameState, today: date) -> DailyOffer | None:
    """What today's claim would pay, or None when already claimed today."""
    last = _parse_day(state.last_daily_reward)
    if last == today:
        return None

    if last is not None and last == today - timedelta(days=1):
        streak = state.daily_streak + 1
    else:
        streak = 1
    return DailyOffer(amount=reward_for_streak(streak), streak=streak, day=today.isoformat())


def claim_daily_reward(state: GameState, today: date) -> Transition:
    """Grant today's reward. Refused if it was already claimed today."""
    offer = pending_daily_reward(state, today)
    if offer is None:
        return reject(state, Rejection.ALREADY_CLAIMED)

    nxt = state.copy()
    nxt.earn(offer.amount)
    nxt.last_daily_reward = offer.day
    nxt.daily_streak = offer.streak

    t = Transition(state=nxt)
    t.emit(EventKind.COINS_CHANGED, delta=offer.amount, source="daily")
    t.emit(EventKind.DAILY_CLAIMED, amount=offer.amount, streak=offer.streak)
    t.events.extend(apply_level(nxt))
    logger.info("Daily reward claimed: +%d (streak %d)", offer.amount, offer.streak)
    return t
