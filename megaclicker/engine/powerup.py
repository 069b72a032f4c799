"""Power-up lifecycle — the floating bonus and the click boost it grants.

The whole lifecycle is one ``PowerUpState`` value. Each transition function
takes the current value and returns the next one plus the events produced;
the session maps those events onto scheduler timers.

    DORMANT ──spawn──▶ VISIBLE ──catch──▶ CAUGHT ──activate──▶ ACTIVE
       ▲                  │                  │                    │
       │               expire             release             countdown
       └──────────────────┴──────────────────┴────────────────────┘
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, replace
from enum import Enum, auto

from megaclicker.data.balance import BALANCE
from megaclicker.engine.events import Event, EventKind

logger = logging.getLogger(__name__)


class PowerUpPhase(Enum):
    DORMANT = auto()
    VISIBLE = auto()
    CAUGHT = auto()
    ACTIVE = auto()
    EXPIRED = auto()


@dataclass(frozen=True)
class PowerUpState:
    phase: PowerUpPhase = PowerUpPhase.DORMANT
    spawn_at: float = 0.0         # when the next spawn is due (DORMANT)
    spawned_at: float = 0.0       # when the current flight started (VISIBLE)
    start_x: float = 50.0
    start_y: float = BALANCE.powerup.start_y
    boost_remaining: int = 0      # seconds left on the boost (ACTIVE)

    @property
    def flight_ends_at(self) -> float:
        return self.spawned_at + BALANCE.powerup.flight_duration_s


Step = tuple[PowerUpState, list[Event]]


def boost_active(pu: PowerUpState) -> bool:
    return pu.phase == PowerUpPhase.ACTIVE


def schedule_spawn(pu: PowerUpState, now: float, rng: random.Random) -> Step:
    """Go (back) to DORMANT with a new randomised spawn time."""
    bal = BALANCE.powerup
    delay = rng.uniform(bal.min_spawn_delay_s, bal.max_spawn_delay_s)
    nxt = PowerUpState(phase=PowerUpPhase.DORMANT, spawn_at=now + delay)
    logger.debug("Power-up scheduled in %.1fs", delay)
    return nxt, [Event(EventKind.POWERUP_SCHEDULED, {"spawn_at": nxt.spawn_at})]


def spawn(pu: PowerUpState, now: float, rng: random.Random, active: bool = False) -> Step:
    """Launch the power-up. Reschedules instead while a boost is running."""
    if pu.phase != PowerUpPhase.DORMANT:
        return pu, []
    if active or boost_active(pu):
        nxt, events = schedule_spawn(pu, now, rng)
        return nxt, [Event(EventKind.POWERUP_RESCHEDULED, {"spawn_at": nxt.spawn_at})] + events

    bal = BALANCE.powerup
    nxt = PowerUpState(
        phase=PowerUpPhase.VISIBLE,
        spawned_at=now,
        start_x=rng.uniform(bal.start_x_min, bal.start_x_max),
        start_y=bal.start_y,
    )
    logger.info("Power-up spawned at x=%.1f", nxt.start_x)
    return nxt, [Event(EventKind.POWERUP_SPAWNED, {"x": nxt.start_x, "ends_at": nxt.flight_ends_at})]


def position(pu: PowerUpState, now: float) -> tuple[float, float]:
    """Where the power-up is drawn: straight ascent plus a sideways wobble."""
    bal = BALANCE.powerup
    elapsed = max(0.0, min(now - pu.spawned_at, bal.flight_duration_s))
    frac = elapsed / bal.flight_duration_s
    y = pu.start_y + (bal.end_y - pu.start_y) * frac
    x = pu.start_x + bal.wobble_amplitude * math.sin(2 * math.pi * elapsed / bal.wobble_period_s)
    return x, y


def catch(pu: PowerUpState, now: float) -> Step:
    """Player taps the power-up. Only works mid-flight."""
    if pu.phase != PowerUpPhase.VISIBLE or now >= pu.flight_ends_at:
        return pu, []
    logger.info("Power-up caught")
    return replace(pu, phase=PowerUpPhase.CAUGHT), [Event(EventKind.POWERUP_CAUGHT)]


def expire(pu: PowerUpState, now: float, rng: random.Random) -> Step:
    """Flight finished without a catch: hide it and start a new schedule."""
    if pu.phase != PowerUpPhase.VISIBLE or now < pu.flight_ends_at:
        return pu, []
    logger.info("Power-up missed")
    missed = replace(pu, phase=PowerUpPhase.EXPIRED)
    nxt, events = schedule_spawn(missed, now, rng)
    return nxt, [Event(EventKind.POWERUP_MISSED)] + events


def activate(pu: PowerUpState) -> Step:
    """Start the click boost after a catch (and its ad, if any)."""
    if pu.phase != PowerUpPhase.CAUGHT:
        return pu, []
    bal = BALANCE.powerup
    nxt = replace(pu, phase=PowerUpPhase.ACTIVE, boost_remaining=bal.boost_duration_s)
    return nxt, [Event(EventKind.BOOST_STARTED, {"remaining": nxt.boost_remaining})]


def release(pu: PowerUpState, now: float, rng: random.Random) -> Step:
    """Drop a caught power-up whose ad was not completed."""
    if pu.phase != PowerUpPhase.CAUGHT:
        return pu, []
    nxt, events = schedule_spawn(pu, now, rng)
    return nxt, [Event(EventKind.POWERUP_RELEASED)] + events


def tick_boost(pu: PowerUpState, now: float, rng: random.Random) -> Step:
    """One second of boost countdown; ends the boost at zero."""
    if pu.phase != PowerUpPhase.ACTIVE:
        return pu, []
    remaining = pu.boost_remaining - 1
    if remaining > 0:
        return replace(pu, boost_remaining=remaining), [Event(EventKind.BOOST_TICK, {"remaining": remaining})]
    logger.info("Boost ended")
    nxt, events = schedule_spawn(pu, now, rng)
    return nxt, [Event(EventKind.BOOST_ENDED)] + events
