"""Events and transitions — what every engine command returns.

Engine commands never mutate their input. They return a ``Transition``
holding the next state plus the events it produced; the session applies
side effects (saving, timers, notifications) from those events.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from megaclicker.engine.game_state import GameState


class EventKind(Enum):
    """Things that happened during a transition."""

    COINS_CHANGED = auto()
    LEVEL_UP = auto()
    BOOST_PURCHASED = auto()
    INSUFFICIENT_FUNDS = auto()
    PASSIVE_RATE_CHANGED = auto()
    DAILY_CLAIMED = auto()
    REFERRAL_CREDITED = auto()
    POWERUP_SCHEDULED = auto()
    POWERUP_RESCHEDULED = auto()    # spawn skipped because a boost is active
    POWERUP_SPAWNED = auto()
    POWERUP_CAUGHT = auto()
    POWERUP_MISSED = auto()
    POWERUP_RELEASED = auto()       # caught, but the gating ad was skipped
    BOOST_STARTED = auto()
    BOOST_TICK = auto()
    BOOST_ENDED = auto()
    AD_REQUESTED = auto()
    AD_RESOLVED = auto()
    STATS_CHANGED = auto()


# Events that mean the persisted GameState changed
STATE_EVENTS = frozenset({
    EventKind.COINS_CHANGED,
    EventKind.LEVEL_UP,
    EventKind.BOOST_PURCHASED,
    EventKind.PASSIVE_RATE_CHANGED,
    EventKind.DAILY_CLAIMED,
    EventKind.REFERRAL_CREDITED,
    EventKind.STATS_CHANGED,
})


class Rejection:
    """Reasons a command can be refused. Plain strings so they serialise as-is."""

    INSUFFICIENT_FUNDS = "insufficient_funds"
    ALREADY_CLAIMED = "already_claimed"
    ALREADY_REDEEMED = "already_redeemed"
    OWN_LINK = "own_link"
    NO_TOKEN = "no_token"
    NOT_VISIBLE = "not_visible"
    PAUSED = "paused"
    AD_SKIPPED = "ad_skipped"
    UNKNOWN_BOOST = "unknown_boost"


@dataclass(frozen=True)
class Event:
    kind: EventKind
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind.name.lower(), **self.data}


@dataclass
class Transition:
    """Result of one engine command."""

    state: GameState
    events: list[Event] = field(default_factory=list)
    rejected: str = ""

    @property
    def ok(self) -> bool:
        return not self.rejected

    @property
    def changed(self) -> bool:
        """True when the persisted state differs from the input state."""
        return any(e.kind in STATE_EVENTS for e in self.events)

    def emit(self, kind: EventKind, **data: Any) -> None:
        self.events.append(Event(kind, data))

    def has(self, kind: EventKind) -> bool:
        return any(e.kind == kind for e in self.events)

    def find(self, kind: EventKind) -> Event | None:
        for e in self.events:
            if e.kind == kind:
                return e
        return None


def reject(state: GameState, reason: str, *events: Event) -> Transition:
    """Refuse a command: the original state comes back untouched."""
    return Transition(state=state, events=list(events), rejected=reason)
