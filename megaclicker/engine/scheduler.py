"""Scheduler — named, cancellable one-shot and repeating timers.

The host drives it by calling ``run_due(now)`` (from a Textual interval in
the TUI, or once per request in the web server). Repeating timers fire once
for every period that elapsed, so a late poll catches up instead of
dropping ticks.

Usage:
    sched = Scheduler()
    sched.call_every("passive", 1.0, on_passive, now=t0)
    sched.call_later("powerup.spawn", 42.0, on_spawn, now=t0)
    sched.run_due(t0 + 3.5)   # on_passive x3
    sched.cancel("passive")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass
class _Timer:
    name: str
    due: float
    fn: Callable[[float], None]
    interval: float | None = None   # None = one-shot
    generation: int = 0


class Scheduler:
    """Owns every periodic and delayed job of a game session."""

    def __init__(self) -> None:
        self._timers: dict[str, _Timer] = {}
        self._generation = 0

    def _add(self, timer: _Timer) -> None:
        if timer.name in self._timers:
            logger.debug("Replacing timer %s", timer.name)
        self._generation += 1
        timer.generation = self._generation
        self._timers[timer.name] = timer

    def call_later(self, name: str, delay: float, fn: Callable[[float], None], now: float) -> None:
        """Run ``fn(fire_time)`` once, ``delay`` seconds after ``now``."""
        self._add(_Timer(name=name, due=now + delay, fn=fn))

    def call_at(self, name: str, when: float, fn: Callable[[float], None]) -> None:
        self._add(_Timer(name=name, due=when, fn=fn))

    def call_every(self, name: str, interval: float, fn: Callable[[float], None], now: float) -> None:
        """Run ``fn(fire_time)`` every ``interval`` seconds, first one at ``now + interval``."""
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._add(_Timer(name=name, due=now + interval, fn=fn, interval=interval))

    def cancel(self, name: str) -> bool:
        """Stop a timer. Returns True if it existed."""
        return self._timers.pop(name, None) is not None

    def cancel_all(self) -> None:
        """Drop every pending timer without running it."""
        self._timers.clear()

    def is_scheduled(self, name: str) -> bool:
        return name in self._timers

    def due_at(self, name: str) -> float | None:
        timer = self._timers.get(name)
        return timer.due if timer else None

    def shift(self, delta: float) -> None:
        """Push every timer ``delta`` seconds later (skips time nobody was watching)."""
        for timer in self._timers.values():
            timer.due += delta

    @property
    def names(self) -> list[str]:
        return sorted(self._timers)

    def run_due(self, now: float) -> int:
        """Fire everything due at or before ``now``, in time order. Returns the count fired."""
        fired = 0
        while True:
            timer = self._next_due(now)
            if timer is None:
                return fired

            if timer.interval is None:
                self._timers.pop(timer.name, None)
            fire_time = timer.due
            if timer.interval is not None:
                timer.due += timer.interval

            timer.fn(fire_time)
            fired += 1

    def _next_due(self, now: float) -> _Timer | None:
        due = [t for t in self._timers.values() if t.due <= now]
        if not due:
            return None
        return min(due, key=lambda t: (t.due, t.generation))
