"""Game session — the store every command and timer goes through.

A session owns the current ``GameState``, the power-up, the referral
ledger, the scheduler and the ad gate. Commands run a pure transition,
then ``_commit`` swaps in the new state, saves it if it changed, starts or
stops timers from the events, and finally tells listeners.

Hosts (the Textual app, the Flask server) call ``update(now)`` regularly
and the command methods below; they render ``snapshot()``.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import replace
from datetime import date
from typing import Callable

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import ALL_BOOSTS, BoostKind, Funding
from megaclicker.engine import powerup as pu_rules
from megaclicker.engine.ads import AdGate, AdResult, PassThroughAdGate
from megaclicker.engine.daily import DailyOffer, claim_daily_reward, pending_daily_reward
from megaclicker.engine.economy import (
    can_afford,
    boost_effect_value,
    boost_preview,
    effective_click_power,
    funding_for,
    handle_click,
    purchase_boost,
    tick_passive,
)
from megaclicker.engine.events import Event, EventKind, Rejection, Transition
from megaclicker.engine.game_state import GameState
from megaclicker.engine.powerup import PowerUpPhase, PowerUpState
from megaclicker.engine.progression import apply_level, level_progress, next_level_threshold
from megaclicker.engine.referral import ReferralLedger
from megaclicker.engine.save import (
    Storage,
    load_game,
    load_redeemed_referrals,
    save_game,
    save_redeemed_referrals,
)
from megaclicker.engine.scheduler import Scheduler

logger = logging.getLogger(__name__)

Listener = Callable[[Event], None]

# Timer names
PASSIVE_TIMER = "passive"
SPAWN_TIMER = "powerup.spawn"
FLIGHT_TIMER = "powerup.flight"
COUNTDOWN_TIMER = "boost.countdown"


class GameSession:
    """One running game: state, timers, and the commands that change them."""

    def __init__(
        self,
        storage: Storage,
        ad_gate: AdGate | None = None,
        clock: Callable[[], float] = time.time,
        today: Callable[[], date] = date.today,
        rng: random.Random | None = None,
    ) -> None:
        self.storage = storage
        self.ads: AdGate = ad_gate or PassThroughAdGate()
        self.scheduler = Scheduler()
        self._clock = clock
        self._today = today
        self._rng = rng or random.Random()

        saved = load_game(storage)
        self.state: GameState = saved if saved is not None else GameState()
        self.referrals = ReferralLedger(load_redeemed_referrals(storage))
        self.powerup = PowerUpState()

        self.paused = False
        self.pending_ad: str = ""          # what the in-flight ad is paying for
        self._ad_ticket = 0
        self._closed = False
        self._started = False
        self._last_update = 0.0
        self._listeners: list[Listener] = []
        self._journal: list[Event] = []

    # ── Lifecycle ────────────────────────────────────────────────

    def start(self, referral_token: str | None = None, now: float | None = None) -> Transition:
        """Begin the session: settle the level, redeem a referral, start timers."""
        now = self._now(now)
        self._journal = []
        self._last_update = now

        # Settle level against loaded coins; this first save also persists a fresh user id
        nxt = self.state.copy()
        events = apply_level(nxt)
        self.state = nxt
        save_game(self.storage, self.state)
        self._dispatch(events)

        rejected = ""
        if referral_token:
            rejected = self._redeem(referral_token, now).rejected

        self._sync_passive(now)
        self._step_powerup(pu_rules.schedule_spawn(self.powerup, now, self._rng), now)
        self._started = True
        logger.info("Session started for %s (coins=%d, level=%d)",
                    self.state.user_id, self.state.coins, self.state.level)
        return self._result(rejected)

    def close(self) -> None:
        """End the session: every pending timer is dropped without firing."""
        self.scheduler.cancel_all()
        self._closed = True
        self.paused = False
        self.pending_ad = ""
        logger.info("Session closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def update(self, now: float | None = None, max_catch_up: float | None = None) -> int:
        """Run every timer that is due. Returns how many fired.

        With ``max_catch_up``, a gap longer than that is skipped rather than
        replayed (a tab left in the background for an hour).
        """
        if self._closed:
            return 0
        now = self._now(now)
        gap = now - self._last_update
        if max_catch_up is not None and gap > max_catch_up:
            skipped = gap - max_catch_up
            self.scheduler.shift(skipped)
            self.powerup = replace(
                self.powerup,
                spawn_at=self.powerup.spawn_at + skipped,
                spawned_at=self.powerup.spawned_at + skipped,
            )
            logger.debug("Skipped %.1fs of idle time", skipped)
        self._last_update = max(self._last_update, now)
        return self.scheduler.run_due(now)

    # ── Commands ─────────────────────────────────────────────────

    def click(self, now: float | None = None) -> Transition:
        """Manual click."""
        now = self._begin(now)
        if self.paused:
            return self._result(Rejection.PAUSED)
        self._commit(handle_click(self.state, self.boost_active), now)
        return self._result()

    def buy_boost(self, kind: BoostKind, now: float | None = None) -> Transition:
        """Buy one level of a boost, paying with coins or by watching an ad."""
        now = self._begin(now)
        if self.paused:
            return self._result(Rejection.PAUSED)

        if funding_for(kind) == Funding.REWARDED_AD:
            result = self._request_ad(kind.value, lambda r, when: self._on_purchase_ad(kind, r, when), now)
            return self._result(Rejection.AD_SKIPPED if result == AdResult.SKIPPED else "")

        t = purchase_boost(self.state, kind)
        self._commit(t, now)
        return self._result(t.rejected)

    def catch_powerup(self, now: float | None = None) -> Transition:
        """Tap the floating power-up."""
        now = self._begin(now)
        if self.paused:
            return self._result(Rejection.PAUSED)

        nxt, events = pu_rules.catch(self.powerup, now)
        if not events:
            return self._result(Rejection.NOT_VISIBLE)
        self._step_powerup((nxt, events), now)
        self._bump_stat("powerups_caught", now)

        if BALANCE.ads.powerup_ad_gated:
            result = self._request_ad("powerup", self._on_powerup_ad, now)
            return self._result(Rejection.AD_SKIPPED if result == AdResult.SKIPPED else "")

        self._step_powerup(pu_rules.activate(self.powerup), now)
        return self._result()

    def claim_daily(self, now: float | None = None) -> Transition:
        """Claim today's daily reward."""
        now = self._begin(now)
        if self.paused:
            return self._result(Rejection.PAUSED)
        t = claim_daily_reward(self.state, self._today())
        self._commit(t, now)
        return self._result(t.rejected)

    def redeem_referral(self, token: str | None, now: float | None = None) -> Transition:
        now = self._begin(now)
        return self._result(self._redeem(token, now).rejected)

    # ── Queries ──────────────────────────────────────────────────

    @property
    def boost_active(self) -> bool:
        return pu_rules.boost_active(self.powerup)

    @property
    def daily_offer(self) -> DailyOffer | None:
        return pending_daily_reward(self.state, self._today())

    def snapshot(self, now: float | None = None) -> dict:
        """Everything the presentation layer needs, as plain data."""
        now = self._now(now)
        s = self.state
        pu = self.powerup

        boosts = []
        for kind, bdef in ALL_BOOSTS.items():
            b = s.boost(kind)
            funding = funding_for(kind)
            boosts.append({
                "id": kind.value,
                "name": bdef.name,
                "description": bdef.description,
                "hotkey": bdef.hotkey,
                "level": b.level,
                "cost": b.cost,
                "funding": funding.value,
                "can_afford": can_afford(s, kind),
                "effect": boost_effect_value(kind, b.level),
                "next_effect": boost_preview(s, kind),
            })

        powerup = {"phase": pu.phase.name.lower()}
        if pu.phase == PowerUpPhase.VISIBLE:
            x, y = pu_rules.position(pu, now)
            powerup.update({"x": x, "y": y, "ends_in": max(0.0, pu.flight_ends_at - now)})
        elif pu.phase == PowerUpPhase.ACTIVE:
            powerup["boost_remaining"] = pu.boost_remaining

        offer = self.daily_offer
        return {
            "coins": s.coins,
            "level": s.level,
            "level_progress": level_progress(s),
            "next_level": next_level_threshold(s),
            "click_power": s.click_power,
            "effective_click_power": effective_click_power(s, self.boost_active),
            "auto_click_power": s.auto_click_power,
            "boost_active": self.boost_active,
            "paused": self.paused,
            "pending_ad": self.pending_ad,
            "boosts": boosts,
            "powerup": powerup,
            "daily": {
                "available": offer is not None,
                "amount": offer.amount if offer else 0,
                "streak": offer.streak if offer else s.daily_streak,
                "last_claimed": s.last_daily_reward,
            },
            "user_id": s.user_id,
            "referrals_count": s.referrals_count,
            "stats": {
                "total_clicks": s.stats.total_clicks,
                "total_coins_earned": s.stats.total_coins_earned,
                "powerups_caught": s.stats.powerups_caught,
                "powerups_missed": s.stats.powerups_missed,
                "ads_watched": s.stats.ads_watched,
            },
        }

    # ── Internals: commit path ───────────────────────────────────

    def _now(self, now: float | None) -> float:
        return self._clock() if now is None else now

    def _begin(self, now: float | None) -> float:
        now = self._now(now)
        self.update(now)
        self._journal = []
        return now

    def _result(self, rejected: str = "") -> Transition:
        return Transition(state=self.state, events=list(self._journal), rejected=rejected)

    def _dispatch(self, events: list[Event]) -> None:
        for event in events:
            self._journal.append(event)
            for listener in self._listeners:
                listener(event)

    def _commit(self, t: Transition, now: float) -> None:
        """Apply a transition: store, persist, drive timers, notify."""
        if t.ok:
            self.state = t.state
            if t.changed:
                save_game(self.storage, self.state)
            if t.has(EventKind.PASSIVE_RATE_CHANGED):
                self._sync_passive(now)
        self._dispatch(t.events)

    def _bump_stat(self, name: str, now: float) -> None:
        nxt = self.state.copy()
        setattr(nxt.stats, name, getattr(nxt.stats, name) + 1)
        t = Transition(state=nxt)
        t.emit(EventKind.STATS_CHANGED, stat=name)
        self._commit(t, now)

    def _redeem(self, token: str | None, now: float) -> Transition:
        t = self.referrals.redeem(self.state, token)
        if t.ok:
            # Mark the token before crediting so a crash can never credit twice
            save_redeemed_referrals(self.storage, self.referrals.redeemed)
        self._commit(t, now)
        return t

    # ── Internals: passive income ────────────────────────────────

    def _sync_passive(self, now: float) -> None:
        """Passive timer runs exactly while auto_click_power > 0."""
        running = self.scheduler.is_scheduled(PASSIVE_TIMER)
        if self.state.auto_click_power > 0 and not running:
            self.scheduler.call_every(
                PASSIVE_TIMER, BALANCE.economy.passive_interval_s, self._on_passive_tick, now=now
            )
            logger.debug("Passive income started at %d/s", self.state.auto_click_power)
        elif self.state.auto_click_power <= 0 and running:
            self.scheduler.cancel(PASSIVE_TIMER)
            logger.debug("Passive income stopped")

    def _on_passive_tick(self, fire_time: float) -> None:
        if self.state.auto_click_power <= 0:
            self._sync_passive(fire_time)
            return
        self._commit(tick_passive(self.state), fire_time)

    # ── Internals: power-up ──────────────────────────────────────

    def _step_powerup(self, step: pu_rules.Step, now: float) -> None:
        """Store the new power-up value and line the timers up with it."""
        self.powerup, events = step
        for event in events:
            kind = event.kind
            if kind == EventKind.POWERUP_SCHEDULED:
                self.scheduler.cancel(FLIGHT_TIMER)
                self.scheduler.call_at(SPAWN_TIMER, self.powerup.spawn_at, self._on_spawn_due)
            elif kind == EventKind.POWERUP_SPAWNED:
                self.scheduler.cancel(SPAWN_TIMER)
                self.scheduler.call_at(FLIGHT_TIMER, self.powerup.flight_ends_at, self._on_flight_end)
            elif kind == EventKind.POWERUP_CAUGHT:
                self.scheduler.cancel(FLIGHT_TIMER)
            elif kind == EventKind.BOOST_STARTED:
                self.scheduler.call_every(
                    COUNTDOWN_TIMER, BALANCE.powerup.countdown_interval_s, self._on_countdown, now=now
                )
            elif kind == EventKind.BOOST_ENDED:
                self.scheduler.cancel(COUNTDOWN_TIMER)
        self._dispatch(events)

    def _on_spawn_due(self, fire_time: float) -> None:
        self._step_powerup(pu_rules.spawn(self.powerup, fire_time, self._rng, self.boost_active), fire_time)

    def _on_flight_end(self, fire_time: float) -> None:
        step = pu_rules.expire(self.powerup, fire_time, self._rng)
        self._step_powerup(step, fire_time)
        if any(e.kind == EventKind.POWERUP_MISSED for e in step[1]):
            self._bump_stat("powerups_missed", fire_time)

    def _on_countdown(self, fire_time: float) -> None:
        self._step_powerup(pu_rules.tick_boost(self.powerup, fire_time, self._rng), fire_time)

    # ── Internals: rewarded ads ──────────────────────────────────

    def _request_ad(
        self, purpose: str, on_done: Callable[[AdResult, float], None], now: float
    ) -> AdResult | None:
        """Pause the game and show an ad. Returns the result if it resolved synchronously."""
        self._ad_ticket += 1
        ticket = self._ad_ticket
        self.paused = True
        self.pending_ad = purpose
        self._dispatch([Event(EventKind.AD_REQUESTED, {"purpose": purpose})])
        outcome: list[AdResult] = []
        showing = True

        def resolved(result: AdResult) -> None:
            if self._closed or ticket != self._ad_ticket or not self.paused:
                logger.debug("Dropping stale ad result %s for %s", result, purpose)
                return
            when = now if showing else self._clock()
            self.paused = False
            self.pending_ad = ""
            outcome.append(result)
            self._dispatch([Event(EventKind.AD_RESOLVED, {"purpose": purpose, "result": result.value})])
            if result == AdResult.REWARDED:
                self._bump_stat("ads_watched", when)
            elif result == AdResult.FAILED:
                logger.warning("Ad for %s unavailable, granting anyway", purpose)
            on_done(result, when)

        self.ads.show(resolved)
        showing = False
        return outcome[0] if outcome else None

    def _on_purchase_ad(self, kind: BoostKind, result: AdResult, now: float) -> None:
        if not result.grants_reward:
            logger.info("Ad skipped, %s not granted", kind.value)
            return
        self._commit(purchase_boost(self.state, kind, ad_funded=True), now)

    def _on_powerup_ad(self, result: AdResult, now: float) -> None:
        if result.grants_reward:
            self._step_powerup(pu_rules.activate(self.powerup), now)
        else:
            self._step_powerup(pu_rules.release(self.powerup, now, self._rng), now)
