"""Tests for the game session: commands, timers, persistence and ads."""

from __future__ import annotations

import random
from datetime import date

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import BoostKind
from megaclicker.engine.ads import AdGate, AdResult, CallbackAdGate
from megaclicker.engine.events import Event, EventKind, Rejection
from megaclicker.engine.game_state import GameState
from megaclicker.engine.powerup import PowerUpPhase
from megaclicker.engine.save import Storage, load_game
from megaclicker.engine.session import COUNTDOWN_TIMER, PASSIVE_TIMER, SPAWN_TIMER, GameSession

T0 = 10_000.0
TODAY = date(2026, 10, 19)


class FakeClock:
    def __init__(self, now: float = T0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class ManualAdGate(AdGate):
    """Holds the ad open until the test resolves it."""

    def __init__(self) -> None:
        self.pending = []

    def show(self, on_result) -> None:
        self.pending.append(on_result)

    def finish(self, result: AdResult) -> None:
        self.pending.pop(0)(result)


class FixedAdGate(AdGate):
    def __init__(self, result: AdResult) -> None:
        self.result = result

    def show(self, on_result) -> None:
        on_result(self.result)


def _session(tmp_path, state: GameState | None = None, ad_gate: AdGate | None = None,
             clock: FakeClock | None = None) -> GameSession:
    session = GameSession(
        Storage(tmp_path),
        ad_gate=ad_gate,
        clock=clock or FakeClock(),
        today=lambda: TODAY,
        rng=random.Random(7),
    )
    if state is not None:
        session.state = state
    return session


def _kinds(result):
    return [e.kind for e in result.events]


def _spawn_powerup(session: GameSession) -> float:
    """Jump to the scheduled spawn and return the spawn time."""
    spawn_at = session.powerup.spawn_at
    session.update(spawn_at)
    assert session.powerup.phase == PowerUpPhase.VISIBLE
    return spawn_at


# ── Lifecycle & persistence ──────────────────────────────────────


def test_start_saves_and_keeps_user_id(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    user_id = session.state.user_id
    assert load_game(Storage(tmp_path)).user_id == user_id

    again = _session(tmp_path)
    again.start(now=T0)
    assert again.state.user_id == user_id


def test_every_click_is_persisted(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    session.click(now=T0)
    session.click(now=T0)
    assert load_game(Storage(tmp_path)).coins == 2


def test_level_up_fires_once(tmp_path):
    session = _session(tmp_path)
    seen: list[Event] = []
    session.subscribe(seen.append)
    session.start(now=T0)

    for _ in range(99):
        session.click(now=T0)
    assert session.state.coins == 99
    assert session.state.level == 1

    result = session.click(now=T0)
    assert session.state.coins == 100
    assert session.state.level == 2
    assert _kinds(result).count(EventKind.LEVEL_UP) == 1
    assert [e for e in seen if e.kind == EventKind.LEVEL_UP] == [Event(EventKind.LEVEL_UP, {"level": 2})]


def test_start_settles_level_from_loaded_coins(tmp_path):
    session = _session(tmp_path, GameState(coins=2_500, level=1))
    result = session.start(now=T0)
    assert session.state.level == 4
    assert EventKind.LEVEL_UP in _kinds(result)


def test_close_drops_all_timers(tmp_path):
    session = _session(tmp_path, GameState(auto_click_power=3))
    session.start(now=T0)
    assert session.scheduler.is_scheduled(PASSIVE_TIMER)

    session.close()
    assert session.scheduler.names == []
    assert session.update(T0 + 100) == 0
    assert session.state.coins == 0


# ── Shop & passive income ────────────────────────────────────────


def test_buy_click_multiplier(tmp_path):
    session = _session(tmp_path, GameState(coins=50))
    session.start(now=T0)
    result = session.buy_boost(BoostKind.CLICK_MULTIPLIER, now=T0)
    assert result.ok
    assert session.state.coins == 0
    assert session.state.click_power == 2
    assert session.state.boosts[BoostKind.CLICK_MULTIPLIER].cost == 75
    assert load_game(Storage(tmp_path)).click_power == 2


def test_insufficient_funds_reports_shortfall(tmp_path):
    session = _session(tmp_path, GameState(coins=30))
    session.start(now=T0)
    result = session.buy_boost(BoostKind.AUTO_CLICKER, now=T0)
    assert result.rejected == Rejection.INSUFFICIENT_FUNDS
    assert result.find(EventKind.INSUFFICIENT_FUNDS).data["shortfall"] == 70
    assert session.state.coins == 30


def test_passive_income_starts_with_first_auto_clicker(tmp_path):
    session = _session(tmp_path, GameState(coins=100))
    session.start(now=T0)
    assert not session.scheduler.is_scheduled(PASSIVE_TIMER)

    session.buy_boost(BoostKind.AUTO_CLICKER, now=T0)
    assert session.scheduler.is_scheduled(PASSIVE_TIMER)

    session.update(T0 + 3.0)
    assert session.state.coins == 6


def test_passive_timer_stops_when_rate_drops_to_zero(tmp_path):
    session = _session(tmp_path, GameState(auto_click_power=4))
    session.start(now=T0)
    session.update(T0 + 1.0)
    assert session.state.coins == 4

    session.state.auto_click_power = 0
    session.update(T0 + 2.0)
    assert not session.scheduler.is_scheduled(PASSIVE_TIMER)
    assert session.state.coins == 4


def test_long_gap_is_capped(tmp_path):
    session = _session(tmp_path, GameState(auto_click_power=2))
    session.start(now=T0)
    session.update(T0 + 100.0, max_catch_up=10.0)
    assert session.state.coins == 20


def test_hours_of_sleep_replay_only_the_catch_up_window(tmp_path):
    session = _session(tmp_path, GameState(auto_click_power=2))
    session.start(now=T0)
    fired = session.update(T0 + 3 * 3600, max_catch_up=BALANCE.max_catch_up_s)
    assert session.state.coins == 2 * 60
    assert fired <= 62
    assert session.scheduler.due_at(PASSIVE_TIMER) == T0 + 3 * 3600 + 1


def test_corrupt_save_does_not_stop_the_session(tmp_path):
    (tmp_path / "clickerGame.json").write_bytes(b"\xff\xfe{\"coins\": 5}")
    session = _session(tmp_path)
    session.start(now=T0)
    assert session.state.coins == 0
    assert session.click(now=T0).ok
    assert load_game(Storage(tmp_path)).coins == 1


def test_non_finite_save_values_start_from_defaults(tmp_path):
    (tmp_path / "clickerGame.json").write_text('{"coins": NaN, "clickPower": Infinity}')
    session = _session(tmp_path)
    session.start(now=T0)
    assert session.state.coins == 0
    assert session.state.click_power == 1


# ── Rewarded ads ─────────────────────────────────────────────────


def test_passive_income_via_pass_through_ad(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    result = session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    assert result.ok
    assert session.state.auto_click_power == 5
    assert session.state.coins == 0
    assert session.state.stats.ads_watched == 1
    assert not session.paused
    assert session.scheduler.is_scheduled(PASSIVE_TIMER)


def test_game_is_paused_while_ad_plays(tmp_path):
    gate = ManualAdGate()
    session = _session(tmp_path, ad_gate=gate)
    session.start(now=T0)

    result = session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    assert result.ok
    assert session.paused
    assert EventKind.AD_REQUESTED in _kinds(result)

    assert session.click(now=T0).rejected == Rejection.PAUSED
    assert session.catch_powerup(now=T0).rejected == Rejection.PAUSED
    assert session.claim_daily(now=T0).rejected == Rejection.PAUSED
    assert session.buy_boost(BoostKind.CLICK_MULTIPLIER, now=T0).rejected == Rejection.PAUSED
    assert session.state.coins == 0

    gate.finish(AdResult.REWARDED)
    assert not session.paused
    assert session.state.auto_click_power == 5
    assert load_game(Storage(tmp_path)).auto_click_power == 5


def test_skipped_ad_grants_nothing(tmp_path):
    session = _session(tmp_path, ad_gate=FixedAdGate(AdResult.SKIPPED))
    session.start(now=T0)
    result = session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    assert result.rejected == Rejection.AD_SKIPPED
    assert session.state.boosts[BoostKind.PASSIVE_INCOME].level == 0
    assert session.state.auto_click_power == 0
    assert not session.paused


def test_failed_ad_fails_open(tmp_path):
    session = _session(tmp_path, ad_gate=FixedAdGate(AdResult.FAILED))
    session.start(now=T0)
    session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    assert session.state.boosts[BoostKind.PASSIVE_INCOME].level == 1
    assert session.state.stats.ads_watched == 0


def test_broken_ad_sdk_fails_open(tmp_path):
    def broken(done):
        raise RuntimeError("no sdk")

    session = _session(tmp_path, ad_gate=CallbackAdGate(broken))
    session.start(now=T0)
    session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    assert session.state.auto_click_power == 5
    assert not session.paused


def test_ad_result_after_close_is_ignored(tmp_path):
    gate = ManualAdGate()
    session = _session(tmp_path, ad_gate=gate)
    session.start(now=T0)
    session.buy_boost(BoostKind.PASSIVE_INCOME, now=T0)
    session.close()
    gate.finish(AdResult.REWARDED)
    assert session.state.auto_click_power == 0


# ── Power-up ─────────────────────────────────────────────────────


def test_start_schedules_powerup(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    assert session.powerup.phase == PowerUpPhase.DORMANT
    assert session.scheduler.due_at(SPAWN_TIMER) == session.powerup.spawn_at
    assert session.catch_powerup(now=T0).rejected == Rejection.NOT_VISIBLE


def test_caught_powerup_boosts_clicks_for_fifteen_seconds(tmp_path):
    session = _session(tmp_path, GameState(click_power=2))
    session.start(now=T0)
    spawn_at = _spawn_powerup(session)

    result = session.catch_powerup(now=spawn_at + 1)
    assert result.ok
    kinds = _kinds(result)
    assert kinds.index(EventKind.POWERUP_CAUGHT) < kinds.index(EventKind.BOOST_STARTED)
    assert session.boost_active
    assert session.state.stats.powerups_caught == 1

    session.click(now=spawn_at + 2)
    assert session.state.coins == 3   # floor(2 * 1.5)

    session.update(spawn_at + 15)
    assert session.boost_active
    session.update(spawn_at + 16)
    assert not session.boost_active
    assert not session.scheduler.is_scheduled(COUNTDOWN_TIMER)
    assert session.scheduler.is_scheduled(SPAWN_TIMER)

    session.click(now=spawn_at + 17)
    assert session.state.coins == 5


def test_only_one_catch_per_powerup(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    spawn_at = _spawn_powerup(session)
    assert session.catch_powerup(now=spawn_at + 1).ok
    assert session.catch_powerup(now=spawn_at + 2).rejected == Rejection.NOT_VISIBLE
    assert session.state.stats.powerups_caught == 1


def test_missed_powerup_reschedules(tmp_path):
    session = _session(tmp_path)
    session.start(now=T0)
    spawn_at = _spawn_powerup(session)

    session.update(spawn_at + 8)
    assert session.powerup.phase == PowerUpPhase.DORMANT
    assert session.powerup.spawn_at > spawn_at + 8
    assert session.state.stats.powerups_missed == 1
    assert session.catch_powerup(now=spawn_at + 8).rejected == Rejection.NOT_VISIBLE


def test_powerup_waits_for_ad(tmp_path):
    gate = ManualAdGate()
    clock = FakeClock()
    session = _session(tmp_path, ad_gate=gate, clock=clock)
    session.start(now=T0)
    spawn_at = _spawn_powerup(session)

    session.catch_powerup(now=spawn_at + 1)
    assert session.powerup.phase == PowerUpPhase.CAUGHT
    assert session.paused
    assert not session.boost_active

    clock.now = spawn_at + 31
    gate.finish(AdResult.REWARDED)
    assert session.boost_active
    assert not session.paused
    assert session.powerup.boost_remaining == 15

    session.update(spawn_at + 46)
    assert not session.boost_active


def test_skipped_powerup_ad_releases_it(tmp_path):
    session = _session(tmp_path, ad_gate=FixedAdGate(AdResult.SKIPPED))
    session.start(now=T0)
    spawn_at = _spawn_powerup(session)

    result = session.catch_powerup(now=spawn_at + 1)
    assert result.rejected == Rejection.AD_SKIPPED
    assert session.powerup.phase == PowerUpPhase.DORMANT
    assert not session.boost_active
    assert session.scheduler.is_scheduled(SPAWN_TIMER)


# ── Daily reward & referral ──────────────────────────────────────


def test_daily_claim_once_per_day(tmp_path):
    session = _session(tmp_path, GameState(last_daily_reward="2026-10-18", daily_streak=2))
    session.start(now=T0)
    assert session.daily_offer.amount == 90

    assert session.claim_daily(now=T0).ok
    assert session.state.coins == 90
    assert session.state.daily_streak == 3
    assert session.daily_offer is None
    assert session.claim_daily(now=T0).rejected == Rejection.ALREADY_CLAIMED
    assert load_game(Storage(tmp_path)).last_daily_reward == "2026-10-19"


def test_referral_credited_once_per_device(tmp_path):
    first = _session(tmp_path)
    result = first.start(referral_token="abc", now=T0)
    assert result.ok
    assert first.state.coins == 1000
    first.close()

    second = _session(tmp_path)
    result = second.start(referral_token="abc", now=T0)
    assert result.rejected == Rejection.ALREADY_REDEEMED
    assert second.state.coins == 1000


def test_own_referral_link_ignored(tmp_path):
    session = _session(tmp_path)
    user_id = session.state.user_id
    result = session.start(referral_token=user_id, now=T0)
    assert result.rejected == Rejection.OWN_LINK
    assert session.state.coins == 0


def test_snapshot_for_presentation(tmp_path):
    session = _session(tmp_path, GameState(coins=300, level=2))
    session.start(now=T0)
    snap = session.snapshot(now=T0)
    assert snap["coins"] == 300
    assert snap["level_progress"] == 50.0
    assert snap["next_level"] == 500
    assert snap["powerup"] == {"phase": "dormant"}
    assert snap["daily"]["available"]
    assert [b["id"] for b in snap["boosts"]] == ["clickMultiplier", "autoClicker", "passiveIncome"]
    assert snap["boosts"][2]["funding"] == "rewarded_ad"
