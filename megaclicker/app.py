"""Mega Clicker — Main Textual Application.

Wires the game session into a playable TUI.
"""

from __future__ import annotations

import time

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.widgets import Header, Footer, Static
from textual.timer import Timer

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import ALL_BOOSTS, BoostKind
from megaclicker.engine.economy import format_number
from megaclicker.engine.events import Event, EventKind, Rejection
from megaclicker.engine.session import GameSession
from megaclicker.ui.hud import HUD
from megaclicker.ui.powerup_overlay import PowerUpOverlay
from megaclicker.ui.shop_panel import ShopPanel


class MegaClickerApp(App):
    """The Mega Clicker TUI application."""

    TITLE = "🪙 MEGA CLICKER"
    SUB_TITLE = "Click, upgrade, earn!"

    BINDINGS = [
        Binding("space", "click", "Click", show=True, priority=True),
        Binding("enter", "click", "Click", show=False),
        Binding("g", "catch_powerup", "Catch", show=True),
        Binding("d", "claim_daily", "Daily", show=True),
        Binding("1", "buy('clickMultiplier')", "Buy #1", show=False),
        Binding("2", "buy('autoClicker')", "Buy #2", show=False),
        Binding("3", "buy('passiveIncome')", "Buy #3", show=False),
        Binding("q", "quit_game", "Quit", show=True),
    ]

    def __init__(self, session: GameSession, referral_token: str | None = None) -> None:
        super().__init__()
        self._session = session
        self._referral_token = referral_token
        self._tick_timer: Timer | None = None
        self._session.subscribe(self._on_game_event)

    def compose(self) -> ComposeResult:
        yield Header()
        yield PowerUpOverlay(id="powerup-overlay")

        with Horizontal(id="game-container"):
            yield HUD(id="hud-panel")
            with Vertical(id="click-panel"):
                yield Static("\n\n      🪙\n\n  [Space] to click", id="coin-button")
            yield ShopPanel(id="shop-panel")

        yield Footer()

    def on_mount(self) -> None:
        """Start the session and the scheduler polling loop."""
        result = self._session.start(referral_token=self._referral_token)
        if result.rejected == Rejection.OWN_LINK:
            self.notify("That's your own invite link!", severity="error", timeout=2)

        offer = self._session.daily_offer
        if offer is not None:
            self.notify(
                f"🎁 Daily reward ready: +{offer.amount} coins (day {offer.streak}). Press [D]!",
                severity="information", timeout=5,
            )

        interval = 1.0 / BALANCE.tick_rate_hz
        self._tick_timer = self.set_interval(interval, self._game_tick)
        self._sync_ui()

    def _game_tick(self) -> None:
        self._session.update(time.time(), max_catch_up=BALANCE.max_catch_up_s)
        self._sync_ui()

    def _sync_ui(self) -> None:
        """Push the session snapshot to all widgets."""
        snap = self._session.snapshot()
        self.query_one("#hud-panel", HUD).update_from_snapshot(snap)
        self.query_one("#shop-panel", ShopPanel).update_from_snapshot(snap)
        self.query_one("#powerup-overlay", PowerUpOverlay).update_from_snapshot(snap)

    def _on_game_event(self, event: Event) -> None:
        kind = event.kind
        if kind == EventKind.LEVEL_UP:
            self.notify(f"🎉 New level! You reached level {event.data['level']}!", severity="warning", timeout=3)
        elif kind == EventKind.BOOST_PURCHASED:
            self.notify(f"✅ Boost bought! Level {event.data['level']}", severity="information", timeout=1)
        elif kind == EventKind.INSUFFICIENT_FUNDS:
            self.notify(f"❌ Not enough coins: need {event.data['shortfall']} more", severity="error", timeout=2)
        elif kind == EventKind.POWERUP_SPAWNED:
            self.notify("⚡ A power-up appeared! Press [G]!", severity="warning", timeout=3)
        elif kind == EventKind.POWERUP_MISSED:
            self.notify("The power-up floated away...", severity="information", timeout=2)
        elif kind == EventKind.BOOST_STARTED:
            self.notify(f"🔥 Clicks x1.5 for {event.data['remaining']}s!", severity="warning", timeout=2)
        elif kind == EventKind.BOOST_ENDED:
            self.notify("Boost over.", severity="information", timeout=1)
        elif kind == EventKind.DAILY_CLAIMED:
            self.notify(
                f"🎁 +{format_number(event.data['amount'])} coins! Streak: {event.data['streak']} days",
                severity="information", timeout=3,
            )
        elif kind == EventKind.REFERRAL_CREDITED:
            self.notify(f"🤝 Referral bonus: +{event.data['amount']} coins!", severity="information", timeout=3)

    # ── Actions ──────────────────────────────────────

    def action_click(self) -> None:
        self._session.click(time.time())

    def action_buy(self, key: str) -> None:
        kind = BoostKind(key)
        result = self._session.buy_boost(kind, time.time())
        if result.rejected == Rejection.AD_SKIPPED:
            self.notify(f"Ad skipped — {ALL_BOOSTS[kind].name} not upgraded.", severity="error", timeout=2)

    def action_catch_powerup(self) -> None:
        result = self._session.catch_powerup(time.time())
        if result.rejected == Rejection.NOT_VISIBLE:
            self.notify("Nothing to catch right now.", severity="error", timeout=1)

    def action_claim_daily(self) -> None:
        result = self._session.claim_daily(time.time())
        if result.rejected == Rejection.ALREADY_CLAIMED:
            self.notify("Daily reward already claimed today. Come back tomorrow!", severity="error", timeout=2)

    def action_quit_game(self) -> None:
        """Stop all timers and quit; progress is already saved."""
        self._session.close()
        self.exit()
