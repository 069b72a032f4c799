"""Game state — single source of truth for the player's progress."""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field

from megaclicker.data.balance import BALANCE
from megaclicker.data.boosts import ALL_BOOSTS, BoostKind


def new_user_id() -> str:
    """Generate the opaque id used in referral links."""
    return f"user_{uuid.uuid4().hex[:12]}"


@dataclass
class BoostState:
    """Current level and next-purchase cost of one boost."""

    level: int = 0
    cost: int = 1


@dataclass
class GameStats:
    """Lifetime counters (shown on the stats tab)."""

    total_clicks: int = 0
    total_coins_earned: int = 0
    powerups_caught: int = 0
    powerups_missed: int = 0
    ads_watched: int = 0


def default_boosts() -> dict[BoostKind, BoostState]:
    return {kind: BoostState(level=0, cost=bdef.base_cost) for kind, bdef in ALL_BOOSTS.items()}


@dataclass
class GameState:
    """Complete persisted state for one player."""

    # ── Core resources ───────────────────────────────────
    coins: int = 0
    click_power: int = BALANCE.economy.base_click_power
    auto_click_power: int = 0

    # ── Progression ──────────────────────────────────────
    level: int = 1

    # ── Daily reward ─────────────────────────────────────
    last_daily_reward: str | None = None   # ISO date of last claim
    daily_streak: int = 0

    # ── Referrals ────────────────────────────────────────
    referrals_count: int = 0
    user_id: str = field(default_factory=new_user_id)

    # ── Boosts: kind → level/cost ────────────────────────
    boosts: dict[BoostKind, BoostState] = field(default_factory=default_boosts)

    # ── Stats ────────────────────────────────────────────
    stats: GameStats = field(default_factory=GameStats)

    def copy(self) -> GameState:
        """Deep copy, used by transitions so the input state is never mutated."""
        return copy.deepcopy(self)

    def boost(self, kind: BoostKind) -> BoostState:
        return self.boosts[kind]

    def earn(self, amount: int) -> None:
        """Credit coins and the lifetime counter."""
        if amount <= 0:
            return
        self.coins += amount
        self.stats.total_coins_earned += amount
